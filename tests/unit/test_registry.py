"""
Unit tests for the service's circuit registry.
"""

import threading

import pytest

from qmesh.circuits.model import Circuit
from qmesh.errors import CircuitNotFound, QMeshError
from qmesh.service.registry import CircuitRegistry, summarize


class TestCircuitRegistry:
    """Tests for CircuitRegistry."""
    
    def test_add_and_get(self):
        registry = CircuitRegistry()
        bell = Circuit(2).h(0).cnot(0, 1)
        
        circuit_id = registry.add(bell)
        
        assert len(circuit_id) == 32
        assert registry.get(circuit_id) is bell
        assert len(registry) == 1
    
    def test_ids_are_distinct(self):
        registry = CircuitRegistry()
        ids = {registry.add(Circuit(1).h(0)) for _ in range(50)}
        assert len(ids) == 50
    
    def test_unknown_id(self):
        registry = CircuitRegistry()
        with pytest.raises(CircuitNotFound, match="nope"):
            registry.get("nope")
        with pytest.raises(CircuitNotFound):
            registry.remove("nope")
    
    def test_not_found_is_lookup_error(self):
        """Test the error reads cleanly and is not a validation error."""
        error = CircuitNotFound("No stored circuit with id 'x'")
        assert isinstance(error, LookupError)
        assert isinstance(error, QMeshError)
        assert not isinstance(error, ValueError)
        assert str(error) == "No stored circuit with id 'x'"
    
    def test_remove(self):
        registry = CircuitRegistry()
        circuit_id = registry.add(Circuit(1).x(0))
        
        registry.remove(circuit_id)
        
        assert len(registry) == 0
        with pytest.raises(CircuitNotFound):
            registry.get(circuit_id)
    
    def test_capacity(self):
        registry = CircuitRegistry(capacity=2)
        first = registry.add(Circuit(1))
        assert registry.add(Circuit(1)) is not None
        assert registry.add(Circuit(1)) is None
        
        registry.remove(first)
        assert registry.add(Circuit(1)) is not None
    
    def test_concurrent_adds(self):
        registry = CircuitRegistry(capacity=100)
        
        def fill():
            for _ in range(50):
                registry.add(Circuit(1))
        
        threads = [threading.Thread(target=fill) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        
        assert len(registry) == 100
    
    def test_summaries(self):
        registry = CircuitRegistry()
        ghz = Circuit(3, metadata={"name": "ghz"}).h(0).cnot(0, 1).cnot(1, 2)
        circuit_id = registry.add(ghz)
        
        assert registry.summaries() == [
            {"id": circuit_id, "num_qubits": 3, "gates": 3, "depth": 3, "metadata": {"name": "ghz"}}
        ]
        assert summarize(circuit_id, ghz) == registry.summaries()[0]
