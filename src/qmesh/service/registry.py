"""
In-memory store of uploaded circuits for the HTTP service.

Circuits are parsed and validated on upload and kept under a random hex id
until deleted or the process exits.
"""

import threading
import uuid
from typing import Any, Dict, List, Optional

from qmesh.circuits.model import Circuit
from qmesh.errors import CircuitNotFound


class CircuitRegistry:
    """Thread-safe mapping of circuit ids to parsed circuits."""
    
    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity
        self._circuits: Dict[str, Circuit] = {}
        self._lock = threading.Lock()
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._circuits)
    
    def add(self, circuit: Circuit) -> Optional[str]:
        """Store a circuit; returns its id, or None when the registry is full."""
        circuit_id = uuid.uuid4().hex
        with self._lock:
            if self.capacity is not None and len(self._circuits) >= self.capacity:
                return None
            self._circuits[circuit_id] = circuit
        return circuit_id
    
    def get(self, circuit_id: str) -> Circuit:
        with self._lock:
            circuit = self._circuits.get(circuit_id)
        if circuit is None:
            raise CircuitNotFound(f"No stored circuit with id {circuit_id!r}")
        return circuit
    
    def remove(self, circuit_id: str) -> Circuit:
        with self._lock:
            circuit = self._circuits.pop(circuit_id, None)
        if circuit is None:
            raise CircuitNotFound(f"No stored circuit with id {circuit_id!r}")
        return circuit
    
    def summaries(self) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._circuits.items())
        return [summarize(circuit_id, circuit) for circuit_id, circuit in items]


def summarize(circuit_id: str, circuit: Circuit) -> Dict[str, Any]:
    """Id, width, gate count, depth and metadata of a stored circuit."""
    return {
        "id": circuit_id,
        "num_qubits": circuit.num_qubits,
        "gates": len(circuit),
        "depth": circuit.depth(),
        "metadata": dict(circuit.metadata),
    }
