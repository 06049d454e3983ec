"""
Integration tests for backend and optimizer equivalence.

Every backend must produce the same amplitudes (within 1e-12) on random
circuits, and optimized circuits must simulate to the same state as the
originals.
"""

import pytest
import numpy as np

from qmesh.circuits import CircuitOptimizer, qft, random_circuit
from qmesh.config import SimulatorConfig
from qmesh.sim.engine import Simulator

CPU_BACKENDS = ["reference", "numpy", "threaded"]


def final_amplitudes(circuit, backend, optimize=False, **overrides):
    config = SimulatorConfig(backend=backend, optimize=optimize, **overrides)
    with Simulator(config) as sim:
        return sim.run(circuit).state.amplitudes


class TestBackendEquivalence:
    """Tests that backends agree."""
    
    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    @pytest.mark.parametrize("backend", ["numpy", "threaded"])
    def test_random_circuits_match_reference(self, backend, seed):
        """Test random circuits against the reference backend."""
        circuit = random_circuit(5, 80, seed=seed)
        expected = final_amplitudes(circuit, "reference")
        actual = final_amplitudes(circuit, backend, num_threads=3)
        np.testing.assert_allclose(actual, expected, atol=1e-12)
    
    def test_threaded_pool_path(self):
        """Test a register large enough for the thread pool to split work."""
        from qmesh.sim.cpu import NumpyBackend, ThreadedBackend
        circuit = random_circuit(11, 60, seed=21)
        
        with Simulator(SimulatorConfig(optimize=False), backend=NumpyBackend()) as sim:
            expected = sim.run(circuit).state.amplitudes
        backend = ThreadedBackend(num_threads=4, min_groups_per_task=32)
        try:
            with Simulator(SimulatorConfig(optimize=False), backend=backend) as sim:
                actual = sim.run(circuit).state.amplitudes
        finally:
            backend.close()
        
        np.testing.assert_allclose(actual, expected, atol=1e-12)
    
    @pytest.mark.parametrize("backend", CPU_BACKENDS)
    def test_qft_on_every_backend(self, backend):
        """Test QFT of |0⟩ is the uniform superposition."""
        amps = final_amplitudes(qft(4), backend)
        np.testing.assert_allclose(amps, np.full(16, 0.25), atol=1e-12)
    
    def test_numba_matches_reference(self):
        """Test the Numba backend against the reference backend."""
        pytest.importorskip("numba")
        circuit = random_circuit(6, 60, seed=5)
        expected = final_amplitudes(circuit, "reference")
        actual = final_amplitudes(circuit, "numba", num_threads=2)
        np.testing.assert_allclose(actual, expected, atol=1e-12)


class TestOptimizerEquivalence:
    """Tests that optimization preserves the final state."""
    
    @pytest.mark.parametrize("seed", range(5))
    def test_random_circuits_with_inserted_pairs(self, seed):
        """Test circuits padded with cancelling pairs."""
        rng = np.random.default_rng(seed)
        circuit = random_circuit(4, 40, rng=rng)
        padded = type(circuit)(circuit.num_qubits)
        for op in circuit:
            padded.add(op)
            if op.spec.self_inverse and rng.random() < 0.5:
                padded.add(op)
                padded.add(op)
        
        optimized, report = CircuitOptimizer().optimize_with_report(padded)
        assert report.optimized_gates <= len(circuit)
        np.testing.assert_allclose(
            final_amplitudes(optimized, "numpy"),
            final_amplitudes(padded, "numpy"),
            atol=1e-12,
        )
    
    @pytest.mark.parametrize("seed", range(3))
    def test_fusion_preserves_state(self, seed):
        """Test rotation fusion on random rotation-heavy circuits."""
        rng = np.random.default_rng(100 + seed)
        circuit = random_circuit(3, 10, rng=rng)
        for _ in range(20):
            q = int(rng.integers(0, 3))
            helper = ["rx", "ry", "rz", "phase"][int(rng.integers(0, 4))]
            getattr(circuit, helper)(q, float(rng.uniform(-7, 7)))
            getattr(circuit, helper)(q, float(rng.uniform(-7, 7)))
        
        optimized = CircuitOptimizer(fuse_rotations=True).optimize(circuit)
        assert len(optimized) < len(circuit)
        np.testing.assert_allclose(
            final_amplitudes(optimized, "numpy"),
            final_amplitudes(circuit, "numpy"),
            atol=1e-12,
        )
