"""
Unit tests for compute backends.

Tests the amplitude group partition and checks every backend against a
dense Kronecker-product construction of the full operator.
"""

import pytest
import numpy as np

from qmesh.circuits.catalog import GateKind, gate_matrix
from qmesh.sim.backend import (
    ComputeBackend,
    backend_class,
    create_backend,
    group_bases,
    group_offsets,
)
from qmesh.sim.cpu import NumpyBackend, ReferenceBackend, ThreadedBackend


def full_operator(matrix, targets, n):
    """
    Dense 2^n x 2^n operator for `matrix` on `targets`, built column by
    column from basis states (little-endian qubit order).
    """
    k = len(targets)
    dim = 1 << n
    op = np.zeros((dim, dim), dtype=np.complex128)
    for col in range(dim):
        sub_in = 0
        for i, q in enumerate(targets):
            sub_in |= ((col >> q) & 1) << (k - 1 - i)
        rest = col
        for q in targets:
            rest &= ~(1 << q)
        for sub_out in range(1 << k):
            row = rest
            for i, q in enumerate(targets):
                row |= ((sub_out >> (k - 1 - i)) & 1) << q
            op[row, col] += matrix[sub_out, sub_in]
    return op


def random_state(n, seed=0):
    rng = np.random.default_rng(seed)
    psi = rng.normal(size=1 << n) + 1j * rng.normal(size=1 << n)
    return psi / np.linalg.norm(psi)


def random_unitary(k, seed=0):
    rng = np.random.default_rng(seed)
    a = rng.normal(size=(1 << k, 1 << k)) + 1j * rng.normal(size=(1 << k, 1 << k))
    q, r = np.linalg.qr(a)
    return q * (np.diag(r) / np.abs(np.diag(r)))


BACKENDS = [
    ReferenceBackend,
    NumpyBackend,
    lambda: ThreadedBackend(num_threads=2, min_groups_per_task=1),
    lambda: ThreadedBackend(num_threads=4),
]


class TestGroupPartition:
    """Tests for group bases and offsets."""
    
    def test_offsets_follow_matrix_bit_order(self):
        """Test first target is the most significant matrix bit."""
        np.testing.assert_array_equal(group_offsets([0, 2]), [0, 4, 1, 5])
        np.testing.assert_array_equal(group_offsets([2, 0]), [0, 1, 4, 5])
    
    def test_bases_have_target_bits_clear(self):
        """Test bases enumerate all indices with zero target bits."""
        bases = group_bases(4, [1, 3])
        np.testing.assert_array_equal(bases, [0, 1, 4, 5])
    
    @pytest.mark.parametrize("targets", [[0], [3], [1, 2], [4, 0, 2]])
    def test_groups_partition_all_indices(self, targets):
        """Test groups are disjoint and cover every index exactly once."""
        n = 5
        idx = (group_bases(n, targets)[:, None] + group_offsets(targets)[None, :]).ravel()
        assert len(idx) == 1 << n
        np.testing.assert_array_equal(np.sort(idx), np.arange(1 << n))


class TestBackendCorrectness:
    """Tests that each backend matches the dense operator."""
    
    @pytest.mark.parametrize("make_backend", BACKENDS)
    @pytest.mark.parametrize("targets", [[0], [2], [0, 1], [1, 0], [3, 1], [0, 2, 3], [3, 0, 1]])
    def test_random_unitary(self, make_backend, targets):
        """Test random k-qubit unitaries on a random 4-qubit state."""
        n = 4
        psi = random_state(n, seed=len(targets))
        u = random_unitary(len(targets), seed=sum(targets))
        expected = full_operator(u, targets, n) @ psi
        
        backend = make_backend()
        try:
            backend.apply_matrix(psi, u, targets)
        finally:
            backend.close()
        
        np.testing.assert_allclose(psi, expected, atol=1e-12)
    
    @pytest.mark.parametrize("make_backend", BACKENDS)
    def test_cnot_on_basis_states(self, make_backend):
        """Test CNOT(0, 1) maps |01⟩ (qubit 0 set) to |11⟩."""
        psi = np.zeros(4, dtype=np.complex128)
        psi[0b01] = 1
        backend = make_backend()
        backend.apply_matrix(psi, gate_matrix(GateKind.CNOT), [0, 1])
        backend.close()
        assert psi[0b11] == pytest.approx(1)
    
    @pytest.mark.parametrize("make_backend", BACKENDS)
    def test_cnot_control_off(self, make_backend):
        """Test CNOT leaves the target alone when the control is |0⟩."""
        psi = np.zeros(4, dtype=np.complex128)
        psi[0b10] = 1  # qubit 1 set, control qubit 0 clear
        backend = make_backend()
        backend.apply_matrix(psi, gate_matrix(GateKind.CNOT), [0, 1])
        backend.close()
        np.testing.assert_array_equal(psi, [0, 0, 1, 0])
    
    def test_threaded_matches_numpy_on_larger_state(self):
        """Test the pooled path on a state large enough to split."""
        n = 12
        psi_a = random_state(n, seed=3)
        psi_b = psi_a.copy()
        u = random_unitary(2, seed=5)
        
        NumpyBackend().apply_matrix(psi_a, u, [7, 2])
        with ThreadedBackend(num_threads=3, min_groups_per_task=16) as backend:
            backend.apply_matrix(psi_b, u, [7, 2])
            assert backend._executor is not None
        
        np.testing.assert_allclose(psi_b, psi_a, atol=1e-12)


class TestCreateBackend:
    """Tests for backend factory."""
    
    @pytest.mark.parametrize("name,cls", [
        ("reference", ReferenceBackend),
        ("numpy", NumpyBackend),
        ("threaded", ThreadedBackend),
        ("NumPy", NumpyBackend),
    ])
    def test_known_names(self, name, cls):
        """Test names map to backend classes."""
        backend = create_backend(name)
        assert isinstance(backend, cls)
        assert isinstance(backend, ComputeBackend)
        backend.close()
    
    def test_thread_count(self):
        """Test num_threads is passed to the threaded backend."""
        backend = create_backend("threaded", num_threads=3)
        assert backend.num_threads == 3
    
    def test_unknown_name(self):
        """Test unknown names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown backend"):
            create_backend("gpu")
    
    @pytest.mark.parametrize("name,cls", [
        ("reference", ReferenceBackend),
        ("numpy", NumpyBackend),
        ("threaded", ThreadedBackend),
    ])
    def test_backend_class_does_not_instantiate(self, name, cls):
        """Test names resolve to classes carrying a memory overhead."""
        resolved = backend_class(name)
        assert resolved is cls
        assert resolved.memory_overhead >= 1.0


class TestNumbaBackend:
    """Tests for the Numba backend (skipped when numba is absent)."""
    
    def test_matches_dense_operator(self):
        """Test the JIT kernel against the dense operator."""
        pytest.importorskip("numba")
        n = 5
        targets = [4, 1, 2]
        psi = random_state(n, seed=11)
        u = random_unitary(3, seed=12)
        expected = full_operator(u, targets, n) @ psi
        
        backend = create_backend("numba", num_threads=2)
        backend.apply_matrix(psi, u, targets)
        
        np.testing.assert_allclose(psi, expected, atol=1e-12)
    
    def test_thread_count_is_scoped_to_calls(self):
        """Test backends with different thread counts leave Numba's setting alone."""
        numba = pytest.importorskip("numba")
        before = numba.get_num_threads()
        
        one = create_backend("numba", num_threads=1)
        many = create_backend("numba", num_threads=numba.config.NUMBA_NUM_THREADS)
        assert numba.get_num_threads() == before
        assert one.num_threads == 1
        
        psi = random_state(4, seed=3)
        expected = psi.copy()
        ReferenceBackend().apply_matrix(expected, gate_matrix(GateKind.HADAMARD), [2])
        one.apply_matrix(psi, gate_matrix(GateKind.HADAMARD), [2])
        
        assert numba.get_num_threads() == before
        assert many.num_threads == numba.config.NUMBA_NUM_THREADS
        np.testing.assert_allclose(psi, expected, atol=1e-12)


class TestGateApplicationEngine:
    """Tests that the engine drives its own backend."""
    
    def test_engine_backend_used_for_every_operation(self):
        from qmesh.circuits.model import Circuit
        from qmesh.sim.engine import GateApplicationEngine
        from qmesh.sim.statevector import StateVector
        
        calls = []
        
        class RecordingBackend(ReferenceBackend):
            def apply_matrix(self, amplitudes, matrix, targets):
                calls.append(tuple(targets))
                super().apply_matrix(amplitudes, matrix, targets)
        
        state = StateVector(2, backend=NumpyBackend())
        engine = GateApplicationEngine(RecordingBackend())
        for op in Circuit(2).h(0).cnot(0, 1).operations:
            engine.apply(op, state)
        
        assert calls == [(0,), (0, 1)]
        np.testing.assert_allclose(state.probabilities(), [0.5, 0, 0, 0.5], atol=1e-12)
