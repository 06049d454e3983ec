"""
Unit tests for the gate catalog.

Tests matrix conventions, unitarity of every gate, and name lookup.
"""

import pytest
import numpy as np

from qmesh.circuits.catalog import (
    CATALOG,
    GateKind,
    gate_matrix,
    is_unitary,
    lookup,
    validate_catalog,
)
from qmesh.errors import MalformedCircuit, NumericalDrift, UnsupportedGate


class TestCatalogContents:
    """Tests for catalog entries."""
    
    def test_every_kind_has_an_entry(self):
        """Test that all gate kinds are in the catalog."""
        assert set(CATALOG) == set(GateKind)
    
    def test_arity_and_params(self):
        """Test qubit and parameter counts."""
        assert CATALOG[GateKind.HADAMARD].num_qubits == 1
        assert CATALOG[GateKind.ROTATION_Z].num_params == 1
        assert CATALOG[GateKind.CNOT].num_qubits == 2
        assert CATALOG[GateKind.SWAP].num_qubits == 2
        assert CATALOG[GateKind.TOFFOLI].num_qubits == 3
        assert CATALOG[GateKind.TOFFOLI].num_params == 0
    
    def test_self_inverse_flags(self):
        """Test that exactly the involutions are flagged self-inverse."""
        flagged = {kind for kind, spec in CATALOG.items() if spec.self_inverse}
        assert flagged == {
            GateKind.PAULI_X, GateKind.PAULI_Y, GateKind.PAULI_Z, GateKind.HADAMARD,
            GateKind.CNOT, GateKind.SWAP, GateKind.TOFFOLI,
        }
        for kind in flagged:
            m = gate_matrix(kind)
            np.testing.assert_allclose(m @ m, np.eye(m.shape[0]), atol=1e-15)
    
    def test_fixed_matrices_are_read_only(self):
        """Test that shared gate matrices cannot be mutated."""
        h = gate_matrix(GateKind.HADAMARD)
        with pytest.raises(ValueError):
            h[0, 0] = 0


class TestMatrixConventions:
    """Tests for matrix layouts."""
    
    def test_cnot_textbook_form(self):
        """Test CNOT(control, target) with control as the high bit."""
        expected = np.array([
            [1, 0, 0, 0],
            [0, 1, 0, 0],
            [0, 0, 0, 1],
            [0, 0, 1, 0],
        ])
        np.testing.assert_array_equal(gate_matrix("CNOT"), expected)
    
    def test_toffoli_swaps_last_two_rows(self):
        """Test Toffoli flips the target only when both controls are set."""
        m = gate_matrix(GateKind.TOFFOLI)
        expected = np.eye(8)
        expected[[6, 7]] = expected[[7, 6]]
        np.testing.assert_array_equal(m, expected)
    
    def test_rotations_match_exponentials(self):
        """Test RX/RY/RZ equal exp(-iθσ/2) = cos(θ/2)I - i sin(θ/2)σ."""
        theta = 0.7
        c, s = np.cos(theta / 2), np.sin(theta / 2)
        paulis = {
            GateKind.ROTATION_X: np.array([[0, 1], [1, 0]]),
            GateKind.ROTATION_Y: np.array([[0, -1j], [1j, 0]]),
            GateKind.ROTATION_Z: np.array([[1, 0], [0, -1]]),
        }
        for kind, sigma in paulis.items():
            expected = c * np.eye(2) - 1j * s * sigma
            np.testing.assert_allclose(gate_matrix(kind, (theta,)), expected, atol=1e-15)
    
    def test_phase_shift(self):
        """Test PhaseShift(θ) = diag(1, e^{iθ})."""
        m = gate_matrix(GateKind.PHASE_SHIFT, (np.pi / 2,))
        np.testing.assert_allclose(m, np.diag([1, 1j]), atol=1e-15)
    
    def test_s_and_t(self):
        """Test S = T² and S² = Z."""
        s = gate_matrix("S")
        t = gate_matrix("T")
        np.testing.assert_allclose(t @ t, s, atol=1e-15)
        np.testing.assert_allclose(s @ s, gate_matrix("PauliZ"), atol=1e-15)
    
    def test_rotation_period(self):
        """Test rotations are -I at 2π and I at 4π."""
        np.testing.assert_allclose(gate_matrix("rx", (2 * np.pi,)), -np.eye(2), atol=1e-12)
        np.testing.assert_allclose(gate_matrix("rx", (4 * np.pi,)), np.eye(2), atol=1e-12)
        np.testing.assert_allclose(gate_matrix("p", (2 * np.pi,)), np.eye(2), atol=1e-12)


class TestUnitarity:
    """Tests for unitarity checks."""
    
    def test_validate_catalog_passes(self):
        """Test every catalog gate is unitary."""
        validate_catalog()
    
    @pytest.mark.parametrize("kind", list(GateKind))
    def test_each_gate_unitary(self, kind):
        """Test M†M = I for each kind."""
        spec = CATALOG[kind]
        params = (1.234,) * spec.num_params
        assert is_unitary(spec.matrix(params))
    
    def test_is_unitary_rejects_non_unitary(self):
        """Test non-unitary and non-square matrices are rejected."""
        assert not is_unitary(np.array([[1, 1], [0, 1]]))
        assert not is_unitary(np.ones((2, 3)))
    
    def test_validate_catalog_reports_drift(self, monkeypatch):
        """Test a broken entry surfaces as NumericalDrift."""
        import dataclasses
        broken = dataclasses.replace(
            CATALOG[GateKind.HADAMARD], builder=lambda: np.array([[1, 1], [1, -1]])
        )
        monkeypatch.setitem(CATALOG, GateKind.HADAMARD, broken)
        with pytest.raises(NumericalDrift, match="Hadamard"):
            validate_catalog()


class TestLookup:
    """Tests for name resolution."""
    
    @pytest.mark.parametrize("name,kind", [
        ("Hadamard", GateKind.HADAMARD),
        ("h", GateKind.HADAMARD),
        ("H", GateKind.HADAMARD),
        ("cx", GateKind.CNOT),
        ("CNOT", GateKind.CNOT),
        ("pauli_x", GateKind.PAULI_X),
        ("rotation-z", GateKind.ROTATION_Z),
        ("rz", GateKind.ROTATION_Z),
        ("ccx", GateKind.TOFFOLI),
        ("swap", GateKind.SWAP),
        ("u1", GateKind.PHASE_SHIFT),
    ])
    def test_aliases(self, name, kind):
        """Test canonical names and aliases resolve case-insensitively."""
        assert lookup(name).kind == kind
    
    def test_lookup_gate_kind(self):
        """Test GateKind members resolve directly."""
        assert lookup(GateKind.T).label == "T"
    
    def test_unknown_gate(self):
        """Test unknown names raise UnsupportedGate."""
        with pytest.raises(UnsupportedGate, match="Unknown gate"):
            lookup("fredkin")
    
    def test_non_string_name(self):
        """Test non-string names raise UnsupportedGate."""
        with pytest.raises(UnsupportedGate):
            lookup(3)
    
    def test_unsupported_gate_is_value_error(self):
        """Test validation errors are also ValueErrors."""
        with pytest.raises(ValueError):
            lookup("nope")
    
    def test_wrong_param_count(self):
        """Test parameter count mismatch raises MalformedCircuit."""
        with pytest.raises(MalformedCircuit):
            gate_matrix(GateKind.ROTATION_X)
        with pytest.raises(MalformedCircuit):
            gate_matrix(GateKind.HADAMARD, (0.5,))
