"""
Unit tests for the circuit optimizer.

Tests redundant pair elimination, rotation fusion, fixed-point behavior and
the optimization report.
"""

import pytest
import numpy as np

from qmesh.circuits import Circuit, CircuitOptimizer, GateKind, optimize_circuit
from qmesh.circuits.optimizer import cancels, fusable
from qmesh.circuits.model import GateOperation


def kinds(circuit):
    return [op.kind for op in circuit]


class TestPairElimination:
    """Tests for removing adjacent self-inverse pairs."""
    
    @pytest.mark.parametrize("helper", ["h", "x", "y", "z"])
    def test_single_qubit_pairs(self, helper):
        """Test H-H, X-X, Y-Y, Z-Z on the same qubit cancel."""
        circuit = Circuit(1)
        getattr(circuit, helper)(0)
        getattr(circuit, helper)(0)
        assert len(optimize_circuit(circuit)) == 0
    
    def test_different_qubits_kept(self):
        """Test pairs on different qubits are not removed."""
        circuit = Circuit(2).h(0).h(1)
        assert len(optimize_circuit(circuit)) == 2
    
    def test_cnot_requires_identical_operands(self):
        """Test CNOT pairs cancel only with the same control and target."""
        assert len(optimize_circuit(Circuit(2).cnot(0, 1).cnot(0, 1))) == 0
        assert len(optimize_circuit(Circuit(2).cnot(0, 1).cnot(1, 0))) == 2
    
    def test_swap_either_order(self):
        """Test Swap pairs cancel with operands in either order."""
        assert len(optimize_circuit(Circuit(2).swap(0, 1).swap(1, 0))) == 0
    
    def test_toffoli_control_order(self):
        """Test Toffoli pairs cancel with the same target and control set."""
        assert len(optimize_circuit(Circuit(3).toffoli(0, 1, 2).toffoli(1, 0, 2))) == 0
        assert len(optimize_circuit(Circuit(3).toffoli(0, 1, 2).toffoli(0, 2, 1))) == 2
    
    def test_non_self_inverse_kept(self):
        """Test S-S and T-T are not removed."""
        assert len(optimize_circuit(Circuit(1).s(0).s(0))) == 2
        assert len(optimize_circuit(Circuit(1).t(0).t(0))) == 2
    
    def test_only_adjacent_pairs(self):
        """Test an intervening gate on another qubit blocks cancellation."""
        circuit = Circuit(2).h(0).x(1).h(0)
        assert len(optimize_circuit(circuit)) == 3
    
    def test_cascade(self):
        """Test nested pairs collapse completely."""
        circuit = Circuit(2).h(0).x(0).cnot(0, 1).cnot(0, 1).x(0).h(0)
        assert len(optimize_circuit(circuit)) == 0
    
    def test_odd_run_keeps_one(self):
        """Test three identical gates leave one."""
        circuit = Circuit(1).h(0).h(0).h(0)
        assert kinds(optimize_circuit(circuit)) == [GateKind.HADAMARD]
    
    def test_predicates(self):
        """Test cancels/fusable helpers."""
        h0 = GateOperation("h", (0,))
        assert cancels(h0, GateOperation("h", (0,)))
        assert not cancels(h0, GateOperation("x", (0,)))
        assert fusable(GateOperation("rz", (0,), (0.1,)), GateOperation("rz", (0,), (0.2,)))
        assert not fusable(GateOperation("rz", (0,), (0.1,)), GateOperation("rx", (0,), (0.2,)))


class TestRotationFusion:
    """Tests for the optional rotation fusion rule."""
    
    def test_disabled_by_default(self):
        """Test adjacent rotations are untouched without fusion."""
        circuit = Circuit(1).rz(0, 0.1).rz(0, 0.2)
        assert len(CircuitOptimizer().optimize(circuit)) == 2
    
    def test_fuses_angles(self):
        """Test same-kind rotations on one qubit merge by summing angles."""
        circuit = Circuit(1).rz(0, 0.1).rz(0, 0.2).rz(0, 0.3)
        optimized = CircuitOptimizer(fuse_rotations=True).optimize(circuit)
        assert len(optimized) == 1
        assert optimized.operations[0].kind == GateKind.ROTATION_Z
        assert optimized.operations[0].params[0] == pytest.approx(0.6)
    
    def test_identity_rotation_dropped(self):
        """Test a fused rotation at a multiple of 4π disappears."""
        circuit = Circuit(1).rx(0, 3 * np.pi).rx(0, np.pi)
        assert len(CircuitOptimizer(fuse_rotations=True).optimize(circuit)) == 0
    
    def test_two_pi_rotation_kept(self):
        """Test RX(2π) = -I is kept since it is not the identity."""
        circuit = Circuit(1).rx(0, np.pi).rx(0, np.pi)
        assert len(CircuitOptimizer(fuse_rotations=True).optimize(circuit)) == 1
    
    def test_phase_period_two_pi(self):
        """Test PhaseShift fuses to nothing at 2π."""
        circuit = Circuit(1).phase(0, np.pi).phase(0, np.pi)
        assert len(CircuitOptimizer(fuse_rotations=True).optimize(circuit)) == 0
    
    def test_fusion_enables_pair_elimination(self):
        """Test removing a fused identity makes a pair adjacent."""
        circuit = Circuit(1).h(0).rz(0, np.pi).rz(0, 3 * np.pi).h(0)
        assert len(CircuitOptimizer(fuse_rotations=True).optimize(circuit)) == 0
        assert len(CircuitOptimizer().optimize(circuit)) == 4


class TestOptimizerContract:
    """Tests for optimizer output and report."""
    
    def test_input_not_modified(self):
        """Test the original circuit is left alone."""
        circuit = Circuit(1, metadata={"name": "hh"}).h(0).h(0)
        optimized = optimize_circuit(circuit)
        assert len(circuit) == 2
        assert optimized.num_qubits == 1
        assert optimized.metadata == {"name": "hh"}
        assert optimized.metadata is not circuit.metadata
    
    def test_empty_circuit(self):
        """Test an empty circuit optimizes to an empty circuit."""
        optimizer = CircuitOptimizer()
        optimized, report = optimizer.optimize_with_report(Circuit(3))
        assert len(optimized) == 0
        assert optimized.num_qubits == 3
        assert report.reduction_percent == 0.0
    
    def test_report(self):
        """Test report counts."""
        circuit = Circuit(2).h(0).h(0).x(1).cnot(0, 1)
        optimizer = CircuitOptimizer()
        optimized, report = optimizer.optimize_with_report(circuit)
        assert report.original_gates == 4
        assert report.optimized_gates == 2
        assert report.removed_pairs == 1
        assert report.reduction_percent == pytest.approx(50.0)
        assert optimizer.last_report is report
        data = report.to_dict()
        assert data["reduction_percent"] == pytest.approx(50.0)
        assert data["passes"] == report.passes
    
    def test_passes_bounded(self):
        """Test the fixed-point loop never exceeds the input length."""
        circuit = Circuit(1)
        for _ in range(10):
            circuit.h(0)
        _, report = CircuitOptimizer().optimize_with_report(circuit)
        assert report.passes <= 10
        assert report.optimized_gates == 0
