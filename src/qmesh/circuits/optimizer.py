"""
Circuit optimizer: local rewrites on adjacent gate operations.

Rules, applied in order and repeated until nothing changes:

1. Redundant pair elimination. Two immediately adjacent operations of the
   same self-inverse kind on the same qubits compose to the identity and are
   removed. Removing a pair can make its neighbours adjacent, so cascades
   such as H X X H collapse completely.
2. Rotation fusion (optional, off by default). Adjacent RotationX/Y/Z or
   PhaseShift operations of the same kind on the same qubit are replaced by
   one operation with the summed angle, or dropped when the sum is an exact
   identity. When disabled this rule does nothing.

Only strictly adjacent operations are compared; operations are never
commuted past each other. Every productive pass removes at least one
operation, so the loop is bounded by the input length.
"""

import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Tuple

from qmesh.circuits.catalog import GateKind
from qmesh.circuits.model import Circuit, GateOperation

logger = logging.getLogger(__name__)


@dataclass
class OptimizationReport:
    """What an optimizer run changed."""
    
    original_gates: int
    optimized_gates: int
    removed_pairs: int = 0
    fused_rotations: int = 0
    passes: int = 0
    
    @property
    def reduction_percent(self) -> float:
        if self.original_gates == 0:
            return 0.0
        removed = self.original_gates - self.optimized_gates
        return 100.0 * removed / self.original_gates
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reduction_percent"] = self.reduction_percent
        return data


def _same_operands(a: GateOperation, b: GateOperation) -> bool:
    if a.kind == GateKind.SWAP:
        return set(a.qubits) == set(b.qubits)
    if a.kind == GateKind.TOFFOLI:
        return a.qubits[2] == b.qubits[2] and set(a.qubits[:2]) == set(b.qubits[:2])
    return a.qubits == b.qubits


def cancels(a: GateOperation, b: GateOperation) -> bool:
    """True when b immediately after a composes to the identity."""
    return a.kind == b.kind and a.spec.self_inverse and _same_operands(a, b)


def fusable(a: GateOperation, b: GateOperation) -> bool:
    """True when a and b are same-kind rotations on the same qubit."""
    return a.kind == b.kind and a.spec.fusable and a.qubits == b.qubits


class CircuitOptimizer:
    """
    Rewrites a Circuit into an equivalent one with fewer operations.
    
    The input circuit is never modified; `optimize` returns a new Circuit
    with the same qubit count. The report of the most recent run is kept
    on `last_report`.
    """
    
    def __init__(self, fuse_rotations: bool = False, angle_atol: float = 1e-12):
        """
        Initialize optimizer.
        
        Args:
            fuse_rotations: Enable the rotation fusion rule
            angle_atol: Tolerance for treating a fused angle as the identity
        """
        self.fuse_rotations = fuse_rotations
        self.angle_atol = angle_atol
        self.last_report: OptimizationReport = OptimizationReport(0, 0)
    
    def optimize(self, circuit: Circuit) -> Circuit:
        """Return the optimized copy of `circuit`."""
        optimized, _ = self.optimize_with_report(circuit)
        return optimized
    
    def optimize_with_report(self, circuit: Circuit) -> Tuple[Circuit, OptimizationReport]:
        """Return the optimized copy of `circuit` and what changed."""
        ops = list(circuit.operations)
        report = OptimizationReport(original_gates=len(ops), optimized_gates=len(ops))
        
        for _ in range(max(1, len(ops))):
            report.passes += 1
            
            ops, removed = self._eliminate_pairs(ops)
            report.removed_pairs += removed
            
            fused = 0
            if self.fuse_rotations:
                ops, fused = self._fuse_rotations(ops)
                report.fused_rotations += fused
            
            if removed == 0 and fused == 0:
                break
        
        report.optimized_gates = len(ops)
        self.last_report = report
        
        logger.debug(
            f"Optimized circuit: {report.original_gates} -> {report.optimized_gates} gates "
            f"({report.removed_pairs} pairs removed, {report.fused_rotations} fusions, "
            f"{report.passes} passes)"
        )
        
        optimized = Circuit(
            num_qubits=circuit.num_qubits,
            operations=ops,
            metadata=dict(circuit.metadata),
        )
        return optimized, report
    
    @staticmethod
    def _eliminate_pairs(ops: List[GateOperation]) -> Tuple[List[GateOperation], int]:
        kept: List[GateOperation] = []
        removed = 0
        for op in ops:
            if kept and cancels(kept[-1], op):
                kept.pop()
                removed += 1
            else:
                kept.append(op)
        return kept, removed
    
    def _fuse_rotations(self, ops: List[GateOperation]) -> Tuple[List[GateOperation], int]:
        kept: List[GateOperation] = []
        fused = 0
        for op in ops:
            if kept and fusable(kept[-1], op):
                previous = kept.pop()
                fused += 1
                angle = previous.params[0] + op.params[0]
                period = op.spec.rotation_period
                if abs(math.remainder(angle, period)) > self.angle_atol:
                    kept.append(GateOperation(op.kind, op.qubits, (angle,)))
            else:
                kept.append(op)
        return kept, fused


def optimize_circuit(circuit: Circuit, fuse_rotations: bool = False) -> Circuit:
    """Convenience wrapper around CircuitOptimizer.optimize."""
    return CircuitOptimizer(fuse_rotations=fuse_rotations).optimize(circuit)
