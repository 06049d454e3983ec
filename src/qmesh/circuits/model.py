"""
Circuit model: gate operations bound to qubit indices.

A Circuit is a strictly linear sequence of GateOperation values plus a
qubit count. Operations are immutable and validated against the register
width as they are appended, so a Circuit never holds an out-of-range index.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from qmesh.circuits.catalog import GateKind, GateSpec, lookup
from qmesh.errors import (
    DuplicateTargetQubit,
    InvalidQubitCount,
    MalformedCircuit,
    QubitOutOfRange,
)


def check_qubits(qubits: Sequence[int], num_qubits: int) -> None:
    """
    Validate qubit indices against a register width.
    
    Raises:
        QubitOutOfRange: If an index is negative or >= num_qubits
        DuplicateTargetQubit: If an index repeats
    """
    for q in qubits:
        if not 0 <= q < num_qubits:
            raise QubitOutOfRange(
                f"Qubit index {q} out of range [0, {num_qubits})"
            )
    if len(set(qubits)) != len(qubits):
        raise DuplicateTargetQubit(f"Repeated qubit index in {list(qubits)}")


@dataclass(frozen=True)
class GateOperation:
    """
    One gate applied to specific qubits.
    
    `kind` accepts a GateKind or any name the catalog resolves; it is stored
    as a GateKind. Qubit order matters for controlled gates: controls first,
    target last.
    """
    
    kind: GateKind
    qubits: Tuple[int, ...]
    params: Tuple[float, ...] = ()
    
    def __post_init__(self):
        spec = lookup(self.kind)
        qubits = tuple(int(q) for q in self.qubits)
        params = tuple(float(p) for p in self.params)
        
        if len(qubits) != spec.num_qubits:
            raise MalformedCircuit(
                f"Gate {spec.kind.value} acts on {spec.num_qubits} qubit(s), "
                f"got {len(qubits)}"
            )
        if len(params) != spec.num_params:
            raise MalformedCircuit(
                f"Gate {spec.kind.value} takes {spec.num_params} parameter(s), "
                f"got {len(params)}"
            )
        if not all(math.isfinite(p) for p in params):
            raise MalformedCircuit(
                f"Gate {spec.kind.value} parameters must be finite, got {list(params)}"
            )
        if len(set(qubits)) != len(qubits):
            raise DuplicateTargetQubit(
                f"Gate {spec.kind.value} repeats a qubit in {list(qubits)}"
            )
        
        object.__setattr__(self, "kind", spec.kind)
        object.__setattr__(self, "qubits", qubits)
        object.__setattr__(self, "params", params)
    
    @property
    def spec(self) -> GateSpec:
        return lookup(self.kind)
    
    def matrix(self) -> np.ndarray:
        return self.spec.matrix(self.params)
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"gate": self.kind.value, "qubits": list(self.qubits)}
        if self.params:
            data["params"] = list(self.params)
        return data
    
    def __str__(self) -> str:
        args = ", ".join(str(q) for q in self.qubits)
        if self.params:
            args += "; " + ", ".join(f"{p:.6g}" for p in self.params)
        return f"{self.kind.value}({args})"


@dataclass
class Circuit:
    """
    Ordered gate operations on a register of `num_qubits` qubits.
    
    Build with `append` or the fluent helpers:
    
        >>> bell = Circuit(2).h(0).cnot(0, 1)
        >>> len(bell)
        2
    """
    
    num_qubits: int
    operations: List[GateOperation] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    
    def __post_init__(self):
        if isinstance(self.num_qubits, bool) or not isinstance(self.num_qubits, (int, np.integer)):
            raise InvalidQubitCount(
                f"Qubit count must be an integer, got {self.num_qubits!r}"
            )
        self.num_qubits = int(self.num_qubits)
        if self.num_qubits < 1:
            raise InvalidQubitCount(f"Qubit count must be >= 1, got {self.num_qubits}")
        
        operations = list(self.operations)
        self.operations = []
        for op in operations:
            self.add(op)
    
    # ------------------------------------------------------------------
    # Construction
    
    def add(self, op: GateOperation) -> "Circuit":
        """Append an existing operation after checking it fits this register."""
        if not isinstance(op, GateOperation):
            raise TypeError(f"Expected GateOperation, got {type(op).__name__}")
        check_qubits(op.qubits, self.num_qubits)
        self.operations.append(op)
        return self
    
    def append(
        self,
        kind,
        qubits: Sequence[int],
        params: Sequence[float] = (),
    ) -> "Circuit":
        """Append a gate by kind or name."""
        return self.add(GateOperation(kind, tuple(qubits), tuple(params)))
    
    def i(self, q: int) -> "Circuit":
        return self.append(GateKind.IDENTITY, (q,))
    
    def x(self, q: int) -> "Circuit":
        return self.append(GateKind.PAULI_X, (q,))
    
    def y(self, q: int) -> "Circuit":
        return self.append(GateKind.PAULI_Y, (q,))
    
    def z(self, q: int) -> "Circuit":
        return self.append(GateKind.PAULI_Z, (q,))
    
    def h(self, q: int) -> "Circuit":
        return self.append(GateKind.HADAMARD, (q,))
    
    def s(self, q: int) -> "Circuit":
        return self.append(GateKind.S, (q,))
    
    def t(self, q: int) -> "Circuit":
        return self.append(GateKind.T, (q,))
    
    def rx(self, q: int, theta: float) -> "Circuit":
        return self.append(GateKind.ROTATION_X, (q,), (theta,))
    
    def ry(self, q: int, theta: float) -> "Circuit":
        return self.append(GateKind.ROTATION_Y, (q,), (theta,))
    
    def rz(self, q: int, theta: float) -> "Circuit":
        return self.append(GateKind.ROTATION_Z, (q,), (theta,))
    
    def phase(self, q: int, theta: float) -> "Circuit":
        return self.append(GateKind.PHASE_SHIFT, (q,), (theta,))
    
    def cnot(self, control: int, target: int) -> "Circuit":
        return self.append(GateKind.CNOT, (control, target))
    
    def swap(self, q1: int, q2: int) -> "Circuit":
        return self.append(GateKind.SWAP, (q1, q2))
    
    def toffoli(self, control1: int, control2: int, target: int) -> "Circuit":
        return self.append(GateKind.TOFFOLI, (control1, control2, target))
    
    # ------------------------------------------------------------------
    # Inspection
    
    def __len__(self) -> int:
        return len(self.operations)
    
    def __iter__(self) -> Iterator[GateOperation]:
        return iter(self.operations)
    
    def num_gates(self) -> int:
        return len(self.operations)
    
    def count_by_kind(self) -> Dict[str, int]:
        """Number of operations per gate kind name."""
        return dict(Counter(op.kind.value for op in self.operations))
    
    def layers(self) -> List[List[int]]:
        """
        Greedy ASAP layering: each layer lists indices of operations on
        disjoint qubits that could run simultaneously.
        """
        layers: List[List[int]] = []
        next_free = [0] * self.num_qubits
        
        for idx, op in enumerate(self.operations):
            layer = max(next_free[q] for q in op.qubits)
            if layer == len(layers):
                layers.append([])
            layers[layer].append(idx)
            for q in op.qubits:
                next_free[q] = layer + 1
        
        return layers
    
    def depth(self) -> int:
        return len(self.layers())
    
    def validate(self, max_qubits: Optional[int] = None) -> None:
        """
        Re-check every operation against the register width.
        
        Raises:
            InvalidQubitCount: If num_qubits exceeds max_qubits
            QubitOutOfRange, DuplicateTargetQubit: On a bad operation
        """
        if max_qubits is not None and self.num_qubits > max_qubits:
            raise InvalidQubitCount(
                f"Circuit width {self.num_qubits} exceeds the maximum of {max_qubits} qubits"
            )
        for op in self.operations:
            check_qubits(op.qubits, self.num_qubits)
    
    def copy(self) -> "Circuit":
        return Circuit(self.num_qubits, list(self.operations), dict(self.metadata))
    
    # ------------------------------------------------------------------
    # Serialization (JSON circuit file format)
    
    def to_dict(self) -> Dict[str, Any]:
        from qmesh.io.formats import circuit_to_dict
        return circuit_to_dict(self)
    
    def to_json(self) -> str:
        from qmesh.io.formats import dumps_circuit
        return dumps_circuit(self)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Circuit":
        from qmesh.io.formats import parse_circuit
        return parse_circuit(data)
    
    @classmethod
    def from_json(cls, json_str: str) -> "Circuit":
        from qmesh.io.formats import loads_circuit
        return loads_circuit(json_str)
