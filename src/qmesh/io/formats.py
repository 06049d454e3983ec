"""
Data formats for circuit and result serialization.

Circuit JSON schema:

    {
      "num_qubits": 3,
      "gates": [
        {"gate": "Hadamard", "qubits": [0]},
        {"gate": "CNOT", "qubits": [0, 1]},
        {"gate": "RotationZ", "qubits": [2], "params": [0.5]}
      ],
      "metadata": {"name": "example"}
    }

`params` and `metadata` are optional. Gate names resolve through the gate
catalog, so aliases such as "h", "cx" or "rz" are accepted; circuits are
always written back with canonical kind names.

Outcome labels are little-endian: qubit 0 is the rightmost character.
Exact distributions hide entries at or below PROBABILITY_CUTOFF, the
rounding floor of a double-precision probability; pass cutoff=0.0 to see
every nonzero entry.
"""

import json
import math
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np

from qmesh.circuits.catalog import lookup
from qmesh.circuits.model import Circuit, GateOperation
from qmesh.errors import (
    DuplicateTargetQubit,
    InvalidQubitCount,
    MalformedCircuit,
    QubitOutOfRange,
    UnsupportedGate,
)

PROBABILITY_CUTOFF = 10 * float(np.finfo(np.float64).eps)


def bitstring_to_int(bitstring: str) -> int:
    """Convert binary string to integer."""
    return int(bitstring, 2)


def int_to_bitstring(value: int, width: int) -> str:
    """Convert integer to binary string with fixed width."""
    return format(value, f'0{width}b')


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_finite(value: numbers.Real) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _parse_gate(entry: Any, position: int, num_qubits: int) -> GateOperation:
    where = f"gates[{position}]"
    
    if not isinstance(entry, Mapping):
        raise MalformedCircuit(f"{where}: expected an object, got {type(entry).__name__}")
    
    name = entry.get("gate")
    if not isinstance(name, str):
        raise MalformedCircuit(f"{where}: missing or non-string 'gate' name")
    try:
        spec = lookup(name)
    except UnsupportedGate as e:
        raise MalformedCircuit(f"{where}: {e}") from e
    
    qubits = entry.get("qubits")
    if not isinstance(qubits, list):
        raise MalformedCircuit(f"{where}: 'qubits' must be a list")
    if len(qubits) != spec.num_qubits:
        raise MalformedCircuit(
            f"{where}: {spec.kind.value} acts on {spec.num_qubits} qubit(s), "
            f"got {len(qubits)}"
        )
    for q in qubits:
        if not _is_int(q):
            raise MalformedCircuit(f"{where}: qubit index {q!r} is not an integer")
    
    params = entry.get("params", [])
    if not isinstance(params, list):
        raise MalformedCircuit(f"{where}: 'params' must be a list")
    for p in params:
        if not _is_number(p):
            raise MalformedCircuit(f"{where}: parameter {p!r} is not a number")
        if not _is_finite(p):
            raise MalformedCircuit(f"{where}: parameter {p!r} is not finite")
    if len(params) != spec.num_params:
        raise MalformedCircuit(
            f"{where}: {spec.kind.value} takes {spec.num_params} parameter(s), "
            f"got {len(params)}"
        )
    
    try:
        op = GateOperation(spec.kind, tuple(qubits), tuple(params))
        for q in op.qubits:
            if not 0 <= q < num_qubits:
                raise QubitOutOfRange(
                    f"Qubit index {q} out of range [0, {num_qubits})"
                )
    except (QubitOutOfRange, DuplicateTargetQubit) as e:
        raise MalformedCircuit(f"{where}: {e}") from e
    
    return op


def parse_circuit(data: Any) -> Circuit:
    """
    Build a Circuit from a decoded JSON payload.
    
    Only the description is validated; no state is allocated.
    
    Args:
        data: Decoded JSON object
    
    Returns:
        Validated circuit
    
    Raises:
        MalformedCircuit: On any structural or semantic problem
    """
    if not isinstance(data, Mapping):
        raise MalformedCircuit(
            f"Circuit must be a JSON object, got {type(data).__name__}"
        )
    
    if "num_qubits" not in data:
        raise MalformedCircuit("Missing 'num_qubits'")
    num_qubits = data["num_qubits"]
    if not _is_int(num_qubits):
        raise MalformedCircuit(f"'num_qubits' must be an integer, got {num_qubits!r}")
    if num_qubits < 1:
        raise MalformedCircuit(f"'num_qubits' must be >= 1, got {num_qubits}")
    
    gates = data.get("gates", [])
    if not isinstance(gates, list):
        raise MalformedCircuit("'gates' must be a list")
    
    metadata = data.get("metadata", {})
    if not isinstance(metadata, Mapping):
        raise MalformedCircuit("'metadata' must be an object")
    
    operations = [_parse_gate(entry, i, num_qubits) for i, entry in enumerate(gates)]
    
    try:
        return Circuit(int(num_qubits), operations, dict(metadata))
    except InvalidQubitCount as e:
        raise MalformedCircuit(str(e)) from e


def loads_circuit(text: str) -> Circuit:
    """Parse a circuit from a JSON string."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedCircuit(f"Invalid JSON: {e}") from e
    return parse_circuit(data)


def load_circuit(path: Union[str, Path]) -> Circuit:
    """
    Load a circuit from a JSON file.
    
    Raises:
        OSError: If the file cannot be read
        MalformedCircuit: If its content is not a valid circuit
    """
    with open(path, 'r') as f:
        text = f.read()
    return loads_circuit(text)


def circuit_to_dict(circuit: Circuit) -> Dict[str, Any]:
    """Convert to dictionary for JSON serialization."""
    data: Dict[str, Any] = {
        "num_qubits": circuit.num_qubits,
        "gates": [op.to_dict() for op in circuit.operations],
    }
    if circuit.metadata:
        data["metadata"] = dict(circuit.metadata)
    return data


def dumps_circuit(circuit: Circuit, indent: Optional[int] = 2) -> str:
    """Serialize to JSON string."""
    return json.dumps(circuit_to_dict(circuit), indent=indent)


def save_circuit(circuit: Circuit, path: Union[str, Path]) -> Path:
    """Write circuit JSON to a file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(dumps_circuit(circuit))
        f.write("\n")
    return path


@dataclass
class MeasurementOutcome:
    """
    Result of measuring a simulated register.
    
    Exact outcomes carry the full Born-rule probability vector; sampled
    outcomes additionally carry counts and the shot count. Labels are
    little-endian bitstrings.
    """
    
    num_qubits: int
    probabilities: np.ndarray
    shots: Optional[int] = None
    counts: Optional[Dict[str, int]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def is_sampled(self) -> bool:
        return self.counts is not None
    
    def distribution(self, cutoff: float = PROBABILITY_CUTOFF) -> Dict[str, float]:
        """Exact probabilities above cutoff, keyed by label."""
        nonzero = np.flatnonzero(self.probabilities > cutoff)
        return {
            int_to_bitstring(int(idx), self.num_qubits): float(self.probabilities[idx])
            for idx in nonzero
        }
    
    def frequencies(self) -> Dict[str, float]:
        """Observed frequencies (counts / shots); empty for exact outcomes."""
        if not self.counts or not self.shots:
            return {}
        return {label: count / self.shots for label, count in self.counts.items()}
    
    def most_likely(self, top: int = 10) -> List[tuple]:
        """Top entries as (label, probability) sorted by probability then label."""
        source = self.frequencies() if self.is_sampled else self.distribution()
        return sorted(source.items(), key=lambda kv: (-kv[1], kv[0]))[:top]
    
    def to_dict(self, cutoff: float = PROBABILITY_CUTOFF) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "num_qubits": self.num_qubits,
            "probabilities": self.distribution(cutoff),
        }
        if self.is_sampled:
            data["shots"] = self.shots
            data["counts"] = dict(sorted(self.counts.items()))
            data["frequencies"] = dict(sorted(self.frequencies().items()))
        if self.metadata:
            data["metadata"] = self.metadata
        return data
    
    def to_json(self, cutoff: float = PROBABILITY_CUTOFF) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(cutoff), indent=2)
