"""
Gate catalog: the unitary matrix and arity of every supported gate kind.

Gates are identified by a GateKind tag and looked up here; there are no
per-gate classes. Matrix rows and columns are indexed with the first listed
qubit as the most significant bit, so CNOT(control, target) and
Toffoli(c1, c2, target) take their textbook forms.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from qmesh.errors import MalformedCircuit, NumericalDrift, UnsupportedGate


class GateKind(str, Enum):
    """Catalog gate kinds; the value is the canonical JSON name."""
    
    IDENTITY = "Identity"
    PAULI_X = "PauliX"
    PAULI_Y = "PauliY"
    PAULI_Z = "PauliZ"
    HADAMARD = "Hadamard"
    S = "S"
    T = "T"
    ROTATION_X = "RotationX"
    ROTATION_Y = "RotationY"
    ROTATION_Z = "RotationZ"
    PHASE_SHIFT = "PhaseShift"
    CNOT = "CNOT"
    SWAP = "Swap"
    TOFFOLI = "Toffoli"
    
    def __str__(self) -> str:
        return self.value


def _frozen(matrix: np.ndarray) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=np.complex128)
    matrix.setflags(write=False)
    return matrix


_SQRT_HALF = np.sqrt(0.5)

_I = _frozen([[1, 0], [0, 1]])
_X = _frozen([[0, 1], [1, 0]])
_Y = _frozen([[0, -1j], [1j, 0]])
_Z = _frozen([[1, 0], [0, -1]])
_H = _frozen(np.array([[1, 1], [1, -1]]) * _SQRT_HALF)
_S = _frozen([[1, 0], [0, 1j]])
_T = _frozen([[1, 0], [0, np.exp(1j * np.pi / 4)]])

# |c t>: swap |10> <-> |11>
_CNOT = np.eye(4, dtype=np.complex128)
_CNOT[[2, 3]] = _CNOT[[3, 2]]
_CNOT = _frozen(_CNOT)

_SWAP = np.eye(4, dtype=np.complex128)
_SWAP[[1, 2]] = _SWAP[[2, 1]]
_SWAP = _frozen(_SWAP)

# |c1 c2 t>: swap |110> <-> |111>
_TOFFOLI = np.eye(8, dtype=np.complex128)
_TOFFOLI[[6, 7]] = _TOFFOLI[[7, 6]]
_TOFFOLI = _frozen(_TOFFOLI)


def rx_matrix(theta: float) -> np.ndarray:
    """RX(θ) = exp(-iθX/2)."""
    c = np.cos(theta / 2)
    s = np.sin(theta / 2)
    return np.array([[c, -1j * s], [-1j * s, c]], dtype=np.complex128)


def ry_matrix(theta: float) -> np.ndarray:
    """RY(θ) = exp(-iθY/2)."""
    c = np.cos(theta / 2)
    s = np.sin(theta / 2)
    return np.array([[c, -s], [s, c]], dtype=np.complex128)


def rz_matrix(theta: float) -> np.ndarray:
    """RZ(θ) = exp(-iθZ/2)."""
    return np.array([
        [np.exp(-0.5j * theta), 0],
        [0, np.exp(0.5j * theta)]
    ], dtype=np.complex128)


def phase_matrix(theta: float) -> np.ndarray:
    """PhaseShift(θ) = diag(1, e^{iθ})."""
    return np.array([[1, 0], [0, np.exp(1j * theta)]], dtype=np.complex128)


def _fixed(matrix: np.ndarray) -> Callable[[], np.ndarray]:
    return lambda: matrix


@dataclass(frozen=True)
class GateSpec:
    """
    Catalog entry for one gate kind.
    
    Attributes:
        kind: Gate kind tag
        num_qubits: Number of qubit indices the gate takes
        num_params: Number of real parameters (rotation angles)
        builder: Returns the 2^k x 2^k unitary for the given parameters
        label: Short label for diagrams
        self_inverse: Whether G·G = I
        rotation_period: Angle period at which the gate is exactly the
            identity, for fusable single-angle gates; None otherwise
    """
    
    kind: GateKind
    num_qubits: int
    num_params: int
    builder: Callable[..., np.ndarray]
    label: str
    self_inverse: bool = False
    rotation_period: Optional[float] = None
    
    @property
    def dimension(self) -> int:
        return 1 << self.num_qubits
    
    @property
    def fusable(self) -> bool:
        return self.rotation_period is not None
    
    def matrix(self, params: Sequence[float] = ()) -> np.ndarray:
        if len(params) != self.num_params:
            raise MalformedCircuit(
                f"Gate {self.kind.value} takes {self.num_params} parameter(s), "
                f"got {len(params)}"
            )
        return self.builder(*params)


CATALOG: Dict[GateKind, GateSpec] = {
    spec.kind: spec
    for spec in (
        GateSpec(GateKind.IDENTITY, 1, 0, _fixed(_I), "I"),
        GateSpec(GateKind.PAULI_X, 1, 0, _fixed(_X), "X", self_inverse=True),
        GateSpec(GateKind.PAULI_Y, 1, 0, _fixed(_Y), "Y", self_inverse=True),
        GateSpec(GateKind.PAULI_Z, 1, 0, _fixed(_Z), "Z", self_inverse=True),
        GateSpec(GateKind.HADAMARD, 1, 0, _fixed(_H), "H", self_inverse=True),
        GateSpec(GateKind.S, 1, 0, _fixed(_S), "S"),
        GateSpec(GateKind.T, 1, 0, _fixed(_T), "T"),
        GateSpec(GateKind.ROTATION_X, 1, 1, rx_matrix, "RX", rotation_period=4 * np.pi),
        GateSpec(GateKind.ROTATION_Y, 1, 1, ry_matrix, "RY", rotation_period=4 * np.pi),
        GateSpec(GateKind.ROTATION_Z, 1, 1, rz_matrix, "RZ", rotation_period=4 * np.pi),
        GateSpec(GateKind.PHASE_SHIFT, 1, 1, phase_matrix, "P", rotation_period=2 * np.pi),
        GateSpec(GateKind.CNOT, 2, 0, _fixed(_CNOT), "CX", self_inverse=True),
        GateSpec(GateKind.SWAP, 2, 0, _fixed(_SWAP), "SWAP", self_inverse=True),
        GateSpec(GateKind.TOFFOLI, 3, 0, _fixed(_TOFFOLI), "CCX", self_inverse=True),
    )
}


_ALIASES: Dict[str, GateKind] = {
    "i": GateKind.IDENTITY,
    "id": GateKind.IDENTITY,
    "x": GateKind.PAULI_X,
    "not": GateKind.PAULI_X,
    "y": GateKind.PAULI_Y,
    "z": GateKind.PAULI_Z,
    "h": GateKind.HADAMARD,
    "rx": GateKind.ROTATION_X,
    "ry": GateKind.ROTATION_Y,
    "rz": GateKind.ROTATION_Z,
    "p": GateKind.PHASE_SHIFT,
    "phase": GateKind.PHASE_SHIFT,
    "u1": GateKind.PHASE_SHIFT,
    "cx": GateKind.CNOT,
    "ccx": GateKind.TOFFOLI,
    "ccnot": GateKind.TOFFOLI,
}
_ALIASES.update({kind.value.lower(): kind for kind in GateKind})


def lookup(name) -> GateSpec:
    """
    Resolve a gate kind or name to its catalog entry.
    
    Accepts GateKind members, canonical names ("Hadamard", "CNOT") and short
    aliases ("h", "cx", "rz"), case-insensitively.
    
    Raises:
        UnsupportedGate: If the name is not in the catalog
    """
    if isinstance(name, GateKind):
        return CATALOG[name]
    if not isinstance(name, str):
        raise UnsupportedGate(f"Gate name must be a string, got {type(name).__name__}")
    
    key = name.strip().lower().replace("_", "").replace("-", "")
    try:
        return CATALOG[_ALIASES[key]]
    except KeyError:
        raise UnsupportedGate(f"Unknown gate '{name}'") from None


def gate_matrix(kind, params: Sequence[float] = ()) -> np.ndarray:
    """Unitary matrix for a gate kind and its parameters."""
    return lookup(kind).matrix(params)


def is_unitary(matrix: np.ndarray, atol: float = 1e-12) -> bool:
    """Check M†M = I within tolerance."""
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    identity = np.eye(matrix.shape[0])
    return bool(np.allclose(matrix.conj().T @ matrix, identity, atol=atol, rtol=0))


def validate_catalog(
    atol: float = 1e-12,
    sample_angles: Tuple[float, ...] = (0.0, 0.3, np.pi / 2, np.pi, -2.1, 7.5),
) -> None:
    """
    Verify every catalog matrix is unitary and correctly sized.
    
    Parameterized gates are checked at a spread of sample angles. Meant to
    run once (at test time), not per gate application.
    
    Raises:
        NumericalDrift: If any matrix fails the check
    """
    for spec in CATALOG.values():
        param_sets = [()] if spec.num_params == 0 else [(a,) for a in sample_angles]
        for params in param_sets:
            matrix = spec.matrix(params)
            if matrix.shape != (spec.dimension, spec.dimension):
                raise NumericalDrift(
                    f"{spec.kind.value} matrix has shape {matrix.shape}, "
                    f"expected ({spec.dimension}, {spec.dimension})"
                )
            if not is_unitary(matrix, atol=atol):
                raise NumericalDrift(f"{spec.kind.value}{params} is not unitary")
