"""
Dense complex amplitude store.

Holds the 2^n complex128 amplitudes of an n-qubit pure state. Bit k of an
amplitude's index is the basis value of qubit k. Gate application is
delegated to a ComputeBackend; the store validates inputs before any
mutation and checks total probability afterwards.

Memory requirement: 2^n complex128 values = 16 * 2^n bytes
Example: n=20 qubits → 16 MB, n=24 → 256 MB, n=28 → 4 GB, n=30 → 16 GB
"""

import logging
from typing import Optional, Sequence

import numpy as np

from qmesh.circuits.model import check_qubits
from qmesh.config import SimulatorConfig
from qmesh.errors import InvalidQubitCount, NumericalDrift
from qmesh.sim.backend import ComputeBackend, backend_class, create_backend
from qmesh.utils.perf import available_memory_bytes, estimate_memory_requirements

logger = logging.getLogger(__name__)


def check_capacity(
    n_qubits: int,
    config: SimulatorConfig,
    backend: Optional[ComputeBackend] = None,
) -> None:
    """
    Verify a register width can be simulated before allocating it.
    
    The memory estimate covers the state plus the temporaries of the
    backend that will run it (config.backend when none is given), and never
    drops below config.memory_overhead_factor times the state size.
    
    Raises:
        InvalidQubitCount: Width below 1, above config.max_qubits, or (when
            config.check_memory is set) too large for available memory
    """
    if isinstance(n_qubits, bool) or not isinstance(n_qubits, (int, np.integer)):
        raise InvalidQubitCount(f"Qubit count must be an integer, got {n_qubits!r}")
    if n_qubits < 1:
        raise InvalidQubitCount(f"Qubit count must be >= 1, got {n_qubits}")
    if n_qubits > config.max_qubits:
        raise InvalidQubitCount(
            f"{n_qubits} qubits exceeds the configured maximum of {config.max_qubits}"
        )
    
    if config.check_memory:
        if backend is None:
            backend = backend_class(config.backend)
        overhead = max(config.memory_overhead_factor, 1.0 + backend.memory_overhead)
        estimate = estimate_memory_requirements(n_qubits, overhead)
        available = available_memory_bytes()
        if estimate["estimated_total_bytes"] > available:
            raise InvalidQubitCount(
                f"{n_qubits} qubits needs ~{estimate['estimated_total_mb']:.1f} MB "
                f"but only {available / (1024 * 1024):.1f} MB is available"
            )


class StateVector:
    """
    State vector of an n-qubit register, initialized to |0...0⟩.
    
    Owned by a single simulation run; the backend is the only code that
    writes the amplitudes, and only from within `apply_unitary`.
    """
    
    def __init__(
        self,
        n_qubits: int,
        backend: Optional[ComputeBackend] = None,
        config: Optional[SimulatorConfig] = None,
    ):
        """
        Allocate the state vector.
        
        Args:
            n_qubits: Number of qubits
            backend: Compute backend (default: built from config.backend)
            config: Simulator configuration (default: SimulatorConfig())
        
        Raises:
            InvalidQubitCount: See check_capacity
        """
        self.config = config if config is not None else SimulatorConfig()
        if backend is None:
            backend = create_backend(self.config.backend, self.config.num_threads)
        check_capacity(n_qubits, self.config, backend)
        
        self.n_qubits = int(n_qubits)
        self.backend = backend
        self._amplitudes = np.zeros(1 << self.n_qubits, dtype=np.complex128)
        self._amplitudes[0] = 1.0
    
    @property
    def dimension(self) -> int:
        return self._amplitudes.shape[0]
    
    @property
    def amplitudes(self) -> np.ndarray:
        """Copy of the current amplitudes."""
        return self._amplitudes.copy()
    
    def reset(self) -> None:
        """Return to |0...0⟩."""
        self._amplitudes[:] = 0
        self._amplitudes[0] = 1.0
    
    def apply_unitary(
        self,
        targets: Sequence[int],
        matrix: np.ndarray,
        backend: Optional[ComputeBackend] = None,
    ) -> None:
        """
        Apply a 2^k x 2^k unitary to target qubits.
        
        Targets and matrix shape are validated before the amplitudes are
        touched. With config.check_norm, total probability is verified
        afterwards.
        
        Args:
            targets: k distinct qubit indices; targets[0] is the most
                significant bit of the matrix index
            matrix: Unitary matrix of shape (2^k, 2^k)
            backend: Backend for this call (default: the store's own)
        
        Raises:
            QubitOutOfRange, DuplicateTargetQubit: Bad targets
            ValueError: Matrix shape does not match the target count
            NumericalDrift: Total probability left tolerance
        """
        targets = tuple(int(t) for t in targets)
        if not targets:
            raise ValueError("At least one target qubit is required")
        check_qubits(targets, self.n_qubits)
        
        k = len(targets)
        expected_dim = 1 << k
        matrix = np.asarray(matrix, dtype=np.complex128)
        if matrix.shape != (expected_dim, expected_dim):
            raise ValueError(
                f"Unitary shape {matrix.shape} does not match "
                f"expected ({expected_dim}, {expected_dim}) for {k} qubits"
            )
        
        backend = backend if backend is not None else self.backend
        backend.apply_matrix(self._amplitudes, matrix, targets)
        
        if self.config.check_norm:
            self.check_normalized()
    
    def norm_squared(self) -> float:
        """Σ |a_i|²."""
        return float(np.vdot(self._amplitudes, self._amplitudes).real)
    
    def check_normalized(self, tol: Optional[float] = None) -> None:
        """
        Raises:
            NumericalDrift: If |Σ|a_i|² - 1| exceeds tol (default config.norm_tolerance)
        """
        tol = self.config.norm_tolerance if tol is None else tol
        n2 = self.norm_squared()
        if not abs(1.0 - n2) <= tol:
            raise NumericalDrift(
                f"Total probability drifted to {n2!r} (tolerance {tol:g})"
            )
    
    def probabilities(self) -> np.ndarray:
        """Born rule probabilities |⟨x|ψ⟩|²."""
        return np.abs(self._amplitudes) ** 2
    
    def copy(self) -> "StateVector":
        """Independent copy sharing backend and config."""
        clone = object.__new__(StateVector)
        clone.config = self.config
        clone.n_qubits = self.n_qubits
        clone.backend = self.backend
        clone._amplitudes = self._amplitudes.copy()
        return clone
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n_qubits={self.n_qubits}, backend={self.backend!r})"
