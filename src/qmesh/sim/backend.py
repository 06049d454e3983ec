"""
Abstract compute backend for gate application.

A backend has one job: apply a small dense matrix to every amplitude group
of a state vector, in place. For a k-qubit gate on targets (q0, ..., qk-1)
the 2^n amplitude indices split into 2^(n-k) groups of 2^k indices that share
all non-target bits. Groups are disjoint, so a backend may process them in
any order or in parallel, but `apply_matrix` must return only after every
group has been written.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Type
import numpy as np


class ComputeBackend(ABC):
    """
    Abstract base class for amplitude-transform backends.
    
    All backends share the same numerical contract: after
    `apply_matrix(psi, U, targets)`, for every group with base index b and
    target-bit offsets o[0..2^k), psi[b + o] equals U @ (old psi[b + o]).
    """
    
    name = "abstract"
    # Peak temporaries of one apply_matrix call, in units of the state size
    memory_overhead = 1.0
    
    @abstractmethod
    def apply_matrix(
        self,
        amplitudes: np.ndarray,
        matrix: np.ndarray,
        targets: Sequence[int],
    ) -> None:
        """
        Apply `matrix` to the amplitude groups spanned by `targets`, in place.
        
        Args:
            amplitudes: complex128 state vector of length 2^n (modified)
            matrix: 2^k x 2^k complex matrix; row/column bit k-1-i is qubit targets[i]
            targets: k distinct, in-range qubit indices
        """
        pass
    
    def close(self) -> None:
        """Release worker resources (thread pools, etc.)."""
    
    def __enter__(self) -> "ComputeBackend":
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def num_qubits_of(amplitudes: np.ndarray) -> int:
    """Register width implied by a state vector length."""
    return int(amplitudes.shape[0]).bit_length() - 1


def group_offsets(targets: Sequence[int]) -> np.ndarray:
    """
    Index offsets of the 2^k members of a group relative to its base.
    
    offsets[j] sets qubit targets[i] to bit k-1-i of j, matching the gate
    matrix row order.
    """
    k = len(targets)
    j = np.arange(1 << k, dtype=np.int64)
    offsets = np.zeros(1 << k, dtype=np.int64)
    for i, q in enumerate(targets):
        offsets |= ((j >> (k - 1 - i)) & 1) << q
    return offsets


def group_bases(n_qubits: int, targets: Sequence[int]) -> np.ndarray:
    """
    Base index (all target bits zero) of each of the 2^(n-k) groups.
    
    Built by inserting a zero bit at each target position into the integers
    0 .. 2^(n-k) - 1, lowest position first.
    """
    bases = np.arange(1 << (n_qubits - len(targets)), dtype=np.int64)
    for q in sorted(targets):
        low = bases & ((1 << q) - 1)
        bases = ((bases >> q) << (q + 1)) | low
    return bases


def backend_class(name: str) -> Type[ComputeBackend]:
    """
    Resolve a backend name to its class without instantiating it.
    
    Raises:
        ValueError: Unknown name, or the backend's library is not installed
    """
    name = name.lower()
    
    if name in ("reference", "numpy", "threaded"):
        from qmesh.sim.cpu import ReferenceBackend, NumpyBackend, ThreadedBackend
        return {
            "reference": ReferenceBackend,
            "numpy": NumpyBackend,
            "threaded": ThreadedBackend,
        }[name]
    
    if name == "numba":
        try:
            from qmesh.sim.numba_backend import NumbaBackend
        except ImportError as e:
            raise ValueError(
                "The numba backend requires numba (pip install 'qmesh[numba]')"
            ) from e
        return NumbaBackend
    
    raise ValueError(f"Unknown backend: {name}")


def create_backend(name: str = "numpy", num_threads: Optional[int] = None) -> ComputeBackend:
    """
    Instantiate a backend by name.
    
    Args:
        name: One of "reference", "numpy", "threaded", "numba"
        num_threads: Worker count for parallel backends (None = CPU count)
    
    Raises:
        ValueError: Unknown name, or the backend's library is not installed
    """
    cls = backend_class(name)
    if cls.name in ("threaded", "numba"):
        return cls(num_threads=num_threads)
    return cls()
