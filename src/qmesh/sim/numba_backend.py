"""
Numba-compiled compute backend.

Groups are distributed over Numba's thread pool with `prange`; each
iteration gathers one group into a local buffer, multiplies, and scatters
the result back. fastmath is left off so results match the other backends
to rounding.
"""

from typing import Optional, Sequence

import numpy as np
from numba import config as numba_config, njit, prange, get_num_threads, set_num_threads

from qmesh.sim.backend import ComputeBackend, group_bases, group_offsets, num_qubits_of


@njit(parallel=True, cache=True)
def _apply_groups_kernel(psi, matrix, bases, offsets):
    dim = offsets.shape[0]
    for g in prange(bases.shape[0]):
        base = bases[g]
        buf = np.empty(dim, dtype=psi.dtype)
        for j in range(dim):
            buf[j] = psi[base + offsets[j]]
        for r in range(dim):
            acc = 0j
            for c in range(dim):
                acc += matrix[r, c] * buf[c]
            psi[base + offsets[r]] = acc


class NumbaBackend(ComputeBackend):
    """
    Parallel JIT kernel over amplitude groups.
    
    The thread count is applied around each kernel launch and restored
    afterwards, so backends with different counts do not interfere.
    """
    
    name = "numba"
    memory_overhead = 1.5
    
    def __init__(self, num_threads: Optional[int] = None):
        if num_threads is None:
            num_threads = get_num_threads()
        # Numba rejects counts above its launch-time pool size
        self.num_threads = max(1, min(int(num_threads), numba_config.NUMBA_NUM_THREADS))
    
    def apply_matrix(self, amplitudes: np.ndarray, matrix: np.ndarray, targets: Sequence[int]) -> None:
        n = num_qubits_of(amplitudes)
        matrix = np.ascontiguousarray(matrix, dtype=np.complex128)
        bases = group_bases(n, targets)
        offsets = group_offsets(targets)
        
        previous = get_num_threads()
        set_num_threads(self.num_threads)
        try:
            _apply_groups_kernel(amplitudes, matrix, bases, offsets)
        finally:
            set_num_threads(previous)
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_threads={self.num_threads})"
