"""
Measurement sampling in the computational basis.

Exact distributions come straight from |a_i|²; stochastic samples are drawn
with numpy's multinomial in fixed-size batches so long runs can be
cancelled between batches.
"""

import logging
from typing import TYPE_CHECKING, Dict, Optional

import numpy as np

from qmesh.errors import EmptySampleRequest, NumericalDrift, QubitOutOfRange
from qmesh.io.formats import PROBABILITY_CUTOFF, MeasurementOutcome, int_to_bitstring

if TYPE_CHECKING:
    from qmesh.sim.engine import CancellationToken
    from qmesh.sim.statevector import StateVector

logger = logging.getLogger(__name__)


class MeasurementSampler:
    """
    Born-rule sampler over a fixed probability vector.
    
    The vector is checked once on construction: if it does not sum to 1
    within tolerance the sampler refuses to exist.
    """
    
    def __init__(
        self,
        probabilities: np.ndarray,
        tolerance: float = 1e-9,
        rng: Optional[np.random.Generator] = None,
        batch_size: int = 65536,
    ):
        """
        Args:
            probabilities: Length-2^n probability vector
            tolerance: Allowed deviation of the sum from 1
            rng: Numpy random generator (default: unseeded)
            batch_size: Shots drawn between cancellation checks
        
        Raises:
            ValueError: Length is not a power of two
            NumericalDrift: Probabilities do not sum to 1 within tolerance
        """
        probs = np.asarray(probabilities, dtype=np.float64)
        dim = probs.shape[0] if probs.ndim == 1 else 0
        if dim < 2 or dim & (dim - 1):
            raise ValueError(
                f"Probability vector length must be a power of two >= 2, got shape {probs.shape}"
            )
        
        total = float(probs.sum())
        # NaN fails every comparison, so test for the good case
        if not abs(total - 1.0) <= tolerance or not np.all(probs >= 0):
            raise NumericalDrift(
                f"Probabilities sum to {total!r}, outside tolerance {tolerance:g}"
            )
        
        self.num_qubits = dim.bit_length() - 1
        self.tolerance = tolerance
        self.rng = rng if rng is not None else np.random.default_rng()
        self.batch_size = int(batch_size)
        # Absorb rounding below tolerance so multinomial accepts the vector
        self._probabilities = probs / total
    
    @classmethod
    def from_state(
        cls,
        state: "StateVector",
        rng: Optional[np.random.Generator] = None,
        tolerance: Optional[float] = None,
        batch_size: Optional[int] = None,
    ) -> "MeasurementSampler":
        """Build a sampler over a state vector's probabilities."""
        config = state.config
        return cls(
            state.probabilities(),
            tolerance=config.norm_tolerance if tolerance is None else tolerance,
            rng=rng,
            batch_size=config.sample_batch_size if batch_size is None else batch_size,
        )
    
    @property
    def probabilities(self) -> np.ndarray:
        return self._probabilities.copy()
    
    def distribution(self, cutoff: float = PROBABILITY_CUTOFF) -> Dict[str, float]:
        """
        Exact outcome probabilities.
        
        Args:
            cutoff: Only entries strictly above this are returned (default:
                the double-precision rounding floor)
        
        Returns:
            Dictionary mapping little-endian bitstrings to probabilities
        """
        return self.exact().distribution(cutoff)
    
    def exact(self) -> MeasurementOutcome:
        return MeasurementOutcome(self.num_qubits, self._probabilities.copy())
    
    def sample_counts(
        self,
        shots: int,
        cancel_token: Optional["CancellationToken"] = None,
    ) -> Dict[str, int]:
        """
        Draw measurement outcomes.
        
        Args:
            shots: Number of samples (> 0)
            cancel_token: Checked between batches
        
        Returns:
            Dictionary mapping bitstrings to counts (zero counts omitted)
        
        Raises:
            EmptySampleRequest: shots <= 0
            SimulationCancelled: Token cancelled between batches
        """
        if isinstance(shots, bool) or int(shots) != shots or shots <= 0:
            raise EmptySampleRequest(f"Shot count must be a positive integer, got {shots!r}")
        shots = int(shots)
        
        totals = np.zeros(self._probabilities.shape[0], dtype=np.int64)
        remaining = shots
        while remaining > 0:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            batch = min(remaining, self.batch_size)
            totals += self.rng.multinomial(batch, self._probabilities)
            remaining -= batch
        
        logger.debug(f"Sampled {shots} shots over {self.num_qubits} qubits")
        
        return {
            int_to_bitstring(int(idx), self.num_qubits): int(totals[idx])
            for idx in np.flatnonzero(totals)
        }
    
    def sample(
        self,
        shots: int,
        cancel_token: Optional["CancellationToken"] = None,
    ) -> MeasurementOutcome:
        """Sampled outcome carrying counts, shots and the exact probabilities."""
        counts = self.sample_counts(shots, cancel_token)
        return MeasurementOutcome(
            self.num_qubits,
            self._probabilities.copy(),
            shots=int(shots),
            counts=counts,
        )
    
    def marginal_probability(self, qubit: int) -> float:
        """
        Probability of measuring `qubit` in |1⟩.
        
        Raises:
            QubitOutOfRange: Invalid qubit index
        """
        if not 0 <= qubit < self.num_qubits:
            raise QubitOutOfRange(
                f"Qubit index {qubit} out of range [0, {self.num_qubits})"
            )
        indices = np.arange(self._probabilities.shape[0])
        mask = (indices >> qubit) & 1
        return float(self._probabilities[mask == 1].sum())
