"""
Seedable random number generator management for reproducibility.

Provides per-subsystem numpy generators derived from one master seed, so
sampling and synthetic circuit construction are independent but
reproducible.
"""

import numpy as np
from typing import Optional, Dict
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class RNGState:
    """Container for RNG state and metadata."""
    
    seed: int
    generator: np.random.Generator
    call_count: int = 0
    
    def increment(self) -> None:
        """Increment call counter for tracking."""
        self.call_count += 1


class RNGManager:
    """
    Random number generator manager.
    
    Manages seeded numpy random generators for different components
    (sampling, benchmark) to ensure reproducibility while maintaining
    independence between subsystems.
    
    Usage:
        >>> rng_mgr = RNGManager(global_seed=42)
        >>> sampling_rng = rng_mgr.get_rng("sampling")
        >>> bench_rng = rng_mgr.get_rng("benchmark")
    """
    
    def __init__(self, global_seed: Optional[int] = None):
        """
        Initialize RNG manager with global seed.
        
        Args:
            global_seed: Master seed for all RNGs. If None, uses system entropy.
        """
        self.global_seed = global_seed
        self._rngs: Dict[str, RNGState] = {}
        self._seed_generator = np.random.default_rng(global_seed)
        
        logger.debug(f"RNGManager initialized with global_seed={global_seed}")
    
    def get_rng(self, name: str) -> np.random.Generator:
        """
        Get or create a seeded RNG for a named subsystem.
        
        Args:
            name: Subsystem identifier (e.g., "sampling", "benchmark")
        
        Returns:
            Numpy random generator with subsystem-specific seed
        """
        if name not in self._rngs:
            subsystem_seed = int(self._seed_generator.integers(0, 2**31 - 1))
            self._rngs[name] = RNGState(
                seed=subsystem_seed,
                generator=np.random.default_rng(subsystem_seed),
            )
            logger.debug(
                f"Created RNG for subsystem '{name}' with seed={subsystem_seed}"
            )
        
        self._rngs[name].increment()
        return self._rngs[name].generator
    
    def reset(self, global_seed: Optional[int] = None) -> None:
        """
        Reset all RNGs with a new global seed.
        
        Args:
            global_seed: New master seed. If None, uses original seed.
        """
        if global_seed is not None:
            self.global_seed = global_seed
        
        self._rngs.clear()
        self._seed_generator = np.random.default_rng(self.global_seed)
        
        logger.debug(f"RNGManager reset with global_seed={self.global_seed}")
    
    def get_state_summary(self) -> Dict[str, Dict]:
        """Seed and call count per subsystem, for logging/debugging."""
        return {
            name: {"seed": state.seed, "call_count": state.call_count}
            for name, state in self._rngs.items()
        }
