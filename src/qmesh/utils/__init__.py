"""
Utility functions for qmesh.

Includes logging setup, RNG management, and performance profiling utilities.
"""

from .logging_setup import setup_logger
from .rng import RNGManager
from .perf import (
    PerformanceProfiler,
    PerformanceLogger,
    estimate_memory_requirements,
    available_memory_bytes,
)

__all__ = [
    "setup_logger",
    "RNGManager",
    "PerformanceProfiler",
    "PerformanceLogger",
    "estimate_memory_requirements",
    "available_memory_bytes",
]
