"""
Performance profiling and resource monitoring utilities.

Timing/memory context manager for benchmark phases, an aggregate metrics
logger, and the state-vector memory estimate used to enforce the runtime
qubit ceiling.
"""

import time
import logging
import psutil
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict
from pathlib import Path
import json

import numpy as np

logger = logging.getLogger(__name__)

COMPLEX128_BYTES = 16  # 8 bytes real + 8 bytes imag


@dataclass
class ResourceSnapshot:
    """Snapshot of process resource usage."""
    
    timestamp: float
    memory_mb: float
    memory_percent: float
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PerformanceMetrics:
    """Performance metrics for one profiled block."""
    
    name: str
    wall_time_seconds: float
    cpu_time_seconds: float
    peak_memory_mb: float
    memory_delta_mb: float
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    def format_summary(self) -> str:
        """Format human-readable summary."""
        lines = [
            f"Performance: {self.name}",
            f"  Wall time: {self.wall_time_seconds * 1e3:.3f} ms",
            f"  CPU time:  {self.cpu_time_seconds * 1e3:.3f} ms",
            f"  Peak memory: {self.peak_memory_mb:.1f} MB",
            f"  Memory delta: {self.memory_delta_mb:+.1f} MB",
        ]
        return "\n".join(lines)


class PerformanceProfiler:
    """
    Context manager for profiling code blocks.
    
    Example:
        with PerformanceProfiler("hadamard_layer") as prof:
            simulator.run(circuit)
        
        print(prof.metrics.format_summary())
    """
    
    def __init__(self, name: str = "block"):
        self.name = name
        self.metrics: Optional[PerformanceMetrics] = None
        
        self._start_time: float = 0.0
        self._start_cpu: float = 0.0
        self._start_snapshot: Optional[ResourceSnapshot] = None
    
    def __enter__(self) -> "PerformanceProfiler":
        self._start_snapshot = self._get_resource_snapshot()
        self._start_time = time.perf_counter()
        self._start_cpu = time.process_time()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = time.perf_counter()
        end_cpu = time.process_time()
        end_snapshot = self._get_resource_snapshot()
        
        self.metrics = PerformanceMetrics(
            name=self.name,
            wall_time_seconds=end_time - self._start_time,
            cpu_time_seconds=end_cpu - self._start_cpu,
            peak_memory_mb=max(self._start_snapshot.memory_mb, end_snapshot.memory_mb),
            memory_delta_mb=end_snapshot.memory_mb - self._start_snapshot.memory_mb,
        )
        
        return False  # Don't suppress exceptions
    
    @staticmethod
    def _get_resource_snapshot() -> ResourceSnapshot:
        process = psutil.Process()
        
        with process.oneshot():
            memory_mb = process.memory_info().rss / 1024 / 1024
            memory_percent = process.memory_percent()
        
        return ResourceSnapshot(
            timestamp=time.time(),
            memory_mb=memory_mb,
            memory_percent=memory_percent,
        )


class PerformanceLogger:
    """
    Aggregate performance metrics logger.
    
    Collects metrics from multiple profiled blocks and saves to JSON.
    """
    
    def __init__(self, output_path: Optional[Path] = None):
        self.output_path = output_path
        self.metrics: List[PerformanceMetrics] = []
    
    def add_metrics(self, metrics: PerformanceMetrics) -> None:
        self.metrics.append(metrics)
    
    def save(self, path: Optional[Path] = None, extra: Optional[Dict[str, Any]] = None) -> Path:
        """
        Save metrics to JSON file.
        
        Args:
            path: Path to save (overrides constructor path)
            extra: Additional top-level fields (run parameters, etc.)
        
        Returns:
            The path written
        """
        save_path = path if path is not None else self.output_path
        
        if save_path is None:
            raise ValueError("No output path specified")
        
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        
        data = {
            **(extra or {}),
            'metrics': [m.to_dict() for m in self.metrics],
            'summary': self.get_summary(),
        }
        
        with open(save_path, 'w') as f:
            json.dump(data, f, indent=2)
        
        logger.info(f"Performance metrics saved to {save_path}")
        return save_path
    
    def get_summary(self) -> Dict[str, Any]:
        """Summary statistics across all collected metrics."""
        if not self.metrics:
            return {}
        
        wall_times = [m.wall_time_seconds for m in self.metrics]
        peak_mems = [m.peak_memory_mb for m in self.metrics]
        
        return {
            'count': len(self.metrics),
            'total_wall_time': float(sum(wall_times)),
            'mean_wall_time': float(np.mean(wall_times)),
            'median_wall_time': float(np.median(wall_times)),
            'peak_memory_mb': float(max(peak_mems)),
        }


def estimate_memory_requirements(
    n_qubits: int,
    overhead_factor: float = 1.5,
) -> Dict[str, float]:
    """
    Estimate memory requirements for a dense state vector.
    
    Args:
        n_qubits: Number of qubits
        overhead_factor: Multiplicative overhead (default 1.5x for temporaries)
    
    Returns:
        Dictionary with byte and MB estimates
    """
    state_bytes = (1 << n_qubits) * COMPLEX128_BYTES
    total_bytes = state_bytes * overhead_factor
    
    return {
        'state_bytes': float(state_bytes),
        'estimated_total_bytes': float(total_bytes),
        'state_size_mb': state_bytes / (1024 * 1024),
        'estimated_total_mb': total_bytes / (1024 * 1024),
        'overhead_factor': overhead_factor,
    }


def available_memory_bytes() -> int:
    """Memory currently available to new allocations, per the OS."""
    return int(psutil.virtual_memory().available)
