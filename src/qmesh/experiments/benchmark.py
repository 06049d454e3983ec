"""
Synthetic throughput benchmark.

Times three phases on an n-qubit register: a Hadamard on every qubit, a
CNOT chain (k, k+1), and measurement (exact distribution plus sampling).
With depth > 1 the first two phases repeat and their times accumulate.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from qmesh.circuits.catalog import GateKind
from qmesh.circuits.model import GateOperation
from qmesh.config import SimulatorConfig
from qmesh.sim.backend import ComputeBackend, create_backend
from qmesh.sim.engine import GateApplicationEngine
from qmesh.sim.sampler import MeasurementSampler
from qmesh.sim.statevector import StateVector
from qmesh.utils.perf import PerformanceLogger, PerformanceProfiler, estimate_memory_requirements
from qmesh.utils.rng import RNGManager

logger = logging.getLogger(__name__)

PHASES = ("hadamard_layer", "cnot_chain", "measurement")


@dataclass
class BenchmarkResult:
    """Per-phase wall times of one benchmark run."""
    
    num_qubits: int
    depth: int
    backend: str
    gates_applied: int
    shots: int
    phase_seconds: Dict[str, float] = field(default_factory=OrderedDict)
    state_size_mb: float = 0.0
    
    @property
    def total_seconds(self) -> float:
        return float(sum(self.phase_seconds.values()))
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_qubits": self.num_qubits,
            "depth": self.depth,
            "backend": self.backend,
            "gates_applied": self.gates_applied,
            "shots": self.shots,
            "state_size_mb": self.state_size_mb,
            "phase_seconds": dict(self.phase_seconds),
            "total_seconds": self.total_seconds,
        }
    
    def format_summary(self) -> str:
        lines = [
            f"Benchmark: {self.num_qubits} qubits, depth {self.depth}, "
            f"{self.backend} backend ({self.state_size_mb:.2f} MB state)"
        ]
        for name, seconds in self.phase_seconds.items():
            lines.append(f"  {name:<15} {seconds * 1000:10.3f} ms")
        lines.append(f"  {'total':<15} {self.total_seconds * 1000:10.3f} ms")
        return "\n".join(lines)


def run_benchmark(
    num_qubits: int,
    depth: int = 1,
    config: Optional[SimulatorConfig] = None,
    backend: Optional[ComputeBackend] = None,
    shots: int = 1024,
    seed: Optional[int] = None,
    output_path: Optional[Path] = None,
) -> BenchmarkResult:
    """
    Run the synthetic benchmark.
    
    Args:
        num_qubits: Register width
        depth: Number of Hadamard-layer/CNOT-chain repetitions
        config: Simulator configuration (backend, limits, tolerances)
        backend: Explicit backend instance (overrides config.backend)
        shots: Samples drawn in the measurement phase
        seed: Sampling seed
        output_path: Optional JSON file for the collected metrics
    
    Returns:
        BenchmarkResult with per-phase wall times
    
    Raises:
        InvalidQubitCount: Width too large for the configuration or memory
        ValueError: depth < 1
    """
    if depth < 1:
        raise ValueError(f"Benchmark depth must be >= 1, got {depth}")
    
    config = config if config is not None else SimulatorConfig()
    owns_backend = backend is None
    if backend is None:
        backend = create_backend(config.backend, config.num_threads)
    
    try:
        state = StateVector(num_qubits, backend=backend, config=config)
        engine = GateApplicationEngine(backend)
        perf_logger = PerformanceLogger(output_path)
        phase_seconds: Dict[str, float] = OrderedDict((name, 0.0) for name in PHASES)
        applied = 0
        
        logger.info(f"Running benchmark with {num_qubits} qubits, depth {depth}, backend={backend.name}")
        
        for _ in range(depth):
            with PerformanceProfiler("hadamard_layer") as prof:
                for q in range(num_qubits):
                    engine.apply(GateOperation(GateKind.HADAMARD, (q,)), state)
            perf_logger.add_metrics(prof.metrics)
            phase_seconds["hadamard_layer"] += prof.metrics.wall_time_seconds
            applied += num_qubits
            
            with PerformanceProfiler("cnot_chain") as prof:
                for q in range(num_qubits - 1):
                    engine.apply(GateOperation(GateKind.CNOT, (q, q + 1)), state)
            perf_logger.add_metrics(prof.metrics)
            phase_seconds["cnot_chain"] += prof.metrics.wall_time_seconds
            applied += num_qubits - 1
        
        rng = RNGManager(global_seed=seed if seed is not None else config.seed).get_rng("benchmark")
        with PerformanceProfiler("measurement") as prof:
            sampler = MeasurementSampler.from_state(state, rng=rng)
            if shots > 0:
                sampler.sample_counts(shots)
        perf_logger.add_metrics(prof.metrics)
        phase_seconds["measurement"] += prof.metrics.wall_time_seconds
    finally:
        if owns_backend:
            backend.close()
    
    result = BenchmarkResult(
        num_qubits=num_qubits,
        depth=depth,
        backend=backend.name,
        gates_applied=applied,
        shots=shots,
        phase_seconds=phase_seconds,
        state_size_mb=estimate_memory_requirements(num_qubits)["state_size_mb"],
    )
    
    logger.info(f"Benchmark finished in {result.total_seconds:.3f}s")
    
    if output_path is not None:
        perf_logger.save(extra={"benchmark": result.to_dict()})
    
    return result
