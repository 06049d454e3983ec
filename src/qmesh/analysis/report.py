"""
Plain-text reports for the command line.

Probability tables with proportional bars, optimizer summaries, circuit
summaries and the system status panel.
"""

from typing import Dict, List, Optional

from qmesh.circuits.model import Circuit
from qmesh.circuits.optimizer import OptimizationReport
from qmesh.config import Config
from qmesh.io.formats import MeasurementOutcome
from qmesh.utils.perf import estimate_memory_requirements


def format_distribution(
    outcome: MeasurementOutcome,
    top: int = 10,
    bar_width: int = 40,
    use_ascii: bool = False,
) -> str:
    """
    Probability table, most likely states first.
    
    Sampled outcomes show observed frequencies; exact outcomes show |a|².
    
    Args:
        outcome: Measurement outcome
        top: Number of states to list
        bar_width: Characters for a probability of 1
        use_ascii: Use '#' bars and plain brackets
    """
    bar_char = "#" if use_ascii else "█"
    left, right = ("|", ">") if use_ascii else ("|", "⟩")
    
    if outcome.is_sampled:
        entries = outcome.frequencies()
        title = f"Measurement Results ({outcome.shots} shots):"
    else:
        entries = outcome.distribution()
        title = "Qubit State Probabilities:"
    
    ranked = sorted(entries.items(), key=lambda kv: (-kv[1], kv[0]))
    lines = [title]
    for label, prob in ranked[:top]:
        bar = bar_char * int(prob * bar_width)
        lines.append(f"  {left}{label}{right} {prob * 100:6.2f}% {bar}".rstrip())
    if len(ranked) > top:
        lines.append(f"  ... ({len(ranked) - top} more states)")
    return "\n".join(lines)


def format_optimization_report(report: OptimizationReport) -> str:
    """Summary of what the optimizer removed."""
    lines = [
        "Optimization Results:",
        f"  Original gates:  {report.original_gates}",
        f"  Optimized gates: {report.optimized_gates}",
        f"  Removed pairs:   {report.removed_pairs}",
        f"  Fused rotations: {report.fused_rotations}",
        f"  Passes:          {report.passes}",
        f"  Reduction:       {report.reduction_percent:.1f}%",
    ]
    return "\n".join(lines)


def format_circuit_summary(circuit: Circuit) -> str:
    """Qubit count, gate count, depth and per-kind counts."""
    lines = [
        f"Qubits: {circuit.num_qubits}",
        f"Gates:  {len(circuit)}",
        f"Depth:  {circuit.depth()}",
    ]
    counts = circuit.count_by_kind()
    if counts:
        breakdown = ", ".join(f"{kind}={n}" for kind, n in sorted(counts.items()))
        lines.append(f"Kinds:  {breakdown}")
    return "\n".join(lines)


def format_status(
    config: Config,
    backends: Dict[str, bool],
    version: str,
    available_mb: Optional[float] = None,
) -> str:
    """
    System status panel.
    
    Args:
        config: Active configuration
        backends: Backend name -> whether it can be instantiated
        version: Package version
        available_mb: Available memory in MB, if known
    """
    sim = config.simulator
    title = f"QuantumMesh {version} System Status"
    width = len(title) + 6
    lines: List[str] = [
        "┌" + "─" * width + "┐",
        "│" + title.center(width) + "│",
        "└" + "─" * width + "┘",
    ]
    
    for name, ok in backends.items():
        mark = "✓" if ok else "✗"
        suffix = " (default)" if name == sim.backend else ""
        lines.append(f"  {mark} Backend {name}: {'available' if ok else 'unavailable'}{suffix}")
    
    optimizer = "active" if sim.optimize else "disabled"
    if sim.optimize and sim.fuse_rotations:
        optimizer += " (rotation fusion on)"
    lines.append(f"  ✓ Circuit optimizer: {optimizer}")
    
    estimate = estimate_memory_requirements(sim.max_qubits, sim.memory_overhead_factor)
    lines.append(
        f"  ✓ Max qubits: {sim.max_qubits} "
        f"(~{estimate['estimated_total_mb']:.1f} MB state vector)"
    )
    if available_mb is not None:
        lines.append(f"  ✓ Available memory: {available_mb:.1f} MB")
    lines.append(
        f"  ✓ API server: {config.service.host}:{config.service.port} "
        f"(max {config.service.max_qubits} qubits)"
    )
    return "\n".join(lines)
