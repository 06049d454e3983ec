"""Gate catalog, circuit model, optimizer and ready-made circuits."""

from .catalog import GateKind, GateSpec, CATALOG, lookup, gate_matrix, validate_catalog
from .model import GateOperation, Circuit
from .optimizer import CircuitOptimizer, OptimizationReport, optimize_circuit
from .library import bell_state, ghz_state, qft, benchmark_circuit, random_circuit

__all__ = [
    "GateKind",
    "GateSpec",
    "CATALOG",
    "lookup",
    "gate_matrix",
    "validate_catalog",
    "GateOperation",
    "Circuit",
    "CircuitOptimizer",
    "OptimizationReport",
    "optimize_circuit",
    "bell_state",
    "ghz_state",
    "qft",
    "benchmark_circuit",
    "random_circuit",
]
