"""Text diagrams, reports and plots."""

from qmesh.analysis.diagram import format_angle, gate_label, print_circuit, to_text
from qmesh.analysis.report import (
    format_circuit_summary,
    format_distribution,
    format_optimization_report,
    format_status,
)

__all__ = [
    "format_angle",
    "gate_label",
    "print_circuit",
    "to_text",
    "format_circuit_summary",
    "format_distribution",
    "format_optimization_report",
    "format_status",
]
