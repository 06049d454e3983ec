"""
Text circuit diagrams.

Renders a circuit as one wire per qubit, gates placed in columns of
operations whose qubit spans do not overlap. Box-drawing characters are
used by default; `use_ascii=True` restricts output to plain ASCII.

    q0: ─H──●─
    q1: ────⊕─
"""

import math
import sys
from fractions import Fraction
from typing import IO, Dict, List, Optional

from qmesh.circuits.catalog import GateKind
from qmesh.circuits.model import Circuit, GateOperation

_UNICODE = {"wire": "─", "vertical": "│", "control": "●", "target": "⊕", "swap": "×", "pi": "π"}
_ASCII = {"wire": "-", "vertical": "|", "control": "*", "target": "+", "swap": "x", "pi": "pi"}


def format_angle(theta: float, use_ascii: bool = False, atol: float = 1e-8) -> str:
    """
    Format an angle in radians, using multiples of π/4 where exact.
    
    >>> format_angle(math.pi / 2)
    'π/2'
    >>> format_angle(-3 * math.pi / 4, use_ascii=True)
    '-3pi/4'
    >>> format_angle(0.3)
    '0.300'
    """
    pi_symbol = _ASCII["pi"] if use_ascii else _UNICODE["pi"]
    
    k = round(theta / (math.pi / 4))
    if not math.isclose(theta, k * math.pi / 4, abs_tol=atol):
        return f"{theta:.3f}"
    
    frac = Fraction(k, 4)
    if frac == 0:
        return "0"
    sign = "-" if frac < 0 else ""
    num = abs(frac.numerator)
    coeff = "" if num == 1 else str(num)
    denom = "" if frac.denominator == 1 else f"/{frac.denominator}"
    return f"{sign}{coeff}{pi_symbol}{denom}"


def gate_label(op: GateOperation, use_ascii: bool = False) -> str:
    """Short label such as 'H' or 'RZ(π/2)'."""
    label = op.spec.label
    if op.params:
        args = ",".join(format_angle(p, use_ascii) for p in op.params)
        label = f"{label}({args})"
    return label


def diagram_columns(circuit: Circuit) -> List[List[int]]:
    """
    Greedy columns of operation indices whose spans [min q, max q] are
    disjoint, so vertical connectors never cross another gate.
    """
    columns: List[List[int]] = []
    next_free = [0] * circuit.num_qubits
    
    for idx, op in enumerate(circuit.operations):
        span = range(min(op.qubits), max(op.qubits) + 1)
        column = max(next_free[q] for q in span)
        if column == len(columns):
            columns.append([])
        columns[column].append(idx)
        for q in span:
            next_free[q] = column + 1
    
    return columns


def _column_symbols(circuit: Circuit, indices: List[int], chars: Dict[str, str], use_ascii: bool) -> Dict[int, str]:
    symbols: Dict[int, str] = {}
    
    for idx in indices:
        op = circuit.operations[idx]
        qubits = op.qubits
        
        if op.kind in (GateKind.CNOT, GateKind.TOFFOLI):
            for q in qubits[:-1]:
                symbols[q] = chars["control"]
            symbols[qubits[-1]] = chars["target"]
        elif op.kind == GateKind.SWAP:
            for q in qubits:
                symbols[q] = chars["swap"]
        else:
            symbols[qubits[0]] = gate_label(op, use_ascii)
        
        # Connector through untouched wires inside the span
        for q in range(min(qubits) + 1, max(qubits)):
            symbols.setdefault(q, chars["vertical"])
    
    return symbols


def to_text(circuit: Circuit, max_width: int = 80, use_ascii: bool = False) -> str:
    """
    Convert a circuit to a multi-line text diagram.
    
    Args:
        circuit: Circuit to draw
        max_width: Wider diagrams are split into pages
        use_ascii: Only use ASCII characters
    
    Returns:
        Diagram text, one line per qubit (per page)
    """
    chars = _ASCII if use_ascii else _UNICODE
    wire = chars["wire"]
    n = circuit.num_qubits
    prefix_width = len(f"q{n - 1}:") + 1
    prefixes = [f"q{q}:".ljust(prefix_width) for q in range(n)]
    
    if not circuit.operations:
        return "\n".join(p + wire * 3 for p in prefixes)
    
    rendered: List[List[str]] = []
    for indices in diagram_columns(circuit):
        symbols = _column_symbols(circuit, indices, chars, use_ascii)
        width = max(len(s) for s in symbols.values())
        cells = []
        for q in range(n):
            symbol = symbols.get(q, "")
            cells.append(wire + f"{symbol:{wire}^{width}}" + wire)
        rendered.append(cells)
    
    budget = max(1, max_width - prefix_width)
    pages: List[List[List[str]]] = [[]]
    used = 0
    for cells in rendered:
        cell_width = len(cells[0])
        if pages[-1] and used + cell_width > budget:
            pages.append([])
            used = 0
        pages[-1].append(cells)
        used += cell_width
    
    lines: List[str] = []
    for page_no, page in enumerate(pages):
        if page_no:
            lines.append("-- continuing --")
        for q in range(n):
            lines.append(prefixes[q] + "".join(cells[q] for cells in page))
    return "\n".join(lines)


def print_circuit(
    circuit: Circuit,
    file: Optional[IO[str]] = None,
    max_width: int = 80,
    use_ascii: bool = False,
) -> None:
    """Print a circuit diagram to stdout or a file."""
    if file is None:
        file = sys.stdout
    print(to_text(circuit, max_width=max_width, use_ascii=use_ascii), file=file)
