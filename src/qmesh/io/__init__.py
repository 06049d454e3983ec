"""Circuit and result serialization."""

from qmesh.io.formats import (
    PROBABILITY_CUTOFF,
    MeasurementOutcome,
    bitstring_to_int,
    circuit_to_dict,
    dumps_circuit,
    int_to_bitstring,
    load_circuit,
    loads_circuit,
    parse_circuit,
    save_circuit,
)

__all__ = [
    "PROBABILITY_CUTOFF",
    "MeasurementOutcome",
    "bitstring_to_int",
    "circuit_to_dict",
    "dumps_circuit",
    "int_to_bitstring",
    "load_circuit",
    "loads_circuit",
    "parse_circuit",
    "save_circuit",
]
