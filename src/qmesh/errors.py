"""
Error taxonomy for qmesh.

Input-validation errors subclass ValueError so callers that already catch
ValueError keep working; NumericalDrift is an internal invariant violation
and subclasses RuntimeError.
"""


class QMeshError(Exception):
    """Base class for all qmesh errors."""

    kind = "QMeshError"


class InvalidQubitCount(QMeshError, ValueError):
    """Requested register width exceeds the configured or available capacity."""

    kind = "InvalidQubitCount"


class QubitOutOfRange(QMeshError, ValueError):
    """A qubit index is negative or not smaller than the register width."""

    kind = "QubitOutOfRange"


class DuplicateTargetQubit(QMeshError, ValueError):
    """A qubit index repeats within one gate operation."""

    kind = "DuplicateTargetQubit"


class MalformedCircuit(QMeshError, ValueError):
    """A circuit description failed to parse or validate."""

    kind = "MalformedCircuit"


class UnsupportedGate(QMeshError, ValueError):
    """A gate name is not in the catalog."""

    kind = "UnsupportedGate"


class EmptySampleRequest(QMeshError, ValueError):
    """Samples were requested with a non-positive shot count."""

    kind = "EmptySampleRequest"


class NumericalDrift(QMeshError, RuntimeError):
    """Probability sum or unitarity check fell outside tolerance."""

    kind = "NumericalDrift"


class SimulationCancelled(QMeshError):
    """A simulation run was cancelled between operations or sample batches."""

    kind = "SimulationCancelled"


class CircuitNotFound(QMeshError, LookupError):
    """No stored circuit has the requested id."""

    kind = "CircuitNotFound"


VALIDATION_ERRORS = (
    InvalidQubitCount,
    QubitOutOfRange,
    DuplicateTargetQubit,
    MalformedCircuit,
    UnsupportedGate,
    EmptySampleRequest,
)
