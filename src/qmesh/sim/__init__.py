"""Simulation core: amplitude store, compute backends, engine and sampler."""

from qmesh.sim.backend import ComputeBackend, create_backend
from qmesh.sim.cpu import NumpyBackend, ReferenceBackend, ThreadedBackend
from qmesh.sim.engine import (
    CancellationToken,
    GateApplicationEngine,
    SimulationResult,
    Simulator,
)
from qmesh.sim.sampler import MeasurementSampler
from qmesh.sim.statevector import StateVector, check_capacity

__all__ = [
    "ComputeBackend",
    "create_backend",
    "ReferenceBackend",
    "NumpyBackend",
    "ThreadedBackend",
    "CancellationToken",
    "GateApplicationEngine",
    "SimulationResult",
    "Simulator",
    "MeasurementSampler",
    "StateVector",
    "check_capacity",
]
