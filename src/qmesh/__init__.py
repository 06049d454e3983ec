"""
QuantumMesh: dense state-vector quantum circuit simulator.

Modules:
- circuits: gate catalog, circuit model, optimizer and ready-made circuits
- sim: amplitude store, compute backends, simulation engine and sampler
- io: circuit JSON format and measurement outcomes
- analysis: text diagrams, reports and plots
- experiments: synthetic benchmark
- service: FastAPI HTTP service
- config: pydantic configuration models
- utils: logging, RNG management and profiling
"""

__version__ = "0.1.0"

from qmesh.circuits import Circuit, CircuitOptimizer, GateKind, GateOperation
from qmesh.config import Config, SimulatorConfig
from qmesh.errors import QMeshError
from qmesh.io import MeasurementOutcome, load_circuit, loads_circuit
from qmesh.sim import CancellationToken, MeasurementSampler, Simulator, StateVector

__all__ = [
    "__version__",
    "Circuit",
    "CircuitOptimizer",
    "GateKind",
    "GateOperation",
    "Config",
    "SimulatorConfig",
    "QMeshError",
    "MeasurementOutcome",
    "load_circuit",
    "loads_circuit",
    "CancellationToken",
    "MeasurementSampler",
    "Simulator",
    "StateVector",
]
