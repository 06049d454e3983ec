"""
Gate application engine and simulation driver.

The Simulator validates a circuit completely before allocating a state
vector, optionally optimizes it, then applies operations strictly in
order. Cancellation is cooperative: a CancellationToken is checked between
operations and between sampling batches.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from qmesh.circuits.model import Circuit, GateOperation
from qmesh.circuits.optimizer import CircuitOptimizer, OptimizationReport
from qmesh.config import SimulatorConfig
from qmesh.errors import EmptySampleRequest, NumericalDrift, SimulationCancelled
from qmesh.io.formats import MeasurementOutcome
from qmesh.sim.backend import ComputeBackend, create_backend
from qmesh.sim.sampler import MeasurementSampler
from qmesh.sim.statevector import StateVector, check_capacity
from qmesh.utils.rng import RNGManager

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag shared between a run and its controller."""
    
    def __init__(self):
        self._event = threading.Event()
    
    def cancel(self) -> None:
        self._event.set()
    
    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
    
    def raise_if_cancelled(self) -> None:
        """
        Raises:
            SimulationCancelled: If cancel() has been called
        """
        if self._event.is_set():
            raise SimulationCancelled("Simulation cancelled")


class GateApplicationEngine:
    """Resolves operations through the gate catalog and applies them with its backend."""
    
    def __init__(self, backend: ComputeBackend):
        self.backend = backend
    
    def apply(self, op: GateOperation, state: StateVector) -> None:
        """
        Apply one operation to a state vector.
        
        Raises:
            QubitOutOfRange: Operation addresses a qubit outside the register
            DuplicateTargetQubit: Repeated qubit index
            NumericalDrift: Norm check failed after the update
        """
        state.apply_unitary(op.qubits, op.matrix(), backend=self.backend)


@dataclass
class SimulationResult:
    """Final state of a completed run plus bookkeeping."""
    
    state: StateVector
    circuit: Circuit
    gates_applied: int
    wall_time_seconds: float
    optimization: Optional[OptimizationReport] = None
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "num_qubits": self.state.n_qubits,
            "backend": self.state.backend.name,
            "gates_applied": self.gates_applied,
            "wall_time_seconds": self.wall_time_seconds,
        }
        if self.optimization is not None:
            data["optimization"] = self.optimization.to_dict()
        return data


@dataclass
class Simulator:
    """
    State-vector simulator.
    
    Usage:
        >>> from qmesh.circuits import bell_state
        >>> sim = Simulator(SimulatorConfig(backend="numpy"))
        >>> outcome = sim.simulate(bell_state())
        >>> sorted(outcome.distribution())
        ['00', '11']
    """
    
    config: SimulatorConfig = field(default_factory=SimulatorConfig)
    backend: Optional[ComputeBackend] = None
    
    def __post_init__(self):
        self._owns_backend = self.backend is None
        if self.backend is None:
            self.backend = create_backend(self.config.backend, self.config.num_threads)
        self.engine = GateApplicationEngine(self.backend)
        self.optimizer = CircuitOptimizer(fuse_rotations=self.config.fuse_rotations)
        
        logger.debug(f"Simulator initialized with backend={self.backend.name}")
    
    def close(self) -> None:
        """Release the backend if this simulator created it."""
        if self._owns_backend:
            self.backend.close()
    
    def __enter__(self) -> "Simulator":
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
    
    def run(
        self,
        circuit: Circuit,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SimulationResult:
        """
        Run a circuit from |0...0⟩.
        
        Args:
            circuit: Circuit to simulate
            cancel_token: Checked before every operation
        
        Returns:
            SimulationResult holding the final state
        
        Raises:
            InvalidQubitCount: Width exceeds max_qubits or available memory
            QubitOutOfRange, DuplicateTargetQubit: Invalid operation
            NumericalDrift: Total probability left tolerance
            SimulationCancelled: Token cancelled mid-run
        """
        # Everything is validated before the amplitudes are allocated
        circuit.validate(max_qubits=self.config.max_qubits)
        check_capacity(circuit.num_qubits, self.config, self.backend)
        
        report = None
        if self.config.optimize:
            circuit, report = self.optimizer.optimize_with_report(circuit)
        
        state = StateVector(circuit.num_qubits, backend=self.backend, config=self.config)
        total = len(circuit)
        
        logger.info(
            f"Simulating {circuit.num_qubits} qubits, {total} gates "
            f"on {self.backend.name} backend"
        )
        
        start = time.perf_counter()
        applied = 0
        try:
            for op in circuit.operations:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                self.engine.apply(op, state)
                applied += 1
                if applied % self.config.progress_interval == 0:
                    logger.info(f"Progress: {applied}/{total} gates applied")
        except NumericalDrift:
            logger.error(f"Numerical drift after {applied + 1} of {total} gates", exc_info=True)
            raise
        except SimulationCancelled:
            logger.warning(f"Simulation cancelled after {applied} of {total} gates")
            raise
        
        elapsed = time.perf_counter() - start
        logger.info(f"Applied {applied} gates in {elapsed:.3f}s")
        
        return SimulationResult(
            state=state,
            circuit=circuit,
            gates_applied=applied,
            wall_time_seconds=elapsed,
            optimization=report,
        )
    
    def simulate(
        self,
        circuit: Circuit,
        shots: Optional[int] = None,
        seed: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MeasurementOutcome:
        """
        Run a circuit and measure every qubit.
        
        Args:
            circuit: Circuit to simulate
            shots: Number of samples; None returns the exact distribution
            seed: Sampling seed (default: config.seed)
            cancel_token: Checked between operations and sampling batches
        
        Returns:
            MeasurementOutcome (exact or sampled)
        
        Raises:
            EmptySampleRequest: shots <= 0
            Everything `run` raises
        """
        if shots is not None and (isinstance(shots, bool) or shots <= 0):
            raise EmptySampleRequest(f"Shot count must be a positive integer, got {shots!r}")
        
        result = self.run(circuit, cancel_token=cancel_token)
        
        seed = self.config.seed if seed is None else seed
        rng = RNGManager(global_seed=seed).get_rng("sampling")
        sampler = MeasurementSampler.from_state(result.state, rng=rng)
        
        if shots is None:
            outcome = sampler.exact()
        else:
            outcome = sampler.sample(shots, cancel_token=cancel_token)
        
        outcome.metadata.update(result.to_dict())
        if circuit.metadata:
            outcome.metadata["circuit"] = dict(circuit.metadata)
        return outcome
