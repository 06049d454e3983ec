"""
HTTP service for circuit simulation.

FastAPI application exposing the simulator:

- `GET /health`: liveness and version.
- `POST /simulate?shots=&seed=&optimize=&circuit_id=`: circuit JSON in,
  measurement outcome JSON out.
- `POST /optimize?fuse_rotations=&circuit_id=`: circuit JSON in, optimized
  circuit and optimizer report out.
- `POST /circuits`, `GET /circuits`, `GET /circuits/{id}`,
  `DELETE /circuits/{id}`: upload, list, fetch and delete stored circuits.
  Passing `circuit_id` to /simulate or /optimize uses a stored circuit
  instead of the request body.

Errors are returned as `{"error": <kind>, "detail": <message>}`.
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
import uvicorn

from qmesh import __version__
from qmesh.circuits.model import Circuit
from qmesh.circuits.optimizer import CircuitOptimizer
from qmesh.config import Config
from qmesh.errors import (
    CircuitNotFound,
    InvalidQubitCount,
    MalformedCircuit,
    NumericalDrift,
    QMeshError,
    SimulationCancelled,
    VALIDATION_ERRORS,
)
from qmesh.io.formats import circuit_to_dict, parse_circuit
from qmesh.service.registry import CircuitRegistry, summarize
from qmesh.sim.engine import Simulator
from qmesh.utils.logging_setup import setup_logger

logger = logging.getLogger(__name__)


def status_code_for(error: QMeshError) -> int:
    """HTTP status for a qmesh error."""
    if isinstance(error, InvalidQubitCount):
        return 413
    if isinstance(error, CircuitNotFound):
        return 404
    if isinstance(error, VALIDATION_ERRORS):
        return 400
    if isinstance(error, SimulationCancelled):
        return 503
    return 500


def _error_response(status_code: int, kind: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "detail": detail})


async def _read_circuit(request: Request) -> Circuit:
    body = await request.body()
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedCircuit(f"Invalid JSON: {e}") from e
    return parse_circuit(data)


async def _request_circuit(request: Request, registry: CircuitRegistry, circuit_id: Optional[str]) -> Circuit:
    if circuit_id is not None:
        return registry.get(circuit_id)
    return await _read_circuit(request)


def _run_simulation(sim_config, circuit: Circuit, shots: Optional[int], seed: Optional[int]):
    with Simulator(sim_config) as simulator:
        return simulator.simulate(circuit, shots=shots, seed=seed)


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Build the FastAPI application.
    
    Args:
        config: Full configuration; the simulator section is used per
            request with its width ceiling lowered to service.max_qubits
    
    Returns:
        FastAPI app
    """
    config = config if config is not None else Config()
    service = config.service
    sim_defaults = config.simulator.model_copy(
        update={"max_qubits": min(config.simulator.max_qubits, service.max_qubits)}
    )
    
    app = FastAPI(title="QuantumMesh Simulation Service", version=__version__)
    app.state.config = config
    app.state.circuits = CircuitRegistry(capacity=service.max_stored_circuits)
    
    @app.exception_handler(QMeshError)
    async def handle_qmesh_error(request: Request, exc: QMeshError):
        status_code = status_code_for(exc)
        if isinstance(exc, NumericalDrift):
            logger.error(f"{request.url.path}: {exc}")
        else:
            logger.info(f"{request.url.path} rejected ({exc.kind}): {exc}")
        return _error_response(status_code, exc.kind, str(exc))
    
    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__}
    
    @app.post("/simulate")
    async def simulate(
        request: Request,
        shots: Optional[int] = None,
        seed: Optional[int] = None,
        optimize: Optional[bool] = None,
        circuit_id: Optional[str] = None,
    ):
        circuit = await _request_circuit(request, app.state.circuits, circuit_id)
        
        if shots is None:
            shots = service.default_shots
        if shots is not None and shots > service.max_shots:
            return _error_response(
                413,
                "InvalidShotCount",
                f"{shots} shots exceeds the service maximum of {service.max_shots}",
            )
        
        sim_config = sim_defaults
        if optimize is not None:
            sim_config = sim_config.model_copy(update={"optimize": optimize})
        
        outcome = await run_in_threadpool(_run_simulation, sim_config, circuit, shots, seed)
        return outcome.to_dict()
    
    @app.post("/optimize")
    async def optimize(
        request: Request,
        fuse_rotations: Optional[bool] = None,
        circuit_id: Optional[str] = None,
    ):
        circuit = await _request_circuit(request, app.state.circuits, circuit_id)
        if fuse_rotations is None:
            fuse_rotations = config.simulator.fuse_rotations
        
        optimized, report = CircuitOptimizer(fuse_rotations=fuse_rotations).optimize_with_report(circuit)
        return {"circuit": circuit_to_dict(optimized), "report": report.to_dict()}
    
    @app.post("/circuits", status_code=201)
    async def upload_circuit(request: Request):
        circuit = await _read_circuit(request)
        circuit.validate(max_qubits=service.max_qubits)
        
        circuit_id = app.state.circuits.add(circuit)
        if circuit_id is None:
            return _error_response(
                507,
                "RegistryFull",
                f"Circuit registry holds its maximum of {service.max_stored_circuits} circuits",
            )
        logger.info(f"Stored circuit {circuit_id} ({circuit.num_qubits} qubits, {len(circuit)} gates)")
        return summarize(circuit_id, circuit)
    
    @app.get("/circuits")
    async def list_circuits() -> Dict[str, Any]:
        return {"circuits": app.state.circuits.summaries()}
    
    @app.get("/circuits/{circuit_id}")
    async def get_circuit(circuit_id: str) -> Dict[str, Any]:
        circuit = app.state.circuits.get(circuit_id)
        return {**summarize(circuit_id, circuit), "circuit": circuit_to_dict(circuit)}
    
    @app.delete("/circuits/{circuit_id}")
    async def delete_circuit(circuit_id: str) -> Dict[str, Any]:
        app.state.circuits.remove(circuit_id)
        logger.info(f"Deleted circuit {circuit_id}")
        return {"deleted": circuit_id}
    
    return app


def serve(config: Optional[Config] = None, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the service with uvicorn until interrupted."""
    config = config if config is not None else Config()
    host = host or config.service.host
    port = port or config.service.port
    
    logger.info(f"Starting QuantumMesh service on {host}:{port}")
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level=config.logging.level.lower(),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="QuantumMesh simulation service")
    parser.add_argument("--config", type=Path, default=None, help="Path to YAML configuration file")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args()
    
    config = Config.from_yaml(args.config) if args.config else Config()
    setup_logger(
        level=config.logging.level,
        log_file=config.logging.log_file,
        json_format=config.logging.json_format,
    )
    serve(config, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
