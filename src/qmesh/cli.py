"""
Command-line interface (`qmesh` console script).

Subcommands: simulate, optimize, benchmark, visualize, status, version,
serve. Exit status is 0 on success, 1 for input errors, 2 for numerical
drift and 130 for cancellation.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from qmesh import __version__
from qmesh.analysis.diagram import to_text
from qmesh.analysis.report import (
    format_circuit_summary,
    format_distribution,
    format_optimization_report,
    format_status,
)
from qmesh.circuits.optimizer import CircuitOptimizer
from qmesh.config import Config
from qmesh.config.schemas import BACKEND_NAMES
from qmesh.errors import NumericalDrift, QMeshError, SimulationCancelled
from qmesh.experiments.benchmark import run_benchmark
from qmesh.io.formats import dumps_circuit, load_circuit, save_circuit
from qmesh.sim.backend import create_backend
from qmesh.sim.engine import CancellationToken, Simulator
from qmesh.utils.logging_setup import setup_logger
from qmesh.utils.perf import available_memory_bytes

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_NUMERICAL_DRIFT = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qmesh",
        description="QuantumMesh: dense state-vector quantum circuit simulator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from configuration)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional log file path (in addition to console)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Use JSON-structured logging format",
    )
    
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True
    
    p = subparsers.add_parser("simulate", help="Simulate a circuit file")
    p.add_argument("file", type=Path, help="Circuit JSON file")
    p.add_argument("--shots", type=int, default=None, help="Sample N shots instead of exact probabilities")
    p.add_argument("--seed", type=int, default=None, help="Sampling seed")
    p.add_argument("--no-optimize", action="store_true", help="Skip the circuit optimizer")
    p.add_argument("--backend", choices=BACKEND_NAMES, default=None, help="Compute backend")
    p.add_argument("--top", type=int, default=10, help="Number of states to list")
    p.add_argument("--json", action="store_true", help="Print the outcome as JSON")
    p.add_argument("--plot", type=Path, default=None, help="Save a distribution plot (PNG)")
    
    p = subparsers.add_parser("optimize", help="Optimize a circuit file")
    p.add_argument("file", type=Path, help="Circuit JSON file")
    p.add_argument("--output", type=Path, default=None, help="Write optimized circuit here (default: stdout)")
    p.add_argument("--fuse-rotations", action="store_true", help="Also fuse adjacent rotations")
    
    p = subparsers.add_parser("benchmark", help="Run the synthetic benchmark")
    p.add_argument("qubits", type=int, help="Number of qubits")
    p.add_argument("--depth", type=int, default=1, help="Hadamard-layer/CNOT-chain repetitions")
    p.add_argument("--backend", choices=BACKEND_NAMES, default=None, help="Compute backend")
    p.add_argument("--shots", type=int, default=1024, help="Shots in the measurement phase")
    p.add_argument("--seed", type=int, default=None, help="Sampling seed")
    p.add_argument("--output", type=Path, default=None, help="Write metrics JSON here")
    
    p = subparsers.add_parser("visualize", help="Draw a circuit file")
    p.add_argument("file", type=Path, help="Circuit JSON file")
    p.add_argument("--ascii", action="store_true", help="ASCII-only diagram")
    p.add_argument("--width", type=int, default=80, help="Maximum diagram width")
    
    subparsers.add_parser("status", help="Show system status")
    subparsers.add_parser("version", help="Show version information")
    
    p = subparsers.add_parser("serve", help="Run the HTTP service")
    p.add_argument("--host", default=None, help="Bind address (default: from configuration)")
    p.add_argument("--port", type=int, default=None, help="Bind port (default: from configuration)")
    
    return parser


def cmd_simulate(args: argparse.Namespace, config: Config) -> int:
    updates = {}
    if args.backend is not None:
        updates["backend"] = args.backend
    if args.no_optimize:
        updates["optimize"] = False
    sim_config = config.simulator.model_copy(update=updates)
    
    circuit = load_circuit(args.file)
    logger.info(f"Circuit loaded: {circuit.num_qubits} qubits, {len(circuit)} gates")
    
    token = CancellationToken()
    try:
        with Simulator(sim_config) as simulator:
            outcome = simulator.simulate(
                circuit, shots=args.shots, seed=args.seed, cancel_token=token
            )
    except KeyboardInterrupt:
        token.cancel()
        raise SimulationCancelled("Interrupted by user")
    
    if args.json:
        print(outcome.to_json())
    else:
        print(f"Circuit: {circuit.num_qubits} qubits, {len(circuit)} gates "
              f"({outcome.metadata.get('gates_applied', len(circuit))} applied)")
        print(format_distribution(outcome, top=args.top))
    
    if args.plot is not None:
        from qmesh.analysis.plots import plot_distribution
        plot_distribution(outcome, args.plot)
        logger.info(f"Saved distribution plot to {args.plot}")
    
    return EXIT_OK


def cmd_optimize(args: argparse.Namespace, config: Config) -> int:
    circuit = load_circuit(args.file)
    fuse = args.fuse_rotations or config.simulator.fuse_rotations
    optimized, report = CircuitOptimizer(fuse_rotations=fuse).optimize_with_report(circuit)
    
    if args.output is not None:
        save_circuit(optimized, args.output)
        print(format_optimization_report(report))
        print(f"Optimized circuit written to {args.output}")
    else:
        # Keep stdout parseable as JSON
        print(format_optimization_report(report), file=sys.stderr)
        print(dumps_circuit(optimized))
    return EXIT_OK


def cmd_benchmark(args: argparse.Namespace, config: Config) -> int:
    sim_config = config.simulator
    if args.backend is not None:
        sim_config = sim_config.model_copy(update={"backend": args.backend})
    
    result = run_benchmark(
        args.qubits,
        depth=args.depth,
        config=sim_config,
        shots=args.shots,
        seed=args.seed,
        output_path=args.output,
    )
    print(result.format_summary())
    return EXIT_OK


def cmd_visualize(args: argparse.Namespace, config: Config) -> int:
    circuit = load_circuit(args.file)
    print(format_circuit_summary(circuit))
    print()
    print(to_text(circuit, max_width=args.width, use_ascii=args.ascii))
    return EXIT_OK


def backend_availability(num_threads: Optional[int] = None) -> dict:
    """Backend name -> whether it can be instantiated here."""
    available = {}
    for name in BACKEND_NAMES:
        try:
            create_backend(name, num_threads).close()
            available[name] = True
        except ValueError:
            available[name] = False
    return available


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    backends = backend_availability(config.simulator.num_threads)
    available_mb = available_memory_bytes() / (1024 * 1024)
    print(format_status(config, backends, __version__, available_mb))
    return EXIT_OK


def cmd_version(args: argparse.Namespace, config: Config) -> int:
    print(f"QuantumMesh v{__version__}")
    return EXIT_OK


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    from qmesh.service.app import serve
    serve(config, host=args.host, port=args.port)
    return EXIT_OK


COMMANDS = {
    "simulate": cmd_simulate,
    "optimize": cmd_optimize,
    "benchmark": cmd_benchmark,
    "visualize": cmd_visualize,
    "status": cmd_status,
    "version": cmd_version,
    "serve": cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    
    try:
        config = Config.from_yaml(args.config) if args.config else Config()
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not load configuration {args.config}: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    
    setup_logger(
        name="qmesh",
        level=args.log_level or config.logging.level,
        log_file=args.log_file or config.logging.log_file,
        json_format=args.json_logs or config.logging.json_format,
    )
    
    try:
        return COMMANDS[args.command](args, config)
    
    except SimulationCancelled as e:
        print(f"Cancelled: {e}", file=sys.stderr)
        return EXIT_CANCELLED
    
    except NumericalDrift as e:
        logger.error(f"Numerical drift: {e}")
        print(f"Error [{e.kind}]: {e}", file=sys.stderr)
        return EXIT_NUMERICAL_DRIFT
    
    except QMeshError as e:
        print(f"Error [{e.kind}]: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        return EXIT_INPUT_ERROR


if __name__ == "__main__":
    sys.exit(main())
