"""Benchmarks."""

from qmesh.experiments.benchmark import BenchmarkResult, run_benchmark

__all__ = ["BenchmarkResult", "run_benchmark"]
