"""
Ready-made circuits: Bell and GHZ state preparation, the quantum Fourier
transform, and synthetic circuits for benchmarking and cross-checks.
"""

from typing import Optional

import numpy as np

from qmesh.circuits.catalog import CATALOG
from qmesh.circuits.model import Circuit


def bell_state() -> Circuit:
    """(|00⟩ + |11⟩)/√2: Hadamard on qubit 0, then CNOT(0, 1)."""
    return Circuit(2, metadata={"name": "bell"}).h(0).cnot(0, 1)


def ghz_state(num_qubits: int) -> Circuit:
    """(|0…0⟩ + |1…1⟩)/√2: Hadamard on qubit 0, then CNOT(0, k) for k ≥ 1."""
    circuit = Circuit(num_qubits, metadata={"name": "ghz"})
    circuit.h(0)
    for k in range(1, num_qubits):
        circuit.cnot(0, k)
    return circuit


def append_controlled_phase(circuit: Circuit, control: int, target: int, theta: float) -> Circuit:
    """
    Controlled-PhaseShift(θ) decomposed into catalog gates:
    P(θ/2)_c · CX · P(-θ/2)_t · CX · P(θ/2)_t.
    """
    circuit.phase(control, theta / 2)
    circuit.cnot(control, target)
    circuit.phase(target, -theta / 2)
    circuit.cnot(control, target)
    circuit.phase(target, theta / 2)
    return circuit


def qft(num_qubits: int, swaps: bool = True) -> Circuit:
    """
    Quantum Fourier transform on the full register.
    
    Maps basis state |x⟩ to Σ_k e^{2πi·xk/2^n} |k⟩ / √(2^n), with qubit n-1
    as the most significant bit. With swaps=False the output qubit order is
    reversed.
    """
    circuit = Circuit(num_qubits, metadata={"name": "qft"})
    for j in reversed(range(num_qubits)):
        circuit.h(j)
        for k in reversed(range(j)):
            append_controlled_phase(circuit, k, j, np.pi / 2 ** (j - k))
    
    if swaps:
        for q in range(num_qubits // 2):
            circuit.swap(q, num_qubits - 1 - q)
    return circuit


def benchmark_circuit(num_qubits: int, depth: int = 1) -> Circuit:
    """
    Synthetic benchmark: per layer, a Hadamard on every qubit followed by a
    CNOT chain (k, k+1).
    """
    circuit = Circuit(num_qubits, metadata={"name": "benchmark", "depth": depth})
    for _ in range(depth):
        for q in range(num_qubits):
            circuit.h(q)
        for q in range(num_qubits - 1):
            circuit.cnot(q, q + 1)
    return circuit


def random_circuit(
    num_qubits: int,
    num_gates: int,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> Circuit:
    """
    Random circuit drawn uniformly over the catalog kinds that fit the
    register, with random qubits and angles in [-2π, 2π).
    """
    if rng is None:
        rng = np.random.default_rng(seed)
    
    kinds = [spec for spec in CATALOG.values() if spec.num_qubits <= num_qubits]
    circuit = Circuit(num_qubits, metadata={"name": "random", "seed": seed})
    
    for _ in range(num_gates):
        spec = kinds[int(rng.integers(0, len(kinds)))]
        qubits = rng.choice(num_qubits, size=spec.num_qubits, replace=False)
        params = rng.uniform(-2 * np.pi, 2 * np.pi, size=spec.num_params)
        circuit.append(spec.kind, [int(q) for q in qubits], [float(p) for p in params])
    
    return circuit


__all__ = [
    "bell_state",
    "ghz_state",
    "append_controlled_phase",
    "qft",
    "benchmark_circuit",
    "random_circuit",
]
