"""
Plotting utilities for measurement outcomes.
"""

from pathlib import Path
from typing import Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend for headless environments
import matplotlib.pyplot as plt

from qmesh.io.formats import MeasurementOutcome, int_to_bitstring


def plot_distribution(
    outcome: MeasurementOutcome,
    output_path: Optional[Path] = None,
    max_states: int = 32,
) -> plt.Figure:
    """
    Bar plot of exact probabilities, with sampled frequencies alongside.
    
    Args:
        outcome: Measurement outcome
        output_path: Optional path to save figure
        max_states: Show only the most probable states beyond this many
    
    Returns:
        Matplotlib figure object
    """
    probs = outcome.probabilities
    n_states = len(probs)
    
    measured = np.zeros(n_states)
    if outcome.is_sampled:
        for label, count in outcome.counts.items():
            measured[int(label, 2)] = count / outcome.shots
    
    if n_states > max_states:
        indices = np.sort(np.argsort(probs)[-max_states:])
    else:
        indices = np.arange(n_states)
    labels = [int_to_bitstring(int(i), outcome.num_qubits) for i in indices]
    
    fig, ax = plt.subplots(figsize=(max(6, 0.4 * len(labels) + 2), 4.5))
    x = np.arange(len(labels))
    
    if outcome.is_sampled:
        width_bar = 0.4
        ax.bar(x - width_bar / 2, probs[indices], width_bar,
               label='Exact', color='#4ECDC4', alpha=0.8, edgecolor='black', linewidth=0.5)
        ax.bar(x + width_bar / 2, measured[indices], width_bar,
               label=f'Sampled ({outcome.shots} shots)', color='#FF6B6B', alpha=0.8,
               edgecolor='black', linewidth=0.5)
        ax.legend(loc='best')
    else:
        ax.bar(x, probs[indices], 0.6, color='#2E86AB', alpha=0.85,
               edgecolor='black', linewidth=0.5)
    
    ax.set_xlabel('Basis State', fontweight='bold')
    ax.set_ylabel('Probability', fontweight='bold')
    ax.set_title(f'Measurement Distribution ({outcome.num_qubits} qubits)', fontweight='bold')
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=45 if len(labels) > 8 else 0, family='monospace')
    ax.set_ylim(0, 1.05)
    ax.grid(True, alpha=0.3, axis='y', linestyle=':', linewidth=0.8)
    
    plt.tight_layout()
    
    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, bbox_inches='tight', dpi=150)
    
    return fig
