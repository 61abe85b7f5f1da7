"""
Visualization utilities for one-dimensional flow profiles.

This module provides functions for plotting density, velocity and
pressure profiles of a conserved state using matplotlib.
"""

import logging
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from hypstep.cfd.equations.equation_state import EquationOfState
from hypstep.cfd.equations.primitive_conservative import primitive_from_conserved

# Configure logging
logger = logging.getLogger(__name__)


def plot_profiles(
    x: np.ndarray,
    U: np.ndarray,
    eos: EquationOfState,
    title: Optional[str] = None,
    reference: Optional[np.ndarray] = None,
    save_path: Optional[str] = None,
    show: bool = False,
    marker_size: float = 2.0,
):
    """Plot density, velocity and pressure of a conserved state.

    Args:
        x: Cell centers
        U: Conserved states, shape (len(x), 3)
        eos: Equation of state used to recover the pressure
        title: Optional figure title
        reference: Optional reference state (e.g. the initial condition), drawn dashed
        save_path: Optional path to save the figure
        show: Whether to open an interactive window
        marker_size: Size of the solution markers

    Returns:
        The matplotlib figure
    """
    fig, axes = plt.subplots(3, 1, sharex=True, figsize=(8, 9))
    labels = ("Density", "Velocity", "Pressure")

    profiles = primitive_from_conserved(U, eos)
    reference_profiles = primitive_from_conserved(reference, eos) if reference is not None else None

    for k, (ax, label) in enumerate(zip(axes, labels)):
        ax.plot(x, profiles[k], 'o-', markersize=marker_size, linewidth=1.0, label='solution')
        if reference_profiles is not None:
            ax.plot(x, reference_profiles[k], 'k--', linewidth=0.8, label='initial')
        ax.set_ylabel(label)
        ax.grid(True, alpha=0.3)

    axes[0].legend(loc='best')
    axes[-1].set_xlabel('x')
    if title:
        fig.suptitle(title)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150)
        logger.info(f"Saved profile plot to {save_path}")

    if show:
        plt.show()

    return fig
