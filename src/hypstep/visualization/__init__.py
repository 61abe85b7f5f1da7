"""Visualization functionality for hypstep."""

from hypstep.visualization.profile_viz import plot_profiles

__all__ = ["plot_profiles"]
