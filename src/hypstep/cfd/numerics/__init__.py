"""Numerical methods for wavespeed estimation."""

from .riemann_solvers import RiemannSolver, ExactRiemannSolver, create_riemann_solver

__all__ = ['RiemannSolver', 'ExactRiemannSolver', 'create_riemann_solver']
