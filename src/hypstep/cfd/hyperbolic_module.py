"""
First-Order Invariant-Domain Preserving Hyperbolic Update

Reference implementation of the elementary forward step used by the time
integrator on a uniform one-dimensional grid:

    U_i^+ = U_i - τ/m_i Σ_j [ c_ij (F(U_j) - F(U_i)) - d_ij (U_j - U_i) ]

with c_{i,i±1} = ±1/2, the graph viscosity d_ij = λ_max(i, j)/2 taken from
the guaranteed maximal wavespeed estimate, and lumped mass m_i = Δx. The
update keeps every state inside the invariant domain as long as

    τ <= m_i / (2 |d_ii|),    d_ii = -Σ_{j≠i} d_ij,

which is the invariant domain bound τ_max reported to the caller together
with the step cfl · τ_max proposed for the requested CFL number.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional
import logging

from .equations.equation_state import EquationOfState
from .equations.primitive_conservative import (
    DENSITY, PROBLEM_DIMENSION, flux, internal_energy, riemann_data
)
from .numerics.riemann_solvers import RiemannSolver
from .parallel_computing import WavespeedReduction

logger = logging.getLogger(__name__)

BOUNDARY_CONDITIONS = ("outflow", "periodic")


@dataclass
class AdvanceResult:
    """Outcome of one elementary forward step."""
    state: np.ndarray  # Advanced state U_out
    tau: float  # Admissible step size of U_in for the requested CFL number
    violated: bool  # Invariant domain bound exceeded or invariant domain left
    max_wavespeed: float = 0.0
    tau_max: float = np.inf  # Invariant domain bound of U_in (CFL number 1)


class HyperbolicModule:
    """
    Elementary forward step of the Euler system on a uniform 1-D grid.

    advance() is pure in its input state: calling it twice with the same
    arguments yields the same result, which the recovery protocol of the
    time integrator relies on.
    """

    def __init__(self,
                 eos: EquationOfState,
                 n_cells: int,
                 length: float = 1.0,
                 boundary: str = "outflow",
                 riemann_solver: Optional[RiemannSolver] = None,
                 reduction: Optional[WavespeedReduction] = None):
        """
        Initialize the hyperbolic module.

        Args:
            eos: Equation of state
            n_cells: Number of cells
            length: Domain length
            boundary: 'outflow' (zero gradient) or 'periodic'
            riemann_solver: Wavespeed estimate (defaults to GMS for `eos`)
            reduction: Parallel reduction for the global bounds
        """
        if n_cells < 2:
            raise ValueError(f"At least two cells are required, got {n_cells}")
        if length <= 0.0:
            raise ValueError(f"Domain length must be positive, got {length}")
        if boundary not in BOUNDARY_CONDITIONS:
            raise ValueError(f"Unknown boundary condition: {boundary}. "
                             f"Available conditions: {list(BOUNDARY_CONDITIONS)}")

        self.eos = eos
        self.n_cells = n_cells
        self.length = length
        self.boundary = boundary
        self.dx = length / n_cells
        self.lumped_mass = np.full(n_cells, self.dx)

        self.riemann_solver = riemann_solver or RiemannSolver.from_equation_of_state(eos)
        self.reduction = reduction or WavespeedReduction()

        # Statistics
        self.n_advance_calls = 0
        self.n_violations = 0

        logger.info(f"Initialized hyperbolic module: {n_cells} cells, dx={self.dx:.3e}, "
                    f"boundary={boundary}, eos={eos.name}")

    @property
    def cell_centers(self) -> np.ndarray:
        return (np.arange(self.n_cells) + 0.5) * self.dx

    def _extend(self, U: np.ndarray) -> np.ndarray:
        """Append one ghost cell on each side."""
        mode = 'wrap' if self.boundary == "periodic" else 'edge'
        return np.pad(U, ((1, 1), (0, 0)), mode=mode)

    def edge_wavespeeds(self, U: np.ndarray):
        """
        Maximal wavespeed bound of every interface.

        Interface k separates the extended cells k and k+1, i.e. it is the
        left interface of cell k. The estimate is evaluated in batches, one
        batch per work chunk.

        Returns:
            (wavespeeds of the n_cells + 1 interfaces, global maximum)
        """
        U_ext = self._extend(U)
        state = riemann_data(U_ext, self.eos, self.riemann_solver.b_interp)
        n_edges = self.n_cells + 1
        lambdas = np.empty(n_edges)

        def kernel(start: int, end: int) -> np.ndarray:
            left = state.take(np.arange(start, end))
            right = state.take(np.arange(start + 1, end + 1))
            lambdas[start:end] = self.riemann_solver.compute(left, right)
            return lambdas[start:end]

        max_wavespeed = self.reduction.reduce(kernel, n_edges, "max")
        return lambdas, max_wavespeed

    def admissible_step(self, d_ij: np.ndarray, cfl: float = 1.0) -> float:
        """τ = cfl · min_i m_i / (2 |d_ii|)."""
        d_ii = d_ij[:-1] + d_ij[1:]
        mass = self.lumped_mass

        def kernel(start: int, end: int) -> np.ndarray:
            with np.errstate(divide='ignore'):
                return mass[start:end] / (2.0 * d_ii[start:end])

        return cfl * self.reduction.reduce(kernel, self.n_cells, "min")

    def advance(self,
                U_in: np.ndarray,
                tau_trial: Optional[float] = None,
                cfl_trial: float = 1.0) -> AdvanceResult:
        """
        Perform one elementary forward step.

        Args:
            U_in: Conserved state, shape (n_cells, 3); not modified
            tau_trial: Step size to use; None selects the admissible step
            cfl_trial: CFL number scaling the admissible step

        Returns:
            AdvanceResult with the new state, the admissible step size of
            U_in (scaled by cfl_trial and unscaled) and the violation flag.
            A given tau_trial counts as violating only above the unscaled
            bound.
        """
        if U_in.shape != (self.n_cells, PROBLEM_DIMENSION):
            raise ValueError(f"State has shape {U_in.shape}, expected {(self.n_cells, PROBLEM_DIMENSION)}")

        self.n_advance_calls += 1

        lambdas, max_wavespeed = self.edge_wavespeeds(U_in)
        d_ij = 0.5 * lambdas
        tau_max = self.admissible_step(d_ij)
        tau_admissible = cfl_trial * tau_max

        if tau_trial is None:
            tau = tau_admissible
            violated = False
        else:
            # Checked against the invariant domain bound, not the CFL scaled step
            tau = tau_trial
            violated = not tau_trial <= tau_max

        U_ext = self._extend(U_in)
        F_ext = flux(U_ext, self.eos)
        numerical_flux = (0.5 * (F_ext[:-1] + F_ext[1:]) -
                          d_ij[:, np.newaxis] * (U_ext[1:] - U_ext[:-1]))

        U_out = U_in - (tau / self.lumped_mass)[:, np.newaxis] * (numerical_flux[1:] - numerical_flux[:-1])

        admissible = self.eos.is_admissible(U_out[:, DENSITY], internal_energy(U_out))
        if not np.all(admissible):
            logger.debug(f"Invariant domain violated in {np.count_nonzero(~admissible)} cells")
            violated = True

        if violated:
            self.n_violations += 1

        logger.debug(f"advance: tau={tau:.6e}, tau_max={tau_max:.6e}, "
                     f"lambda_max={max_wavespeed:.6e}, violated={violated}")

        return AdvanceResult(state=U_out, tau=tau_admissible, violated=violated,
                             max_wavespeed=max_wavespeed, tau_max=tau_max)

    def total_conserved(self, U: np.ndarray) -> np.ndarray:
        """Integral of every conserved component over the domain."""
        return self.lumped_mass @ U

    def get_statistics(self) -> dict:
        return {
            'advance_calls': self.n_advance_calls,
            'violations': self.n_violations,
            **self.reduction.get_statistics(),
        }
