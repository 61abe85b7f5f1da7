"""
Conservative and Primitive Variable Conversion for Compressible Flow

Provides conversion between the conserved state [rho, m, E] of the
one-dimensional Euler system and primitive quantities, together with the
construction of the per-interface primitive states consumed by the
Riemann solver.
"""

import numpy as np
from typing import NamedTuple, Tuple, Union
import logging

from .equation_state import EquationOfState

logger = logging.getLogger(__name__)

# Component layout of the conserved state vector
DENSITY = 0
MOMENTUM = 1
TOTAL_ENERGY = 2
PROBLEM_DIMENSION = 3


class PrimitiveState(NamedTuple):
    """
    Primitive state on one side of an interface.

    Every field is either a scalar or an array of equal length (a batch of
    interfaces evaluated at once). The pressure is the shifted pressure
    p + p∞ of the linearization. The Riemann solver assumes rho, p and a
    to be strictly positive.
    """
    rho: Union[float, np.ndarray]
    u: Union[float, np.ndarray]
    p: Union[float, np.ndarray]
    gamma: Union[float, np.ndarray]
    a: Union[float, np.ndarray]

    def flipped(self) -> "PrimitiveState":
        """Mirror image of the state (velocity sign reversed)."""
        return self._replace(u=-self.u)

    def take(self, indices: np.ndarray) -> "PrimitiveState":
        """Gather a sub-batch."""
        return PrimitiveState(*(np.asarray(field)[indices] for field in self))


def make_primitive_state(rho: float, u: float, p: float, eos: EquationOfState) -> PrimitiveState:
    """
    Build the Riemann solver state of (rho, u, p) for the given model.

    The stored pressure is the shifted pressure p + p∞ (see riemann_data).
    """
    e_vol = eos.internal_energy(rho, p)
    gamma = surrogate_gamma(rho, p, e_vol, eos.b_interp, eos.q_interp, eos.p_interp)
    a = surrogate_speed_of_sound(rho, p, gamma, eos.b_interp, eos.p_interp)
    return PrimitiveState(rho, u, p + eos.p_interp, gamma, a)


def surrogate_gamma(rho, p, e_vol, b_interp: float = 0.0, q_interp: float = 0.0, p_interp: float = 0.0):
    """
    Effective adiabatic exponent of the linearization,

        γ = 1 + (p + p∞)(1 - bρ) / (ρe - qρ - p∞(1 - bρ)).
    """
    cov = 1.0 - b_interp * rho
    return 1.0 + (p + p_interp) * cov / (e_vol - q_interp * rho - p_interp * cov)


def surrogate_speed_of_sound(rho, p, gamma, b_interp: float = 0.0, p_interp: float = 0.0):
    """Effective speed of sound a = √(γ (p + p∞) / (ρ (1 - bρ)))."""
    return np.sqrt(gamma * (p + p_interp) / (rho * (1.0 - b_interp * rho)))


def internal_energy(U: np.ndarray) -> np.ndarray:
    """Volumetric internal energy ρe = E - m²/(2ρ)."""
    rho = U[..., DENSITY]
    m = U[..., MOMENTUM]
    return U[..., TOTAL_ENERGY] - 0.5 * m * m / rho


def primitive_from_conserved(U: np.ndarray, eos: EquationOfState) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert conserved states to primitive variables.

    Args:
        U: Conserved states, shape (n, 3)
        eos: Equation of state

    Returns:
        (density, velocity, pressure)
    """
    rho = U[..., DENSITY]
    u = U[..., MOMENTUM] / rho
    p = eos.pressure(rho, internal_energy(U))
    return rho, u, p


def conserved_from_primitive(rho, u, p, eos: EquationOfState) -> np.ndarray:
    """
    Convert primitive variables to conserved states.

    Args:
        rho: Density
        u: Velocity
        p: Pressure
        eos: Equation of state

    Returns:
        Conserved states, shape (n, 3) (or (3,) for scalar input)
    """
    rho, u, p = np.broadcast_arrays(np.asarray(rho, dtype=float),
                                    np.asarray(u, dtype=float),
                                    np.asarray(p, dtype=float))
    U = np.empty(rho.shape + (PROBLEM_DIMENSION,))
    U[..., DENSITY] = rho
    U[..., MOMENTUM] = rho * u
    U[..., TOTAL_ENERGY] = eos.internal_energy(rho, p) + 0.5 * rho * u * u
    return U


def riemann_data(U: np.ndarray, eos: EquationOfState, b_interp: float = None) -> PrimitiveState:
    """
    Build the batch of primitive states entering the Riemann solver.

    The model is linearized as a Noble-Abel gas in the shifted pressure
    p + p∞ and shifted energy ρe - qρ, which is what the returned pressure
    field holds. For a polytropic or Noble-Abel stiffened gas the surrogate
    exponent and sound speed coincide with γ and the model's sound speed.

    Args:
        U: Conserved states, shape (n, 3)
        eos: Equation of state
        b_interp: Covolume of the linearization (defaults to the model's)

    Returns:
        PrimitiveState batch of length n
    """
    if b_interp is None:
        b_interp = eos.b_interp

    rho = U[..., DENSITY]
    u = U[..., MOMENTUM] / rho
    e_vol = internal_energy(U)
    p = eos.pressure(rho, e_vol)
    gamma = surrogate_gamma(rho, p, e_vol, b_interp, eos.q_interp, eos.p_interp)
    a = surrogate_speed_of_sound(rho, p, gamma, b_interp, eos.p_interp)
    return PrimitiveState(rho, u, p + eos.p_interp, gamma, a)


def flux(U: np.ndarray, eos: EquationOfState) -> np.ndarray:
    """One-dimensional Euler flux [m, m u + p, u (E + p)]."""
    rho, u, p = primitive_from_conserved(U, eos)
    F = np.empty_like(U)
    F[..., DENSITY] = U[..., MOMENTUM]
    F[..., MOMENTUM] = U[..., MOMENTUM] * u + p
    F[..., TOTAL_ENERGY] = u * (U[..., TOTAL_ENERGY] + p)
    return F
