"""
Equation of State for Compressible Flow

Provides the pressure / internal energy relations of the material models
used by the Euler system with an arbitrary equation of state:
- Polytropic gas (ideal gas with constant ratio of specific heats)
- Noble-Abel stiffened gas (covolume, reference energy, reference pressure)

The models form a closed tagged variant: one frozen value type carrying a
kind tag and its parameters, with evaluation dispatched on the tag. All
functions accept scalars or numpy arrays and never branch on data.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Union
import logging

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


class EquationOfStateKind(Enum):
    """Enumeration of supported equation of state models."""
    POLYTROPIC_GAS = "polytropic_gas"
    NOBLE_ABEL_STIFFENED_GAS = "noble_abel_stiffened_gas"

    @classmethod
    def from_string(cls, name: Union[str, "EquationOfStateKind"]) -> "EquationOfStateKind":
        """Parse 'polytropic gas', 'polytropic_gas', 'noble-abel-stiffened gas', ..."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("-", "_").replace(" ", "_")
        for kind in cls:
            if kind.value == key:
                return kind
        raise ValueError(f"Unknown equation of state: {name}. "
                         f"Available models: {[kind.value for kind in cls]}")


@dataclass(frozen=True)
class EquationOfState:
    """
    Tagged equation of state.

    Polytropic gas:
        p = (γ - 1) ρe,        e = p / (ρ (γ - 1))

    Noble-Abel stiffened gas, with cov = 1 - bρ:
        p = (γ - 1) (ρe - qρ) / cov - γ p∞
        e = (p + γ p∞) / (γ - 1) · cov / ρ + q

    Here ρe denotes the volumetric internal energy. Both relations are
    mutual inverses at fixed ρ on the physical domain (p > 0, 1 - bρ > 0).
    No check is performed on ρ: a state with bρ >= 1 produces meaningless
    numbers, which surface later as an invariant domain violation.
    """
    kind: EquationOfStateKind = EquationOfStateKind.POLYTROPIC_GAS
    gamma: float = 7.0 / 5.0
    b: float = 0.0
    q: float = 0.0
    pinf: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'kind', EquationOfStateKind.from_string(self.kind))
        if not self.gamma > 1.0:
            raise ValueError(f"Ratio of specific heats must be > 1, got {self.gamma}")
        if self.b < 0.0:
            raise ValueError(f"Covolume b must be non-negative, got {self.b}")
        if self.kind is EquationOfStateKind.POLYTROPIC_GAS and (self.b, self.q, self.pinf) != (0.0, 0.0, 0.0):
            raise ValueError("A polytropic gas takes no covolume, reference energy or reference pressure")

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def b_interp(self) -> float:
        """Covolume used for the linearization in the Riemann solver."""
        return self.b

    @property
    def p_interp(self) -> float:
        """Pressure shift of the linearization (p∞)."""
        return self.pinf

    @property
    def q_interp(self) -> float:
        """Reference specific internal energy of the linearization."""
        return self.q

    def pressure(self, density: ArrayLike, internal_energy: ArrayLike) -> ArrayLike:
        """Compute pressure from density and volumetric internal energy."""
        if self.kind is EquationOfStateKind.POLYTROPIC_GAS:
            return (self.gamma - 1.0) * internal_energy

        cov = 1.0 - self.b * density
        return (self.gamma - 1.0) * (internal_energy - self.q * density) / cov - self.gamma * self.pinf

    def specific_internal_energy(self, density: ArrayLike, pressure: ArrayLike) -> ArrayLike:
        """Compute specific internal energy from density and pressure."""
        if self.kind is EquationOfStateKind.POLYTROPIC_GAS:
            return pressure / (density * (self.gamma - 1.0))

        cov = 1.0 - self.b * density
        return (pressure + self.gamma * self.pinf) / (self.gamma - 1.0) * cov / density + self.q

    def internal_energy(self, density: ArrayLike, pressure: ArrayLike) -> ArrayLike:
        """Compute volumetric internal energy ρe, the inverse of pressure()."""
        if self.kind is EquationOfStateKind.POLYTROPIC_GAS:
            return density * self.specific_internal_energy(density, pressure)

        cov = 1.0 - self.b * density
        return (pressure + self.gamma * self.pinf) * cov / (self.gamma - 1.0) + self.q * density

    def speed_of_sound(self, density: ArrayLike, pressure: ArrayLike) -> ArrayLike:
        """Compute speed of sound: a = √(γ(p + p∞) / (ρ(1 - bρ)))."""
        if self.kind is EquationOfStateKind.POLYTROPIC_GAS:
            return np.sqrt(self.gamma * pressure / density)

        cov = 1.0 - self.b * density
        return np.sqrt(self.gamma * (pressure + self.pinf) / (density * cov))

    def is_admissible(self, density: ArrayLike, internal_energy: ArrayLike) -> ArrayLike:
        """Elementwise membership in the invariant domain."""
        cov = 1.0 - self.b * density
        return (density > 0.0) & (cov > 0.0) & (internal_energy - self.q * density > 0.0)

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'gamma': self.gamma,
            'covolume_b': self.b,
            'reference_sie_q': self.q,
            'reference_pressure': self.pinf,
        }


def polytropic_gas(gamma: float = 7.0 / 5.0) -> EquationOfState:
    """Create a polytropic gas equation of state."""
    eos = EquationOfState(EquationOfStateKind.POLYTROPIC_GAS, gamma=gamma)
    logger.info(f"Initialized polytropic gas: γ={gamma}")
    return eos


def noble_abel_stiffened_gas(gamma: float = 7.0 / 5.0,
                             b: float = 0.0,
                             q: float = 0.0,
                             pinf: float = 0.0) -> EquationOfState:
    """Create a Noble-Abel stiffened gas equation of state."""
    eos = EquationOfState(EquationOfStateKind.NOBLE_ABEL_STIFFENED_GAS,
                          gamma=gamma, b=b, q=q, pinf=pinf)
    logger.info(f"Initialized Noble-Abel stiffened gas: γ={gamma}, b={b}, q={q}, p∞={pinf}")
    return eos


def create_equation_of_state(kind: Union[str, EquationOfStateKind] = "polytropic_gas",
                             **kwargs) -> EquationOfState:
    """
    Factory function for creating equations of state.

    Args:
        kind: Equation of state model
        **kwargs: gamma, and for the stiffened gas b, q, pinf

    Returns:
        Configured equation of state
    """
    kind = EquationOfStateKind.from_string(kind)
    if kind is EquationOfStateKind.POLYTROPIC_GAS:
        return polytropic_gas(kwargs.get('gamma', 7.0 / 5.0))
    return noble_abel_stiffened_gas(**kwargs)


# Predefined materials
AIR = EquationOfState(EquationOfStateKind.POLYTROPIC_GAS, gamma=1.4)

MONATOMIC_GAS = EquationOfState(EquationOfStateKind.POLYTROPIC_GAS, gamma=5.0 / 3.0)

# Liquid water, Le Métayer & Saurel (2016) NASG parameters (SI units)
LIQUID_WATER = EquationOfState(EquationOfStateKind.NOBLE_ABEL_STIFFENED_GAS,
                               gamma=1.19, b=6.61e-4, q=-1.177788e6, pinf=7.028e8)
