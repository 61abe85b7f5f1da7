"""
Shock Tube Validation Cases

Reference Riemann problems on the unit interval used to exercise the
wavespeed estimate and the time integrator:
- Sod: shock, contact and rarefaction
- Lax: strong shock with non-zero left velocity
- 123: two strong rarefactions with a near-vacuum star region (Toro test 2)
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Tuple
import logging

from .equations.equation_state import EquationOfState
from .equations.primitive_conservative import PrimitiveState, conserved_from_primitive, make_primitive_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShockTubeState:
    """Primitive state on one side of the diaphragm."""
    density: float
    velocity: float
    pressure: float


# variant: (left, right, diaphragm position, final time)
SHOCK_TUBE_VARIANTS: Dict[str, Tuple[ShockTubeState, ShockTubeState, float, float]] = {
    "sod": (ShockTubeState(1.0, 0.0, 1.0), ShockTubeState(0.125, 0.0, 0.1), 0.5, 0.2),
    "lax": (ShockTubeState(0.445, 0.698, 3.528), ShockTubeState(0.5, 0.0, 0.571), 0.5, 0.14),
    "123": (ShockTubeState(1.0, -2.0, 0.4), ShockTubeState(1.0, 2.0, 0.4), 0.5, 0.15),
}


class ShockTubeCase:
    """
    Shock tube validation case (Sod problem and variants).

    Validates unsteady shock wave, contact discontinuity,
    and expansion fan propagation.
    """

    def __init__(self, case_variant: str = "sod"):
        """Initialize shock tube case."""
        case_variant = str(case_variant).lower()
        if case_variant not in SHOCK_TUBE_VARIANTS:
            raise ValueError(f"Unknown shock tube case: {case_variant}. "
                             f"Available cases: {list(SHOCK_TUBE_VARIANTS)}")

        self.case_variant = case_variant
        self.left_state, self.right_state, self.diaphragm, self.solution_time = \
            SHOCK_TUBE_VARIANTS[case_variant]

        logger.info(f"Shock tube case '{case_variant}': left={self.left_state}, "
                    f"right={self.right_state}, t_end={self.solution_time}")

    @property
    def name(self) -> str:
        return f"Shock Tube - {self.case_variant.upper()}"

    def riemann_states(self, eos: EquationOfState) -> Tuple[PrimitiveState, PrimitiveState]:
        """Primitive states of the initial discontinuity."""
        left = make_primitive_state(self.left_state.density, self.left_state.velocity,
                                    self.left_state.pressure, eos)
        right = make_primitive_state(self.right_state.density, self.right_state.velocity,
                                     self.right_state.pressure, eos)
        return left, right

    def initial_state(self, x: np.ndarray, eos: EquationOfState) -> np.ndarray:
        """
        Conserved initial state at the points x.

        Args:
            x: Cell centers
            eos: Equation of state

        Returns:
            Conserved states, shape (len(x), 3)
        """
        is_left = np.asarray(x) < self.diaphragm
        rho = np.where(is_left, self.left_state.density, self.right_state.density)
        u = np.where(is_left, self.left_state.velocity, self.right_state.velocity)
        p = np.where(is_left, self.left_state.pressure, self.right_state.pressure)
        return conserved_from_primitive(rho, u, p, eos)
