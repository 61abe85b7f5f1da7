"""hypstep: explicit time advancement of compressible flow.

Guaranteed maximal wavespeed estimates, parallel step size reductions and
SSP Runge-Kutta time integration with CFL recovery.
"""

__version__ = "0.1.0"

from hypstep.cfd.equations.equation_state import EquationOfState, polytropic_gas, noble_abel_stiffened_gas
from hypstep.cfd.numerics.riemann_solvers import RiemannSolver
from hypstep.cfd.parallel_computing import WavespeedReduction
from hypstep.cfd.hyperbolic_module import HyperbolicModule
from hypstep.cfd.time_integration import TimeIntegrator, create_time_integrator
from hypstep.cfd.core.config import StepContext, SolverConfig

__all__ = [
    "EquationOfState",
    "polytropic_gas",
    "noble_abel_stiffened_gas",
    "RiemannSolver",
    "WavespeedReduction",
    "HyperbolicModule",
    "TimeIntegrator",
    "create_time_integrator",
    "StepContext",
    "SolverConfig",
]
