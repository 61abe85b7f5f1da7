"""
Compressible flow time stepping core.

Equation of state, wavespeed estimates, parallel reductions, the reference
hyperbolic update and the Runge-Kutta time integrator.
"""

from .equations.equation_state import EquationOfState, EquationOfStateKind, create_equation_of_state
from .numerics.riemann_solvers import RiemannSolver, ExactRiemannSolver, create_riemann_solver
from .parallel_computing import WavespeedReduction, AtomicScalar, ReductionOperation
from .hyperbolic_module import HyperbolicModule, AdvanceResult
from .time_integration import TimeIntegrator, StepResult, ButcherTableau, TABLEAUX, create_time_integrator
from .core.config import TimeSteppingScheme, CFLRecoveryStrategy, StepContext, SolverConfig
from .validation_cases import ShockTubeCase

__all__ = [
    'EquationOfState',
    'EquationOfStateKind',
    'create_equation_of_state',
    'RiemannSolver',
    'ExactRiemannSolver',
    'create_riemann_solver',
    'WavespeedReduction',
    'AtomicScalar',
    'ReductionOperation',
    'HyperbolicModule',
    'AdvanceResult',
    'TimeIntegrator',
    'StepResult',
    'ButcherTableau',
    'TABLEAUX',
    'create_time_integrator',
    'TimeSteppingScheme',
    'CFLRecoveryStrategy',
    'StepContext',
    'SolverConfig',
    'ShockTubeCase',
]
