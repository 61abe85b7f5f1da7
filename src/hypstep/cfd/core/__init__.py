"""Configuration of the time stepping core."""

from .config import (
    TimeSteppingScheme,
    CFLRecoveryStrategy,
    StepContext,
    EquationOfStateConfig,
    ProblemConfig,
    SolverConfig,
)

__all__ = [
    'TimeSteppingScheme',
    'CFLRecoveryStrategy',
    'StepContext',
    'EquationOfStateConfig',
    'ProblemConfig',
    'SolverConfig',
]
