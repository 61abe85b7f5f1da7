"""Configuration management for explicit time stepping of compressible flow."""

import json
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Union
from dataclasses import dataclass, field

from ..equations.equation_state import EquationOfState, EquationOfStateKind, create_equation_of_state
from ..validation_cases import SHOCK_TUBE_VARIANTS
from ...utils.parallel import ParallelConfig

# Optional YAML support
try:
    import yaml
    HAS_YAML = True
except ImportError:
    yaml = None
    HAS_YAML = False


def _normalize(name: str) -> str:
    return str(name).strip().lower().replace("-", "_").replace(" ", "_")


class TimeSteppingScheme(Enum):
    """Explicit strong-stability-preserving Runge-Kutta schemes."""
    SSPRK_33 = "ssprk_33"
    ERK_33 = "erk_33"
    ERK_43 = "erk_43"

    @classmethod
    def from_string(cls, name: Union[str, "TimeSteppingScheme"]) -> "TimeSteppingScheme":
        """Parse 'ssprk_33', 'ssprk 33', 'SSPRK-33', ..."""
        if isinstance(name, cls):
            return name
        key = _normalize(name)
        for scheme in cls:
            if scheme.value == key:
                return scheme
        raise ValueError(f"Unknown time stepping scheme: {name}. "
                         f"Available schemes: {[scheme.value for scheme in cls]}")


class CFLRecoveryStrategy(Enum):
    """Reaction to an invariant domain violation during a step."""
    NONE = "none"
    BANG_BANG_CONTROL = "bang_bang_control"

    @classmethod
    def from_string(cls, name: Union[str, "CFLRecoveryStrategy"]) -> "CFLRecoveryStrategy":
        """Parse 'none', 'bang_bang_control', 'bang bang control', ..."""
        if isinstance(name, cls):
            return name
        key = _normalize(name)
        for strategy in cls:
            if strategy.value == key:
                return strategy
        raise ValueError(f"Unknown CFL recovery strategy: {name}. "
                         f"Available strategies: {[strategy.value for strategy in cls]}")


@dataclass(frozen=True)
class StepContext:
    """Immutable configuration of the time integrator."""
    scheme: TimeSteppingScheme = TimeSteppingScheme.SSPRK_33
    recovery_strategy: CFLRecoveryStrategy = CFLRecoveryStrategy.BANG_BANG_CONTROL
    cfl_min: float = 0.45
    cfl_max: float = 0.90

    def __post_init__(self):
        object.__setattr__(self, 'scheme', TimeSteppingScheme.from_string(self.scheme))
        object.__setattr__(self, 'recovery_strategy',
                           CFLRecoveryStrategy.from_string(self.recovery_strategy))
        if not self.cfl_min > 0.0:
            raise ValueError(f"cfl_min must be positive, got {self.cfl_min}")
        if self.cfl_min > self.cfl_max:
            raise ValueError(f"cfl_min ({self.cfl_min}) must not exceed cfl_max ({self.cfl_max})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scheme': self.scheme.value,
            'recovery_strategy': self.recovery_strategy.value,
            'cfl_min': self.cfl_min,
            'cfl_max': self.cfl_max,
        }


@dataclass
class EquationOfStateConfig:
    """Configuration of the material model."""
    kind: str = "polytropic_gas"
    gamma: float = 1.4
    covolume_b: float = 0.0
    reference_sie_q: float = 0.0
    reference_pressure: float = 0.0

    def __post_init__(self):
        self.kind = EquationOfStateKind.from_string(self.kind).value

    def create(self) -> EquationOfState:
        """Instantiate the configured equation of state."""
        if self.kind == EquationOfStateKind.POLYTROPIC_GAS.value:
            return create_equation_of_state(self.kind, gamma=self.gamma)
        return create_equation_of_state(self.kind, gamma=self.gamma, b=self.covolume_b,
                                        q=self.reference_sie_q, pinf=self.reference_pressure)


@dataclass
class ProblemConfig:
    """Configuration of the shock tube problem."""
    case: str = "sod"
    n_cells: int = 200
    final_time: float = 0.2
    boundary: str = "outflow"

    def __post_init__(self):
        if self.case not in SHOCK_TUBE_VARIANTS:
            raise ValueError(f"Unknown shock tube case: {self.case}. "
                             f"Available cases: {list(SHOCK_TUBE_VARIANTS)}")
        if self.n_cells < 2:
            raise ValueError(f"n_cells must be at least 2, got {self.n_cells}")
        if self.final_time <= 0.0:
            raise ValueError(f"final_time must be positive, got {self.final_time}")
        if self.boundary not in ("outflow", "periodic"):
            raise ValueError(f"Unknown boundary condition: {self.boundary}")


@dataclass
class SolverConfig:
    """Main configuration of a time stepping run."""
    step: StepContext = field(default_factory=StepContext)
    equation_of_state: EquationOfStateConfig = field(default_factory=EquationOfStateConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    problem: ProblemConfig = field(default_factory=ProblemConfig)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'SolverConfig':
        """Load configuration from YAML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                if not HAS_YAML:
                    raise ImportError(
                        "YAML support not available. Install PyYAML with: pip install PyYAML\n"
                        "Or convert your configuration to JSON format."
                    )
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SolverConfig':
        """Create configuration from dictionary."""
        return cls(
            step=StepContext(**data.get('step', {})),
            equation_of_state=EquationOfStateConfig(**data.get('equation_of_state', {})),
            parallel=ParallelConfig(**data.get('parallel', {})),
            problem=ProblemConfig(**data.get('problem', {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'step': self.step.to_dict(),
            'equation_of_state': {
                'kind': self.equation_of_state.kind,
                'gamma': self.equation_of_state.gamma,
                'covolume_b': self.equation_of_state.covolume_b,
                'reference_sie_q': self.equation_of_state.reference_sie_q,
                'reference_pressure': self.equation_of_state.reference_pressure,
            },
            'parallel': self.parallel.to_dict(),
            'problem': {
                'case': self.problem.case,
                'n_cells': self.problem.n_cells,
                'final_time': self.problem.final_time,
                'boundary': self.problem.boundary,
            },
        }

    def save(self, config_path: Union[str, Path]) -> None:
        """Save configuration to file."""
        config_path = Path(config_path)

        with open(config_path, 'w') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                if not HAS_YAML:
                    raise ImportError(
                        "YAML support not available. Install PyYAML with: pip install PyYAML\n"
                        "Or save as JSON format instead."
                    )
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            elif config_path.suffix.lower() == '.json':
                json.dump(self.to_dict(), f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")
