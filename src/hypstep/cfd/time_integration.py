"""
Explicit Time Integration with CFL Recovery

Implements the strong-stability-preserving explicit Runge-Kutta schemes
used to advance a hyperbolic system, together with the recovery protocol
applied when a step leaves the invariant domain:
- ssprk_33: third-order SSP Runge-Kutta (Shu-Osher)
- erk_33: three-stage, third-order explicit Runge-Kutta
- erk_43: four-stage, third-order explicit Runge-Kutta

Every scheme is written in terms of one elementary forward step
E(V) = advance(V, τ, cfl) of the hyperbolic module. Stage s is

    U^(s) = U + Σ_k a_sk (E(U^(k)) - U^(k)),

and the update is U^+ = U + Σ_k b_k (E(U^(k)) - U^(k)). For ssprk_33 this
is the convex Shu-Osher form

    U1 = E(U),  U2 = 3/4 U + 1/4 E(U1),  U^+ = 1/3 U + 2/3 E(U2),

so every accepted stage is a convex combination of admissible states.
"""

import numpy as np
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass
import logging

from .core.config import CFLRecoveryStrategy, StepContext, TimeSteppingScheme
from .hyperbolic_module import AdvanceResult

logger = logging.getLogger(__name__)

# advance(U_in, tau_trial, cfl_trial) -> AdvanceResult
AdvanceOperator = Callable[[np.ndarray, Optional[float], float], AdvanceResult]


@dataclass(frozen=True)
class ButcherTableau:
    """Explicit Butcher tableau (strictly lower triangular `a`)."""
    a: Tuple[Tuple[float, ...], ...]
    b: Tuple[float, ...]
    c: Tuple[float, ...]

    def __post_init__(self):
        n = len(self.b)
        if len(self.a) != n or len(self.c) != n:
            raise ValueError("Tableau rows, weights and nodes must have equal length")
        for s, row in enumerate(self.a):
            if len(row) != s:
                raise ValueError(f"Stage {s} must have {s} coefficients, got {len(row)}")

    @property
    def n_stages(self) -> int:
        return len(self.b)


TABLEAUX: Dict[TimeSteppingScheme, ButcherTableau] = {
    TimeSteppingScheme.SSPRK_33: ButcherTableau(
        a=((), (1.0,), (1.0 / 4.0, 1.0 / 4.0)),
        b=(1.0 / 6.0, 1.0 / 6.0, 2.0 / 3.0),
        c=(0.0, 1.0, 1.0 / 2.0),
    ),
    TimeSteppingScheme.ERK_33: ButcherTableau(
        a=((), (1.0 / 3.0,), (0.0, 2.0 / 3.0)),
        b=(1.0 / 4.0, 0.0, 3.0 / 4.0),
        c=(0.0, 1.0 / 3.0, 2.0 / 3.0),
    ),
    TimeSteppingScheme.ERK_43: ButcherTableau(
        a=((), (1.0 / 4.0,), (0.0, 1.0 / 2.0), (0.0, 1.0 / 4.0, 1.0 / 2.0)),
        b=(0.0, 2.0 / 3.0, -1.0 / 3.0, 2.0 / 3.0),
        c=(0.0, 1.0 / 4.0, 1.0 / 2.0, 3.0 / 4.0),
    ),
}


@dataclass
class StepResult:
    """Outcome of one accepted time step."""
    tau: float
    violated: bool  # Accepted state still violates the invariant domain
    restarted: bool  # Step was repeated with cfl_min
    cfl: float  # CFL number of the accepted attempt


class TimeIntegrator:
    """
    Explicit Runge-Kutta driver with invariant domain recovery.

    One step uses a single τ for all stages. The first stage fixes τ from
    the admissible step of U at the current CFL number; every stage reports
    its invariant domain bound (CFL number 1) and the attempt counts as
    violated if the minimum bound over all stages is smaller than τ (policy
    "minimum admissible step over all stages").

    On a violation the recovery strategy decides:
    - none: the result is accepted and the violation reported to the caller
    - bang_bang_control: all stage results are discarded and the whole step
      is repeated from U with cfl_min; a second violation is accepted with
      a warning
    """

    def __init__(self, context: StepContext, advance: AdvanceOperator):
        """
        Initialize the time integrator.

        Args:
            context: Scheme, recovery strategy and CFL bounds
            advance: Elementary forward step of the hyperbolic module
        """
        self.context = context
        self.advance = advance
        self.tableau = TABLEAUX[context.scheme]

        self._stepping = {
            TimeSteppingScheme.SSPRK_33: self.step_ssprk_33,
            TimeSteppingScheme.ERK_33: self.step_erk_33,
            TimeSteppingScheme.ERK_43: self.step_erk_43,
        }

        # Scratch buffers, sized by prepare()
        self._stage_states: Optional[List[np.ndarray]] = None
        self._stage_increments: Optional[List[np.ndarray]] = None
        self._new_state: Optional[np.ndarray] = None

        # Statistics
        self.n_steps = 0
        self.n_restarts = 0
        self.n_violations = 0
        self.n_advance_calls = 0

        logger.info(f"Initialized time integrator: scheme={context.scheme.value}, "
                    f"recovery={context.recovery_strategy.value}, "
                    f"cfl_min={context.cfl_min}, cfl_max={context.cfl_max}")

    @property
    def scheme_name(self) -> str:
        return self.context.scheme.value

    def prepare(self, U: np.ndarray) -> None:
        """Allocate the scratch buffers for states shaped like U."""
        n_stages = self.tableau.n_stages
        self._stage_states = [np.empty_like(U) for _ in range(n_stages)]
        self._stage_increments = [np.empty_like(U) for _ in range(n_stages)]
        self._new_state = np.empty_like(U)
        logger.debug(f"Prepared {n_stages} stage buffers of shape {U.shape}")

    def _check_prepared(self, U: np.ndarray) -> None:
        if self._new_state is None:
            raise RuntimeError("TimeIntegrator.prepare() must be called before step()")
        if U.shape != self._new_state.shape:
            raise ValueError(f"State has shape {U.shape}, integrator was prepared for "
                             f"{self._new_state.shape}")

    def _run_stages(self, U: np.ndarray, cfl: float, tableau: ButcherTableau) -> Tuple[float, bool]:
        """
        One attempt of a full Runge-Kutta step; the result is left in the
        scratch buffer.

        Returns:
            (τ, violated)
        """
        tau = None
        tau_bound = np.inf
        violated = False

        for s in range(tableau.n_stages):
            stage_state = self._stage_states[s]
            stage_state[...] = U
            for k, a_sk in enumerate(tableau.a[s]):
                if a_sk != 0.0:
                    stage_state += a_sk * self._stage_increments[k]

            result = self.advance(stage_state, tau, cfl)
            self.n_advance_calls += 1

            if tau is None:
                tau = result.tau
            tau_bound = min(tau_bound, result.tau_max)
            violated = violated or result.violated

            np.subtract(result.state, stage_state, out=self._stage_increments[s])
            logger.debug(f"Stage {s}: tau_admissible={result.tau:.6e}, tau_max={result.tau_max:.6e}, "
                         f"violated={result.violated}")

        if tau_bound < tau:
            logger.debug(f"Stage invariant domain bound {tau_bound:.6e} below tau={tau:.6e}")
            violated = True

        self._new_state[...] = U
        for k, b_k in enumerate(tableau.b):
            if b_k != 0.0:
                self._new_state += b_k * self._stage_increments[k]

        return tau, violated

    def step_ssprk_33(self, U: np.ndarray, cfl: float) -> Tuple[float, bool]:
        """Third-order SSP Runge-Kutta attempt."""
        return self._run_stages(U, cfl, TABLEAUX[TimeSteppingScheme.SSPRK_33])

    def step_erk_33(self, U: np.ndarray, cfl: float) -> Tuple[float, bool]:
        """Three-stage explicit Runge-Kutta attempt."""
        return self._run_stages(U, cfl, TABLEAUX[TimeSteppingScheme.ERK_33])

    def step_erk_43(self, U: np.ndarray, cfl: float) -> Tuple[float, bool]:
        """Four-stage explicit Runge-Kutta attempt."""
        return self._run_stages(U, cfl, TABLEAUX[TimeSteppingScheme.ERK_43])

    def step_detailed(self, U: np.ndarray, t: float = 0.0) -> StepResult:
        """
        Advance U in place from t to t + τ.

        Args:
            U: Conserved state, overwritten with the new state
            t: Current time

        Returns:
            StepResult of the accepted attempt
        """
        self._check_prepared(U)
        attempt = self._stepping[self.context.scheme]

        cfl = self.context.cfl_max
        tau, violated = attempt(U, cfl)
        restarted = False

        if violated:
            if self.context.recovery_strategy is CFLRecoveryStrategy.NONE:
                logger.debug(f"Invariant domain violated at t={t:.6e}, accepting step "
                             f"(recovery strategy none)")
            else:
                logger.info(f"Invariant domain violated at t={t:.6e} with cfl={cfl}, "
                            f"restarting step with cfl={self.context.cfl_min}")
                restarted = True
                self.n_restarts += 1
                cfl = self.context.cfl_min
                tau, violated = attempt(U, cfl)
                if violated:
                    logger.warning(f"Invariant domain still violated at t={t:.6e} "
                                   f"with cfl_min={cfl}, accepting step")

        if violated:
            self.n_violations += 1

        U[...] = self._new_state
        self.n_steps += 1

        return StepResult(tau=tau, violated=violated, restarted=restarted, cfl=cfl)

    def step(self, U: np.ndarray, t: float = 0.0) -> float:
        """Advance U in place and return the accepted step size."""
        return self.step_detailed(U, t).tau

    def integrate_to_time(self,
                          U: np.ndarray,
                          t_start: float,
                          t_final: float,
                          max_steps: int = 100000,
                          log_frequency: int = 100) -> Dict[str, Any]:
        """
        Integrate from t_start until t_final is reached or passed.

        Args:
            U: Initial state, overwritten with the final state
            t_start: Initial time
            t_final: Target time
            max_steps: Maximum number of steps
            log_frequency: Steps between progress messages

        Returns:
            Integration results and statistics
        """
        if self._new_state is None or self._new_state.shape != U.shape:
            self.prepare(U)

        t = t_start
        time_history = [t]
        tau_history = []
        violations = 0
        restarts = 0

        while t < t_final and len(tau_history) < max_steps:
            result = self.step_detailed(U, t)

            if not (np.isfinite(result.tau) and result.tau > 0.0):
                raise RuntimeError(f"Invalid time step tau={result.tau} at t={t:.6e}")

            t += result.tau
            time_history.append(t)
            tau_history.append(result.tau)
            violations += int(result.violated)
            restarts += int(result.restarted)

            if len(tau_history) % log_frequency == 0:
                logger.info(f"Time integration: t={t:.6f}, tau={result.tau:.2e}, "
                            f"steps={len(tau_history)}, restarts={restarts}")

        if t < t_final:
            logger.warning(f"Stopped after {max_steps} steps at t={t:.6e} < {t_final:.6e}")

        return {
            'final_time': t,
            'steps': len(tau_history),
            'time_history': time_history,
            'tau_history': tau_history,
            'violations': violations,
            'restarts': restarts,
            'advance_calls': self.n_advance_calls,
            'scheme_name': self.scheme_name,
        }


def create_time_integrator(advance: AdvanceOperator,
                           scheme: str = "ssprk_33",
                           recovery_strategy: str = "bang_bang_control",
                           cfl_min: float = 0.45,
                           cfl_max: float = 0.90) -> TimeIntegrator:
    """
    Factory function for creating time integrators.

    Args:
        advance: Elementary forward step
        scheme: Time stepping scheme
        recovery_strategy: CFL recovery strategy
        cfl_min: CFL number of the recovery attempt
        cfl_max: CFL number of the first attempt

    Returns:
        Configured time integrator
    """
    context = StepContext(scheme=scheme, recovery_strategy=recovery_strategy,
                          cfl_min=cfl_min, cfl_max=cfl_max)
    return TimeIntegrator(context, advance)
