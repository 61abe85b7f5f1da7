"""Command-line interface for hypstep.

This module provides the main entry point for running a shock tube with
the explicit time stepping core.
"""

import argparse
import logging
import sys
import time
import traceback
from typing import List, Optional

from hypstep.cfd.core.config import SolverConfig
from hypstep.cfd.hyperbolic_module import HyperbolicModule
from hypstep.cfd.numerics.riemann_solvers import ExactRiemannSolver, RiemannSolver
from hypstep.cfd.parallel_computing import WavespeedReduction
from hypstep.cfd.time_integration import TimeIntegrator
from hypstep.cfd.validation_cases import SHOCK_TUBE_VARIANTS, ShockTubeCase


def setup_logging(debug_mode: bool = False) -> None:
    """Configure logging based on debug mode.

    Args:
        debug_mode: If True, set logging level to DEBUG, otherwise INFO
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description='Run a shock tube with the explicit SSP Runge-Kutta time stepping core'
    )
    parser.add_argument('--config', default=None, help='Configuration file (JSON or YAML)')
    parser.add_argument('--case', choices=sorted(SHOCK_TUBE_VARIANTS), default=None,
                        help='Shock tube variant')
    parser.add_argument('--cells', type=int, default=None, help='Number of cells')
    parser.add_argument('--final-time', type=float, default=None, help='Final time')

    step_group = parser.add_argument_group('time stepping', 'Scheme and CFL recovery')
    step_group.add_argument('--scheme', default=None, help='ssprk_33, erk_33 or erk_43')
    step_group.add_argument('--recovery', default=None, help='none or bang_bang_control')
    step_group.add_argument('--cfl-min', type=float, default=None, help='CFL number of the recovery attempt')
    step_group.add_argument('--cfl-max', type=float, default=None, help='CFL number of the first attempt')

    parser.add_argument('--workers', type=int, default=None, help='Number of reduction worker threads')
    parser.add_argument('--plot', action='store_true', help='Show the final profiles')
    parser.add_argument('--save-plot', default=None, help='Save the final profiles to this file')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SolverConfig:
    """Merge the configuration file with the command line overrides."""
    config = SolverConfig.from_file(args.config) if args.config else SolverConfig()
    data = config.to_dict()

    if args.case is not None:
        data['problem']['case'] = args.case
    if args.cells is not None:
        data['problem']['n_cells'] = args.cells
    if args.final_time is not None:
        data['problem']['final_time'] = args.final_time
    if args.scheme is not None:
        data['step']['scheme'] = args.scheme
    if args.recovery is not None:
        data['step']['recovery_strategy'] = args.recovery
    if args.cfl_min is not None:
        data['step']['cfl_min'] = args.cfl_min
    if args.cfl_max is not None:
        data['step']['cfl_max'] = args.cfl_max
    if args.workers is not None:
        data['parallel']['max_workers'] = args.workers

    return SolverConfig.from_dict(data)


def run(config: SolverConfig, plot: bool = False, save_path: Optional[str] = None) -> dict:
    """Run the configured shock tube and return the integration results."""
    logger = logging.getLogger(__name__)

    eos = config.equation_of_state.create()
    case = ShockTubeCase(config.problem.case)
    left, right = case.riemann_states(eos)

    gms_bound = float(RiemannSolver.from_equation_of_state(eos).compute(left, right))
    logger.info(f"Initial interface wavespeed bound (GMS): {gms_bound:.6f}")
    if eos.b == 0.0:
        exact_speed = ExactRiemannSolver().max_wave_speed(left, right)
        logger.info(f"Initial interface exact maximal wavespeed: {exact_speed:.6f} "
                    f"(ratio {gms_bound / exact_speed:.4f})")

    reduction = WavespeedReduction(config.parallel)
    module = HyperbolicModule(eos, config.problem.n_cells, boundary=config.problem.boundary,
                              reduction=reduction)
    U = case.initial_state(module.cell_centers, eos)
    U_initial = U.copy()
    initial_totals = module.total_conserved(U)

    integrator = TimeIntegrator(config.step, module.advance)
    integrator.prepare(U)

    start_time = time.time()
    try:
        results = integrator.integrate_to_time(U, 0.0, config.problem.final_time)
    finally:
        reduction.cleanup()
    elapsed = time.time() - start_time

    mass_error = abs(module.total_conserved(U)[0] - initial_totals[0])
    logger.info(f"Reached t={results['final_time']:.6f} in {results['steps']} steps "
                f"({elapsed:.2f} s), restarts={results['restarts']}, "
                f"violations={results['violations']}")
    logger.info(f"Mass conservation error: {mass_error:.3e}")
    logger.info(f"Module statistics: {module.get_statistics()}")

    if plot or save_path:
        from hypstep.visualization.profile_viz import plot_profiles
        plot_profiles(module.cell_centers, U, eos, title=case.name, reference=U_initial,
                      save_path=save_path, show=plot)

    results['state'] = U
    results['mass_error'] = mass_error
    results['gms_bound'] = gms_bound
    return results


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the shock tube.

    Returns:
        Exit code: 0 for success, non-zero for error
    """
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
    except (ValueError, TypeError, FileNotFoundError, ImportError) as e:
        logger.error(f"Invalid configuration: {e}")
        if args.debug:
            logger.debug(traceback.format_exc())
        return 1

    logger.info(f"Running {config.problem.case} with {config.problem.n_cells} cells, "
                f"scheme={config.step.scheme.value}, recovery={config.step.recovery_strategy.value}")

    run(config, plot=args.plot, save_path=args.save_plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
