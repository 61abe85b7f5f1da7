#!/usr/bin/env python
"""
Test suite for the Runge-Kutta time integrator and its CFL recovery.

The integrator is driven by stub advance operators with known behavior so
that stage combination and the recovery protocol can be checked exactly.
"""

import os
import sys
import unittest
import numpy as np

# Add source directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from hypstep.cfd.core.config import CFLRecoveryStrategy, StepContext, TimeSteppingScheme
from hypstep.cfd.hyperbolic_module import AdvanceResult
from hypstep.cfd.time_integration import TABLEAUX, ButcherTableau, TimeIntegrator, create_time_integrator

LOGGER_NAME = 'hypstep.cfd.time_integration'


class LinearAdvance:
    """Forward Euler step of dU/dt = k U with bound h and admissible step cfl * h."""

    def __init__(self, rate=-1.0, h=0.1, violated_above=None, stage_h=None):
        self.rate = rate
        self.h = h
        self.violated_above = violated_above
        self.stage_h = stage_h
        self.calls = []

    def __call__(self, U, tau, cfl):
        self.calls.append((tau, cfl))
        h = self.h if (tau is None or self.stage_h is None) else self.stage_h
        tau_admissible = cfl * h
        tau_used = tau_admissible if tau is None else tau
        violated = self.violated_above is not None and cfl > self.violated_above
        return AdvanceResult(state=U + tau_used * self.rate * U, tau=tau_admissible, violated=violated,
                             tau_max=h)


def amplification(z, scheme):
    """Stability polynomial of the scheme for the linear test equation."""
    factor = 1.0 + z + z ** 2 / 2.0 + z ** 3 / 6.0
    if scheme is TimeSteppingScheme.ERK_43:
        factor += z ** 4 / 24.0
    return factor


class TestButcherTableaux(unittest.TestCase):
    """Test cases for the tableau consistency."""

    def test_weights_sum_to_one(self):
        """Test that the final weights of each scheme sum to one."""
        for scheme, tableau in TABLEAUX.items():
            with self.subTest(scheme=scheme.value):
                self.assertAlmostEqual(sum(tableau.b), 1.0, places=15)

    def test_row_sums_are_nodes(self):
        """Test that the stage coefficients sum to the stage times."""
        for scheme, tableau in TABLEAUX.items():
            for s in range(tableau.n_stages):
                with self.subTest(scheme=scheme.value, stage=s):
                    self.assertAlmostEqual(sum(tableau.a[s]), tableau.c[s], places=15)

    def test_third_order_conditions(self):
        """Test the order conditions up to order three."""
        for scheme, tableau in TABLEAUX.items():
            with self.subTest(scheme=scheme.value):
                a = np.zeros((tableau.n_stages, tableau.n_stages))
                for s, row in enumerate(tableau.a):
                    a[s, :len(row)] = row
                b = np.array(tableau.b)
                c = np.array(tableau.c)
                self.assertAlmostEqual(b @ c, 1.0 / 2.0, places=14)
                self.assertAlmostEqual(b @ c ** 2, 1.0 / 3.0, places=14)
                self.assertAlmostEqual(b @ (a @ c), 1.0 / 6.0, places=14)

    def test_invalid_tableau(self):
        """Test the shape validation."""
        with self.assertRaises(ValueError):
            ButcherTableau(a=((), (1.0, 0.0)), b=(0.5, 0.5), c=(0.0, 1.0))


class TestStageCombination(unittest.TestCase):
    """Test cases for the stage assembly."""

    def test_linear_amplification(self):
        """Test each scheme against its stability polynomial."""
        U0 = np.array([[1.0, 2.0, 3.0], [0.5, -1.0, 4.0]])
        for scheme in TimeSteppingScheme:
            with self.subTest(scheme=scheme.value):
                advance = LinearAdvance(rate=-1.0, h=0.1)
                integrator = TimeIntegrator(StepContext(scheme=scheme, cfl_max=0.9), advance)
                U = U0.copy()
                integrator.prepare(U)
                tau = integrator.step(U)
                self.assertAlmostEqual(tau, 0.09, places=15)
                np.testing.assert_allclose(U, amplification(-tau, scheme) * U0, rtol=1e-14)
                self.assertEqual(len(advance.calls), TABLEAUX[scheme].n_stages)

    def test_ssprk_33_is_shu_osher_form(self):
        """Test U+ = 1/3 U + 2/3 E(3/4 U + 1/4 E(E(U))) for a nonlinear operator."""
        tau = 0.05

        def elementary(V):
            return V - tau * V ** 2

        def advance(V, tau_trial, cfl):
            return AdvanceResult(state=elementary(V), tau=tau, violated=False)

        U0 = np.array([[1.0, 0.5, 2.0]])
        U1 = elementary(U0)
        U2 = 0.75 * U0 + 0.25 * elementary(U1)
        expected = U0 / 3.0 + 2.0 / 3.0 * elementary(U2)

        integrator = TimeIntegrator(StepContext(), advance)
        U = U0.copy()
        integrator.prepare(U)
        integrator.step(U)
        np.testing.assert_allclose(U, expected, rtol=1e-14)

    def test_first_stage_fixes_tau(self):
        """Test that later stages receive the first stage step size."""
        advance = LinearAdvance(h=0.2)
        integrator = TimeIntegrator(StepContext(cfl_max=0.5, cfl_min=0.25), advance)
        U = np.ones((4, 3))
        integrator.prepare(U)
        integrator.step(U)
        self.assertEqual(advance.calls[0], (None, 0.5))
        for tau, cfl in advance.calls[1:]:
            self.assertAlmostEqual(tau, 0.1, places=15)
            self.assertEqual(cfl, 0.5)

    def test_state_updated_in_place(self):
        """Test that the caller's array is overwritten."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance())
        U = np.ones((3, 3))
        buffer = U
        integrator.prepare(U)
        integrator.step(U)
        self.assertIs(U, buffer)
        self.assertTrue(np.all(U < 1.0))


class TestRecoveryProtocol(unittest.TestCase):
    """Test cases for the CFL recovery state machine."""

    def setUp(self):
        self.U0 = np.array([[1.0, 0.0, 2.5], [0.125, 0.0, 0.25]])

    def run_step(self, recovery_strategy, advance):
        context = StepContext(recovery_strategy=recovery_strategy, cfl_min=0.45, cfl_max=0.9)
        integrator = TimeIntegrator(context, advance)
        U = self.U0.copy()
        integrator.prepare(U)
        result = integrator.step_detailed(U, t=0.0)
        return integrator, U, result

    def test_bang_bang_control_returns_cfl_min_result(self):
        """Test that a violation at cfl_max is repeated with cfl_min."""
        advance = LinearAdvance(h=0.1, violated_above=0.5)
        with self.assertLogs(LOGGER_NAME, level='INFO') as captured:
            integrator, U, result = self.run_step("bang_bang_control", advance)

        self.assertFalse(result.violated)
        self.assertTrue(result.restarted)
        self.assertEqual(result.cfl, 0.45)
        self.assertAlmostEqual(result.tau, 0.045, places=15)
        np.testing.assert_allclose(U, amplification(-0.045, TimeSteppingScheme.SSPRK_33) * self.U0,
                                   rtol=1e-14)
        self.assertEqual(len(advance.calls), 6)
        self.assertEqual(integrator.n_restarts, 1)
        self.assertEqual(integrator.n_violations, 0)
        self.assertTrue(any('restarting' in message for message in captured.output))

    def test_none_accepts_cfl_max_result(self):
        """Test that strategy none keeps the violating cfl_max result."""
        advance = LinearAdvance(h=0.1, violated_above=0.5)
        integrator, U, result = self.run_step("none", advance)

        self.assertTrue(result.violated)
        self.assertFalse(result.restarted)
        self.assertEqual(result.cfl, 0.9)
        self.assertAlmostEqual(result.tau, 0.09, places=15)
        np.testing.assert_allclose(U, amplification(-0.09, TimeSteppingScheme.SSPRK_33) * self.U0,
                                   rtol=1e-14)
        self.assertEqual(len(advance.calls), 3)
        self.assertEqual(integrator.n_violations, 1)

    def test_persistent_violation_warns(self):
        """Test that a violation after the retry is accepted with a warning."""
        advance = LinearAdvance(h=0.1, violated_above=0.0)
        with self.assertLogs(LOGGER_NAME, level='WARNING') as captured:
            integrator, U, result = self.run_step("bang_bang_control", advance)

        self.assertTrue(result.violated)
        self.assertTrue(result.restarted)
        self.assertEqual(result.cfl, 0.45)
        np.testing.assert_allclose(U, amplification(-0.045, TimeSteppingScheme.SSPRK_33) * self.U0,
                                   rtol=1e-14)
        self.assertEqual(len(captured.records), 1)
        self.assertEqual(captured.records[0].levelname, 'WARNING')

    def test_no_violation_no_restart(self):
        """Test the regular path."""
        advance = LinearAdvance(h=0.1)
        integrator, U, result = self.run_step("bang_bang_control", advance)
        self.assertFalse(result.violated)
        self.assertFalse(result.restarted)
        self.assertEqual(result.cfl, 0.9)
        self.assertEqual(len(advance.calls), 3)

    def test_stage_bound_below_tau(self):
        """Test the minimum bound over all stages."""
        advance = LinearAdvance(h=0.1, stage_h=0.05)
        integrator, U, result = self.run_step("none", advance)
        self.assertTrue(result.violated)
        self.assertAlmostEqual(result.tau, 0.09, places=15)

    def test_stage_bound_below_tau_recovers(self):
        """Test that cfl_min restores the stage bound."""
        advance = LinearAdvance(h=0.1, stage_h=0.05)
        integrator, U, result = self.run_step("bang_bang_control", advance)
        self.assertTrue(result.restarted)
        self.assertFalse(result.violated)
        self.assertAlmostEqual(result.tau, 0.045, places=15)
        self.assertEqual(len(advance.calls), 6)

    def test_stage_bound_above_tau_is_accepted(self):
        """Test that a stage bound between cfl_max * h and tau is not a violation."""
        # cfl_max * stage_h = 0.0855 < tau = 0.09 <= stage_h
        advance = LinearAdvance(h=0.1, stage_h=0.095)
        integrator, U, result = self.run_step("bang_bang_control", advance)
        self.assertFalse(result.violated)
        self.assertFalse(result.restarted)
        self.assertAlmostEqual(result.tau, 0.09, places=15)
        self.assertEqual(len(advance.calls), 3)


class TestIntegratorSetup(unittest.TestCase):
    """Test cases for configuration and preparation errors."""

    def test_step_before_prepare(self):
        """Test that stepping without scratch buffers fails."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance())
        with self.assertRaises(RuntimeError):
            integrator.step(np.ones((2, 3)))

    def test_shape_mismatch(self):
        """Test that a differently shaped state is rejected."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance())
        integrator.prepare(np.ones((2, 3)))
        with self.assertRaises(ValueError):
            integrator.step(np.ones((5, 3)))

    def test_invalid_context(self):
        """Test configuration errors of the step context."""
        with self.assertRaises(ValueError):
            StepContext(cfl_min=0.9, cfl_max=0.5)
        with self.assertRaises(ValueError):
            StepContext(cfl_min=0.0)
        with self.assertRaises(ValueError):
            StepContext(scheme="rk4")
        with self.assertRaises(ValueError):
            StepContext(recovery_strategy="halve")

    def test_context_parsing(self):
        """Test the human readable spellings."""
        context = StepContext(scheme="erk 43", recovery_strategy="bang bang control")
        self.assertIs(context.scheme, TimeSteppingScheme.ERK_43)
        self.assertIs(context.recovery_strategy, CFLRecoveryStrategy.BANG_BANG_CONTROL)
        self.assertEqual(context.to_dict()['scheme'], "erk_43")

    def test_factory(self):
        """Test the factory function."""
        integrator = create_time_integrator(LinearAdvance(), scheme="erk_33", recovery_strategy="none")
        self.assertEqual(integrator.scheme_name, "erk_33")
        self.assertEqual(integrator.tableau.n_stages, 3)


class TestIntegrateToTime(unittest.TestCase):
    """Test cases for the integration driver."""

    def test_reaches_final_time(self):
        """Test the number of steps and the overshoot."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance(h=0.1))
        U = np.ones((2, 3))
        results = integrator.integrate_to_time(U, 0.0, 0.5)

        self.assertEqual(results['steps'], 6)
        self.assertGreaterEqual(results['final_time'], 0.5)
        self.assertEqual(len(results['time_history']), 7)
        self.assertEqual(results['violations'], 0)
        self.assertEqual(results['restarts'], 0)
        np.testing.assert_allclose(U, amplification(-0.09, TimeSteppingScheme.SSPRK_33) ** 6,
                                   rtol=1e-13)

    def test_max_steps(self):
        """Test the step limit."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance(h=0.1))
        results = integrator.integrate_to_time(np.ones((2, 3)), 0.0, 10.0, max_steps=3)
        self.assertEqual(results['steps'], 3)
        self.assertLess(results['final_time'], 10.0)

    def test_invalid_step_size(self):
        """Test that a vanishing step size is reported."""
        integrator = TimeIntegrator(StepContext(), LinearAdvance(h=0.0))
        with self.assertRaises(RuntimeError):
            integrator.integrate_to_time(np.ones((2, 3)), 0.0, 1.0)


if __name__ == '__main__':
    unittest.main()
