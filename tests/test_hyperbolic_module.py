#!/usr/bin/env python
"""
Test suite for the first-order hyperbolic module and its coupling with
the time integrator.
"""

import os
import sys
import unittest
import numpy as np

# Add source directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from hypstep.cfd.core.config import StepContext
from hypstep.cfd.equations.equation_state import AIR, LIQUID_WATER, noble_abel_stiffened_gas
from hypstep.cfd.equations.primitive_conservative import (
    conserved_from_primitive, internal_energy, primitive_from_conserved
)
from hypstep.cfd.hyperbolic_module import HyperbolicModule
from hypstep.cfd.parallel_computing import WavespeedReduction
from hypstep.cfd.time_integration import TimeIntegrator
from hypstep.cfd.validation_cases import ShockTubeCase
from hypstep.utils.parallel import ParallelConfig


class TestHyperbolicModule(unittest.TestCase):
    """Test cases for the elementary forward step."""

    def setUp(self):
        self.module = HyperbolicModule(AIR, 100)
        self.U = ShockTubeCase("sod").initial_state(self.module.cell_centers, AIR)

    def test_uniform_state_admissible_step(self):
        """Test τ_max = cfl Δx / (2a) and invariance of a uniform state at rest."""
        U = conserved_from_primitive(np.ones(100), np.zeros(100), np.ones(100), AIR)
        result = self.module.advance(U, None, 0.8)
        a = np.sqrt(1.4)

        self.assertAlmostEqual(result.tau, 0.8 * 0.01 / (2.0 * a), places=12)
        self.assertAlmostEqual(result.max_wavespeed, a, places=12)
        self.assertFalse(result.violated)
        np.testing.assert_allclose(result.state, U, rtol=1e-14, atol=1e-14)

    def test_input_not_modified(self):
        """Test that advance leaves its input untouched."""
        U_before = self.U.copy()
        self.module.advance(self.U, None, 1.0)
        np.testing.assert_array_equal(self.U, U_before)

    def test_repeatable(self):
        """Test that repeated calls give identical results."""
        first = self.module.advance(self.U, None, 0.9)
        second = self.module.advance(self.U, first.tau, 0.9)
        np.testing.assert_array_equal(first.state, second.state)
        self.assertEqual(first.tau, second.tau)

    def test_admissible_step_preserves_invariant_domain(self):
        """Test positivity after a step with the admissible step size."""
        result = self.module.advance(self.U, None, 1.0)
        self.assertFalse(result.violated)
        rho, _, p = primitive_from_conserved(result.state, AIR)
        self.assertTrue(np.all(rho > 0.0))
        self.assertTrue(np.all(p > 0.0))
        self.assertGreaterEqual(result.max_wavespeed, 2.55)

    def test_cfl_violation_flag(self):
        """Test that only a step above the invariant domain bound is flagged."""
        result = self.module.advance(self.U, None, 0.5)
        bound = result.tau_max
        self.assertAlmostEqual(result.tau, 0.5 * bound, places=15)
        self.assertFalse(self.module.advance(self.U, bound, 1.0).violated)
        self.assertFalse(self.module.advance(self.U, bound, 0.5).violated)
        self.assertTrue(self.module.advance(self.U, 2.0 * bound, 1.0).violated)
        self.assertTrue(self.module.advance(self.U, 1.01 * bound, 0.5).violated)

    def test_invariant_domain_violation_flag(self):
        """Test that a state leaving the invariant domain is flagged."""
        module = HyperbolicModule(AIR, 50)
        x = module.cell_centers
        U = conserved_from_primitive(np.ones(50), np.where(x < 0.5, -3.0, 3.0), 0.1 * np.ones(50), AIR)
        tau = module.advance(U, None, 1.0).tau
        result = module.advance(U, 20.0 * tau, 1.0)
        self.assertTrue(result.violated)
        self.assertFalse(np.all(AIR.is_admissible(result.state[:, 0], internal_energy(result.state))))

    def test_periodic_conservation(self):
        """Test exact conservation with periodic boundaries."""
        module = HyperbolicModule(AIR, 64, boundary="periodic")
        x = module.cell_centers
        U = conserved_from_primitive(1.0 + 0.2 * np.sin(2.0 * np.pi * x), 0.5 * np.ones(64),
                                     np.ones(64), AIR)
        totals = module.total_conserved(U)
        for _ in range(10):
            U = module.advance(U, None, 0.9).state
        np.testing.assert_allclose(module.total_conserved(U), totals, rtol=1e-13)

    def test_outflow_mass_conservation(self):
        """Test mass conservation before waves reach the boundary."""
        mass = self.module.total_conserved(self.U)[0]
        U = self.U
        for _ in range(5):
            U = self.module.advance(U, None, 0.9).state
        self.assertAlmostEqual(self.module.total_conserved(U)[0], mass, places=13)

    def test_threaded_reduction_matches_serial(self):
        """Test that the threaded evaluation reproduces the serial one."""
        module = HyperbolicModule(AIR, 1000)
        U = ShockTubeCase("lax").initial_state(module.cell_centers, AIR)
        config = ParallelConfig(max_workers=4, chunk_size=64, threshold=0)
        threaded = HyperbolicModule(AIR, 1000, reduction=WavespeedReduction(config))

        serial_result = module.advance(U, None, 0.9)
        threaded_result = threaded.advance(U, None, 0.9)
        self.assertAlmostEqual(threaded_result.tau / serial_result.tau, 1.0, places=14)
        np.testing.assert_allclose(threaded_result.state, serial_result.state, rtol=1e-13, atol=1e-14)

    def test_liquid_water_step(self):
        """Test the admissible step and positivity for a stiffened liquid."""
        module = HyperbolicModule(LIQUID_WATER, 100)
        x = module.cell_centers
        rho = np.where(x < 0.5, 1100.0, 1000.0)
        p = np.where(x < 0.5, 5.0e8, 1.0e5)
        U = conserved_from_primitive(rho, np.zeros(100), p, LIQUID_WATER)

        result = module.advance(U, None, 0.9)
        sound_speed = LIQUID_WATER.speed_of_sound(rho, p)
        self.assertGreaterEqual(result.max_wavespeed, np.max(sound_speed))
        self.assertLessEqual(result.tau_max, module.dx / (2.0 * np.max(sound_speed)))
        self.assertFalse(result.violated)

        for _ in range(10):
            result = module.advance(U, None, 0.9)
            self.assertFalse(result.violated)
            U = result.state
        self.assertTrue(np.all(LIQUID_WATER.is_admissible(U[:, 0], internal_energy(U))))
        _, _, p_new = primitive_from_conserved(U, LIQUID_WATER)
        self.assertTrue(np.all(p_new + LIQUID_WATER.pinf > 0.0))

    def test_covolume_gas_step(self):
        """Test conservation and positivity with a covolume."""
        eos = noble_abel_stiffened_gas(gamma=1.4, b=0.5)
        module = HyperbolicModule(eos, 80, boundary="periodic")
        U = ShockTubeCase("sod").initial_state(module.cell_centers, eos)
        totals = module.total_conserved(U)
        for _ in range(20):
            result = module.advance(U, None, 0.9)
            self.assertFalse(result.violated)
            U = result.state
        self.assertTrue(np.all(eos.is_admissible(U[:, 0], internal_energy(U))))
        np.testing.assert_allclose(module.total_conserved(U), totals, rtol=1e-13, atol=1e-13)

    def test_invalid_arguments(self):
        """Test configuration errors."""
        with self.assertRaises(ValueError):
            HyperbolicModule(AIR, 1)
        with self.assertRaises(ValueError):
            HyperbolicModule(AIR, 10, boundary="reflecting")
        with self.assertRaises(ValueError):
            HyperbolicModule(AIR, 10, length=0.0)
        with self.assertRaises(ValueError):
            self.module.advance(np.ones((10, 3)))


class TestShockTubeIntegration(unittest.TestCase):
    """Test cases for full shock tube runs."""

    def run_case(self, case_name, scheme, boundary="outflow"):
        case = ShockTubeCase(case_name)
        module = HyperbolicModule(AIR, 100, boundary=boundary)
        U = case.initial_state(module.cell_centers, AIR)
        totals = module.total_conserved(U)

        integrator = TimeIntegrator(StepContext(scheme=scheme), module.advance)
        integrator.prepare(U)
        results = integrator.integrate_to_time(U, 0.0, case.solution_time)
        return case, module, U, totals, results

    def test_sod(self):
        """Test the Sod problem with every scheme."""
        for scheme in ("ssprk_33", "erk_33", "erk_43"):
            with self.subTest(scheme=scheme):
                case, module, U, totals, results = self.run_case("sod", scheme)
                rho, u, p = primitive_from_conserved(U, AIR)

                self.assertGreaterEqual(results['final_time'], case.solution_time)
                self.assertEqual(results['scheme_name'], scheme)
                self.assertTrue(np.all(rho > 0.0))
                self.assertTrue(np.all(p > 0.0))

    def test_sod_ssprk_admissible(self):
        """Test that the convex scheme never accepts a violating step."""
        case, module, U, totals, results = self.run_case("sod", "ssprk_33")
        self.assertEqual(results['violations'], 0)
        self.assertTrue(np.all(AIR.is_admissible(U[:, 0], internal_energy(U))))

    def test_sod_without_restarts(self):
        """Test that regular Sod steps are accepted at cfl_max."""
        with self.assertLogs('hypstep.cfd.time_integration', level='INFO') as captured:
            case, module, U, totals, results = self.run_case("sod", "ssprk_33")
        self.assertEqual(results['restarts'], 0)
        self.assertEqual(results['violations'], 0)
        self.assertEqual(results['advance_calls'], 3 * results['steps'])
        self.assertFalse(any(record.levelname == 'WARNING' for record in captured.records))

    def test_periodic_conservation(self):
        """Test conservation of all components over a full run."""
        case, module, U, totals, results = self.run_case("sod", "ssprk_33", boundary="periodic")
        np.testing.assert_allclose(module.total_conserved(U), totals, rtol=1e-12, atol=1e-12)

    def test_123_problem(self):
        """Test positivity in the near vacuum problem."""
        case, module, U, totals, results = self.run_case("123", "ssprk_33")
        self.assertEqual(results['violations'], 0)
        self.assertTrue(np.all(U[:, 0] > 0.0))
        self.assertTrue(np.all(internal_energy(U) > 0.0))


if __name__ == '__main__':
    unittest.main()
