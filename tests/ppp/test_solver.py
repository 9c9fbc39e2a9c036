#!/usr/bin/env python3
"""Test suite for the uncombined PPP solver"""

import logging
import unittest
from unittest import mock

import numpy as np
from pyppp.core.constants import SOLQ_FIX, SOLQ_FLOAT
from pyppp.core.data_structures import Observable, ObsType
from pyppp.core.exceptions import InsufficientGeometry, NoFixableAmbiguity, SingularSystem
from pyppp.ppp.config import SolverConfig
from pyppp.ppp.equations import RowKind
from pyppp.ppp.solver import EstimatorKind, EstimatorState, UncombinedPPPSolver

from ppp_testdata import Truth, make_epoch

SATS = ['G05', 'G12', 'G20', 'G24', 'G29']


class TruthResolver:
    """Fixes the true ambiguities of some satellites once they are observable"""

    def __init__(self, truth, sats):
        self.truth = truth
        self.sats = sats

    def resolve(self, prior, epoch):
        fixed = {}
        for var in prior.variables:
            if not var.is_ambiguity or var.satellite not in self.sats:
                continue
            if prior.variance(var) > 1e6:
                continue
            values = self.truth.n1 if var.obs_type == ObsType.AMB_L1 else self.truth.n2
            fixed[var] = values[var.satellite]
        return fixed


class TestFloatSolver(unittest.TestCase):
    """Test the float estimator over several epochs"""

    def setUp(self):
        self.truth = Truth.default()
        self.solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT)

    def run_epochs(self, sats, count=1, start=0.0):
        sol = None
        for k in range(count):
            sol = self.solver.process(make_epoch(start + 30.0 * k, sats, self.truth))
        return sol

    def test_first_epoch(self):
        self.assertEqual(self.solver.estimator_state, EstimatorState.FIRST_EPOCH)
        self.assertIsNone(self.solver.state)
        sol = self.run_epochs(SATS)
        self.assertEqual(sol.epoch, 0)
        self.assertEqual(self.solver.estimator_state, EstimatorState.STEADY_STATE)
        self.assertEqual(len(sol.variables), 20)
        self.assertEqual(sol.system.num_rows, 25)
        self.assertEqual(sol.status, SOLQ_FLOAT)
        self.assertEqual(sol.fixed, {})
        np.testing.assert_array_equal(self.solver.state, sol.state)
        np.testing.assert_array_equal(self.solver.covariance, sol.covariance)

    def test_noise_free_estimates(self):
        sol = self.run_epochs(SATS, count=3)
        self.assertEqual(sol.epoch, 2)
        self.assertEqual(self.solver.epoch_count, 3)
        self.assertAlmostEqual(sol.core[ObsType.CDT], self.truth.clock, delta=1e-2)
        for obs_type in (ObsType.DX, ObsType.DY, ObsType.DZ, ObsType.WET_TROP):
            self.assertAlmostEqual(sol.core[obs_type], 0.0, delta=1e-2)
        for sat in SATS:
            self.assertAlmostEqual(sol.ionosphere[sat], self.truth.iono[sat], delta=1e-2)
            self.assertAlmostEqual(sol.value(ObsType.AMB_L1, sat), self.truth.n1[sat], delta=0.05)
            self.assertAlmostEqual(sol.value(ObsType.AMB_L2, sat), self.truth.n2[sat], delta=0.05)
        residuals = sol.postfit_residuals()
        self.assertEqual(len(residuals), 20)
        self.assertLess(abs(residuals[(Observable.L1, 'G05')]), 1e-2)

    def test_covariance_symmetric(self):
        sol = self.run_epochs(SATS, count=2)
        np.testing.assert_allclose(sol.covariance, sol.covariance.T, atol=1e-12)
        self.assertTrue(np.all(np.diag(sol.covariance) > 0.0))

    def test_rising_and_setting_satellites(self):
        self.run_epochs(SATS)
        self.assertEqual(len(self.solver.variables), 20)

        sol = self.run_epochs(SATS + ['G31'], start=30.0)
        self.assertEqual(len(sol.variables), 23)
        self.assertIn('G31', sol.satellites)

        sol = self.run_epochs(['G05', 'G12', 'G29', 'G31'], start=60.0)
        self.assertEqual(len(sol.variables), 17)
        self.assertEqual(sol.satellites, ['G05', 'G12', 'G29', 'G31'])

    def test_excluded_satellite(self):
        epoch = make_epoch(0.0, SATS, self.truth)
        del epoch.satellites['G12'].prefit[Observable.L1]
        with self.assertLogs('pyppp.ppp.equations', level='WARNING'):
            sol = self.solver.process(epoch)
        self.assertEqual(len(sol.variables), 17)
        self.assertNotIn('G12', sol.satellites)
        self.assertEqual(list(sol.excluded), ['G12'])
        self.assertIn('prefit L1', sol.excluded['G12'])

    def test_insufficient_geometry_keeps_state(self):
        self.run_epochs(SATS)
        state = self.solver.state
        cov = self.solver.covariance
        latest = self.solver.latest

        with self.assertRaises(InsufficientGeometry) as ctx:
            self.solver.process(make_epoch(30.0, ['G05', 'G12', 'G20'], self.truth))
        err = ctx.exception
        self.assertEqual(err.epoch, 1)
        self.assertEqual(err.component, 'PPP_FLOAT.EquationAssembler')
        self.assertTrue(str(err).startswith('PPP_FLOAT.EquationAssembler:epoch 1: '))
        self.assertIsInstance(err.__cause__, InsufficientGeometry)
        self.assertEqual(err.num_satellites, 3)

        np.testing.assert_array_equal(self.solver.state, state)
        np.testing.assert_array_equal(self.solver.covariance, cov)
        self.assertIs(self.solver.latest, latest)
        self.assertEqual(self.solver.estimator_state, EstimatorState.STEADY_STATE)
        self.assertEqual(self.solver.epoch_count, 2)

        # The next good epoch continues from the retained posterior
        sol = self.run_epochs(SATS, start=60.0)
        self.assertEqual(sol.epoch, 2)

    def test_invalid_satellites_reduce_geometry(self):
        epoch = make_epoch(0.0, SATS, self.truth)
        epoch.satellites['G05'].iono_apriori = np.nan
        epoch.satellites['G12'].elevation = None
        with self.assertLogs('pyppp.ppp.equations', level='WARNING'):
            with self.assertRaises(InsufficientGeometry):
                self.solver.process(epoch)

    def test_first_epoch_failure(self):
        with self.assertRaises(InsufficientGeometry):
            self.solver.process(make_epoch(0.0, ['G05', 'G12', 'G20'], self.truth))
        self.assertEqual(self.solver.estimator_state, EstimatorState.FIRST_EPOCH)
        self.assertIsNone(self.solver.latest)
        self.assertEqual(self.run_epochs(SATS).epoch, 1)

    def test_singular_system_keeps_state(self):
        self.run_epochs(SATS)
        state = self.solver.state
        cov = self.solver.covariance

        failure = SingularSystem("Unable to invert normal matrix")
        with mock.patch.object(self.solver.kalman, 'meas_update', side_effect=failure):
            with self.assertRaises(SingularSystem) as ctx:
                self.solver.process(make_epoch(30.0, SATS, self.truth))
        self.assertEqual(ctx.exception.component, 'PPP_FLOAT.KalmanCore')
        self.assertEqual(ctx.exception.epoch, 1)
        self.assertIs(ctx.exception.__cause__, failure)

        np.testing.assert_array_equal(self.solver.state, state)
        np.testing.assert_array_equal(self.solver.covariance, cov)
        self.assertEqual(self.solver.latest.time, 0.0)

    def test_reset(self):
        self.run_epochs(SATS, count=2)
        self.solver.reset()
        self.assertIsNone(self.solver.latest)
        self.assertIsNone(self.solver.variables)
        self.assertEqual(self.solver.epoch_count, 0)
        self.assertEqual(self.solver.estimator_state, EstimatorState.FIRST_EPOCH)
        self.assertTrue(self.solver.fixing_summary().empty)

    def test_fixing_summary_float(self):
        self.run_epochs(SATS, count=2)
        df = self.solver.fixing_summary()
        self.assertEqual(list(df.index), SATS)
        self.assertTrue((df['fixed_count'] == 0).all())
        self.assertTrue((df['float_count'] == 4).all())
        self.assertTrue((df['epochs'] == 2).all())


class TestFixedSolver(unittest.TestCase):
    """Test ambiguity constraints inside the solver"""

    def setUp(self):
        self.truth = Truth.default()

    def test_kind_and_resolver(self):
        with self.assertRaises(ValueError):
            UncombinedPPPSolver(EstimatorKind.PPP_FIXED)
        with self.assertRaises(ValueError):
            UncombinedPPPSolver(EstimatorKind.PPP_FLOAT, resolver=lambda prior, epoch: {})
        solver = UncombinedPPPSolver('ppp_float')
        self.assertEqual(solver.kind, EstimatorKind.PPP_FLOAT)

    def test_fix_after_float_epoch(self):
        resolver = TruthResolver(self.truth, ['G05', 'G12'])
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FIXED, resolver=resolver)

        # First epoch: ambiguities not yet observable, float update
        with self.assertLogs('pyppp.ppp.solver', level='INFO') as logs:
            first = solver.process(make_epoch(0.0, SATS, self.truth))
        self.assertTrue(any('float update' in line for line in logs.output))
        self.assertEqual(first.status, SOLQ_FLOAT)
        self.assertEqual(first.system.num_rows, 25)

        sol = solver.process(make_epoch(30.0, SATS, self.truth))
        self.assertEqual(sol.status, SOLQ_FIX)
        self.assertEqual(len(sol.fixed), 4)
        self.assertEqual(sol.system.num_rows, 29)
        self.assertEqual(sol.system.rows_of(RowKind.AMBIGUITY_FIX), [25, 26, 27, 28])
        self.assertEqual(len(sol.postfit), 29)
        for sat in ('G05', 'G12'):
            self.assertAlmostEqual(sol.value(ObsType.AMB_L1, sat), self.truth.n1[sat], places=6)
            self.assertAlmostEqual(sol.value(ObsType.AMB_L2, sat), self.truth.n2[sat], places=6)
            self.assertLess(sol.sigma(ObsType.AMB_L1, sat), 1e-5)

        fixing = sol.fixing
        self.assertEqual(fixing['G05'].fixing_rate, 1.0)
        self.assertEqual(fixing['G20'].fixing_rate, 0.0)

        df = solver.fixing_summary()
        self.assertEqual(df.loc['G05', 'fixed_count'], 2)
        self.assertEqual(df.loc['G05', 'float_count'], 4)
        self.assertAlmostEqual(df.loc['G05', 'fixing_rate'], 0.5)
        self.assertEqual(df.loc['G24', 'fixed_count'], 0)

    def test_require_fix(self):
        config = SolverConfig(require_fix=True)
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FIXED, config,
                                     resolver=lambda prior, epoch: {})
        with self.assertRaises(NoFixableAmbiguity) as ctx:
            solver.process(make_epoch(0.0, SATS, self.truth))
        self.assertEqual(ctx.exception.component, 'PPP_FIXED.AmbiguityConstraintInjector')
        self.assertEqual(ctx.exception.epoch, 0)
        self.assertIsNone(solver.latest)
        self.assertEqual(solver.estimator_state, EstimatorState.FIRST_EPOCH)

    def test_fix_weight_from_config(self):
        config = SolverConfig(fix_weight=1e12)
        resolver = TruthResolver(self.truth, ['G05'])
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FIXED, config, resolver=resolver)
        solver.process(make_epoch(0.0, SATS, self.truth))
        sol = solver.process(make_epoch(30.0, SATS, self.truth))
        rows = sol.system.rows_of(RowKind.AMBIGUITY_FIX)
        self.assertEqual(len(rows), 2)
        self.assertEqual(sol.system.R[rows[0], rows[0]], 1e12)


class TestSolverConfiguration(unittest.TestCase):
    """Test configuration options reaching the components"""

    def tearDown(self):
        root = logging.getLogger('pyppp')
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.NOTSET)

    def test_fixed_coordinates(self):
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT,
                                     SolverConfig(fix_coordinates=True))
        sol = solver.process(make_epoch(0.0, SATS))
        self.assertEqual(len(sol.variables), 17)
        self.assertEqual(set(sol.core), {ObsType.WET_TROP, ObsType.CDT})

    def test_neu_coordinates(self):
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT, SolverConfig(use_neu=True))
        epoch = make_epoch(0.0, SATS)
        for sat_data in epoch.satellites.values():
            p = sat_data.partials
            p[ObsType.DLAT], p[ObsType.DLON], p[ObsType.DH] = p[ObsType.DY], p[ObsType.DX], p[ObsType.DZ]
        sol = solver.process(epoch)
        self.assertIn(ObsType.DLAT, sol.core)
        self.assertNotIn(ObsType.DX, sol.core)

    def test_initial_variances(self):
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT,
                                     SolverConfig(var_iono=100.0, var_coord=1.0))
        variables = solver.catalog('WUHN').build(SATS)
        self.assertEqual(variables.spec(variables.lookup(ObsType.IONO_L1, 'G05')).initial_variance, 100.0)
        self.assertEqual(variables.spec(variables.lookup(ObsType.DX)).initial_variance, 1.0)

    def test_constraint_sigmas(self):
        config = SolverConfig(code_sigma=0.5, iono_constraint_var=4.0)
        solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT, config)
        sol = solver.process(make_epoch(0.0, SATS))
        self.assertAlmostEqual(sol.system.R[0, 0], 4.0)
        iono_row = sol.system.rows_of(RowKind.IONO_CONSTRAINT)[0]
        self.assertAlmostEqual(sol.system.R[iono_row, iono_row], 0.25)

    def test_logging_config(self):
        config = SolverConfig(logging={'default_level': 'WARNING', 'console': False})
        UncombinedPPPSolver(EstimatorKind.PPP_FLOAT, config)
        self.assertEqual(logging.getLogger('pyppp').level, logging.WARNING)


if __name__ == '__main__':
    unittest.main()
