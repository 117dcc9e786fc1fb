"""
Unit tests for the logsum calibration.
"""
import unittest
import pandas as pd
import numpy as np
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from park_access.models.accessibility import LogsumEngine, standardize
from park_access.models.calibration import CalibrationResult, Calibrator
from park_access.models.distance import DistanceMatrix
from park_access.models.regression import fit_model, make_regression_fn
from park_access.models.schemas import CalibrationBounds
from park_access.models.spatial.weights import SpatialWeightMatrix
from park_access.utils.error_handling import InputShapeError, ModelSpecificationError
from tests.helpers import make_lattice, make_parks


class TestCalibrator(unittest.TestCase):
    """Tests for the Calibrator class."""

    def setUp(self):
        """Set up test fixtures."""
        rng = np.random.default_rng(42)
        self.lattice = make_lattice(k=6, seed=42)
        parks = make_parks(n=5, seed=7)

        matrix = DistanceMatrix(min_distance=0.1)
        self.distances = matrix.log_transform(matrix.compute(self.lattice, parks))
        self.sizes = np.log(parks['acres'].to_numpy())
        self.signal = parks['checkins'].to_numpy() / 10.0

        true_access = standardize(
            LogsumEngine().accessibility(self.distances, self.sizes, None, (-1.5, 0.8))
        )
        self.design = self.lattice[['x1']].copy()
        self.outcome = pd.Series(
            1.0 + 0.5 * self.design['x1'].to_numpy() + true_access
            + 0.3 * rng.normal(size=len(self.design)),
            index=self.design.index, name='outcome'
        )
        self.bounds = CalibrationBounds(distance=(-5.0, 0.0), size=(0.0, 5.0), signal=(-3.0, 3.0))
        self.ols = make_regression_fn('ols')

    def test_betas_within_bounds_for_random_starts(self):
        rng = np.random.default_rng(0)
        calibrator = Calibrator(self.design, self.outcome)

        for _ in range(4):
            start = [rng.uniform(-8.0, 2.0), rng.uniform(-2.0, 8.0)]
            result = calibrator.calibrate(
                self.distances, self.sizes, None, self.ols, start, self.bounds
            )

            self.assertIsInstance(result, CalibrationResult)
            self.assertEqual(len(result.betas), 2)
            self.assertTrue(-5.0 <= result.betas[0] <= 0.0)
            self.assertTrue(0.0 <= result.betas[1] <= 5.0)
            self.assertEqual(result.specification, 'ols')

    def test_improves_on_starting_point(self):
        calibrator = Calibrator(self.design, self.outcome)
        start = (-0.2, 0.1)

        result = calibrator.calibrate(
            self.distances, self.sizes, None, self.ols, start, self.bounds
        )
        start_ll = calibrator.log_likelihood(start, self.distances, self.sizes, None, self.ols)

        self.assertGreaterEqual(result.log_likelihood, start_ll - 1e-8)
        self.assertAlmostEqual(
            result.log_likelihood,
            calibrator.log_likelihood(result.betas, self.distances, self.sizes, None, self.ols),
            places=6
        )

    def test_inputs_not_modified(self):
        design = self.design.copy()
        distances = self.distances.copy()
        calibrator = Calibrator(self.design, self.outcome)

        calibrator.calibrate(self.distances, self.sizes, None, self.ols, (-1.0, 0.5), self.bounds)

        pd.testing.assert_frame_equal(self.design, design)
        np.testing.assert_array_equal(self.distances, distances)
        self.assertNotIn('accessibility', self.design.columns)

    def test_zero_variance_accessibility_fits_base_design(self):
        calibrator = Calibrator(self.design, self.outcome)
        ll = calibrator.log_likelihood((0.0, 0.0), self.distances, self.sizes, None, self.ols)
        base = fit_model(self.design, self.outcome, None, 'ols')

        self.assertAlmostEqual(ll, base.log_likelihood)

    def test_start_on_distance_bound(self):
        calibrator = Calibrator(self.design, self.outcome)

        for start in [(0.0, 2.1377), (0.5, 0.5), (0.0, 0.0)]:
            result = calibrator.calibrate(
                self.distances, self.sizes, None, self.ols, start, self.bounds
            )
            self.assertTrue(-5.0 <= result.betas[0] <= 0.0)
            self.assertTrue(0.0 <= result.betas[1] <= 5.0)
            self.assertTrue(np.isfinite(result.log_likelihood))

    def test_log_likelihood_at_distance_bound(self):
        calibrator = Calibrator(self.design, self.outcome)
        ll = calibrator.log_likelihood((0.0, 2.1377), self.distances, self.sizes, None, self.ols)
        base = fit_model(self.design, self.outcome, None, 'ols')

        self.assertAlmostEqual(ll, base.log_likelihood)

    def test_fixed_bound_is_flagged(self):
        bounds = CalibrationBounds(distance=(-1.0, -1.0), size=(0.0, 5.0))
        result = Calibrator(self.design, self.outcome).calibrate(
            self.distances, self.sizes, None, self.ols, (-3.0, 0.5), bounds
        )

        self.assertEqual(result.betas[0], -1.0)
        self.assertTrue(result.at_bound[0])
        self.assertTrue(result.any_at_bound)

    def test_signal_coefficient(self):
        calibrator = Calibrator(self.design, self.outcome)

        with_signal = calibrator.calibrate(
            self.distances, self.sizes, self.signal, self.ols, (-1.0, 0.5, 0.0), self.bounds
        )
        self.assertEqual(len(with_signal.betas), 3)
        self.assertTrue(-3.0 <= with_signal.betas[2] <= 3.0)

        without_signal = calibrator.calibrate(
            self.distances, self.sizes, None, self.ols, (-1.0, 0.5, 0.0), self.bounds
        )
        self.assertEqual(len(without_signal.betas), 2)

    def test_bounds_as_pairs(self):
        result = Calibrator(self.design, self.outcome).calibrate(
            self.distances, self.sizes, None, self.ols, (-1.0, 0.5), [(-2.0, 0.0), (0.0, 2.0)]
        )
        self.assertTrue(-2.0 <= result.betas[0] <= 0.0)
        self.assertTrue(0.0 <= result.betas[1] <= 2.0)

    def test_invalid_bounds(self):
        calibrator = Calibrator(self.design, self.outcome)
        with self.assertRaises(ModelSpecificationError):
            calibrator.calibrate(
                self.distances, self.sizes, None, self.ols, (-1.0, 0.5), [(-2.0, 1.0), (0.0, 2.0)]
            )
        with self.assertRaises(ModelSpecificationError):
            calibrator.calibrate(
                self.distances, self.sizes, None, self.ols, (-1.0, 0.5), [(0.0, -2.0), (0.0, 2.0)]
            )

    def test_invalid_inputs(self):
        with self.assertRaises(InputShapeError):
            Calibrator(self.design, self.outcome.iloc[:-1])
        with self.assertRaises(InputShapeError):
            Calibrator(self.design.assign(accessibility=1.0), self.outcome)
        with self.assertRaises(InputShapeError):
            Calibrator(self.design, self.outcome).calibrate(
                self.distances, self.sizes, None, self.ols, (np.nan, 0.5), self.bounds
            )

    def test_spatial_regression(self):
        weights = SpatialWeightMatrix()
        weights.build(self.lattice, rule='queen')

        result = Calibrator(self.design, self.outcome, max_iterations=3).calibrate(
            self.distances, self.sizes, None, make_regression_fn('lag', weights),
            (-1.0, 0.5), self.bounds
        )

        self.assertEqual(result.specification, 'lag')
        self.assertTrue(-5.0 <= result.betas[0] <= 0.0)
        self.assertTrue(np.isfinite(result.log_likelihood))


class TestCalibrationResult(unittest.TestCase):
    """Tests for the manual override of calibration results."""

    def setUp(self):
        """Set up test fixtures."""
        self.result = CalibrationResult(
            betas=(-0.01, 9.9), log_likelihood=-50.0, converged=True,
            at_bound=(False, False), n_iterations=12, n_evaluations=40,
            message='CONVERGENCE', specification='ols'
        )

    def test_override(self):
        overridden = self.result.override((-1.0, 0.5), log_likelihood=-51.0)

        self.assertTrue(overridden.overridden)
        self.assertEqual(overridden.betas, (-1.0, 0.5))
        self.assertEqual(overridden.original_betas, (-0.01, 9.9))
        self.assertEqual(overridden.log_likelihood, -51.0)

        # The calibrated result is unchanged
        self.assertFalse(self.result.overridden)
        self.assertEqual(self.result.betas, (-0.01, 9.9))

    def test_override_keeps_first_original(self):
        twice = self.result.override((-1.0, 0.5)).override((-2.0, 1.0))
        self.assertEqual(twice.original_betas, (-0.01, 9.9))
        self.assertIsNone(twice.log_likelihood)

    def test_override_wrong_length(self):
        with self.assertRaises(InputShapeError):
            self.result.override((-1.0, 0.5, 0.2))


if __name__ == '__main__':
    unittest.main()
