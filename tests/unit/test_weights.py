"""
Unit tests for the spatial weight matrix and its trace summary.
"""
import unittest
import pandas as pd
import numpy as np
import geopandas as gpd
from shapely.geometry import box
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from park_access.models.spatial.weights import SpatialWeightMatrix, TraceSummary
from park_access.utils.error_handling import InputShapeError, ModelSpecificationError
from tests.helpers import make_lattice


class TestSpatialWeightMatrix(unittest.TestCase):
    """Tests for the SpatialWeightMatrix class."""

    def setUp(self):
        """Set up test fixtures."""
        self.lattice = make_lattice(k=4)

        # Three contiguous tracts and one far away
        self.with_isolate = gpd.GeoDataFrame(
            {'GEOID': ['A', 'B', 'C', 'D']},
            geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1), box(10, 10, 11, 11)],
            crs="EPSG:3857",
        )

    def test_queen_rows_sum_to_one(self):
        swm = SpatialWeightMatrix(self.lattice)
        swm.build(rule='queen')
        dense = swm.to_dense_matrix()

        self.assertEqual(dense.shape, (16, 16))
        np.testing.assert_allclose(dense.sum(axis=1), 1.0, atol=1e-9)
        np.testing.assert_array_equal(np.diag(dense), 0.0)

    def test_queen_corner_neighbors(self):
        swm = SpatialWeightMatrix()
        swm.build(self.lattice, rule='queen')
        dense = swm.to_dense_matrix()

        # A corner cell touches three cells, including the diagonal one
        self.assertEqual(int((dense[0] > 0).sum()), 3)
        self.assertAlmostEqual(dense[0, 5], 1.0 / 3.0)

    def test_isolate_keeps_zero_row(self):
        swm = SpatialWeightMatrix()
        swm.build(self.with_isolate, rule='queen')
        dense = swm.to_dense_matrix()

        self.assertEqual(len(swm.islands), 1)
        np.testing.assert_array_equal(dense[3], 0.0)
        np.testing.assert_array_equal(dense[:, 3], 0.0)
        np.testing.assert_allclose(dense[:3].sum(axis=1), 1.0, atol=1e-9)

    def test_isolate_contributes_no_spillover(self):
        swm = SpatialWeightMatrix()
        swm.build(self.with_isolate, rule='queen')

        base = pd.Series([1.0, 2.0, 3.0, 4.0], index=self.with_isolate.index)
        shocked = base.copy()
        shocked.iloc[3] = 1000.0

        lag_base = swm.get_spatial_lag(base)
        lag_shocked = swm.get_spatial_lag(shocked)

        self.assertIsInstance(lag_base, pd.Series)
        np.testing.assert_allclose(lag_base.iloc[:3], lag_shocked.iloc[:3])
        self.assertEqual(lag_shocked.iloc[3], 0.0)
        self.assertAlmostEqual(lag_base.iloc[1], 2.0)

    def test_from_array(self):
        matrix = np.array([
            [5.0, 1.0, 0.0],
            [2.0, 0.0, 2.0],
            [0.0, 0.0, 0.0],
        ])
        swm = SpatialWeightMatrix()
        swm.from_array(matrix)
        dense = swm.to_dense_matrix()

        np.testing.assert_allclose(dense[0], [0.0, 1.0, 0.0])
        np.testing.assert_allclose(dense[1], [0.5, 0.0, 0.5])
        np.testing.assert_array_equal(dense[2], 0.0)

    def test_from_array_invalid(self):
        with self.assertRaises(InputShapeError):
            SpatialWeightMatrix().from_array(np.ones((2, 3)))
        with self.assertRaises(InputShapeError):
            SpatialWeightMatrix().from_array(-np.ones((2, 2)))

    def test_distance_band(self):
        centroids = pd.DataFrame({'x': [0.0, 1.0, 2.0, 50.0], 'y': [0.0, 0.0, 0.0, 0.0]})
        swm = SpatialWeightMatrix()
        swm.build(centroids, rule='distance_band', threshold=1.5, alpha=-1.0)
        dense = swm.to_dense_matrix()

        np.testing.assert_allclose(dense[1], [0.5, 0.0, 0.5, 0.0])
        np.testing.assert_allclose(dense[0], [0.0, 1.0, 0.0, 0.0])
        np.testing.assert_array_equal(dense[3], 0.0)
        self.assertEqual(swm.islands, [3])

    def test_duplicate_centroids(self):
        centroids = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 1.0]])
        with self.assertRaises(InputShapeError):
            SpatialWeightMatrix().create_distance_weights(centroids, threshold=2.0)

    def test_invalid_rule(self):
        with self.assertRaises(ModelSpecificationError):
            SpatialWeightMatrix().build(self.lattice, rule='rook')

    def test_requires_weights(self):
        with self.assertRaises(InputShapeError):
            SpatialWeightMatrix().to_sparse_matrix()


class TestTraceSummary(unittest.TestCase):
    """Tests for the Monte Carlo trace summary."""

    def setUp(self):
        """Set up test fixtures."""
        self.swm = SpatialWeightMatrix()
        self.swm.build(make_lattice(k=5), rule='queen')

    def test_exact_low_powers(self):
        traces = self.swm.trace_summary(max_power=10, n_samples=8, seed=3)
        dense = self.swm.to_dense_matrix()
        n = dense.shape[0]

        self.assertIsInstance(traces, TraceSummary)
        self.assertEqual(traces.max_power, 10)
        self.assertEqual(traces.traces[0], 1.0)
        self.assertAlmostEqual(traces.traces[1], 0.0)
        self.assertAlmostEqual(traces.traces[2], np.trace(dense @ dense) / n)

    def test_monte_carlo_close_to_exact(self):
        traces = self.swm.trace_summary(max_power=6, n_samples=200, seed=11)
        dense = self.swm.to_dense_matrix()
        n = dense.shape[0]

        exact = [np.trace(np.linalg.matrix_power(dense, k)) / n for k in range(3, 7)]
        np.testing.assert_allclose(traces.traces[3:7], exact, atol=0.05)

    def test_cached(self):
        first = self.swm.trace_summary(max_power=5, n_samples=4, seed=1)
        with self.assertLogs('park_access.models.spatial.weights', level='DEBUG') as logs:
            second = self.swm.trace_summary(max_power=20, n_samples=50, seed=2)

        self.assertIs(first, second)
        self.assertTrue(any('cached traces' in message for message in logs.output))

    def test_row_sums_with_isolates(self):
        matrix = np.zeros((6, 6))
        matrix[0, 1] = matrix[1, 0] = matrix[1, 2] = matrix[2, 1] = 1.0
        swm = SpatialWeightMatrix()
        swm.from_array(matrix)
        dense = swm.to_dense_matrix()

        traces = swm.trace_summary(max_power=8, n_samples=4, seed=1)
        exact = [np.linalg.matrix_power(dense, k).sum(axis=1).mean() for k in range(9)]

        np.testing.assert_allclose(traces.row_sums, exact, atol=1e-12)
        self.assertAlmostEqual(traces.row_sums[1], 0.5)

        rho = 0.5
        multiplier = np.linalg.inv(np.eye(6) - rho * dense)
        self.assertAlmostEqual(traces.row_sum_series(rho)[0], multiplier.sum(axis=1).mean())
        self.assertAlmostEqual(
            traces.row_sum_series(rho, shift=1)[0], (multiplier @ dense).sum(axis=1).mean()
        )

    def test_row_sum_series_without_isolates(self):
        traces = self.swm.trace_summary(max_power=8, n_samples=4, seed=1)

        np.testing.assert_allclose(traces.row_sums, 1.0, atol=1e-12)
        rho = np.array([0.0, 0.5, -0.3])
        np.testing.assert_allclose(traces.row_sum_series(rho), 1.0 / (1.0 - rho))

    def test_power_series(self):
        traces = self.swm.trace_summary(max_power=8, n_samples=4, seed=1)

        self.assertAlmostEqual(traces.power_series(0.0)[0], 1.0)
        self.assertAlmostEqual(traces.power_series(0.0, shift=1)[0], traces.traces[1])
        self.assertEqual(traces.power_series(np.array([0.1, 0.2, 0.3])).shape, (3,))


if __name__ == '__main__':
    unittest.main()
