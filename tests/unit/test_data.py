"""
Unit tests for the data loader and park attribute preparation.
"""
import unittest
import tempfile
from pathlib import Path
import pandas as pd
import numpy as np
import geopandas as gpd
from shapely.geometry import Point
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from park_access.data.features import LOG_SIZE_COLUMN, SIGNAL_COLUMN, prepare_park_attributes
from park_access.data.loader import DataLoader
from park_access.utils.error_handling import InputShapeError
from tests.helpers import make_lattice, make_parks


class TestDataLoader(unittest.TestCase):
    """Tests for the DataLoader class."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.loader = DataLoader(id_column='GEOID', park_id_column='park_id')

        self.tracts = make_lattice(k=3)
        self.tract_path = self.dir / 'tracts.gpkg'
        self.tracts.to_file(self.tract_path, driver='GPKG')

        centroids = self.tracts.geometry.centroid
        self.centroids = pd.DataFrame({
            'GEOID': self.tracts['GEOID'],
            'x': centroids.x,
            'y': centroids.y,
        })

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_tracts(self):
        tracts = self.loader.load_tracts(self.tract_path)

        self.assertEqual(len(tracts), 9)
        self.assertIn('GEOID', tracts.columns)
        self.assertTrue((tracts['GEOID'].map(type) == str).all())

    def test_cache_holds_validated_layer(self):
        first = self.loader.load_tracts(self.tract_path)
        second = self.loader.load_tracts(self.tract_path)

        self.assertIs(first, second)
        self.assertEqual(len(self.loader.cache), 1)

    def test_rejected_layer_is_not_cached(self):
        path = self.dir / 'no_id.gpkg'
        self.tracts.drop(columns=['GEOID']).to_file(path, driver='GPKG')

        with self.assertRaises(InputShapeError):
            self.loader.load_tracts(path)
        self.assertEqual(self.loader.cache, {})

    def test_load_parks(self):
        path = self.dir / 'parks.gpkg'
        make_parks(n=4).to_file(path, driver='GPKG')

        parks = self.loader.load_parks(path)
        self.assertEqual(len(parks), 4)

    def test_duplicated_tract_ids(self):
        tracts = self.tracts.copy()
        tracts.loc[1, 'GEOID'] = tracts.loc[0, 'GEOID']
        path = self.dir / 'duplicated.gpkg'
        tracts.to_file(path, driver='GPKG')

        with self.assertRaises(InputShapeError):
            self.loader.load_tracts(path)

    def test_geographic_crs(self):
        path = self.dir / 'geographic.gpkg'
        self.tracts.to_crs("EPSG:4326").to_file(path, driver='GPKG')

        with self.assertRaises(InputShapeError):
            self.loader.load_tracts(path)

    def test_missing_file(self):
        with self.assertRaises(InputShapeError):
            self.loader.load_tracts(self.dir / 'missing.gpkg')

    def test_load_and_join_centroids(self):
        path = self.dir / 'centroids.csv'
        # Shuffled, with one extra row
        extra = pd.DataFrame({'GEOID': ['EXTRA'], 'x': [0.0], 'y': [0.0]})
        pd.concat([self.centroids.iloc[::-1], extra]).to_csv(path, index=False)

        centroids = self.loader.load_centroids(path)
        joined = self.loader.join_centroids(self.tracts, centroids)

        self.assertEqual(len(joined), 9)
        self.assertEqual(list(joined['GEOID']), list(self.tracts['GEOID']))
        np.testing.assert_allclose(joined.geometry.x, self.tracts.geometry.centroid.x)
        self.assertEqual(joined.crs, self.tracts.crs)

    def test_join_centroid_layer(self):
        shuffled = self.tracts.iloc[::-1]
        layer = gpd.GeoDataFrame(
            {'GEOID': shuffled['GEOID'].to_numpy()},
            geometry=shuffled.geometry.centroid.to_numpy(), crs=self.tracts.crs
        )

        joined = self.loader.join_centroids(self.tracts, layer)

        self.assertEqual(list(joined['GEOID']), list(self.tracts['GEOID']))
        np.testing.assert_allclose(joined.geometry.x, self.tracts.geometry.centroid.x)
        np.testing.assert_allclose(joined.geometry.y, self.tracts.geometry.centroid.y)

    def test_centroid_layer_mismatch(self):
        points = self.tracts.geometry.centroid
        layer = gpd.GeoDataFrame(
            {'GEOID': self.tracts['GEOID']}, geometry=points, crs=self.tracts.crs
        )

        with self.assertRaises(InputShapeError):
            self.loader.join_centroids(self.tracts, layer.iloc[2:])
        with self.assertRaises(InputShapeError):
            self.loader.join_centroids(self.tracts, layer.drop(columns=['GEOID']))
        with self.assertRaises(InputShapeError):
            self.loader.join_centroids(self.tracts, layer.to_crs("EPSG:32618"))
        with self.assertRaises(InputShapeError):
            self.loader.join_centroids(self.tracts, pd.concat([layer, layer.iloc[:1]]))

    def test_missing_centroid(self):
        with self.assertRaises(InputShapeError):
            self.loader.join_centroids(self.tracts, self.centroids.iloc[1:])

    def test_duplicated_centroid(self):
        path = self.dir / 'centroids.csv'
        pd.concat([self.centroids, self.centroids.iloc[:1]]).to_csv(path, index=False)

        with self.assertRaises(InputShapeError):
            self.loader.load_centroids(path)

    def test_centroid_columns(self):
        path = self.dir / 'centroids.csv'
        self.centroids.drop(columns=['y']).to_csv(path, index=False)

        with self.assertRaises(InputShapeError):
            self.loader.load_centroids(path)


class TestParkAttributes(unittest.TestCase):
    """Tests for prepare_park_attributes."""

    def setUp(self):
        """Set up test fixtures."""
        self.parks = gpd.GeoDataFrame(
            {
                'park_id': ['a', 'b', 'c', 'd'],
                'acres': [0.5, 2.0, 10.0, 40.0],
                'checkins': [0.0, 3.0, 50.0, 400.0],
            },
            geometry=[Point(i, i) for i in range(4)],
            crs="EPSG:3857",
        )

    def test_minimum_area_and_log_size(self):
        prepared = prepare_park_attributes(self.parks, min_acres=1.0)

        self.assertEqual(list(prepared['park_id']), ['b', 'c', 'd'])
        np.testing.assert_allclose(prepared[LOG_SIZE_COLUMN], np.log([2.0, 10.0, 40.0]))
        self.assertEqual(len(self.parks), 4)
        self.assertNotIn(LOG_SIZE_COLUMN, self.parks.columns)

    def test_yeojohnson_signal(self):
        prepared = prepare_park_attributes(self.parks, min_acres=0.1)

        self.assertIn(SIGNAL_COLUMN, prepared.columns)
        self.assertTrue(np.all(np.isfinite(prepared[SIGNAL_COLUMN])))
        self.assertIn('yeojohnson_lambda', prepared.attrs)
        # The transform is monotonic
        self.assertTrue(prepared[SIGNAL_COLUMN].is_monotonic_increasing)

    def test_without_signal(self):
        prepared = prepare_park_attributes(self.parks.drop(columns=['checkins']), min_acres=1.0)
        self.assertNotIn(SIGNAL_COLUMN, prepared.columns)

    def test_no_park_left(self):
        with self.assertRaises(InputShapeError):
            prepare_park_attributes(self.parks, min_acres=100.0)

    def test_missing_size_column(self):
        with self.assertRaises(InputShapeError):
            prepare_park_attributes(self.parks, size_column='hectares')


if __name__ == '__main__':
    unittest.main()
