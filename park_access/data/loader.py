"""
Data loader module for Park Access Analysis.

This module provides the DataLoader class for reading the tract and park
layers and the population-weighted centroid table, and for joining them on
their identifiers. Layers are expected to be cleaned and projected already;
nothing is reprojected or imputed here.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd
import geopandas as gpd

from park_access.config import config
from park_access.utils.error_handling import InputShapeError, handle_errors
from park_access.utils.validation import validate_columns, validate_data

# Initialize logger
logger = logging.getLogger(__name__)


class DataLoader:
    """
    Data loader for Park Access Analysis.

    Attributes:
        id_column (str): Tract identifier column.
        park_id_column (str): Park identifier column.
        cache (Dict[str, Any]): Cache for loaded data.
    """

    def __init__(self, id_column: Optional[str] = None, park_id_column: Optional[str] = None):
        """
        Initialize the data loader.

        Args:
            id_column: Tract identifier. If None, uses ``data.id_column``.
            park_id_column: Park identifier. If None, uses ``data.park_id_column``.
        """
        self.id_column = id_column or config.get('data.id_column', 'GEOID')
        self.park_id_column = park_id_column or config.get('data.park_id_column', 'park_id')
        self.cache: Dict[str, Any] = {}

    def _read_layer(
        self, file_path: Union[str, Path], label: str, id_column: str
    ) -> gpd.GeoDataFrame:
        file_path = Path(file_path)

        cache_key = f"{label}_{file_path}"
        if cache_key in self.cache:
            logger.info(f"Using cached {label} for {file_path}")
            return self.cache[cache_key]

        if not file_path.exists():
            logger.error(f"File not found: {file_path}")
            raise InputShapeError(f"File not found: {file_path}")

        logger.info(f"Loading {label} from {file_path}")
        gdf = gpd.read_file(file_path)

        validate_columns(gdf, [id_column], label)
        gdf = gdf.astype({id_column: str})
        validate_data(gdf, label, id_column=id_column)
        self.check_projected(gdf, label)

        logger.info(f"Loaded {len(gdf)} {label}")
        self.cache[cache_key] = gdf
        return gdf

    @handle_errors
    def load_tracts(self, file_path: Optional[Union[str, Path]] = None) -> gpd.GeoDataFrame:
        """
        Load the tract polygons with covariates and outcomes.

        Args:
            file_path: Path to the layer. If None, uses ``data.tract_path``.

        Returns:
            GeoDataFrame with one row per tract.

        Raises:
            InputShapeError: If the identifier is missing or duplicated or the
                layer is not in a projected CRS.
        """
        return self._read_layer(
            file_path or config.get('data.tract_path'), 'tracts', self.id_column
        )

    @handle_errors
    def load_parks(self, file_path: Optional[Union[str, Path]] = None) -> gpd.GeoDataFrame:
        """
        Load the park layer.

        Args:
            file_path: Path to the layer. If None, uses ``data.park_path``.

        Returns:
            GeoDataFrame with one row per park.
        """
        return self._read_layer(
            file_path or config.get('data.park_path'), 'parks', self.park_id_column
        )

    @handle_errors
    def load_centroids(self, file_path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """
        Load population-weighted centroids from a CSV with id, x and y columns.

        Coordinates must be in the CRS of the tract layer.

        Args:
            file_path: Path to the CSV. If None, uses ``data.centroid_path``.

        Returns:
            DataFrame with the identifier, x and y columns.
        """
        file_path = Path(file_path or config.get('data.centroid_path'))
        if not file_path.exists():
            logger.error(f"File not found: {file_path}")
            raise InputShapeError(f"File not found: {file_path}")

        logger.info(f"Loading centroids from {file_path}")
        centroids = pd.read_csv(file_path, dtype={self.id_column: str})

        validate_columns(centroids, [self.id_column, 'x', 'y'], 'centroids')
        duplicated = centroids[self.id_column][centroids[self.id_column].duplicated()]
        if len(duplicated) > 0:
            logger.error(f"Duplicated identifiers in centroids: {list(duplicated)[:5]}")
            raise InputShapeError(f"Duplicated identifiers in centroids: {list(duplicated)[:5]}")

        logger.info(f"Loaded {len(centroids)} centroids")
        return centroids[[self.id_column, 'x', 'y']]

    @handle_errors
    def join_centroids(
        self, tracts: gpd.GeoDataFrame, centroids: Union[gpd.GeoDataFrame, pd.DataFrame]
    ) -> gpd.GeoDataFrame:
        """
        Align centroids with the tract rows.

        Every tract must have exactly one centroid. Extra centroids are
        dropped with a warning.

        Args:
            tracts: Tract layer.
            centroids: Centroid table from ``load_centroids``, or a
                GeoDataFrame of centroids carrying the tract identifier.
                Non-point geometries are reduced to their centroids.

        Returns:
            Point GeoDataFrame indexed and ordered like ``tracts``, in the
            tracts' CRS.

        Raises:
            InputShapeError: If a tract has no centroid, an identifier is
                duplicated, or a centroid layer is in another CRS.
        """
        if isinstance(centroids, gpd.GeoDataFrame):
            centroids = self._centroid_table(tracts, centroids)

        validate_columns(centroids, [self.id_column, 'x', 'y'], 'centroids')
        keys = tracts[self.id_column].astype(str)
        table = centroids.astype({self.id_column: str}).set_index(self.id_column)

        duplicated = table.index[table.index.duplicated()]
        if len(duplicated) > 0:
            logger.error(f"Duplicated identifiers in centroids: {list(duplicated)[:5]}")
            raise InputShapeError(f"Duplicated identifiers in centroids: {list(duplicated)[:5]}")

        missing = keys[~keys.isin(table.index)]
        if len(missing) > 0:
            logger.error(f"{len(missing)} tracts have no centroid: {list(missing)[:5]}")
            raise InputShapeError(f"{len(missing)} tracts have no centroid: {list(missing)[:5]}")

        extra = len(table.index.difference(keys))
        if extra:
            logger.warning(f"Dropping {extra} centroids without a matching tract")

        aligned = table.loc[keys.to_numpy()]
        return gpd.GeoDataFrame(
            {self.id_column: keys.to_numpy()},
            geometry=gpd.points_from_xy(aligned['x'], aligned['y']),
            index=tracts.index,
            crs=tracts.crs,
        )

    def _centroid_table(
        self, tracts: gpd.GeoDataFrame, centroids: gpd.GeoDataFrame
    ) -> pd.DataFrame:
        if self.id_column not in centroids.columns:
            logger.error(f"Centroid layer has no identifier column {self.id_column}")
            raise InputShapeError(f"Centroid layer has no identifier column {self.id_column}")
        if centroids.crs is not None and tracts.crs is not None and centroids.crs != tracts.crs:
            logger.error(f"Centroid CRS {centroids.crs} differs from tract CRS {tracts.crs}")
            raise InputShapeError(
                f"Centroid CRS {centroids.crs} differs from tract CRS {tracts.crs}"
            )

        points = centroids.geometry.centroid
        return pd.DataFrame({
            self.id_column: centroids[self.id_column].to_numpy(),
            'x': points.x.to_numpy(),
            'y': points.y.to_numpy(),
        })

    @staticmethod
    def check_projected(gdf: gpd.GeoDataFrame, label: str = 'data') -> None:
        """
        Require a projected CRS so distances are in linear units.

        Raises:
            InputShapeError: If the CRS is geographic.
        """
        if gdf.crs is None:
            logger.warning(f"{label} has no CRS; coordinates are assumed to be projected")
            return
        if gdf.crs.is_geographic:
            logger.error(f"{label} uses a geographic CRS ({gdf.crs.to_string()})")
            raise InputShapeError(
                f"{label} uses a geographic CRS ({gdf.crs.to_string()}); reproject before loading"
            )
