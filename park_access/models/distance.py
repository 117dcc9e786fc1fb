"""
Distance matrix module for Park Access Analysis.

This module provides the DistanceMatrix class, which computes the dense
tract-by-park travel distance matrix used by the accessibility logsum.
Distances are planar Euclidean: inputs must already be in a projected,
distance-preserving coordinate system.
"""
import logging
from typing import Optional, Union

import numpy as np
import geopandas as gpd
from scipy.spatial.distance import cdist

from park_access.config import config
from park_access.utils.error_handling import InputShapeError, handle_errors
from park_access.utils.validation import validate_finite

# Initialize logger
logger = logging.getLogger(__name__)

PointsLike = Union[np.ndarray, gpd.GeoSeries, gpd.GeoDataFrame]


def points_to_array(points: PointsLike, name: str = 'points') -> np.ndarray:
    """
    Convert a point set to an (m, 2) coordinate array.

    Polygon geometries are reduced to their centroids.

    Args:
        points: Coordinate array, GeoSeries or GeoDataFrame.
        name: Name used in error messages.

    Returns:
        Float array of shape (m, 2).

    Raises:
        InputShapeError: If the point set is empty or not two-dimensional.
    """
    if isinstance(points, gpd.GeoDataFrame):
        points = points.geometry

    if isinstance(points, gpd.GeoSeries):
        if len(points) == 0:
            raise InputShapeError(f"{name} is empty")
        if not (points.geom_type == 'Point').all():
            points = points.centroid
        coords = np.column_stack([points.x.to_numpy(), points.y.to_numpy()])
    else:
        coords = np.asarray(points, dtype=float)

    if coords.ndim != 2 or coords.shape[1] != 2:
        logger.error(f"{name} must have shape (m, 2), got {coords.shape}")
        raise InputShapeError(f"{name} must have shape (m, 2), got {coords.shape}")
    if coords.shape[0] == 0:
        logger.error(f"{name} is empty")
        raise InputShapeError(f"{name} is empty")

    validate_finite(coords, name)
    return coords


class DistanceMatrix:
    """
    Tract-by-park distance matrix with a minimum distance floor.

    No tract-park pair is modelled as zero distance: every entry below
    ``min_distance`` is clamped up to exactly ``min_distance``.

    Attributes:
        min_distance (float): Distance floor.
        values (np.ndarray): Last computed (n_tracts, n_parks) matrix.
    """

    def __init__(self, min_distance: Optional[float] = None):
        """
        Initialize the distance matrix.

        Args:
            min_distance: Distance floor. If None, uses ``distance.min_distance``
                          from config.
        """
        if min_distance is None:
            min_distance = config.get('distance.min_distance', 0.1)
        if min_distance <= 0:
            raise InputShapeError(f"min_distance must be positive, got {min_distance}")

        self.min_distance = float(min_distance)
        self.values: Optional[np.ndarray] = None

    @handle_errors
    def compute(self, origin_points: PointsLike, dest_points: PointsLike) -> np.ndarray:
        """
        Compute the floored Euclidean distance matrix.

        Args:
            origin_points: n origin locations (tract centroids).
            dest_points: p destination locations (parks).

        Returns:
            Array of shape (n, p) with every entry >= min_distance.
        """
        origins = points_to_array(origin_points, 'origin_points')
        destinations = points_to_array(dest_points, 'dest_points')

        raw = cdist(origins, destinations, metric='euclidean')
        n_floored = int((raw < self.min_distance).sum())
        distances = np.maximum(raw, self.min_distance)

        if n_floored:
            logger.info(f"Clamped {n_floored} distances to the floor {self.min_distance}")

        logger.info(
            f"Computed {distances.shape[0]}x{distances.shape[1]} distance matrix "
            f"(min={distances.min():.2f}, median={np.median(distances):.2f}, "
            f"max={distances.max():.2f})"
        )

        self.values = distances
        return distances

    def log_transform(self, distances: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Return log distances.

        The floor guarantees finite logs.

        Args:
            distances: Matrix to transform. If None, uses the last computed matrix.

        Returns:
            Element-wise natural log of the distances.
        """
        if distances is None:
            distances = self.values
        if distances is None:
            raise InputShapeError("Distance matrix has not been computed")
        return np.log(np.maximum(distances, self.min_distance))
