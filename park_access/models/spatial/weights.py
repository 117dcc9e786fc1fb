"""
Spatial weight matrix module for Park Access Analysis.

This module provides the SpatialWeightMatrix class for building the
row-standardized tract neighbor structure, and the TraceSummary of matrix
power traces used by the impact decomposition.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import pandas as pd
import numpy as np
import geopandas as gpd
from scipy import sparse
import libpysal.weights as weights

from park_access.config import config
from park_access.models.distance import points_to_array
from park_access.utils.error_handling import (
    InputShapeError, ModelSpecificationError, handle_errors
)
from park_access.utils.validation import validate_data, validate_matrix_shape

# Initialize logger
logger = logging.getLogger(__name__)

ADJACENCY_RULES = ('queen', 'distance_band')


@dataclass(frozen=True)
class TraceSummary:
    """
    Traces and row sums of powers of a spatial weight matrix.

    Attributes:
        traces (np.ndarray): tr(W^k) / n for k = 0..max_power (traces[0] == 1).
        n (int): Number of spatial units.
        n_samples (int): Number of Monte Carlo draws used for k > 2.
        seed (Optional[int]): Seed of the Monte Carlo draws.
        row_sums (Optional[np.ndarray]): mean(W^k 1) for k = 0..max_power.
            None stands for a matrix whose rows all sum to one.
    """
    traces: np.ndarray
    n: int
    n_samples: int
    seed: Optional[int] = None
    row_sums: Optional[np.ndarray] = None

    @property
    def max_power(self) -> int:
        return len(self.traces) - 1

    def power_series(self, rho: Union[float, np.ndarray], shift: int = 0) -> np.ndarray:
        """
        Evaluate sum_k rho^k tr(W^(k+shift)) / n.

        Args:
            rho: Spatial autoregressive coefficient, scalar or array of draws.
            shift: Offset of the matrix power (1 for lagged covariates).

        Returns:
            The truncated series for each rho.
        """
        rho = np.atleast_1d(np.asarray(rho, dtype=float))
        traces = self.traces[shift:]
        powers = rho[:, np.newaxis] ** np.arange(len(traces))[np.newaxis, :]
        return powers @ traces

    def row_sum_series(self, rho: Union[float, np.ndarray], shift: int = 0) -> np.ndarray:
        """
        Evaluate sum_k rho^k mean(W^(k+shift) 1), the average total multiplier.

        Powers beyond ``max_power`` are assumed to keep the last row sum, so a
        matrix whose rows all sum to one gives exactly 1 / (1 - rho). Isolates
        have zero rows and only contribute the k = 0 term.

        Args:
            rho: Spatial autoregressive coefficient, scalar or array with |rho| < 1.
            shift: Offset of the matrix power (1 for lagged covariates).

        Returns:
            The series for each rho.
        """
        rho = np.atleast_1d(np.asarray(rho, dtype=float))
        row_sums = self.row_sums if self.row_sums is not None else np.ones(len(self.traces))
        row_sums = row_sums[shift:]
        m = len(row_sums)
        powers = rho[:, np.newaxis] ** np.arange(m)[np.newaxis, :]
        return powers @ row_sums + row_sums[-1] * rho ** m / (1.0 - rho)


class SpatialWeightMatrix:
    """
    Spatial weight matrix for Park Access Analysis.

    Rows are standardized to sum to one. Tracts without neighbors (isolates)
    keep an all-zero row: they receive no spillover and are not given an
    imputed neighbor. The diagonal is always zero.

    Attributes:
        data (gpd.GeoDataFrame): Tract geometries the weights were built from.
        w (weights.W): libpysal weights object.
        type (str): Adjacency rule used to build the weights.
        params (dict): Parameters used to create the weight matrix.
    """

    def __init__(self, data: Optional[gpd.GeoDataFrame] = None):
        """
        Initialize the spatial weight matrix.

        Args:
            data: GeoDataFrame containing tract geometries.
        """
        self.data = data
        self.w = None
        self.type = None
        self.params = {}
        self._traces: Optional[TraceSummary] = None

    @handle_errors
    def build(
        self, data: Optional[Union[gpd.GeoDataFrame, pd.DataFrame, np.ndarray]] = None,
        rule: Optional[str] = None, threshold: Optional[float] = None,
        alpha: Optional[float] = None
    ) -> weights.W:
        """
        Build row-standardized weights with the requested adjacency rule.

        Args:
            data: Tract polygons for 'queen'; population-weighted centroids
                  (point GeoDataFrame, DataFrame with x/y columns or (n, 2)
                  array) for 'distance_band'.
            rule: 'queen' or 'distance_band'. If None, uses ``weights.rule``.
            threshold: Distance band radius for 'distance_band'.
            alpha: Distance decay exponent for 'distance_band' (-1 is inverse
                   distance).

        Returns:
            Row-standardized libpysal weights.
        """
        rule = rule or config.get('weights.rule', 'queen')

        if rule == 'queen':
            self.create_contiguity_weights(data)
        elif rule == 'distance_band':
            self.create_distance_weights(data, threshold=threshold, alpha=alpha)
        else:
            logger.error(f"Invalid adjacency rule: {rule}")
            raise ModelSpecificationError(
                f"Invalid adjacency rule: {rule}. Options are {ADJACENCY_RULES}"
            )

        return self.row_normalize()

    @handle_errors
    def create_contiguity_weights(self, data: Optional[gpd.GeoDataFrame] = None) -> weights.W:
        """
        Create queen contiguity weights: any shared boundary point is adjacency.

        Args:
            data: GeoDataFrame of tract polygons. If None, uses the data
                  provided during initialization.

        Returns:
            Binary contiguity weights.
        """
        logger.info("Creating queen contiguity weights")

        if data is not None:
            self.data = data

        if self.data is None:
            logger.error("No data provided")
            raise InputShapeError("No data provided")

        validate_data(self.data, 'spatial')

        self.w = weights.Queen.from_dataframe(self.data)
        self.type = 'queen'
        self.params = {'queen': True}
        self._traces = None

        logger.info(f"Created queen contiguity weights with {self.w.n} units")
        return self.w

    @handle_errors
    def create_distance_weights(
        self, centroids: Union[gpd.GeoDataFrame, pd.DataFrame, np.ndarray],
        threshold: Optional[float] = None, alpha: Optional[float] = None
    ) -> weights.W:
        """
        Create inverse-distance weights within a fixed radius.

        Args:
            centroids: Population-weighted centroids.
            threshold: Radius of the distance band. If None, uses
                       ``weights.threshold``.
            alpha: Distance decay exponent. If None, uses ``weights.alpha``.

        Returns:
            Distance-band weights with w_ij = d_ij ** alpha inside the band.
        """
        if threshold is None:
            threshold = config.get('weights.threshold')
        if alpha is None:
            alpha = config.get('weights.alpha', -1.0)

        logger.info(f"Creating distance band weights with threshold={threshold}, alpha={alpha}")

        if isinstance(centroids, pd.DataFrame) and not isinstance(centroids, gpd.GeoDataFrame):
            if not {'x', 'y'}.issubset(centroids.columns):
                raise InputShapeError("Centroid table must have 'x' and 'y' columns")
            coords = points_to_array(centroids[['x', 'y']].to_numpy(), 'centroids')
        else:
            coords = points_to_array(centroids, 'centroids')

        if np.unique(coords, axis=0).shape[0] < coords.shape[0]:
            raise InputShapeError("Centroids contain duplicated locations")

        self.w = weights.DistanceBand.from_array(
            coords, threshold=threshold, alpha=alpha, binary=False
        )
        self.type = 'distance_band'
        self.params = {'threshold': threshold, 'alpha': alpha}
        self._traces = None

        logger.info(f"Created distance band weights with {self.w.n} units")
        return self.w

    @handle_errors
    def from_array(self, matrix: np.ndarray) -> weights.W:
        """
        Create weights from a dense non-negative adjacency matrix.

        The diagonal is discarded.

        Args:
            matrix: Square (n, n) matrix of neighbor strengths.

        Returns:
            Row-standardized libpysal weights.
        """
        matrix = validate_matrix_shape(matrix, (None, None), 'adjacency')
        if matrix.shape[0] != matrix.shape[1]:
            raise InputShapeError(f"Adjacency matrix must be square, got {matrix.shape}")
        if (matrix < 0).any():
            raise InputShapeError("Adjacency matrix must be non-negative")

        matrix = matrix.copy()
        np.fill_diagonal(matrix, 0.0)

        self.w = weights.util.full2W(matrix)
        self.type = 'array'
        self.params = {}
        self._traces = None

        return self.row_normalize()

    @handle_errors
    def row_normalize(self) -> weights.W:
        """
        Row-normalize the spatial weight matrix.

        Returns:
            Row-normalized spatial weight matrix.
        """
        self._require_weights()

        self.w.transform = 'r'

        if self.w.islands:
            logger.warning(
                f"{len(self.w.islands)} spatial units have no neighbors and keep "
                f"all-zero rows: {self.w.islands[:10]}"
            )

        logger.info(
            f"Row-normalized {self.type} weights: {self.w.n} units, "
            f"mean neighbors={self.w.mean_neighbors:.2f}"
        )
        return self.w

    @property
    def islands(self) -> List:
        """Identifiers of units with no neighbors."""
        self._require_weights()
        return list(self.w.islands)

    @handle_errors
    def to_sparse_matrix(self) -> sparse.csr_matrix:
        """
        Convert the spatial weight matrix to a sparse matrix.

        Returns:
            CSR matrix ordered like the input rows.
        """
        self._require_weights()
        return sparse.csr_matrix(self.w.sparse)

    @handle_errors
    def to_dense_matrix(self) -> np.ndarray:
        """Dense (n, n) representation of the weights."""
        return self.to_sparse_matrix().toarray()

    @handle_errors
    def get_spatial_lag(self, values: Union[pd.Series, pd.DataFrame, np.ndarray]):
        """
        Calculate the spatial lag W x of one or more variables.

        Args:
            values: Series, DataFrame (one lag per column) or array with one row
                    per spatial unit.

        Returns:
            Spatial lag with the same type and index as the input.
        """
        matrix = self.to_sparse_matrix()
        array = np.asarray(values, dtype=float)

        if array.shape[0] != matrix.shape[0]:
            raise InputShapeError(
                f"Values have {array.shape[0]} rows, weights have {matrix.shape[0]} units"
            )

        lagged = matrix @ array

        if isinstance(values, pd.DataFrame):
            return pd.DataFrame(lagged, index=values.index, columns=values.columns)
        if isinstance(values, pd.Series):
            return pd.Series(lagged, index=values.index, name=values.name)
        return lagged

    @handle_errors
    def trace_summary(
        self, max_power: Optional[int] = None, n_samples: Optional[int] = None,
        seed: Optional[int] = None
    ) -> TraceSummary:
        """
        Monte Carlo traces of the powers of W.

        tr(W^0), tr(W) and tr(W^2) are exact; higher powers use the estimator
        tr(W^k) ~ n * mean_r(x_r' W^k x_r / x_r' x_r) with standard normal x_r.
        The average row sums mean(W^k 1) are exact. The summary is computed
        once and cached; later calls return the cached object, with a debug
        message when their parameters differ.

        Args:
            max_power: Highest power. If None, uses ``traces.max_power``.
            n_samples: Number of random vectors. If None, uses ``traces.n_samples``.
            seed: Seed for the random vectors. If None, uses ``traces.seed``.

        Returns:
            TraceSummary shared by every impact decomposition on these weights.
        """
        if self._traces is not None:
            cached = self._traces
            requested = (max_power, n_samples, seed)
            current = (cached.max_power, cached.n_samples, cached.seed)
            if any(r is not None and r != c for r, c in zip(requested, current)):
                logger.debug(
                    f"Returning cached traces (max_power={cached.max_power}, "
                    f"n_samples={cached.n_samples}, seed={cached.seed}); ignoring "
                    f"max_power={max_power}, n_samples={n_samples}, seed={seed}"
                )
            return cached

        max_power = max_power or config.get('traces.max_power', 30)
        n_samples = n_samples or config.get('traces.n_samples', 16)
        if seed is None:
            seed = config.get('traces.seed')

        matrix = self.to_sparse_matrix()
        n = matrix.shape[0]

        logger.info(f"Computing Monte Carlo traces up to power {max_power} with {n_samples} draws")

        traces = np.empty(max_power + 1)
        traces[0] = 1.0
        row_sums = np.empty(max_power + 1)
        row_sums[0] = 1.0

        rng = np.random.default_rng(seed)
        x = rng.standard_normal((n, n_samples))
        xx = (x * x).sum(axis=0)
        v = x
        u = np.ones(n)
        for k in range(1, max_power + 1):
            v = matrix @ v
            u = matrix @ u
            traces[k] = np.mean((x * v).sum(axis=0) / xx)
            row_sums[k] = u.mean()

        traces[1] = matrix.diagonal().sum() / n
        if max_power >= 2:
            traces[2] = matrix.multiply(matrix.T).sum() / n

        self._traces = TraceSummary(
            traces=traces, n=n, n_samples=n_samples, seed=seed, row_sums=row_sums
        )
        return self._traces

    def _require_weights(self) -> None:
        if self.w is None:
            logger.error("Weight matrix has not been created")
            raise InputShapeError("Weight matrix has not been created")
