"""
Accessibility logsum module for Park Access Analysis.

The accessibility of tract i is the expected maximum utility over parks,

    A_i = log sum_j exp(V_ij),
    V_ij = b_d * d_ij + b_s * s_j (+ b_t * t_j),

where d_ij is the (pre-transformed) distance, s_j the park size and t_j the
optional social-signal covariate. The engine applies no transformation to its
inputs; it is a linear-in-parameters utility aggregator.
"""
import logging
from typing import Optional, Sequence

import numpy as np
from scipy.special import logsumexp

from park_access.utils.error_handling import InputShapeError, handle_errors
from park_access.utils.validation import validate_matrix_shape

# Initialize logger
logger = logging.getLogger(__name__)

ZERO_SPREAD_TOLERANCE = 1e-10


def standardize(values: Sequence[float]) -> np.ndarray:
    """
    Standardize a vector to zero mean and unit sample variance.

    A zero-variance vector carries no information and is returned as zeros.

    Args:
        values: Vector to standardize.

    Returns:
        Standardized copy of the vector.
    """
    array = np.asarray(values, dtype=float)
    if array.size < 2:
        return np.zeros_like(array)

    # Spread at rounding-noise level counts as constant
    spread = np.ptp(array)
    scale = max(1.0, np.abs(array).max())
    if not np.isfinite(spread) or spread <= ZERO_SPREAD_TOLERANCE * scale:
        return np.zeros_like(array)
    return (array - array.mean()) / array.std(ddof=1)


class LogsumEngine:
    """
    Log-sum-exp accessibility engine.

    The reduction subtracts each row maximum before exponentiating, so
    utilities of any magnitude return finite values. A park at the distance
    floor with the largest size can dominate the logsum of nearby tracts; that
    is kept as is.
    """

    @staticmethod
    def utilities(
        distances: np.ndarray, sizes: np.ndarray, signal: Optional[np.ndarray],
        betas: Sequence[float]
    ) -> np.ndarray:
        """
        Compute the (n_tracts, n_parks) utility matrix.

        Args:
            distances: Distance matrix of shape (n, p).
            sizes: Park sizes of length p.
            signal: Social-signal covariate of length p, or None.
            betas: (b_d, b_s) or (b_d, b_s, b_t). b_t is only applied when a
                   signal is supplied.

        Returns:
            Utility matrix of shape (n, p).
        """
        distances = validate_matrix_shape(distances, (None, None), 'distances')
        n_parks = distances.shape[1]
        sizes = validate_matrix_shape(sizes, (n_parks,), 'sizes')

        if len(betas) < 2:
            raise InputShapeError(f"At least two coefficients are required, got {len(betas)}")

        beta_d, beta_s = float(betas[0]), float(betas[1])
        utilities = beta_d * distances + beta_s * sizes[np.newaxis, :]

        if signal is not None and len(betas) > 2 and betas[2] is not None:
            signal = validate_matrix_shape(signal, (n_parks,), 'signal')
            utilities = utilities + float(betas[2]) * signal[np.newaxis, :]

        return utilities

    @handle_errors
    def accessibility(
        self, distances: np.ndarray, sizes: np.ndarray,
        signal: Optional[np.ndarray], betas: Sequence[float]
    ) -> np.ndarray:
        """
        Compute the per-tract logsum accessibility.

        Args:
            distances: Distance matrix of shape (n, p), typically log distances.
            sizes: Park sizes of length p, typically log acres.
            signal: Social-signal covariate of length p, or None.
            betas: Coefficient vector (b_d, b_s[, b_t]).

        Returns:
            Accessibility vector of length n.
        """
        utilities = self.utilities(distances, sizes, signal, betas)
        scores = logsumexp(utilities, axis=1)

        logger.debug(
            f"Computed logsum for {len(scores)} tracts with betas={tuple(betas)}: "
            f"range=({scores.min():.4f}, {scores.max():.4f})"
        )
        return scores

    def standardized_accessibility(
        self, distances: np.ndarray, sizes: np.ndarray,
        signal: Optional[np.ndarray], betas: Sequence[float]
    ) -> np.ndarray:
        """Accessibility standardized to zero mean and unit variance."""
        return standardize(self.accessibility(distances, sizes, signal, betas))
