"""
Spatial Durbin Model module for Park Access Analysis.

This module provides the SpatialDurbinModel class,
y = rho W y + X b + W X theta + e. The lagged covariates W X are built
explicitly and the model is estimated as a spatial lag model on [X, W X].
"""
import logging

import numpy as np
import pandas as pd
from spreg import ML_Lag

from park_access.models.spatial.lag_model import SpatialLagModel
from park_access.models.spatial.models import CONSTANT, FittedModel
from park_access.utils.error_handling import NumericalDegeneracyError, handle_errors

# Initialize logger
logger = logging.getLogger(__name__)

LAG_PREFIX = 'W_'

class SpatialDurbinModel(SpatialLagModel):
    """
    Spatial Durbin Model for Park Access Analysis.

    The error model is nested in it through the common factor restriction
    theta = -rho b, which is what the likelihood-ratio comparison tests.
    """

    model_type = 'durbin'

    def lagged_design(self) -> pd.DataFrame:
        """
        Spatially lagged covariates W X.

        Isolates have all-zero rows in W, so their lagged covariates are zero.

        Returns:
            DataFrame with one 'W_<column>' column per covariate.
        """
        self._require_data(spatial=True)
        lagged = self.w.sparse @ self.X.to_numpy(dtype=float)
        return pd.DataFrame(
            lagged, index=self.X.index,
            columns=[f"{LAG_PREFIX}{col}" for col in self.X.columns]
        )

    @handle_errors
    def estimate(self) -> FittedModel:
        """
        Estimate a spatial Durbin model by full maximum likelihood.

        Returns:
            FittedModel with 'rho' and one lagged coefficient per covariate.

        Raises:
            NumericalDegeneracyError: If [X, W X] is rank deficient or the
                information matrix is singular.
        """
        self._require_data(spatial=True)
        logger.debug("Estimating spatial Durbin model")

        lagged = self.lagged_design()
        augmented = pd.concat([self.X, lagged], axis=1)

        full = np.column_stack([np.ones(len(augmented)), augmented.to_numpy()])
        if np.linalg.matrix_rank(full) < full.shape[1]:
            logger.error("Durbin design [X, WX] is rank deficient")
            raise NumericalDegeneracyError("Durbin design [X, WX] is rank deficient")

        y, x = self._spreg_inputs(augmented)
        try:
            model = ML_Lag(y, x, self.w, method='full',
                           name_y=str(self.y.name), name_x=list(augmented.columns))
        except np.linalg.LinAlgError as e:
            logger.error(f"Spatial Durbin model is numerically degenerate: {e}")
            raise NumericalDegeneracyError("Spatial Durbin model is numerically degenerate", e)

        names = [CONSTANT] + list(augmented.columns) + ['rho']
        fitted = self._spreg_result(
            model, names, spatial_parameter='rho', n_params=len(names) + 1,
            specification=self.model_type, covariates=self.X.columns,
            lagged=lagged.columns
        )
        self._check_log_likelihood(fitted)

        logger.debug(f"Spatial Durbin coefficient (rho): {fitted.spatial_coefficient:.4f}")
        return fitted
