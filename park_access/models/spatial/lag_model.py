"""
Spatial Lag Model module for Park Access Analysis.

This module provides the SpatialLagModel class, y = rho W y + X b + e,
estimated by maximum likelihood with spreg.
"""
import logging

import numpy as np
from spreg import ML_Lag

from park_access.models.spatial.models import CONSTANT, FittedModel, SpatialModel
from park_access.utils.error_handling import NumericalDegeneracyError, handle_errors

# Initialize logger
logger = logging.getLogger(__name__)

class SpatialLagModel(SpatialModel):
    """
    Spatial Lag Model for Park Access Analysis.

    Attributes:
        w (weights.W): Spatial weight matrix.
        y (pd.Series): Dependent variable.
        X (pd.DataFrame): Independent variables.
        model_type (str): Specification identifier.
    """

    model_type = 'lag'

    @handle_errors
    def estimate(self) -> FittedModel:
        """
        Estimate a spatial lag model by full maximum likelihood.

        Returns:
            FittedModel with the spatial autoregressive coefficient 'rho'.

        Raises:
            NumericalDegeneracyError: If the information matrix is singular.
        """
        self._require_data(spatial=True)
        logger.debug("Estimating spatial lag model")

        y, x = self._spreg_inputs()
        try:
            model = ML_Lag(y, x, self.w, method='full',
                           name_y=str(self.y.name), name_x=list(self.X.columns))
        except np.linalg.LinAlgError as e:
            logger.error(f"Spatial lag model is numerically degenerate: {e}")
            raise NumericalDegeneracyError("Spatial lag model is numerically degenerate", e)

        names = [CONSTANT] + list(self.X.columns) + ['rho']
        fitted = self._spreg_result(
            model, names, spatial_parameter='rho', n_params=len(names) + 1,
            specification=self.model_type, covariates=self.X.columns
        )
        self._check_log_likelihood(fitted)

        logger.debug(f"Spatial lag coefficient (rho): {fitted.spatial_coefficient:.4f}")
        return fitted
