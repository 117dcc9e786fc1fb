"""
Spatial Error Model module for Park Access Analysis.

This module provides the SpatialErrorModel class, y = X b + u with
u = lambda W u + e, estimated by maximum likelihood with spreg.
"""
import logging

import numpy as np
from spreg import ML_Error

from park_access.models.spatial.models import CONSTANT, FittedModel, SpatialModel
from park_access.utils.error_handling import NumericalDegeneracyError, handle_errors

# Initialize logger
logger = logging.getLogger(__name__)

class SpatialErrorModel(SpatialModel):
    """
    Spatial Error Model for Park Access Analysis.

    The error model has no spatially lagged outcome, so it has no indirect
    effects and is never passed to the impact decomposition.
    """

    model_type = 'error'

    @handle_errors
    def estimate(self) -> FittedModel:
        """
        Estimate a spatial error model by full maximum likelihood.

        Returns:
            FittedModel with the spatial error coefficient 'lambda'.

        Raises:
            NumericalDegeneracyError: If the information matrix is singular.
        """
        self._require_data(spatial=True)
        logger.debug("Estimating spatial error model")

        y, x = self._spreg_inputs()
        try:
            model = ML_Error(y, x, self.w, method='full',
                             name_y=str(self.y.name), name_x=list(self.X.columns))
        except np.linalg.LinAlgError as e:
            logger.error(f"Spatial error model is numerically degenerate: {e}")
            raise NumericalDegeneracyError("Spatial error model is numerically degenerate", e)

        names = [CONSTANT] + list(self.X.columns) + ['lambda']
        fitted = self._spreg_result(
            model, names, spatial_parameter='lambda', n_params=len(names) + 1,
            specification=self.model_type, covariates=self.X.columns
        )
        self._check_log_likelihood(fitted)

        logger.debug(f"Spatial error coefficient (lambda): {fitted.spatial_coefficient:.4f}")
        return fitted
