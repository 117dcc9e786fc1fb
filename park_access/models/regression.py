"""
Regression fitting capability for Park Access Analysis.

``fit_model`` is the single entry point the calibration and model selection
components use to fit one of the four specifications.
"""
import functools
import logging
from typing import Any, Callable, Optional, Union

import numpy as np
import pandas as pd

from park_access.models.spatial.models import FittedModel, SpatialModel
from park_access.models.spatial.lag_model import SpatialLagModel
from park_access.models.spatial.error_model import SpatialErrorModel
from park_access.models.spatial.durbin_model import SpatialDurbinModel
from park_access.utils.error_handling import ModelSpecificationError, handle_errors

# Initialize logger
logger = logging.getLogger(__name__)

MODEL_CLASSES = {
    'ols': SpatialModel,
    'lag': SpatialLagModel,
    'error': SpatialErrorModel,
    'durbin': SpatialDurbinModel,
}

SPECIFICATIONS = tuple(MODEL_CLASSES)

RegressionFn = Callable[[pd.DataFrame, Union[pd.Series, np.ndarray]], FittedModel]


@handle_errors
def fit_model(
    design: pd.DataFrame, outcome: Union[pd.Series, np.ndarray],
    weights: Optional[Any], specification: str
) -> FittedModel:
    """
    Fit one regression specification.

    Args:
        design: Covariates without a constant column.
        outcome: Dependent variable.
        weights: Spatial weights (ignored by 'ols').
        specification: 'ols', 'lag', 'error' or 'durbin'.

    Returns:
        Immutable FittedModel.

    Raises:
        ModelSpecificationError: If the specification is unknown or a spatial
            specification is requested without weights.
    """
    if specification not in MODEL_CLASSES:
        logger.error(f"Invalid specification: {specification}")
        raise ModelSpecificationError(
            f"Invalid specification: {specification}. Options are {SPECIFICATIONS}"
        )
    if specification != 'ols' and weights is None:
        raise ModelSpecificationError(f"Specification '{specification}' requires spatial weights")

    model = MODEL_CLASSES[specification](weights if specification != 'ols' else None)
    model.set_data(design, outcome)
    return model.estimate()


def make_regression_fn(specification: str, weights: Optional[Any] = None) -> RegressionFn:
    """
    Bind a specification and weights into a ``(design, outcome) -> FittedModel`` callable.

    Args:
        specification: 'ols', 'lag', 'error' or 'durbin'.
        weights: Spatial weights, required for spatial specifications.

    Returns:
        Regression function for the Calibrator.
    """
    if specification not in MODEL_CLASSES:
        raise ModelSpecificationError(
            f"Invalid specification: {specification}. Options are {SPECIFICATIONS}"
        )
    if specification != 'ols' and weights is None:
        raise ModelSpecificationError(f"Specification '{specification}' requires spatial weights")

    fn = functools.partial(fit_model, weights=weights, specification=specification)
    fn.specification = specification
    return fn
