"""
Model selection and comparison module for Park Access Analysis.

This module fits the four regression specifications on one design, compares
nested pairs with likelihood-ratio tests and chooses between them.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from park_access.config import config
from park_access.models.regression import SPECIFICATIONS, fit_model
from park_access.models.spatial.models import FittedModel
from park_access.utils.error_handling import InputShapeError, handle_errors

# Initialize module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikelihoodRatioResult:
    """
    Likelihood-ratio comparison of two fitted models.

    Attributes:
        statistic (float): 2 * |ll_a - ll_b|.
        df (int): Difference in estimated parameters, at least 1.
        p_value (float): Upper tail of the chi-squared distribution.
        restricted (str): Specification with fewer parameters.
        unrestricted (str): Specification with more parameters.
    """
    statistic: float
    df: int
    p_value: float
    restricted: str
    unrestricted: str

    def rejects(self, alpha: float) -> bool:
        """Whether the restricted model is rejected at level ``alpha``."""
        return self.p_value < alpha


class ModelSelector:
    """
    Fit, compare and choose among the regression specifications.

    Attributes:
        weights: Spatial weights used by the spatial specifications.
        alpha (float): Significance level of the likelihood-ratio test.
        models (Dict[str, FittedModel]): Models from the last ``fit_all`` call.
    """

    def __init__(self, weights: Optional[Any] = None, alpha: Optional[float] = None):
        """
        Initialize the selector.

        Args:
            weights: Spatial weights (libpysal W or SpatialWeightMatrix).
            alpha: Test level. If None, uses ``selection.alpha``.
        """
        self.weights = weights
        self.alpha = alpha if alpha is not None else config.get('selection.alpha', 0.05)
        self.models: Dict[str, FittedModel] = {}

    @handle_errors
    def fit_all(
        self, design: pd.DataFrame, outcome: Union[pd.Series, np.ndarray],
        weights: Optional[Any] = None
    ) -> Dict[str, FittedModel]:
        """
        Fit OLS, spatial lag, spatial error and spatial Durbin models.

        Args:
            design: Covariates without constant.
            outcome: Dependent variable.
            weights: Spatial weights. If None, uses the selector's weights.

        Returns:
            Dictionary keyed by 'ols', 'lag', 'error' and 'durbin'.
        """
        weights = weights if weights is not None else self.weights
        if weights is None:
            logger.error("Spatial weights are required to fit the spatial specifications")
            raise InputShapeError("Spatial weights are required to fit the spatial specifications")

        logger.info(f"Fitting {len(SPECIFICATIONS)} specifications on {len(design)} observations")

        models = {}
        for specification in SPECIFICATIONS:
            models[specification] = fit_model(design, outcome, weights, specification)
            logger.info(
                f"{specification}: log-likelihood={models[specification].log_likelihood:.4f}, "
                f"AIC={models[specification].aic:.4f}"
            )

        self.models = models
        return models

    @staticmethod
    def compare(a: FittedModel, b: FittedModel) -> LikelihoodRatioResult:
        """
        Likelihood-ratio test between two fitted models.

        The statistic is symmetric in its arguments. Comparing a model with
        itself gives a zero statistic and a p-value of one.

        Args:
            a: First model.
            b: Second model.

        Returns:
            LikelihoodRatioResult.
        """
        if a.n_obs != b.n_obs:
            raise InputShapeError(
                f"Models were fitted on different samples ({a.n_obs} vs {b.n_obs} observations)"
            )

        statistic = 2.0 * abs(a.log_likelihood - b.log_likelihood)
        df = max(abs(a.n_params - b.n_params), 1)
        p_value = float(stats.chi2.sf(statistic, df))

        restricted, unrestricted = (a, b) if a.n_params <= b.n_params else (b, a)
        return LikelihoodRatioResult(
            statistic=float(statistic),
            df=int(df),
            p_value=p_value,
            restricted=restricted.specification,
            unrestricted=unrestricted.specification,
        )

    def select(
        self, restricted: FittedModel, unrestricted: FittedModel,
        alpha: Optional[float] = None
    ) -> FittedModel:
        """
        Keep the simpler model unless the likelihood-ratio test rejects it.

        Args:
            restricted: Nested (simpler) model, e.g. the spatial error model.
            unrestricted: Nesting model, e.g. the spatial Durbin model.
            alpha: Test level. If None, uses the selector's level.

        Returns:
            The chosen FittedModel.
        """
        alpha = self.alpha if alpha is None else alpha
        result = self.compare(restricted, unrestricted)

        chosen = unrestricted if result.rejects(alpha) else restricted
        logger.info(
            f"LR {restricted.specification} vs {unrestricted.specification}: "
            f"statistic={result.statistic:.4f}, df={result.df}, p={result.p_value:.4g}; "
            f"selected {chosen.specification}"
        )
        return chosen


def comparison_table(models: Dict[str, FittedModel]) -> pd.DataFrame:
    """
    Side-by-side fit statistics of fitted models.

    Args:
        models: Fitted models keyed by name.

    Returns:
        DataFrame indexed by model name with log-likelihood, parameter count,
        AIC and spatial coefficient.
    """
    rows = []
    for name, model in models.items():
        rows.append({
            'model': name,
            'specification': model.specification,
            'log_likelihood': model.log_likelihood,
            'n_params': model.n_params,
            'aic': model.aic,
            'spatial_coefficient': model.spatial_coefficient,
        })
    return pd.DataFrame(rows).set_index('model')
