"""
Spatial diagnostics module for Park Access Analysis.

This module provides the SpatialTester class, which tests the residuals of the
plain regression for spatial dependence and recommends a specification.
"""
import logging
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
import spreg
from esda.moran import Moran
from spreg.diagnostics_sp import LMtests

from park_access.config import config
from park_access.models.spatial.models import SpatialModel, as_pysal_weights
from park_access.utils.error_handling import handle_errors

# Initialize logger
logger = logging.getLogger(__name__)


class SpatialTester:
    """
    Spatial dependence diagnostics for Park Access Analysis.

    Attributes:
        w (weights.W): Spatial weight matrix.
        alpha (float): Significance level of the tests.
        results (Dict[str, Any]): Results of the last run.
    """

    def __init__(self, w: Any, alpha: Optional[float] = None):
        """
        Initialize the spatial tester.

        Args:
            w: Spatial weights (libpysal W or SpatialWeightMatrix).
            alpha: Significance level. If None, uses ``selection.alpha``.
        """
        self.w = as_pysal_weights(w)
        self.alpha = alpha if alpha is not None else config.get('selection.alpha', 0.05)
        self.results = {}

    @handle_errors
    def run_spatial_diagnostics(
        self, design: pd.DataFrame, outcome: Union[pd.Series, np.ndarray]
    ) -> Dict[str, Any]:
        """
        Run Moran's I on the OLS residuals and the Lagrange multiplier tests.

        Args:
            design: Covariates without constant.
            outcome: Dependent variable.

        Returns:
            Dictionary with one entry per test ('moran_i', 'lm_error',
            'lm_lag', 'rlm_error', 'rlm_lag'), each holding the statistic,
            the p-value and the significance flag, plus 'recommended_model'.
        """
        logger.info("Running spatial diagnostics")

        # Reuse the model validation
        model = SpatialModel(self.w)
        model.set_data(design, outcome)
        y, x = model._spreg_inputs()

        ols = spreg.OLS(y, x)
        moran = Moran(np.asarray(ols.u).flatten(), self.w, permutations=0)
        lm = LMtests(ols, self.w)

        test_results = {
            'moran_i': self._entry(moran.I, moran.p_norm),
            'lm_error': self._entry(*lm.lme),
            'lm_lag': self._entry(*lm.lml),
            'rlm_error': self._entry(*lm.rlme),
            'rlm_lag': self._entry(*lm.rlml),
        }
        test_results['recommended_model'] = self.recommend(test_results)

        self.results = test_results
        logger.info(
            f"Moran's I of OLS residuals={moran.I:.4f} (p={moran.p_norm:.4g}); "
            f"recommended model={test_results['recommended_model']}"
        )
        return test_results

    def recommend(self, test_results: Dict[str, Any]) -> str:
        """
        Recommend a specification from the Lagrange multiplier tests.

        The robust tests decide when both simple tests are significant; both
        robust tests significant points to the Durbin model.
        """
        sig = {name: test_results[name]['p_value'] < self.alpha
               for name in ('lm_error', 'lm_lag', 'rlm_error', 'rlm_lag')}

        if sig['lm_error'] and sig['lm_lag']:
            if sig['rlm_error'] and sig['rlm_lag']:
                return 'durbin'
            if sig['rlm_error']:
                return 'error'
            if sig['rlm_lag']:
                return 'lag'
            return 'durbin'
        if sig['lm_error']:
            return 'error'
        if sig['lm_lag']:
            return 'lag'
        return 'ols'

    def _entry(self, statistic, p_value) -> Dict[str, Any]:
        return {
            'statistic': float(statistic),
            'p_value': float(p_value),
            'is_significant': bool(p_value < self.alpha),
        }
