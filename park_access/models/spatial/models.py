"""
Base spatial models module for Park Access Analysis.

This module provides the immutable FittedModel result shared by every
regression specification and the SpatialModel base class, which estimates the
plain (non-spatial) regression.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union, Any

import pandas as pd
import numpy as np
import statsmodels.api as sm
from statsmodels.regression.linear_model import OLS
import libpysal.weights as weights

from park_access.utils.error_handling import (
    InputShapeError, NumericalDegeneracyError, handle_errors
)
from park_access.utils.validation import validate_columns, validate_finite

# Initialize logger
logger = logging.getLogger(__name__)

CONSTANT = 'const'


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Result of fitting one regression specification.

    Attributes:
        specification (str): 'ols', 'lag', 'error' or 'durbin'.
        coefficients (pd.Series): Estimates, including the constant and the
            spatial parameter ('rho' or 'lambda') where present.
        std_errors (pd.Series): Standard errors aligned with coefficients.
        p_values (pd.Series): Two-sided p-values aligned with coefficients.
        log_likelihood (float): Maximized log-likelihood.
        n_obs (int): Number of observations.
        n_params (int): Estimated parameters including the error variance.
        fitted_values (np.ndarray): Fitted values.
        residuals (np.ndarray): Residuals.
        covariance (Optional[pd.DataFrame]): Coefficient covariance, used to
            simulate impacts.
        covariates (Tuple[str, ...]): Design columns (without constant).
        lagged_covariates (Tuple[str, ...]): Spatially lagged design columns
            (Durbin only), aligned with ``covariates``.
        spatial_parameter (Optional[str]): Name of the spatial coefficient.
    """
    specification: str
    coefficients: pd.Series
    std_errors: pd.Series
    p_values: pd.Series
    log_likelihood: float
    n_obs: int
    n_params: int
    fitted_values: np.ndarray
    residuals: np.ndarray
    covariance: Optional[pd.DataFrame] = None
    covariates: Tuple[str, ...] = ()
    lagged_covariates: Tuple[str, ...] = ()
    spatial_parameter: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * self.n_params

    @property
    def has_spatial_lag(self) -> bool:
        """Whether the model contains a spatially lagged outcome."""
        return self.spatial_parameter == 'rho'

    @property
    def spatial_coefficient(self) -> Optional[float]:
        if self.spatial_parameter is None:
            return None
        return float(self.coefficients[self.spatial_parameter])

    def summary_frame(self) -> pd.DataFrame:
        """Coefficient table with estimates, standard errors and p-values."""
        return pd.DataFrame({
            'coefficient': self.coefficients,
            'std_error': self.std_errors,
            'p_value': self.p_values,
        })


def as_pysal_weights(w) -> weights.W:
    """
    Return the libpysal weights behind ``w``.

    Args:
        w: libpysal W or an object exposing it as ``.w`` (SpatialWeightMatrix).
    """
    if isinstance(w, weights.W):
        return w
    inner = getattr(w, 'w', None)
    if isinstance(inner, weights.W):
        return inner
    raise InputShapeError(f"Unsupported spatial weights object: {type(w).__name__}")


class SpatialModel:
    """
    Base model for Park Access Analysis.

    Holds the design, the outcome and the spatial weights, and estimates the
    plain regression. Spatial specifications subclass it.

    Attributes:
        w (weights.W): Spatial weight matrix.
        y (pd.Series): Dependent variable.
        X (pd.DataFrame): Independent variables, without constant.
        model_type (str): Specification identifier.
    """

    model_type = 'ols'

    def __init__(self, w: Optional[Any] = None):
        """
        Initialize the model.

        Args:
            w: Spatial weights (libpysal W or SpatialWeightMatrix).
        """
        self.w = as_pysal_weights(w) if w is not None else None
        self.y = None
        self.X = None

    @handle_errors
    def set_data(
        self, design: pd.DataFrame, outcome: Union[pd.Series, np.ndarray],
        w: Optional[Any] = None
    ) -> None:
        """
        Set the data for the model.

        The design is copied; the caller's table is never modified.

        Args:
            design: Covariates, one row per tract, without a constant column.
            outcome: Dependent variable aligned with the design rows.
            w: Spatial weights.

        Raises:
            InputShapeError: If lengths differ or values are missing.
            NumericalDegeneracyError: If the design with a constant is rank deficient.
        """
        if not isinstance(design, pd.DataFrame):
            raise InputShapeError("Design must be a pandas DataFrame")

        design = design.drop(columns=[CONSTANT], errors='ignore')
        validate_columns(design, design.columns, 'design')

        if len(outcome) != len(design):
            logger.error(f"Outcome has {len(outcome)} rows, design has {len(design)}")
            raise InputShapeError(f"Outcome has {len(outcome)} rows, design has {len(design)}")

        y = pd.Series(np.asarray(outcome, dtype=float), index=design.index,
                      name=getattr(outcome, 'name', None) or 'y')
        validate_finite(y.to_numpy(), 'outcome')

        X = design.astype(float)
        full = np.column_stack([np.ones(len(X)), X.to_numpy()])
        rank = np.linalg.matrix_rank(full)
        if rank < full.shape[1]:
            logger.error(f"Design matrix is rank deficient ({rank} < {full.shape[1]})")
            raise NumericalDegeneracyError(
                f"Design matrix is rank deficient ({rank} < {full.shape[1]}); "
                f"remove collinear covariates"
            )

        if w is not None:
            self.w = as_pysal_weights(w)
        if self.w is not None and self.w.n != len(X):
            raise InputShapeError(f"Weights have {self.w.n} units, design has {len(X)} rows")

        self.X = X
        self.y = y

    @handle_errors
    def estimate(self) -> FittedModel:
        """
        Estimate the plain regression by OLS.

        Returns:
            FittedModel with specification 'ols'.
        """
        self._require_data()
        logger.debug("Estimating OLS model")

        results = OLS(self.y, sm.add_constant(self.X, has_constant='add')).fit()

        fitted = FittedModel(
            specification='ols',
            coefficients=results.params.copy(),
            std_errors=results.bse.copy(),
            p_values=results.pvalues.copy(),
            log_likelihood=float(results.llf),
            n_obs=int(results.nobs),
            n_params=len(results.params) + 1,
            fitted_values=results.fittedvalues.to_numpy(),
            residuals=results.resid.to_numpy(),
            covariance=results.cov_params(),
            covariates=tuple(self.X.columns),
            extra={'r_squared': float(results.rsquared)},
        )
        self._check_log_likelihood(fitted)
        return fitted

    def _require_data(self, spatial: bool = False) -> None:
        if self.y is None or self.X is None:
            logger.error("Data has not been set")
            raise InputShapeError("Data has not been set")
        if spatial and self.w is None:
            logger.error("Spatial weight matrix has not been set")
            raise InputShapeError("Spatial weight matrix has not been set")

    def _check_log_likelihood(self, fitted: FittedModel) -> None:
        if not np.isfinite(fitted.log_likelihood):
            logger.error(f"{fitted.specification} fit returned a non-finite log-likelihood")
            raise NumericalDegeneracyError(
                f"{fitted.specification} fit returned a non-finite log-likelihood"
            )

    def _spreg_inputs(self, X: Optional[pd.DataFrame] = None):
        """Arrays in the layout spreg expects: y (n, 1) and x (n, k) without constant."""
        X = self.X if X is None else X
        return self.y.to_numpy().reshape(-1, 1), X.to_numpy(dtype=float)

    @staticmethod
    def _spreg_result(
        model, names, spatial_parameter: Optional[str], n_params: int,
        specification: str, covariates, lagged=(), fitted_values=None
    ) -> FittedModel:
        """Convert a fitted spreg ML model to a FittedModel."""
        betas = np.asarray(model.betas, dtype=float).flatten()
        std_err = np.asarray(model.std_err, dtype=float).flatten()
        z_stat = np.asarray(model.z_stat, dtype=float)

        vm = getattr(model, 'vm', None)
        covariance = None
        if vm is not None:
            vm = np.asarray(vm, dtype=float)
            if vm.shape == (len(names), len(names)):
                covariance = pd.DataFrame(vm, index=names, columns=names)

        if fitted_values is None:
            fitted_values = np.asarray(model.predy, dtype=float).flatten()

        return FittedModel(
            specification=specification,
            coefficients=pd.Series(betas, index=names),
            std_errors=pd.Series(std_err, index=names),
            p_values=pd.Series(z_stat[:, 1], index=names),
            log_likelihood=float(model.logll),
            n_obs=int(model.n),
            n_params=n_params,
            fitted_values=fitted_values,
            residuals=np.asarray(model.u, dtype=float).flatten(),
            covariance=covariance,
            covariates=tuple(covariates),
            lagged_covariates=tuple(lagged),
            spatial_parameter=spatial_parameter,
            extra={'pseudo_r_squared': float(getattr(model, 'pr2', np.nan))},
        )
