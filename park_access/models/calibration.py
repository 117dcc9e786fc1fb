"""
Logsum calibration module for Park Access Analysis.

This module provides the Calibrator class, which searches the logsum
coefficients that maximize the log-likelihood of a regression including the
standardized accessibility score as a covariate. The search is a
bound-constrained L-BFGS-B minimization of the negative log-likelihood; the
bounds keep the distance coefficient non-positive and the size coefficient
non-negative.
"""
import dataclasses
import logging
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import ValidationError
from scipy.optimize import minimize

from park_access.config import config
from park_access.models.accessibility import LogsumEngine, standardize
from park_access.models.regression import RegressionFn
from park_access.models.schemas import CalibrationBounds, CoefficientVector
from park_access.utils.error_handling import (
    InputShapeError, ModelSpecificationError, NumericalDegeneracyError, handle_errors
)

# Initialize logger
logger = logging.getLogger(__name__)

BoundsLike = Union[CalibrationBounds, Sequence[Tuple[Optional[float], Optional[float]]]]


@dataclasses.dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of a calibration run.

    Boundary convergence is a valid result: ``at_bound`` flags the
    coefficients that settled on a bound and the caller decides whether the
    fit is acceptable.

    Attributes:
        betas (Tuple[float, ...]): Calibrated (distance, size[, signal]).
        log_likelihood (Optional[float]): Log-likelihood at ``betas``.
        converged (bool): Whether the optimizer reported success.
        at_bound (Tuple[bool, ...]): Per-coefficient boundary flags.
        n_iterations (int): Optimizer iterations.
        n_evaluations (int): Objective evaluations.
        message (str): Optimizer termination message.
        specification (Optional[str]): Regression used in the objective.
        overridden (bool): Whether ``betas`` were set by hand.
        original_betas (Optional[Tuple[float, ...]]): Optimizer betas when overridden.
    """
    betas: Tuple[float, ...]
    log_likelihood: Optional[float]
    converged: bool
    at_bound: Tuple[bool, ...]
    n_iterations: int
    n_evaluations: int
    message: str
    specification: Optional[str] = None
    overridden: bool = False
    original_betas: Optional[Tuple[float, ...]] = None

    @property
    def any_at_bound(self) -> bool:
        return any(self.at_bound)

    def override(
        self, betas: Sequence[float], log_likelihood: Optional[float] = None
    ) -> 'CalibrationResult':
        """
        Replace the calibrated coefficients by hand.

        Args:
            betas: Coefficients chosen by the analyst.
            log_likelihood: Log-likelihood at ``betas`` if known
                (see Calibrator.log_likelihood).

        Returns:
            New result flagged as overridden; this result is unchanged.
        """
        if len(betas) != len(self.betas):
            raise InputShapeError(f"Expected {len(self.betas)} coefficients, got {len(betas)}")

        logger.warning(f"Calibrated betas {self.betas} overridden with {tuple(betas)}")
        if not CoefficientVector.from_sequence(betas).is_behavioral:
            logger.warning(f"Override {tuple(betas)} has a positive distance or negative size coefficient")
        return dataclasses.replace(
            self,
            betas=tuple(float(b) for b in betas),
            log_likelihood=log_likelihood,
            at_bound=tuple(False for _ in betas),
            overridden=True,
            original_betas=self.original_betas or self.betas,
        )

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


class Calibrator:
    """
    Maximum-likelihood calibration of the accessibility logsum.

    The base design and outcome are fixed at construction and never modified:
    each objective evaluation appends the accessibility column to a fresh copy
    of the design.

    Attributes:
        design (pd.DataFrame): Base regression design without accessibility.
        outcome (pd.Series): Dependent variable.
        engine (LogsumEngine): Logsum engine.
        accessibility_column (str): Name of the appended covariate.
        max_iterations (int): Optimizer iteration cap.
        tolerance (float): Optimizer function tolerance.
        step_size (float): Finite-difference step for the gradient.
    """

    def __init__(
        self, design: pd.DataFrame, outcome: Union[pd.Series, np.ndarray],
        engine: Optional[LogsumEngine] = None,
        accessibility_column: Optional[str] = None,
        max_iterations: Optional[int] = None,
        tolerance: Optional[float] = None,
        step_size: Optional[float] = None
    ):
        """
        Initialize the calibrator.

        Args:
            design: Base design (covariates, no constant).
            outcome: Dependent variable aligned with the design.
            engine: Logsum engine. If None, a new LogsumEngine is used.
            accessibility_column: Column name of the appended score.
            max_iterations: Iteration cap. If None, uses ``calibration.max_iterations``.
            tolerance: Function tolerance. If None, uses ``calibration.tolerance``.
            step_size: Gradient step. If None, uses ``calibration.step_size``.
        """
        if len(outcome) != len(design):
            raise InputShapeError(f"Outcome has {len(outcome)} rows, design has {len(design)}")

        self.design = design
        self.outcome = outcome
        self.engine = engine or LogsumEngine()
        self.accessibility_column = accessibility_column or config.get(
            'calibration.accessibility_column', 'accessibility'
        )
        self.max_iterations = max_iterations or config.get('calibration.max_iterations', 200)
        self.tolerance = tolerance or config.get('calibration.tolerance', 1e-8)
        self.step_size = step_size or config.get('calibration.step_size', 1e-5)

        if self.accessibility_column in design.columns:
            raise InputShapeError(
                f"Base design already has a '{self.accessibility_column}' column"
            )

    def augmented_design(self, scores: np.ndarray) -> pd.DataFrame:
        """
        Copy of the base design with the standardized scores appended.

        A zero-variance score carries no information and is collinear with
        the constant, so the copy is returned without it.
        """
        standardized = standardize(scores)
        if not standardized.any():
            logger.debug("Accessibility has zero variance; fitting the base design")
            return self.design.copy()
        return self.design.assign(**{self.accessibility_column: standardized})

    def log_likelihood(
        self, betas: Sequence[float], distances: np.ndarray, sizes: np.ndarray,
        signal: Optional[np.ndarray], regression_fn: RegressionFn
    ) -> float:
        """
        Log-likelihood of the regression with accessibility computed at ``betas``.

        Args:
            betas: Logsum coefficients.
            distances: Distance matrix (n, p).
            sizes: Park sizes (p).
            signal: Social signal (p) or None.
            regression_fn: ``(design, outcome) -> FittedModel``.

        Returns:
            Log-likelihood of the fitted model.
        """
        scores = self.engine.accessibility(distances, sizes, signal, betas)
        fitted = regression_fn(self.augmented_design(scores), self.outcome)
        if not np.isfinite(fitted.log_likelihood):
            raise NumericalDegeneracyError(
                f"Non-finite log-likelihood at betas={tuple(betas)}"
            )
        return fitted.log_likelihood

    @handle_errors
    def calibrate(
        self, distances: np.ndarray, sizes: np.ndarray, signal: Optional[np.ndarray],
        regression_fn: RegressionFn, initial_betas: Sequence[float],
        bounds: Optional[BoundsLike] = None
    ) -> CalibrationResult:
        """
        Search the logsum coefficients that maximize the log-likelihood.

        The signal coefficient is searched only when a signal vector is
        supplied and ``initial_betas`` has three entries.

        Args:
            distances: Distance matrix (n, p), already transformed.
            sizes: Park sizes (p), already transformed.
            signal: Social signal (p) or None.
            regression_fn: ``(design, outcome) -> FittedModel``; which
                specification it fits is the caller's decision.
            initial_betas: Starting point; clipped into the bounds.
            bounds: CalibrationBounds or (low, high) pairs. If None, uses the
                configured bounds.

        Returns:
            CalibrationResult with betas inside the bounds (inclusive).
        """
        bounds = self._resolve_bounds(bounds)

        n_coefficients = 3 if signal is not None and len(initial_betas) > 2 else 2
        if signal is None and len(initial_betas) > 2:
            logger.debug("No signal supplied; the signal coefficient is not searched")
        search_signal = signal if n_coefficients == 3 else None

        box = bounds.as_list(n_coefficients)
        lower = np.array([-np.inf if low is None else low for low, _ in box])
        upper = np.array([np.inf if high is None else high for _, high in box])

        x0 = np.asarray(initial_betas[:n_coefficients], dtype=float)
        if not np.all(np.isfinite(x0)):
            raise InputShapeError(f"Initial betas must be finite, got {tuple(initial_betas)}")
        x0 = np.clip(x0, lower, upper)

        specification = getattr(regression_fn, 'specification', None)
        logger.info(
            f"Calibrating logsum ({n_coefficients} coefficients, "
            f"regression={specification or 'custom'}) from {tuple(x0)} with bounds {box}"
        )

        def objective(beta: np.ndarray) -> float:
            ll = self.log_likelihood(beta, distances, sizes, search_signal, regression_fn)
            logger.debug(f"betas={tuple(np.round(beta, 6))} log-likelihood={ll:.6f}")
            return -ll

        result = minimize(
            objective, x0, method='L-BFGS-B', bounds=box,
            options={
                'maxiter': self.max_iterations,
                'ftol': self.tolerance,
                'eps': self.step_size,
            }
        )

        betas = np.clip(result.x, lower, upper)
        at_bound = tuple(
            bool(np.isclose(b, low, rtol=0, atol=1e-8) or np.isclose(b, high, rtol=0, atol=1e-8))
            for b, low, high in zip(betas, lower, upper)
        )

        log_likelihood = -float(result.fun)
        if not np.allclose(betas, result.x):
            log_likelihood = self.log_likelihood(
                betas, distances, sizes, search_signal, regression_fn
            )

        calibration = CalibrationResult(
            betas=tuple(float(b) for b in betas),
            log_likelihood=log_likelihood,
            converged=bool(result.success),
            at_bound=at_bound,
            n_iterations=int(result.nit),
            n_evaluations=int(result.nfev),
            message=str(result.message),
            specification=specification,
        )

        if not calibration.converged:
            logger.warning(f"Calibration stopped without convergence: {calibration.message}")
        if calibration.any_at_bound:
            logger.warning(
                f"Calibrated betas {calibration.betas} lie on a bound "
                f"(flags={calibration.at_bound}); inspect before use"
            )

        logger.info(
            f"Calibrated betas={calibration.betas}, log-likelihood={log_likelihood:.4f} "
            f"after {calibration.n_iterations} iterations"
        )
        return calibration

    @staticmethod
    def _resolve_bounds(bounds: Optional[BoundsLike]) -> CalibrationBounds:
        if bounds is None:
            return CalibrationBounds.from_config()
        if isinstance(bounds, CalibrationBounds):
            return bounds
        try:
            return CalibrationBounds.from_pairs(bounds)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error(f"Invalid calibration bounds {bounds}: {e}")
            raise ModelSpecificationError(f"Invalid calibration bounds {bounds}", e)
