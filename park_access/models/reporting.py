"""Results reporting module for Park Access Analysis.

This module turns fitted models, calibration results and impacts into tables
and writes them to disk.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from park_access.config import config
from park_access.models.calibration import CalibrationResult
from park_access.models.impacts import ImpactResult
from park_access.models.model_selection import comparison_table
from park_access.models.schemas import CoefficientVector
from park_access.models.spatial.models import FittedModel
from park_access.utils.error_handling import handle_errors

# Initialize logger
logger = logging.getLogger(__name__)


class ResultsReporter:
    """
    Results reporter for Park Access Analysis.

    Attributes:
        output_path (Path): Directory the tables are written to.
        significance_indicators (bool): Whether coefficient tables carry stars.
    """

    def __init__(
        self, output_path: Optional[Union[str, Path]] = None,
        significance_indicators: Optional[bool] = None
    ):
        """
        Initialize the results reporter.

        Args:
            output_path: Output directory. If None, uses ``data.output_path``.
            significance_indicators: Whether to add significance stars.
        """
        self.output_path = Path(output_path or config.get('data.output_path', './results'))
        self.significance_indicators = significance_indicators \
            if significance_indicators is not None else True

    def _preprocess_results(self, results: Any) -> Any:
        """Convert NumPy and pandas values to JSON-serializable Python types."""
        if isinstance(results, dict):
            return {str(k): self._preprocess_results(v) for k, v in results.items()}
        elif isinstance(results, (list, tuple)):
            return [self._preprocess_results(item) for item in results]
        elif isinstance(results, np.ndarray):
            return results.tolist()
        elif isinstance(results, (np.bool_, np.integer)):
            return results.item()
        elif isinstance(results, np.floating):
            return None if np.isnan(results) else float(results)
        elif isinstance(results, float) and np.isnan(results):
            return None
        return results

    @staticmethod
    def _stars(p_value: float) -> str:
        if not np.isfinite(p_value):
            return ''
        if p_value < 0.01:
            return '***'
        if p_value < 0.05:
            return '**'
        if p_value < 0.1:
            return '*'
        return ''

    def comparison_table(self, models: Dict[str, FittedModel]) -> pd.DataFrame:
        """Fit statistics of every model, one row per model."""
        return comparison_table(models)

    def coefficient_table(self, models: Dict[str, FittedModel]) -> pd.DataFrame:
        """
        Coefficients of every model side by side.

        Returns:
            DataFrame indexed by coefficient name with one column per model;
            cells are formatted estimates, with stars when enabled.
        """
        columns = {}
        for name, model in models.items():
            cells = {}
            for coef, value in model.coefficients.items():
                cell = f"{value:.4f}"
                if self.significance_indicators:
                    cell += self._stars(model.p_values[coef])
                cells[coef] = cell
            columns[name] = pd.Series(cells)
        return pd.DataFrame(columns).fillna('')

    def impacts_table(self, impacts: ImpactResult) -> pd.DataFrame:
        """Tidy impacts table with the summarized specification."""
        table = impacts.to_frame()
        table.insert(0, 'specification', impacts.specification)
        return table

    def calibration_summary(self, calibration: CalibrationResult) -> Dict[str, Any]:
        """Calibration result as a JSON-serializable dictionary."""
        summary = self._preprocess_results(calibration.to_dict())
        coefficients = CoefficientVector.from_sequence(calibration.betas)
        summary['coefficients'] = coefficients.model_dump(exclude_none=True)
        return summary

    @handle_errors
    def export(
        self, models: Optional[Dict[str, FittedModel]] = None,
        calibration: Optional[CalibrationResult] = None,
        impacts: Optional[ImpactResult] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
        accessibility: Optional[pd.Series] = None,
        output_path: Optional[Union[str, Path]] = None
    ) -> Dict[str, Path]:
        """
        Write the available results to the output directory.

        Args:
            models: Fitted models keyed by name.
            calibration: Calibration result.
            impacts: Impact summary.
            diagnostics: Spatial diagnostics.
            accessibility: Standardized accessibility per tract.
            output_path: Output directory. If None, uses the reporter's.

        Returns:
            Paths of the written files keyed by content.
        """
        output_dir = Path(output_path) if output_path is not None else self.output_path
        output_dir.mkdir(parents=True, exist_ok=True)

        written = {}
        if models:
            written['comparison'] = output_dir / 'model_comparison.csv'
            self.comparison_table(models).to_csv(written['comparison'])
            written['coefficients'] = output_dir / 'coefficients.csv'
            self.coefficient_table(models).to_csv(written['coefficients'])
        if impacts is not None:
            written['impacts'] = output_dir / 'impacts.csv'
            self.impacts_table(impacts).to_csv(written['impacts'], index=False)
        if accessibility is not None:
            written['accessibility'] = output_dir / 'accessibility.csv'
            accessibility.to_csv(written['accessibility'])
        if calibration is not None or diagnostics is not None:
            summary = {}
            if calibration is not None:
                summary['calibration'] = self.calibration_summary(calibration)
            if diagnostics is not None:
                summary['diagnostics'] = self._preprocess_results(diagnostics)
            written['summary'] = output_dir / 'summary.json'
            with open(written['summary'], 'w') as f:
                json.dump(summary, f, indent=2)

        logger.info(f"Wrote {len(written)} result files to {output_dir}")
        return written
