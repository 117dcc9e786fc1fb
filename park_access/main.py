"""
Main module for Park Access Analysis.

This module provides the main entry point for running the analysis. It
orchestrates distances, weights, the base model comparison, the logsum
calibration, the refit with accessibility, model selection and impacts.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import geopandas as gpd

from park_access.config import config
from park_access.data.features import LOG_SIZE_COLUMN, SIGNAL_COLUMN, prepare_park_attributes
from park_access.data.loader import DataLoader
from park_access.models.accessibility import LogsumEngine
from park_access.models.calibration import Calibrator
from park_access.models.distance import DistanceMatrix
from park_access.models.impacts import ImpactSummarizer
from park_access.models.model_selection import ModelSelector
from park_access.models.regression import make_regression_fn
from park_access.models.reporting import ResultsReporter
from park_access.models.spatial.tester import SpatialTester
from park_access.models.spatial.weights import SpatialWeightMatrix
from park_access.utils.error_handling import handle_errors, log_execution
from park_access.utils.logging_setup import setup_logging_from_config
from park_access.utils.validation import validate_columns, validate_data

# Initialize logger
logger = logging.getLogger(__name__)


class ParkAccessAnalysis:
    """
    Main class for Park Access Analysis.

    Attributes:
        data_loader (DataLoader): Data loader instance.
        distance_matrix (DistanceMatrix): Distance matrix instance.
        engine (LogsumEngine): Logsum engine instance.
        weight_matrix (SpatialWeightMatrix): Spatial weight matrix instance.
        results_reporter (ResultsReporter): Results reporter instance.
    """

    def __init__(self):
        """Initialize the Park Access Analysis."""
        self.data_loader = DataLoader()
        self.distance_matrix = DistanceMatrix()
        self.engine = LogsumEngine()
        self.weight_matrix = SpatialWeightMatrix()
        self.results_reporter = ResultsReporter()

    @log_execution
    @handle_errors
    def run_analysis(
        self,
        tracts: gpd.GeoDataFrame,
        parks: gpd.GeoDataFrame,
        centroids: Union[gpd.GeoDataFrame, pd.DataFrame],
        outcome: str,
        covariates: List[str],
        specification: Optional[str] = None,
        initial_betas: Optional[List[float]] = None,
        output_dir: Optional[Union[str, Path]] = None,
        export: bool = True,
    ) -> Dict[str, Any]:
        """
        Run the analysis for one health outcome.

        Args:
            tracts: Tract polygons with covariates and outcomes.
            parks: Park layer.
            centroids: Population-weighted centroids, either an id/x/y table
                or a GeoDataFrame carrying the tract identifier. Both are
                joined to ``tracts`` on the identifier.
            outcome: Outcome column.
            covariates: Base covariate columns.
            specification: Regression used by the calibration. If None, uses
                ``calibration.specification``.
            initial_betas: Calibration starting point. If None, uses
                ``calibration.initial_betas``.
            output_dir: Directory to save outputs. If None, uses ``data.output_path``.
            export: Whether to write the result tables.

        Returns:
            Dictionary containing the analysis results.
        """
        specification = specification or config.get('calibration.specification', 'ols')
        initial_betas = initial_betas or config.get('calibration.initial_betas', [-1.0, 0.5])

        validate_data(tracts, 'tracts', id_column=self.data_loader.id_column)
        validate_columns(tracts, [outcome] + list(covariates), 'tracts')

        centroids = self.data_loader.join_centroids(tracts, centroids)

        # Distances and park attributes
        parks = prepare_park_attributes(parks)
        distances = self.distance_matrix.compute(centroids, parks)
        if config.get('distance.log_transform', True):
            distances = self.distance_matrix.log_transform(distances)
        sizes = parks[LOG_SIZE_COLUMN].to_numpy()
        signal = parks[SIGNAL_COLUMN].to_numpy() if SIGNAL_COLUMN in parks.columns else None

        # Weights
        rule = config.get('weights.rule', 'queen')
        self.weight_matrix.build(tracts if rule == 'queen' else centroids, rule=rule)
        traces = self.weight_matrix.trace_summary()

        design = tracts[list(covariates)].astype(float)
        y = tracts[outcome].astype(float)

        results: Dict[str, Any] = {'outcome': outcome}

        # Diagnostics and base comparison
        results['diagnostics'] = SpatialTester(self.weight_matrix).run_spatial_diagnostics(design, y)
        selector = ModelSelector(self.weight_matrix)
        results['base_models'] = selector.fit_all(design, y)

        # Calibration
        calibrator = Calibrator(design, y, engine=self.engine)
        calibration = calibrator.calibrate(
            distances, sizes, signal,
            regression_fn=make_regression_fn(specification, self.weight_matrix),
            initial_betas=initial_betas,
        )
        results['calibration'] = calibration

        accessibility = pd.Series(
            self.engine.standardized_accessibility(
                distances, sizes, signal if len(calibration.betas) > 2 else None,
                calibration.betas
            ),
            index=tracts.index, name=calibrator.accessibility_column
        )
        results['accessibility'] = accessibility.set_axis(
            pd.Index(
                tracts[self.data_loader.id_column].astype(str).to_numpy(),
                name=self.data_loader.id_column
            )
        )

        # Refit with accessibility and select
        augmented = design.assign(**{calibrator.accessibility_column: accessibility})
        models = selector.fit_all(augmented, y)
        results['models'] = models
        results['likelihood_ratio'] = selector.compare(models['error'], models['durbin'])
        selected = selector.select(models['error'], models['durbin'])
        results['selected'] = selected.specification

        if selected.has_spatial_lag:
            results['impacts'] = ImpactSummarizer().summarize(selected, traces)
        else:
            logger.info(f"Selected {selected.specification} model has no spillovers to decompose")
            results['impacts'] = None

        if export:
            results['files'] = self.results_reporter.export(
                models=models,
                calibration=calibration,
                impacts=results['impacts'],
                diagnostics=results['diagnostics'],
                accessibility=results['accessibility'],
                output_path=output_dir,
            )

        return results

    @handle_errors
    def run_from_files(
        self,
        outcome: str,
        covariates: List[str],
        tract_path: Optional[Union[str, Path]] = None,
        park_path: Optional[Union[str, Path]] = None,
        centroid_path: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Load the inputs with the DataLoader and run the analysis.

        Paths default to the ``data`` configuration section; remaining
        keyword arguments go to ``run_analysis``.
        """
        tracts = self.data_loader.load_tracts(tract_path)
        parks = self.data_loader.load_parks(park_path)
        centroids = self.data_loader.load_centroids(centroid_path)
        return self.run_analysis(tracts, parks, centroids, outcome, covariates, **kwargs)


def run_analysis(
    outcome: str,
    covariates: List[str],
    tract_path: Optional[Union[str, Path]] = None,
    park_path: Optional[Union[str, Path]] = None,
    centroid_path: Optional[Union[str, Path]] = None,
    specification: Optional[str] = None,
    output_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    """
    Run the analysis from files.

    This is a convenience function that creates a ParkAccessAnalysis instance
    and runs the analysis.
    """
    analyzer = ParkAccessAnalysis()
    return analyzer.run_from_files(
        outcome, covariates,
        tract_path=tract_path,
        park_path=park_path,
        centroid_path=centroid_path,
        specification=specification,
        output_dir=output_dir,
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Run Park Access Analysis")
    parser.add_argument("--outcome", type=str, required=True, help="Health outcome column")
    parser.add_argument("--covariates", type=str, nargs="+", required=True, help="Base covariate columns")
    parser.add_argument("--tracts", type=str, help="Path to the tract layer")
    parser.add_argument("--parks", type=str, help="Path to the park layer")
    parser.add_argument("--centroids", type=str, help="Path to the centroid CSV")
    parser.add_argument("--specification", type=str, choices=['ols', 'lag', 'error', 'durbin'],
                        help="Regression used by the calibration")
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file")
    parser.add_argument("--output-dir", type=str, help="Directory to save outputs")

    args = parser.parse_args()

    if args.config:
        if not Path(args.config).exists():
            parser.error(f"Configuration file not found: {args.config}")
        config.load(args.config)

    setup_logging_from_config(config)

    run_analysis(
        outcome=args.outcome,
        covariates=args.covariates,
        tract_path=args.tracts,
        park_path=args.parks,
        centroid_path=args.centroids,
        specification=args.specification,
        output_dir=args.output_dir,
    )
