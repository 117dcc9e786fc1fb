"""Model modules for Park Access Analysis.

This package provides the distance matrix, the logsum accessibility engine,
its calibration, the regression specifications, model selection and the
impact decomposition.
"""

from park_access.models.distance import DistanceMatrix
from park_access.models.accessibility import LogsumEngine, standardize
from park_access.models.spatial import SpatialWeightMatrix, SpatialTester
from park_access.models.regression import fit_model, make_regression_fn
from park_access.models.calibration import Calibrator, CalibrationResult
from park_access.models.model_selection import ModelSelector, LikelihoodRatioResult
from park_access.models.impacts import ImpactSummarizer, ImpactResult
from park_access.models.reporting import ResultsReporter

__all__ = [
    'DistanceMatrix',
    'LogsumEngine',
    'standardize',
    'SpatialWeightMatrix',
    'SpatialTester',
    'fit_model',
    'make_regression_fn',
    'Calibrator',
    'CalibrationResult',
    'ModelSelector',
    'LikelihoodRatioResult',
    'ImpactSummarizer',
    'ImpactResult',
    'ResultsReporter',
]
