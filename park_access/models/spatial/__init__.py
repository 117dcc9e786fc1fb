"""
Spatial analysis package for Park Access Analysis.

This package provides the spatial weight matrix, the spatial regression
specifications and the spatial dependence diagnostics.
"""

from park_access.models.spatial.weights import SpatialWeightMatrix, TraceSummary
from park_access.models.spatial.models import FittedModel, SpatialModel
from park_access.models.spatial.lag_model import SpatialLagModel
from park_access.models.spatial.error_model import SpatialErrorModel
from park_access.models.spatial.durbin_model import SpatialDurbinModel
from park_access.models.spatial.tester import SpatialTester

__all__ = [
    'SpatialWeightMatrix',
    'TraceSummary',
    'FittedModel',
    'SpatialModel',
    'SpatialLagModel',
    'SpatialErrorModel',
    'SpatialDurbinModel',
    'SpatialTester',
]
