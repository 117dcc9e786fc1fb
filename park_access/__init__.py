"""Park Access Analysis package.

This package provides tools for measuring park accessibility with a logsum
gravity index, calibrating it against health outcomes, and estimating the
spatial spillovers of access with spatial econometric models.
"""

__version__ = '0.1.0'

# Import main modules
from park_access.config import config
from park_access.data import loader, features
from park_access.models import distance, accessibility, calibration, impacts, spatial
from park_access.utils import error_handling, validation
