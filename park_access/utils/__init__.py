"""
Utility modules for Park Access Analysis.

This package provides error handling, validation and logging helpers shared by
the analysis components.
"""

from park_access.utils.error_handling import (
    ParkAccessError, InputShapeError, NumericalDegeneracyError,
    ModelSpecificationError, handle_errors, log_execution
)
from park_access.utils.validation import (
    validate_data, validate_columns, validate_matrix_shape, validate_finite
)
from park_access.utils.logging_setup import setup_logging, setup_logging_from_config

__all__ = [
    # Error handling
    'ParkAccessError',
    'InputShapeError',
    'NumericalDegeneracyError',
    'ModelSpecificationError',
    'handle_errors',
    'log_execution',

    # Validation
    'validate_data',
    'validate_columns',
    'validate_matrix_shape',
    'validate_finite',

    # Logging
    'setup_logging',
    'setup_logging_from_config',
]
