"""
Error handling module for Park Access Analysis.

This module provides the exception hierarchy used across the package and a
decorator that wraps unexpected failures in a package exception.
"""
import logging
import functools
import traceback
from typing import Any, Callable, TypeVar, cast

# Type variable for generic type hints
F = TypeVar('F', bound=Callable[..., Any])

# Initialize logger
logger = logging.getLogger(__name__)

class ParkAccessError(Exception):
    """
    Base exception class for Park Access Analysis.

    Attributes:
        message (str): Error message.
        original_error (Exception, optional): Original exception that caused this error.
    """

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize the exception.

        Args:
            message: Error message.
            original_error: Original exception that caused this error.
        """
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Original error: {str(self.original_error)})"
        return self.message


class InputShapeError(ParkAccessError):
    """Mismatched dimensions, missing join keys or missing columns."""


class NumericalDegeneracyError(ParkAccessError):
    """Singular or collinear design surfaced by a regression fit."""


class ModelSpecificationError(ParkAccessError):
    """Unknown model specification or an operation the model does not support."""


def handle_errors(func: F) -> F:
    """
    Decorator for handling errors in functions.

    Package exceptions are re-raised untouched. Any other exception is logged
    with its traceback and wrapped in a ParkAccessError.

    Args:
        func: Function to decorate.

    Returns:
        Decorated function.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ParkAccessError:
            raise
        except Exception as e:
            func_name = func.__name__
            module_name = func.__module__

            tb = traceback.format_exc()
            logger.error(f"Error in {module_name}.{func_name}: {str(e)}\n{tb}")

            raise ParkAccessError(
                f"Error in {module_name}.{func_name}: {str(e)}",
                original_error=e
            ) from e

    return cast(F, wrapper)


def log_execution(func: F) -> F:
    """
    Decorator for logging function execution.

    Logs the start and end of the call and any error raised by it.

    Args:
        func: Function to decorate.

    Returns:
        Decorated function.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        func_name = func.__name__
        module_name = func.__module__

        logger.info(f"Starting {module_name}.{func_name}")

        try:
            result = func(*args, **kwargs)
            logger.info(f"Completed {module_name}.{func_name}")
            return result
        except Exception as e:
            logger.error(f"Error in {module_name}.{func_name}: {str(e)}")
            raise

    return cast(F, wrapper)
