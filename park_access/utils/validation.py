"""
Data validation module for Park Access Analysis.

This module provides functions for validating the tract and park tables and
the numeric arrays passed between components. Every failure raises
InputShapeError: shape problems are contract violations, not recoverable cases.
"""
import logging
from typing import Iterable, Optional, Tuple, Union

import pandas as pd
import numpy as np
import geopandas as gpd

from park_access.utils.error_handling import InputShapeError

# Initialize logger
logger = logging.getLogger(__name__)

def validate_data(
    data: Union[pd.DataFrame, gpd.GeoDataFrame], data_type: str = 'dataframe',
    id_column: Optional[str] = None
) -> bool:
    """
    Validate data for use in Park Access Analysis.

    Args:
        data: Data to validate.
        data_type: Type of data to validate. Options are 'dataframe', 'spatial',
                  'tracts' and 'parks'.
        id_column: Identifier column that must be present and unique
                   ('tracts' and 'parks' only).

    Returns:
        True if the data is valid.

    Raises:
        InputShapeError: If the data is invalid.
    """
    logger.debug(f"Validating {data_type} data")

    if data is None or len(data) == 0:
        logger.error("Data is empty")
        raise InputShapeError("Data is empty")

    if data_type == 'dataframe':
        return _validate_dataframe(data)
    elif data_type == 'spatial':
        return _validate_spatial(data)
    elif data_type in ('tracts', 'parks'):
        _validate_spatial(data)
        if id_column is not None:
            _validate_identifier(data, id_column, data_type)
        return True
    else:
        logger.error(f"Invalid data type: {data_type}")
        raise InputShapeError(f"Invalid data type: {data_type}")


def _validate_dataframe(data: pd.DataFrame) -> bool:
    if not isinstance(data, pd.DataFrame):
        logger.error("Data is not a pandas DataFrame")
        raise InputShapeError("Data is not a pandas DataFrame")

    if len(data.columns) == 0:
        logger.error("DataFrame has no columns")
        raise InputShapeError("DataFrame has no columns")

    missing_values = data.isnull().sum()
    if missing_values.sum() > 0:
        logger.warning(f"DataFrame has missing values: {missing_values[missing_values > 0].to_dict()}")

    return True


def _validate_spatial(data: gpd.GeoDataFrame) -> bool:
    """
    Validate a GeoDataFrame.

    Args:
        data: GeoDataFrame to validate.

    Returns:
        True if the GeoDataFrame is valid.

    Raises:
        InputShapeError: If the data is not a GeoDataFrame or has no geometries.
    """
    if not isinstance(data, gpd.GeoDataFrame):
        logger.error("Data is not a GeoDataFrame")
        raise InputShapeError("Data is not a GeoDataFrame")

    if data.geometry.isna().any():
        logger.error("GeoDataFrame has missing geometries")
        raise InputShapeError("GeoDataFrame has missing geometries")

    return True


def _validate_identifier(data: pd.DataFrame, id_column: str, label: str) -> None:
    if id_column not in data.columns:
        logger.error(f"Identifier column {id_column} not found in {label}")
        raise InputShapeError(f"Identifier column {id_column} not found in {label}")

    duplicated = data[id_column][data[id_column].duplicated()]
    if len(duplicated) > 0:
        logger.error(f"Duplicated identifiers in {label}: {list(duplicated)[:5]}")
        raise InputShapeError(f"Duplicated identifiers in {label}: {list(duplicated)[:5]}")


def validate_columns(data: pd.DataFrame, columns: Iterable[str], label: str = 'data') -> None:
    """
    Check that every column is present and has no missing values.

    Args:
        data: Table to check.
        columns: Required columns.
        label: Name of the table used in error messages.

    Raises:
        InputShapeError: If a column is missing or incomplete.
    """
    missing = [col for col in columns if col not in data.columns]
    if missing:
        logger.error(f"Columns {missing} not found in {label}")
        raise InputShapeError(f"Columns {missing} not found in {label}")

    incomplete = [col for col in columns if data[col].isnull().any()]
    if incomplete:
        logger.error(f"Columns {incomplete} in {label} have missing values")
        raise InputShapeError(f"Columns {incomplete} in {label} have missing values")


def validate_matrix_shape(
    matrix: np.ndarray, expected: Tuple[Optional[int], ...], name: str = 'matrix'
) -> np.ndarray:
    """
    Check the dimensions of an array.

    Args:
        matrix: Array to check.
        expected: Expected shape; None entries match any length.
        name: Name used in error messages.

    Returns:
        The input converted to a float ndarray.

    Raises:
        InputShapeError: If the number of dimensions or any fixed length differs.
    """
    array = np.asarray(matrix, dtype=float)

    if array.ndim != len(expected):
        logger.error(f"{name} has {array.ndim} dimensions, expected {len(expected)}")
        raise InputShapeError(f"{name} has {array.ndim} dimensions, expected {len(expected)}")

    for axis, (actual, wanted) in enumerate(zip(array.shape, expected)):
        if wanted is not None and actual != wanted:
            logger.error(f"{name} has length {actual} on axis {axis}, expected {wanted}")
            raise InputShapeError(
                f"{name} has length {actual} on axis {axis}, expected {wanted}"
            )

    return array


def validate_finite(values: np.ndarray, name: str = 'values') -> None:
    """Raise InputShapeError if any entry is NaN or infinite."""
    if not np.all(np.isfinite(values)):
        logger.error(f"{name} contains non-finite values")
        raise InputShapeError(f"{name} contains non-finite values")

