"""
Park attribute preparation for Park Access Analysis.
"""
import logging
from typing import Optional

import numpy as np
import geopandas as gpd
from scipy import stats

from park_access.config import config
from park_access.utils.error_handling import InputShapeError, handle_errors
from park_access.utils.validation import validate_columns, validate_data

# Initialize logger
logger = logging.getLogger(__name__)

LOG_SIZE_COLUMN = 'log_acres'
SIGNAL_COLUMN = 'signal_yj'


@handle_errors
def prepare_park_attributes(
    parks: gpd.GeoDataFrame, min_acres: Optional[float] = None,
    size_column: Optional[str] = None, signal_column: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Derive the size and social signal attributes used by the logsum.

    Parks at or below the minimum area are dropped. The size attribute is
    log acres; the signal, when present, is Yeo-Johnson transformed so zero
    counts stay finite.

    Args:
        parks: Park layer.
        min_acres: Minimum area. If None, uses ``parks.min_acres``.
        size_column: Area column. If None, uses ``parks.size_column``.
        signal_column: Signal count column. If None, uses
            ``parks.signal_column``; skipped when absent from the layer.

    Returns:
        Copy of the kept parks with 'log_acres' and, when a signal is
        present, 'signal_yj'. The fitted Yeo-Johnson lambda is stored in
        ``attrs['yeojohnson_lambda']``.
    """
    validate_data(parks, 'spatial')

    min_acres = min_acres if min_acres is not None else config.get('parks.min_acres', 1.0)
    size_column = size_column or config.get('parks.size_column', 'acres')
    signal_column = signal_column or config.get('parks.signal_column')

    validate_columns(parks, [size_column], 'parks')

    keep = parks[size_column] > min_acres
    if not keep.all():
        logger.warning(f"Dropping {int((~keep).sum())} parks with {size_column} <= {min_acres}")
    prepared = parks.loc[keep].copy()
    if prepared.empty:
        logger.error(f"No park is larger than {min_acres} acres")
        raise InputShapeError(f"No park is larger than {min_acres} acres")

    prepared[LOG_SIZE_COLUMN] = np.log(prepared[size_column].astype(float))

    if signal_column and signal_column in prepared.columns:
        validate_columns(prepared, [signal_column], 'parks')
        transformed, lmbda = stats.yeojohnson(prepared[signal_column].astype(float).to_numpy())
        prepared[SIGNAL_COLUMN] = transformed
        prepared.attrs['yeojohnson_lambda'] = float(lmbda)
        logger.info(f"Yeo-Johnson transformed {signal_column} with lambda={lmbda:.4f}")
    elif signal_column:
        logger.info(f"Signal column {signal_column} not found; logsum uses distance and size only")

    logger.info(f"Prepared attributes for {len(prepared)} parks")
    return prepared
