"""Data modules for Park Access Analysis.

This package provides modules for loading the tract, park and centroid inputs
and for preparing the park attributes.
"""

from park_access.data.loader import DataLoader
from park_access.data.features import prepare_park_attributes

__all__ = [
    'DataLoader',
    'prepare_park_attributes',
]
