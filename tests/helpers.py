"""
Synthetic tract and park data shared by the tests.
"""
import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Point, box


def make_lattice(k: int = 6, cell: float = 1000.0, seed: int = 42) -> gpd.GeoDataFrame:
    """k x k grid of square tracts with two random covariates."""
    rng = np.random.default_rng(seed)
    cells = [box(i * cell, j * cell, (i + 1) * cell, (j + 1) * cell)
             for j in range(k) for i in range(k)]
    n = len(cells)
    return gpd.GeoDataFrame(
        {
            'GEOID': [f"T{i:03d}" for i in range(n)],
            'x1': rng.normal(size=n),
            'x2': rng.normal(size=n),
        },
        geometry=cells,
        crs="EPSG:3857",
    )


def make_parks(n: int = 5, extent: float = 6000.0, seed: int = 7) -> gpd.GeoDataFrame:
    """Point parks with areas above the minimum and check-in counts."""
    rng = np.random.default_rng(seed)
    xy = rng.uniform(0, extent, size=(n, 2))
    return gpd.GeoDataFrame(
        {
            'park_id': [f"P{i:02d}" for i in range(n)],
            'acres': rng.uniform(2.0, 80.0, size=n),
            'checkins': rng.poisson(30, size=n).astype(float),
        },
        geometry=[Point(x, y) for x, y in xy],
        crs="EPSG:3857",
    )


def simulate_lag_outcome(
    w_dense: np.ndarray, design: pd.DataFrame, beta, rho: float,
    intercept: float = 1.0, noise: float = 0.5, seed: int = 0
) -> pd.Series:
    """Draw y = (I - rho W)^-1 (a + X b + e)."""
    rng = np.random.default_rng(seed)
    n = len(design)
    mean = intercept + design.to_numpy() @ np.asarray(beta, dtype=float)
    y = np.linalg.solve(np.eye(n) - rho * w_dense, mean + noise * rng.normal(size=n))
    return pd.Series(y, index=design.index, name='outcome')
