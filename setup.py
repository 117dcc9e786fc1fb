#!/usr/bin/env python
"""
Setup script for Park Access Analysis package.

This package provides tools for measuring park accessibility with a logsum
gravity index and relating it to health outcomes with spatial econometric
models.
"""
from setuptools import setup, find_packages

setup(
    name="park_access_health",
    version="0.1.0",
    description="Park accessibility calibration and spatial health models",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "statsmodels>=0.13.0",
        "scipy>=1.7.0",
        "geopandas>=0.10.0",
        "libpysal>=4.5.0",
        "spreg>=1.2.4",
        "esda>=2.4.0",
        "pyyaml>=5.4.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
            "shapely>=1.8.0",
            "black>=21.5b2",
            "flake8>=3.9.0",
            "mypy>=0.812",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
    python_requires=">=3.9",
)
