"""Layer 2: Primitives - Pure operations.

This layer holds the spatial index, tessellation, sampling, distribution and
variogram operations. It can import numpy, scipy, shapely and pyproj. No file
I/O and no partitioning policy.
"""

from foldsmith.primitives.crs import check_same_crs, standardize_crs
from foldsmith.primitives.distribution import ecdf, ks_statistic, overlap_coefficient
from foldsmith.primitives.sampling import (
    SAMPLING_METHODS,
    sample_locations,
    subsample_indices,
)
from foldsmith.primitives.spatial_index import SpatialIndex
from foldsmith.primitives.tessellation import build_grid, locate_blocks
from foldsmith.primitives.variogram import (
    VARIOGRAM_MODELS,
    VariogramModel,
    compute_experimental_variogram,
    effective_range,
    fit_variogram_model,
    predict_variogram,
)

__all__ = [
    "SAMPLING_METHODS",
    "SpatialIndex",
    "VARIOGRAM_MODELS",
    "VariogramModel",
    "build_grid",
    "check_same_crs",
    "compute_experimental_variogram",
    "ecdf",
    "effective_range",
    "fit_variogram_model",
    "ks_statistic",
    "locate_blocks",
    "overlap_coefficient",
    "predict_variogram",
    "sample_locations",
    "standardize_crs",
    "subsample_indices",
]
