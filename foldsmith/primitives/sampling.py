"""Seeded sampling of locations over a modelling domain.

A domain is one of:
    - a (xmin, ymin, xmax, ymax) bounding box,
    - a shapely Polygon / MultiPolygon,
    - a :class:`~foldsmith.objects.rastergrid.RasterGrid` (cells with a value
      in every band).
"""

import logging
from typing import Optional, Union

import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.utils.errors import ConfigError, EmptyInputError

logger = logging.getLogger(__name__)

Domain = Union[tuple[float, float, float, float], BaseGeometry, RasterGrid]

SAMPLING_METHODS = ("random", "regular")

_MAX_REJECTION_ROUNDS = 100


def subsample_indices(n_available: int, num_sample: Optional[int], seed: Optional[int]) -> np.ndarray:
    """Sorted indices of at most ``num_sample`` of ``n_available`` items."""
    if num_sample is None or num_sample >= n_available:
        return np.arange(n_available)
    rng = np.random.default_rng(seed)
    return np.sort(rng.choice(n_available, size=num_sample, replace=False))


def _regular_grid(
    bounds: tuple[float, float, float, float], num_sample: int
) -> np.ndarray:
    """About ``num_sample`` cell-centered points on a square lattice over bounds."""
    xmin, ymin, xmax, ymax = bounds
    width, height = xmax - xmin, ymax - ymin
    if width <= 0 or height <= 0:
        t = (np.arange(num_sample) + 0.5) / num_sample
        return np.column_stack([xmin + t * width, ymin + t * height])
    spacing = np.sqrt(width * height / num_sample)
    xs = np.arange(xmin + spacing / 2.0, xmax, spacing)
    ys = np.arange(ymin + spacing / 2.0, ymax, spacing)
    if len(xs) == 0:
        xs = np.array([(xmin + xmax) / 2.0])
    if len(ys) == 0:
        ys = np.array([(ymin + ymax) / 2.0])
    gx, gy = np.meshgrid(xs, ys)
    return np.column_stack([gx.ravel(), gy.ravel()])


def _sample_bounds(
    bounds: tuple[float, float, float, float],
    num_sample: int,
    sampling: str,
    rng: np.random.Generator,
) -> np.ndarray:
    if sampling == "regular":
        return _regular_grid(bounds, num_sample)
    xmin, ymin, xmax, ymax = bounds
    return np.column_stack(
        [rng.uniform(xmin, xmax, num_sample), rng.uniform(ymin, ymax, num_sample)]
    )


def _sample_geometry(
    geometry: BaseGeometry, num_sample: int, sampling: str, rng: np.random.Generator
) -> np.ndarray:
    if geometry.is_empty or geometry.area <= 0:
        raise EmptyInputError("Sampling domain polygon has no area")

    if sampling == "regular":
        # Lattice over the bounding box, densified by the area ratio so that
        # roughly num_sample points land inside.
        xmin, ymin, xmax, ymax = geometry.bounds
        ratio = (xmax - xmin) * (ymax - ymin) / geometry.area
        target = int(np.ceil(num_sample * ratio))
        for _ in range(_MAX_REJECTION_ROUNDS):
            lattice = _regular_grid(geometry.bounds, target)
            inside = lattice[shapely.contains_xy(geometry, lattice[:, 0], lattice[:, 1])]
            if len(inside) > 0:
                return inside
            target *= 2
        raise EmptyInputError("Could not place a regular sample inside the domain")

    accepted = []
    n_accepted = 0
    for _ in range(_MAX_REJECTION_ROUNDS):
        batch = _sample_bounds(geometry.bounds, max(num_sample, 64), "random", rng)
        batch = batch[shapely.contains_xy(geometry, batch[:, 0], batch[:, 1])]
        accepted.append(batch)
        n_accepted += len(batch)
        if n_accepted >= num_sample:
            return np.concatenate(accepted)[:num_sample]
    raise EmptyInputError(
        f"Rejection sampling placed only {n_accepted} of {num_sample} locations "
        f"inside the domain"
    )


def _sample_raster(
    raster: RasterGrid, num_sample: int, sampling: str, rng: np.random.Generator
) -> np.ndarray:
    centers = raster.cell_centers(valid_only=True)
    if len(centers) == 0:
        raise EmptyInputError("Raster domain has no valid cells")

    if sampling == "regular":
        n_cells = raster.n_rows * raster.n_cols
        target = int(np.ceil(num_sample * n_cells / len(centers)))
        lattice = _regular_grid(raster.bounds, target)
        inside = np.all(np.isfinite(raster.sample(lattice)), axis=1)
        if np.any(inside):
            return lattice[inside]
        return centers

    # Random valid cell, then a uniform position inside that cell.
    dx, dy = raster.pixel_size
    picks = rng.choice(len(centers), size=num_sample, replace=True)
    jitter = rng.uniform(-0.5, 0.5, size=(num_sample, 2)) * np.array([dx, dy])
    return centers[picks] + jitter


def sample_locations(
    domain: Domain,
    num_sample: int,
    sampling: str = "random",
    seed: Optional[int] = None,
) -> np.ndarray:
    """Draw prediction locations over a domain.

    ``random`` draws ``num_sample`` uniform locations (seeded). ``regular``
    lays a square lattice with about ``num_sample`` nodes inside the domain;
    it does not depend on the seed.

    Args:
        domain: Bounding box, shapely polygon or RasterGrid.
        num_sample: Number of locations (approximate for ``regular``).
        sampling: 'random' or 'regular'.
        seed: Random seed.

    Returns:
        Array of shape (m, 2).

    Raises:
        ConfigError: If ``num_sample`` or ``sampling`` is invalid.
        EmptyInputError: If the domain has no area / valid cells.
    """
    if num_sample < 1:
        raise ConfigError(f"num_sample must be a positive integer, got {num_sample}")
    if sampling not in SAMPLING_METHODS:
        raise ConfigError(
            f"Unknown sampling: {sampling}. Must be one of: 'random', 'regular'"
        )
    rng = np.random.default_rng(seed)

    if isinstance(domain, RasterGrid):
        locations = _sample_raster(domain, num_sample, sampling, rng)
    elif isinstance(domain, BaseGeometry):
        locations = _sample_geometry(domain, num_sample, sampling, rng)
    else:
        bounds = tuple(float(v) for v in domain)
        if len(bounds) != 4 or bounds[2] < bounds[0] or bounds[3] < bounds[1]:
            raise ConfigError(
                f"domain bounds must be (xmin, ymin, xmax, ymax), got {domain}"
            )
        locations = _sample_bounds(bounds, num_sample, sampling, rng)

    logger.debug(f"Sampled {len(locations)} {sampling} locations over the domain")
    return locations
