"""Shared fixtures: synthetic point sets and covariate rasters."""

import numpy as np
import pytest

from foldsmith.objects import PointSet, RasterGrid


@pytest.fixture
def grid_points():
    """100 points on a 10 x 10 unit grid; point id = 10 * y + x."""
    xx, yy = np.meshgrid(np.arange(10.0), np.arange(10.0))
    return PointSet(coordinates=np.column_stack([xx.ravel(), yy.ravel()]))


@pytest.fixture
def line_points():
    """5 collinear points spaced 1 unit apart."""
    return PointSet(coordinates=np.column_stack([np.arange(5.0), np.zeros(5)]))


@pytest.fixture
def random_points():
    """200 random points in [0, 100]^2 with two covariates."""
    rng = np.random.default_rng(42)
    coords = rng.uniform(0, 100, size=(200, 2))
    features = np.column_stack(
        [
            np.sin(coords[:, 0] / 15.0) + rng.normal(0, 0.1, 200),
            coords[:, 1] / 100.0 + rng.normal(0, 0.05, 200),
        ]
    )
    return PointSet(
        coordinates=coords, features=features, feature_names=("temp", "precip")
    )


@pytest.fixture
def clustered_points():
    """60 points in three tight clusters inside a 100 x 100 domain."""
    rng = np.random.default_rng(7)
    centers = np.array([[20.0, 20.0], [50.0, 80.0], [80.0, 30.0]])
    coords = np.concatenate([c + rng.normal(0, 2.0, size=(20, 2)) for c in centers])
    return PointSet(coordinates=coords)


@pytest.fixture
def raster():
    """20 x 20 raster over [0, 100]^2 with two smooth bands."""
    pixel = 5.0
    rows, cols = np.indices((20, 20))
    x = (cols + 0.5) * pixel
    y = 100.0 - (rows + 0.5) * pixel
    data = np.stack([np.sin(x / 20.0) + np.cos(y / 20.0), x / 100.0])
    return RasterGrid(
        data=data, x_min=0.0, y_max=100.0, pixel_size=pixel, band_names=("elev", "east")
    )
