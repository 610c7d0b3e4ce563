"""Tests for ClusterPartitioner."""

import numpy as np
import pytest

from foldsmith.objects import PointSet
from foldsmith.tasks.clusterpartition import ClusterPartitioner, appearance_mapping
from foldsmith.utils.errors import (
    ConfigError,
    CRSMismatchError,
    EmptyInputError,
    PointsExcludedWarning,
)


class TestClusterValidation:
    """Tests for parameter validation."""

    def test_k_too_small(self):
        """Test that fewer than two folds is rejected."""
        with pytest.raises(ConfigError):
            ClusterPartitioner(k=1)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"k": 2.5},
            {"k": "3"},
            {"k": True},
            {"n_init": 0},
            {"n_init": 1.5},
            {"num_sample": 0},
            {"num_sample": 100.0},
            {"seed": 0.5},
            {"seed": -3},
        ],
    )
    def test_invalid_numbers(self, kwargs):
        """Test that wrongly typed or out-of-range counts raise ConfigError."""
        with pytest.raises(ConfigError):
            ClusterPartitioner(**kwargs)

    def test_unknown_space(self):
        """Test that the space must be known."""
        with pytest.raises(ConfigError):
            ClusterPartitioner(k=2, space="temporal")

    def test_environmental_requires_scale(self):
        """Test that environmental clustering needs standardized features."""
        with pytest.raises(ConfigError, match="scale"):
            ClusterPartitioner(k=2, space="environmental", scale=False)

    def test_k_exceeds_distinct_points(self):
        """Test that k larger than the distinct locations is rejected."""
        points = PointSet(coordinates=np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 1.0]]))
        with pytest.raises(ConfigError, match="distinct"):
            ClusterPartitioner(k=3, seed=0).partition(points)

    def test_environmental_without_features(self, grid_points):
        """Test that missing covariates are reported as empty input."""
        with pytest.raises(EmptyInputError, match="features"):
            ClusterPartitioner(k=2, space="environmental").partition(grid_points)

    def test_empty_points(self):
        """Test that an empty PointSet is rejected."""
        with pytest.raises(EmptyInputError):
            ClusterPartitioner(k=2).partition(PointSet(np.empty((0, 2))))


class TestSpatialClusters:
    """Tests for clustering coordinates."""

    def test_two_groups(self):
        """Test that two well separated pairs form the two folds."""
        points = PointSet(
            coordinates=np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 0.0], [10.0, 1.0]])
        )
        result = ClusterPartitioner(k=2, space="spatial", seed=0).partition(points)
        assert [fold.test.tolist() for fold in result] == [[0, 1], [2, 3]]
        assert [fold.train.tolist() for fold in result] == [[2, 3], [0, 1]]

    def test_exhaustive_and_disjoint(self, random_points):
        """Test that test sets partition the points."""
        result = ClusterPartitioner(k=6, seed=1).partition(random_points)
        labels = result.fold_ids()
        assert np.all(labels >= 0)
        assert sorted(np.concatenate([f.test for f in result]).tolist()) == list(range(200))
        for fold in result:
            assert len(np.intersect1d(fold.train, fold.test)) == 0
            assert fold.n_train + fold.n_test == 200

    def test_reproducible(self, random_points):
        """Test that a fixed seed reproduces the folds."""
        a = ClusterPartitioner(k=5, seed=3).partition(random_points)
        b = ClusterPartitioner(k=5, seed=3).partition(random_points)
        assert a.fold_ids().tolist() == b.fold_ids().tolist()
        assert a.seed == 3

    def test_labels_numbered_by_first_appearance(self, random_points):
        """Test that point 0 is always in fold 0."""
        result = ClusterPartitioner(k=5, seed=11).partition(random_points)
        labels = result.fold_ids()
        first_seen = [int(labels[np.argmax(labels == fold)]) for fold in range(5)]
        assert labels[0] == 0
        assert first_seen == [0, 1, 2, 3, 4]
        assert np.all(np.diff([np.argmax(labels == f) for f in range(5)]) > 0)

    def test_centers_follow_labels(self, clustered_points):
        """Test that reported centers are in fold order."""
        result = ClusterPartitioner(k=3, seed=0).partition(clustered_points)
        for fold, center in zip(result, result.extras["cluster_centers"]):
            mean = clustered_points.coordinates[fold.test].mean(axis=0)
            np.testing.assert_allclose(center, mean, atol=1e-6)


class TestEnvironmentalClusters:
    """Tests for clustering covariates."""

    def test_point_features(self, random_points):
        """Test clustering on point features."""
        result = ClusterPartitioner(k=4, space="environmental", seed=2).partition(
            random_points
        )
        assert result.n_folds == 4
        assert result.extras["feature_names"] == ["temp", "precip"]
        assert np.all(result.fold_ids() >= 0)

    def test_missing_feature_rows_excluded(self, random_points):
        """Test that points with NaN covariates are dropped and reported."""
        features = np.array(random_points.features)
        features[[4, 9], 0] = np.nan
        points = random_points.with_features(features, random_points.feature_names)
        with pytest.warns(PointsExcludedWarning):
            result = ClusterPartitioner(k=3, space="environmental", seed=0).partition(points)
        assert result.excluded_ids.tolist() == [4, 9]
        assert result.fold_ids()[[4, 9]].tolist() == [-1, -1]

    def test_raster_covariates(self, random_points, raster):
        """Test clustering raster cells and assigning points by centroid."""
        result = ClusterPartitioner(
            k=3, space="environmental", seed=0, num_sample=200
        ).partition(random_points, raster=raster)
        assert result.extras["feature_names"] == ["elev", "east"]
        assert len(result.excluded_ids) == 0
        assert sum(fold.n_test for fold in result) == len(random_points)

    def test_points_outside_raster(self, raster):
        """Test that points off the raster are excluded."""
        coords = np.array([[10.0, 10.0], [50.0, 50.0], [90.0, 20.0], [150.0, 150.0]])
        with pytest.warns(PointsExcludedWarning):
            result = ClusterPartitioner(k=2, space="environmental", seed=0).partition(
                PointSet(coordinates=coords), raster=raster
            )
        assert result.excluded_ids.tolist() == [3]

    def test_crs_mismatch(self, random_points, raster):
        """Test that points and raster must share a CRS."""
        points = PointSet(coordinates=random_points.coordinates, crs="EPSG:4326")
        other = type(raster)(
            data=raster.data, x_min=0.0, y_max=100.0, pixel_size=5.0, crs="EPSG:3857"
        )
        with pytest.raises(CRSMismatchError):
            ClusterPartitioner(k=2, space="environmental").partition(points, raster=other)


class TestAppearanceMapping:
    """Tests for label renumbering."""

    def test_mapping(self):
        """Test renumbering including a cluster that never appears."""
        mapping = appearance_mapping(np.array([2, 2, 0, 3, 0]), n_clusters=4)
        assert mapping[np.array([2, 2, 0, 3, 0])].tolist() == [0, 0, 1, 2, 1]
        assert mapping[1] == 3
