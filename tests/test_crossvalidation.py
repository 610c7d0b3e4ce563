"""Tests for the scikit-learn adapter."""

import numpy as np
import pytest
from sklearn.linear_model import LinearRegression
from sklearn.model_selection import cross_val_score

from foldsmith.tasks.blockpartition import BlockPartitioner
from foldsmith.tasks.bufferloo import BufferLOOPartitioner
from foldsmith.tasks.crossvalidation import SpatialFoldSplitter
from foldsmith.utils.errors import PartitionDegenerate


@pytest.fixture
def regression_data(random_points):
    X = np.asarray(random_points.features)
    rng = np.random.default_rng(0)
    y = 2.0 * X[:, 0] + X[:, 1] + rng.normal(0, 0.1, len(X))
    return X, y


class TestSpatialFoldSplitter:
    """Tests for SpatialFoldSplitter."""

    def test_cross_val_score(self, random_points, regression_data):
        """Test use as cv= in cross_val_score."""
        X, y = regression_data
        cv = SpatialFoldSplitter(
            strategy=BlockPartitioner(k=4, cell_size=25.0, seed=0), points=random_points
        )
        scores = cross_val_score(LinearRegression(), X, y, cv=cv)
        assert len(scores) == 4
        assert np.all(np.isfinite(scores))
        assert cv.get_n_splits() == 4

    def test_precomputed_result(self, random_points):
        """Test serving a precomputed partition unchanged."""
        result = BlockPartitioner(k=3, cell_size=25.0, seed=1).partition(random_points)
        cv = SpatialFoldSplitter(result=result)
        assert cv.partition_ is result
        splits = list(cv.split(np.zeros((len(random_points), 1))))
        assert len(splits) == 3
        for (train, test), fold in zip(splits, result):
            assert train.tolist() == fold.train.tolist()
            assert test.tolist() == fold.test.tolist()

    def test_lazy_partition(self, random_points):
        """Test that the strategy runs once, on first use."""
        cv = SpatialFoldSplitter(
            strategy=BlockPartitioner(k=3, cell_size=25.0, seed=1), points=random_points
        )
        assert cv._partition is None
        first = cv.partition_
        assert cv.partition_ is first

    def test_skip_degenerate(self, line_points):
        """Test leaving out degenerate folds."""
        with pytest.warns(PartitionDegenerate):
            result = BufferLOOPartitioner(radius=2.5).partition(line_points)
        assert SpatialFoldSplitter(result=result).get_n_splits() == 5
        cv = SpatialFoldSplitter(result=result, skip_degenerate=True)
        assert cv.get_n_splits() == 2
        assert [test.tolist() for _, test in cv.split()] == [[0], [4]]
        stats = cv.get_fold_statistics()
        assert stats["fold"].tolist() == [0, 4]
        assert not stats["degenerate"].any()

    def test_length_mismatch(self, random_points):
        """Test that X must have one row per point."""
        result = BlockPartitioner(k=2, cell_size=50.0, seed=0).partition(random_points)
        cv = SpatialFoldSplitter(result=result)
        with pytest.raises(ValueError, match="rows"):
            list(cv.split(np.zeros((10, 2))))

    def test_constructor_arguments(self, random_points):
        """Test invalid argument combinations."""
        strategy = BlockPartitioner(k=2, cell_size=50.0, seed=0)
        result = strategy.partition(random_points)
        with pytest.raises(ValueError):
            SpatialFoldSplitter()
        with pytest.raises(ValueError):
            SpatialFoldSplitter(strategy=strategy)
        with pytest.raises(ValueError):
            SpatialFoldSplitter(result=result, strategy=strategy, points=random_points)

    def test_fold_statistics(self, random_points):
        """Test per-fold train/test sizes."""
        result = BlockPartitioner(k=4, cell_size=25.0, seed=2).partition(random_points)
        stats = SpatialFoldSplitter(result=result).get_fold_statistics()
        assert len(stats) == 4
        assert (stats["n_train"] + stats["n_test"] == len(random_points)).all()
