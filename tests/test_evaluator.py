"""Tests for FoldEvaluator."""

import numpy as np
import pandas as pd
import pytest

from foldsmith.objects import AutocorrelationEstimate, Fold, PartitionResult, PointSet
from foldsmith.tasks.blockpartition import BlockPartitioner
from foldsmith.tasks.bufferloo import BufferLOOPartitioner
from foldsmith.tasks.evaluator import FoldEvaluator, FoldSimilarity
from foldsmith.utils.errors import ConfigError, EmptyInputError


@pytest.fixture
def block_result(random_points):
    return BlockPartitioner(k=4, rows_cols=(2, 2), selection="systematic").partition(
        random_points
    )


class TestFoldSimilarity:
    """Tests for train/test covariate similarity."""

    @pytest.mark.parametrize("method", ["ks", "overlap"])
    def test_table_layout(self, random_points, block_result, method):
        """Test one row per fold and feature with scores in [0, 1]."""
        similarity = FoldEvaluator(random_points).fold_similarity(block_result, method=method)
        assert isinstance(similarity, FoldSimilarity)
        assert isinstance(similarity.table, pd.DataFrame)
        assert len(similarity.table) == 4 * 2
        assert set(similarity.table["feature"]) == {"temp", "precip"}
        assert similarity.table["score"].between(0, 1).all()
        assert len(similarity.fold_scores) == 4
        assert similarity.aggregate == pytest.approx(similarity.fold_scores.mean())

    def test_identical_distributions_score_one(self):
        """Test that identical train and test covariates score 1."""
        points = PointSet(
            coordinates=np.zeros((4, 2)) + np.arange(4)[:, None],
            features=np.array([1.0, 2.0, 1.0, 2.0]),
        )
        result = PartitionResult(
            strategy="custom",
            folds=(Fold(index=0, train=[0, 1], test=[2, 3]),),
            n_points=4,
        )
        similarity = FoldEvaluator(points).fold_similarity(result)
        assert similarity.aggregate == pytest.approx(1.0)

    def test_spatial_blocks_less_similar_than_random(self, random_points):
        """Test that the spatial gradient shows up in block folds."""
        blocks = BlockPartitioner(k=2, rows_cols=(2, 1), selection="systematic").partition(
            random_points
        )
        evaluator = FoldEvaluator(random_points)
        precip = evaluator.fold_similarity(blocks).table
        precip = precip[precip["feature"] == "precip"]["score"]
        assert precip.max() < 0.5

    def test_raster_covariates(self, random_points, raster, block_result):
        """Test comparing covariates sampled from a raster."""
        similarity = FoldEvaluator(random_points, raster=raster).fold_similarity(block_result)
        assert set(similarity.table["feature"]) == {"elev", "east"}

    def test_degenerate_folds_are_nan(self, line_points):
        """Test that folds with an empty train set score NaN."""
        points = line_points.with_features(np.arange(5.0))
        result = BufferLOOPartitioner(radius=10.0).partition(points)
        similarity = FoldEvaluator(points).fold_similarity(result)
        assert similarity.fold_scores.isna().all()
        assert np.isnan(similarity.aggregate)

    def test_invalid_method(self, random_points, block_result):
        """Test that unknown methods are rejected."""
        with pytest.raises(ConfigError):
            FoldEvaluator(random_points).fold_similarity(block_result, method="wasserstein")

    def test_size_mismatch(self, grid_points, block_result):
        """Test that the partition must belong to the evaluator's points."""
        points = grid_points.with_features(np.arange(100.0))
        with pytest.raises(ValueError, match="covers"):
            FoldEvaluator(points).fold_similarity(block_result)

    def test_no_covariates(self, grid_points):
        """Test that missing covariates are reported."""
        result = BlockPartitioner(k=2, rows_cols=(1, 2), selection="systematic").partition(
            grid_points
        )
        with pytest.raises(EmptyInputError):
            FoldEvaluator(grid_points).fold_similarity(result)

    def test_result_not_mutated(self, random_points, block_result):
        """Test that evaluation leaves the partition untouched."""
        before = block_result.to_dict()
        FoldEvaluator(random_points).fold_similarity(block_result)
        assert block_result.to_dict() == before


class TestAutocorrelationRange:
    """Tests for effective range estimation."""

    def test_raster_ranges(self, random_points, raster):
        """Test one estimate per band with a finite, positive range."""
        evaluator = FoldEvaluator(random_points, raster=raster)
        estimates = evaluator.autocorrelation_range(seed=0)
        assert [e.source for e in estimates] == ["elev", "east"]
        for estimate in estimates:
            assert isinstance(estimate, AutocorrelationEstimate)
            assert np.isfinite(estimate.effective_range)
            assert estimate.effective_range >= 0
            assert estimate.method == "variogram:spherical"
            assert estimate.n_samples == 400

    def test_point_features_subset(self, random_points):
        """Test selecting variables and subsampling points."""
        estimates = FoldEvaluator(random_points).autocorrelation_range(
            variables=["temp"], num_sample=150, model_type="exponential", seed=1
        )
        assert len(estimates) == 1
        assert estimates[0].source == "temp"
        assert estimates[0].n_samples == 150

    def test_reproducible(self, random_points):
        """Test that the subsample is seeded."""
        evaluator = FoldEvaluator(random_points)
        a = evaluator.autocorrelation_range(num_sample=100, seed=4)
        b = evaluator.autocorrelation_range(num_sample=100, seed=4)
        assert [e.effective_range for e in a] == [e.effective_range for e in b]

    def test_invalid_arguments(self, random_points):
        """Test argument validation."""
        evaluator = FoldEvaluator(random_points)
        with pytest.raises(ConfigError):
            evaluator.autocorrelation_range(variables=["missing"])
        with pytest.raises(ConfigError):
            evaluator.autocorrelation_range(model_type="cubic")
        with pytest.raises(ConfigError):
            evaluator.autocorrelation_range(threshold=1.0)
        with pytest.raises(ConfigError):
            evaluator.autocorrelation_range(threshold=0.0, model_type="gaussian")

    def test_suggest_size(self):
        """Test the median of the estimated ranges."""
        estimates = [
            AutocorrelationEstimate(source=name, effective_range=r, method="variogram")
            for name, r in [("a", 10.0), ("b", 30.0), ("c", 20.0)]
        ]
        assert FoldEvaluator.suggest_size(estimates) == 20.0
        with pytest.raises(ValueError):
            FoldEvaluator.suggest_size([])
