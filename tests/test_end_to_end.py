"""Integration tests for complete fold generation workflows.

Tests end-to-end workflows combining objects, partitioners, diagnostics and
file I/O.
"""

import numpy as np
import pandas as pd
import pytest
import yaml
from sklearn.linear_model import LinearRegression
from sklearn.model_selection import cross_val_score

pytestmark = pytest.mark.integration

from foldsmith import FoldEvaluator, PointSet, SpatialFoldSplitter
from foldsmith.tasks.partitiontask import make_strategy
from foldsmith.workflows import load_partition, run_partition_config, save_partition


@pytest.fixture
def survey():
    """Synthetic field survey with a spatial trend in the response."""
    rng = np.random.default_rng(3)
    n = 150
    x = rng.uniform(0, 1000, n)
    y = rng.uniform(0, 1000, n)
    elevation = 200 + 0.1 * x + rng.normal(0, 5, n)
    rainfall = 800 - 0.2 * y + rng.normal(0, 10, n)
    target = 0.5 * elevation + 0.1 * rainfall + np.sin(x / 150) * 10
    return pd.DataFrame(
        {"x": x, "y": y, "elevation": elevation, "rainfall": rainfall, "target": target}
    )


class TestBlockCrossValidationWorkflow:
    """Integration test from a table of observations to CV scores."""

    def test_complete_workflow(self, survey, tmp_path):
        """Test config, partition, diagnostics, persistence and model scoring."""
        # Step 1: Points from a DataFrame
        points = PointSet.from_dataframe(
            survey, features=["elevation", "rainfall"], crs="EPSG:32633"
        )
        assert len(points) == len(survey)

        # Step 2: Choose a block size from the autocorrelation range
        evaluator = FoldEvaluator(points)
        estimates = evaluator.autocorrelation_range(seed=0)
        size = max(FoldEvaluator.suggest_size(estimates), 100.0)

        # Step 3: Partition from a YAML config
        config_path = tmp_path / "folds.yaml"
        config_path.write_text(
            yaml.safe_dump(
                {"strategy": "block", "params": {"k": 4, "size": min(size, 250.0), "seed": 1}}
            )
        )
        result = run_partition_config(config_path, points)
        assert result.n_folds == 4
        assert sorted(np.concatenate([f.test for f in result]).tolist()) == list(range(150))

        # Step 4: Diagnostics
        similarity = evaluator.fold_similarity(result)
        assert 0.0 <= similarity.aggregate <= 1.0

        # Step 5: Save, reload and score a model with the reloaded folds
        path = save_partition(result, tmp_path / "folds.json")
        reloaded = load_partition(path)
        X = survey[["elevation", "rainfall"]].to_numpy()
        scores = cross_val_score(
            LinearRegression(), X, survey["target"].to_numpy(), cv=SpatialFoldSplitter(result=reloaded)
        )
        assert len(scores) == 4


class TestLeaveOneOutWorkflows:
    """Integration tests for the leave-one-out strategies."""

    def test_buffer_then_nndm(self, survey):
        """Test that NNDM removes no more neighbours than a wide buffer."""
        points = PointSet.from_dataframe(survey)
        buffered = make_strategy("buffer", radius=150.0).partition(points)
        nndm = make_strategy(
            "distribution_match", num_sample=500, seed=0, max_iterations=100
        ).partition(points, domain=(0.0, 0.0, 1000.0, 1000.0))

        assert buffered.n_folds == nndm.n_folds == len(points)
        mean_nndm_train = np.mean([f.n_train for f in nndm])
        assert mean_nndm_train >= 0.5 * (len(points) - 1)
        assert nndm.extras["ks_history"][-1] <= nndm.extras["ks_history"][0]
        for fold in buffered:
            assert fold.index not in fold.train
