"""Diagnostics for spatial cross-validation folds.

Compares covariate distributions between the train and test sets of each fold
and estimates the range of spatial autocorrelation, which helps choose a
block size or buffer radius.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import ks_2samp

from foldsmith.objects.autocorrelation import AutocorrelationEstimate
from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.primitives.crs import check_same_crs
from foldsmith.primitives.distribution import overlap_coefficient
from foldsmith.primitives.sampling import subsample_indices
from foldsmith.primitives.variogram import (
    VARIOGRAM_MODELS,
    compute_experimental_variogram,
    effective_range,
    fit_variogram_model,
)
from foldsmith.utils.errors import (
    ConfigError,
    EmptyInputError,
    check_choice,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

SIMILARITY_METHODS = ("ks", "overlap")


@dataclass
class FoldSimilarity:
    """Train/test covariate similarity of a partition.

    Scores lie in [0, 1]; 1 means train and test covariates are identically
    distributed. Folds with an empty train or test set score NaN.

    Attributes:
        method: 'ks' (1 - two-sample KS distance) or 'overlap' (histogram
            overlap coefficient).
        table: One row per (fold, feature) with columns fold, feature, score.
        fold_scores: Mean score per fold.
        aggregate: Mean of the fold scores.
    """

    method: str
    table: pd.DataFrame
    fold_scores: pd.Series
    aggregate: float

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"FoldSimilarity(method={self.method}, n_folds={len(self.fold_scores)}, "
            f"aggregate={self.aggregate:.4f})"
        )


def _similarity(train: np.ndarray, test: np.ndarray, method: str, n_bins: int) -> float:
    train = train[np.isfinite(train)]
    test = test[np.isfinite(test)]
    if len(train) == 0 or len(test) == 0:
        return float("nan")
    if method == "ks":
        return float(1.0 - ks_2samp(train, test).statistic)
    return overlap_coefficient(train, test, n_bins=n_bins)


class FoldEvaluator:
    """Read-only diagnostics over points and an optional covariate raster.

    Example:
        >>> from foldsmith.tasks import BlockPartitioner, FoldEvaluator
        >>>
        >>> result = BlockPartitioner(k=4, rows_cols=(2, 2), seed=1).partition(points)
        >>> evaluator = FoldEvaluator(points, raster=raster)
        >>> evaluator.fold_similarity(result).aggregate
        >>> ranges = evaluator.autocorrelation_range(seed=0)
        >>> FoldEvaluator.suggest_size(ranges)
    """

    def __init__(self, points: PointSet, raster: Optional[RasterGrid] = None) -> None:
        """Initialize the evaluator.

        Args:
            points: Points the partitions refer to.
            raster: Optional covariate raster; when given, covariates are read
                from it instead of the point features.

        Raises:
            CRSMismatchError: If points and raster use different CRS.
        """
        if raster is not None:
            check_same_crs(points.crs, raster.crs, "points and raster")
        self.points = points
        self.raster = raster

    def _point_covariates(self) -> tuple[np.ndarray, list[str]]:
        if self.raster is not None:
            return self.raster.sample(self.points.coordinates), list(self.raster.band_names)
        if not self.points.has_features:
            raise EmptyInputError(
                "No covariates to compare: points have no features and no raster "
                "was given",
                suggestion="Pass a PointSet with features or a RasterGrid.",
            )
        return np.asarray(self.points.features), list(self.points.feature_names)

    def fold_similarity(
        self, result: PartitionResult, method: str = "ks", n_bins: int = 20
    ) -> FoldSimilarity:
        """Compare train and test covariate distributions per fold.

        Args:
            result: Partition of the evaluator's points.
            method: 'ks' or 'overlap'.
            n_bins: Histogram bins for 'overlap'.

        Returns:
            FoldSimilarity with per-fold and aggregate scores.

        Raises:
            ConfigError: If ``method`` is unknown.
            ValueError: If ``result`` was built for a different number of points.
        """
        check_choice("method", method, SIMILARITY_METHODS)
        if n_bins < 1:
            raise_parameter_error("n_bins", n_bins, constraint="n_bins >= 1")
        if result.n_points != len(self.points):
            raise ValueError(
                f"PartitionResult covers {result.n_points} points, "
                f"evaluator has {len(self.points)}"
            )

        covariates, names = self._point_covariates()
        rows = []
        for fold in result:
            for column, name in enumerate(names):
                values = covariates[:, column]
                rows.append(
                    {
                        "fold": fold.index,
                        "feature": name,
                        "score": _similarity(
                            values[fold.train], values[fold.test], method, n_bins
                        ),
                    }
                )
        table = pd.DataFrame(rows, columns=["fold", "feature", "score"])
        table["score"] = table["score"].astype(float)

        fold_scores = table.groupby("fold", sort=True)["score"].mean()
        aggregate = float(fold_scores.mean()) if fold_scores.notna().any() else float("nan")
        logger.info(
            f"Fold similarity ({method}) over {result.n_folds} folds: {aggregate:.4f}"
        )
        return FoldSimilarity(
            method=method, table=table, fold_scores=fold_scores, aggregate=aggregate
        )

    def autocorrelation_range(
        self,
        variables: Optional[Sequence[str]] = None,
        num_sample: int = 5000,
        threshold: float = 0.05,
        model_type: str = "spherical",
        n_lags: int = 15,
        seed: Optional[int] = None,
    ) -> list[AutocorrelationEstimate]:
        """Estimate the effective autocorrelation range of covariates.

        Samples locations (raster cells when a raster is set, otherwise the
        points), fits a variogram model per variable and reports the distance at
        which the remaining correlation falls to ``threshold``.

        Args:
            variables: Band/feature names to analyse (default: all).
            num_sample: Maximum number of locations used.
            threshold: Remaining correlation defining the range, in [0, 1).
                Zero is only reachable with the spherical model.
            model_type: 'spherical', 'exponential' or 'gaussian'.
            n_lags: Number of variogram lag bins.
            seed: Seed of the location subsample.

        Returns:
            One AutocorrelationEstimate per variable.

        Raises:
            ConfigError: If a parameter or variable name is invalid.
            EmptyInputError: If there are no covariates.
        """
        check_choice("model_type", model_type, tuple(VARIOGRAM_MODELS))
        if not 0.0 <= threshold < 1.0:
            raise_parameter_error("threshold", threshold, constraint="0 <= threshold < 1")
        if threshold == 0.0 and model_type != "spherical":
            raise ConfigError(
                f"The {model_type} model never reaches zero correlation",
                suggestion="Use a positive threshold or model_type='spherical'.",
            )
        if num_sample < 1:
            raise_parameter_error("num_sample", num_sample, constraint="num_sample >= 1")

        if self.raster is not None:
            coordinates = self.raster.cell_centers(valid_only=True)
            values = self.raster.cell_values(valid_only=True)
            names = list(self.raster.band_names)
        else:
            values, names = self._point_covariates()
            coordinates = np.asarray(self.points.coordinates)

        selected = list(names) if variables is None else list(variables)
        unknown = [v for v in selected if v not in names]
        if unknown:
            raise ConfigError(
                f"Unknown variables {unknown}. Available: {names}",
                details={"unknown": unknown},
            )

        keep = subsample_indices(len(coordinates), num_sample, seed)
        coordinates, values = coordinates[keep], values[keep]

        estimates = []
        for name in selected:
            column = values[:, names.index(name)]
            finite = np.isfinite(column)
            lags, gamma, _ = compute_experimental_variogram(
                coordinates[finite], column[finite], n_lags=n_lags
            )
            model = fit_variogram_model(lags, gamma, model_type=model_type)
            distance = effective_range(model, threshold=threshold)
            logger.debug(f"{name}: {model}, effective range {distance:.4f}")
            estimates.append(
                AutocorrelationEstimate(
                    source=name,
                    effective_range=distance,
                    method=f"variogram:{model_type}",
                    nugget=model.nugget,
                    sill=model.sill,
                    range_param=model.range_param,
                    r_squared=model.r_squared,
                    n_samples=int(finite.sum()),
                )
            )
        return estimates

    @staticmethod
    def suggest_size(estimates: Sequence[AutocorrelationEstimate]) -> float:
        """Median effective range, a starting point for block size or buffer radius."""
        if len(estimates) == 0:
            raise ValueError("Need at least one AutocorrelationEstimate")
        return float(np.median([e.effective_range for e in estimates]))
