"""Cluster-based cross-validation.

Groups points with k-means, either in geographic space or in covariate
(environmental) space; each cluster becomes the test set of one fold.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from sklearn.cluster import KMeans
from sklearn.preprocessing import StandardScaler

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.primitives.crs import check_same_crs
from foldsmith.primitives.sampling import subsample_indices
from foldsmith.tasks.base import (
    PartitionStrategy,
    balance_score,
    check_points,
    make_fold,
    resolve_seed,
    warn_degenerate,
    warn_excluded,
)
from foldsmith.utils.errors import (
    ConfigError,
    EmptyInputError,
    check_choice,
    check_int,
)

logger = logging.getLogger(__name__)

CLUSTER_SPACES = ("spatial", "environmental")


def appearance_mapping(labels: np.ndarray, n_clusters: int) -> np.ndarray:
    """Map cluster label -> new label numbered by first appearance.

    Clusters that never appear keep their relative order after the ones that do.
    """
    present, first = np.unique(np.asarray(labels, dtype=np.int64), return_index=True)
    order = [int(c) for c in present[np.argsort(first)]]
    seen = set(order)
    order += [c for c in range(n_clusters) if c not in seen]
    mapping = np.empty(n_clusters, dtype=np.int64)
    mapping[order] = np.arange(n_clusters)
    return mapping


@dataclass(frozen=True)
class ClusterPartitioner(PartitionStrategy):
    """k-means folds over coordinates or covariates.

    Example:
        >>> import numpy as np
        >>> from foldsmith.objects import PointSet
        >>> from foldsmith.tasks.clusterpartition import ClusterPartitioner
        >>>
        >>> points = PointSet(np.array([[0, 0], [0, 1], [10, 0], [10, 1]]))
        >>> result = ClusterPartitioner(k=2, space="spatial", seed=0).partition(points)
        >>> [fold.test.tolist() for fold in result]
        [[0, 1], [2, 3]]

    Attributes:
        k: Number of clusters, i.e. folds (>= 2).
        space: 'spatial' clusters coordinates, 'environmental' clusters
            covariates.
        scale: Standardize covariates before clustering. Required for
            'environmental'; coordinates are never rescaled.
        seed: Seed of the k-means initialization.
        n_init: Number of k-means initializations.
        num_sample: Maximum number of raster cells used to fit the clusters
            when a raster is supplied.
    """

    k: int = 5
    space: str = "spatial"
    scale: bool = True
    seed: Optional[int] = None
    n_init: int = 10
    num_sample: int = 10000

    name = "cluster"

    def __post_init__(self) -> None:
        """Validate ClusterPartitioner parameters."""
        check_int("k", self.k, 2)
        check_choice("space", self.space, CLUSTER_SPACES)
        if self.space == "environmental" and not self.scale:
            raise ConfigError(
                "Environmental clustering requires scale=True",
                suggestion="Covariates on different scales would dominate the "
                "distance; leave scale enabled.",
            )
        check_int("n_init", self.n_init, 1)
        check_int("num_sample", self.num_sample, 1)
        if self.seed is not None:
            check_int("seed", self.seed, 0)

    def _check_distinct(self, values: np.ndarray, what: str) -> None:
        n_distinct = len(np.unique(values, axis=0))
        if self.k > n_distinct:
            raise ConfigError(
                f"k={self.k} exceeds the number of distinct {what} ({n_distinct})",
                suggestion="Use fewer folds.",
                details={"k": self.k, "n_distinct": n_distinct},
            )

    def _kmeans(self, seed: int) -> KMeans:
        return KMeans(n_clusters=self.k, random_state=seed, n_init=self.n_init)

    def _cluster_points(
        self, values: np.ndarray, seed: int, scale: bool
    ) -> tuple[np.ndarray, np.ndarray]:
        """Fit k-means on point values; returns (labels, centers)."""
        scaler = StandardScaler() if scale else None
        fitted = scaler.fit_transform(values) if scaler is not None else values
        model = self._kmeans(seed).fit(fitted)
        centers = model.cluster_centers_
        if scaler is not None:
            centers = scaler.inverse_transform(centers)
        return model.labels_, centers

    def _cluster_raster(
        self, raster: RasterGrid, point_values: np.ndarray, seed: int
    ) -> tuple[np.ndarray, np.ndarray]:
        """Fit k-means on raster cells, then label points by nearest centroid."""
        cells = raster.cell_values(valid_only=True)
        if len(cells) == 0:
            raise EmptyInputError("Raster has no cell with a value in every band")
        cells = cells[subsample_indices(len(cells), self.num_sample, seed)]
        self._check_distinct(cells, "raster covariate vectors")
        logger.debug(f"Fitting {self.k} environmental clusters on {len(cells)} raster cells")

        scaler = StandardScaler()
        model = self._kmeans(seed).fit(scaler.fit_transform(cells))
        labels = model.predict(scaler.transform(point_values))
        return labels, scaler.inverse_transform(model.cluster_centers_)

    def partition(
        self,
        points: PointSet,
        raster: Optional[RasterGrid] = None,
        domain: Any = None,
    ) -> PartitionResult:
        """Partition points into k cluster folds.

        Args:
            points: Points to partition.
            raster: Covariate raster for 'environmental' clustering. When
                given, clusters are fit on raster cells and point covariates
                are read from the raster.
            domain: Unused; accepted for a uniform strategy signature.

        Returns:
            PartitionResult with k folds.

        Raises:
            EmptyInputError: If ``points`` is empty or covariates are missing.
            ConfigError: If k exceeds the number of distinct values clustered.
            CRSMismatchError: If points and raster use different CRS.
        """
        check_points(points)
        seed = resolve_seed(self.seed)
        use_raster = self.space == "environmental" and raster is not None

        if self.space == "spatial":
            values = np.asarray(points.coordinates)
            feature_names = ["x", "y"]
        elif use_raster:
            check_same_crs(points.crs, raster.crs, "points and raster")
            values = raster.sample(points.coordinates)
            feature_names = list(raster.band_names)
        else:
            if not points.has_features:
                raise EmptyInputError(
                    "Environmental clustering needs point features or a raster",
                    suggestion="Pass a PointSet with features or a RasterGrid.",
                )
            values = np.asarray(points.features)
            feature_names = list(points.feature_names)

        valid = np.all(np.isfinite(values), axis=1)
        kept_ids = np.flatnonzero(valid)
        excluded = np.flatnonzero(~valid)
        warn_excluded(self.name, excluded, "have missing covariates")
        if len(kept_ids) == 0:
            raise EmptyInputError("No point has a complete covariate vector")
        values = values[valid]

        if use_raster:
            labels, centers = self._cluster_raster(raster, values, seed)
        else:
            self._check_distinct(values, "points" if self.space == "spatial" else "covariate vectors")
            labels, centers = self._cluster_points(
                values, seed, scale=self.scale and self.space == "environmental"
            )

        mapping = appearance_mapping(labels, self.k)
        labels = mapping[labels]
        ordered_centers = np.empty_like(centers)
        ordered_centers[mapping] = centers
        sizes = np.bincount(labels, minlength=self.k)

        folds = [
            make_fold(
                cluster,
                train=kept_ids[labels != cluster],
                test=kept_ids[labels == cluster],
                n_available=len(kept_ids),
            )
            for cluster in range(self.k)
        ]
        warn_degenerate(self.name, folds)

        score = balance_score(sizes)
        logger.info(
            f"Created {self.k} {self.space} cluster folds over {len(kept_ids)} points "
            f"(balance score {score:.4f})"
        )
        return PartitionResult(
            strategy=self.name,
            folds=tuple(folds),
            n_points=len(points),
            params=self.params(),
            score=score,
            seed=seed,
            iterations=1,
            converged=True,
            excluded_ids=excluded,
            extras={
                "feature_names": feature_names,
                "cluster_centers": ordered_centers,
                "fold_sizes": sizes,
            },
        )
