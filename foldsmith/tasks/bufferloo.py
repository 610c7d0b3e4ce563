"""Buffered leave-one-out cross-validation."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.primitives.spatial_index import SpatialIndex
from foldsmith.tasks.base import (
    PartitionStrategy,
    check_points,
    make_fold,
    warn_degenerate,
)
from foldsmith.utils.errors import check_fraction, check_real

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BufferLOOPartitioner(PartitionStrategy):
    """Leave one point out and drop its neighbours within a buffer from training.

    With ``radius=0`` this is classic leave-one-out (only points sharing the
    test point's exact coordinate are dropped).

    Example:
        >>> import numpy as np
        >>> from foldsmith.objects import PointSet
        >>> from foldsmith.tasks.bufferloo import BufferLOOPartitioner
        >>>
        >>> points = PointSet(np.column_stack([np.arange(5.0), np.zeros(5)]))
        >>> result = BufferLOOPartitioner(radius=1.5).partition(points)
        >>> result[2].train.tolist()
        [0, 4]

    Attributes:
        radius: Buffer distance; points at distance <= radius from the test
            point are left out of training.
        min_train_fraction: Folds keeping a smaller share of the other points
            for training are flagged degenerate.
    """

    radius: float = 0.0
    min_train_fraction: float = 0.5

    name = "buffer_loo"

    def __post_init__(self) -> None:
        """Validate BufferLOOPartitioner parameters."""
        check_real("radius", self.radius, 0.0)
        check_fraction("min_train_fraction", self.min_train_fraction)

    def partition(
        self,
        points: PointSet,
        raster: Any = None,
        domain: Any = None,
        index: Optional[SpatialIndex] = None,
    ) -> PartitionResult:
        """Build one buffered fold per point.

        Args:
            points: Points to partition.
            raster: Unused; accepted for a uniform strategy signature.
            domain: Unused; accepted for a uniform strategy signature.
            index: Prebuilt SpatialIndex over ``points`` to reuse.

        Returns:
            PartitionResult with ``len(points)`` folds; fold i tests point i.

        Raises:
            EmptyInputError: If ``points`` is empty.
        """
        check_points(points)
        index = index if index is not None else SpatialIndex(points)
        n = len(points)
        ids = points.ids

        folds = []
        n_buffered = np.zeros(n, dtype=np.int64)
        for point_id in range(n):
            buffered, _ = index.within_radius(point_id, self.radius)
            n_buffered[point_id] = len(buffered)
            keep = np.ones(n, dtype=bool)
            keep[buffered] = False
            keep[point_id] = False
            folds.append(
                make_fold(
                    point_id,
                    train=ids[keep],
                    test=[point_id],
                    n_available=n,
                    min_train_fraction=self.min_train_fraction,
                )
            )
        warn_degenerate(self.name, folds)

        fractions = np.array([fold.train_fraction for fold in folds])
        logger.info(
            f"Created {n} buffered leave-one-out folds (radius {self.radius}, "
            f"mean train fraction {fractions.mean():.3f})"
        )
        return PartitionResult(
            strategy=self.name,
            folds=tuple(folds),
            n_points=n,
            params=self.params(),
            score=None,
            seed=None,
            iterations=n,
            converged=True,
            extras={
                "n_buffered": n_buffered,
                "mean_train_fraction": float(fractions.mean()),
            },
        )
