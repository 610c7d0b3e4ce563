"""scikit-learn adapter for spatial folds.

Layer 3: Tasks - User intent translation.

Lets a PartitionResult (or a strategy plus the points to partition) be passed
as ``cv=`` to ``cross_val_score``, ``GridSearchCV`` and friends.
"""

import logging
from typing import Any, Iterator, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import BaseCrossValidator

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.tasks.base import PartitionStrategy
from foldsmith.tasks.partitiontask import partition

logger = logging.getLogger(__name__)


class SpatialFoldSplitter(BaseCrossValidator):
    """Cross-validator yielding precomputed spatial folds.

    Row i of the data passed to ``split`` must be point i of the PointSet.

    Example:
        >>> from sklearn.ensemble import RandomForestRegressor
        >>> from sklearn.model_selection import cross_val_score
        >>> from foldsmith.tasks import BlockPartitioner, SpatialFoldSplitter
        >>>
        >>> cv = SpatialFoldSplitter(
        ...     strategy=BlockPartitioner(k=5, cell_size=1000.0, seed=0), points=points
        ... )
        >>> scores = cross_val_score(RandomForestRegressor(), X, y, cv=cv)
    """

    def __init__(
        self,
        result: Optional[PartitionResult] = None,
        strategy: Optional[PartitionStrategy] = None,
        points: Optional[PointSet] = None,
        raster: Optional[RasterGrid] = None,
        domain: Any = None,
        skip_degenerate: bool = False,
    ) -> None:
        """Initialize the splitter.

        Args:
            result: Precomputed partition.
            strategy: Strategy run on ``points`` when ``result`` is not given.
            points: Points partitioned by ``strategy``.
            raster: Optional covariate raster passed to the strategy.
            domain: Optional prediction domain passed to the strategy.
            skip_degenerate: Leave out folds flagged degenerate.
        """
        if result is None and (strategy is None or points is None):
            raise ValueError("Provide either result or both strategy and points")
        if result is not None and strategy is not None:
            raise ValueError("Provide either result or strategy, not both")
        self.result = result
        self.strategy = strategy
        self.points = points
        self.raster = raster
        self.domain = domain
        self.skip_degenerate = skip_degenerate
        self._partition: Optional[PartitionResult] = result

    @property
    def partition_(self) -> PartitionResult:
        """The partition being served, computed on first use."""
        if self._partition is None:
            self._partition = partition(
                self.points, self.strategy, raster=self.raster, domain=self.domain
            )
        return self._partition

    def split(
        self, X: Any = None, y: Any = None, groups: Any = None
    ) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        """Generate (train, test) index arrays per fold.

        Args:
            X: Data with one row per point (only its length is checked).
            y: Ignored.
            groups: Ignored.

        Yields:
            Tuple of (train_indices, test_indices).
        """
        result = self.partition_
        if X is not None and len(X) != result.n_points:
            raise ValueError(
                f"X has {len(X)} rows but the partition covers {result.n_points} points"
            )
        yield from result.split(skip_degenerate=self.skip_degenerate)

    def get_n_splits(self, X: Any = None, y: Any = None, groups: Any = None) -> int:
        """Get number of splits."""
        result = self.partition_
        if not self.skip_degenerate:
            return result.n_folds
        return result.n_folds - len(result.degenerate_folds)

    def get_fold_statistics(self) -> pd.DataFrame:
        """Per-fold train/test sizes of the served partition."""
        summary = self.partition_.summary()
        if self.skip_degenerate:
            summary = summary[~summary["degenerate"]].reset_index(drop=True)
        return summary
