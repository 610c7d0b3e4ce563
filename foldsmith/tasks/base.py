"""Shared pieces of the partitioning strategies."""

import logging
import warnings
from dataclasses import fields
from typing import Any, ClassVar, Optional

import numpy as np

from foldsmith.objects.partition import Fold
from foldsmith.objects.pointset import PointSet
from foldsmith.utils.errors import (
    EmptyInputError,
    PartitionDegenerate,
    PointsExcludedWarning,
)

logger = logging.getLogger(__name__)


class PartitionStrategy:
    """Base class of the partitioning strategies.

    Subclasses are frozen dataclasses holding their configuration; they validate
    it in ``__post_init__`` and implement :meth:`partition`.
    """

    name: ClassVar[str] = ""
    # Fields that are runtime controls rather than partitioning parameters.
    _runtime_fields: ClassVar[tuple[str, ...]] = ()

    def params(self) -> dict[str, Any]:
        """Configuration as a plain dict (runtime controls left out)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in self._runtime_fields
        }

    def partition(self, points: PointSet, **kwargs: Any):
        raise NotImplementedError


def check_points(points: PointSet, minimum: int = 1) -> None:
    """Raise EmptyInputError when ``points`` has fewer than ``minimum`` points."""
    if not isinstance(points, PointSet):
        raise TypeError(f"points must be a PointSet, got {type(points).__name__}")
    if len(points) < minimum:
        raise EmptyInputError(
            f"Need at least {minimum} point(s) to partition, got {len(points)}",
            suggestion="Check that the PointSet was loaded correctly.",
        )


def resolve_seed(seed: Optional[int]) -> int:
    """Return ``seed`` or draw a fresh one so it can be recorded."""
    if seed is not None:
        return int(seed)
    return int(np.random.SeedSequence().entropy % (2**32))


def balance_score(sizes: np.ndarray) -> float:
    """Coefficient of variation of fold sizes (0 = perfectly balanced)."""
    sizes = np.asarray(sizes, dtype=np.float64)
    mean = sizes.mean()
    if mean == 0:
        return float("inf")
    return float(sizes.std() / mean)


def make_fold(
    index: int,
    train: np.ndarray,
    test: np.ndarray,
    n_available: int,
    min_train_fraction: Optional[float] = None,
) -> Fold:
    """Build a Fold and flag it degenerate when its train set is too small.

    Args:
        index: Fold index.
        train: Training ids.
        test: Testing ids.
        n_available: Number of partitioned points (excluded points not counted).
        min_train_fraction: Minimum share of non-test points kept for training.
    """
    n_candidates = n_available - len(test)
    fraction = len(train) / n_candidates if n_candidates > 0 else 0.0
    degenerate = len(train) == 0 or len(test) == 0
    if min_train_fraction is not None and fraction < min_train_fraction:
        degenerate = True
    return Fold(
        index=index,
        train=train,
        test=test,
        degenerate=degenerate,
        train_fraction=float(fraction),
    )


def warn_degenerate(strategy: str, folds: list[Fold]) -> None:
    """Emit one PartitionDegenerate warning summarising flagged folds."""
    flagged = [fold.index for fold in folds if fold.degenerate]
    if not flagged:
        return
    message = (
        f"{strategy}: {len(flagged)} of {len(folds)} folds are degenerate "
        f"(first: {flagged[:10]})"
    )
    logger.warning(message)
    warnings.warn(message, PartitionDegenerate, stacklevel=3)


def warn_excluded(strategy: str, excluded: np.ndarray, reason: str) -> None:
    """Emit a PointsExcludedWarning for points left out of every fold."""
    if len(excluded) == 0:
        return
    message = (
        f"{strategy}: {len(excluded)} point(s) {reason} and were left out "
        f"(first ids: {np.asarray(excluded)[:10].tolist()})"
    )
    logger.warning(message)
    warnings.warn(message, PointsExcludedWarning, stacklevel=3)
