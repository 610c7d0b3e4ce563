"""Nearest-neighbour distance matching leave-one-out (NNDM).

Starts from leave-one-out and greedily removes close training neighbours of
test points until the distribution of test-to-train nearest-neighbour
distances resembles the distribution of prediction-to-training distances over
the modelling domain.
"""

import logging
import multiprocessing as mp
import threading
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.primitives.crs import check_same_crs
from foldsmith.primitives.distribution import ks_statistic
from foldsmith.primitives.sampling import SAMPLING_METHODS, sample_locations
from foldsmith.primitives.spatial_index import SpatialIndex
from foldsmith.tasks.base import (
    PartitionStrategy,
    check_points,
    make_fold,
    resolve_seed,
    warn_degenerate,
)
from foldsmith.utils.errors import (
    SearchNotConverged,
    check_choice,
    check_fraction,
    check_int,
    check_real,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

# Candidates scored per vectorized block.
_CHUNK = 256
# Smallest KS decrease accepted as an improvement.
_MIN_IMPROVEMENT = 1e-12


def candidate_ks(
    support: np.ndarray,
    diff: np.ndarray,
    old: np.ndarray,
    new: np.ndarray,
    n: int,
) -> np.ndarray:
    """KS distance after replacing one value of the current sample.

    Replacing ``old`` by a larger ``new`` lowers the sample ECDF by ``1/n`` on
    ``[old, new)``, so the new signed difference is ``diff + 1/n`` there.

    Args:
        support: Sorted evaluation points containing every jump of both ECDFs,
            including the ``new`` values.
        diff: ``F_reference - F_sample`` evaluated at ``support``.
        old: Current value per candidate.
        new: Replacement value per candidate.
        n: Size of the sample.

    Returns:
        KS distance per candidate.
    """
    lo = np.searchsorted(support, old, side="left")
    hi = np.searchsorted(support, new, side="left")
    positions = np.arange(len(support))
    window = (positions >= lo[:, None]) & (positions < hi[:, None])
    return np.max(np.abs(diff[None, :] + window / n), axis=1)


class _NeighbourTable:
    """Per-point neighbours sorted by (distance, id), cut just beyond ``phi``.

    ``should_stop`` is polled once per point. After it first returns a reason
    the remaining points keep only their nearest neighbours, which is enough
    for plain leave-one-out, and ``stop_reason`` records why.
    """

    def __init__(
        self,
        index: SpatialIndex,
        phi: float,
        should_stop: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        n = len(index)
        self.ids: list[np.ndarray] = []
        self.distances: list[np.ndarray] = []
        self.stop_reason: Optional[str] = None
        for point_id in range(n):
            if self.stop_reason is None and should_stop is not None:
                self.stop_reason = should_stop()
            if self.stop_reason is not None:
                ids, dists = index.nearest(point_id, k=1)
            else:
                ids, dists = index.within_radius(point_id, phi)
                if len(ids) < n - 1:
                    # First neighbour past phi: the distance reached once every
                    # closer neighbour has been removed.
                    ids, dists = index.nearest(point_id, k=len(ids) + 1)
            self.ids.append(ids)
            self.distances.append(dists)


@dataclass(frozen=True)
class DistributionMatchPartitioner(PartitionStrategy):
    """Leave-one-out folds tuned so CV distances mimic prediction distances.

    Attributes:
        num_sample: Number of prediction locations drawn over the domain.
        sampling: 'random' or 'regular' placement of prediction locations.
        min_train_fraction: No fold may keep a smaller share of the other
            points for training.
        max_iterations: Maximum number of accepted moves.
        tolerance: KS distance below which the search stops as converged.
        seed: Seed of the prediction-location sampling.
        timeout: Seconds after which the search returns its best result. The
            clock starts when partition is called; building the neighbour
            table checks it, sampling prediction locations does not.
        cancel: Event that stops the search when set.
        n_jobs: Worker processes used to score candidate moves.
    """

    num_sample: int = 1000
    sampling: str = "random"
    min_train_fraction: float = 0.5
    max_iterations: int = 1000
    tolerance: float = 0.05
    seed: Optional[int] = None
    timeout: Optional[float] = None
    cancel: Optional[threading.Event] = field(default=None, compare=False)
    n_jobs: int = 1

    name = "nndm"
    _runtime_fields = ("timeout", "cancel", "n_jobs")

    def __post_init__(self) -> None:
        """Validate DistributionMatchPartitioner parameters."""
        check_int("num_sample", self.num_sample, 1)
        check_choice("sampling", self.sampling, SAMPLING_METHODS)
        check_fraction("min_train_fraction", self.min_train_fraction)
        check_int("max_iterations", self.max_iterations, 1)
        check_real("tolerance", self.tolerance, 0.0)
        if self.tolerance > 1.0:
            raise_parameter_error("tolerance", self.tolerance, constraint="0 <= tolerance <= 1")
        if self.seed is not None:
            check_int("seed", self.seed, 0)
        if self.timeout is not None:
            check_real("timeout", self.timeout, 0.0, inclusive=False)
        check_int("n_jobs", self.n_jobs, 1)

    def _reference_distances(
        self,
        points: PointSet,
        index: SpatialIndex,
        raster: Optional[RasterGrid],
        domain: Any,
        seed: int,
    ) -> np.ndarray:
        """Sorted distances from sampled prediction locations to the points."""
        if domain is None:
            domain = raster if raster is not None else points.bounds
        if isinstance(domain, RasterGrid):
            check_same_crs(points.crs, domain.crs, "points and domain raster")
        locations = sample_locations(domain, self.num_sample, self.sampling, seed)
        distances, _ = index.nearest_distance(locations)
        return np.sort(distances)

    def _score(
        self,
        pool: Optional[Any],
        support: np.ndarray,
        diff: np.ndarray,
        old: np.ndarray,
        new: np.ndarray,
        n: int,
    ) -> np.ndarray:
        chunks = [
            (support, diff, old[start : start + _CHUNK], new[start : start + _CHUNK], n)
            for start in range(0, len(old), _CHUNK)
        ]
        if pool is None or len(chunks) == 1:
            scores = [candidate_ks(*chunk) for chunk in chunks]
        else:
            scores = pool.starmap(candidate_ks, chunks)
        return np.concatenate(scores)

    def _should_stop(self, deadline: Optional[float]) -> Optional[str]:
        if self.cancel is not None and self.cancel.is_set():
            return "cancelled"
        if deadline is not None and time.monotonic() > deadline:
            return "timeout"
        return None

    def partition(
        self,
        points: PointSet,
        raster: Optional[RasterGrid] = None,
        domain: Any = None,
        index: Optional[SpatialIndex] = None,
    ) -> PartitionResult:
        """Run the NNDM search.

        Args:
            points: Points to partition (at least two).
            raster: Used as sampling domain when ``domain`` is not given.
            domain: (xmin, ymin, xmax, ymax), shapely polygon or RasterGrid
                over which prediction locations are drawn. Defaults to the
                points' bounding box.
            index: Prebuilt SpatialIndex over ``points`` to reuse.

        Returns:
            PartitionResult with one fold per point. ``score`` is the achieved
            KS distance and ``extras['ks_history']`` its value after each
            accepted move.

        Raises:
            EmptyInputError: If ``points`` has fewer than two points.
            CRSMismatchError: If a raster domain uses a different CRS.
        """
        check_points(points, minimum=2)
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        n = len(points)
        if self.num_sample < n:
            logger.warning(
                f"num_sample ({self.num_sample}) is smaller than the number of "
                f"points ({n}); the reference distribution may be coarse"
            )
        seed = resolve_seed(self.seed)
        index = index if index is not None else SpatialIndex(points)

        reference = self._reference_distances(points, index, raster, domain, seed)
        phi = float(reference[-1])
        table = _NeighbourTable(index, phi, lambda: self._should_stop(deadline))

        removed = np.zeros(n, dtype=np.int64)
        current = np.array([d[0] for d in table.distances], dtype=np.float64)
        ks = ks_statistic(reference, np.sort(current), assume_sorted=True)
        history = [ks]
        stop_reason = "tolerance" if ks < self.tolerance else table.stop_reason
        logger.debug(f"Initial leave-one-out KS distance {ks:.4f} (phi={phi:.4f})")

        pool = mp.Pool(self.n_jobs) if self.n_jobs > 1 else None
        try:
            iteration = 0
            while stop_reason is None:
                if iteration >= self.max_iterations:
                    stop_reason = "max_iterations"
                    break
                stop_reason = self._should_stop(deadline)
                if stop_reason is not None:
                    break

                candidates, olds, news, next_removed = [], [], [], []
                for fold in np.flatnonzero(current < phi):
                    dists = table.distances[fold]
                    after = int(np.searchsorted(dists, current[fold], side="right"))
                    if (n - 1 - after) / (n - 1) < self.min_train_fraction:
                        continue
                    candidates.append(fold)
                    olds.append(current[fold])
                    news.append(dists[after])
                    next_removed.append(after)
                if not candidates:
                    stop_reason = "no_candidates"
                    break

                olds_arr = np.asarray(olds)
                news_arr = np.asarray(news)
                support = np.unique(np.concatenate([reference, current, news_arr]))
                diff = (
                    np.searchsorted(reference, support, side="right") / len(reference)
                    - np.searchsorted(np.sort(current), support, side="right") / n
                )
                scores = self._score(pool, support, diff, olds_arr, news_arr, n)
                best = int(np.argmin(scores))
                if not scores[best] < ks - _MIN_IMPROVEMENT:
                    stop_reason = "no_improvement"
                    break

                fold = candidates[best]
                removed[fold] = next_removed[best]
                current[fold] = news_arr[best]
                ks = ks_statistic(reference, np.sort(current), assume_sorted=True)
                history.append(ks)
                iteration += 1
                logger.debug(
                    f"Iteration {iteration}: fold {fold} drops {removed[fold]} "
                    f"neighbour(s), KS distance {ks:.4f}"
                )
                if ks < self.tolerance:
                    stop_reason = "tolerance"
        finally:
            if pool is not None:
                pool.close()
                pool.join()

        converged = ks < self.tolerance
        if not converged:
            message = (
                f"NNDM search stopped ({stop_reason}) after {len(history) - 1} "
                f"moves with KS distance {ks:.4f} >= tolerance {self.tolerance}"
            )
            logger.warning(message)
            warnings.warn(message, SearchNotConverged, stacklevel=2)

        ids = points.ids
        folds = []
        for point_id in range(n):
            keep = np.ones(n, dtype=bool)
            keep[point_id] = False
            keep[table.ids[point_id][: removed[point_id]]] = False
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

        logger.info(
            f"Created {n} NNDM folds in {len(history) - 1} moves "
            f"(KS distance {history[0]:.4f} -> {ks:.4f}, {stop_reason})"
        )
        return PartitionResult(
            strategy=self.name,
            folds=tuple(folds),
            n_points=n,
            params=self.params(),
            score=float(ks),
            seed=seed,
            iterations=len(history) - 1,
            converged=converged,
            extras={
                "ks_history": history,
                "reference_distances": reference,
                "achieved_distances": current,
                "n_removed": removed,
                "phi": phi,
                "stop_reason": stop_reason,
            },
        )
