"""Spatial block cross-validation.

Overlays a square or hexagonal grid on the study extent and assigns whole
blocks to folds, so nearby points share a fold.
"""

import logging
import multiprocessing as mp
import time
import warnings
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from foldsmith.objects.grid import GRID_SHAPES, Grid
from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.primitives.tessellation import build_grid, locate_blocks
from foldsmith.tasks.base import (
    PartitionStrategy,
    balance_score,
    check_points,
    make_fold,
    resolve_seed,
    warn_excluded,
)
from foldsmith.utils.errors import (
    ConfigError,
    SearchNotConverged,
    check_choice,
    check_int,
    check_real,
    is_integer,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

BLOCK_SELECTIONS = ("random", "systematic", "checkerboard")


def systematic_assignment(n_blocks: int, k: int) -> np.ndarray:
    """Fold per block: rank in row-major order modulo k."""
    return np.arange(n_blocks) % k


def checkerboard_assignment(grid: Grid, block_ids: np.ndarray, k: int) -> np.ndarray:
    """Fold per block from the two-coloring ``(row + col) mod 2``.

    Blocks of color c, taken in row-major order, cycle through folds
    ``c, c + 2, c + 4, ...`` so neighbouring blocks never share a fold.
    """
    rows, cols = grid.row_col(block_ids)
    colors = (rows + cols) % 2
    folds = np.empty(len(block_ids), dtype=np.int64)
    for color in (0, 1):
        members = np.flatnonzero(colors == color)
        targets = np.arange(color, k, 2)
        folds[members] = targets[np.arange(len(members)) % len(targets)]
    return folds


def random_trial(
    block_rank: np.ndarray, n_blocks: int, k: int, seed: int, trial: int
) -> tuple[float, int, np.ndarray]:
    """Score one random assignment of blocks to folds.

    Blocks receive a random permutation of ``0..k-1, 0..k-1, ...``. The RNG is
    seeded by ``(seed, trial)`` so a trial gives the same result wherever it
    runs.

    Returns:
        Tuple of (balance score, trial index, fold per block).
    """
    rng = np.random.default_rng([seed, trial])
    block_folds = rng.permutation(np.arange(n_blocks) % k)
    sizes = np.bincount(block_folds[block_rank], minlength=k)
    return balance_score(sizes), trial, block_folds


@dataclass(frozen=True)
class BlockPartitioner(PartitionStrategy):
    """Assign grid blocks to k folds.

    Example:
        >>> import numpy as np
        >>> from foldsmith.objects import PointSet
        >>> from foldsmith.tasks.blockpartition import BlockPartitioner
        >>>
        >>> xx, yy = np.meshgrid(np.arange(10), np.arange(10))
        >>> points = PointSet(np.column_stack([xx.ravel(), yy.ravel()]))
        >>> result = BlockPartitioner(
        ...     k=10, rows_cols=(2, 5), selection="systematic"
        ... ).partition(points)
        >>> [fold.n_test for fold in result]
        [10, 10, 10, 10, 10, 10, 10, 10, 10, 10]

    Attributes:
        k: Number of folds (>= 2).
        cell_size: Block size in coordinate units (exclusive with rows_cols).
        rows_cols: Grid dimensions as (rows, cols) (exclusive with cell_size).
        shape: 'square' or 'hexagon'.
        selection: 'random', 'systematic' or 'checkerboard'.
        iterations: Number of random assignments tried (random only).
        seed: Base seed of the random search.
        extent: Optional (xmin, ymin, xmax, ymax) to tessellate instead of the
            points' bounds; points outside it are left out.
        tolerance: Balance score the random search must reach to count as
            converged.
        timeout: Seconds after which the random search stops early.
        n_jobs: Worker processes for random trials.
    """

    k: int = 5
    cell_size: Optional[float] = None
    rows_cols: Optional[tuple[int, int]] = None
    shape: str = "square"
    selection: str = "random"
    iterations: int = 100
    seed: Optional[int] = None
    extent: Optional[tuple[float, float, float, float]] = None
    tolerance: Optional[float] = None
    timeout: Optional[float] = None
    n_jobs: int = 1

    name = "block"
    _runtime_fields = ("timeout", "n_jobs")

    def __post_init__(self) -> None:
        """Validate BlockPartitioner parameters."""
        check_int("k", self.k, 2)
        if (self.cell_size is None) == (self.rows_cols is None):
            raise ConfigError(
                "Exactly one of cell_size and rows_cols must be given",
                suggestion="Pass cell_size=<distance> or rows_cols=(rows, cols).",
            )
        if self.cell_size is not None:
            check_real("cell_size", self.cell_size, 0.0, inclusive=False)
        if self.rows_cols is not None:
            try:
                rows_cols = tuple(self.rows_cols)
            except TypeError:
                rows_cols = ()
            if len(rows_cols) != 2 or not all(
                is_integer(v) and v >= 1 for v in rows_cols
            ):
                raise_parameter_error(
                    "rows_cols", self.rows_cols, constraint="two positive integers"
                )
            object.__setattr__(self, "rows_cols", tuple(int(v) for v in rows_cols))
        check_choice("shape", self.shape, GRID_SHAPES)
        check_choice("selection", self.selection, BLOCK_SELECTIONS)
        check_int("iterations", self.iterations, 1)
        check_int("n_jobs", self.n_jobs, 1)
        if self.seed is not None:
            check_int("seed", self.seed, 0)
        if self.tolerance is not None:
            check_real("tolerance", self.tolerance, 0.0)
        if self.timeout is not None:
            check_real("timeout", self.timeout, 0.0, inclusive=False)

    def _search(
        self, block_rank: np.ndarray, n_blocks: int, seed: int
    ) -> tuple[float, int, np.ndarray, int, bool]:
        """Run the random trials; returns (score, trial, folds, n_run, timed_out)."""
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        best: Optional[tuple[float, int, np.ndarray]] = None
        n_run = 0
        timed_out = False

        def consider(outcome: tuple[float, int, np.ndarray]) -> None:
            nonlocal best
            # Strictly lower wins, so the earliest trial keeps ties.
            if best is None or outcome[0] < best[0]:
                best = outcome

        if self.n_jobs == 1:
            for trial in range(self.iterations):
                if deadline is not None and trial > 0 and time.monotonic() > deadline:
                    timed_out = True
                    break
                outcome = random_trial(block_rank, n_blocks, self.k, seed, trial)
                logger.debug(f"Trial {trial}: balance score {outcome[0]:.4f}")
                consider(outcome)
                n_run += 1
        else:
            batch_size = self.n_jobs * 4
            with mp.Pool(self.n_jobs) as pool:
                for start in range(0, self.iterations, batch_size):
                    if deadline is not None and start > 0 and time.monotonic() > deadline:
                        timed_out = True
                        break
                    trials = range(start, min(start + batch_size, self.iterations))
                    outcomes = pool.starmap(
                        random_trial,
                        [(block_rank, n_blocks, self.k, seed, t) for t in trials],
                    )
                    for outcome in outcomes:
                        consider(outcome)
                    n_run += len(outcomes)

        score, trial, block_folds = best
        return score, trial, block_folds, n_run, timed_out

    def partition(
        self, points: PointSet, raster: Any = None, domain: Any = None
    ) -> PartitionResult:
        """Partition points into k block folds.

        Args:
            points: Points to partition.
            raster: Unused; accepted for a uniform strategy signature.
            domain: Unused; accepted for a uniform strategy signature.

        Returns:
            PartitionResult with k folds.

        Raises:
            EmptyInputError: If ``points`` is empty.
            ConfigError: If a fold ends up without test points.
        """
        check_points(points)
        extent = self.extent if self.extent is not None else points.bounds
        grid = build_grid(extent, self.shape, self.cell_size, self.rows_cols)

        block_of_point = locate_blocks(grid, points.coordinates)
        inside = block_of_point >= 0
        kept_ids = np.flatnonzero(inside)
        excluded = np.flatnonzero(~inside)
        warn_excluded(self.name, excluded, "fall outside the tessellated extent")

        occupied = np.unique(block_of_point[inside])
        if len(occupied) < self.k:
            raise ConfigError(
                f"Only {len(occupied)} occupied blocks for k={self.k} folds; "
                f"some folds would have no test points",
                suggestion="Use smaller blocks or fewer folds.",
                details={"n_blocks": len(occupied), "k": self.k},
            )
        # Rank of each kept point's block in row-major order.
        block_rank = np.searchsorted(occupied, block_of_point[inside])

        seed = None
        n_run = 1
        converged = True
        if self.selection == "systematic":
            block_folds = systematic_assignment(len(occupied), self.k)
        elif self.selection == "checkerboard":
            block_folds = checkerboard_assignment(grid, occupied, self.k)
        else:
            seed = resolve_seed(self.seed)
            score, best_trial, block_folds, n_run, timed_out = self._search(
                block_rank, len(occupied), seed
            )
            logger.debug(f"Best random trial {best_trial} with score {score:.4f}")
            met_tolerance = self.tolerance is None or score <= self.tolerance
            converged = met_tolerance and not timed_out
            if not converged:
                message = (
                    f"Random block search ran {n_run} of {self.iterations} trials; "
                    f"best balance score {score:.4f}"
                    + (f" (tolerance {self.tolerance})" if self.tolerance is not None else "")
                )
                logger.warning(message)
                warnings.warn(message, SearchNotConverged, stacklevel=2)

        point_folds = np.asarray(block_folds)[block_rank]
        sizes = np.bincount(point_folds, minlength=self.k)
        if np.any(sizes == 0):
            raise ConfigError(
                f"Folds {np.flatnonzero(sizes == 0).tolist()} have no test points "
                f"after {self.selection} block assignment",
                suggestion="Use smaller blocks, fewer folds or another selection.",
                details={"fold_sizes": sizes.tolist()},
            )

        folds = [
            make_fold(
                fold,
                train=kept_ids[point_folds != fold],
                test=kept_ids[point_folds == fold],
                n_available=len(kept_ids),
            )
            for fold in range(self.k)
        ]
        score = balance_score(sizes)
        logger.info(
            f"Created {self.k} {self.selection} block folds over {len(occupied)} "
            f"{self.shape} blocks (balance score {score:.4f})"
        )
        return PartitionResult(
            strategy=self.name,
            folds=tuple(folds),
            n_points=len(points),
            params=self.params(),
            score=score,
            seed=seed,
            iterations=n_run,
            converged=converged,
            excluded_ids=excluded,
            extras={
                "grid": {
                    "shape": grid.shape,
                    "n_rows": grid.n_rows,
                    "n_cols": grid.n_cols,
                    "cell_width": grid.cell_width,
                    "cell_height": grid.cell_height,
                    "origin": grid.origin,
                },
                "n_blocks": int(len(occupied)),
                "block_ids": occupied,
                "block_folds": np.asarray(block_folds),
                "fold_sizes": sizes,
            },
        )
