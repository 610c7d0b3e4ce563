"""Folds and partition results handed to a model training loop."""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import numpy as np
import pandas as pd


def _as_id_array(ids: Any) -> np.ndarray:
    array = np.unique(np.asarray(ids, dtype=np.int64).ravel())
    array.setflags(write=False)
    return array


def _to_builtin(value: Any) -> Any:
    """Convert numpy containers and scalars to JSON-friendly Python objects."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    return value


@dataclass(frozen=True, eq=False)
class Fold:
    """One train/test split.

    Attributes:
        index: Position of the fold in its PartitionResult.
        train: Sorted point ids used for fitting.
        test: Sorted point ids used for evaluation.
        degenerate: True when train or test is empty or the train set is
            smaller than the partitioner's minimum.
        train_fraction: Share of the non-test points kept for training.
    """

    index: int
    train: np.ndarray
    test: np.ndarray
    degenerate: bool = False
    train_fraction: float = 1.0

    def __post_init__(self) -> None:
        """Validate Fold parameters."""
        train = _as_id_array(self.train)
        test = _as_id_array(self.test)
        overlap = np.intersect1d(train, test)
        if len(overlap) > 0:
            raise ValueError(
                f"Fold {self.index}: ids {overlap[:10].tolist()} are in both "
                f"train and test"
            )
        object.__setattr__(self, "train", train)
        object.__setattr__(self, "test", test)
        if len(train) == 0 or len(test) == 0:
            object.__setattr__(self, "degenerate", True)

    @property
    def n_train(self) -> int:
        return len(self.train)

    @property
    def n_test(self) -> int:
        return len(self.test)

    def __repr__(self) -> str:
        """String representation."""
        flag = ", degenerate" if self.degenerate else ""
        return f"Fold({self.index}, n_train={self.n_train}, n_test={self.n_test}{flag})"


@dataclass(frozen=True, eq=False)
class PartitionResult:
    """Ordered folds produced by one partitioning call.

    Attributes:
        strategy: Name of the partitioning strategy.
        folds: The folds, in order.
        n_points: Size of the partitioned PointSet.
        params: Strategy parameters used.
        score: Balance or quality score achieved (strategy specific; lower is
            better), or None.
        seed: Random seed used, or None for deterministic strategies.
        iterations: Number of search iterations/trials performed.
        converged: False when a search ran out of budget before meeting its
            tolerance.
        excluded_ids: Points that belong to no fold at all.
        extras: Strategy specific diagnostics.
    """

    strategy: str
    folds: tuple[Fold, ...]
    n_points: int
    params: dict[str, Any] = field(default_factory=dict)
    score: Optional[float] = None
    seed: Optional[int] = None
    iterations: int = 0
    converged: bool = True
    excluded_ids: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    extras: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate PartitionResult parameters."""
        object.__setattr__(self, "folds", tuple(self.folds))
        object.__setattr__(self, "excluded_ids", _as_id_array(self.excluded_ids))
        object.__setattr__(self, "params", dict(self.params))
        object.__setattr__(self, "extras", dict(self.extras))

    def __len__(self) -> int:
        return len(self.folds)

    def __iter__(self) -> Iterator[Fold]:
        return iter(self.folds)

    def __getitem__(self, index: int) -> Fold:
        return self.folds[index]

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    @property
    def degenerate_folds(self) -> list[int]:
        """Indices of folds flagged degenerate."""
        return [fold.index for fold in self.folds if fold.degenerate]

    def split(self, skip_degenerate: bool = False) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        """Yield (train_ids, test_ids) per fold, scikit-learn style.

        Args:
            skip_degenerate: Leave out folds flagged degenerate.
        """
        for fold in self.folds:
            if skip_degenerate and fold.degenerate:
                continue
            yield np.array(fold.train), np.array(fold.test)

    def fold_ids(self) -> np.ndarray:
        """Fold index of the test set each point belongs to (-1 if none)."""
        labels = np.full(self.n_points, -1, dtype=np.int64)
        for fold in self.folds:
            labels[fold.test] = fold.index
        return labels

    def to_frame(self) -> pd.DataFrame:
        """Long table with one row per (fold, point id, role)."""
        frames = []
        for fold in self.folds:
            for role, ids in (("train", fold.train), ("test", fold.test)):
                frames.append(pd.DataFrame({"fold": fold.index, "id": ids, "role": role}))
        if not frames:
            return pd.DataFrame(columns=["fold", "id", "role"])
        return pd.concat(frames, ignore_index=True)

    def summary(self) -> pd.DataFrame:
        """Per-fold statistics."""
        return pd.DataFrame(
            [
                {
                    "fold": fold.index,
                    "n_train": fold.n_train,
                    "n_test": fold.n_test,
                    "train_fraction": fold.train_fraction,
                    "degenerate": fold.degenerate,
                }
                for fold in self.folds
            ],
            columns=["fold", "n_train", "n_test", "train_fraction", "degenerate"],
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation of the folds and metadata."""
        return {
            "strategy": self.strategy,
            "n_points": self.n_points,
            "params": _to_builtin(self.params),
            "score": _to_builtin(self.score),
            "seed": self.seed,
            "iterations": self.iterations,
            "converged": self.converged,
            "excluded_ids": self.excluded_ids.tolist(),
            "extras": _to_builtin(self.extras),
            "folds": [
                {
                    "index": fold.index,
                    "train": fold.train.tolist(),
                    "test": fold.test.tolist(),
                    "degenerate": fold.degenerate,
                    "train_fraction": fold.train_fraction,
                }
                for fold in self.folds
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PartitionResult":
        """Rebuild a PartitionResult from :meth:`to_dict` output."""
        folds = tuple(
            Fold(
                index=int(f["index"]),
                train=f["train"],
                test=f["test"],
                degenerate=bool(f.get("degenerate", False)),
                train_fraction=float(f.get("train_fraction", 1.0)),
            )
            for f in data["folds"]
        )
        return cls(
            strategy=data["strategy"],
            folds=folds,
            n_points=int(data["n_points"]),
            params=data.get("params", {}),
            score=data.get("score"),
            seed=data.get("seed"),
            iterations=int(data.get("iterations", 0)),
            converged=bool(data.get("converged", True)),
            excluded_ids=data.get("excluded_ids", []),
            extras=data.get("extras", {}),
        )

    def __repr__(self) -> str:
        """String representation."""
        score = f", score={self.score:.4f}" if self.score is not None else ""
        return (
            f"PartitionResult(strategy={self.strategy}, n_folds={self.n_folds}, "
            f"n_points={self.n_points}{score}, converged={self.converged})"
        )
