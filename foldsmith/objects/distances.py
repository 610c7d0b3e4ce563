"""Read-only pairwise distance matrix."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class DistanceMatrix:
    """Symmetric n x n matrix of pairwise distances.

    Attributes:
        values: Distance array of shape (n, n), zero on the diagonal.
    """

    values: np.ndarray

    def __post_init__(self) -> None:
        """Validate DistanceMatrix parameters."""
        values = np.array(self.values, dtype=np.float64, copy=True)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise ValueError(f"values must be a square matrix, got {values.shape}")
        if not np.allclose(values, values.T):
            raise ValueError("values must be symmetric")
        if np.any(values < 0):
            raise ValueError("distances must be non-negative")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return self.values.shape[0]

    def __getitem__(self, key):
        return self.values[key]

    def nearest_distances(self, exclude_self: bool = True) -> np.ndarray:
        """Distance from each point to its closest other point."""
        if len(self) < 2:
            return np.full(len(self), np.inf)
        values = np.array(self.values)
        if exclude_self:
            np.fill_diagonal(values, np.inf)
        return values.min(axis=1)

    def __repr__(self) -> str:
        """String representation."""
        return f"DistanceMatrix(n={len(self)})"
