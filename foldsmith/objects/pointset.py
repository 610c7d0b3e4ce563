"""Point observations to be partitioned into folds."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd


def _readonly(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class Point:
    """A single observation.

    Attributes:
        id: Stable 0-based identifier (position in the owning PointSet).
        coordinate: (x, y) in projected units.
        features: Optional covariate vector.
    """

    id: int
    coordinate: tuple[float, float]
    features: Optional[tuple[float, ...]] = None


@dataclass(frozen=True, eq=False)
class PointSet:
    """Ordered, immutable set of 2D observations.

    Point ids are implicit: the i-th coordinate row is point ``i``.

    Attributes:
        coordinates: Array of shape (n, 2) with x, y in one CRS.
        features: Optional array of shape (n, p) with covariates per point.
        feature_names: Names of the feature columns.
        crs: Optional coordinate reference system (anything pyproj accepts).
    """

    coordinates: np.ndarray
    features: Optional[np.ndarray] = None
    feature_names: Optional[tuple[str, ...]] = None
    crs: Optional[Union[str, int]] = None

    def __post_init__(self) -> None:
        """Validate PointSet parameters."""
        coordinates = np.asarray(self.coordinates, dtype=np.float64)
        if coordinates.size == 0:
            coordinates = coordinates.reshape(0, 2)
        if coordinates.ndim != 2 or coordinates.shape[1] != 2:
            raise ValueError(
                f"coordinates must have shape (n, 2), got {coordinates.shape}"
            )
        if not np.all(np.isfinite(coordinates)):
            raise ValueError("coordinates must be finite")
        object.__setattr__(self, "coordinates", _readonly(coordinates))

        if self.features is None:
            if self.feature_names is not None:
                raise ValueError("feature_names given without features")
            return

        features = np.asarray(self.features, dtype=np.float64)
        if features.ndim == 1:
            features = features.reshape(-1, 1)
        if features.ndim != 2 or len(features) != len(coordinates):
            raise ValueError(
                f"features must have shape ({len(coordinates)}, p), "
                f"got {features.shape}"
            )
        object.__setattr__(self, "features", _readonly(features))

        if self.feature_names is None:
            names = tuple(f"feature_{i}" for i in range(features.shape[1]))
        else:
            names = tuple(str(name) for name in self.feature_names)
            if len(names) != features.shape[1]:
                raise ValueError(
                    f"Expected {features.shape[1]} feature names, got {len(names)}"
                )
        object.__setattr__(self, "feature_names", names)

    def __len__(self) -> int:
        return len(self.coordinates)

    def __getitem__(self, point_id: int) -> Point:
        x, y = self.coordinates[point_id]
        features = None
        if self.features is not None:
            features = tuple(float(v) for v in self.features[point_id])
        return Point(id=int(point_id), coordinate=(float(x), float(y)), features=features)

    @property
    def ids(self) -> np.ndarray:
        """Point ids, ``0..n-1``."""
        return np.arange(len(self), dtype=np.int64)

    @property
    def has_features(self) -> bool:
        return self.features is not None

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Bounding box as (xmin, ymin, xmax, ymax)."""
        if len(self) == 0:
            raise ValueError("An empty PointSet has no bounds")
        xmin, ymin = self.coordinates.min(axis=0)
        xmax, ymax = self.coordinates.max(axis=0)
        return float(xmin), float(ymin), float(xmax), float(ymax)

    def with_features(
        self, features: np.ndarray, feature_names: Optional[Sequence[str]] = None
    ) -> "PointSet":
        """Return a copy of this PointSet carrying ``features``."""
        return PointSet(
            coordinates=self.coordinates,
            features=features,
            feature_names=tuple(feature_names) if feature_names is not None else None,
            crs=self.crs,
        )

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        x: str = "x",
        y: str = "y",
        features: Optional[Sequence[str]] = None,
        crs: Optional[Union[str, int]] = None,
    ) -> "PointSet":
        """Build a PointSet from DataFrame columns.

        Row order defines point ids; the DataFrame index is ignored.

        Args:
            df: Source table.
            x: Name of the x coordinate column.
            y: Name of the y coordinate column.
            features: Optional covariate column names.
            crs: Optional coordinate reference system.

        Returns:
            PointSet with one point per row.
        """
        missing = [c for c in [x, y, *(features or [])] if c not in df.columns]
        if missing:
            raise ValueError(
                f"Columns {missing} not found in DataFrame. "
                f"Available columns: {list(df.columns)}"
            )
        coordinates = df[[x, y]].to_numpy(dtype=np.float64)
        if not features:
            return cls(coordinates=coordinates, crs=crs)
        return cls(
            coordinates=coordinates,
            features=df[list(features)].to_numpy(dtype=np.float64),
            feature_names=tuple(features),
            crs=crs,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Return points as a DataFrame with ``id``, ``x``, ``y`` and features."""
        df = pd.DataFrame(
            {"id": self.ids, "x": self.coordinates[:, 0], "y": self.coordinates[:, 1]}
        )
        if self.features is not None:
            for name, column in zip(self.feature_names, self.features.T):
                df[name] = column
        return df

    def __repr__(self) -> str:
        """String representation."""
        n_features = 0 if self.features is None else self.features.shape[1]
        crs_str = f", crs={self.crs}" if self.crs is not None else ""
        return f"PointSet(n_points={len(self)}, n_features={n_features}{crs_str})"
