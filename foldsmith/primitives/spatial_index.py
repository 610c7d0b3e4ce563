"""Read-only nearest-neighbor and radius index over point coordinates.

Backed by a scipy KD-tree. Every query returns point ids ordered by increasing
distance with ties broken by ascending id, so results never depend on tree
internals.
"""

import logging
from typing import Union

import numpy as np
from scipy.spatial import cKDTree
from scipy.spatial.distance import cdist

from foldsmith.objects.distances import DistanceMatrix
from foldsmith.objects.pointset import PointSet
from foldsmith.utils.errors import EmptyIndexError

logger = logging.getLogger(__name__)

PointQuery = Union[int, np.integer, tuple[float, float], np.ndarray]

# Relative slack used when collecting KD-tree candidates; final membership is
# always decided on distances recomputed here.
_SLACK = 1e-9


class SpatialIndex:
    """Spatial index over a PointSet.

    Built once (O(n log n)); all queries are read-only.

    Example:
        >>> import numpy as np
        >>> from foldsmith.objects import PointSet
        >>> from foldsmith.primitives.spatial_index import SpatialIndex
        >>>
        >>> index = SpatialIndex(PointSet(np.array([[0, 0], [1, 0], [3, 0]])))
        >>> ids, dists = index.nearest(0, k=2)
        >>> ids.tolist(), dists.tolist()
        ([1, 2], [1.0, 3.0])
    """

    def __init__(self, points: Union[PointSet, np.ndarray]) -> None:
        """Build the index.

        Args:
            points: PointSet or (n, 2) coordinate array.

        Raises:
            EmptyIndexError: If there are no points.
        """
        if isinstance(points, PointSet):
            coordinates = points.coordinates
            self.crs = points.crs
        else:
            coordinates = np.asarray(points, dtype=np.float64).reshape(-1, 2)
            self.crs = None

        if len(coordinates) == 0:
            raise EmptyIndexError(
                "Cannot build a spatial index from zero points",
                suggestion="Check that the PointSet was loaded correctly.",
            )

        self._coordinates = np.array(coordinates, dtype=np.float64)
        self._coordinates.setflags(write=False)
        self._tree = cKDTree(self._coordinates)
        logger.debug(f"Built spatial index over {len(self._coordinates)} points")

    def __len__(self) -> int:
        return len(self._coordinates)

    @property
    def coordinates(self) -> np.ndarray:
        return self._coordinates

    def _resolve(self, point: PointQuery) -> tuple[np.ndarray, int]:
        """Return the query coordinate and the id to exclude (-1 for none)."""
        if isinstance(point, (int, np.integer)):
            point_id = int(point)
            if not 0 <= point_id < len(self):
                raise IndexError(f"Point id {point_id} out of range [0, {len(self)})")
            return self._coordinates[point_id], point_id
        coordinate = np.asarray(point, dtype=np.float64).reshape(2)
        return coordinate, -1

    def _distances(self, coordinate: np.ndarray, ids: np.ndarray) -> np.ndarray:
        delta = self._coordinates[ids] - coordinate
        return np.hypot(delta[:, 0], delta[:, 1])

    def _ordered(
        self, coordinate: np.ndarray, ids: np.ndarray, exclude: int
    ) -> tuple[np.ndarray, np.ndarray]:
        ids = np.asarray(ids, dtype=np.int64)
        ids = ids[ids != exclude]
        distances = self._distances(coordinate, ids)
        order = np.lexsort((ids, distances))
        return ids[order], distances[order]

    def nearest(self, point: PointQuery, k: int = 1) -> tuple[np.ndarray, np.ndarray]:
        """Find the k nearest other points.

        Args:
            point: Point id (excluded from the result) or (x, y) coordinate.
            k: Number of neighbors.

        Returns:
            Tuple of (ids, distances), increasing distance, ties by ascending id.

        Raises:
            ValueError: If k is not in [1, number of candidate points].
        """
        coordinate, exclude = self._resolve(point)
        available = len(self) - (1 if exclude >= 0 else 0)
        if not 1 <= k <= available:
            raise ValueError(f"k must be between 1 and {available}, got {k}")

        n_query = min(len(self), k + (1 if exclude >= 0 else 0))
        _, ids = self._tree.query(coordinate, k=n_query)
        ids, distances = self._ordered(coordinate, np.atleast_1d(ids), exclude)

        # Pull in every point tied with the k-th distance before cutting.
        kth = distances[k - 1]
        candidates = self._tree.query_ball_point(coordinate, kth + _SLACK * max(1.0, kth))
        ids, distances = self._ordered(coordinate, np.asarray(candidates), exclude)
        return ids[:k], distances[:k]

    def within_radius(self, point: PointQuery, radius: float) -> tuple[np.ndarray, np.ndarray]:
        """Find all other points at distance <= radius.

        Args:
            point: Point id (excluded from the result) or (x, y) coordinate.
            radius: Search radius (>= 0).

        Returns:
            Tuple of (ids, distances), increasing distance, ties by ascending id.
        """
        if radius < 0:
            raise ValueError(f"radius must be non-negative, got {radius}")
        coordinate, exclude = self._resolve(point)
        candidates = self._tree.query_ball_point(
            coordinate, radius + _SLACK * max(1.0, radius)
        )
        ids, distances = self._ordered(coordinate, np.asarray(candidates), exclude)
        keep = distances <= radius
        return ids[keep], distances[keep]

    def neighbor_order(self, point_id: int) -> tuple[np.ndarray, np.ndarray]:
        """All other points of ``point_id`` sorted by (distance, id)."""
        coordinate, exclude = self._resolve(int(point_id))
        return self._ordered(coordinate, np.arange(len(self)), exclude)

    def nearest_distance(self, coordinates: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Distance from arbitrary locations to their closest indexed point.

        Args:
            coordinates: Query locations, shape (m, 2).

        Returns:
            Tuple of (distances, ids) of shape (m,).
        """
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 2)
        if len(coordinates) == 0:
            return np.empty(0), np.empty(0, dtype=np.int64)
        distances, ids = self._tree.query(coordinates, k=1)
        return np.asarray(distances, dtype=np.float64), np.asarray(ids, dtype=np.int64)

    def distance_matrix(self) -> DistanceMatrix:
        """Materialize all pairwise Euclidean distances (O(n^2) memory)."""
        return DistanceMatrix(cdist(self._coordinates, self._coordinates))

    def __repr__(self) -> str:
        """String representation."""
        return f"SpatialIndex(n_points={len(self)})"
