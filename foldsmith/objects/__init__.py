"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No I/O libraries, no scipy,
no scikit-learn, no shapely, no pyproj. Only standard library + numpy + pandas.
"""

from foldsmith.objects.autocorrelation import AutocorrelationEstimate
from foldsmith.objects.distances import DistanceMatrix
from foldsmith.objects.grid import GRID_SHAPES, Grid
from foldsmith.objects.partition import Fold, PartitionResult
from foldsmith.objects.pointset import Point, PointSet
from foldsmith.objects.rastergrid import RasterGrid

__all__ = [
    "AutocorrelationEstimate",
    "DistanceMatrix",
    "Fold",
    "GRID_SHAPES",
    "Grid",
    "PartitionResult",
    "Point",
    "PointSet",
    "RasterGrid",
]
