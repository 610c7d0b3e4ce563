"""FoldSmith: spatial cross-validation fold generation.

Layers:
    objects     immutable data (PointSet, RasterGrid, Fold, PartitionResult, ...)
    primitives  spatial index, tessellation, sampling, distributions, variograms
    tasks       partitioning strategies, fold diagnostics, scikit-learn adapter
    workflows   YAML/JSON configuration and JSON persistence
"""

from foldsmith.objects import (
    AutocorrelationEstimate,
    DistanceMatrix,
    Fold,
    Grid,
    PartitionResult,
    Point,
    PointSet,
    RasterGrid,
)
from foldsmith.primitives import SpatialIndex
from foldsmith.tasks import (
    BlockPartitioner,
    BufferLOOPartitioner,
    ClusterPartitioner,
    DistributionMatchPartitioner,
    FoldEvaluator,
    FoldSimilarity,
    PartitionStrategy,
    SpatialFoldSplitter,
    make_strategy,
    partition,
)
from foldsmith.utils.errors import (
    ConfigError,
    CRSMismatchError,
    EmptyIndexError,
    EmptyInputError,
    FoldSmithError,
    PartitionDegenerate,
    PointsExcludedWarning,
    SearchNotConverged,
)

__version__ = "0.1.0"

__all__ = [
    "AutocorrelationEstimate",
    "BlockPartitioner",
    "BufferLOOPartitioner",
    "CRSMismatchError",
    "ClusterPartitioner",
    "ConfigError",
    "DistanceMatrix",
    "DistributionMatchPartitioner",
    "EmptyIndexError",
    "EmptyInputError",
    "Fold",
    "FoldEvaluator",
    "FoldSimilarity",
    "FoldSmithError",
    "Grid",
    "PartitionDegenerate",
    "PartitionResult",
    "PartitionStrategy",
    "Point",
    "PointSet",
    "PointsExcludedWarning",
    "RasterGrid",
    "SearchNotConverged",
    "SpatialFoldSplitter",
    "SpatialIndex",
    "make_strategy",
    "partition",
]
