"""Layer 3: Tasks - User intent translation.

Tasks turn a PointSet (plus optional raster and domain) and a strategy
configuration into a PartitionResult, and compute fold diagnostics. Tasks use
objects and primitives; they do no file I/O.
"""

from foldsmith.tasks.base import PartitionStrategy
from foldsmith.tasks.blockpartition import BLOCK_SELECTIONS, BlockPartitioner
from foldsmith.tasks.bufferloo import BufferLOOPartitioner
from foldsmith.tasks.clusterpartition import CLUSTER_SPACES, ClusterPartitioner
from foldsmith.tasks.crossvalidation import SpatialFoldSplitter
from foldsmith.tasks.distributionmatch import DistributionMatchPartitioner
from foldsmith.tasks.evaluator import FoldEvaluator, FoldSimilarity
from foldsmith.tasks.partitiontask import (
    PARTITIONERS,
    STRATEGY_ALIASES,
    make_strategy,
    partition,
)

__all__ = [
    "BLOCK_SELECTIONS",
    "BlockPartitioner",
    "BufferLOOPartitioner",
    "CLUSTER_SPACES",
    "ClusterPartitioner",
    "DistributionMatchPartitioner",
    "FoldEvaluator",
    "FoldSimilarity",
    "PARTITIONERS",
    "PartitionStrategy",
    "STRATEGY_ALIASES",
    "SpatialFoldSplitter",
    "make_strategy",
    "partition",
]
