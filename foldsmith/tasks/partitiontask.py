"""Single entry point over all partitioning strategies.

Strategies are registered by name; :func:`partition` dispatches on the
strategy's ``name`` and :func:`make_strategy` builds one from plain options
(as read from a configuration file).
"""

import logging
from dataclasses import fields
from typing import Any, Optional

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.primitives.crs import check_same_crs
from foldsmith.primitives.spatial_index import SpatialIndex
from foldsmith.tasks.base import PartitionStrategy, check_points
from foldsmith.tasks.blockpartition import BlockPartitioner
from foldsmith.tasks.bufferloo import BufferLOOPartitioner
from foldsmith.tasks.clusterpartition import ClusterPartitioner
from foldsmith.tasks.distributionmatch import DistributionMatchPartitioner
from foldsmith.utils.errors import ConfigError

logger = logging.getLogger(__name__)

# Strategy registry
PARTITIONERS: dict[str, type] = {
    "block": BlockPartitioner,
    "cluster": ClusterPartitioner,
    "buffer_loo": BufferLOOPartitioner,
    "nndm": DistributionMatchPartitioner,
}

STRATEGY_ALIASES = {
    "buffer": "buffer_loo",
    "distribution_match": "nndm",
}

# Strategies that can reuse a caller's SpatialIndex.
_INDEXED = ("buffer_loo", "nndm")


def resolve_strategy_name(name: str) -> str:
    """Canonical registry name for ``name`` or one of its aliases."""
    key = str(name).lower()
    key = STRATEGY_ALIASES.get(key, key)
    if key not in PARTITIONERS:
        raise ConfigError(
            f"Unknown strategy: {name}. "
            f"Must be one of {sorted(PARTITIONERS)} (aliases: {sorted(STRATEGY_ALIASES)})"
        )
    return key


def make_strategy(name: str, **options: Any) -> PartitionStrategy:
    """Build a strategy from configuration options.

    ``size`` is accepted as an alias of ``cell_size``.

    Example:
        >>> from foldsmith.tasks.partitiontask import make_strategy
        >>> make_strategy("block", k=4, size=250.0, selection="checkerboard")
        BlockPartitioner(k=4, cell_size=250.0, ...)

    Args:
        name: Strategy name ('block', 'cluster', 'buffer_loo', 'nndm').
        **options: Strategy parameters.

    Returns:
        Validated strategy instance.

    Raises:
        ConfigError: On unknown strategies/options or invalid values.
    """
    cls = PARTITIONERS[resolve_strategy_name(name)]
    options = dict(options)
    if "size" in options:
        if "cell_size" in options:
            raise ConfigError("Give either size or cell_size, not both")
        options["cell_size"] = options.pop("size")

    accepted = {f.name for f in fields(cls)}
    unknown = sorted(set(options) - accepted)
    if unknown:
        raise ConfigError(
            f"Unknown options for {cls.name}: {unknown}",
            suggestion=f"Valid options: {sorted(accepted)}",
            details={"unknown": unknown},
        )
    return cls(**options)


def partition(
    points: PointSet,
    strategy: PartitionStrategy,
    raster: Optional[RasterGrid] = None,
    domain: Any = None,
    index: Optional[SpatialIndex] = None,
) -> PartitionResult:
    """Partition points with any registered strategy.

    Example:
        >>> from foldsmith import BufferLOOPartitioner, partition
        >>> result = partition(points, BufferLOOPartitioner(radius=500.0))
        >>> for train, test in result.split(skip_degenerate=True):
        ...     model.fit(X[train], y[train])

    Args:
        points: Points to partition.
        strategy: Configured strategy instance.
        raster: Optional covariate raster (same CRS as the points).
        domain: Optional prediction domain for distribution matching.
        index: Optional prebuilt SpatialIndex over ``points``.

    Returns:
        PartitionResult.

    Raises:
        EmptyInputError: If ``points`` is empty.
        CRSMismatchError: If ``raster`` uses a different CRS.
        ConfigError: If ``strategy`` is not registered.
    """
    if not isinstance(strategy, PartitionStrategy):
        raise TypeError(
            f"strategy must be a PartitionStrategy, got {type(strategy).__name__}"
        )
    registered = PARTITIONERS.get(strategy.name)
    if registered is None or not isinstance(strategy, registered):
        raise ConfigError(f"Strategy {type(strategy).__name__} is not registered")

    check_points(points)
    if raster is not None:
        check_same_crs(points.crs, raster.crs, "points and raster")
    if index is not None and len(index) != len(points):
        raise ValueError(
            f"SpatialIndex covers {len(index)} points, PointSet has {len(points)}"
        )

    kwargs = {"raster": raster, "domain": domain}
    if strategy.name in _INDEXED:
        kwargs["index"] = index
    logger.debug(f"Dispatching {len(points)} points to {strategy!r}")
    return strategy.partition(points, **kwargs)
