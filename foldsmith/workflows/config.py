"""Config-driven partitioning.

A partition configuration is a YAML or JSON mapping::

    strategy: block
    params:
      k: 5
      size: 1000.0
      selection: random
      seed: 42

Top-level keys other than ``strategy`` are also accepted as parameters, so
``{"strategy": "buffer_loo", "radius": 250}`` works too.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from foldsmith.objects.partition import PartitionResult
from foldsmith.objects.pointset import PointSet
from foldsmith.objects.rastergrid import RasterGrid
from foldsmith.tasks.base import PartitionStrategy
from foldsmith.tasks.partitiontask import make_strategy, partition
from foldsmith.utils.errors import ConfigError

logger = logging.getLogger(__name__)


def load_partition_config(file_path: Union[str, Path]) -> dict[str, Any]:
    """Load a partition configuration file.

    Args:
        file_path: Path to a .yaml, .yml or .json file.

    Returns:
        Configuration mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file format is unsupported.
        ConfigError: If the file does not hold a mapping with a strategy.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Partition config not found: {file_path}")

    suffix = file_path.suffix.lower()

    with open(file_path) as f:
        if suffix in (".yaml", ".yml"):
            config = yaml.safe_load(f)
        elif suffix == ".json":
            config = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. "
                "Use .yaml, .yml, or .json"
            )

    if not isinstance(config, dict) or "strategy" not in config:
        raise ConfigError(
            f"Partition config {file_path} must be a mapping with a 'strategy' key"
        )
    logger.info(f"Loaded partition config from {file_path}")
    return config


def strategy_from_config(config: dict[str, Any]) -> PartitionStrategy:
    """Build the strategy described by a configuration mapping."""
    if "strategy" not in config:
        raise ConfigError("Partition config needs a 'strategy' key")
    params = dict(config.get("params") or {})
    for key, value in config.items():
        if key in ("strategy", "params"):
            continue
        if key in params:
            raise ConfigError(f"Parameter '{key}' given both at top level and in params")
        params[key] = value
    if isinstance(params.get("rows_cols"), list):
        params["rows_cols"] = tuple(params["rows_cols"])
    if isinstance(params.get("extent"), list):
        params["extent"] = tuple(params["extent"])
    return make_strategy(config["strategy"], **params)


def run_partition_config(
    config: Union[dict[str, Any], str, Path],
    points: PointSet,
    raster: Optional[RasterGrid] = None,
    domain: Any = None,
) -> PartitionResult:
    """Partition points as described by a configuration.

    Args:
        config: Configuration mapping or path to a YAML/JSON file.
        points: Points to partition.
        raster: Optional covariate raster.
        domain: Optional prediction domain.

    Returns:
        PartitionResult.
    """
    if not isinstance(config, dict):
        config = load_partition_config(config)
    strategy = strategy_from_config(config)
    logger.info(f"Running {strategy.name} partition from config")
    return partition(points, strategy, raster=raster, domain=domain)
