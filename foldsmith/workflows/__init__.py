"""Layer 4: Workflows - Public entry points with file I/O.

Reads partition configurations (YAML/JSON) and saves/loads partition results.
"""

from foldsmith.workflows.config import (
    load_partition_config,
    run_partition_config,
    strategy_from_config,
)
from foldsmith.workflows.persistence import load_partition, save_partition

__all__ = [
    "load_partition",
    "load_partition_config",
    "run_partition_config",
    "save_partition",
    "strategy_from_config",
]
