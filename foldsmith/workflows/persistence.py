"""JSON persistence of partition results.

The file holds the fold id lists and the result metadata, so a partition can
be reused by a training job without recomputing it.
"""

import json
import logging
from pathlib import Path
from typing import Union

from foldsmith.objects.partition import PartitionResult

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def save_partition(result: PartitionResult, file_path: Union[str, Path]) -> Path:
    """Write a PartitionResult to a JSON file.

    Args:
        result: Partition to save.
        file_path: Destination path; parent directories are created.

    Returns:
        Path written.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"format_version": FORMAT_VERSION, **result.to_dict()}
    with open(file_path, "w") as f:
        json.dump(payload, f, indent=2)
    logger.info(f"Saved {result.n_folds} {result.strategy} folds to {file_path}")
    return file_path


def load_partition(file_path: Union[str, Path]) -> PartitionResult:
    """Read a PartitionResult written by :func:`save_partition`.

    Extras are returned as plain JSON values (lists instead of arrays).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file was written by an unsupported format version.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Partition file not found: {file_path}")

    with open(file_path) as f:
        payload = json.load(f)

    version = payload.pop("format_version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(
            f"Unsupported partition file version {version} (expected {FORMAT_VERSION})"
        )
    result = PartitionResult.from_dict(payload)
    logger.info(f"Loaded {result.n_folds} {result.strategy} folds from {file_path}")
    return result
