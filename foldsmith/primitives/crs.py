"""Coordinate Reference System (CRS) checks.

Uses pyproj to decide whether two CRS specifications (EPSG codes, WKT,
proj strings) describe the same system.
"""

from __future__ import annotations

import logging
from typing import Any

from pyproj import CRS

from foldsmith.utils.errors import CRSMismatchError

logger = logging.getLogger(__name__)


def standardize_crs(crs: Any) -> CRS | None:
    """Parse any pyproj-compatible CRS specification.

    Args:
        crs: EPSG code, 'EPSG:xxxx' string, WKT, proj string, pyproj CRS or None.

    Returns:
        pyproj CRS, or None when ``crs`` is None.
    """
    if crs is None:
        return None
    return CRS.from_user_input(crs)


def check_same_crs(left: Any, right: Any, what: str = "inputs") -> None:
    """Raise if two CRS specifications differ.

    A missing CRS on either side is treated as "same system": the caller did not
    say otherwise.

    Args:
        left: First CRS specification.
        right: Second CRS specification.
        what: Description used in the error message.

    Raises:
        CRSMismatchError: If both are given and describe different systems.
    """
    left_crs = standardize_crs(left)
    right_crs = standardize_crs(right)
    if left_crs is None or right_crs is None:
        logger.debug(f"CRS check for {what} skipped: CRS not set on both sides")
        return
    if left_crs != right_crs:
        raise CRSMismatchError(
            f"Coordinate reference systems of {what} differ: "
            f"{left_crs.to_string()} vs {right_crs.to_string()}",
            suggestion="Reproject the raster or domain to the CRS of the points.",
        )
