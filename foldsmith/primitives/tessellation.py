"""Square and hexagonal tessellation of a study extent.

Builds a :class:`~foldsmith.objects.grid.Grid` from a cell size or a
(rows, cols) request and maps coordinates to block ids.
"""

import logging
from typing import Optional

import numpy as np

from foldsmith.objects.grid import Grid
from foldsmith.utils.errors import ConfigError

logger = logging.getLogger(__name__)

_SQRT3 = np.sqrt(3.0)


def _span(low: float, high: float) -> float:
    return float(high - low)


def build_grid(
    extent: tuple[float, float, float, float],
    shape: str = "square",
    cell_size: Optional[float] = None,
    rows_cols: Optional[tuple[int, int]] = None,
) -> Grid:
    """Tessellate an extent.

    Exactly one of ``cell_size`` and ``rows_cols`` must be given. For squares,
    ``rows_cols`` splits the extent into equal rectangles. For hexagons it picks
    the smallest cell size at which the requested number of hexagon columns and
    rows spans the extent; the lattice keeps a margin row and column so edge
    points always fall inside, so about that many blocks end up occupied.

    Args:
        extent: (xmin, ymin, xmax, ymax).
        shape: 'square' or 'hexagon'.
        cell_size: Cell width (squares) or flat-to-flat width (hexagons).
        rows_cols: Requested (rows, cols).

    Returns:
        Grid covering the extent.

    Raises:
        ConfigError: If sizing arguments are missing, both given or invalid.
    """
    xmin, ymin, xmax, ymax = (float(v) for v in extent)
    if xmax < xmin or ymax < ymin:
        raise ConfigError(f"Invalid extent {extent}: max must be >= min")
    if (cell_size is None) == (rows_cols is None):
        raise ConfigError(
            "Exactly one of cell_size and rows_cols must be given",
            suggestion="Pass cell_size=<distance> or rows_cols=(rows, cols).",
        )
    width, height = _span(xmin, xmax), _span(ymin, ymax)

    if rows_cols is not None:
        n_rows, n_cols = (int(v) for v in rows_cols)
        if n_rows < 1 or n_cols < 1:
            raise ConfigError(f"rows_cols must be positive integers, got {rows_cols}")
    elif not cell_size > 0:
        raise ConfigError(f"cell_size must be positive, got {cell_size}")

    if shape == "square":
        if rows_cols is not None:
            cell_width = width / n_cols if width > 0 else 1.0
            cell_height = height / n_rows if height > 0 else 1.0
        else:
            cell_width = cell_height = float(cell_size)
            n_cols = max(1, int(np.ceil(width / cell_width)))
            n_rows = max(1, int(np.ceil(height / cell_height)))
        grid = Grid(
            shape="square",
            origin=(xmin, ymin),
            cell_width=cell_width,
            cell_height=cell_height,
            n_rows=n_rows,
            n_cols=n_cols,
            extent=(xmin, ymin, xmax, ymax),
        )
    elif shape == "hexagon":
        if rows_cols is not None:
            cell_width = max(width / n_cols, height / (n_rows * _SQRT3 / 2.0))
            if cell_width <= 0:
                cell_width = 1.0
        else:
            cell_width = float(cell_size)
        row_spacing = cell_width * _SQRT3 / 2.0
        # Shift the lattice a quarter cell west so no point at the western edge
        # can fall into column -1 of an odd (east-shifted) row.
        x0 = xmin - cell_width / 4.0
        grid = Grid(
            shape="hexagon",
            origin=(x0, ymin),
            cell_width=cell_width,
            cell_height=row_spacing,
            n_rows=int(np.floor(height / row_spacing)) + 2,
            n_cols=int(np.floor((xmax - x0) / cell_width)) + 2,
            extent=(xmin, ymin, xmax, ymax),
        )
    else:
        raise ConfigError(
            f"Unknown shape: {shape}. Must be one of: 'square', 'hexagon'"
        )

    logger.debug(f"Built {grid}")
    return grid


def _locate_square(grid: Grid, coordinates: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x0, y0 = grid.origin
    cols = np.floor((coordinates[:, 0] - x0) / grid.cell_width).astype(np.int64)
    rows = np.floor((coordinates[:, 1] - y0) / grid.cell_height).astype(np.int64)
    # Points on the north/east edge belong to the last row/column.
    return np.clip(rows, 0, grid.n_rows - 1), np.clip(cols, 0, grid.n_cols - 1)


def _locate_hexagon(grid: Grid, coordinates: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x0, y0 = grid.origin
    radius = grid.cell_width / _SQRT3
    x = coordinates[:, 0] - x0
    y = coordinates[:, 1] - y0

    # Fractional axial coordinates of a pointy-top layout, then cube rounding.
    q = (_SQRT3 / 3.0 * x - y / 3.0) / radius
    r = (2.0 / 3.0 * y) / radius
    s = -q - r
    rq, rr, rs = np.rint(q), np.rint(r), np.rint(s)
    dq, dr, ds = np.abs(rq - q), np.abs(rr - r), np.abs(rs - s)
    fix_q = (dq > dr) & (dq > ds)
    fix_r = ~fix_q & (dr > ds)
    rq = np.where(fix_q, -rr - rs, rq)
    rr = np.where(fix_r, -rq - rs, rr)

    rows = rr.astype(np.int64)
    cols = rq.astype(np.int64) + (rows - (rows & 1)) // 2
    return rows, cols


def locate_blocks(grid: Grid, coordinates: np.ndarray) -> np.ndarray:
    """Map coordinates to block ids.

    Args:
        grid: Tessellation.
        coordinates: Array of shape (n, 2).

    Returns:
        Block id per coordinate, -1 for coordinates outside the grid extent.
    """
    coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 2)
    xmin, ymin, xmax, ymax = grid.extent
    inside = (
        (coordinates[:, 0] >= xmin)
        & (coordinates[:, 0] <= xmax)
        & (coordinates[:, 1] >= ymin)
        & (coordinates[:, 1] <= ymax)
    )
    if grid.shape == "square":
        rows, cols = _locate_square(grid, coordinates)
    else:
        rows, cols = _locate_hexagon(grid, coordinates)

    inside &= (rows >= 0) & (rows < grid.n_rows) & (cols >= 0) & (cols < grid.n_cols)
    return np.where(inside, grid.block_id(rows, cols), -1).astype(np.int64)
