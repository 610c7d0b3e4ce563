"""Regular tessellation of a study extent into blocks."""

from dataclasses import dataclass

import numpy as np

GRID_SHAPES = ("square", "hexagon")


@dataclass(frozen=True)
class Grid:
    """Square or hexagonal grid over an extent.

    Square cells are ``cell_width`` by ``cell_height`` with cell (0, 0) in the
    south-west corner. Hexagons are pointy-top with ``cell_width`` the distance
    between opposite flat sides and ``cell_height`` the vertical spacing of rows;
    odd rows are shifted east by half a cell. ``origin`` is the south-west
    corner of cell (0, 0) for squares and the center of hexagon (0, 0).

    Attributes:
        shape: 'square' or 'hexagon'.
        origin: Reference point of cell (0, 0).
        cell_width: Cell width in coordinate units.
        cell_height: Cell height (square) or row spacing (hexagon).
        n_rows: Number of rows.
        n_cols: Number of columns.
        extent: Covered extent as (xmin, ymin, xmax, ymax).
    """

    shape: str
    origin: tuple[float, float]
    cell_width: float
    cell_height: float
    n_rows: int
    n_cols: int
    extent: tuple[float, float, float, float]

    def __post_init__(self) -> None:
        """Validate Grid parameters."""
        if self.shape not in GRID_SHAPES:
            raise ValueError(f"shape must be one of {GRID_SHAPES}, got {self.shape}")
        if self.cell_width <= 0 or self.cell_height <= 0:
            raise ValueError(
                f"cell dimensions must be positive, got "
                f"({self.cell_width}, {self.cell_height})"
            )
        if self.n_rows < 1 or self.n_cols < 1:
            raise ValueError(
                f"grid needs at least one row and column, got "
                f"({self.n_rows}, {self.n_cols})"
            )

    @property
    def n_blocks(self) -> int:
        return self.n_rows * self.n_cols

    def block_id(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        """Row-major block id for (row, col) pairs."""
        return np.asarray(rows) * self.n_cols + np.asarray(cols)

    def row_col(self, block_ids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Inverse of :meth:`block_id`."""
        block_ids = np.asarray(block_ids)
        return block_ids // self.n_cols, block_ids % self.n_cols

    def cell_centers(self, block_ids: np.ndarray) -> np.ndarray:
        """Centers of the given blocks as an (m, 2) array."""
        rows, cols = self.row_col(block_ids)
        x0, y0 = self.origin
        if self.shape == "square":
            x = x0 + (cols + 0.5) * self.cell_width
            y = y0 + (rows + 0.5) * self.cell_height
        else:
            x = x0 + (cols + 0.5 * (rows % 2)) * self.cell_width
            y = y0 + rows * self.cell_height
        return np.column_stack([x, y]).astype(np.float64)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"Grid(shape={self.shape}, rows={self.n_rows}, cols={self.n_cols}, "
            f"cell=({self.cell_width:.4g}, {self.cell_height:.4g}))"
        )
