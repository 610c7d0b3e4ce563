"""Covariate raster queried by coordinate."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """North-up regular raster with named bands.

    Cell (row 0, col 0) is the north-west corner. Nodata cells are stored as
    NaN.

    Attributes:
        data: Array of shape (bands, rows, cols); a 2D array is one band.
        x_min: West edge of the raster.
        y_max: North edge of the raster.
        pixel_size: Cell size, either one value or (dx, dy).
        band_names: Names of the bands.
        crs: Optional coordinate reference system.
        nodata: Value marking missing cells in ``data``.
    """

    data: np.ndarray
    x_min: float
    y_max: float
    pixel_size: Union[float, tuple[float, float]]
    band_names: Optional[Sequence[str]] = None
    crs: Optional[Union[str, int]] = None
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate RasterGrid parameters."""
        data = np.array(self.data, dtype=np.float64, copy=True)
        if data.ndim == 2:
            data = data[np.newaxis, ...]
        if data.ndim != 3:
            raise ValueError(
                f"data must have shape (bands, rows, cols) or (rows, cols), "
                f"got {data.shape}"
            )
        if data.shape[1] == 0 or data.shape[2] == 0:
            raise ValueError("RasterGrid must have at least one cell")
        if self.nodata is not None:
            data[data == self.nodata] = np.nan
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

        if np.ndim(self.pixel_size) == 0:
            dx = dy = float(self.pixel_size)
        else:
            dx, dy = (float(v) for v in self.pixel_size)
        if dx <= 0 or dy <= 0:
            raise ValueError(f"pixel_size must be positive, got {self.pixel_size}")
        object.__setattr__(self, "pixel_size", (dx, dy))

        if self.band_names is None:
            names = tuple(f"band_{i}" for i in range(data.shape[0]))
        else:
            names = tuple(str(name) for name in self.band_names)
            if len(names) != data.shape[0]:
                raise ValueError(
                    f"Expected {data.shape[0]} band names, got {len(names)}"
                )
        object.__setattr__(self, "band_names", names)

    @property
    def n_bands(self) -> int:
        return self.data.shape[0]

    @property
    def n_rows(self) -> int:
        return self.data.shape[1]

    @property
    def n_cols(self) -> int:
        return self.data.shape[2]

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Raster extent as (xmin, ymin, xmax, ymax)."""
        dx, dy = self.pixel_size
        return (
            self.x_min,
            self.y_max - self.n_rows * dy,
            self.x_min + self.n_cols * dx,
            self.y_max,
        )

    @property
    def valid_mask(self) -> np.ndarray:
        """Boolean (rows, cols) mask of cells with a value in every band."""
        return np.all(np.isfinite(self.data), axis=0)

    def cell_index(self, coordinates: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Locate coordinates on the raster.

        Args:
            coordinates: Array of shape (n, 2).

        Returns:
            Tuple of (rows, cols, inside). ``rows``/``cols`` are only meaningful
            where ``inside`` is True.
        """
        coordinates = np.asarray(coordinates, dtype=np.float64).reshape(-1, 2)
        xmin, ymin, xmax, ymax = self.bounds
        dx, dy = self.pixel_size
        x, y = coordinates[:, 0], coordinates[:, 1]
        inside = (x >= xmin) & (x <= xmax) & (y >= ymin) & (y <= ymax)
        cols = np.clip(np.floor((x - xmin) / dx).astype(np.int64), 0, self.n_cols - 1)
        rows = np.clip(np.floor((ymax - y) / dy).astype(np.int64), 0, self.n_rows - 1)
        return rows, cols, inside

    def sample(self, coordinates: np.ndarray) -> np.ndarray:
        """Read band values at coordinates.

        Args:
            coordinates: Array of shape (n, 2).

        Returns:
            Array of shape (n, bands); NaN outside the raster or on nodata.
        """
        rows, cols, inside = self.cell_index(coordinates)
        values = np.full((len(rows), self.n_bands), np.nan)
        values[inside] = self.data[:, rows[inside], cols[inside]].T
        return values

    def cell_centers(self, valid_only: bool = True) -> np.ndarray:
        """Centers of raster cells as an (m, 2) array in row-major order."""
        dx, dy = self.pixel_size
        rows, cols = np.indices((self.n_rows, self.n_cols))
        rows, cols = rows.ravel(), cols.ravel()
        if valid_only:
            keep = self.valid_mask.ravel()
            rows, cols = rows[keep], cols[keep]
        x = self.x_min + (cols + 0.5) * dx
        y = self.y_max - (rows + 0.5) * dy
        return np.column_stack([x, y])

    def cell_values(self, valid_only: bool = True) -> np.ndarray:
        """Band values per cell as an (m, bands) array, same order as centers."""
        values = self.data.reshape(self.n_bands, -1).T
        if valid_only:
            values = values[self.valid_mask.ravel()]
        return values

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"RasterGrid(bands={list(self.band_names)}, "
            f"shape=({self.n_rows}, {self.n_cols}), pixel_size={self.pixel_size})"
        )
