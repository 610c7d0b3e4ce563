"""Tests for square and hexagonal tessellation."""

import numpy as np
import pytest

from foldsmith.primitives.tessellation import build_grid, locate_blocks
from foldsmith.utils.errors import ConfigError


class TestBuildGrid:
    """Tests for build_grid."""

    def test_square_rows_cols(self):
        """Test that rows_cols splits the extent evenly."""
        grid = build_grid((0.0, 0.0, 9.0, 9.0), rows_cols=(2, 5))
        assert (grid.n_rows, grid.n_cols) == (2, 5)
        assert grid.cell_width == pytest.approx(1.8)
        assert grid.cell_height == pytest.approx(4.5)

    def test_square_cell_size(self):
        """Test that cell_size rounds the number of cells up."""
        grid = build_grid((0.0, 0.0, 10.0, 4.0), cell_size=3.0)
        assert (grid.n_rows, grid.n_cols) == (2, 4)

    def test_degenerate_extent(self):
        """Test that a zero-width extent still gets one cell."""
        grid = build_grid((1.0, 0.0, 1.0, 5.0), rows_cols=(1, 3))
        assert grid.n_cols == 3
        assert grid.cell_width == 1.0

    def test_sizing_required_exactly_once(self):
        """Test the cell_size / rows_cols exclusivity."""
        with pytest.raises(ConfigError, match="Exactly one"):
            build_grid((0, 0, 1, 1))
        with pytest.raises(ConfigError, match="Exactly one"):
            build_grid((0, 0, 1, 1), cell_size=1.0, rows_cols=(1, 1))

    def test_invalid_values(self):
        """Test invalid sizes and shapes."""
        with pytest.raises(ConfigError, match="cell_size"):
            build_grid((0, 0, 1, 1), cell_size=0.0)
        with pytest.raises(ConfigError, match="rows_cols"):
            build_grid((0, 0, 1, 1), rows_cols=(0, 2))
        with pytest.raises(ConfigError, match="shape"):
            build_grid((0, 0, 1, 1), shape="triangle", cell_size=1.0)
        with pytest.raises(ConfigError, match="extent"):
            build_grid((1, 0, 0, 1), cell_size=1.0)


class TestLocateSquare:
    """Tests for locating points in square blocks."""

    def test_row_major_from_south_west(self):
        """Test that row 0 is at the south edge and col 0 at the west edge."""
        grid = build_grid((0.0, 0.0, 4.0, 2.0), cell_size=1.0)
        coords = np.array([[0.5, 0.5], [3.5, 0.5], [0.5, 1.5], [3.5, 1.5]])
        assert locate_blocks(grid, coords).tolist() == [0, 3, 4, 7]

    def test_edges_belong_to_last_cell(self):
        """Test that the north-east corner is inside the grid."""
        grid = build_grid((0.0, 0.0, 4.0, 2.0), cell_size=1.0)
        assert locate_blocks(grid, np.array([[4.0, 2.0]])).tolist() == [7]

    def test_outside_extent(self):
        """Test that points outside the extent get -1."""
        grid = build_grid((0.0, 0.0, 4.0, 2.0), cell_size=1.0)
        coords = np.array([[-0.1, 1.0], [1.0, 2.5]])
        assert locate_blocks(grid, coords).tolist() == [-1, -1]


class TestLocateHexagon:
    """Tests for locating points in hexagonal blocks."""

    @pytest.fixture
    def coords(self):
        rng = np.random.default_rng(3)
        return rng.uniform(0, 100, size=(500, 2))

    def test_all_points_inside(self, coords):
        """Test that every point in the extent gets a block."""
        grid = build_grid((0.0, 0.0, 100.0, 100.0), shape="hexagon", cell_size=12.0)
        assert np.all(locate_blocks(grid, coords) >= 0)

    def test_assigned_to_nearest_center(self, coords):
        """Test that each point lies in the hexagon with the closest center."""
        grid = build_grid((0.0, 0.0, 100.0, 100.0), shape="hexagon", cell_size=12.0)
        blocks = locate_blocks(grid, coords)
        centers = grid.cell_centers(np.arange(grid.n_blocks))
        assigned = grid.cell_centers(blocks)

        to_assigned = np.hypot(*(coords - assigned).T)
        all_dists = np.hypot(
            coords[:, None, 0] - centers[None, :, 0],
            coords[:, None, 1] - centers[None, :, 1],
        )
        np.testing.assert_allclose(to_assigned, all_dists.min(axis=1), atol=1e-9)

    def test_flat_to_flat_size(self):
        """Test hexagon geometry for a given cell size."""
        grid = build_grid((0.0, 0.0, 100.0, 100.0), shape="hexagon", cell_size=10.0)
        assert grid.cell_width == 10.0
        assert grid.cell_height == pytest.approx(10.0 * np.sqrt(3) / 2)

    def test_rows_cols_sizing(self):
        """Test that rows_cols picks a cell size spanning the extent."""
        grid = build_grid((0.0, 0.0, 100.0, 50.0), shape="hexagon", rows_cols=(2, 4))
        assert grid.cell_width == pytest.approx(max(100.0 / 4, 50.0 / (2 * np.sqrt(3) / 2)))
