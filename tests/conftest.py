import pytest

from vitrage.grid import create_grid
from vitrage.merging import merge_cells


@pytest.fixture
def grid_3x4():
    """A fresh 3x4 grid with no dimensions set."""
    return create_grid(3, 4)


@pytest.fixture
def merged_grid():
    """3x4 grid with the top-left 2x2 block merged into cell 1."""
    grid = create_grid(3, 4)
    ids = [grid.cell_id(r, c) for r in (0, 1) for c in (0, 1)]
    merge_cells(grid, ids)
    return grid


@pytest.fixture
def dimensioned_grid():
    """2x2 grid with real sizes on every segment and a glass unit in the corner."""
    from vitrage.enums import CellAttribute
    from vitrage.grid import set_cell_attribute

    grid = create_grid(2, 2)
    set_cell_attribute(grid, 1, CellAttribute.WIDTH, 1000)
    set_cell_attribute(grid, 2, CellAttribute.WIDTH, 500)
    set_cell_attribute(grid, 1, CellAttribute.HEIGHT, 2000)
    set_cell_attribute(grid, 3, CellAttribute.HEIGHT, 1000)
    set_cell_attribute(grid, 1, CellAttribute.FILL_TYPE, "Glass unit")
    return grid
