import pytest

from vitrage.enums import CellAttribute, FillType
from vitrage.errors import CellHidden, InvalidDimensions, UnknownCell
from vitrage.grid import create_grid, get_cell, set_cell_attribute
from vitrage.models import cell_position, make_cell_id


def test_create_grid_initial_state():
    """Every cell starts unmerged, visible, empty and without real sizes."""
    grid = create_grid(3, 4)

    assert len(grid) == 12
    assert [c.cell_id for c in grid] == list(range(1, 13))
    for cell in grid:
        assert cell.is_unmerged
        assert not cell.hidden
        assert cell.fill_type == FillType.EMPTY
        assert cell.real_width_mm is None and cell.real_height_mm is None
        assert cell.row_span == 1 and cell.col_span == 1


@pytest.mark.parametrize("rows, cols", [(0, 3), (3, 0), (-1, 2)])
def test_create_grid_rejects_empty_dimensions(rows, cols):
    with pytest.raises(InvalidDimensions):
        create_grid(rows, cols)


def test_cell_id_is_row_major_and_reversible():
    assert make_cell_id(0, 0, 4) == 1
    assert make_cell_id(1, 2, 4) == 7
    assert make_cell_id(2, 3, 4) == 12
    for cell_id in range(1, 13):
        row, col = cell_position(cell_id, 4)
        assert make_cell_id(row, col, 4) == cell_id


def test_get_cell_and_unknown_positions(grid_3x4):
    cell = get_cell(grid_3x4, 1, 2)
    assert cell.cell_id == 7
    assert cell.position == (1, 2)

    with pytest.raises(UnknownCell):
        get_cell(grid_3x4, 3, 0)
    with pytest.raises(UnknownCell):
        grid_3x4.cell(99)


def test_set_non_geometric_attributes_touch_only_target(grid_3x4):
    changed = set_cell_attribute(grid_3x4, 6, CellAttribute.FILL_TYPE, "Glass unit")
    set_cell_attribute(grid_3x4, 6, "label", "  G1 ")
    set_cell_attribute(grid_3x4, 6, CellAttribute.FORMULA, "4M1-16-4M1")

    assert changed == [6]
    cell = grid_3x4.cell(6)
    assert cell.fill_type == FillType.GLASS
    assert cell.label == "G1"
    assert cell.formula == "4M1-16-4M1"
    others = [c for c in grid_3x4 if c.cell_id != 6]
    assert all(c.fill_type == FillType.EMPTY and c.label is None for c in others)


def test_fill_type_accepts_member_name_and_falls_back_to_empty(grid_3x4):
    set_cell_attribute(grid_3x4, 1, CellAttribute.FILL_TYPE, FillType.DOOR)
    set_cell_attribute(grid_3x4, 2, CellAttribute.FILL_TYPE, "STEMALIT")
    set_cell_attribute(grid_3x4, 3, CellAttribute.FILL_TYPE, "Marble")

    assert grid_3x4.cell(1).fill_type == FillType.DOOR
    assert grid_3x4.cell(2).fill_type == FillType.STEMALIT
    assert grid_3x4.cell(3).fill_type == FillType.EMPTY


def test_blank_label_clears_it(grid_3x4):
    set_cell_attribute(grid_3x4, 1, CellAttribute.LABEL, "A")
    set_cell_attribute(grid_3x4, 1, CellAttribute.LABEL, "   ")
    assert grid_3x4.cell(1).label is None


def test_unknown_attribute_is_rejected(grid_3x4):
    with pytest.raises(ValueError):
        set_cell_attribute(grid_3x4, 1, "colour", "red")


def test_hidden_cells_cannot_be_edited(merged_grid):
    with pytest.raises(CellHidden):
        set_cell_attribute(merged_grid, 2, CellAttribute.LABEL, "X")
    with pytest.raises(CellHidden):
        set_cell_attribute(merged_grid, 6, CellAttribute.WIDTH, 900)


def test_grid_copy_is_independent(grid_3x4):
    clone = grid_3x4.copy()
    assert clone == grid_3x4

    set_cell_attribute(clone, 1, CellAttribute.LABEL, "changed")
    assert clone != grid_3x4
    assert grid_3x4.cell(1).label is None


def test_owner_resolution(merged_grid):
    assert merged_grid.owner_of(6).cell_id == 1
    assert merged_grid.owner_at(1, 1).cell_id == 1
    assert merged_grid.owner_of(3).cell_id == 3
    assert [c.cell_id for c in merged_grid.roots()] == [1]
    assert sorted(c.cell_id for c in merged_grid.members_of(1)) == [2, 5, 6]
