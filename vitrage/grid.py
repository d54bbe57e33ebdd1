"""
Grid Model Module.
Creates vitrage grids and routes every attribute edit to the right place.
"""
import logging
from typing import List, Union

from vitrage.enums import CellAttribute, FillType
from vitrage.errors import CellHidden
from vitrage.models import Cell, Grid
from vitrage.propagation import propagate_dimension

logger = logging.getLogger(__name__)


def create_grid(rows: int, cols: int) -> Grid:
    """
    Creates a rows x cols grid. Every cell starts unmerged and visible with the
    default fill and no real dimensions, so the layout falls back to the base
    design size.
    """
    grid = Grid(int(rows), int(cols))
    logger.info("Created %dx%d grid", grid.rows, grid.cols)
    return grid


def get_cell(grid: Grid, row: int, col: int) -> Cell:
    return grid.get_cell(row, col)


def _clean_text(value) -> Union[str, None]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def set_cell_attribute(grid: Grid, cell_id: int, attribute: Union[CellAttribute, str], value) -> List[int]:
    """
    Edits one attribute of a cell.

    Width and height edits go through the constraint propagator and may touch a
    whole column or row. Fill type, label and formula only touch the target.
    Hidden cells cannot be edited; resolve them to their root first.

    Returns the ids of the cells that changed.
    """
    attribute = CellAttribute(attribute)
    cell = grid.cell(cell_id)
    if cell.hidden:
        raise CellHidden(f"Cell {cell_id} is merged into cell {cell.merged_into} and cannot be edited.")

    if attribute.is_geometric:
        return propagate_dimension(grid, cell_id, attribute, value)

    if attribute == CellAttribute.FILL_TYPE:
        cell.fill_type = FillType.from_value(value)
    elif attribute == CellAttribute.LABEL:
        cell.label = _clean_text(value)
    elif attribute == CellAttribute.FORMULA:
        cell.formula = _clean_text(value)

    logger.debug("Cell %s: %s=%r", cell_id, attribute.value, value)
    return [cell_id]
