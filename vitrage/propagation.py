"""
Constraint Propagation Module.

Keeps the column/row sharing rule of the grid intact when a dimension is edited:
all unmerged cells in a column share one width, all unmerged cells in a row share
one height, and a merge root stores the total of the columns/rows it spans.
"""
import logging
from typing import Dict, List, Optional

from vitrage.enums import CellAttribute
from vitrage.errors import CellHidden
from vitrage.models import Grid
from vitrage.utils import parse_dimension

logger = logging.getLogger(__name__)


def _affected_positions(grid: Grid, start: int, span: int, dimension: CellAttribute):
    """Every (row, col) in the columns (width) or rows (height) being edited."""
    if dimension == CellAttribute.WIDTH:
        for col in range(start, min(start + span, grid.cols)):
            for row in range(grid.rows):
                yield row, col
    else:
        for row in range(start, min(start + span, grid.rows)):
            for col in range(grid.cols):
                yield row, col


def propagate_dimension(grid: Grid, cell_id: int, dimension: CellAttribute, value) -> List[int]:
    """
    Applies a width or height edit to the whole column/row range of the target cell.

    Unmerged cells receive the value directly. Merge roots overlapping the range
    receive value * their span along that axis. Hidden positions resolve to their
    root, and every owner is written once. An unparseable value clears the
    dimension everywhere it is applied.

    Returns the ids of the cells that were written, in ascending order.
    """
    if not dimension.is_geometric:
        raise ValueError(f"{dimension.value} is not a dimension.")

    target = grid.cell(cell_id)
    if target.hidden:
        raise CellHidden(f"Cell {cell_id} is merged into cell {target.merged_into}; edit the merged segment instead.")

    mm: Optional[float] = parse_dimension(value)
    is_width = dimension == CellAttribute.WIDTH
    start = target.col if is_width else target.row
    span = target.col_span if is_width else target.row_span

    # Validate and collect first, then write.
    updates: Dict[int, Optional[float]] = {}
    for row, col in _affected_positions(grid, start, span, dimension):
        owner = grid.owner_at(row, col)
        if owner.cell_id in updates:
            continue
        if owner.is_merge_root:
            owner_span = owner.col_span if is_width else owner.row_span
            updates[owner.cell_id] = None if mm is None else mm * owner_span
        else:
            updates[owner.cell_id] = mm

    field = 'real_width_mm' if is_width else 'real_height_mm'
    for owner_id, new_value in updates.items():
        setattr(grid.cell(owner_id), field, new_value)

    logger.debug("Set %s=%s from cell %s across %d cell(s)", dimension.value, mm, cell_id, len(updates))
    return sorted(updates)
