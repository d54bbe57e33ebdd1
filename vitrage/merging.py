"""
Segment Merging Module.

Merges a rectangular selection of cells into one logical segment and splits
merged segments apart again. Every operation validates the whole request before
touching the grid, so a rejected merge or unmerge leaves the grid unchanged.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from vitrage.errors import CellHidden, NotEnoughCells, NotRectangular, NothingToUnmerge, VitrageError
from vitrage.models import Cell, Grid, MergeSpan

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    grid: Grid
    root_id: int
    count: int


@dataclass
class UnmergeResult:
    grid: Grid
    count: int
    root_ids: List[int] = field(default_factory=list)


def _bounding_box(cells: List[Cell]) -> Tuple[int, int, int, int]:
    rows = [c.row for c in cells]
    cols = [c.col for c in cells]
    return min(rows), max(rows), min(cols), max(cols)


def _validate_merge(grid: Grid, selected_ids: Iterable[int]) -> Tuple[List[Cell], Tuple[int, int, int, int]]:
    """Checks a merge request and returns the selected cells in (row, col) order with their box."""
    ids = sorted(set(selected_ids))
    if len(ids) < 2:
        raise NotEnoughCells("Select at least two segments to merge.")

    cells = [grid.cell(cell_id) for cell_id in ids]
    hidden = [c.cell_id for c in cells if c.hidden]
    if hidden:
        raise CellHidden(f"Segments {hidden} are already part of a merged segment.")

    min_row, max_row, min_col, max_col = _bounding_box(cells)
    expected_count = (max_row - min_row + 1) * (max_col - min_col + 1)
    if len(cells) != expected_count:
        raise NotRectangular("The selected segments must form a rectangular area.")

    # Same cardinality is not enough (an L-shape can match it); every position must be present.
    selected_positions = {c.position for c in cells}
    for row in range(min_row, max_row + 1):
        for col in range(min_col, max_col + 1):
            if (row, col) not in selected_positions:
                raise NotRectangular("The selected segments must be contiguous and form a rectangle.")

    # Identities passed, but an existing group would stick out of (or overlap) the new span.
    # Merging an existing merged segment again is unsupported, even when the box would
    # contain it; the user has to unmerge it first.
    roots = [c.cell_id for c in cells if c.is_merge_root]
    if roots:
        raise NotRectangular(f"Segments {roots} are already merged; unmerge them first.")

    return cells, (min_row, max_row, min_col, max_col)


def can_merge(grid: Grid, selected_ids: Iterable[int]) -> bool:
    try:
        _validate_merge(grid, selected_ids)
    except VitrageError:
        return False
    return True


def merge_cells(grid: Grid, selected_ids: Iterable[int]) -> MergeResult:
    """
    Merges the selected cells into the one with the smallest (row, col).

    The root receives the span of the selection's bounding box and, if it has no
    label, a synthetic 'M<count>' label. Every other cell is hidden, points back
    to the root and has its label cleared; its dimensions are kept but ignored
    until the group is unmerged.
    """
    cells, (min_row, max_row, min_col, max_col) = _validate_merge(grid, selected_ids)
    root, members = cells[0], cells[1:]

    synthetic_label = None
    if not root.label:
        synthetic_label = f"M{len(cells)}"
        root.label = synthetic_label
    root.merge_span = MergeSpan(
        row_span=max_row - min_row + 1,
        col_span=max_col - min_col + 1,
        synthetic_label=synthetic_label,
    )

    for member in members:
        member.stashed_label = member.label
        member.label = None
        member.hidden = True
        member.merged_into = root.cell_id

    logger.info("Merged %d segments into %s (%dx%d)", len(cells), root.cell_id,
                root.merge_span.row_span, root.merge_span.col_span)
    return MergeResult(grid=grid, root_id=root.cell_id, count=len(cells))


def unmerge_cells(
    grid: Grid,
    selected_ids: Optional[Iterable[int]] = None,
    focused_id: Optional[int] = None,
) -> UnmergeResult:
    """
    Dissolves every merge root in the selection, or the focused cell when there is
    no multi-selection. Members become visible again with their labels restored;
    a synthetic label the root received on merge is removed.
    """
    selected = sorted(set(selected_ids or ()))
    candidates = selected if selected else ([focused_id] if focused_id is not None else [])
    roots = [cell for cell in (grid.cell(cell_id) for cell_id in candidates) if cell.is_merge_root]
    if not roots:
        raise NothingToUnmerge("Select a merged segment to unmerge.")

    count = 0
    for root in roots:
        for member in grid.members_of(root.cell_id):
            member.hidden = False
            member.merged_into = None
            member.label = member.stashed_label
            member.stashed_label = None
            count += 1

        if root.merge_span.synthetic_label is not None and root.label == root.merge_span.synthetic_label:
            root.label = None
        root.merge_span = None
        count += 1

    root_ids = [root.cell_id for root in roots]
    logger.info("Unmerged %s (%d segments restored)", root_ids, count)
    return UnmergeResult(grid=grid, count=count, root_ids=root_ids)


def are_in_same_merge(grid: Grid, first_id: int, second_id: int) -> bool:
    """True when both ids belong to the same merged segment."""
    first = grid.owner_of(first_id)
    return first.is_merge_root and first.cell_id == grid.owner_of(second_id).cell_id
