"""
Layout Logic Module.
Solves concrete column widths, row heights and cell rectangles from the grid state.
Everything here is a pure function of the grid, so hit-testing and drawing agree.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from vitrage.config import DESIGN_HEIGHT, DESIGN_WIDTH, PADDING
from vitrage.enums import FillType
from vitrage.models import Grid
from vitrage.utils import mm_to_units, units_to_mm


@dataclass(frozen=True)
class LayoutResult:
    column_widths: Tuple[float, ...]
    row_heights: Tuple[float, ...]
    # cols + 1 / rows + 1 boundaries, starting at the padding origin.
    cumulative_x: Tuple[float, ...]
    cumulative_y: Tuple[float, ...]
    total_width: float
    total_height: float
    padding: float = PADDING

    @property
    def canvas_width(self) -> float:
        """Width of the drawing including padding on both sides."""
        return self.total_width + 2 * self.padding

    @property
    def canvas_height(self) -> float:
        return self.total_height + 2 * self.padding

    @property
    def real_size_mm(self) -> Tuple[float, float]:
        return units_to_mm(self.total_width), units_to_mm(self.total_height)

    def column_at(self, x: float) -> Optional[int]:
        return _index_at(self.cumulative_x, x)

    def row_at(self, y: float) -> Optional[int]:
        return _index_at(self.cumulative_y, y)


@dataclass(frozen=True)
class CellBox:
    """Rendered rectangle of one visible cell, plus what the renderer needs to draw it."""
    cell_id: int
    row: int
    col: int
    x: float
    y: float
    width: float
    height: float
    row_span: int = 1
    col_span: int = 1
    fill_type: FillType = FillType.EMPTY
    label: Optional[str] = None

    @property
    def is_merged(self) -> bool:
        return self.row_span > 1 or self.col_span > 1

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


def _index_at(boundaries: Tuple[float, ...], value: float) -> Optional[int]:
    """Index of the interval containing value; shared edges belong to the later interval."""
    if value < boundaries[0] or value > boundaries[-1]:
        return None
    index = int(np.searchsorted(boundaries, value, side='right')) - 1
    return min(index, len(boundaries) - 2)


def solve(
    grid: Grid,
    base_cell_width: Optional[float] = None,
    base_cell_height: Optional[float] = None,
    padding: float = PADDING,
) -> LayoutResult:
    """
    Derives per-column widths and per-row heights.

    Every column starts at the base width and grows to the largest width any
    unmerged cell in it declares. A merge root spreads its declared total evenly
    over its columns, and each column keeps the maximum of all constraints
    touching it. Rows are solved the same way.
    """
    cols, rows = grid.cols, grid.rows
    if base_cell_width is None:
        base_cell_width = DESIGN_WIDTH / cols
    if base_cell_height is None:
        base_cell_height = DESIGN_HEIGHT / rows

    widths = np.full(cols, float(base_cell_width))
    heights = np.full(rows, float(base_cell_height))

    for cell in grid:
        if cell.hidden:
            continue
        if cell.real_width_mm:
            per_column = mm_to_units(cell.real_width_mm) / cell.col_span
            span = slice(cell.col, min(cell.col + cell.col_span, cols))
            widths[span] = np.maximum(widths[span], per_column)
        if cell.real_height_mm:
            per_row = mm_to_units(cell.real_height_mm) / cell.row_span
            span = slice(cell.row, min(cell.row + cell.row_span, rows))
            heights[span] = np.maximum(heights[span], per_row)

    cumulative_x = np.concatenate(([padding], padding + np.cumsum(widths)))
    cumulative_y = np.concatenate(([padding], padding + np.cumsum(heights)))

    return LayoutResult(
        column_widths=tuple(widths.tolist()),
        row_heights=tuple(heights.tolist()),
        cumulative_x=tuple(cumulative_x.tolist()),
        cumulative_y=tuple(cumulative_y.tolist()),
        total_width=float(widths.sum()),
        total_height=float(heights.sum()),
        padding=float(padding),
    )


def cell_box(grid: Grid, layout: LayoutResult, cell_id: int) -> CellBox:
    """
    Rectangle of a cell. Hidden cells resolve to their root's rectangle.
    A root spans the solved sizes of its columns and rows, never its own
    declared value, so it always tiles with its neighbours.
    """
    cell = grid.owner_of(cell_id)
    last_col = min(cell.col + cell.col_span, grid.cols)
    last_row = min(cell.row + cell.row_span, grid.rows)
    x0, x1 = layout.cumulative_x[cell.col], layout.cumulative_x[last_col]
    y0, y1 = layout.cumulative_y[cell.row], layout.cumulative_y[last_row]
    return CellBox(
        cell_id=cell.cell_id,
        row=cell.row,
        col=cell.col,
        x=x0,
        y=y0,
        width=x1 - x0,
        height=y1 - y0,
        row_span=cell.row_span,
        col_span=cell.col_span,
        fill_type=cell.fill_type,
        label=cell.label,
    )


def cell_boxes(grid: Grid, layout: LayoutResult) -> List[CellBox]:
    """Boxes for every visible cell in row-major order."""
    return [cell_box(grid, layout, cell.cell_id) for cell in grid.visible_cells()]


def find_cell_at(grid: Grid, layout: LayoutResult, x: float, y: float) -> Optional[int]:
    """Id of the visible cell under a point in layout coordinates, or None."""
    col = layout.column_at(x)
    row = layout.row_at(y)
    if col is None or row is None:
        return None
    return grid.owner_at(row, col).cell_id
