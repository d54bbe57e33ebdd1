"""
Domain Models for Vitrage Layout.
Encapsulates segment cells, merge spans and the grid container that owns them.
"""
import copy
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from vitrage.enums import FillType
from vitrage.errors import InvalidDimensions, UnknownCell


def make_cell_id(row: int, col: int, cols: int) -> int:
    """Row-major, 1-based segment number of the cell at (row, col)."""
    return row * cols + col + 1


def cell_position(cell_id: int, cols: int) -> Tuple[int, int]:
    """Inverse of make_cell_id."""
    return (cell_id - 1) // cols, (cell_id - 1) % cols


@dataclass(frozen=True)
class MergeSpan:
    """
    Extent of a merged group, stored on its root cell only.
    synthetic_label remembers the label generated at merge time so that
    unmerge can drop it again if the operator never replaced it.
    """
    row_span: int
    col_span: int
    synthetic_label: Optional[str] = None

    def __post_init__(self):
        if self.row_span < 1 or self.col_span < 1:
            raise ValueError(f"Invalid merge span {self.row_span}x{self.col_span}.")

    @property
    def size(self) -> int:
        return self.row_span * self.col_span


@dataclass
class Cell:
    """
    A single segment of the vitrage grid.

    A cell is either unmerged, a merge root (carries merge_span) or a hidden
    member of another root (carries merged_into). Real dimensions are stored in
    millimetres; a merge root stores the total width/height of its span.
    """
    cell_id: int
    row: int
    col: int
    fill_type: FillType = FillType.EMPTY
    real_width_mm: Optional[float] = None
    real_height_mm: Optional[float] = None
    label: Optional[str] = None
    formula: Optional[str] = None
    merge_span: Optional[MergeSpan] = None
    hidden: bool = False
    merged_into: Optional[int] = None
    stashed_label: Optional[str] = None

    @property
    def is_merge_root(self) -> bool:
        return self.merge_span is not None

    @property
    def is_unmerged(self) -> bool:
        return self.merge_span is None and not self.hidden

    @property
    def row_span(self) -> int:
        return self.merge_span.row_span if self.merge_span else 1

    @property
    def col_span(self) -> int:
        return self.merge_span.col_span if self.merge_span else 1

    @property
    def position(self) -> Tuple[int, int]:
        return self.row, self.col

    def covers(self, row: int, col: int) -> bool:
        """True if (row, col) lies inside the area this cell renders over."""
        return (self.row <= row < self.row + self.row_span
                and self.col <= col < self.col + self.col_span)


class Grid:
    """
    Container for all cells of one vitrage.
    The grid exclusively owns its cells; they are keyed by their derived id.
    """
    def __init__(self, rows: int, cols: int, cells: Optional[Dict[int, Cell]] = None):
        if rows < 1 or cols < 1:
            raise InvalidDimensions(f"A grid needs at least one row and one column, got {rows}x{cols}.")
        self.rows = rows
        self.cols = cols
        if cells is None:
            cells = {}
            for row in range(rows):
                for col in range(cols):
                    cell_id = make_cell_id(row, col, cols)
                    cells[cell_id] = Cell(cell_id=cell_id, row=row, col=col)
        self._cells: Dict[int, Cell] = cells

    # --- Identity ---

    def cell_id(self, row: int, col: int) -> int:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise UnknownCell(f"Position ({row}, {col}) is outside a {self.rows}x{self.cols} grid.")
        return make_cell_id(row, col, self.cols)

    def position(self, cell_id: int) -> Tuple[int, int]:
        if cell_id not in self._cells:
            raise UnknownCell(f"Cell {cell_id} does not exist in a {self.rows}x{self.cols} grid.")
        return cell_position(cell_id, self.cols)

    # --- Access ---

    def cell(self, cell_id: int) -> Cell:
        try:
            return self._cells[cell_id]
        except KeyError:
            raise UnknownCell(f"Cell {cell_id} does not exist in a {self.rows}x{self.cols} grid.") from None

    def get_cell(self, row: int, col: int) -> Cell:
        return self._cells[self.cell_id(row, col)]

    def owner_of(self, cell_id: int) -> Cell:
        """Resolves a hidden member to the root that absorbed it."""
        cell = self.cell(cell_id)
        if cell.hidden and cell.merged_into is not None:
            return self.cell(cell.merged_into)
        return cell

    def owner_at(self, row: int, col: int) -> Cell:
        return self.owner_of(self.cell_id(row, col))

    def roots(self) -> List[Cell]:
        return [cell for cell in self if cell.is_merge_root]

    def members_of(self, root_id: int) -> List[Cell]:
        """Hidden cells absorbed into root_id. Linear scan over the grid."""
        return [cell for cell in self if cell.hidden and cell.merged_into == root_id]

    def visible_cells(self) -> List[Cell]:
        return [cell for cell in self if not cell.hidden]

    def copy(self) -> "Grid":
        return Grid(self.rows, self.cols, copy.deepcopy(self._cells))

    def __iter__(self) -> Iterator[Cell]:
        # Row-major order, independent of insertion order.
        for cell_id in sorted(self._cells):
            yield self._cells[cell_id]

    def __len__(self):
        return len(self._cells)

    def __contains__(self, cell_id):
        return cell_id in self._cells

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return self.rows == other.rows and self.cols == other.cols and self._cells == other._cells

    def __repr__(self):
        return f"Grid(rows={self.rows}, cols={self.cols}, merged={len(self.roots())})"
