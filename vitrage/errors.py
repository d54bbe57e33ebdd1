"""
Error Definitions Module.

Every failure raised by the grid engine is an expected, recoverable validation
error. They all derive from ValueError so callers that only care about bad
input can catch that.
"""


class VitrageError(ValueError):
    """Base class for grid, merge and placement validation failures."""


class InvalidDimensions(VitrageError):
    """Raised when a grid is created with fewer than one row or column."""


class UnknownCell(VitrageError):
    """Raised when a cell id or position lies outside the grid."""


class CellHidden(VitrageError):
    """Raised when a hidden (merged-away) cell is edited or selected for a merge."""


class NotEnoughCells(VitrageError):
    """Raised when fewer than two cells are selected for a merge."""


class NotRectangular(VitrageError):
    """Raised when the selected cells do not fill their bounding rectangle."""


class NothingToUnmerge(VitrageError):
    """Raised when neither the selection nor the focused cell is a merge root."""


class InvalidPlacement(VitrageError):
    """Raised when a placed instance gets a rotation or scale it cannot carry."""


class UnknownDefectType(VitrageError):
    """Raised when an inspection lists a defect that is not in the catalogue."""
