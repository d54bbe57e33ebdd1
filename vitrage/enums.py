"""
Enum Definitions Module.

This module contains Enumeration classes for defining constant sets of values,
such as segment fill types, editable attributes or UI view modes. Using enums
instead of raw strings improves code readability and reduces the risk of typos.
"""
from enum import Enum


class FillType(Enum):
    """The closed set of fillings a segment can carry."""
    EMPTY = "Empty"
    GLASS = "Glass unit"
    STEMALIT = "Stemalit"
    VENTILATION = "Vent grille"
    CASEMENT = "Casement"
    DOOR = "Door block"
    SANDWICH = "Sandwich panel"

    @classmethod
    def values(cls) -> list[str]:
        """Returns the string values of all enum members."""
        return [item.value for item in cls]

    @classmethod
    def from_value(cls, value) -> "FillType":
        """Accepts a member, its value or its name. Anything else is EMPTY."""
        if isinstance(value, cls):
            return value
        for item in cls:
            if value == item.value or value == item.name:
                return item
        return cls.EMPTY


class CellAttribute(Enum):
    """Attributes that can be edited on a single cell."""
    FILL_TYPE = "fill_type"
    WIDTH = "width"
    HEIGHT = "height"
    LABEL = "label"
    FORMULA = "formula"

    @property
    def is_geometric(self) -> bool:
        return self in (CellAttribute.WIDTH, CellAttribute.HEIGHT)


class ViewMode(Enum):
    """Enumeration for the pages of the UI."""
    CONSTRUCTOR = "Vitrage Constructor"
    PLAN = "Plan Placement"
    SPECIFICATION = "Specification"
    DEFECTS = "Defect Tracking"

    @classmethod
    def values(cls) -> list[str]:
        """Returns the string values of all enum members."""
        return [item.value for item in cls]


class WallType(Enum):
    """Kinds of wall drawn on a floor plan."""
    EXTERIOR = "exterior"
    INTERIOR = "interior"
    LOAD_BEARING = "load-bearing"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class InspectionStatus(Enum):
    """Inspection progress of one vitrage."""
    NOT_INSPECTED = "Not inspected"
    IN_PROGRESS = "In progress"
    INSPECTED = "Inspected"
    DEFECTIVE = "Has defects"
