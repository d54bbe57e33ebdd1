"""
Pointer Interaction Module.

Drag gestures and segment selection. Gestures follow a begin / update / end
protocol driven by pointer events; update and end are ignored unless a gesture
was begun, and only end (pointer-up) cancels it.
"""
from dataclasses import dataclass, field, replace
from typing import List, Optional, Set

from vitrage.plan import FloorPlan, PlacedInstance
from vitrage.transform import Point, ViewState, screen_to_local

LEFT_BUTTON = 0
MIDDLE_BUTTON = 1


@dataclass(frozen=True)
class PointerEvent:
    """A pointer press or move in screen pixels."""
    x: float
    y: float
    ctrl: bool = False
    shift: bool = False
    button: int = LEFT_BUTTON

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    @property
    def starts_pan(self) -> bool:
        """Middle button, or shift with the left button."""
        return self.button == MIDDLE_BUTTON or (self.button == LEFT_BUTTON and self.shift)


class PanGesture:
    """Drags the view. The grab point stays under the pointer while panning."""

    def __init__(self):
        self._start: Optional[Point] = None

    @property
    def active(self) -> bool:
        return self._start is not None

    def begin(self, view: ViewState, event: PointerEvent) -> bool:
        if not event.starts_pan:
            return False
        self._start = Point(event.x - view.pan.x, event.y - view.pan.y)
        return True

    def update(self, view: ViewState, event: PointerEvent) -> ViewState:
        if self._start is None:
            return view
        return replace(view, pan=Point(event.x - self._start.x, event.y - self._start.y))

    def end(self) -> None:
        self._start = None


class InstanceDrag:
    """Moves a placed instance, keeping the grab offset in plan-local coordinates."""

    def __init__(self):
        self.instance_id: Optional[str] = None
        self._offset: Optional[Point] = None

    @property
    def active(self) -> bool:
        return self.instance_id is not None

    def begin(self, plan: FloorPlan, instance: PlacedInstance, view: ViewState, event: PointerEvent) -> None:
        local = screen_to_local(view, event.point)
        self.instance_id = plan.get(instance.instance_id).instance_id
        self._offset = Point(local.x - instance.x, local.y - instance.y)

    def update(self, plan: FloorPlan, view: ViewState, event: PointerEvent) -> Optional[PlacedInstance]:
        if self.instance_id is None:
            return None
        local = screen_to_local(view, event.point)
        return plan.move(self.instance_id, local.x - self._offset.x, local.y - self._offset.y)

    def end(self) -> None:
        self.instance_id = None
        self._offset = None


@dataclass
class SelectionState:
    """
    Segment selection of the constructor.

    A plain click focuses one segment (clicking it again clears the focus) and
    drops any multi-selection. A ctrl-click toggles the segment in the
    multi-selection used for merging and drops the focus.
    """
    focused: Optional[int] = None
    selected: Set[int] = field(default_factory=set)

    def select(self, cell_id: int, multi: bool = False) -> None:
        if multi:
            if cell_id in self.selected:
                self.selected.discard(cell_id)
            else:
                self.selected.add(cell_id)
            self.focused = None
        else:
            self.focused = None if cell_id == self.focused else cell_id
            self.selected = set()

    def handle(self, cell_id: int, event: PointerEvent) -> None:
        self.select(cell_id, multi=event.ctrl)

    def clear(self) -> None:
        self.focused = None
        self.selected = set()

    def is_focused(self, cell_id: int) -> bool:
        return self.focused == cell_id

    def is_multi_selected(self, cell_id: int) -> bool:
        return cell_id in self.selected

    @property
    def count(self) -> int:
        return len(self.selected)

    @property
    def selected_ids(self) -> List[int]:
        return sorted(self.selected)
