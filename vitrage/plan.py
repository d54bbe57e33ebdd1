"""
Plan Placement Module.
Floor and facade plans: the walls and rooms drawn on them, the vitrages placed
along them, and the site identifiers given to the segments of each placement.
"""
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from vitrage.config import (
    ALLOWED_ROTATIONS, DEFAULT_PLACEMENT_SCALE, DEFAULT_PLACEMENT_X, DEFAULT_PLACEMENT_Y,
    DEFAULT_WALL_THICKNESS, MAX_INSTANCE_SCALE, MIN_INSTANCE_SCALE, PLAN_DISPLAY_FACTOR,
    WHEEL_ZOOM_IN, WHEEL_ZOOM_OUT
)
from vitrage.enums import WallType
from vitrage.errors import CellHidden, InvalidPlacement
from vitrage.models import Grid
from vitrage.segment_ids import SegmentID
from vitrage.transform import Bounds, Point, point_in_rotated_rect, rotated_bounds

logger = logging.getLogger(__name__)

# vitrage_id -> (total design width, total design height)
SizeLookup = Mapping[str, Tuple[float, float]]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class PlacedInstance:
    """
    A vitrage placed on a plan. x/y is the origin corner in plan-local coordinates;
    rotation turns the drawing about that corner.
    vitrage_id and wall_id are lookup keys only. segment_ids maps visible
    cell ids of the vitrage to their site identifiers.
    """
    vitrage_id: str
    x: float = DEFAULT_PLACEMENT_X
    y: float = DEFAULT_PLACEMENT_Y
    rotation: int = 0
    scale: float = DEFAULT_PLACEMENT_SCALE
    wall_id: Optional[str] = None
    instance_id: str = field(default_factory=_new_id)
    segment_ids: Dict[int, SegmentID] = field(default_factory=dict)

    def __post_init__(self):
        if self.rotation not in ALLOWED_ROTATIONS:
            raise InvalidPlacement(f"Rotation must be one of {ALLOWED_ROTATIONS}, got {self.rotation}.")
        if self.scale <= 0:
            raise InvalidPlacement(f"Scale must be positive, got {self.scale}.")

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class Wall:
    x1: float
    y1: float
    x2: float
    y2: float
    thickness: float = DEFAULT_WALL_THICKNESS
    kind: WallType = WallType.EXTERIOR
    wall_id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.kind = WallType(self.kind)
        if self.thickness <= 0:
            raise InvalidPlacement(f"Wall thickness must be positive, got {self.thickness}.")
        if self.length == 0:
            raise InvalidPlacement("A wall needs two distinct end points.")

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def start(self) -> Point:
        return Point(self.x1, self.y1)

    @property
    def end(self) -> Point:
        return Point(self.x2, self.y2)


@dataclass
class Room:
    name: str
    wall_ids: List[str] = field(default_factory=list)
    area: Optional[float] = None
    room_id: str = field(default_factory=_new_id)


def display_size(instance: PlacedInstance, vitrage_size: Tuple[float, float]) -> Tuple[float, float]:
    """Size of the instance on the plan before rotation."""
    width, height = vitrage_size
    return width * PLAN_DISPLAY_FACTOR * instance.scale, height * PLAN_DISPLAY_FACTOR * instance.scale


def instance_bounds(instance: PlacedInstance, vitrage_size: Tuple[float, float]) -> Bounds:
    width, height = display_size(instance, vitrage_size)
    return rotated_bounds(instance.x, instance.y, width, height, instance.rotation)


def hit_test(instance: PlacedInstance, vitrage_size: Tuple[float, float], point: Point) -> bool:
    width, height = display_size(instance, vitrage_size)
    return point_in_rotated_rect(point, instance.x, instance.y, width, height, instance.rotation)


class FloorPlan:
    """
    Container for one plan: its walls, rooms and placed vitrages.
    Instances are kept in drawing order; the last one is drawn on top.
    """
    def __init__(
        self,
        name: str = "",
        instances: Optional[List[PlacedInstance]] = None,
        corpus: str = "",
        section: str = "",
        floor: int = 1,
        walls: Optional[List[Wall]] = None,
        rooms: Optional[List[Room]] = None,
        plan_id: Optional[str] = None,
    ):
        self.name = name
        self.corpus = corpus
        self.section = section
        self.floor = int(floor)
        self.plan_id = plan_id or _new_id()
        self._instances: List[PlacedInstance] = list(instances or [])
        self._walls: List[Wall] = list(walls or [])
        self._rooms: List[Room] = list(rooms or [])

    # --- Placement ---

    def place(
        self,
        vitrage_id: str,
        position: Optional[Point] = None,
        scale: float = DEFAULT_PLACEMENT_SCALE,
        wall_id: Optional[str] = None,
    ) -> PlacedInstance:
        if wall_id is not None:
            self.get_wall(wall_id)
        position = position or Point(DEFAULT_PLACEMENT_X, DEFAULT_PLACEMENT_Y)
        instance = PlacedInstance(vitrage_id=vitrage_id, x=position.x, y=position.y, scale=scale, wall_id=wall_id)
        self._instances.append(instance)
        logger.info("Placed vitrage %s as %s at (%.1f, %.1f)", vitrage_id, instance.instance_id, position.x, position.y)
        return instance

    def get(self, instance_id: str) -> PlacedInstance:
        for instance in self._instances:
            if instance.instance_id == instance_id:
                return instance
        raise KeyError(instance_id)

    def move(self, instance_id: str, x: float, y: float) -> PlacedInstance:
        instance = self.get(instance_id)
        instance.x, instance.y = x, y
        return instance

    def rotate(self, instance_id: str) -> PlacedInstance:
        """Turns the instance a quarter clockwise."""
        instance = self.get(instance_id)
        instance.rotation = (instance.rotation + 90) % 360
        return instance

    def set_scale(self, instance_id: str, scale: float) -> PlacedInstance:
        instance = self.get(instance_id)
        instance.scale = max(MIN_INSTANCE_SCALE, min(MAX_INSTANCE_SCALE, scale))
        return instance

    def scale_by(self, instance_id: str, factor: float) -> PlacedInstance:
        return self.set_scale(instance_id, self.get(instance_id).scale * factor)

    def wheel_scale(self, instance_id: str, delta_y: float) -> PlacedInstance:
        return self.scale_by(instance_id, WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN)

    def delete(self, instance_id: str) -> bool:
        before = len(self._instances)
        self._instances = [i for i in self._instances if i.instance_id != instance_id]
        removed = len(self._instances) < before
        if removed:
            logger.info("Deleted placed vitrage %s", instance_id)
        return removed

    def find_at(self, point: Point, sizes: SizeLookup) -> Optional[PlacedInstance]:
        """Top-most instance under a plan-local point. Instances of unknown vitrages are skipped."""
        for instance in reversed(self._instances):
            size = sizes.get(instance.vitrage_id)
            if size is not None and hit_test(instance, size, point):
                return instance
        return None

    def instance_bounds(self, instance_id: str, sizes: SizeLookup) -> Bounds:
        instance = self.get(instance_id)
        return instance_bounds(instance, sizes[instance.vitrage_id])

    def extent(self, sizes: SizeLookup) -> Optional[Bounds]:
        """Bounding box of every instance with a known size, or None when there is nothing to bound."""
        boxes = [instance_bounds(i, sizes[i.vitrage_id]) for i in self._instances if i.vitrage_id in sizes]
        if not boxes:
            return None
        return Bounds(
            min(b.min_x for b in boxes), min(b.min_y for b in boxes),
            max(b.max_x for b in boxes), max(b.max_y for b in boxes),
        )

    def counts_by_vitrage(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for instance in self._instances:
            counts[instance.vitrage_id] = counts.get(instance.vitrage_id, 0) + 1
        return counts

    # --- Walls & Rooms ---

    def add_wall(
        self,
        start: Point,
        end: Point,
        thickness: float = DEFAULT_WALL_THICKNESS,
        kind: WallType = WallType.EXTERIOR,
    ) -> Wall:
        wall = Wall(start.x, start.y, end.x, end.y, thickness, kind)
        self._walls.append(wall)
        logger.info("Added %s wall %s of length %.1f", wall.kind.value, wall.wall_id, wall.length)
        return wall

    def get_wall(self, wall_id: str) -> Wall:
        for wall in self._walls:
            if wall.wall_id == wall_id:
                return wall
        raise InvalidPlacement(f"Wall {wall_id} does not exist on plan '{self.name}'.")

    def delete_wall(self, wall_id: str) -> bool:
        """Removes a wall; vitrages attached to it stay placed but are detached."""
        before = len(self._walls)
        self._walls = [w for w in self._walls if w.wall_id != wall_id]
        if len(self._walls) == before:
            return False
        for instance in self._instances:
            if instance.wall_id == wall_id:
                instance.wall_id = None
        for room in self._rooms:
            room.wall_ids = [w for w in room.wall_ids if w != wall_id]
        return True

    def attach_to_wall(self, instance_id: str, wall_id: Optional[str]) -> PlacedInstance:
        """Attaches the instance to a wall, or detaches it when wall_id is None."""
        instance = self.get(instance_id)
        if wall_id is not None:
            self.get_wall(wall_id)
        instance.wall_id = wall_id
        return instance

    def instances_on_wall(self, wall_id: str) -> List[PlacedInstance]:
        return [i for i in self._instances if i.wall_id == wall_id]

    def add_room(self, name: str, wall_ids: Sequence[str] = (), area: Optional[float] = None) -> Room:
        for wall_id in wall_ids:
            self.get_wall(wall_id)
        room = Room(name=name.strip() or f"Room {len(self._rooms) + 1}", wall_ids=list(dict.fromkeys(wall_ids)), area=area)
        self._rooms.append(room)
        return room

    def delete_room(self, room_id: str) -> bool:
        before = len(self._rooms)
        self._rooms = [r for r in self._rooms if r.room_id != room_id]
        return len(self._rooms) < before

    # --- Segment Identifiers ---

    def default_segment_id(self, instance_id: str) -> SegmentID:
        """A starting identifier pre-filled from the plan and the placed vitrage."""
        instance = self.get(instance_id)
        return SegmentID(
            corpus=self.corpus, section=self.section, floor=str(self.floor),
            vitrage_name=instance.vitrage_id,
        )

    def set_segment_id(self, instance_id: str, grid: Grid, cell_id: int, segment_id: SegmentID) -> PlacedInstance:
        """
        Assigns the identifier of one segment of a placed vitrage. grid is the
        vitrage's layout; only its visible segments can carry an identifier.
        An empty identifier removes the assignment.
        """
        instance = self.get(instance_id)
        cell = grid.cell(cell_id)
        if cell.hidden:
            raise CellHidden(f"Segment {cell_id} is merged into {cell.merged_into}; identify the merged segment instead.")
        if segment_id.is_empty:
            instance.segment_ids.pop(cell_id, None)
        else:
            instance.segment_ids[cell_id] = segment_id
            logger.info("Segment %s of %s identified as %s", cell_id, instance_id, segment_id.full_id)
        return instance

    def prune_segment_ids(self, vitrage_id: str, grid: Grid) -> int:
        """Drops identifiers of segments that are no longer visible in the vitrage."""
        removed = 0
        for instance in self._instances:
            if instance.vitrage_id != vitrage_id:
                continue
            stale = [cell_id for cell_id in instance.segment_ids if cell_id not in grid or grid.cell(cell_id).hidden]
            for cell_id in stale:
                del instance.segment_ids[cell_id]
            removed += len(stale)
        return removed

    # --- Access ---

    @property
    def instances(self) -> List[PlacedInstance]:
        return list(self._instances)

    @property
    def walls(self) -> List[Wall]:
        return list(self._walls)

    @property
    def rooms(self) -> List[Room]:
        return list(self._rooms)

    @property
    def title(self) -> str:
        """Name with its building, section and floor, for pickers."""
        location = " / ".join(part for part in (self.corpus, self.section) if part)
        suffix = f" ({location}, floor {self.floor})" if location else f" (floor {self.floor})"
        return f"{self.name or 'Plan'}{suffix}"

    def __iter__(self) -> Iterator[PlacedInstance]:
        return iter(self._instances)

    def __len__(self):
        return len(self._instances)

    def __bool__(self):
        return bool(self._instances)

# ==============================================================================
# --- Plan Collections ---
# ==============================================================================

@dataclass
class PlanFilters:
    """Empty fields match everything. name matches case-insensitively as a substring."""
    name: str = ""
    corpus: str = ""
    section: str = ""
    floor: Optional[int] = None


def filter_plans(plans: Iterable[FloorPlan], filters: PlanFilters) -> List[FloorPlan]:
    selected = []
    for plan in plans:
        if filters.name and filters.name.strip().lower() not in plan.name.lower():
            continue
        if filters.corpus and plan.corpus != filters.corpus:
            continue
        if filters.section and plan.section != filters.section:
            continue
        if filters.floor is not None and plan.floor != filters.floor:
            continue
        selected.append(plan)
    return selected


def unique_corpuses(plans: Iterable[FloorPlan]) -> List[str]:
    return sorted({p.corpus for p in plans if p.corpus})


def unique_sections(plans: Iterable[FloorPlan]) -> List[str]:
    return sorted({p.section for p in plans if p.section})


def unique_floors(plans: Iterable[FloorPlan]) -> List[int]:
    return sorted({p.floor for p in plans})


def count_placements(plans: Iterable[FloorPlan]) -> Dict[str, int]:
    """Placed copies of each vitrage over all plans."""
    totals: Dict[str, int] = {}
    for plan in plans:
        for vitrage_id, count in plan.counts_by_vitrage().items():
            totals[vitrage_id] = totals.get(vitrage_id, 0) + count
    return totals
