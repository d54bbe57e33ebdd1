"""
Coordinate Transformation Module.

Converts points between the nested coordinate spaces of the plan editor:

    screen  --(pan, zoom)-->  world  --(background offset, scale)-->  local

and provides the hit tests used to pick rotated placed vitrages. The view state
is an explicit value owned by the editing session; every function takes it as an
argument and returns a new one instead of mutating shared state.
"""
import math
from dataclasses import dataclass, replace
from typing import NamedTuple, Optional, Tuple

from vitrage.config import (
    MAX_BACKGROUND_SCALE, MAX_ZOOM, MIN_BACKGROUND_SCALE, MIN_ZOOM,
    WHEEL_ZOOM_IN, WHEEL_ZOOM_OUT, ZOOM_STEP
)


class Point(NamedTuple):
    x: float
    y: float


class Bounds(NamedTuple):
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class ViewState:
    """Zoom, pan and optional reference-image scaling of one editing session."""
    zoom: float = 1.0
    pan: Point = Point(0.0, 0.0)
    background_scale: Optional[float] = None
    background_offset: Optional[Point] = None

    def __post_init__(self):
        if self.zoom <= 0:
            raise ValueError(f"Zoom must be positive, got {self.zoom}.")
        if self.background_scale is not None and self.background_scale <= 0:
            raise ValueError(f"Background scale must be positive, got {self.background_scale}.")

    @property
    def has_background(self) -> bool:
        return self.background_scale is not None

    @property
    def zoom_percentage(self) -> str:
        return f"{round(self.zoom * 100)}%"


@dataclass(frozen=True)
class BackgroundFit:
    """Drawn size and top-left offset of a reference image in world space."""
    width: float
    height: float
    offset: Point


# ==============================================================================
# --- Limits ---
# ==============================================================================

def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def clamp_background_scale(scale: float) -> float:
    return max(MIN_BACKGROUND_SCALE, min(MAX_BACKGROUND_SCALE, scale))


# ==============================================================================
# --- Space Conversions ---
# ==============================================================================

def screen_to_world(view: ViewState, point: Point) -> Point:
    return Point((point.x - view.pan.x) / view.zoom, (point.y - view.pan.y) / view.zoom)


def world_to_screen(view: ViewState, point: Point) -> Point:
    return Point(point.x * view.zoom + view.pan.x, point.y * view.zoom + view.pan.y)


def world_to_background(view: ViewState, point: Point) -> Point:
    """World to background-local space. Identity while no background is loaded."""
    if not view.has_background:
        return Point(point.x, point.y)
    offset = view.background_offset or Point(0.0, 0.0)
    return Point((point.x - offset.x) / view.background_scale, (point.y - offset.y) / view.background_scale)


def background_to_world(view: ViewState, point: Point) -> Point:
    if not view.has_background:
        return Point(point.x, point.y)
    offset = view.background_offset or Point(0.0, 0.0)
    return Point(point.x * view.background_scale + offset.x, point.y * view.background_scale + offset.y)


def screen_to_local(view: ViewState, point: Point) -> Point:
    """Full chain used for placement: screen, then pan/zoom, then background scale."""
    return world_to_background(view, screen_to_world(view, point))


def local_to_screen(view: ViewState, point: Point) -> Point:
    return world_to_screen(view, background_to_world(view, point))


# ==============================================================================
# --- View Changes ---
# ==============================================================================

def zoom_at(view: ViewState, anchor: Point, new_zoom: float) -> ViewState:
    """
    Changes the zoom while keeping the world point under the anchor pixel fixed.
    The new pan solves anchor = world_before * zoom + pan for the clamped zoom.
    """
    zoom = clamp_zoom(new_zoom)
    world_before = screen_to_world(view, anchor)
    pan = Point(anchor.x - world_before.x * zoom, anchor.y - world_before.y * zoom)
    return replace(view, zoom=zoom, pan=pan)


def _origin_anchor(view: ViewState) -> Point:
    # Anchoring on the world origin leaves the pan untouched.
    return Point(view.pan.x, view.pan.y)


def zoom_in(view: ViewState, anchor: Optional[Point] = None) -> ViewState:
    return zoom_at(view, anchor if anchor is not None else _origin_anchor(view), view.zoom * ZOOM_STEP)


def zoom_out(view: ViewState, anchor: Optional[Point] = None) -> ViewState:
    return zoom_at(view, anchor if anchor is not None else _origin_anchor(view), view.zoom / ZOOM_STEP)


def wheel_zoom(view: ViewState, anchor: Point, delta_y: float) -> ViewState:
    """Scrolling down (positive delta) zooms out, scrolling up zooms in."""
    factor = WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN
    return zoom_at(view, anchor, view.zoom * factor)


def pan_by(view: ViewState, dx: float, dy: float) -> ViewState:
    return replace(view, pan=Point(view.pan.x + dx, view.pan.y + dy))


def reset_view(view: ViewState) -> ViewState:
    """Back to 100% with no pan. The background layer is kept."""
    return replace(view, zoom=1.0, pan=Point(0.0, 0.0))


# ==============================================================================
# --- Background Layer ---
# ==============================================================================

def fit_background(
    image_width: float,
    image_height: float,
    canvas_width: float,
    canvas_height: float,
    scale: float = 1.0,
) -> BackgroundFit:
    """
    Fits the image into the canvas keeping its aspect ratio, applies the scale,
    and centres it. The offset is negative when the scaled image overflows.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError("Background image must have a positive size.")
    image_ratio = image_width / image_height
    canvas_ratio = canvas_width / canvas_height
    if image_ratio > canvas_ratio:
        width = canvas_width * scale
        height = (canvas_width / image_ratio) * scale
    else:
        height = canvas_height * scale
        width = (canvas_height * image_ratio) * scale
    return BackgroundFit(width, height, Point((canvas_width - width) / 2, (canvas_height - height) / 2))


def with_background(view: ViewState, scale: float, offset: Point) -> ViewState:
    return replace(view, background_scale=clamp_background_scale(scale), background_offset=offset)


def without_background(view: ViewState) -> ViewState:
    return replace(view, background_scale=None, background_offset=None)


def scale_background_at(
    view: ViewState,
    anchor: Point,
    new_scale: float,
    new_offset: Optional[Point] = None,
) -> ViewState:
    """
    Rescales the background layer while keeping the background-local point under
    the anchor pixel fixed, compensating through the pan. new_offset is the
    image offset at the new scale (it moves when the image is re-centred).
    """
    if not view.has_background:
        return view
    scale = clamp_background_scale(new_scale)
    offset = new_offset if new_offset is not None else (view.background_offset or Point(0.0, 0.0))
    local = screen_to_local(view, anchor)
    world_after = Point(local.x * scale + offset.x, local.y * scale + offset.y)
    pan = Point(anchor.x - world_after.x * view.zoom, anchor.y - world_after.y * view.zoom)
    return replace(view, background_scale=scale, background_offset=offset, pan=pan)


# ==============================================================================
# --- Rotation & Hit Tests ---
# ==============================================================================

def _sin_cos(angle_deg: float) -> Tuple[float, float]:
    """Sine and cosine of an angle in degrees; right angles are exact."""
    exact = {0: (0.0, 1.0), 90: (1.0, 0.0), 180: (0.0, -1.0), 270: (-1.0, 0.0)}
    normalized = angle_deg % 360
    if normalized in exact:
        return exact[normalized]
    radians = math.radians(angle_deg)
    return math.sin(radians), math.cos(radians)


def rotate_point(point: Point, center: Point, angle_deg: float) -> Point:
    """Rotates a point about center. Positive angles turn clockwise on a Y-down screen."""
    sin, cos = _sin_cos(angle_deg)
    dx, dy = point.x - center.x, point.y - center.y
    return Point(dx * cos - dy * sin + center.x, dx * sin + dy * cos + center.y)


def point_in_rotated_rect(
    point: Point,
    origin_x: float,
    origin_y: float,
    width: float,
    height: float,
    angle_deg: float = 0.0,
) -> bool:
    """
    Hit test for a rectangle rotated about its origin corner (placed instances).
    The point is moved into the rectangle's frame by the inverse rotation.
    """
    if angle_deg % 360 == 0:
        return origin_x <= point.x <= origin_x + width and origin_y <= point.y <= origin_y + height
    local = rotate_point(point, Point(origin_x, origin_y), -angle_deg)
    local_x, local_y = local.x - origin_x, local.y - origin_y
    return 0 <= local_x <= width and 0 <= local_y <= height


def point_in_centered_rotated_rect(
    point: Point,
    x: float,
    y: float,
    width: float,
    height: float,
    angle_deg: float = 0.0,
) -> bool:
    """Hit test for a rectangle rotated about its centre (preview shapes)."""
    center = Point(x + width / 2, y + height / 2)
    local = rotate_point(point, center, -angle_deg)
    return abs(local.x - center.x) <= width / 2 and abs(local.y - center.y) <= height / 2


def rotated_corners(x: float, y: float, width: float, height: float, angle_deg: float) -> Tuple[Point, ...]:
    """Corners of a rectangle rotated about (x, y), clockwise from the origin."""
    origin = Point(x, y)
    corners = (Point(x, y), Point(x + width, y), Point(x + width, y + height), Point(x, y + height))
    return tuple(rotate_point(corner, origin, angle_deg) for corner in corners)


def rotated_bounds(x: float, y: float, width: float, height: float, angle_deg: float) -> Bounds:
    """Axis-aligned bounding box of a rectangle rotated about its origin corner."""
    corners = rotated_corners(x, y, width, height, angle_deg)
    xs = [c.x for c in corners]
    ys = [c.y for c in corners]
    return Bounds(min(xs), min(ys), max(xs), max(ys))
