import pytest

from vitrage.config import MAX_INSTANCE_SCALE, MIN_INSTANCE_SCALE
from vitrage.enums import WallType
from vitrage.errors import CellHidden, InvalidPlacement, UnknownCell
from vitrage.merging import merge_cells
from vitrage.plan import (
    FloorPlan, PlacedInstance, PlanFilters, Wall, count_placements, display_size, filter_plans, hit_test,
    instance_bounds, unique_corpuses, unique_floors, unique_sections
)
from vitrage.segment_ids import SegmentID
from vitrage.transform import Point

SIZES = {"V-01": (600.0, 400.0), "V-02": (300.0, 300.0)}


@pytest.fixture
def plan():
    return FloorPlan("Ground floor")


def test_place_uses_defaults(plan):
    instance = plan.place("V-01")
    assert instance.position == Point(100, 100)
    assert instance.rotation == 0
    assert instance.scale == 0.5
    assert len(plan) == 1 and plan
    assert plan.get(instance.instance_id) is instance


def test_instance_ids_are_unique(plan):
    ids = {plan.place("V-01").instance_id for _ in range(20)}
    assert len(ids) == 20


def test_display_size_is_a_tenth_of_design_size_times_scale():
    instance = PlacedInstance("V-01", scale=2.0)
    assert display_size(instance, SIZES["V-01"]) == pytest.approx((120, 80))


@pytest.mark.parametrize("kwargs", [{"rotation": 45}, {"scale": 0}, {"scale": -1}])
def test_invalid_instance_is_rejected(kwargs):
    with pytest.raises(InvalidPlacement):
        PlacedInstance("V-01", **kwargs)


def test_rotate_cycles_through_quarter_turns(plan):
    instance = plan.place("V-01")
    angles = [plan.rotate(instance.instance_id).rotation for _ in range(4)]
    assert angles == [90, 180, 270, 0]


def test_move_and_unknown_instance(plan):
    instance = plan.place("V-01")
    plan.move(instance.instance_id, 250, 40)
    assert instance.position == Point(250, 40)
    with pytest.raises(KeyError):
        plan.move("missing", 0, 0)


def test_scale_is_clamped(plan):
    instance = plan.place("V-01")
    assert plan.set_scale(instance.instance_id, 100).scale == MAX_INSTANCE_SCALE
    assert plan.set_scale(instance.instance_id, 0.001).scale == MIN_INSTANCE_SCALE
    plan.set_scale(instance.instance_id, 1.0)
    assert plan.scale_by(instance.instance_id, 1.5).scale == pytest.approx(1.5)


def test_wheel_scale_direction(plan):
    instance = plan.place("V-01", scale=1.0)
    assert plan.wheel_scale(instance.instance_id, 100).scale == pytest.approx(0.9)
    assert plan.wheel_scale(instance.instance_id, -100).scale == pytest.approx(0.99)


def test_delete(plan):
    first = plan.place("V-01")
    second = plan.place("V-02")
    assert plan.delete(first.instance_id)
    assert not plan.delete(first.instance_id)
    assert [i.instance_id for i in plan] == [second.instance_id]


def test_hit_test_follows_rotation():
    """A 30x20 instance at (100,100) turned 90 degrees covers x 80..100, y 100..130."""
    instance = PlacedInstance("V-01", rotation=90)
    assert hit_test(instance, SIZES["V-01"], Point(90, 125))
    assert not hit_test(instance, SIZES["V-01"], Point(110, 105))
    bounds = instance_bounds(instance, SIZES["V-01"])
    assert tuple(bounds) == pytest.approx((80, 100, 100, 130))


def test_find_at_prefers_topmost(plan):
    bottom = plan.place("V-01", Point(0, 0))
    top = plan.place("V-02", Point(10, 10))
    assert plan.find_at(Point(12, 12), SIZES) is top
    assert plan.find_at(Point(2, 2), SIZES) is bottom
    assert plan.find_at(Point(500, 500), SIZES) is None


def test_find_at_skips_unknown_vitrages(plan):
    plan.place("V-01", Point(0, 0))
    plan.place("Deleted", Point(0, 0))
    assert plan.find_at(Point(5, 5), SIZES).vitrage_id == "V-01"


def test_extent_and_counts(plan):
    assert plan.extent(SIZES) is None
    plan.place("V-01", Point(0, 0))
    plan.place("V-01", Point(200, 50))
    plan.place("V-02", Point(-10, 300))
    extent = plan.extent(SIZES)
    assert tuple(extent) == pytest.approx((-10, 0, 230, 315))
    assert plan.counts_by_vitrage() == {"V-01": 2, "V-02": 1}


def test_instances_property_is_a_copy(plan):
    plan.place("V-01")
    plan.instances.clear()
    assert len(plan) == 1


def test_walls(plan):
    wall = plan.add_wall(Point(0, 0), Point(300, 400), kind="interior")
    assert wall.kind == WallType.INTERIOR
    assert wall.length == pytest.approx(500)
    assert plan.get_wall(wall.wall_id) is wall
    with pytest.raises(InvalidPlacement):
        plan.get_wall("missing")


@pytest.mark.parametrize("kwargs", [
    {"x2": 0, "y2": 0},
    {"thickness": 0},
    {"kind": "glass"},
])
def test_invalid_wall_is_rejected(kwargs):
    values = dict(x1=0, y1=0, x2=100, y2=0)
    values.update(kwargs)
    with pytest.raises(ValueError):
        Wall(**values)


def test_attach_to_wall_and_delete_wall(plan):
    wall = plan.add_wall(Point(0, 0), Point(500, 0))
    other = plan.add_wall(Point(0, 0), Point(0, 500))
    on_wall = plan.place("V-01", wall_id=wall.wall_id)
    loose = plan.place("V-02")
    plan.attach_to_wall(loose.instance_id, wall.wall_id)
    room = plan.add_room("Living", [wall.wall_id, other.wall_id, wall.wall_id])
    assert room.wall_ids == [wall.wall_id, other.wall_id]
    assert plan.instances_on_wall(wall.wall_id) == [on_wall, loose]

    with pytest.raises(InvalidPlacement):
        plan.place("V-01", wall_id="missing")
    with pytest.raises(InvalidPlacement):
        plan.add_room("Kitchen", ["missing"])

    assert plan.delete_wall(wall.wall_id)
    assert not plan.delete_wall(wall.wall_id)
    # Vitrages stay placed but are detached.
    assert len(plan) == 2
    assert on_wall.wall_id is None and loose.wall_id is None
    assert room.wall_ids == [other.wall_id]

    plan.attach_to_wall(loose.instance_id, other.wall_id)
    plan.attach_to_wall(loose.instance_id, None)
    assert loose.wall_id is None


def test_rooms(plan):
    first = plan.add_room("  ", area=12.0)
    assert first.name == "Room 1"
    assert [r.name for r in plan.rooms] == ["Room 1"]
    assert plan.delete_room(first.room_id)
    assert not plan.delete_room(first.room_id)


def test_default_segment_id_is_prefilled_from_the_plan():
    plan = FloorPlan("Axis 1-4", corpus="2", section="B", floor=5)
    instance = plan.place("V-03")
    segment_id = plan.default_segment_id(instance.instance_id)
    assert segment_id.full_id == "X-2-B-5-X-X-V-03-X"


def test_set_segment_id(plan, grid_3x4):
    instance = plan.place("V-01")
    merge_cells(grid_3x4, [1, 2])
    plan.set_segment_id(instance.instance_id, grid_3x4, 1, SegmentID(object="ZIL18", apartment=" 12 "))
    assert instance.segment_ids[1].apartment == "12"

    with pytest.raises(CellHidden):
        plan.set_segment_id(instance.instance_id, grid_3x4, 2, SegmentID(object="ZIL18"))
    with pytest.raises(UnknownCell):
        plan.set_segment_id(instance.instance_id, grid_3x4, 13, SegmentID(object="ZIL18"))
    # An empty identifier clears the entry.
    plan.set_segment_id(instance.instance_id, grid_3x4, 1, SegmentID())
    assert instance.segment_ids == {}


def test_prune_segment_ids(plan, grid_3x4):
    first = plan.place("V-01")
    second = plan.place("V-02")
    for cell_id in (1, 2, 5):
        plan.set_segment_id(first.instance_id, grid_3x4, cell_id, SegmentID(object="A"))
    plan.set_segment_id(second.instance_id, grid_3x4, 2, SegmentID(object="B"))

    merge_cells(grid_3x4, [1, 2, 5, 6])

    assert plan.prune_segment_ids("V-01", grid_3x4) == 2
    assert list(first.segment_ids) == [1]
    assert list(second.segment_ids) == [2]


def test_plan_title():
    assert FloorPlan("Facade", corpus="2", section="B", floor=3).title == "Facade (2 / B, floor 3)"
    assert FloorPlan(floor=-1).title == "Plan (floor -1)"


@pytest.fixture
def plans():
    return [
        FloorPlan("Ground floor", corpus="1", section="A", floor=1),
        FloorPlan("First floor", corpus="1", section="A", floor=2),
        FloorPlan("Facade north", corpus="2", section="B", floor=1),
    ]


@pytest.mark.parametrize("filters, expected", [
    (PlanFilters(), ["Ground floor", "First floor", "Facade north"]),
    (PlanFilters(name="FLOOR"), ["Ground floor", "First floor"]),
    (PlanFilters(corpus="1", floor=2), ["First floor"]),
    (PlanFilters(section="B"), ["Facade north"]),
    (PlanFilters(floor=1, corpus="3"), []),
])
def test_filter_plans(plans, filters, expected):
    assert [p.name for p in filter_plans(plans, filters)] == expected


def test_filter_options_and_placement_totals(plans):
    assert unique_corpuses(plans) == ["1", "2"]
    assert unique_sections(plans) == ["A", "B"]
    assert unique_floors(plans) == [1, 2]
    plans[0].place("V-01")
    plans[2].place("V-01")
    plans[2].place("V-02")
    assert count_placements(plans) == {"V-01": 2, "V-02": 1}
    assert count_placements([]) == {}
