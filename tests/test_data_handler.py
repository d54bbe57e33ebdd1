import io
import json
from datetime import date
from unittest.mock import patch

import pytest

from vitrage.config import DEFAULT_PLACEMENT_SCALE
from vitrage.data_handler import (
    CELL_COLUMNS, deserialize_defects, deserialize_grid, deserialize_plan, grid_to_dataframe, load_project,
    parse_project, project_to_json, serialize_defects, serialize_grid, serialize_plan
)
from vitrage.defects import DEFAULT_DEFECT_TYPES, DefectRegistry
from vitrage.enums import CellAttribute, FillType, WallType
from vitrage.errors import VitrageError
from vitrage.grid import set_cell_attribute
from vitrage.merging import merge_cells, unmerge_cells
from vitrage.plan import FloorPlan, count_placements
from vitrage.segment_ids import SegmentID
from vitrage.transform import Point


class _Upload(io.BytesIO):
    name = "project.json"


def test_grid_round_trip_keeps_merges_and_stashed_labels(grid_3x4):
    set_cell_attribute(grid_3x4, 2, CellAttribute.LABEL, "B")
    set_cell_attribute(grid_3x4, 7, CellAttribute.FILL_TYPE, FillType.STEMALIT)
    set_cell_attribute(grid_3x4, 7, CellAttribute.FORMULA, "6M1")
    set_cell_attribute(grid_3x4, 3, CellAttribute.WIDTH, 1250)
    merge_cells(grid_3x4, [1, 2, 5, 6])

    data = json.loads(json.dumps(serialize_grid(grid_3x4)))
    restored = deserialize_grid(data)

    assert restored == grid_3x4
    assert restored.cell(2).stashed_label == "B"
    # Unmerging after a reload still restores the member's own label.
    unmerge_cells(restored, focused_id=1)
    assert restored.cell(2).label == "B"
    assert restored.cell(1).label is None


def test_fill_type_is_stored_by_value(grid_3x4):
    set_cell_attribute(grid_3x4, 1, CellAttribute.FILL_TYPE, FillType.DOOR)
    data = serialize_grid(grid_3x4)
    assert data['cells'][0]['fill_type'] == "Door block"
    assert data['rows'] == 3 and data['cols'] == 4


def test_missing_cells_are_created_fresh():
    restored = deserialize_grid({'rows': 2, 'cols': 2, 'cells': [
        {'row': 1, 'col': 1, 'fill_type': 'Casement', 'label': 'C'}
    ]})
    assert len(restored) == 4
    assert restored.cell(4).fill_type == FillType.CASEMENT
    assert restored.cell(1).fill_type == FillType.EMPTY


def test_hidden_cell_must_point_to_a_root(grid_3x4):
    data = serialize_grid(grid_3x4)
    data['cells'][1]['hidden'] = True
    data['cells'][1]['merged_into'] = 1
    with pytest.raises(VitrageError):
        deserialize_grid(data)


def _merged_payload(grid, *groups):
    for group in groups:
        merge_cells(grid, group)
    return json.loads(json.dumps(serialize_grid(grid)))


def test_overlapping_spans_are_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [1, 2], [3, 4])
    data['cells'][0]['merge_span']['col_span'] = 3
    with pytest.raises(VitrageError, match="overlap"):
        deserialize_grid(data)


def test_span_covering_a_visible_cell_is_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [1, 2])
    data['cells'][0]['merge_span']['row_span'] = 2
    with pytest.raises(VitrageError, match="covers cell 5"):
        deserialize_grid(data)


def test_span_past_the_grid_edge_is_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [3, 4])
    data['cells'][2]['merge_span']['col_span'] = 3
    with pytest.raises(VitrageError, match="past the edge"):
        deserialize_grid(data)


def test_hidden_cell_with_its_own_span_is_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [1, 2])
    data['cells'][1]['merge_span'] = {'row_span': 1, 'col_span': 1, 'synthetic_label': None}
    with pytest.raises(VitrageError, match="hidden but also carries"):
        deserialize_grid(data)


def test_hidden_cell_outside_its_root_is_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [1, 2])
    data['cells'][4]['hidden'] = True
    data['cells'][4]['merged_into'] = 1
    with pytest.raises(VitrageError, match="outside"):
        deserialize_grid(data)


def test_visible_cell_pointing_to_a_root_is_rejected(grid_3x4):
    data = _merged_payload(grid_3x4, [1, 2])
    data['cells'][4]['merged_into'] = 1
    with pytest.raises(VitrageError, match="claims"):
        deserialize_grid(data)


def test_grid_to_dataframe(merged_grid):
    df = grid_to_dataframe(merged_grid)
    assert list(df.columns) == CELL_COLUMNS
    assert len(df) == 12
    root = df.iloc[0]
    assert root['Row'] == 1 and root['Column'] == 1
    assert root['Row Span'] == 2 and root['Column Span'] == 2
    assert df.iloc[5]['Hidden']
    assert df.iloc[5]['Merged Into'] == 1


def test_plan_round_trip(grid_3x4):
    plan = FloorPlan("Facade A", corpus="2", section="B", floor=7)
    wall = plan.add_wall(Point(0, 0), Point(400, 0), thickness=25, kind=WallType.LOAD_BEARING)
    plan.add_room("Hall", [wall.wall_id], area=18.5)
    first = plan.place("V-01", Point(10, 20), wall_id=wall.wall_id)
    plan.rotate(first.instance_id)
    plan.set_segment_id(first.instance_id, grid_3x4, 3, SegmentID("ZIL18", "2", "B", "7", vitrage_name="V-01"))
    plan.place("V-02", Point(300, 40), scale=1.5)

    restored = deserialize_plan(json.loads(json.dumps(serialize_plan(plan))))

    assert (restored.plan_id, restored.name, restored.corpus, restored.section, restored.floor) == \
        (plan.plan_id, "Facade A", "2", "B", 7)
    assert [vars(i) for i in restored] == [vars(i) for i in plan]
    assert restored.get(first.instance_id).segment_ids[3].full_id == "ZIL18-2-B-7-X-X-V-01-X"
    assert restored.walls == plan.walls
    assert restored.rooms == plan.rooms


def test_plan_defaults_for_missing_fields():
    restored = deserialize_plan({'instances': [
        {'id': 'a', 'vitrage_id': 'V-01', 'x': 1, 'y': 2},
        {'id': 'b', 'vitrage_id': 'V-01', 'x': 1, 'y': 2, 'wall_id': 'gone'},
    ]})
    first, second = restored.instances
    assert first.scale == DEFAULT_PLACEMENT_SCALE
    assert first.rotation == 0
    # A reference to a wall that is not in the file is dropped.
    assert second.wall_id is None
    assert restored.floor == 1 and restored.walls == []


def test_defect_round_trip(dimensioned_grid):
    registry = DefectRegistry(DEFAULT_DEFECT_TYPES + ["Wrong glass"])
    registry.record_inspection("V-01", dimensioned_grid, 2, date(2024, 3, 1), "Ivanov", "Petrov",
                               ["Wrong glass", "Chips"], "replace")

    restored = deserialize_defects(json.loads(json.dumps(serialize_defects(registry))))

    assert restored.defect_types == registry.defect_types
    assert list(restored) == list(registry)


def test_project_file_round_trip(merged_grid, dimensioned_grid):
    first, second = FloorPlan("Plan 1"), FloorPlan("Plan 2", floor=2)
    first.place("V-02", Point(5, 5))
    second.place("V-02", Point(5, 5))
    second.place("V-01", Point(50, 5))
    registry = DefectRegistry()
    registry.record_inspection("V-02", dimensioned_grid, 1, date(2024, 1, 9), defects=["Cracks"])
    text = project_to_json({'V-01': merged_grid, 'V-02': dimensioned_grid}, [first, second], registry)

    project = load_project(_Upload(text.encode('utf-8')))

    assert project['vitrages']['V-01'] == merged_grid
    assert project['vitrages']['V-02'] == dimensioned_grid
    assert [p.name for p in project['plans']] == ["Plan 1", "Plan 2"]
    assert count_placements(project['plans']) == {'V-02': 2, 'V-01': 1}
    assert project['defects'].get("V-02", 1).defects == ["Cracks"]


def test_single_plan_project_files_still_load(grid_3x4):
    plan = FloorPlan("Old")
    plan.place("V-01", Point(0, 0))
    payload = {'version': 1, 'vitrages': {'V-01': serialize_grid(grid_3x4)}, 'plan': serialize_plan(plan)}

    project = parse_project(json.dumps(payload))

    assert [p.name for p in project['plans']] == ["Old"]
    assert len(project['defects']) == 0


def test_project_json_keeps_non_ascii_names(grid_3x4):
    text = project_to_json({'Витраж 1': grid_3x4}, [FloorPlan()])
    assert 'Витраж 1' in text


@patch("vitrage.data_handler.st")
def test_load_project_reports_invalid_json(mock_st):
    assert load_project(_Upload(b"{not json")) is None
    mock_st.error.assert_called_once()
    assert "project.json" in mock_st.error.call_args[0][0]


@pytest.mark.parametrize("payload", [
    {'vitrages': {'V-01': {'cols': 2}}},
    {'vitrages': {'V-01': {'rows': 0, 'cols': 2}}},
    {'plan': {'instances': [{'vitrage_id': 'V-01', 'x': 0, 'y': 0, 'rotation': 45, 'id': 'a'}]}},
    {'plans': [{'walls': [{'id': 'w', 'x1': 0, 'y1': 0, 'x2': 0, 'y2': 0}]}]},
    {'defects': {'records': [{'vitrage_id': 'V-01', 'segment': 1, 'inspection_date': '2024-13-40'}]}},
    {'vitrages': []},
])
@patch("vitrage.data_handler.st")
def test_load_project_reports_damaged_file(mock_st, payload):
    assert load_project(_Upload(json.dumps(payload).encode('utf-8'))) is None
    message = mock_st.error.call_args[0][0]
    assert "incomplete or damaged" in message
