"""
Data Handling Module.
Converts grids, plans and inspection records to plain dictionaries for saving
and loading projects, and flattens a grid into a pandas DataFrame for tabular display.
"""
import json
import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import pandas as pd
import streamlit as st

from vitrage.config import DEFAULT_PLACEMENT_SCALE, DEFAULT_WALL_THICKNESS
from vitrage.defects import DefectRegistry, InspectionRecord
from vitrage.enums import FillType, WallType
from vitrage.errors import VitrageError
from vitrage.models import Cell, Grid, MergeSpan
from vitrage.plan import FloorPlan, PlacedInstance, Room, Wall
from vitrage.segment_ids import SegmentID

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

CELL_COLUMNS = [
    'Segment', 'Row', 'Column', 'Fill Type', 'Width (mm)', 'Height (mm)',
    'Label', 'Formula', 'Row Span', 'Column Span', 'Hidden', 'Merged Into'
]


# ==============================================================================
# --- Grid ---
# ==============================================================================

def _serialize_span(span: Optional[MergeSpan]) -> Optional[Dict[str, Any]]:
    if span is None:
        return None
    return {'row_span': span.row_span, 'col_span': span.col_span, 'synthetic_label': span.synthetic_label}


def serialize_grid(grid: Grid) -> Dict[str, Any]:
    """Every attribute of every cell, fill types stored by value."""
    return {
        'version': FORMAT_VERSION,
        'rows': grid.rows,
        'cols': grid.cols,
        'cells': [
            {
                'id': cell.cell_id,
                'row': cell.row,
                'col': cell.col,
                'fill_type': cell.fill_type.value,
                'real_width_mm': cell.real_width_mm,
                'real_height_mm': cell.real_height_mm,
                'label': cell.label,
                'formula': cell.formula,
                'merge_span': _serialize_span(cell.merge_span),
                'hidden': cell.hidden,
                'merged_into': cell.merged_into,
                'stashed_label': cell.stashed_label,
            }
            for cell in grid
        ],
    }


def deserialize_grid(data: Mapping[str, Any]) -> Grid:
    """
    Rebuilds a grid from serialize_grid output.
    Cells missing from the payload are created fresh; ids are re-derived from positions.
    """
    rows, cols = int(data['rows']), int(data['cols'])
    cells = {cell.cell_id: cell for cell in Grid(rows, cols)}
    lookup = Grid(rows, cols, cells)
    for raw in data.get('cells', []):
        row, col = int(raw['row']), int(raw['col'])
        cell_id = lookup.cell_id(row, col)
        span = raw.get('merge_span')
        merged_into = raw.get('merged_into')
        cell = Cell(
            cell_id=cell_id,
            row=row,
            col=col,
            fill_type=FillType.from_value(raw.get('fill_type')),
            real_width_mm=raw.get('real_width_mm'),
            real_height_mm=raw.get('real_height_mm'),
            label=raw.get('label'),
            formula=raw.get('formula'),
            merge_span=MergeSpan(int(span['row_span']), int(span['col_span']), span.get('synthetic_label')) if span else None,
            hidden=bool(raw.get('hidden', False)),
            merged_into=int(merged_into) if merged_into is not None else None,
            stashed_label=raw.get('stashed_label'),
        )
        cells[cell_id] = cell

    grid = Grid(rows, cols, cells)
    _check_merges(grid)
    return grid


def _check_merges(grid: Grid) -> None:
    """
    Every position has exactly one owner: a root span stays inside the grid,
    never overlaps another span, and covers only cells hidden into it.
    """
    owners: Dict[Tuple[int, int], int] = {}
    for root in grid.roots():
        if root.hidden:
            raise VitrageError(f"Cell {root.cell_id} is hidden but also carries a merge span.")
        if root.row + root.row_span > grid.rows or root.col + root.col_span > grid.cols:
            raise VitrageError(
                f"Merged segment {root.cell_id} ({root.row_span}x{root.col_span}) runs past the "
                f"edge of the {grid.rows}x{grid.cols} grid."
            )
        for row in range(root.row, root.row + root.row_span):
            for col in range(root.col, root.col + root.col_span):
                if (row, col) in owners:
                    raise VitrageError(f"Merged segments {owners[(row, col)]} and {root.cell_id} overlap.")
                owners[(row, col)] = root.cell_id

    for cell in grid:
        owner = owners.get(cell.position)
        if cell.hidden and owner != cell.merged_into:
            raise VitrageError(f"Cell {cell.cell_id} is merged into {cell.merged_into} but lies outside that merged segment.")
        if not cell.hidden and cell.merged_into is not None:
            raise VitrageError(f"Visible cell {cell.cell_id} claims to be merged into {cell.merged_into}.")
        if not cell.hidden and owner is not None and owner != cell.cell_id:
            raise VitrageError(f"Merged segment {owner} covers cell {cell.cell_id}, which is not merged into it.")


def grid_to_dataframe(grid: Grid) -> pd.DataFrame:
    """One row per cell, hidden members included, in row-major order."""
    records = [
        {
            'Segment': cell.cell_id,
            'Row': cell.row + 1,
            'Column': cell.col + 1,
            'Fill Type': cell.fill_type.value,
            'Width (mm)': cell.real_width_mm,
            'Height (mm)': cell.real_height_mm,
            'Label': cell.label,
            'Formula': cell.formula,
            'Row Span': cell.row_span,
            'Column Span': cell.col_span,
            'Hidden': cell.hidden,
            'Merged Into': cell.merged_into,
        }
        for cell in grid
    ]
    return pd.DataFrame(records, columns=CELL_COLUMNS)


# ==============================================================================
# --- Plan ---
# ==============================================================================

def serialize_plan(plan: FloorPlan) -> Dict[str, Any]:
    return {
        'version': FORMAT_VERSION,
        'id': plan.plan_id,
        'name': plan.name,
        'corpus': plan.corpus,
        'section': plan.section,
        'floor': plan.floor,
        'walls': [
            {
                'id': wall.wall_id,
                'x1': wall.x1, 'y1': wall.y1, 'x2': wall.x2, 'y2': wall.y2,
                'thickness': wall.thickness,
                'type': wall.kind.value,
            }
            for wall in plan.walls
        ],
        'rooms': [
            {'id': room.room_id, 'name': room.name, 'walls': list(room.wall_ids), 'area': room.area}
            for room in plan.rooms
        ],
        'instances': [
            {
                'id': instance.instance_id,
                'vitrage_id': instance.vitrage_id,
                'x': instance.x,
                'y': instance.y,
                'rotation': instance.rotation,
                'scale': instance.scale,
                'wall_id': instance.wall_id,
                # JSON object keys are strings.
                'segment_ids': {str(cell_id): sid.to_dict() for cell_id, sid in instance.segment_ids.items()},
            }
            for instance in plan
        ],
    }


def deserialize_plan(data: Mapping[str, Any]) -> FloorPlan:
    walls = [
        Wall(
            x1=float(raw['x1']), y1=float(raw['y1']), x2=float(raw['x2']), y2=float(raw['y2']),
            thickness=float(raw.get('thickness', DEFAULT_WALL_THICKNESS)),
            kind=WallType(raw.get('type', WallType.EXTERIOR.value)),
            wall_id=raw['id'],
        )
        for raw in data.get('walls', [])
    ]
    wall_ids = {wall.wall_id for wall in walls}
    rooms = [
        Room(name=raw.get('name', ''), wall_ids=[w for w in raw.get('walls', []) if w in wall_ids],
             area=raw.get('area'), room_id=raw['id'])
        for raw in data.get('rooms', [])
    ]
    instances = [
        PlacedInstance(
            vitrage_id=raw['vitrage_id'],
            x=float(raw['x']),
            y=float(raw['y']),
            rotation=int(raw.get('rotation', 0)),
            scale=float(raw.get('scale', DEFAULT_PLACEMENT_SCALE)),
            wall_id=raw.get('wall_id') if raw.get('wall_id') in wall_ids else None,
            instance_id=raw['id'],
            segment_ids={int(k): SegmentID.from_dict(v) for k, v in raw.get('segment_ids', {}).items()},
        )
        for raw in data.get('instances', [])
    ]
    return FloorPlan(
        name=data.get('name', ''),
        instances=instances,
        corpus=data.get('corpus', ''),
        section=data.get('section', ''),
        floor=int(data.get('floor', 1)),
        walls=walls,
        rooms=rooms,
        plan_id=data.get('id'),
    )

# ==============================================================================
# --- Defects ---
# ==============================================================================

def serialize_defects(registry: DefectRegistry) -> Dict[str, Any]:
    return {
        'defect_types': registry.defect_types,
        'records': [
            {
                'vitrage_id': record.vitrage_id,
                'segment': record.cell_id,
                'inspection_date': record.inspection_date.isoformat(),
                'inspector': record.inspector,
                'site_manager': record.site_manager,
                'defects': list(record.defects),
                'notes': record.notes,
            }
            for record in registry
        ],
    }


def deserialize_defects(data: Mapping[str, Any]) -> DefectRegistry:
    records = [
        InspectionRecord(
            vitrage_id=raw['vitrage_id'],
            cell_id=int(raw['segment']),
            inspection_date=date.fromisoformat(raw['inspection_date']),
            inspector=raw.get('inspector', ''),
            site_manager=raw.get('site_manager', ''),
            defects=list(raw.get('defects', [])),
            notes=raw.get('notes', ''),
        )
        for raw in data.get('records', [])
    ]
    return DefectRegistry(data.get('defect_types'), records)

# ==============================================================================
# --- Project Files ---
# ==============================================================================

def project_to_json(
    vitrages: Mapping[str, Grid],
    plans: Sequence[FloorPlan],
    defects: Optional[DefectRegistry] = None,
) -> str:
    payload = {
        'version': FORMAT_VERSION,
        'vitrages': {name: serialize_grid(grid) for name, grid in vitrages.items()},
        'plans': [serialize_plan(plan) for plan in plans],
        'defects': serialize_defects(defects or DefectRegistry()),
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def parse_project(text) -> Dict[str, Any]:
    """
    Parses project_to_json output into {'vitrages', 'plans', 'defects'}.
    Files with a single 'plan' entry are read as a one-plan project.
    Raises json.JSONDecodeError, or AttributeError, KeyError, TypeError or
    ValueError for content that does not have the project shape.
    """
    payload = json.loads(text)
    vitrages = {name: deserialize_grid(data) for name, data in payload.get('vitrages', {}).items()}
    raw_plans = payload.get('plans')
    if raw_plans is None:
        raw_plans = [payload['plan']] if 'plan' in payload else []
    plans = [deserialize_plan(data) for data in raw_plans]
    defects = deserialize_defects(payload.get('defects', {}))
    return {'vitrages': vitrages, 'plans': plans, 'defects': defects}


def load_project(uploaded_file) -> Optional[Dict[str, Any]]:
    """
    Reads an uploaded project file.
    Returns the parse_project result, or None after reporting the problem in the UI.
    """
    file_name = getattr(uploaded_file, 'name', 'project')
    try:
        project = parse_project(uploaded_file.read())
    except json.JSONDecodeError:
        st.error(f"'{file_name}' is not a valid project file.")
        return None
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        st.error(f"Project file '{file_name}' is incomplete or damaged: {e}")
        return None

    placements = sum(len(plan) for plan in project['plans'])
    logger.info("Loaded project '%s' with %d vitrage(s), %d plan(s) and %d placement(s)",
                file_name, len(project['vitrages']), len(project['plans']), placements)
    return project
