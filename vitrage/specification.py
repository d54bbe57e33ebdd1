"""
Specification Module.
Builds the bill of segments for a vitrage: one item per visible segment with
both real dimensions, grouped per fill type with areas in square metres.
"""
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from vitrage.enums import FillType
from vitrage.models import Grid
from vitrage.plan import FloorPlan

MM2_PER_M2 = 1_000_000

ITEM_COLUMNS = ['Segment', 'Fill Type', 'Label', 'Width (mm)', 'Height (mm)', 'Area (m²)']
SUMMARY_COLUMNS = ['Fill Type', 'Count', 'Area (m²)']
SEGMENT_ID_COLUMNS = ['Plan', 'Vitrage', 'Instance', 'Segment', 'Full ID', 'Complete']


def segment_area_m2(width_mm: float, height_mm: float) -> float:
    return width_mm * height_mm / MM2_PER_M2


def build_item_table(grid: Grid) -> pd.DataFrame:
    """
    Visible segments that carry both a real width and height, in row-major order.
    Unlabelled segments are named '<fill type> <n>', n counting within the type.
    """
    counters: Dict[FillType, int] = {}
    records = []
    for cell in grid.visible_cells():
        if not cell.real_width_mm or not cell.real_height_mm:
            continue
        counters[cell.fill_type] = counters.get(cell.fill_type, 0) + 1
        records.append({
            'Segment': cell.cell_id,
            'Fill Type': cell.fill_type.value,
            'Label': cell.label or f"{cell.fill_type.value} {counters[cell.fill_type]}",
            'Width (mm)': cell.real_width_mm,
            'Height (mm)': cell.real_height_mm,
            'Area (m²)': segment_area_m2(cell.real_width_mm, cell.real_height_mm),
        })
    return pd.DataFrame(records, columns=ITEM_COLUMNS)


def summarize_by_fill_type(items: pd.DataFrame) -> pd.DataFrame:
    """Count and area per fill type, in FillType declaration order."""
    if items.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    summary = (
        items.groupby('Fill Type', sort=False)
        .agg(Count=('Segment', 'count'), Area=('Area (m²)', 'sum'))
        .reset_index()
        .rename(columns={'Area': 'Area (m²)'})
    )
    order = {value: index for index, value in enumerate(FillType.values())}
    summary = summary.sort_values('Fill Type', key=lambda s: s.map(order)).reset_index(drop=True)
    return summary[SUMMARY_COLUMNS]


def total_area_m2(grid: Grid) -> float:
    items = build_item_table(grid)
    return float(items['Area (m²)'].sum()) if not items.empty else 0.0


def project_summary(vitrages: Mapping[str, Grid], placements: Optional[Mapping[str, int]] = None) -> pd.DataFrame:
    """
    One row per vitrage with its grid size, segment count and area. When placement
    counts are given, the total area over all placed copies is added.
    """
    records = []
    for name, grid in vitrages.items():
        area = total_area_m2(grid)
        record = {
            'Vitrage': name,
            'Grid': f"{grid.rows} x {grid.cols}",
            'Segments': len(grid.visible_cells()),
            'Area (m²)': area,
        }
        if placements is not None:
            record['Placed'] = placements.get(name, 0)
            record['Placed Area (m²)'] = area * record['Placed']
        records.append(record)
    return pd.DataFrame(records)


def segment_id_table(plans: Iterable[FloorPlan], vitrages: Mapping[str, Grid]) -> pd.DataFrame:
    """
    Site identifiers of every placed segment. Entries whose vitrage was deleted
    or whose segment has since been merged away are left out.
    """
    records = []
    for plan in plans:
        for instance in plan:
            grid = vitrages.get(instance.vitrage_id)
            if grid is None:
                continue
            for cell_id, segment_id in sorted(instance.segment_ids.items()):
                if cell_id not in grid or grid.cell(cell_id).hidden:
                    continue
                records.append({
                    'Plan': plan.title,
                    'Vitrage': instance.vitrage_id,
                    'Instance': instance.instance_id,
                    'Segment': cell_id,
                    'Full ID': segment_id.full_id,
                    'Complete': segment_id.is_complete,
                })
    return pd.DataFrame(records, columns=SEGMENT_ID_COLUMNS)
