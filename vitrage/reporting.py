"""
Excel Reporting Module.

This module generates the specification workbook for one or more vitrages and
the flat segment list used by site teams. It uses xlsxwriter through pandas to
format the report with headers, column widths and a chart of the area per fill
type.
"""
import io
import logging
import re
from datetime import datetime
from typing import Mapping, Optional, Set, Tuple

import pandas as pd
import streamlit as st

from vitrage.config import CSV_SEPARATOR, REPORT_ACCENT_COLOR, ExcelReportStyle
from vitrage.data_handler import grid_to_dataframe, parse_project
from vitrage.defects import DefectRegistry
from vitrage.layout import solve
from vitrage.models import Grid
from vitrage.plan import count_placements
from vitrage.specification import build_item_table, project_summary, segment_id_table, summarize_by_fill_type

logger = logging.getLogger(__name__)

MISSING = '—'
NO_DEFECTS = 'No defects'

OVERVIEW_SHEET = 'Overview'
SEGMENT_ID_SHEET = 'Segment IDs'
RESERVED_SHEET_NAMES = (OVERVIEW_SHEET, SEGMENT_ID_SHEET)
MAX_SHEET_NAME = 31
INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")

DEFECT_CSV_COLUMNS = [
    'Vitrage', 'Grid', 'Segment', 'Fill Type', 'Width (mm)', 'Height (mm)', 'Formula',
    'Inspection Date', 'Inspector', 'Site Manager', 'Defects', 'Notes',
]

# ==============================================================================
# --- Helper Classes ---
# ==============================================================================

class ReportWriter:
    """Encapsulates Excel writing logic and formatting state."""

    def __init__(self, buffer: io.BytesIO):
        self.writer = pd.ExcelWriter(buffer, engine='xlsxwriter')
        self.workbook = self.writer.book
        self.formats = ExcelReportStyle.get_formats(self.workbook)

    def write_header(self, worksheet, title: str, subject: str):
        worksheet.set_row(0, 30)
        worksheet.merge_range('A1:D1', title, self.formats['title'])
        worksheet.write('A2', 'Vitrage:', self.formats['subtitle'])
        worksheet.write('B2', subject)
        worksheet.write('A3', 'Report Date:', self.formats['subtitle'])
        worksheet.write('B3', datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    def write_table(self, df: pd.DataFrame, sheet_name: str, startrow: int, column_formats: Optional[Mapping[str, str]] = None):
        """Writes df with styled headers at startrow; the data follows on the next row."""
        df.to_excel(self.writer, sheet_name=sheet_name, startrow=startrow + 1, header=False, index=False)
        worksheet = self.writer.sheets[sheet_name]
        for col_num, value in enumerate(df.columns.values):
            worksheet.write(startrow, col_num, value, self.formats['header'])
        for column, format_name in (column_formats or {}).items():
            if column in df.columns:
                index = df.columns.get_loc(column)
                worksheet.set_column(index, index, 14, self.formats[format_name])
        return worksheet

    def close(self):
        self.writer.close()

# ==============================================================================
# --- Report Generation Logic ---
# ==============================================================================

def _create_summary_sheet(report: ReportWriter, grid: Grid, vitrage_name: str):
    """Creates the 'Summary' sheet: parameters, per fill type totals and a chart."""
    sheet_name = 'Summary'
    worksheet = report.workbook.add_worksheet(sheet_name)
    report.write_header(worksheet, 'Vitrage Specification', vitrage_name)

    width_mm, height_mm = solve(grid).real_size_mm
    items = build_item_table(grid)
    param_df = pd.DataFrame({
        "Parameter": ["Rows", "Columns", "Segments", "Merged Segments", "Overall Width (mm)", "Overall Height (mm)"],
        "Value": [grid.rows, grid.cols, len(grid.visible_cells()), len(grid.roots()), round(width_mm), round(height_mm)],
    })
    param_start_row = 5
    worksheet.merge_range(f'A{param_start_row}:B{param_start_row}', 'Grid Parameters', report.formats['subtitle'])
    report.write_table(param_df, sheet_name, param_start_row)

    summary_start_row = param_start_row + len(param_df) + 3
    worksheet.merge_range(f'A{summary_start_row}:C{summary_start_row}', 'Area by Fill Type', report.formats['subtitle'])
    summary_df = summarize_by_fill_type(items)
    report.write_table(summary_df, sheet_name, summary_start_row, {'Area (m²)': 'area'})

    total_row = summary_start_row + len(summary_df) + 1
    worksheet.write(total_row, 0, 'Total', report.formats['subtitle'])
    worksheet.write(total_row, 1, int(summary_df['Count'].sum()) if not summary_df.empty else 0, report.formats['cell'])
    worksheet.write(total_row, 2, float(items['Area (m²)'].sum()) if not items.empty else 0.0, report.formats['area'])
    worksheet.autofit()

    if summary_df.empty:
        return

    chart = report.workbook.add_chart({'type': 'column'})
    first, last = summary_start_row + 1, summary_start_row + len(summary_df)
    chart.add_series({
        'name': 'Area by Fill Type',
        'categories': [sheet_name, first, 0, last, 0],
        'values': [sheet_name, first, 2, last, 2],
        'fill': {'color': REPORT_ACCENT_COLOR},
        'border': {'color': '#000000'},
        'data_labels': {'value': True, 'num_format': '0.00'},
    })
    chart.set_title({'name': 'Area by Fill Type (m²)'})
    chart.set_legend({'position': 'none'})
    chart.set_y_axis({'name': 'm²'})
    chart.set_style(10)
    worksheet.insert_chart('E2', chart, {'x_scale': 1.5, 'y_scale': 1.5})


def _create_item_sheet(report: ReportWriter, grid: Grid):
    sheet_name = 'Segments'
    items = build_item_table(grid)
    worksheet = report.write_table(items, sheet_name, 0, {
        'Width (mm)': 'mm', 'Height (mm)': 'mm', 'Area (m²)': 'area'
    })
    worksheet.set_column('C:C', 24)


def _create_grid_sheet(report: ReportWriter, grid: Grid):
    """Every cell of the grid, hidden members included."""
    sheet_name = 'Grid Cells'
    worksheet = report.write_table(grid_to_dataframe(grid), sheet_name, 0)
    worksheet.autofit()

# ==============================================================================
# --- Public API Function ---
# ==============================================================================

def generate_excel_report(grid: Grid, vitrage_name: str) -> bytes:
    """Specification workbook for one vitrage."""
    logger.info("Generating specification report for %s", vitrage_name)
    output_buffer = io.BytesIO()
    report = ReportWriter(output_buffer)
    _create_summary_sheet(report, grid, vitrage_name)
    _create_item_sheet(report, grid)
    _create_grid_sheet(report, grid)
    report.close()
    logger.info("Report for %s written (%d bytes)", vitrage_name, len(output_buffer.getvalue()))
    return output_buffer.getvalue()


def _sheet_name(name: str, used: Set[str]) -> str:
    """
    A valid, unused worksheet name for name. Excel forbids []:*?/\ and a leading
    or trailing apostrophe, caps names at 31 characters and compares them
    case-insensitively. used holds the lower-cased names taken so far.
    """
    base = INVALID_SHEET_CHARS.sub('_', name).strip().strip("'") or 'Vitrage'
    candidate = base[:MAX_SHEET_NAME]
    counter = 2
    while candidate.lower() in used:
        suffix = f"~{counter}"
        candidate = base[:MAX_SHEET_NAME - len(suffix)] + suffix
        counter += 1
    used.add(candidate.lower())
    return candidate


def generate_project_report(
    vitrages: Mapping[str, Grid],
    placements: Optional[Mapping[str, int]] = None,
    segment_ids: Optional[pd.DataFrame] = None,
) -> bytes:
    """
    Project workbook: an overview sheet, one item sheet per vitrage and, when
    segment identifiers are given, a sheet listing them.
    """
    logger.info("Generating project report for %d vitrage(s)", len(vitrages))
    output_buffer = io.BytesIO()
    report = ReportWriter(output_buffer)
    used = {name.lower() for name in RESERVED_SHEET_NAMES}
    overview = project_summary(vitrages, placements)
    worksheet = report.write_table(overview, OVERVIEW_SHEET, 0, {'Area (m²)': 'area', 'Placed Area (m²)': 'area'})
    worksheet.autofit()
    for name, grid in vitrages.items():
        report.write_table(build_item_table(grid), _sheet_name(name, used), 0, {
            'Width (mm)': 'mm', 'Height (mm)': 'mm', 'Area (m²)': 'area'
        })
    if segment_ids is not None and not segment_ids.empty:
        report.write_table(segment_ids, SEGMENT_ID_SHEET, 0).autofit()
    report.close()
    return output_buffer.getvalue()


def _format_value(value) -> str:
    if value is None or value == '':
        return MISSING
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def generate_csv(vitrages: Mapping[str, Grid]) -> bytes:
    """
    Semicolon separated segment list, one line per visible segment, prefixed with
    a UTF-8 BOM so spreadsheet applications detect the encoding.
    """
    records = []
    for name, grid in vitrages.items():
        for cell in grid.visible_cells():
            records.append({
                'Vitrage': name,
                'Grid': f"{grid.rows} × {grid.cols}",
                'Segment': cell.cell_id,
                'Fill Type': cell.fill_type.value,
                'Width (mm)': _format_value(cell.real_width_mm),
                'Height (mm)': _format_value(cell.real_height_mm),
                'Label': _format_value(cell.label),
                'Formula': _format_value(cell.formula),
            })
    columns = ['Vitrage', 'Grid', 'Segment', 'Fill Type', 'Width (mm)', 'Height (mm)', 'Label', 'Formula']
    df = pd.DataFrame(records, columns=columns)
    csv_text = df.to_csv(index=False, sep=CSV_SEPARATOR, lineterminator='\n')
    logger.debug("CSV export: %d row(s)", len(df))
    return ('\ufeff' + csv_text).encode('utf-8')


def generate_defect_csv(vitrages: Mapping[str, Grid], registry: DefectRegistry) -> bytes:
    """Inspection results for every visible segment, in the same format as the segment list."""
    records = []
    for name, grid in vitrages.items():
        for cell in grid.visible_cells():
            record = registry.get(name, cell.cell_id)
            records.append({
                'Vitrage': name,
                'Grid': f"{grid.rows} × {grid.cols}",
                'Segment': cell.cell_id,
                'Fill Type': cell.fill_type.value,
                'Width (mm)': _format_value(cell.real_width_mm),
                'Height (mm)': _format_value(cell.real_height_mm),
                'Formula': _format_value(cell.formula),
                'Inspection Date': record.inspection_date.isoformat() if record else MISSING,
                'Inspector': _format_value(record.inspector) if record else MISSING,
                'Site Manager': _format_value(record.site_manager) if record else MISSING,
                'Defects': ', '.join(record.defects) if record and record.defects else NO_DEFECTS,
                'Notes': _format_value(record.notes) if record else MISSING,
            })
    df = pd.DataFrame(records, columns=DEFECT_CSV_COLUMNS)
    csv_text = df.to_csv(index=False, sep=CSV_SEPARATOR, lineterminator='\n')
    logger.debug("Defect CSV export: %d row(s)", len(df))
    return ('\ufeff' + csv_text).encode('utf-8')


@st.cache_data(show_spinner=False)
def generate_project_downloads(project_json: str) -> Tuple[bytes, bytes, bytes]:
    """
    Project workbook, segment list and inspection list for a serialized project.
    Cached on the project text, so reruns that change nothing reuse the files.
    """
    project = parse_project(project_json)
    vitrages, plans = project['vitrages'], project['plans']
    logger.info("Building project downloads for %d vitrage(s) on %d plan(s)", len(vitrages), len(plans))
    workbook = generate_project_report(vitrages, count_placements(plans), segment_id_table(plans, vitrages))
    return workbook, generate_csv(vitrages), generate_defect_csv(vitrages, project['defects'])
