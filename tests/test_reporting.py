import io
from datetime import date

import openpyxl
import pandas as pd
import pytest

from vitrage.data_handler import CELL_COLUMNS, project_to_json
from vitrage.defects import DefectRegistry
from vitrage.enums import CellAttribute
from vitrage.grid import set_cell_attribute
from vitrage.plan import FloorPlan
from vitrage.reporting import (
    generate_csv, generate_defect_csv, generate_excel_report, generate_project_downloads, generate_project_report
)
from vitrage.segment_ids import SegmentID
from vitrage.specification import ITEM_COLUMNS


def test_excel_report_sheets(dimensioned_grid):
    data = generate_excel_report(dimensioned_grid, "V-01")
    workbook = openpyxl.load_workbook(io.BytesIO(data))
    assert workbook.sheetnames == ['Summary', 'Segments', 'Grid Cells']


def test_summary_sheet_contents(dimensioned_grid):
    workbook = openpyxl.load_workbook(io.BytesIO(generate_excel_report(dimensioned_grid, "V-01")))
    ws = workbook['Summary']
    assert ws['A1'].value == 'Vitrage Specification'
    assert ws['B2'].value == 'V-01'
    # Parameters table: header on row 6, values below.
    assert ws['A6'].value == 'Parameter'
    assert ws['A7'].value == 'Rows' and ws['B7'].value == 2
    assert ws['B11'].value == 3000
    # Per fill type table and its total.
    assert [ws.cell(row=15, column=c).value for c in (1, 2, 3)] == ['Fill Type', 'Count', 'Area (m²)']
    assert ws['A16'].value == 'Empty' and ws['B16'].value == 3
    assert ws['A18'].value == 'Total'
    assert ws['B18'].value == 4
    assert ws['C18'].value == pytest.approx(4.5)


def test_item_and_grid_sheets(dimensioned_grid):
    data = generate_excel_report(dimensioned_grid, "V-01")
    items = pd.read_excel(io.BytesIO(data), sheet_name='Segments')
    cells = pd.read_excel(io.BytesIO(data), sheet_name='Grid Cells')
    assert list(items.columns) == ITEM_COLUMNS
    assert items['Area (m²)'].tolist() == pytest.approx([2.0, 1.0, 1.0, 0.5])
    assert list(cells.columns) == CELL_COLUMNS
    assert len(cells) == 4


def test_excel_report_without_dimensions(merged_grid):
    workbook = openpyxl.load_workbook(io.BytesIO(generate_excel_report(merged_grid, "Empty")))
    ws = workbook['Summary']
    assert ws['A16'].value == 'Total'
    assert ws['B16'].value == 0


def test_project_report_has_sheet_per_vitrage(dimensioned_grid, grid_3x4):
    long_name = "Facade vitrage with a very long marking"
    data = generate_project_report({'V-01': dimensioned_grid, long_name: grid_3x4}, {'V-01': 2})
    workbook = openpyxl.load_workbook(io.BytesIO(data))
    assert workbook.sheetnames == ['Overview', 'V-01', long_name[:31]]
    overview = pd.read_excel(io.BytesIO(data), sheet_name='Overview')
    assert overview['Placed'].tolist() == [2, 0]
    assert overview['Placed Area (m²)'].tolist() == pytest.approx([9.0, 0.0])


def test_csv_export(dimensioned_grid, merged_grid):
    set_cell_attribute(dimensioned_grid, 2, CellAttribute.FORMULA, "4M1-16-4M1")
    data = generate_csv({'V-01': dimensioned_grid, 'V-02': merged_grid})

    assert data.startswith(b'\xef\xbb\xbf')
    lines = data.decode('utf-8-sig').splitlines()
    assert lines[0] == "Vitrage;Grid;Segment;Fill Type;Width (mm);Height (mm);Label;Formula"
    assert lines[1] == "V-01;2 × 2;1;Glass unit;1000;2000;—;—"
    assert lines[2] == "V-01;2 × 2;2;Empty;500;2000;—;4M1-16-4M1"
    # Visible segments only: 4 + 9.
    assert len(lines) == 1 + 4 + 9
    assert lines[5].startswith("V-02;3 × 4;1;Empty;—;—;M4;")


def test_csv_export_of_nothing():
    lines = generate_csv({}).decode('utf-8-sig').splitlines()
    assert len(lines) == 1


def test_project_report_sheet_names_are_valid_and_unique(dimensioned_grid, grid_3x4, merged_grid):
    shared = "Ground floor facade vitrage, axis"
    vitrages = {
        'V/01': dimensioned_grid,
        'Door [A]': grid_3x4,
        'overview': merged_grid,
        shared + " 1-2": dimensioned_grid,
        shared + " 2-3": grid_3x4,
        "'?*'": merged_grid,
    }
    data = generate_project_report(vitrages)
    workbook = openpyxl.load_workbook(io.BytesIO(data))
    names = workbook.sheetnames

    assert names[0] == 'Overview'
    assert names[1:] == ['V_01', 'Door _A_', 'overview~2', shared[:31], shared[:29] + '~2', '__']
    assert len({name.lower() for name in names}) == len(names)
    assert all(len(name) <= 31 for name in names)
    # The overview still lists every vitrage under its own name.
    overview = pd.read_excel(io.BytesIO(data), sheet_name='Overview')
    assert overview['Vitrage'].tolist() == list(vitrages)


def test_project_report_segment_id_sheet(dimensioned_grid):
    ids = pd.DataFrame({'Vitrage': ['Segment IDs'], 'Full ID': ['A-1-X-X-X-X-X-X']})
    data = generate_project_report({'Segment IDs': dimensioned_grid}, segment_ids=ids)
    workbook = openpyxl.load_workbook(io.BytesIO(data))
    assert workbook.sheetnames == ['Overview', 'Segment IDs~2', 'Segment IDs']
    sheet = pd.read_excel(io.BytesIO(data), sheet_name='Segment IDs')
    assert sheet['Full ID'].tolist() == ['A-1-X-X-X-X-X-X']


def test_defect_csv_export(dimensioned_grid, merged_grid):
    registry = DefectRegistry()
    registry.record_inspection('V-01', dimensioned_grid, 1, date(2024, 5, 6), "Ivanov", "Petrov", ["Chips", "Cracks"], "north side")
    registry.record_inspection('V-01', dimensioned_grid, 2, date(2024, 5, 7), "Ivanov")
    data = generate_defect_csv({'V-01': dimensioned_grid, 'V-02': merged_grid}, registry)

    assert data.startswith(b'\xef\xbb\xbf')
    lines = data.decode('utf-8-sig').splitlines()
    assert lines[0] == (
        "Vitrage;Grid;Segment;Fill Type;Width (mm);Height (mm);Formula;"
        "Inspection Date;Inspector;Site Manager;Defects;Notes"
    )
    assert lines[1] == "V-01;2 × 2;1;Glass unit;1000;2000;—;2024-05-06;Ivanov;Petrov;Chips, Cracks;north side"
    assert lines[2] == "V-01;2 × 2;2;Empty;500;2000;—;2024-05-07;Ivanov;—;No defects;—"
    assert lines[3].endswith(";—;—;—;No defects;—")
    assert len(lines) == 1 + 4 + 9


def test_project_downloads_from_project_json(dimensioned_grid):
    plan = FloorPlan("Facade")
    instance = plan.place("V-01")
    plan.place("V-01")
    plan.set_segment_id(instance.instance_id, dimensioned_grid, 1, SegmentID(object="ZIL18"))
    registry = DefectRegistry()
    registry.record_inspection("V-01", dimensioned_grid, 1, date(2024, 2, 2), defects=["Chips"])
    text = project_to_json({'V-01': dimensioned_grid}, [plan], registry)

    workbook, segments_csv, inspections_csv = generate_project_downloads(text)

    book = openpyxl.load_workbook(io.BytesIO(workbook))
    assert book.sheetnames == ['Overview', 'V-01', 'Segment IDs']
    overview = pd.read_excel(io.BytesIO(workbook), sheet_name='Overview')
    assert overview['Placed'].tolist() == [2]
    assert segments_csv == generate_csv({'V-01': dimensioned_grid})
    assert "2024-02-02" in inspections_csv.decode('utf-8-sig')
    # Same project text, same files.
    assert generate_project_downloads(text) == (workbook, segments_csv, inspections_csv)
