"""
Configuration and Styling Module.

This module contains all configuration and styling variables for the application,
including the design canvas, view limits, placement defaults and the colour theme
used when drawing segments.
"""
from typing import Dict

# --- Design Canvas (abstract design units) ---
# A freshly created vitrage is laid out on this canvas; every column starts at
# DESIGN_WIDTH / cols and every row at DESIGN_HEIGHT / rows.
DESIGN_WIDTH = 600
DESIGN_HEIGHT = 400
# Whitespace around the grid in the rendered drawing.
PADDING = 50
# Real-world millimetres represented by one design unit (1:5 scale).
MM_PER_UNIT = 5
# Thickness of the drawn mullions (rigels) between segments.
MULLION_WIDTH = 8

# --- View Limits ---
MIN_ZOOM = 0.1
MAX_ZOOM = 5.0
ZOOM_STEP = 1.2
# Wheel zoom factors: scrolling down zooms out, scrolling up zooms in.
WHEEL_ZOOM_OUT = 0.9
WHEEL_ZOOM_IN = 1.1

MIN_BACKGROUND_SCALE = 0.1
MAX_BACKGROUND_SCALE = 3.0

# --- Plan Placement ---
DEFAULT_PLACEMENT_X = 100.0
DEFAULT_PLACEMENT_Y = 100.0
DEFAULT_PLACEMENT_SCALE = 0.5
MIN_INSTANCE_SCALE = 0.1
MAX_INSTANCE_SCALE = 5.0
# Placed vitrages are drawn at a tenth of their design size on the plan.
PLAN_DISPLAY_FACTOR = 0.1
ALLOWED_ROTATIONS = (0, 90, 180, 270)
DEFAULT_WALL_THICKNESS = 10.0
# Drawn line width of each wall kind on the plan, in pixels.
WALL_LINE_WIDTHS: Dict[str, float] = {'exterior': 5, 'interior': 2, 'load-bearing': 7}

PLAN_CANVAS_WIDTH = 1000
PLAN_CANVAS_HEIGHT = 700

# --- Style Theme ---
FRAME_COLOR = '#2C3E50'      # Outer frame and mullions.
SEGMENT_STROKE_COLOR = '#87CEEB'
SELECTED_FILL_COLOR = 'rgba(74, 144, 226, 0.4)'
MULTI_SELECTED_FILL_COLOR = 'rgba(255, 165, 0, 0.4)'
DEFAULT_FILL_COLOR = 'rgba(211, 211, 211, 0.2)'
LABEL_COLOR = '#2C3E50'
BACKGROUND_COLOR = '#F8F8F8'
PLAN_INSTANCE_COLOR = '#2196F3'
PLAN_SELECTED_COLOR = '#4CAF50'
WALL_COLOR = '#5D6D7E'
DEFECT_FILL_COLOR = 'rgba(231, 76, 60, 0.35)'

# Keyed by FillType value. Unknown or empty types fall back to DEFAULT_FILL_COLOR.
FILL_COLORS: Dict[str, str] = {
    'Glass unit': 'rgba(135, 206, 235, 0.2)',
    'Stemalit': 'rgba(147, 112, 219, 0.2)',
    'Vent grille': 'rgba(144, 238, 144, 0.2)',
    'Casement': 'rgba(255, 192, 203, 0.2)',
    'Door block': 'rgba(139, 69, 19, 0.2)',
    'Sandwich panel': 'rgba(255, 228, 181, 0.2)',
}

# --- Reporting Constants ---
REPORT_HEADER_COLOR = '#2C3E50'
REPORT_ACCENT_COLOR = '#87CEEB'
CSV_SEPARATOR = ';'


class ExcelReportStyle:
    """Cell formats shared by every sheet of the specification workbook."""

    @staticmethod
    def get_formats(workbook) -> Dict[str, object]:
        return {
            'title': workbook.add_format({
                'bold': True, 'font_size': 16, 'font_color': REPORT_HEADER_COLOR, 'valign': 'vcenter'
            }),
            'subtitle': workbook.add_format({'bold': True, 'font_size': 11}),
            'header': workbook.add_format({
                'bold': True, 'text_wrap': True, 'valign': 'top', 'fg_color': REPORT_HEADER_COLOR,
                'font_color': '#FFFFFF', 'border': 1
            }),
            'cell': workbook.add_format({'border': 1}),
            'area': workbook.add_format({'border': 1, 'num_format': '0.000'}),
            'mm': workbook.add_format({'border': 1, 'num_format': '0'}),
        }
