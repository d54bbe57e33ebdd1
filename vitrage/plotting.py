"""
Plotting and Visualization Module.
Draws the vitrage grid and the plan from solved layouts. Coordinates are the
layout's design units with Y pointing down, as on the drawing board.
"""
from html import escape
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import plotly.graph_objects as go

from vitrage.config import (
    BACKGROUND_COLOR, DEFAULT_FILL_COLOR, DEFECT_FILL_COLOR, FILL_COLORS, FRAME_COLOR, LABEL_COLOR, MULLION_WIDTH,
    MULTI_SELECTED_FILL_COLOR, PLAN_CANVAS_HEIGHT, PLAN_CANVAS_WIDTH, PLAN_INSTANCE_COLOR,
    PLAN_SELECTED_COLOR, SEGMENT_STROKE_COLOR, SELECTED_FILL_COLOR, WALL_COLOR, WALL_LINE_WIDTHS
)
from vitrage.enums import FillType
from vitrage.interaction import SelectionState
from vitrage.layout import CellBox, LayoutResult, cell_boxes, solve
from vitrage.models import Grid
from vitrage.plan import FloorPlan, display_size
from vitrage.transform import (
    BackgroundFit, Point, ViewState, background_to_world, rotated_corners, screen_to_world
)

# ==============================================================================
# --- Private Helper Functions ---
# ==============================================================================

def _fill_color(box: CellBox, selection: Optional[SelectionState]) -> str:
    if selection is not None:
        if selection.is_focused(box.cell_id):
            return SELECTED_FILL_COLOR
        if selection.is_multi_selected(box.cell_id):
            return MULTI_SELECTED_FILL_COLOR
    return FILL_COLORS.get(box.fill_type.value, DEFAULT_FILL_COLOR)


def _cell_caption(box: CellBox, grid: Grid) -> str:
    cell = grid.cell(box.cell_id)
    caption = box.label or str(box.cell_id)
    if cell.real_width_mm and cell.real_height_mm:
        caption += f"<br>{cell.real_width_mm:g} × {cell.real_height_mm:g}"
    return caption


def _view_ranges(view: ViewState, width: float, height: float) -> Tuple[List[float], List[float]]:
    """World-space axis ranges showing a width x height screen through the view."""
    top_left = screen_to_world(view, Point(0.0, 0.0))
    bottom_right = screen_to_world(view, Point(width, height))
    # Y-down: the y axis runs from the bottom edge to the top edge.
    return [top_left.x, bottom_right.x], [bottom_right.y, top_left.y]


def _base_layout(fig: go.Figure, x_range: List[float], y_range: List[float], height: int) -> None:
    fig.update_layout(
        plot_bgcolor=BACKGROUND_COLOR,
        paper_bgcolor=BACKGROUND_COLOR,
        margin=dict(l=10, r=10, t=30, b=10),
        height=height,
        showlegend=False,
        dragmode='pan',
        clickmode='event+select',
    )
    fig.update_xaxes(range=x_range, visible=False, showgrid=False, zeroline=False)
    fig.update_yaxes(range=y_range, visible=False, showgrid=False, zeroline=False, scaleanchor='x', scaleratio=1)

# ==============================================================================
# --- Public API Functions: Vitrage ---
# ==============================================================================

def create_grid_shapes(
    grid: Grid,
    layout: LayoutResult,
    selection: Optional[SelectionState] = None,
    defective_ids: Optional[Iterable[int]] = None,
) -> List[Dict[str, Any]]:
    """
    One filled rectangle per visible segment, outlined with the mullion stroke,
    plus the outer frame. Merged segments are drawn once over their whole span.
    Segments in defective_ids get a red overlay.
    """
    defective = set(defective_ids or ())
    shapes = []
    for box in cell_boxes(grid, layout):
        shapes.append(dict(
            type="rect", x0=box.x, y0=box.y, x1=box.x + box.width, y1=box.y + box.height,
            fillcolor=_fill_color(box, selection),
            line=dict(color=FRAME_COLOR, width=MULLION_WIDTH / 2),
            layer='below',
        ))
        # Inner glazing edge.
        inset = MULLION_WIDTH / 2
        if box.width > 2 * inset and box.height > 2 * inset:
            shapes.append(dict(
                type="rect", x0=box.x + inset, y0=box.y + inset,
                x1=box.x + box.width - inset, y1=box.y + box.height - inset,
                line=dict(color=SEGMENT_STROKE_COLOR, width=1), layer='below',
            ))
        if box.cell_id in defective:
            shapes.append(dict(
                type="rect", x0=box.x, y0=box.y, x1=box.x + box.width, y1=box.y + box.height,
                fillcolor=DEFECT_FILL_COLOR, line=dict(width=0), layer='above',
            ))

    shapes.append(dict(
        type="rect",
        x0=layout.padding, y0=layout.padding,
        x1=layout.padding + layout.total_width, y1=layout.padding + layout.total_height,
        line=dict(color=FRAME_COLOR, width=MULLION_WIDTH),
        layer='above',
    ))
    return shapes


def create_label_annotations(grid: Grid, layout: LayoutResult) -> List[Dict[str, Any]]:
    annotations = []
    for box in cell_boxes(grid, layout):
        x, y = box.center
        annotations.append(dict(
            x=x, y=y, text=_cell_caption(box, grid), showarrow=False,
            font=dict(color=LABEL_COLOR, size=11),
        ))
    return annotations


def create_dimension_annotations(layout: LayoutResult) -> List[Dict[str, Any]]:
    """Overall real size written above and beside the frame."""
    width_mm, height_mm = layout.real_size_mm
    return [
        dict(x=layout.padding + layout.total_width / 2, y=layout.padding / 2,
             text=f"{width_mm:g} mm", showarrow=False, font=dict(color=FRAME_COLOR, size=12)),
        dict(x=layout.padding / 2, y=layout.padding + layout.total_height / 2,
             text=f"{height_mm:g} mm", showarrow=False, textangle=-90, font=dict(color=FRAME_COLOR, size=12)),
    ]


def create_segment_marker_trace(grid: Grid, layout: LayoutResult) -> go.Scatter:
    """
    An invisible marker at every segment centre. Clicking or box-selecting the
    markers reports the segment ids through customdata.
    """
    boxes = cell_boxes(grid, layout)
    return go.Scatter(
        x=[b.center[0] for b in boxes],
        y=[b.center[1] for b in boxes],
        mode='markers',
        marker=dict(size=18, color='rgba(0,0,0,0)'),
        customdata=[[b.cell_id, b.fill_type.value, b.row_span, b.col_span] for b in boxes],
        hovertemplate=(
            "<b>Segment %{customdata[0]}</b><br>"
            "Fill: %{customdata[1]}<br>"
            "Span: %{customdata[2]} × %{customdata[3]}"
            "<extra></extra>"
        ),
        name='segments',
    )


def create_vitrage_figure(
    grid: Grid,
    selection: Optional[SelectionState] = None,
    view: Optional[ViewState] = None,
    title: str = "",
    defective_ids: Optional[Iterable[int]] = None,
) -> go.Figure:
    layout = solve(grid)
    view = view or ViewState()
    fig = go.Figure(data=[create_segment_marker_trace(grid, layout)])
    fig.update_layout(
        shapes=create_grid_shapes(grid, layout, selection, defective_ids),
        annotations=create_label_annotations(grid, layout) + create_dimension_annotations(layout),
        title=dict(text=title, x=0.5),
    )
    x_range, y_range = _view_ranges(view, layout.canvas_width, layout.canvas_height)
    _base_layout(fig, x_range, y_range, height=int(max(layout.canvas_height, 400)))
    return fig

# ==============================================================================
# --- Public API Functions: Plan ---
# ==============================================================================

def create_wall_shapes(plan: FloorPlan, view: ViewState) -> List[Dict[str, Any]]:
    """Wall centre lines, drawn through the background layer like the instances."""
    shapes = []
    for wall in plan.walls:
        start = background_to_world(view, wall.start)
        end = background_to_world(view, wall.end)
        shapes.append(dict(
            type="line", x0=start.x, y0=start.y, x1=end.x, y1=end.y,
            line=dict(color=WALL_COLOR, width=WALL_LINE_WIDTHS.get(wall.kind.value, 2)),
            layer='below',
        ))
    return shapes


def create_plan_figure(
    plan: FloorPlan,
    sizes: Mapping[str, Tuple[float, float]],
    view: Optional[ViewState] = None,
    selected_id: Optional[str] = None,
    background_source: Optional[Any] = None,
    background_fit: Optional[BackgroundFit] = None,
) -> go.Figure:
    """
    Placed vitrages as rotated outlines. Positions are plan-local and are taken
    through the background layer into world space before drawing.
    """
    view = view or ViewState()
    fig = go.Figure()

    if background_source is not None and background_fit is not None:
        fig.add_layout_image(dict(
            source=background_source, xref='x', yref='y',
            x=background_fit.offset.x, y=background_fit.offset.y,
            sizex=background_fit.width, sizey=background_fit.height,
            sizing='stretch', opacity=0.5, layer='below',
        ))

    for instance in plan:
        size = sizes.get(instance.vitrage_id)
        if size is None:
            continue
        width, height = display_size(instance, size)
        corners = [background_to_world(view, c) for c in rotated_corners(instance.x, instance.y, width, height, instance.rotation)]
        color = PLAN_SELECTED_COLOR if instance.instance_id == selected_id else PLAN_INSTANCE_COLOR
        fig.add_trace(go.Scatter(
            x=[c.x for c in corners] + [corners[0].x],
            y=[c.y for c in corners] + [corners[0].y],
            mode='lines', fill='toself', line=dict(color=color, width=2),
            fillcolor='rgba(33, 150, 243, 0.15)',
            customdata=[[instance.instance_id, instance.vitrage_id]] * 5,
            hovertemplate="<b>%{customdata[1]}</b><extra></extra>",
            name=instance.vitrage_id,
        ))
        center_x = sum(c.x for c in corners) / 4
        center_y = sum(c.y for c in corners) / 4
        fig.add_annotation(x=center_x, y=center_y, text=escape(instance.vitrage_id), showarrow=False,
                           font=dict(color=color, size=10))

    fig.update_layout(shapes=create_wall_shapes(plan, view))
    x_range, y_range = _view_ranges(view, PLAN_CANVAS_WIDTH, PLAN_CANVAS_HEIGHT)
    _base_layout(fig, x_range, y_range, height=PLAN_CANVAS_HEIGHT)
    return fig

# ==============================================================================
# --- SVG Export ---
# ==============================================================================

def create_vitrage_svg(grid: Grid, name: str = "") -> str:
    """Standalone SVG drawing of the vitrage with labels and overall dimensions."""
    layout = solve(grid)
    width, height = layout.canvas_width, layout.canvas_height
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
        f'viewBox="0 0 {width:g} {height:g}">',
        f'<rect x="0" y="0" width="{width:g}" height="{height:g}" fill="{BACKGROUND_COLOR}"/>',
    ]
    if name:
        parts.append(f'<title>{escape(name)}</title>')
    for box in cell_boxes(grid, layout):
        fill = FILL_COLORS.get(box.fill_type.value, DEFAULT_FILL_COLOR)
        parts.append(
            f'<rect x="{box.x:g}" y="{box.y:g}" width="{box.width:g}" height="{box.height:g}" '
            f'fill="{fill}" stroke="{FRAME_COLOR}" stroke-width="{MULLION_WIDTH / 2:g}" '
            f'data-segment="{box.cell_id}"/>'
        )
        cx, cy = box.center
        text = escape(box.label or str(box.cell_id))
        parts.append(
            f'<text x="{cx:g}" y="{cy:g}" fill="{LABEL_COLOR}" font-size="12" '
            f'text-anchor="middle" dominant-baseline="middle">{text}</text>'
        )
        if box.fill_type != FillType.EMPTY:
            parts.append(
                f'<text x="{cx:g}" y="{cy + 14:g}" fill="{LABEL_COLOR}" font-size="9" '
                f'text-anchor="middle">{escape(box.fill_type.value)}</text>'
            )
    parts.append(
        f'<rect x="{layout.padding:g}" y="{layout.padding:g}" width="{layout.total_width:g}" '
        f'height="{layout.total_height:g}" fill="none" stroke="{FRAME_COLOR}" stroke-width="{MULLION_WIDTH:g}"/>'
    )
    width_mm, height_mm = layout.real_size_mm
    parts.append(
        f'<text x="{layout.padding + layout.total_width / 2:g}" y="{layout.padding / 2:g}" '
        f'fill="{FRAME_COLOR}" font-size="12" text-anchor="middle">{width_mm:g} mm</text>'
    )
    parts.append(
        f'<text x="{layout.padding / 2:g}" y="{layout.padding + layout.total_height / 2:g}" '
        f'fill="{FRAME_COLOR}" font-size="12" text-anchor="middle" '
        f'transform="rotate(-90 {layout.padding / 2:g} {layout.padding + layout.total_height / 2:g})">'
        f'{height_mm:g} mm</text>'
    )
    parts.append('</svg>')
    return "\n".join(parts)
