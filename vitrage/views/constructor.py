import streamlit as st

from vitrage.data_handler import grid_to_dataframe
from vitrage.enums import CellAttribute, FillType
from vitrage.errors import VitrageError
from vitrage.grid import set_cell_attribute
from vitrage.layout import solve
from vitrage.merging import can_merge, merge_cells, unmerge_cells
from vitrage.plotting import create_vitrage_figure, create_vitrage_svg
from vitrage.state import SessionStore
from vitrage.transform import reset_view, zoom_in, zoom_out


def _selected_ids_from_event(event) -> list:
    """Segment ids picked in the chart, read from the marker customdata."""
    if not event:
        return []
    points = event.get("selection", {}).get("points", [])
    return [int(p["customdata"][0]) for p in points if p.get("customdata")]


def render_grid_controls(store: SessionStore):
    """Sidebar form for starting a new grid and saving the current one."""
    with st.sidebar.expander("🧱 Grid", expanded=True):
        with st.form(key="new_grid_form"):
            rows = st.number_input("Rows", min_value=1, max_value=20, value=store.grid.rows)
            cols = st.number_input("Columns", min_value=1, max_value=20, value=store.grid.cols)
            submitted = st.form_submit_button("Create New Grid")
        if submitted:
            try:
                store.new_vitrage(int(rows), int(cols))
            except VitrageError as e:
                st.error(str(e))

        store.vitrage_name = st.text_input("Vitrage Marking", value=store.vitrage_name)
        if st.button("💾 Save Vitrage", use_container_width=True):
            name = store.save_current_vitrage()
            st.success(f"Vitrage '{name}' saved.")

        if store.saved_vitrages:
            choice = st.selectbox("Saved Vitrages", list(store.saved_vitrages))
            c1, c2 = st.columns(2)
            if c1.button("Open", use_container_width=True):
                store.open_vitrage(choice)
                st.rerun()
            if c2.button("Delete", use_container_width=True):
                store.delete_vitrage(choice)
                st.rerun()


def _per_track(total_mm, span: int) -> str:
    return "" if total_mm is None else f"{total_mm / span:g}"


def render_segment_editor(store: SessionStore):
    """Attribute form for the focused segment."""
    focused = store.selection.focused
    if focused is None:
        st.info("Click a segment to edit it. Enable multi-select to pick segments for merging.")
        return

    cell = store.grid.owner_of(focused)
    span = f" (merged {cell.row_span} × {cell.col_span})" if cell.is_merge_root else ""
    st.subheader(f"Segment {cell.cell_id}{span}")

    # Merged segments store their total size; the form edits the size per column/row.
    current_width = _per_track(cell.real_width_mm, cell.col_span)
    current_height = _per_track(cell.real_height_mm, cell.row_span)
    width_suffix = " per column" if cell.col_span > 1 else ""
    height_suffix = " per row" if cell.row_span > 1 else ""

    with st.form(key=f"segment_form_{cell.cell_id}"):
        fill = st.selectbox("Fill Type", FillType.values(), index=FillType.values().index(cell.fill_type.value))
        c1, c2 = st.columns(2)
        width = c1.text_input(f"Width (mm){width_suffix}", value=current_width)
        height = c2.text_input(f"Height (mm){height_suffix}", value=current_height)
        label = st.text_input("Label", value=cell.label or "")
        formula = st.text_input("Glass Formula", value=cell.formula or "", help="e.g. 4M1-16-4M1")
        submitted = st.form_submit_button("Apply", type="primary")

    if not submitted:
        return

    edits = [
        (CellAttribute.FILL_TYPE, fill),
        (CellAttribute.LABEL, label),
        (CellAttribute.FORMULA, formula),
    ]
    # Dimensions propagate across the column/row, so only send them when edited.
    if width != current_width:
        edits.append((CellAttribute.WIDTH, width))
    if height != current_height:
        edits.append((CellAttribute.HEIGHT, height))

    try:
        for attribute, value in edits:
            set_cell_attribute(store.grid, cell.cell_id, attribute, value)
    except VitrageError as e:
        st.error(str(e))
        return
    store.report_bytes = None
    st.rerun()


def render_merge_controls(store: SessionStore):
    selection = store.selection
    c1, c2, c3 = st.columns(3, gap="small")
    if c1.button(f"Merge ({selection.count})", disabled=not can_merge(store.grid, selection.selected_ids),
                 use_container_width=True):
        try:
            result = merge_cells(store.grid, selection.selected_ids)
        except VitrageError as e:
            st.error(str(e))
        else:
            selection.clear()
            selection.select(result.root_id)
            st.rerun()
    if c2.button("Unmerge", use_container_width=True):
        try:
            result = unmerge_cells(store.grid, selection.selected_ids, selection.focused)
        except VitrageError as e:
            st.warning(str(e))
        else:
            selection.clear()
            st.success(f"{result.count} segment(s) restored.")
    if c3.button("Clear Selection", use_container_width=True):
        selection.clear()
        st.rerun()


def render_constructor(store: SessionStore):
    render_grid_controls(store)

    st.header(f"🪟 Vitrage {store.vitrage_name}")
    layout = solve(store.grid)
    width_mm, height_mm = layout.real_size_mm
    m1, m2, m3 = st.columns(3)
    m1.metric("Grid", f"{store.grid.rows} × {store.grid.cols}")
    m2.metric("Overall Size", f"{width_mm:g} × {height_mm:g} mm")
    m3.metric("Zoom", store.view_state.zoom_percentage)

    z1, z2, z3, z4 = st.columns([1, 1, 1, 3], gap="small")
    if z1.button("➕", help="Zoom in", use_container_width=True):
        store.view_state = zoom_in(store.view_state)
    if z2.button("➖", help="Zoom out", use_container_width=True):
        store.view_state = zoom_out(store.view_state)
    if z3.button("⟲", help="Reset view", use_container_width=True):
        store.view_state = reset_view(store.view_state)
    multi = z4.toggle("Multi-select (merge mode)", key="multi_select_mode")

    chart_col, editor_col = st.columns([3, 2], gap="medium")
    with chart_col:
        fig = create_vitrage_figure(store.grid, store.selection, store.view_state)
        event = st.plotly_chart(
            fig, use_container_width=True, on_select="rerun",
            selection_mode=("points", "box"), key="vitrage_chart",
        )
        picked = _selected_ids_from_event(event)
        # Each chart event is handled once; the chart keeps reporting it on later reruns.
        if picked and picked != st.session_state.get("last_picked"):
            st.session_state["last_picked"] = picked
            if len(picked) > 1:
                store.selection.clear()
                for cell_id in picked:
                    store.selection.select(cell_id, multi=True)
            else:
                store.selection.select(picked[0], multi=multi)
            st.rerun()

        st.download_button(
            "Download Drawing (SVG)", data=create_vitrage_svg(store.grid, store.vitrage_name),
            file_name=f"{store.vitrage_name}.svg", mime="image/svg+xml",
        )

    with editor_col:
        render_merge_controls(store)
        render_segment_editor(store)

    with st.expander("Segment Table"):
        st.dataframe(grid_to_dataframe(store.grid), hide_index=True, use_container_width=True)
