import io
from typing import Optional

import streamlit as st
from PIL import Image

from vitrage.config import DEFAULT_WALL_THICKNESS, PLAN_CANVAS_HEIGHT, PLAN_CANVAS_WIDTH
from vitrage.enums import WallType
from vitrage.errors import VitrageError
from vitrage.plan import PlanFilters, filter_plans, unique_corpuses, unique_floors, unique_sections
from vitrage.plotting import create_plan_figure
from vitrage.segment_ids import ID_FIELD_LABELS, ID_FIELDS, SegmentID, collect_id_options
from vitrage.state import SessionStore
from vitrage.transform import (
    Point, fit_background, reset_view, scale_background_at,
    with_background, without_background, world_to_background, zoom_in, zoom_out
)

CANVAS_CENTER = Point(PLAN_CANVAS_WIDTH / 2, PLAN_CANVAS_HEIGHT / 2)
ANY = "All"


def _background_layer(store: SessionStore):
    """Decoded background image and its fit at the current scale, or (None, None)."""
    if not store.background_image or not store.plan_view_state.has_background:
        return None, None
    image = Image.open(io.BytesIO(store.background_image))
    fit = fit_background(image.width, image.height, PLAN_CANVAS_WIDTH, PLAN_CANVAS_HEIGHT,
                         store.plan_view_state.background_scale)
    return image, fit


def render_background_controls(store: SessionStore):
    with st.sidebar.expander("🗺️ Plan Background", expanded=False):
        uploaded = st.file_uploader("Floor or facade plan", type=["png", "jpg", "jpeg"])
        if uploaded is not None and uploaded.getvalue() != store.background_image:
            try:
                image = Image.open(io.BytesIO(uploaded.getvalue()))
                fit = fit_background(image.width, image.height, PLAN_CANVAS_WIDTH, PLAN_CANVAS_HEIGHT)
            except (OSError, ValueError) as e:
                st.error(f"Could not read '{uploaded.name}': {e}")
            else:
                store.background_image = uploaded.getvalue()
                store.plan_view_state = with_background(store.plan_view_state, 1.0, fit.offset)

        if store.plan_view_state.has_background:
            scale = st.slider("Background scale", 0.1, 3.0, float(store.plan_view_state.background_scale), 0.05)
            if scale != store.plan_view_state.background_scale:
                image = Image.open(io.BytesIO(store.background_image))
                fit = fit_background(image.width, image.height, PLAN_CANVAS_WIDTH, PLAN_CANVAS_HEIGHT, scale)
                store.plan_view_state = scale_background_at(store.plan_view_state, CANVAS_CENTER, scale, fit.offset)
            if st.button("Remove background", use_container_width=True):
                store.background_image = None
                store.plan_view_state = without_background(store.plan_view_state)
                st.rerun()


def render_plan_picker(store: SessionStore):
    """Sidebar list of plans with filters, plus the form for a new plan."""
    with st.sidebar.expander("🏢 Plans", expanded=True):
        plans = store.plans
        name = st.text_input("Search", key="plan_filter_name")
        f1, f2, f3 = st.columns(3)
        corpus = f1.selectbox("Building", [ANY] + unique_corpuses(plans), key="plan_filter_corpus")
        section = f2.selectbox("Section", [ANY] + unique_sections(plans), key="plan_filter_section")
        floor = f3.selectbox("Floor", [ANY] + unique_floors(plans), key="plan_filter_floor")
        filters = PlanFilters(
            name=name,
            corpus="" if corpus == ANY else corpus,
            section="" if section == ANY else section,
            floor=None if floor == ANY else floor,
        )
        matching = filter_plans(plans, filters)
        if not matching:
            st.caption("No plan matches the filters.")
        else:
            ids = [plan.plan_id for plan in matching]
            titles = {plan.plan_id: plan.title for plan in matching}
            index = ids.index(store.plan.plan_id) if store.plan.plan_id in ids else 0
            choice = st.selectbox("Plan", ids, index=index, format_func=titles.get)
            c1, c2 = st.columns(2)
            if c1.button("Open", use_container_width=True, disabled=choice == store.plan.plan_id):
                store.open_plan(choice)
                st.rerun()
            if c2.button("Delete", use_container_width=True, disabled=len(plans) <= 1):
                store.delete_plan(choice)
                st.rerun()

        with st.form(key="new_plan_form", clear_on_submit=True):
            new_name = st.text_input("Plan name")
            n1, n2, n3 = st.columns(3)
            new_corpus = n1.text_input("Building")
            new_section = n2.text_input("Section")
            new_floor = n3.number_input("Floor", min_value=-5, max_value=200, value=1, step=1)
            if st.form_submit_button("Create Plan"):
                store.add_plan(new_name, new_corpus, new_section, int(new_floor))
                st.rerun()


def render_wall_controls(store: SessionStore):
    """Walls drawn on the active plan and the rooms they enclose."""
    plan = store.plan
    with st.sidebar.expander("🧱 Walls & Rooms", expanded=False):
        with st.form(key="new_wall_form"):
            c1, c2 = st.columns(2)
            x1 = c1.number_input("Start X", value=0.0, step=10.0)
            y1 = c2.number_input("Start Y", value=0.0, step=10.0)
            x2 = c1.number_input("End X", value=100.0, step=10.0)
            y2 = c2.number_input("End Y", value=0.0, step=10.0)
            thickness = st.number_input("Thickness", min_value=1.0, value=DEFAULT_WALL_THICKNESS, step=1.0)
            kind = st.selectbox("Wall type", WallType.values())
            submitted = st.form_submit_button("Add Wall")
        if submitted:
            try:
                plan.add_wall(Point(x1, y1), Point(x2, y2), thickness, WallType(kind))
            except VitrageError as e:
                st.error(str(e))

        walls = {wall.wall_id: f"{wall.kind.value}, {wall.length:.0f} long" for wall in plan.walls}
        if walls:
            wall_id = st.selectbox("Walls", list(walls), format_func=walls.get)
            if st.button("Delete Wall", use_container_width=True):
                plan.delete_wall(wall_id)
                st.rerun()

        st.markdown("---")
        with st.form(key="new_room_form", clear_on_submit=True):
            room_name = st.text_input("Room name")
            room_walls = st.multiselect("Bounding walls", list(walls), format_func=walls.get)
            area = st.number_input("Area (m²)", min_value=0.0, value=0.0, step=0.5, help="0 leaves it unset")
            room_submitted = st.form_submit_button("Add Room")
        if room_submitted:
            try:
                plan.add_room(room_name, room_walls, area or None)
            except VitrageError as e:
                st.error(str(e))

        rooms = {room.room_id: room.name for room in plan.rooms}
        if rooms:
            room_id = st.selectbox("Rooms", list(rooms), format_func=rooms.get)
            if st.button("Delete Room", use_container_width=True):
                plan.delete_room(room_id)
                st.rerun()


def render_segment_ids(store: SessionStore, instance_id: str):
    """Identifier form for one segment of the selected instance."""
    instance = store.plan.get(instance_id)
    grid = store.saved_vitrages.get(instance.vitrage_id)
    if grid is None:
        return
    with st.expander(f"🏷️ Segment IDs ({len(instance.segment_ids)})", expanded=False):
        cell_ids = [cell.cell_id for cell in grid.visible_cells()]
        cell_id = st.selectbox("Segment", cell_ids, key=f"sid_cell_{instance_id}")
        current = instance.segment_ids.get(cell_id) or store.plan.default_segment_id(instance_id)
        options = collect_id_options(i.segment_ids for plan in store.plans for i in plan)

        with st.form(key=f"sid_form_{instance_id}_{cell_id}"):
            values = {}
            for name in ID_FIELDS:
                used = options[name]
                values[name] = st.text_input(
                    ID_FIELD_LABELS[name], value=getattr(current, name),
                    help=f"Used so far: {', '.join(used)}" if used else None,
                )
            submitted = st.form_submit_button("Save ID")
        if submitted:
            segment_id = SegmentID(**values)
            try:
                store.plan.set_segment_id(instance_id, grid, cell_id, segment_id)
            except VitrageError as e:
                st.error(str(e))
            else:
                st.rerun()
        if cell_id in instance.segment_ids:
            st.code(instance.segment_ids[cell_id].full_id)


def render_instance_editor(store: SessionStore, instance_id: Optional[str]):
    if instance_id is None:
        st.info("Click a placed vitrage to select it.")
        return
    try:
        instance = store.plan.get(instance_id)
    except KeyError:
        store.selected_instance = None
        return

    st.subheader(f"{instance.vitrage_id}")
    st.caption(f"Rotation {instance.rotation}°, scale {instance.scale:.2f}")
    with st.form(key=f"move_{instance_id}"):
        c1, c2 = st.columns(2)
        x = c1.number_input("X", value=float(instance.x), step=5.0)
        y = c2.number_input("Y", value=float(instance.y), step=5.0)
        if st.form_submit_button("Move"):
            store.plan.move(instance_id, x, y)
            st.rerun()

    b1, b2, b3, b4 = st.columns(4, gap="small")
    if b1.button("⟳ 90°", use_container_width=True):
        store.plan.rotate(instance_id)
        st.rerun()
    if b2.button("➕", help="Enlarge", use_container_width=True):
        store.plan.wheel_scale(instance_id, -1)
        st.rerun()
    if b3.button("➖", help="Shrink", use_container_width=True):
        store.plan.wheel_scale(instance_id, 1)
        st.rerun()
    if b4.button("🗑️", help="Delete", use_container_width=True):
        store.plan.delete(instance_id)
        store.selected_instance = None
        st.rerun()

    walls = {wall.wall_id: f"{wall.kind.value}, {wall.length:.0f} long" for wall in store.plan.walls}
    if walls:
        options = [None] + list(walls)
        index = options.index(instance.wall_id) if instance.wall_id in options else 0
        wall_id = st.selectbox("Wall", options, index=index, key=f"wall_{instance_id}",
                               format_func=lambda w: "Not attached" if w is None else walls[w])
        if wall_id != instance.wall_id:
            store.plan.attach_to_wall(instance_id, wall_id)

    render_segment_ids(store, instance_id)


def render_plan_view(store: SessionStore):
    render_plan_picker(store)
    render_wall_controls(store)
    render_background_controls(store)
    st.header(f"📐 {store.plan.title}")

    sizes = store.vitrage_sizes()
    if not sizes:
        st.info("Save at least one vitrage in the constructor to place it on the plan.")

    p1, p2, p3, p4, p5 = st.columns([2, 1, 1, 1, 1], gap="small")
    choice = p1.selectbox("Vitrage", list(sizes), label_visibility="collapsed", disabled=not sizes)
    if p2.button("Place", type="primary", disabled=not sizes, use_container_width=True):
        try:
            instance = store.plan.place(choice)
        except VitrageError as e:
            st.error(str(e))
        else:
            store.selected_instance = instance.instance_id
    if p3.button("➕", help="Zoom in", use_container_width=True):
        store.plan_view_state = zoom_in(store.plan_view_state, CANVAS_CENTER)
    if p4.button("➖", help="Zoom out", use_container_width=True):
        store.plan_view_state = zoom_out(store.plan_view_state, CANVAS_CENTER)
    if p5.button("⟲", help="Reset view", use_container_width=True):
        store.plan_view_state = reset_view(store.plan_view_state)

    image, fit = _background_layer(store)
    fig = create_plan_figure(
        store.plan, sizes, store.plan_view_state, store.selected_instance,
        background_source=image, background_fit=fit,
    )

    chart_col, editor_col = st.columns([3, 1], gap="medium")
    with chart_col:
        event = st.plotly_chart(fig, use_container_width=True, on_select="rerun",
                                selection_mode="points", key=f"plan_chart_{store.plan.plan_id}")
        points = event.get("selection", {}).get("points", []) if event else []
        if points:
            # Chart points are in world space; instances are stored in plan-local space.
            local = world_to_background(store.plan_view_state, Point(points[0]["x"], points[0]["y"]))
            hit = store.plan.find_at(local, sizes)
            picked = hit.instance_id if hit else (points[0].get("customdata") or [None])[0]
            if picked != store.selected_instance:
                store.selected_instance = picked
                st.rerun()
        st.caption(f"Zoom {store.plan_view_state.zoom_percentage} · {len(store.plan)} placed")

    with editor_col:
        render_instance_editor(store, store.selected_instance)

    counts = store.plan.counts_by_vitrage()
    totals = store.placement_counts()
    if counts:
        st.dataframe(
            [{"Vitrage": name, "Placed": count, "All Plans": totals.get(name, 0)} for name, count in counts.items()],
            hide_index=True, use_container_width=True,
        )
