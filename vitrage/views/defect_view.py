import pandas as pd
import streamlit as st

from vitrage.errors import VitrageError
from vitrage.interaction import SelectionState
from vitrage.plotting import create_vitrage_figure
from vitrage.reporting import generate_defect_csv
from vitrage.state import SessionStore


def _picked_segment(event):
    if not event:
        return None
    points = event.get("selection", {}).get("points", [])
    ids = [int(p["customdata"][0]) for p in points if p.get("customdata")]
    return ids[0] if ids else None


def render_catalogue(store: SessionStore):
    with st.sidebar.expander("🔎 Defect Types", expanded=False):
        st.caption(", ".join(store.defects.defect_types))
        with st.form(key="defect_type_form", clear_on_submit=True):
            name = st.text_input("New defect type")
            submitted = st.form_submit_button("Add")
        if submitted:
            if store.defects.add_defect_type(name):
                st.success(f"Added '{name.strip()}'.")
            else:
                st.warning("The name is empty or already in the list.")


def render_inspection_form(store: SessionStore, vitrage_id: str, cell_id: int):
    grid = store.saved_vitrages[vitrage_id]
    draft = store.defects.draft(vitrage_id, cell_id)
    st.subheader(f"Segment {cell_id}")

    with st.form(key=f"inspection_{vitrage_id}_{cell_id}"):
        inspection_date = st.date_input("Inspection Date", value=draft.inspection_date)
        c1, c2 = st.columns(2)
        inspector = c1.text_input("Inspector", value=draft.inspector)
        site_manager = c2.text_input("Site Manager", value=draft.site_manager)
        defects = st.multiselect("Defects", store.defects.defect_types, default=draft.defects)
        notes = st.text_area("Notes", value=draft.notes)
        submitted = st.form_submit_button("Save Inspection", type="primary")

    if submitted:
        try:
            store.defects.record_inspection(vitrage_id, grid, cell_id, inspection_date, inspector,
                                            site_manager, defects, notes)
        except VitrageError as e:
            st.error(str(e))
        else:
            st.rerun()

    if store.defects.get(vitrage_id, cell_id) and st.button("Remove Record", use_container_width=True):
        store.defects.remove(vitrage_id, cell_id)
        st.rerun()


def render_defect_view(store: SessionStore):
    render_catalogue(store)
    st.header("🛠️ Defect Tracking")

    if not store.saved_vitrages:
        st.info("Save a vitrage in the constructor before recording inspections.")
        return

    vitrage_id = st.selectbox("Vitrage", list(store.saved_vitrages), key="defect_vitrage")
    grid = store.saved_vitrages[vitrage_id]
    summary = store.defects.summary(vitrage_id, grid)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Status", summary.status.value)
    m2.metric("Inspected", f"{summary.inspected} / {summary.segments}")
    m3.metric("Defective Segments", summary.defective)
    m4.metric("Defects Found", summary.total_defects)

    state_key = f"defect_segment_{vitrage_id}"
    focused = st.session_state.get(state_key)
    if focused is not None and (focused not in grid or grid.cell(focused).hidden):
        focused = None

    chart_col, form_col = st.columns([3, 2], gap="medium")
    with chart_col:
        selection = SelectionState(focused=focused)
        fig = create_vitrage_figure(grid, selection, title=vitrage_id,
                                    defective_ids=store.defects.defective_ids(vitrage_id, grid))
        event = st.plotly_chart(fig, use_container_width=True, on_select="rerun",
                                selection_mode="points", key=f"defect_chart_{vitrage_id}")
        picked = _picked_segment(event)
        if picked is not None and picked != focused:
            st.session_state[state_key] = picked
            st.rerun()

    with form_col:
        if focused is None:
            st.info("Click a segment to record its inspection.")
        else:
            render_inspection_form(store, vitrage_id, focused)

    records = store.defects.records_for(vitrage_id)
    if records:
        st.subheader("Inspection Records")
        table = pd.DataFrame([{
            'Segment': r.cell_id,
            'Date': r.inspection_date,
            'Inspector': r.inspector,
            'Site Manager': r.site_manager,
            'Defects': ", ".join(r.defects) or "No defects",
            'Notes': r.notes,
        } for r in records])
        st.dataframe(table, hide_index=True, use_container_width=True)

    counts = store.defects.defect_counts(vitrage_id)
    if not counts.empty:
        st.subheader("Defects by Type")
        st.bar_chart(counts, x='Defect', y='Count')

    st.download_button("Download Inspections (CSV)",
                       data=generate_defect_csv({vitrage_id: grid}, store.defects),
                       file_name=f"Inspections_{vitrage_id}.csv", mime="text/csv")
