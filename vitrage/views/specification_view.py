import matplotlib.colors as mcolors
import streamlit as st

from vitrage.config import PLAN_INSTANCE_COLOR, REPORT_ACCENT_COLOR
from vitrage.data_handler import project_to_json
from vitrage.reporting import generate_excel_report, generate_project_downloads
from vitrage.specification import build_item_table, project_summary, segment_id_table, summarize_by_fill_type
from vitrage.state import SessionStore


def render_specification_view(store: SessionStore):
    st.header("📋 Specification")

    vitrages = dict(store.saved_vitrages)
    # The grid on the constructor is listed even before it is saved.
    vitrages.setdefault(store.vitrage_name, store.grid)

    overview = project_summary(vitrages, store.placement_counts())
    total_area = overview['Area (m²)'].sum() if not overview.empty else 0.0
    placed_area = overview['Placed Area (m²)'].sum() if not overview.empty else 0.0
    m1, m2, m3 = st.columns(3)
    m1.metric("Vitrages", len(vitrages))
    m2.metric("Total Area", f"{total_area:.2f} m²")
    m3.metric("Placed Area", f"{placed_area:.2f} m²")

    st.dataframe(overview.style.format({'Area (m²)': '{:.3f}', 'Placed Area (m²)': '{:.3f}'}),
                 hide_index=True, use_container_width=True)

    name = st.selectbox("Vitrage", list(vitrages))
    grid = vitrages[name]
    items = build_item_table(grid)

    if items.empty:
        st.warning("No segment of this vitrage has both a width and a height yet.")
    else:
        theme_cmap = mcolors.LinearSegmentedColormap.from_list("theme_cmap", [REPORT_ACCENT_COLOR, PLAN_INSTANCE_COLOR])
        c1, c2 = st.columns([3, 2], gap="medium")
        with c1:
            st.subheader("Segments")
            st.dataframe(
                items.style.format({'Area (m²)': '{:.3f}', 'Width (mm)': '{:.0f}', 'Height (mm)': '{:.0f}'})
                .background_gradient(cmap=theme_cmap, subset=['Area (m²)']),
                hide_index=True, use_container_width=True,
            )
        with c2:
            st.subheader("By Fill Type")
            summary = summarize_by_fill_type(items)
            st.dataframe(
                summary.style.format({'Area (m²)': '{:.3f}'}).background_gradient(cmap='Blues', subset=['Count']),
                hide_index=True, use_container_width=True,
            )

    st.markdown("---")
    ids = segment_id_table(store.plans, vitrages)
    if not ids.empty:
        with st.expander(f"🏷️ Segment IDs ({len(ids)})", expanded=False):
            st.dataframe(ids.drop(columns=['Instance']), hide_index=True, use_container_width=True)

    workbook, segments_csv, inspections_csv = generate_project_downloads(
        project_to_json(vitrages, store.plans, store.defects)
    )
    d1, d2, d3, d4 = st.columns(4, gap="medium")
    with d1:
        if st.button("📦 Generate Excel Report", type="primary", use_container_width=True):
            with st.spinner("Generating report..."):
                store.report_bytes = generate_excel_report(grid, name)
            st.success("Report generated successfully!")
        if store.report_bytes:
            st.download_button("Download Report (XLSX)", data=store.report_bytes,
                               file_name=f"Specification_{name}.xlsx",
                               mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                               use_container_width=True)
    with d2:
        st.download_button("Download Project Workbook", data=workbook,
                           file_name="Project_Specification.xlsx",
                           mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                           use_container_width=True)
    with d3:
        st.download_button("Download Segment List (CSV)", data=segments_csv,
                           file_name="Segments.csv", mime="text/csv", use_container_width=True)
    with d4:
        st.download_button("Download Inspections (CSV)", data=inspections_csv,
                           file_name="Inspections.csv", mime="text/csv", use_container_width=True)
