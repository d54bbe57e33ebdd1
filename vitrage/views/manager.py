import streamlit as st

from vitrage.data_handler import load_project, project_to_json
from vitrage.enums import ViewMode
from vitrage.state import SessionStore
from vitrage.views.constructor import render_constructor
from vitrage.views.defect_view import render_defect_view
from vitrage.views.plan_view import render_plan_view
from vitrage.views.specification_view import render_specification_view


class ViewManager:
    """
    Manages view routing, navigation components and project file actions.
    Decouples UI layout from application logic.
    """
    def __init__(self, store: SessionStore):
        self.store = store

    def render_navigation(self):
        nav_cols = st.columns(len(ViewMode), gap="small")

        def set_view(mode):
            def cb():
                self.store.active_view = mode
            return cb

        for col, mode in zip(nav_cols, ViewMode.values()):
            is_active = self.store.active_view == mode
            col.button(mode, type="primary" if is_active else "secondary",
                       use_container_width=True, on_click=set_view(mode), key=f"nav_{mode}")

    def render_project_controls(self):
        with st.sidebar.expander("📁 Project", expanded=False):
            uploaded = st.file_uploader("Open project", type=["json"], key="project_file")
            if uploaded is not None and st.button("Load Project", use_container_width=True):
                project = load_project(uploaded)
                if project:
                    self.store.saved_vitrages = project['vitrages']
                    self.store.plans = project['plans']
                    self.store.defects = project['defects']
                    if project['vitrages']:
                        self.store.open_vitrage(next(iter(project['vitrages'])))
                    st.success(f"Loaded {len(project['vitrages'])} vitrage(s) and {len(project['plans'])} plan(s).")

            st.download_button(
                "Save Project", data=project_to_json(self.store.saved_vitrages, self.store.plans, self.store.defects),
                file_name="vitrage_project.json", mime="application/json", use_container_width=True,
            )
            if st.button("Reset Session", use_container_width=True):
                self.store.clear_all()
                st.rerun()

    def render_main_view(self):
        if self.store.active_view == ViewMode.CONSTRUCTOR.value:
            render_constructor(self.store)
        elif self.store.active_view == ViewMode.PLAN.value:
            render_plan_view(self.store)
        elif self.store.active_view == ViewMode.SPECIFICATION.value:
            render_specification_view(self.store)
        elif self.store.active_view == ViewMode.DEFECTS.value:
            render_defect_view(self.store)
        else:
            st.warning(f"Unknown view: {self.store.active_view}")
