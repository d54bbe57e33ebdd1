"""
State Management Module.
Implements the 'Store' pattern to unify access to Streamlit's session state.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, TypedDict

import streamlit as st

from vitrage.defects import DefectRegistry
from vitrage.enums import ViewMode
from vitrage.grid import create_grid
from vitrage.interaction import SelectionState
from vitrage.layout import solve
from vitrage.models import Grid
from vitrage.plan import FloorPlan, count_placements
from vitrage.transform import ViewState
from vitrage.utils import generate_next_vitrage_name

logger = logging.getLogger(__name__)

DEFAULT_ROWS = 3
DEFAULT_COLS = 3

# --- TypedDict Definitions ---

class AppState(TypedDict, total=False):
    """
    Type definition for the entire application session state.
    """
    grid: Grid
    vitrage_name: str
    selection: SelectionState
    view_state: ViewState
    saved_vitrages: Dict[str, Grid]
    plans: List[FloorPlan]
    active_plan_id: Optional[str]
    defects: DefectRegistry
    plan_view_state: ViewState
    selected_instance: Optional[str]
    background_image: Optional[bytes]
    active_view: str
    report_bytes: Optional[bytes]

@dataclass
class SessionStore:
    """
    Centralized store for application state.
    Wraps st.session_state to provide typed access and centralized modification logic.
    """

    def __post_init__(self):
        """Initialize default state values if they don't exist."""
        first_plan = FloorPlan(name="Plan 1")
        defaults: AppState = {
            'grid': create_grid(DEFAULT_ROWS, DEFAULT_COLS),
            'vitrage_name': generate_next_vitrage_name([]),
            'selection': SelectionState(),
            'view_state': ViewState(),
            'saved_vitrages': {},
            'plans': [first_plan],
            'active_plan_id': first_plan.plan_id,
            'defects': DefectRegistry(),
            'plan_view_state': ViewState(),
            'selected_instance': None,
            'background_image': None,
            'active_view': ViewMode.CONSTRUCTOR.value,
            'report_bytes': None,
        }

        for key, value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = value

    # --- Properties for Typed Access ---

    @property
    def grid(self) -> Grid:
        return st.session_state['grid']

    @grid.setter
    def grid(self, grid: Grid):
        st.session_state['grid'] = grid
        # Any change invalidates a previously generated report.
        st.session_state['report_bytes'] = None

    @property
    def vitrage_name(self) -> str:
        return st.session_state.get('vitrage_name', '')

    @vitrage_name.setter
    def vitrage_name(self, name: str):
        st.session_state['vitrage_name'] = name

    @property
    def selection(self) -> SelectionState:
        return st.session_state['selection']

    @property
    def view_state(self) -> ViewState:
        return st.session_state['view_state']

    @view_state.setter
    def view_state(self, view: ViewState):
        st.session_state['view_state'] = view

    @property
    def saved_vitrages(self) -> Dict[str, Grid]:
        return st.session_state.get('saved_vitrages', {})

    @saved_vitrages.setter
    def saved_vitrages(self, vitrages: Dict[str, Grid]):
        st.session_state['saved_vitrages'] = vitrages

    @property
    def plans(self) -> List[FloorPlan]:
        return st.session_state['plans']

    @plans.setter
    def plans(self, plans: List[FloorPlan]):
        """Replaces every plan. An empty list is replaced by one blank plan."""
        plans = list(plans) or [FloorPlan(name="Plan 1")]
        st.session_state['plans'] = plans
        st.session_state['active_plan_id'] = plans[0].plan_id
        st.session_state['selected_instance'] = None

    @property
    def plan(self) -> FloorPlan:
        """The plan open in the plan view."""
        active_id = st.session_state.get('active_plan_id')
        for plan in self.plans:
            if plan.plan_id == active_id:
                return plan
        return self.plans[0]

    @property
    def defects(self) -> DefectRegistry:
        return st.session_state['defects']

    @defects.setter
    def defects(self, registry: DefectRegistry):
        st.session_state['defects'] = registry

    @property
    def plan_view_state(self) -> ViewState:
        return st.session_state['plan_view_state']

    @plan_view_state.setter
    def plan_view_state(self, view: ViewState):
        st.session_state['plan_view_state'] = view

    @property
    def selected_instance(self) -> Optional[str]:
        return st.session_state.get('selected_instance')

    @selected_instance.setter
    def selected_instance(self, instance_id: Optional[str]):
        st.session_state['selected_instance'] = instance_id

    @property
    def background_image(self) -> Optional[bytes]:
        return st.session_state.get('background_image')

    @background_image.setter
    def background_image(self, data: Optional[bytes]):
        st.session_state['background_image'] = data

    @property
    def active_view(self) -> str:
        return st.session_state.get('active_view', ViewMode.CONSTRUCTOR.value)

    @active_view.setter
    def active_view(self, view: str):
        st.session_state['active_view'] = view

    @property
    def report_bytes(self) -> Optional[bytes]:
        return st.session_state.get('report_bytes')

    @report_bytes.setter
    def report_bytes(self, data: Optional[bytes]):
        st.session_state['report_bytes'] = data

    # --- Actions ---

    def new_vitrage(self, rows: int, cols: int, name: Optional[str] = None):
        """Starts a fresh grid; the previous one is kept only if it was saved."""
        self.grid = create_grid(rows, cols)
        self.vitrage_name = name or generate_next_vitrage_name(self.saved_vitrages)
        self.selection.clear()
        self.view_state = ViewState()

    def save_current_vitrage(self) -> str:
        """Stores a copy of the grid under its name, replacing an older copy."""
        name = self.vitrage_name.strip() or generate_next_vitrage_name(self.saved_vitrages)
        vitrages = dict(self.saved_vitrages)
        vitrages[name] = self.grid.copy()
        self.saved_vitrages = vitrages
        for plan in self.plans:
            plan.prune_segment_ids(name, vitrages[name])
        self.vitrage_name = name
        logger.info("Saved vitrage %s", name)
        return name

    def open_vitrage(self, name: str):
        self.grid = self.saved_vitrages[name].copy()
        self.vitrage_name = name
        self.selection.clear()

    def delete_vitrage(self, name: str):
        """Removes a saved vitrage with every placement of it and its inspection records."""
        vitrages = dict(self.saved_vitrages)
        vitrages.pop(name, None)
        self.saved_vitrages = vitrages
        for plan in self.plans:
            for instance in plan.instances:
                if instance.vitrage_id == name:
                    plan.delete(instance.instance_id)
        dropped = self.defects.drop_vitrage(name)
        logger.info("Deleted vitrage %s and %d inspection record(s)", name, dropped)

    def add_plan(self, name: str, corpus: str = "", section: str = "", floor: int = 1) -> FloorPlan:
        """Creates a plan and opens it."""
        plan = FloorPlan(name=name.strip() or f"Plan {len(self.plans) + 1}", corpus=corpus.strip(),
                         section=section.strip(), floor=floor)
        self.plans.append(plan)
        self.open_plan(plan.plan_id)
        logger.info("Created plan %s", plan.title)
        return plan

    def open_plan(self, plan_id: str):
        if not any(plan.plan_id == plan_id for plan in self.plans):
            raise KeyError(plan_id)
        st.session_state['active_plan_id'] = plan_id
        self.selected_instance = None

    def delete_plan(self, plan_id: str) -> bool:
        """Removes a plan. The last remaining plan is never deleted."""
        if len(self.plans) <= 1:
            return False
        remaining = [plan for plan in self.plans if plan.plan_id != plan_id]
        if len(remaining) == len(self.plans):
            return False
        st.session_state['plans'] = remaining
        if st.session_state.get('active_plan_id') == plan_id:
            self.open_plan(remaining[0].plan_id)
        return True

    def placement_counts(self) -> Dict[str, int]:
        return count_placements(self.plans)

    def vitrage_sizes(self) -> Dict[str, Tuple[float, float]]:
        """Total design size of every saved vitrage, keyed by name."""
        sizes = {}
        for name, grid in self.saved_vitrages.items():
            layout = solve(grid)
            sizes[name] = (layout.total_width, layout.total_height)
        return sizes

    def clear_all(self):
        """Resets the entire session state."""
        st.session_state.clear()
