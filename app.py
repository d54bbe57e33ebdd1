"""
Main Application File for the Vitrage Designer Streamlit App.
Lays out vitrage grids, merges segments, places vitrages on a plan and
produces the segment specification.
"""
import logging

import streamlit as st

from vitrage.state import SessionStore
from vitrage.utils import load_css
from vitrage.views.manager import ViewManager

# ==============================================================================
# --- STREAMLIT APP MAIN LOGIC ---
# ==============================================================================

def main() -> None:
    """
    Main function to configure and run the Streamlit application.
    """
    # --- App Configuration ---
    st.set_page_config(layout="wide", page_title="Vitrage Designer")
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    load_css("assets/styles.css")

    # --- Initialize Session State ---
    store = SessionStore()
    manager = ViewManager(store)

    with st.sidebar:
        st.title("🎛️ Control Panel")
    manager.render_project_controls()

    manager.render_navigation()
    st.divider()
    manager.render_main_view()


if __name__ == '__main__':
    main()
