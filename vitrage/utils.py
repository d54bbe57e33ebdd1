import math
import re
from typing import Iterable, Optional

import streamlit as st

from vitrage.config import MM_PER_UNIT


def parse_dimension(value) -> Optional[float]:
    """
    Parses a user-entered dimension in millimetres.
    Blank, non-numeric, non-finite and non-positive input all mean "absent".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def mm_to_units(mm: Optional[float]) -> float:
    """Converts millimetres to design units. Absent values convert to 0."""
    if mm is None:
        return 0.0
    return mm / MM_PER_UNIT


def units_to_mm(units: float) -> float:
    return units * MM_PER_UNIT


def generate_next_vitrage_name(existing_names: Iterable[str]) -> str:
    """
    Returns the next free 'V-XX' marking.
    Numbers follow the highest marking already in use.
    """
    numbers = []
    for name in existing_names:
        match = re.match(r"V-(\d+)$", name or "", re.IGNORECASE)
        if match:
            numbers.append(int(match.group(1)))
    next_number = max(numbers, default=0) + 1
    return f"V-{next_number:02d}"


def load_css(file_path: str) -> None:
    """Loads a CSS file and injects it into the Streamlit app."""
    try:
        with open(file_path) as f:
            css = f.read()
    except FileNotFoundError:
        return
    st.markdown(f"<style>:root {{ --vitrage-frame: #2C3E50; }} {css}</style>", unsafe_allow_html=True)
