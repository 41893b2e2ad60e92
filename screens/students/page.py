# screens/students/page.py
from __future__ import annotations

from typing import Optional, Any, List, Dict
import logging
import pandas as pd

import streamlit as st
from sqlalchemy.engine import Engine

from core.errors import StoreUnavailableError
from core.policy import PAGE_STUDENTS, require_page
from core.record_store import RecordStore
from core.session import Session
from core.settings import load_settings
from screens.data_requests.store import DataRequestStore
from screens.students.db import FetchGuard, StudentLoad, load_students_for_session
from screens.students.student_viewer import render_student_profile
from screens.students.table import (
    ALL,
    TableState,
    apply_view,
    cell_text,
    dropdown_options,
    initial_state,
)

log = logging.getLogger(__name__)

# Columns shown in the grid, in order
GRID_COLUMNS = [
    "studentname", "contactnumber", "class", "year", "state", "district",
    "examspreparing", "admissionstatus", "callstatus", "followupstatus", "createdat",
]
COLUMN_LABELS = {
    "studentname": "Name",
    "contactnumber": "Contact",
    "class": "Class",
    "year": "Year",
    "state": "State",
    "district": "District",
    "examspreparing": "Exams",
    "admissionstatus": "Admission",
    "callstatus": "Call Status",
    "followupstatus": "Follow-up",
    "createdat": "Created",
}


# ────────────────────────────────────────────────────────────────────────────────
# Small helpers
# ────────────────────────────────────────────────────────────────────────────────

def _k(s: str) -> str:
    """Per-page key namespace to avoid collisions if rendered twice."""
    return f"students__{s}"


def _table_state() -> TableState:
    state = st.session_state.get(_k("table"))
    if state is None:
        cfg = load_settings().students
        state = initial_state(cfg.page_sizes, cfg.default_page_size)
    return state


def _set_table_state(state: TableState) -> None:
    st.session_state[_k("table")] = state


def _fetch_guard() -> FetchGuard:
    guard = st.session_state.get(_k("guard"))
    if guard is None:
        guard = FetchGuard()
        st.session_state[_k("guard")] = guard
    return guard


def _load(engine: Engine, session: Session) -> StudentLoad:
    settings = load_settings()
    guard = _fetch_guard()
    token = guard.begin()
    try:
        load = load_students_for_session(
            RecordStore(engine),
            DataRequestStore(engine),
            session,
            executive_limit=settings.students.executive_limit,
        )
    except StoreUnavailableError as e:
        st.warning(f"Could not load students: {e}")
        return StudentLoad(message="Student data unavailable", has_access=False)
    accepted = guard.accept(token, load)
    if accepted is None:
        return st.session_state.get(_k("loaded")) or StudentLoad()
    st.session_state[_k("loaded")] = accepted
    return accepted


def _to_frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=[COLUMN_LABELS[c] for c in GRID_COLUMNS])
    data = [{COLUMN_LABELS[c]: cell_text(r.get(c)) for c in GRID_COLUMNS} for r in rows]
    return pd.DataFrame(data)


# ────────────────────────────────────────────────────────────────────────────────
# Controls
# ────────────────────────────────────────────────────────────────────────────────

def _render_controls(rows: List[Dict[str, Any]], state: TableState) -> TableState:
    options = dropdown_options(rows)

    c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
    with c1:
        search = st.text_input("🔍 Search", key=_k("search"))
    with c2:
        year = st.selectbox("Year", [ALL] + options["year"], key=_k("year"))
    with c3:
        state_sel = st.selectbox("State", [ALL] + options["state"], key=_k("state"))
    with c4:
        exam = st.selectbox("Exam", [ALL] + options["exam"], key=_k("exam"))

    with st.expander("Column filters", expanded=bool(state.column_filters)):
        cols = st.columns(4)
        column_filters: Dict[str, str] = {}
        for i, column in enumerate(GRID_COLUMNS):
            with cols[i % 4]:
                value = st.text_input(
                    COLUMN_LABELS[column],
                    key=_k(f"colf_{column}"),
                )
            if value.strip():
                column_filters[column] = value

    changed = (
        search != state.search
        or year != state.year
        or state_sel != state.state
        or exam != state.exam
        or column_filters != state.column_filters
    )
    new_state = TableState(
        search=search,
        column_filters=column_filters,
        year=year,
        state=state_sel,
        exam=exam,
        sort_key=state.sort_key,
        sort_desc=state.sort_desc,
        page=1 if changed else state.page,
        page_size=state.page_size,
        page_sizes=state.page_sizes,
    )

    c1, c2, c3 = st.columns([2, 1, 1])
    with c1:
        sort_choice = st.selectbox(
            "Sort by",
            [""] + GRID_COLUMNS,
            format_func=lambda c: COLUMN_LABELS.get(c, "None"),
            key=_k("sort_key"),
        )
    with c2:
        st.write("")
        if st.button("⇅ Sort", key=_k("sort_btn")) and sort_choice:
            new_state = new_state.toggle_sort(sort_choice)
    with c3:
        # seed the widget with the configured default on first render
        st.session_state.setdefault(_k("page_size"), new_state.page_size)
        size = st.selectbox(
            "Page size", list(new_state.page_sizes), key=_k("page_size")
        )
        if size != new_state.page_size:
            new_state = new_state.with_page_size(size)
    return new_state


# ────────────────────────────────────────────────────────────────────────────────
# Page
# ────────────────────────────────────────────────────────────────────────────────

@require_page(PAGE_STUDENTS)
def render(engine: Engine, session: Optional[Session]) -> None:
    selected = st.session_state.get(_k("selected"))
    if selected:
        if st.button("← Back to students", key=_k("back")):
            st.session_state.pop(_k("selected"), None)
            st.rerun()
        render_student_profile(engine, session, selected)
        return

    st.title("👥 Students")
    if st.button("🔄 Refresh", key=_k("refresh")):
        st.session_state.pop(_k("loaded"), None)

    load = st.session_state.get(_k("loaded")) or _load(engine, session)
    if load.has_access:
        st.caption(load.message)
    else:
        st.info(load.message)
        return

    state = _render_controls(load.rows, _table_state())
    view = apply_view(load.rows, state)
    state = state.with_page(view.page)
    _set_table_state(state)

    st.caption(
        f"{view.total} of {len(load.rows)} students"
        + (f" · sorted by {COLUMN_LABELS[state.sort_key]} {'↓' if state.sort_desc else '↑'}" if state.sort_key else "")
    )
    st.dataframe(_to_frame(view.rows), use_container_width=True, hide_index=True)

    c1, c2, c3 = st.columns([1, 2, 1])
    with c1:
        if st.button("◀ Previous", disabled=view.page <= 1, key=_k("prev")):
            _set_table_state(state.with_page(view.page - 1))
            st.rerun()
    with c2:
        st.markdown(f"<div style='text-align:center'>Page {view.page} of {view.page_count}</div>", unsafe_allow_html=True)
    with c3:
        if st.button("Next ▶", disabled=view.page >= view.page_count, key=_k("next")):
            _set_table_state(state.with_page(view.page + 1))
            st.rerun()

    if view.rows:
        labels = {r["id"]: f"{r.get('studentname')} · {r.get('contactnumber')}" for r in view.rows}
        pick = st.selectbox("Open profile", [""] + list(labels), format_func=lambda i: labels.get(i, "—"), key=_k("pick"))
        if pick and st.button("View profile", key=_k("open")):
            st.session_state[_k("selected")] = pick
            st.rerun()
