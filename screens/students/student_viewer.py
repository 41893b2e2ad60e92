# screens/students/student_viewer.py
"""
Student Profile Viewer and Editor
- View one student's full record
- Edit admission / follow-up status and notes
- Call history from call_logs
"""

from __future__ import annotations
from typing import List, Dict, Any, Optional
import pandas as pd
import streamlit as st
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
import logging

from core.constants import ADMISSION_STATUSES, FOLLOWUP_STATUSES, label
from core.errors import CrmError
from core.record_store import RecordStore
from core.session import Session
from screens.students.db import get_student, update_student
from screens.students.table import cell_text

log = logging.getLogger(__name__)

PROFILE_SECTIONS = {
    "Personal": ["studentname", "gender", "dateofbirth", "category", "contactnumber", "studentmailid"],
    "Family": ["fathername", "mothername", "parentsnumber"],
    "Location": ["address", "city", "district", "state", "pincode"],
    "Academics": ["class", "year", "collegeschool", "board", "stream", "entranceexam", "rank",
                  "examspreparing", "marks10th", "marks12th", "graduationmarks"],
    "Follow-up": ["admissionstatus", "followupstatus", "callstatus", "calloutcome",
                  "lastcontactdate", "nextfollowupdate", "notes", "tags"],
}


def _get_call_history(engine: Engine, student_id: str) -> List[Dict[str, Any]]:
    """Call log rows for a student, newest first."""
    with engine.connect() as conn:
        rows = conn.execute(sa_text("""
            SELECT created_at, executive_name, status, outcome, duration, notes, follow_up_date
              FROM call_logs
             WHERE student_id = :sid
             ORDER BY created_at DESC
        """), {"sid": student_id}).fetchall()
    return [dict(r._mapping) for r in rows]


def _select_index(options: List[str], value: Optional[str]) -> int:
    return options.index(value) if value in options else 0


def render_student_profile(engine: Engine, session: Session, student_id: str) -> None:
    record_store = RecordStore(engine)
    try:
        student = get_student(record_store, student_id)
    except CrmError as e:
        st.error(str(e))
        return
    if not student:
        st.warning("Student not found.")
        return

    st.title(f"🎓 {student.get('studentname')}")
    st.caption(f"{student.get('class')} · {student.get('year')} · {student.get('state')}")

    for section, columns in PROFILE_SECTIONS.items():
        with st.expander(section, expanded=section == "Personal"):
            cols = st.columns(2)
            for i, column in enumerate(columns):
                with cols[i % 2]:
                    st.markdown(f"**{column}:** {cell_text(student.get(column)) or '—'}")

    st.subheader("Update status")
    with st.form(f"student_profile__{student_id}"):
        c1, c2 = st.columns(2)
        with c1:
            admission = st.selectbox(
                "Admission status", ADMISSION_STATUSES,
                index=_select_index(ADMISSION_STATUSES, student.get("admissionstatus")),
                format_func=label,
            )
        with c2:
            followup = st.selectbox(
                "Follow-up status", FOLLOWUP_STATUSES,
                index=_select_index(FOLLOWUP_STATUSES, student.get("followupstatus")),
                format_func=label,
            )
        notes = st.text_area("Notes", value=student.get("notes") or "")
        submitted = st.form_submit_button("Save", type="primary")
    if submitted:
        try:
            update_student(
                record_store, student_id,
                {"admissionstatus": admission, "followupstatus": followup, "notes": notes or None},
                session.user_id,
            )
            st.success("Student updated.")
        except CrmError as e:
            st.error(str(e))

    st.subheader("Call history")
    try:
        history = _get_call_history(engine, student_id)
    except SQLAlchemyError as e:
        log.error("Could not load call history for %s: %s", student_id, e)
        history = []
    if history:
        st.dataframe(pd.DataFrame(history), use_container_width=True, hide_index=True)
    else:
        st.caption("No calls recorded yet.")
