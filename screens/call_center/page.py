# screens/call_center/page.py
from __future__ import annotations

from typing import Optional

import streamlit as st
from sqlalchemy.engine import Engine

from core.constants import CALL_OUTCOMES, CALL_STATUSES, label
from core.errors import CrmError, StoreUnavailableError
from core.policy import PAGE_CALL_CENTER, require_page
from core.record_store import RecordStore
from core.session import Session
from core.settings import load_settings
from screens.call_center.service import build_queue, end_call, save_call_outcome, start_call

QUEUE_KEY = "call_center__queue"
CALL_KEY = "call_center__call"


def _queue(engine: Engine, session: Session):
    queue = st.session_state.get(QUEUE_KEY)
    if queue is None:
        settings = load_settings()
        queue = build_queue(RecordStore(engine), session, limit=settings.students.executive_limit)
        st.session_state[QUEUE_KEY] = queue
    return queue


@require_page(PAGE_CALL_CENTER)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title("📞 Call Center")
    st.caption("Manage your daily calls, track outcomes, and schedule follow-ups")

    if st.button("🔄 Reload queue"):
        st.session_state.pop(QUEUE_KEY, None)
        st.session_state.pop(CALL_KEY, None)

    try:
        queue = _queue(engine, session)
    except StoreUnavailableError as e:
        st.warning(str(e))
        return

    student = queue.current
    c1, c2 = st.columns(2)
    c1.metric("In queue", len(queue.students))
    c2.metric("Remaining", queue.remaining)

    if student is None:
        st.success("🎉 Queue complete. No more students to call.")
        return

    st.subheader(student.get("studentname") or "Student")
    st.write(f"**Phone:** {student.get('contactnumber')}")
    st.write(f"**Class / Year:** {student.get('class')} · {student.get('year')}")
    st.write(f"**Location:** {student.get('city') or student.get('district') or ''}, {student.get('state')}")
    st.write(f"**Admission status:** {label(student.get('admissionstatus') or 'new')}")
    if student.get("notes"):
        st.info(student["notes"])

    call = st.session_state.get(CALL_KEY)
    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("📞 Start call", disabled=bool(call and call.is_active), type="primary"):
            try:
                st.session_state[CALL_KEY] = start_call(student, session)
                st.rerun()
            except CrmError as e:
                st.error(str(e))
    with c2:
        if st.button("⏹ End call", disabled=not (call and call.is_active)):
            st.session_state[CALL_KEY] = end_call(call)
            st.info("Call ended. Please update call outcome.")
    with c3:
        if st.button("⏭ Skip"):
            queue.advance()
            st.session_state.pop(CALL_KEY, None)
            st.rerun()

    call = st.session_state.get(CALL_KEY)
    if call:
        st.caption(f"{'Active' if call.is_active else 'Ended'} · {call.duration_seconds}s")

    with st.form("call_center__outcome"):
        status = st.selectbox("Call status", [""] + CALL_STATUSES, format_func=lambda v: label(v) if v else "Select outcome")
        outcome = st.selectbox("Outcome", [""] + CALL_OUTCOMES, format_func=lambda v: label(v) if v else "—")
        notes = st.text_area("Notes")
        follow_up = st.date_input("Next follow-up", value=None)
        saved = st.form_submit_button("Save & next", type="primary")
    if saved:
        try:
            updated = save_call_outcome(
                engine, session, student, status or None, outcome or None, notes, follow_up, call,
            )
        except CrmError as e:
            st.error(str(e))
            return
        queue.replace_current(updated)
        queue.advance()
        st.session_state.pop(CALL_KEY, None)
        st.success("Call outcome saved successfully!")
        st.rerun()
