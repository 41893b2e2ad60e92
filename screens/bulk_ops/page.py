# screens/bulk_ops/page.py
from __future__ import annotations

from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

from core.errors import CrmError, StoreUnavailableError
from core.policy import PAGE_BULK_OPS, require_page
from core.record_store import RecordStore
from core.session import Session
from core.settings import load_settings
from core.ui import show_error
from screens.bulk_ops.service import list_recent_messages, recipients_for, send_bulk_message
from screens.data_requests.store import DataRequestStore
from screens.students.db import load_students_for_session

STATUS_ICONS = {"sent": "✅", "scheduled": "🕒", "failed": "❌"}


def _render_channel(engine: Engine, session: Session, channel: str, students) -> None:
    n = len(recipients_for(students, channel))
    st.caption(f"{n} student(s) in your view have a {'email address' if channel == 'email' else 'phone number'}.")
    with st.form(f"bulk_ops__{channel}"):
        subject = st.text_input("Subject *") if channel == "email" else None
        message = st.text_area("Message *", height=160)
        c1, c2 = st.columns(2)
        with c1:
            schedule_date = st.date_input("Schedule date (optional)", value=None)
        with c2:
            schedule_time = st.time_input("Schedule time (optional)", value=None)
        submitted = st.form_submit_button("Send / Schedule", type="primary")
    if not submitted:
        return
    try:
        record = send_bulk_message(
            engine, session, students, channel, message, subject, schedule_date, schedule_time,
        )
    except CrmError as e:
        show_error(e)
        return
    noun = "Email" if channel == "email" else "WhatsApp message"
    if record.status == "scheduled":
        st.success(f"{noun} scheduled for {record.scheduled_for}.")
    else:
        st.success(f"{noun} sent to {record.accepted_count} recipient(s).")


@require_page(PAGE_BULK_OPS)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title("📣 Bulk Operations")
    settings = load_settings()
    try:
        load = load_students_for_session(
            RecordStore(engine), DataRequestStore(engine), session,
            executive_limit=settings.students.executive_limit,
        )
    except StoreUnavailableError as e:
        st.warning(str(e))
        return
    if not load.has_access:
        st.info(load.message)
        return

    channels = [c for c in settings.messaging.channels if c in ("email", "whatsapp")]
    tabs = st.tabs([("📧 Email" if c == "email" else "💬 WhatsApp") for c in channels])
    for tab, channel in zip(tabs, channels):
        with tab:
            _render_channel(engine, session, channel, load.rows)

    st.subheader("Recent messages")
    try:
        recent = list_recent_messages(engine, created_by=None if session.is_admin else session.user_id)
    except StoreUnavailableError as e:
        st.warning(str(e))
        return
    if not recent:
        st.caption("Nothing sent yet.")
        return
    st.dataframe(pd.DataFrame([{
        "": STATUS_ICONS.get(m.status, ""),
        "channel": m.channel,
        "subject": m.subject or "",
        "message": m.message[:80],
        "recipients": m.recipient_count,
        "status": m.status,
        "scheduled_for": m.scheduled_for or "",
        "created_at": m.created_at,
    } for m in recent]), use_container_width=True, hide_index=True)
