# screens/dashboard.py
from __future__ import annotations
from typing import Any, Dict, Optional
import logging

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

from core.constants import label
from core.errors import StoreUnavailableError
from core.policy import PAGE_DASHBOARD, require_page
from core.record_store import RecordStore
from core.session import Session
from core.settings import load_settings
from screens.data_requests.store import DataRequestStore
from screens.students.db import get_database_stats, scope_for_session

log = logging.getLogger(__name__)


def dashboard_stats(
    record_store: RecordStore, request_store: DataRequestStore, session: Session, executive_limit: int = 500
) -> Dict[str, Any]:
    """Student counts over the session's scope plus data-request counts (admin: all, others: own)."""
    scope = scope_for_session(request_store, session, executive_limit)
    stats = get_database_stats(record_store, scope.predicate)
    stats["scope_message"] = scope.message
    stats["requests"] = request_store.summary(None if session.is_admin else session.user_id)
    stats["connected"] = record_store.ping()
    return stats


def _bar(counts: Dict[str, int], title: str, relabel: bool = False):
    st.caption(title)
    if not counts:
        st.write("—")
        return
    series = pd.Series({(label(k) if relabel else (k or "—")): v for k, v in counts.items()}, name="students")
    st.bar_chart(series)


@require_page(PAGE_DASHBOARD)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title(f"📊 {session.portal_title}")
    st.caption(f"Welcome back, {session.name}" + (f" · {session.institution_name}" if session.institution_name else ""))

    settings = load_settings()
    try:
        stats = dashboard_stats(
            RecordStore(engine), DataRequestStore(engine), session, settings.students.executive_limit
        )
    except StoreUnavailableError as e:
        st.warning(f"Statistics unavailable: {e}")
        return

    if not stats["connected"]:
        st.error("Database connection lost.")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Students", stats["total"])
    c2.metric("States", len(stats["by_state"]))
    c3.metric("Pending requests", stats["requests"]["pending"])
    c4.metric("Approved requests", stats["requests"]["approved"])
    st.caption(stats["scope_message"])

    c1, c2, c3 = st.columns(3)
    with c1:
        _bar(stats["by_state"], "By state")
    with c2:
        _bar(stats["by_class"], "By class")
    with c3:
        _bar(stats["by_status"], "By admission status", relabel=True)
