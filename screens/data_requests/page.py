# screens/data_requests/page.py
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

from core.constants import CLASSES, EXAMS, INDIAN_STATES, YEARS, ADMISSION_STATUSES
from core.errors import CrmError, StoreUnavailableError
from core.filters import FilterSet
from core.policy import PAGE_DATA_REQUESTS, can_approve_requests, can_request_data, require_page
from core.record_store import RecordStore
from core.session import Session
from core.ui import show_error
from screens.data_requests.access import check_data_access, resolve_effective_access
from screens.data_requests.models import (
    DraftRequest,
    RequestedData,
    RequestStatus,
    RequestType,
    Urgency,
    REQUEST_TYPE_LABELS,
)
from screens.data_requests.store import DataRequestStore

log = logging.getLogger(__name__)


def _k(s: str) -> str:
    return f"data_requests__{s}"


# ────────────────────────────────────────────────────────────────────────────────
# Requester side
# ────────────────────────────────────────────────────────────────────────────────

def _render_request_form(engine: Engine, session: Session, store: DataRequestStore) -> None:
    st.subheader("New data request")
    with st.form(_k("new_form"), clear_on_submit=False):
        title = st.text_input("Title *")
        c1, c2 = st.columns(2)
        with c1:
            request_type = st.selectbox(
                "Request type",
                [t.value for t in RequestType],
                format_func=lambda v: REQUEST_TYPE_LABELS[RequestType(v)],
            )
        with c2:
            urgency = st.selectbox("Urgency", [u.value for u in Urgency], index=1)
        description = st.text_area("Description *")
        justification = st.text_area("Justification *")

        st.markdown("**Scope** (leave a field empty for no restriction)")
        c1, c2, c3 = st.columns(3)
        with c1:
            states = st.multiselect("States", INDIAN_STATES)
            districts_raw = st.text_input("Districts (comma separated)")
        with c2:
            classes = st.multiselect("Classes", CLASSES)
            years = st.multiselect("Years", YEARS)
        with c3:
            exams = st.multiselect("Exams", EXAMS)
            statuses = st.multiselect("Admission status", ADMISSION_STATUSES)

        c1, c2 = st.columns(2)
        with c1:
            expected_usage = st.text_input("Expected usage")
        with c2:
            data_retention = st.text_input("Data retention period")

        submitted = st.form_submit_button("Submit request", type="primary")

    if not submitted:
        return

    filters = FilterSet(
        states=states,
        districts=[d for d in districts_raw.split(",")],
        classes=classes,
        years=years,
        exams=exams,
        admission_status=statuses,
    )
    draft = DraftRequest(
        requested_by=session.user_id,
        requested_by_name=session.name,
        requested_by_role=session.role,
        institution_name=session.institution_name,
        title=title,
        description=description,
        justification=justification,
        filters=filters,
        request_type=request_type,
        urgency=urgency,
    )
    try:
        if not filters.is_empty() and check_data_access(store, session.user_id, filters):
            st.info("You already have approved access covering this scope. Submitting anyway.")
        estimated = None
        if not filters.is_empty():
            estimated = RecordStore(engine).count("students", filters.to_predicate())
        draft.requested_data = RequestedData(
            total_students=estimated or 0,
            expected_usage=expected_usage,
            data_retention=data_retention,
        )
        created = store.create(draft, estimated_count=estimated)
    except CrmError as e:
        show_error(e)
        return
    st.success(f"Request submitted. Roughly {created.estimated_count or 0} students match this scope.")


def _render_my_requests(store: DataRequestStore, session: Session) -> None:
    st.subheader("My requests")
    try:
        summary = store.summary(requester_id=session.user_id)
        requests = store.list(requester_id=session.user_id)
        access = resolve_effective_access(store, session.user_id)
    except StoreUnavailableError as e:
        st.warning(str(e))
        return

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total", summary["total"])
    c2.metric("Pending", summary["pending"])
    c3.metric("Approved", summary["approved"])
    c4.metric("Rejected", summary["rejected"])

    if access.has_access:
        st.success(access.message)
    else:
        st.info(access.message)

    if not requests:
        st.caption("No requests yet.")
        return
    st.dataframe(pd.DataFrame([r.to_row() for r in requests]), use_container_width=True, hide_index=True)
    for r in requests:
        if r.status == RequestStatus.REJECTED and r.rejection_reason:
            st.caption(f"❌ {r.title}: {r.rejection_reason}")


# ────────────────────────────────────────────────────────────────────────────────
# Admin side
# ────────────────────────────────────────────────────────────────────────────────

def _render_inbox(store: DataRequestStore, session: Session) -> None:
    status_filter = st.selectbox(
        "Status", ["pending", "approved", "rejected", "all"], key=_k("status_filter")
    )
    try:
        summary = store.summary()
        requests = store.list(status=None if status_filter == "all" else status_filter)
    except StoreUnavailableError as e:
        st.warning(str(e))
        return

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total", summary["total"])
    c2.metric("Pending", summary["pending"])
    c3.metric("Approved", summary["approved"])
    c4.metric("Rejected", summary["rejected"])

    if not requests:
        st.info("No requests found.")
        return
    st.dataframe(pd.DataFrame([r.to_row() for r in requests]), use_container_width=True, hide_index=True)

    for r in requests:
        if not r.is_pending:
            continue
        with st.expander(f"📨 {r.title} · {r.requested_by_name} · {r.urgency.value}"):
            st.write(f"**Institution:** {r.institution_name or '—'}")
            st.write(f"**Type:** {r.type_label}")
            st.write(f"**Description:** {r.description}")
            st.write(f"**Justification:** {r.justification}")
            st.write(f"**Scope:** {r.filters.describe()}")
            st.write(f"**Estimated students:** {r.estimated_count if r.estimated_count is not None else 'n/a'}")
            if r.requested_data:
                st.write(f"**Expected usage:** {r.requested_data.expected_usage or '—'}")
                st.write(f"**Retention:** {r.requested_data.data_retention or '—'}")

            reason = st.text_input("Rejection reason", key=_k(f"reason_{r.id}"))
            c1, c2 = st.columns(2)
            with c1:
                if st.button("✅ Approve", key=_k(f"approve_{r.id}"), type="primary"):
                    try:
                        store.approve(r.id, session.user_id, expected_version=r.version)
                        st.success("Request approved.")
                        st.rerun()
                    except CrmError as e:
                        show_error(e)
            with c2:
                if st.button("❌ Reject", key=_k(f"reject_{r.id}")):
                    try:
                        store.reject(r.id, reason, expected_version=r.version)
                        st.success("Request rejected.")
                        st.rerun()
                    except CrmError as e:
                        show_error(e)


@require_page(PAGE_DATA_REQUESTS)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title("📬 Data Requests")
    store = DataRequestStore(engine)

    if can_approve_requests(session.role):
        _render_inbox(store, session)
        return
    if not can_request_data(session.role):
        st.info("Your role cannot file data requests.")
        return

    tab_new, tab_mine = st.tabs(["New Request", "My Requests"])
    with tab_new:
        _render_request_form(engine, session, store)
    with tab_mine:
        _render_my_requests(store, session)
