# app.py
from __future__ import annotations
import logging
from typing import Callable, List

import streamlit as st

from core.db import get_engine, init_db
from core.policy import (
    PAGE_BULK_OPS,
    PAGE_CALL_CENTER,
    PAGE_DASHBOARD,
    PAGE_DATA_REQUESTS,
    PAGE_STUDENTS,
    PAGE_UPLOAD,
    PAGE_USERS,
    can_view_page,
)
from core.session import Session, current_session
from core.settings import Settings, load_settings
from core.ui import hide_sidebar, render_footer
from screens import dashboard
from screens.bulk_ops import page as bulk_ops_page
from screens.call_center import page as call_center_page
from screens.data_requests import page as data_requests_page
from screens.login import render_login
from screens.logout import render_logout
from screens.students import importer as upload_page
from screens.students import page as students_page
from screens.users import page as users_page

log = logging.getLogger(__name__)

# (policy page, url path, title, render(engine, session))
NAV_PAGES = [
    (PAGE_DASHBOARD, "dashboard", "📊 Dashboard", dashboard.render),
    (PAGE_STUDENTS, "students", "👥 Students", students_page.render),
    (PAGE_UPLOAD, "upload", "📤 Upload Data", upload_page.render),
    (PAGE_USERS, "users", "🧑‍💼 Users", users_page.render),
    (PAGE_DATA_REQUESTS, "data_requests", "📬 Data Requests", data_requests_page.render),
    (PAGE_BULK_OPS, "bulk_operations", "📣 Bulk Operations", bulk_ops_page.render),
    (PAGE_CALL_CENTER, "call_center", "📞 Call Center", call_center_page.render),
]


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.app.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# This function's only job is to create or retrieve the engine
# and cache it in session_state.
def _ensure_engine(settings: Settings):
    if "engine" not in st.session_state:
        st.session_state["engine"] = get_engine(settings.db.url)
    return st.session_state["engine"]


def _bind(render: Callable, engine, session: Session) -> Callable[[], None]:
    def _page():
        render(engine, session)
    return _page


def _build_pages(engine, session: Session) -> List:
    pages = []
    for policy_name, url_path, title, render in NAV_PAGES:
        if not can_view_page(policy_name, session.role):
            continue
        pages.append(st.Page(
            _bind(render, engine, session),
            title=title,
            url_path=url_path,
            default=(url_path == "dashboard"),
        ))
    return pages


def main():
    settings = load_settings()
    _configure_logging(settings)
    st.set_page_config(page_title=settings.app.name, layout="wide", initial_sidebar_state="auto")

    # 1. Get or create the engine.
    engine = _ensure_engine(settings)

    # 2. Run database initialization ONCE per session.
    if "db_initialized" not in st.session_state:
        failed = init_db(engine)
        if failed:
            st.error(f"Database schema initialization failed for: {', '.join(failed)}")
            st.stop()
        st.session_state["db_initialized"] = True

    if st.session_state.get("show_logout"):
        render_logout()
        render_footer(settings.app.name)
        return

    session = current_session(st.session_state)
    if session is None:
        render_login(engine, settings)
        render_footer(settings.app.name)
        return

    # --- AUTHENTICATED APP FLOW ---
    left, right = st.columns([0.75, 0.25])
    with left:
        st.caption(f"Signed in as **{session.name}** · _{session.portal_title}_")
    with right:
        if st.button("Logout", key="logout_top"):
            st.session_state["show_logout"] = True
            st.rerun()

    pages = _build_pages(engine, session)
    if not pages:
        hide_sidebar()
        st.error("No pages available for your role.")
    else:
        nav = st.navigation(pages, position="sidebar")
        nav.run()

    render_footer(settings.app.name)


if __name__ == "__main__":
    main()
