# screens/login.py
from __future__ import annotations
import logging

import streamlit as st
from sqlalchemy.engine import Engine

from core.errors import AuthenticationError, StoreUnavailableError
from core.session import PORTAL_TITLES, SESSION_KEY, start_session
from core.settings import Settings
from core.ui import hide_sidebar

log = logging.getLogger(__name__)


def render_login(engine: Engine, settings: Settings) -> None:
    hide_sidebar()
    st.title(f"🔐 {settings.app.name}")
    st.caption("Sign in to your portal")

    portal = st.radio(
        "Portal",
        list(PORTAL_TITLES),
        format_func=PORTAL_TITLES.get,
        horizontal=True,
        key="login__portal",
    )
    with st.form("login_form"):
        identifier = st.text_input("Username or email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login", type="primary")

    if settings.auth.demo_users:
        with st.expander("Demo accounts"):
            for demo in settings.auth.demo_users:
                st.write(f"**{PORTAL_TITLES.get(demo.role, demo.role)}:** `{demo.username}` / `{demo.password}`")

    if not submitted:
        return
    try:
        session = start_session(engine, identifier, password, portal)
    except AuthenticationError as e:
        st.error(str(e))
        return
    except StoreUnavailableError as e:
        st.error(str(e))
        return
    st.session_state[SESSION_KEY] = session
    st.success(f"Logged in as {session.name}! Redirecting...")
    st.rerun()
