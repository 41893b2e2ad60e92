# screens/logout.py
from __future__ import annotations
import streamlit as st

from core.session import end_session
from core.ui import hide_sidebar


def render_logout():
    hide_sidebar()
    st.title("🚪 Logout")

    # Keep the engine across logout
    ended = end_session(st.session_state, keep=("engine",))
    if ended:
        st.success(f"Successfully logged out {ended.email}")
    else:
        st.info("You are already logged out")

    st.markdown("---")
    col1, _ = st.columns([1, 1])
    with col1:
        if st.button("🔄 Return to Login", type="primary", use_container_width=True):
            st.rerun()
