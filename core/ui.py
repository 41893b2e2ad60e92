# core/ui.py
from __future__ import annotations
from datetime import date
import streamlit as st

from core.errors import CrmError, ValidationError


def hide_sidebar():
    """Used on the login and logout screens."""
    st.markdown(
        """
        <style>
            section[data-testid="stSidebar"] {
                display: none;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def show_error(e: CrmError):
    """One st.error per validation message, otherwise the error text."""
    if isinstance(e, ValidationError) and e.errors:
        for msg in e.errors:
            st.error(msg)
    else:
        st.error(str(e))


def render_footer(app_name: str):
    """Render one global footer; call this on every page."""
    html = f"""
    <div style="
        margin-top: 2rem;
        padding: 0.75rem 0;
        font-size: 0.9rem;
        color: inherit;
        border-top: 1px solid rgba(0,0,0,0.15);
        opacity: 0.9;
        text-align: center;">
        <span>© {date.today().year} • {app_name}</span>
    </div>
    """
    st.markdown(html, unsafe_allow_html=True)
