# core/policy.py
"""
Role-based page access and action rights.

Page access is a static role map; the navigation in app.py and the
`require_page` guard on each screen both read it.
"""
from __future__ import annotations
from typing import Dict, Set, Callable, Optional, Tuple
import functools
import streamlit as st

from core.session import Session

# ============================================================================
# PAGE ACCESS
# ============================================================================

PAGE_DASHBOARD = "Dashboard"
PAGE_STUDENTS = "Students"
PAGE_UPLOAD = "Upload Data"
PAGE_USERS = "Users"
PAGE_DATA_REQUESTS = "Data Requests"
PAGE_BULK_OPS = "Bulk Operations"
PAGE_CALL_CENTER = "Call Center"

PAGE_ACCESS: Dict[str, Set[str]] = {
    PAGE_DASHBOARD: {"admin", "manager", "executive"},
    PAGE_STUDENTS: {"admin", "manager", "executive"},
    PAGE_UPLOAD: {"admin", "manager"},
    PAGE_USERS: {"admin", "manager"},
    PAGE_DATA_REQUESTS: {"admin", "manager", "executive"},
    PAGE_BULK_OPS: {"admin", "manager"},
    PAGE_CALL_CENTER: {"executive"},
}

# Who may create which kind of account
_CREATABLE_ROLES: Dict[str, Tuple[str, ...]] = {
    "admin": ("manager", "executive"),
    "manager": ("executive",),
}


def can_view_page(page_name: str, role: Optional[str]) -> bool:
    """Checks if the role can view the page."""
    return bool(role) and role in PAGE_ACCESS.get(page_name, set())


def visible_pages_for(role: Optional[str]) -> list[str]:
    """Pages the role can view, in navigation order."""
    return [page for page in PAGE_ACCESS if can_view_page(page, role)]


def can_approve_requests(role: Optional[str]) -> bool:
    return role == "admin"


def can_request_data(role: Optional[str]) -> bool:
    return role in ("manager", "executive")


def creatable_roles(role: Optional[str]) -> Tuple[str, ...]:
    return _CREATABLE_ROLES.get(role or "", ())


def require_page(page_name: str):
    """
    Guard for screen render functions taking the Session as their second
    argument: `render(engine, session, ...)`.
    """
    def _wrap(fn: Callable):
        @functools.wraps(fn)
        def _inner(engine, session: Optional[Session], *args, **kwargs):
            if session is None or not can_view_page(page_name, session.role):
                st.error("Access Denied. You don't have permission to view this page.")
                st.stop()
            return fn(engine, session, *args, **kwargs)
        return _inner
    return _wrap
