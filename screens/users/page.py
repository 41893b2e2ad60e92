# screens/users/page.py
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.constants import INDIAN_STATES
from core.errors import CrmError
from core.policy import PAGE_USERS, creatable_roles, require_page
from core.session import Session
from core.ui import show_error
from screens.users.db import create_user, delete_user, list_users, toggle_user_status, update_user
from screens.users.utils import generate_initial_password, mask_phone

log = logging.getLogger(__name__)


def _render_create(engine: Engine, session: Session) -> None:
    roles = creatable_roles(session.role)
    if not roles:
        st.info("You cannot create accounts.")
        return

    with st.form(key="users__create_form"):
        c1, c2 = st.columns(2)
        with c1:
            name = st.text_input("Full name *")
            email = st.text_input("Email *")
            username = st.text_input("Username *")
            role = st.selectbox("Role", list(roles), format_func=str.title)
        with c2:
            phone = st.text_input("Phone")
            institution = st.text_input("Institution", value=session.institution_name)
            city = st.text_input("City")
            state = st.selectbox("State", [""] + INDIAN_STATES)
        password = st.text_input("Password (leave empty to generate)", type="password")
        submitted = st.form_submit_button("Create Account", type="primary")

    if not submitted:
        return
    initial = password or generate_initial_password(name)
    try:
        with engine.begin() as conn:
            user = create_user(conn, {
                "name": name, "email": email, "username": username, "role": role,
                "phone": phone, "institution_name": institution, "city": city, "state": state,
                "password": initial,
            }, created_by=session.user_id, creator_role=session.role)
    except CrmError as e:
        show_error(e)
        return
    except SQLAlchemyError as e:
        log.error("Create user failed: %s", e)
        st.error("Could not save the account; the database is unavailable.")
        return
    st.success(f"Created {user['role']} account for {user['name']}.")
    if not password:
        st.info(f"Initial password: `{initial}` (share it securely; it is not shown again)")


def _render_list(engine: Engine, session: Session) -> None:
    created_by = None if session.is_admin else session.user_id
    try:
        with engine.connect() as conn:
            users = list_users(conn, created_by=created_by)
    except SQLAlchemyError as e:
        log.error("List users failed: %s", e)
        st.warning("User list unavailable.")
        return

    users = [u for u in users if u["id"] != session.user_id]
    if not users:
        st.info("No accounts yet.")
        return

    df = pd.DataFrame([{
        "name": u["name"], "username": u["username"], "email": u["email"], "role": u["role"],
        "phone": mask_phone(u.get("phone") or ""), "institution": u.get("institution_name"),
        "active": u["is_active"], "created_at": u["created_at"],
    } for u in users])
    st.dataframe(df, use_container_width=True, hide_index=True)

    labels = {u["id"]: f"{u['name']} ({u['username']})" for u in users}
    user_id = st.selectbox("Manage account", list(labels), format_func=labels.get, key="users__pick")
    target = next(u for u in users if u["id"] == user_id)

    with st.form(key=f"users__edit_{user_id}"):
        name = st.text_input("Full name", value=target["name"])
        phone = st.text_input("Phone", value=target.get("phone") or "")
        institution = st.text_input("Institution", value=target.get("institution_name") or "")
        new_password = st.text_input("New password (optional)", type="password")
        saved = st.form_submit_button("Save changes")
    if saved:
        try:
            with engine.begin() as conn:
                update_user(conn, user_id, {
                    "name": name, "phone": phone, "institution_name": institution,
                    "password": new_password,
                })
            st.success("Account updated.")
        except CrmError as e:
            show_error(e)

    c1, c2 = st.columns(2)
    with c1:
        label = "Deactivate" if target["is_active"] else "Activate"
        if st.button(label, key=f"users__toggle_{user_id}"):
            try:
                with engine.begin() as conn:
                    toggle_user_status(conn, user_id)
                st.rerun()
            except CrmError as e:
                show_error(e)
    with c2:
        confirm = st.checkbox("Confirm delete", key=f"users__confirm_{user_id}")
        if st.button("🗑️ Delete", key=f"users__delete_{user_id}", disabled=not confirm):
            try:
                with engine.begin() as conn:
                    delete_user(conn, user_id)
                st.rerun()
            except CrmError as e:
                show_error(e)


@require_page(PAGE_USERS)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title("🧑‍💼 Manager Management" if session.is_admin else "🧑‍💼 Executive Management")
    tab_list, tab_create = st.tabs(["Accounts", "Create Account"])
    with tab_list:
        _render_list(engine, session)
    with tab_create:
        _render_create(engine, session)
