# screens/users/db.py
"""
Manager and executive accounts.

Functions take an open connection; callers own the transaction
(`with engine.begin() as conn:`).
"""
from __future__ import annotations
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import json
import logging
import uuid

from sqlalchemy import text as sa_text

from core.auth import ROLES, hash_password
from core.errors import NotFoundError, ValidationError
from core.policy import creatable_roles
from screens.users.utils import is_valid_email, validate_username

log = logging.getLogger(__name__)

# Columns returned to screens; password_hash never leaves this module
PUBLIC_COLUMNS = (
    "id, name, email, phone, role, institution_name, gst_number, address, city, state, "
    "district, username, data_scope, is_active, created_by, created_at, updated_at"
)

EDITABLE_FIELDS = (
    "name", "phone", "institution_name", "gst_number", "address", "city", "state", "district",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row(r) -> Dict[str, Any]:
    d = dict(r._mapping)
    try:
        d["data_scope"] = json.loads(d.get("data_scope") or "{}")
    except ValueError:
        d["data_scope"] = {}
    d["is_active"] = bool(d.get("is_active"))
    return d


# ------- READS -------
def list_users(conn, created_by: Optional[str] = None, role: Optional[str] = None) -> List[Dict[str, Any]]:
    """List accounts, newest first, optionally only those created by one user."""
    where, params = [], {}
    if created_by:
        where.append("created_by = :cb")
        params["cb"] = created_by
    if role:
        where.append("role = :role")
        params["role"] = role
    sql = f"SELECT {PUBLIC_COLUMNS} FROM users"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY created_at DESC"
    return [_row(r) for r in conn.execute(sa_text(sql), params).fetchall()]


def get_user(conn, user_id: str) -> Dict[str, Any]:
    row = conn.execute(
        sa_text(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id = :id"), {"id": user_id}
    ).fetchone()
    if not row:
        raise NotFoundError(f"User {user_id} not found")
    return _row(row)


# ------- WRITES -------
def _validate_new_user(conn, payload: Dict[str, Any], creator_role: str) -> List[str]:
    errors: List[str] = []
    name = (payload.get("name") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    username = (payload.get("username") or "").strip()
    role = payload.get("role")

    if not name:
        errors.append("Name is required")
    if not is_valid_email(email):
        errors.append("A valid email is required")
    ok, msg = validate_username(username)
    if not ok:
        errors.append(msg)
    if role not in ROLES:
        errors.append(f"Unknown role: {role}")
    elif role not in creatable_roles(creator_role):
        errors.append(f"A {creator_role or 'user'} cannot create {role} accounts")
    if not payload.get("password"):
        errors.append("Password is required")

    if email or username:
        taken = conn.execute(
            sa_text("SELECT username, email FROM users WHERE username = :u OR LOWER(email) = :e"),
            {"u": username, "e": email},
        ).fetchall()
        for t_username, t_email in taken:
            if t_username == username:
                errors.append(f"Username '{username}' is already taken")
            if (t_email or "").lower() == email:
                errors.append(f"Email '{email}' is already registered")
    return errors


def create_user(conn, payload: Dict[str, Any], created_by: str, creator_role: str) -> Dict[str, Any]:
    """
    Create an account; the password is stored as a bcrypt hash only.
    `creator_role` must be allowed to create the requested role (see core.policy.creatable_roles).
    """
    errors = _validate_new_user(conn, payload, creator_role)
    if errors:
        raise ValidationError("Could not create user", errors)

    now = _now()
    user_id = str(uuid.uuid4())
    params = {f: (payload.get(f) or "").strip() or None for f in EDITABLE_FIELDS}
    params.update({
        "id": user_id,
        "name": payload["name"].strip(),
        "email": payload["email"].strip().lower(),
        "role": payload["role"],
        "username": payload["username"].strip(),
        "pw_hash": hash_password(payload["password"]),
        "scope": json.dumps(payload.get("data_scope") or {}),
        "created_by": created_by,
        "now": now,
    })
    conn.execute(sa_text("""
        INSERT INTO users (
            id, name, email, phone, role, institution_name, gst_number, address,
            city, state, district, username, password_hash, data_scope, is_active,
            created_by, created_at, updated_at
        )
        VALUES (
            :id, :name, :email, :phone, :role, :institution_name, :gst_number, :address,
            :city, :state, :district, :username, :pw_hash, :scope, 1,
            :created_by, :now, :now
        )
    """), params)
    log.info("User %s (%s) created by %s", params["username"], params["role"], created_by)
    return get_user(conn, user_id)


def update_user(conn, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Update profile fields; the password is re-hashed only when a new one is supplied."""
    get_user(conn, user_id)
    if "name" in payload and not (payload.get("name") or "").strip():
        raise ValidationError("Name is required")
    sets, params = [], {"id": user_id, "now": _now()}
    for f in EDITABLE_FIELDS:
        if f in payload:
            sets.append(f"{f} = :{f}")
            params[f] = (payload.get(f) or "").strip() or None
    if "data_scope" in payload:
        sets.append("data_scope = :scope")
        params["scope"] = json.dumps(payload.get("data_scope") or {})
    if payload.get("password"):
        sets.append("password_hash = :pw_hash")
        params["pw_hash"] = hash_password(payload["password"])
    if sets:
        conn.execute(
            sa_text(f"UPDATE users SET {', '.join(sets)}, updated_at = :now WHERE id = :id"), params
        )
        log.info("User %s updated (%s)", user_id, ", ".join(s.split(" ")[0] for s in sets))
    return get_user(conn, user_id)


def toggle_user_status(conn, user_id: str) -> bool:
    """Flip is_active; returns the new state."""
    user = get_user(conn, user_id)
    new_state = not user["is_active"]
    conn.execute(
        sa_text("UPDATE users SET is_active = :a, updated_at = :now WHERE id = :id"),
        {"a": 1 if new_state else 0, "now": _now(), "id": user_id},
    )
    log.info("User %s %s", user_id, "activated" if new_state else "deactivated")
    return new_state


def delete_user(conn, user_id: str) -> None:
    res = conn.execute(sa_text("DELETE FROM users WHERE id = :id"), {"id": user_id})
    if res.rowcount == 0:
        raise NotFoundError(f"User {user_id} not found")
    log.info("User %s deleted", user_id)
