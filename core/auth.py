# core/auth.py
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import bcrypt
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreUnavailableError

log = logging.getLogger(__name__)

ROLES = ("admin", "manager", "executive")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    role: str
    profile: Dict[str, Any] = field(default_factory=dict)


def _profile_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    profile = {k: v for k, v in row.items() if k != "password_hash"}
    try:
        profile["data_scope"] = json.loads(profile.get("data_scope") or "{}")
    except ValueError:
        profile["data_scope"] = {}
    return profile


def authenticate(engine: Engine, identifier: str, secret: str) -> Optional[AuthenticatedUser]:
    """
    Checks username-or-email plus password against active users.
    Returns None on bad credentials; the raw secret is never stored.
    """
    identifier = (identifier or "").strip()
    if not identifier or not secret:
        return None
    try:
        with engine.begin() as conn:
            row = conn.execute(
                sa_text("""
                    SELECT * FROM users
                    WHERE (username = :i OR LOWER(email) = LOWER(:i)) AND is_active = 1
                    LIMIT 1
                """),
                {"i": identifier},
            ).fetchone()
            if not row:
                log.info("Login failed for %s: unknown or inactive", identifier)
                return None
            user = dict(row._mapping)
            if not verify_password(secret, user.get("password_hash") or ""):
                log.info("Login failed for %s: bad password", identifier)
                return None
            conn.execute(
                sa_text("UPDATE users SET updated_at = :now WHERE id = :id"),
                {"now": datetime.now(timezone.utc).isoformat(), "id": user["id"]},
            )
    except SQLAlchemyError as e:
        raise StoreUnavailableError("Authentication service unavailable") from e

    return AuthenticatedUser(user_id=user["id"], role=user["role"], profile=_profile_from_row(user))
