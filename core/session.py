# core/session.py
"""
The logged-in user's session.

A Session is built once by `start_session` after a successful authentication
and dropped by `end_session` on logout. Screens receive it as an argument;
nothing reads the user from module globals.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional

from sqlalchemy.engine import Engine

from core.auth import ROLES, authenticate
from core.errors import AuthenticationError

log = logging.getLogger(__name__)

SESSION_KEY = "session"

PORTAL_TITLES = {
    "admin": "Backend Portal",
    "manager": "Manager Portal",
    "executive": "Executive Portal",
}


@dataclass(frozen=True)
class Session:
    user_id: str
    role: str
    name: str
    email: str
    institution_name: str = ""
    profile: Dict[str, Any] = field(default_factory=dict)
    started_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_manager(self) -> bool:
        return self.role == "manager"

    @property
    def is_executive(self) -> bool:
        return self.role == "executive"

    @property
    def portal_title(self) -> str:
        return PORTAL_TITLES.get(self.role, "Portal")


def start_session(engine: Engine, identifier: str, secret: str, portal: str) -> Session:
    """
    Authenticates and builds the Session. The chosen portal must match the
    account's role.
    """
    if portal not in ROLES:
        raise AuthenticationError(f"Unknown portal: {portal}")
    user = authenticate(engine, identifier, secret)
    if user is None:
        raise AuthenticationError("Invalid credentials")
    if user.role != portal:
        raise AuthenticationError(
            f"Invalid portal selection. This account is for {user.role} portal."
        )
    profile = user.profile
    session = Session(
        user_id=user.user_id,
        role=user.role,
        name=profile.get("name") or profile.get("username") or "User",
        email=profile.get("email") or "",
        institution_name=profile.get("institution_name") or "",
        profile=profile,
        started_at=datetime.now(timezone.utc).isoformat(),
    )
    log.info("Session started for %s (%s)", session.email, session.role)
    return session


def current_session(state: MutableMapping[str, Any]) -> Optional[Session]:
    s = state.get(SESSION_KEY)
    return s if isinstance(s, Session) else None


def end_session(state: MutableMapping[str, Any], keep: tuple = ("engine",)) -> Optional[Session]:
    """Clears everything from `state` except `keep`; returns the session that was ended."""
    ended = current_session(state)
    for key in list(state.keys()):
        if key not in keep:
            del state[key]
    if ended:
        log.info("Session ended for %s", ended.email)
    return ended
