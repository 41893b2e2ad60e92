# schemas/_seed.py
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone

from sqlalchemy import text as sa_text
from core.auth import hash_password
from core.schema_registry import register
from core.settings import load_settings
from schemas.users_schema import ensure_users_schema  # registers "users" ahead of the seed

log = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Demo accounts, one per portal (config/settings.yaml -> auth.demo_users)
# ──────────────────────────────────────────────────────────────────────────────

# Scopes the original demo accounts carried; advisory only, access comes from
# approved data requests.
DEMO_SCOPES = {
    "manager": {
        "states": ["Karnataka", "Tamil Nadu"],
        "districts": ["Bangalore Urban", "Chennai"],
        "classes": ["12th", "B.Tech", "B.Sc"],
        "years": [2023, 2024, 2025],
    },
    "executive": {
        "states": ["Karnataka"],
        "districts": ["Bangalore Urban"],
        "classes": ["12th"],
        "years": [2024],
    },
}

def _seed_should_run() -> bool:
    return os.getenv("SEED_RUN", "1").lower() not in ("0", "false")

@register
def seed_demo_users(engine):
    """
    Insert the demo users if their username/email is not taken yet.
    Existing rows are left alone so a rotated password survives restarts.
    Controlled via env var SEED_RUN (set to 0/false to skip).
    """
    if not _seed_should_run():
        return
    settings = load_settings()
    now = datetime.now(timezone.utc).isoformat()
    ensure_users_schema(engine)
    with engine.begin() as conn:
        for demo in settings.auth.demo_users:
            exists = conn.execute(
                sa_text("SELECT 1 FROM users WHERE username = :u OR LOWER(email) = LOWER(:e)"),
                {"u": demo.username, "e": demo.email},
            ).fetchone()
            if exists:
                continue
            conn.execute(sa_text("""
                INSERT INTO users(id, name, email, phone, role, institution_name, city, state,
                                  username, password_hash, data_scope, is_active, created_at, updated_at)
                VALUES(:id, :name, :email, :phone, :role, :inst, :city, :state,
                       :username, :ph, :scope, 1, :now, :now)
            """), {
                "id": str(uuid.uuid4()),
                "name": demo.name,
                "email": demo.email.lower(),
                "phone": demo.phone,
                "role": demo.role,
                "inst": demo.institution_name,
                "city": demo.city,
                "state": demo.state,
                "username": demo.username,
                "ph": hash_password(demo.password),
                "scope": json.dumps(DEMO_SCOPES.get(demo.role, {})),
                "now": now,
            })
            log.info("Seeded demo %s account %s", demo.role, demo.username)
