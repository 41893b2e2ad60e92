from __future__ import annotations
from sqlalchemy import text as sa_text
from core.schema_registry import register

@register("users")
def ensure_users_schema(engine):
    with engine.begin() as conn:
        conn.execute(sa_text("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            phone TEXT,
            role TEXT NOT NULL CHECK (role IN ('admin','manager','executive')),
            institution_name TEXT,
            gst_number TEXT,
            address TEXT,
            city TEXT,
            state TEXT,
            district TEXT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            data_scope TEXT DEFAULT '{}',
            is_active INTEGER NOT NULL DEFAULT 1,
            created_by TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )"""))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS ix_users_role ON users(role)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS ix_users_created_by ON users(created_by)"))
