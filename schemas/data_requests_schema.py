# schemas/data_requests_schema.py
"""
Manager -> admin data access requests.

`version` is the optimistic-concurrency token: every transition updates the
row only if the version it read is still current, then bumps it.
"""
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("data_requests")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS data_requests (
                id TEXT PRIMARY KEY,
                requested_by TEXT NOT NULL,
                requested_by_name TEXT NOT NULL,
                requested_by_role TEXT NOT NULL CHECK (requested_by_role IN ('manager','executive')),
                institution_name TEXT,
                request_type TEXT NOT NULL CHECK (request_type IN ('data_access','bulk_communication','student_export')),
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                justification TEXT NOT NULL,
                filters_json TEXT NOT NULL,
                estimated_count INTEGER,
                urgency TEXT NOT NULL DEFAULT 'medium' CHECK (urgency IN ('low','medium','high')),
                status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending','approved','rejected')),
                approved_by TEXT,
                approved_at TEXT,
                rejection_reason TEXT,
                requested_data_json TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_data_requests_requester ON data_requests(requested_by, status)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_data_requests_created ON data_requests(created_at)"))
