# schemas/communications_schema.py
"""Bulk message log and call center call logs."""
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("communications")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS bulk_messages (
                id TEXT PRIMARY KEY,
                channel TEXT NOT NULL CHECK (channel IN ('email','whatsapp')),
                subject TEXT,
                message TEXT NOT NULL,
                recipient_count INTEGER NOT NULL DEFAULT 0,
                accepted_count INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL CHECK (status IN ('scheduled','sent','failed')),
                scheduled_for TEXT,
                sent_at TEXT,
                created_by TEXT NOT NULL,
                created_by_name TEXT,
                created_at TEXT NOT NULL
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_bulk_messages_created ON bulk_messages(created_at)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS call_logs (
                id TEXT PRIMARY KEY,
                student_id TEXT NOT NULL,
                executive_id TEXT NOT NULL,
                executive_name TEXT,
                call_type TEXT NOT NULL DEFAULT 'outbound',
                status TEXT NOT NULL,
                outcome TEXT,
                duration INTEGER,
                notes TEXT,
                follow_up_required INTEGER NOT NULL DEFAULT 0,
                follow_up_date TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_call_logs_student ON call_logs(student_id)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_call_logs_executive ON call_logs(executive_id)"))
