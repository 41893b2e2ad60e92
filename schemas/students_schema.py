# schemas/students_schema.py
"""
Student lead records.

Column names follow the ingestion format (lower-case, no separators) so rows
parsed from uploads can be inserted as-is. examspreparing and tags hold JSON
lists.
"""
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("students")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS students (
                id TEXT PRIMARY KEY,
                studentname TEXT NOT NULL,
                gender TEXT,
                contactnumber TEXT NOT NULL,
                fathername TEXT,
                mothername TEXT,
                parentsnumber TEXT,
                studentmailid TEXT,
                address TEXT,
                pincode TEXT,
                state TEXT NOT NULL,
                class TEXT NOT NULL,
                year INTEGER NOT NULL,
                collegeschool TEXT,
                entranceexam TEXT,
                stream TEXT,
                rank INTEGER,
                board TEXT,
                district TEXT,
                city TEXT,
                dateofbirth TEXT,
                category TEXT DEFAULT 'General',
                examspreparing TEXT DEFAULT '[]',
                marks10th INTEGER DEFAULT 0,
                marks12th INTEGER,
                graduationmarks INTEGER,
                institutionname TEXT,
                admissionstatus TEXT DEFAULT 'new',
                followupstatus TEXT DEFAULT 'pending',
                callstatus TEXT,
                calloutcome TEXT,
                notes TEXT,
                assignedto TEXT,
                assignedexecutive TEXT,
                tags TEXT DEFAULT '[]',
                lastcontactdate TEXT,
                nextfollowupdate TEXT,
                createdat TEXT,
                updatedat TEXT,
                createdby TEXT,
                lastupdatedby TEXT
            )
        """))

        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_state ON students(state)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_class ON students(class)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_year ON students(year)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_assignedto ON students(assignedto)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_createdat ON students(createdat)"))
