# core/db.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import List
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from core.schema_registry import auto_discover, run_all

log = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).resolve().parents[1] / "schemas"

def get_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite:///"):
        db_file = db_url.replace("sqlite:///", "")
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(db_url, future=True)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine

def init_db(engine: Engine) -> List[str]:
    """
    Imports every module under schemas/ and runs their installers.
    Returns the names of installers that failed (empty on success).
    """
    auto_discover(SCHEMAS_DIR)
    failed = run_all(engine)
    if failed:
        log.error("Schema installers failed: %s", ", ".join(failed))
    return failed
