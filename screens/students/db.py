# screens/students/db.py
"""
Loading the students a session is allowed to see.

    admin      -> every student, newest first
    manager    -> union of their approved data requests (nothing until one is approved)
    executive  -> students assigned to them, capped by students.executive_limit
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from core.record_store import Predicate, RecordStore
from core.session import Session
from screens.data_requests.access import resolve_effective_access
from screens.data_requests.store import DataRequestStore

log = logging.getLogger(__name__)

STUDENTS_TABLE = "students"


# --- Stale response guard ------------------------------------------------------

class FetchGuard:
    """
    Hands out increasing tokens per load; only the newest token's result is
    accepted. Kept in st.session_state so it survives reruns.
    """

    def __init__(self):
        self._seq = 0

    def begin(self) -> int:
        self._seq += 1
        return self._seq

    def is_current(self, token: int) -> bool:
        return token == self._seq

    def accept(self, token: int, result: Any) -> Optional[Any]:
        if not self.is_current(token):
            log.debug("Discarding stale student load %d (latest %d)", token, self._seq)
            return None
        return result


# --- Scope ---------------------------------------------------------------------

@dataclass(frozen=True)
class StudentScope:
    predicate: Predicate
    message: str
    limit: Optional[int] = None
    has_access: bool = True


def scope_for_session(
    request_store: DataRequestStore, session: Session, executive_limit: int = 500
) -> StudentScope:
    if session.is_admin:
        return StudentScope(Predicate.everything(), "Showing all students")
    if session.is_executive:
        return StudentScope(
            Predicate.everything().eq("assignedto", session.user_id),
            "Showing students assigned to you",
            limit=executive_limit,
        )
    if session.is_manager:
        access = resolve_effective_access(request_store, session.user_id)
        return StudentScope(access.to_predicate(), access.message, has_access=access.has_access)
    return StudentScope(Predicate.nothing(), "No access", has_access=False)


@dataclass
class StudentLoad:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ""
    has_access: bool = True


def load_students_for_session(
    record_store: RecordStore,
    request_store: DataRequestStore,
    session: Session,
    executive_limit: int = 500,
) -> StudentLoad:
    scope = scope_for_session(request_store, session, executive_limit)
    rows = record_store.query(
        STUDENTS_TABLE,
        scope.predicate,
        order_by="createdat",
        descending=True,
        limit=scope.limit,
    )
    log.info("Loaded %d students for %s (%s)", len(rows), session.email, session.role)
    return StudentLoad(rows=rows, message=scope.message, has_access=scope.has_access)


# --- Stats ---------------------------------------------------------------------

def get_database_stats(record_store: RecordStore, predicate: Optional[Predicate] = None) -> Dict[str, Any]:
    predicate = predicate or Predicate.everything()
    return {
        "total": record_store.count(STUDENTS_TABLE, predicate),
        "by_state": record_store.group_counts(STUDENTS_TABLE, "state", predicate),
        "by_class": record_store.group_counts(STUDENTS_TABLE, "class", predicate),
        "by_status": record_store.group_counts(STUDENTS_TABLE, "admissionstatus", predicate),
    }


def get_student(record_store: RecordStore, student_id: str) -> Optional[Dict[str, Any]]:
    return record_store.get(STUDENTS_TABLE, student_id)


def update_student(record_store: RecordStore, student_id: str, values: Dict[str, Any], updated_by: str) -> int:
    values = dict(values)
    values["updatedat"] = datetime.now(timezone.utc).isoformat()
    values["lastupdatedby"] = updated_by
    n = record_store.update(STUDENTS_TABLE, student_id, values)
    log.info("Updated student %s (%s)", student_id, ", ".join(sorted(values)))
    return n
