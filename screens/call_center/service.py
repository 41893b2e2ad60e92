# screens/call_center/service.py
"""
Executive call workflow: a queue of assigned students, one call session at a
time, and the outcome write-back (student row + call_logs entry).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import uuid

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.constants import CALL_OUTCOMES, CALL_STATUSES
from core.errors import InvalidStateError, StoreUnavailableError, ValidationError
from core.messaging import MessagingProvider, get_provider
from core.record_store import Predicate, RecordStore
from core.session import Session

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# QUEUE
# ============================================================================

class CallQueue:
    """Ordered students to call; `current` is None once the queue is exhausted."""

    def __init__(self, students: List[Dict[str, Any]]):
        self.students = list(students)
        self.index = 0

    @property
    def current(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.index < len(self.students):
            return self.students[self.index]
        return None

    @property
    def remaining(self) -> int:
        return max(0, len(self.students) - self.index)

    def advance(self) -> Optional[Dict[str, Any]]:
        if self.index < len(self.students):
            self.index += 1
        return self.current

    def replace_current(self, student: Dict[str, Any]) -> None:
        if self.current is None:
            raise InvalidStateError("No student selected")
        self.students[self.index] = student


def build_queue(record_store: RecordStore, session: Session, limit: int = 500) -> CallQueue:
    """Students assigned to the executive, pending follow-ups first, newest first within each group."""
    rows = record_store.query(
        "students",
        Predicate.everything().eq("assignedto", session.user_id),
        order_by="createdat",
        descending=True,
        limit=limit,
    )
    rows.sort(key=lambda r: 0 if (r.get("followupstatus") or "pending") == "pending" else 1)
    return CallQueue(rows)


# ============================================================================
# CALL SESSION
# ============================================================================

@dataclass(frozen=True)
class CallSession:
    student_id: str
    phone: str
    started_at: datetime
    ended_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    @property
    def duration_seconds(self) -> int:
        end = self.ended_at or _utcnow()
        return max(0, int((end - self.started_at).total_seconds()))


def start_call(
    student: Dict[str, Any],
    session: Session,
    provider: Optional[MessagingProvider] = None,
    now: Optional[datetime] = None,
) -> CallSession:
    phone = (student.get("contactnumber") or "").strip()
    if not phone:
        raise ValidationError("This student has no contact number")
    provider = provider or get_provider()
    provider.send("voice", [phone], {"student_id": student.get("id"), "caller": session.user_id})
    log.info("Call started by %s to student %s", session.email, student.get("id"))
    return CallSession(student_id=student["id"], phone=phone, started_at=now or _utcnow())


def end_call(call: CallSession, now: Optional[datetime] = None) -> CallSession:
    if not call.is_active:
        return call
    ended = replace(call, ended_at=now or _utcnow())
    log.info("Call to student %s ended after %ds", call.student_id, ended.duration_seconds)
    return ended


# ============================================================================
# OUTCOME
# ============================================================================

def save_call_outcome(
    engine: Engine,
    session: Session,
    student: Dict[str, Any],
    call_status: Optional[str],
    outcome: Optional[str] = None,
    notes: str = "",
    follow_up_date: Optional[date] = None,
    call: Optional[CallSession] = None,
) -> Dict[str, Any]:
    """
    Writes the call result to the student and appends a call_logs row in one
    transaction. Returns the updated student dict.
    """
    if not call_status:
        raise ValidationError("Please select a call outcome")
    if call_status not in CALL_STATUSES:
        raise ValidationError(f"Unknown call status: {call_status}")
    if outcome and outcome not in CALL_OUTCOMES:
        raise ValidationError(f"Unknown call outcome: {outcome}")

    now = _utcnow().isoformat()
    next_follow_up = follow_up_date.isoformat() if follow_up_date else None
    notes = (notes or "").strip() or None
    values = {
        "callstatus": call_status,
        "calloutcome": outcome or None,
        "notes": notes if notes is not None else student.get("notes"),
        "lastcontactdate": now,
        "nextfollowupdate": next_follow_up,
        "followupstatus": "scheduled" if next_follow_up else "completed",
        "updatedat": now,
        "lastupdatedby": session.user_id,
    }
    if call is not None and call.is_active:
        call = end_call(call)

    try:
        with engine.begin() as conn:
            res = conn.execute(sa_text("""
                UPDATE students
                   SET callstatus = :callstatus, calloutcome = :calloutcome, notes = :notes,
                       lastcontactdate = :lastcontactdate, nextfollowupdate = :nextfollowupdate,
                       followupstatus = :followupstatus, updatedat = :updatedat,
                       lastupdatedby = :lastupdatedby
                 WHERE id = :id
            """), dict(values, id=student["id"]))
            if res.rowcount != 1:
                raise InvalidStateError(f"Student {student['id']} no longer exists")
            conn.execute(sa_text("""
                INSERT INTO call_logs(id, student_id, executive_id, executive_name, call_type,
                                      status, outcome, duration, notes, follow_up_required,
                                      follow_up_date, created_at)
                VALUES(:id, :sid, :eid, :ename, 'outbound', :status, :outcome, :duration, :notes,
                       :fur, :fud, :now)
            """), {
                "id": str(uuid.uuid4()),
                "sid": student["id"],
                "eid": session.user_id,
                "ename": session.name,
                "status": call_status,
                "outcome": outcome or None,
                "duration": call.duration_seconds if call else None,
                "notes": notes,
                "fur": 1 if next_follow_up else 0,
                "fud": next_follow_up,
                "now": now,
            })
    except SQLAlchemyError as e:
        log.error("Saving call outcome for %s failed: %s", student.get("id"), e)
        raise StoreUnavailableError("Could not save the call outcome") from e

    log.info("Call outcome %s saved for student %s by %s", call_status, student["id"], session.email)
    return dict(student, **values)
