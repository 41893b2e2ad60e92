# screens/bulk_ops/service.py
"""
Bulk email / WhatsApp to the students a session can see.

Sending goes through the messaging provider; every send or schedule is
recorded in bulk_messages.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Sequence
import logging
import uuid

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreUnavailableError, ValidationError
from core.messaging import MessagingProvider, get_provider
from core.session import Session

log = logging.getLogger(__name__)

CHANNELS = ("email", "whatsapp")

# Student column holding the address for each channel
ADDRESS_COLUMNS = {
    "email": "studentmailid",
    "whatsapp": "contactnumber",
}


@dataclass(frozen=True)
class BulkMessage:
    id: str
    channel: str
    subject: Optional[str]
    message: str
    recipient_count: int
    accepted_count: int
    status: str
    scheduled_for: Optional[str]
    sent_at: Optional[str]
    created_by: str
    created_by_name: Optional[str]
    created_at: str


def recipients_for(students: Sequence[Dict[str, Any]], channel: str) -> List[str]:
    """Distinct non-empty addresses in student order."""
    column = ADDRESS_COLUMNS[channel]
    seen, out = set(), []
    for s in students:
        addr = (str(s.get(column) or "")).strip()
        if addr and addr not in seen:
            seen.add(addr)
            out.append(addr)
    return out


def _validate(channel: str, message: str, subject: Optional[str]) -> None:
    errors = []
    if channel not in CHANNELS:
        errors.append(f"Unsupported channel: {channel}")
    if not (message or "").strip():
        errors.append("Please enter a message")
    if channel == "email" and not (subject or "").strip():
        errors.append("Please enter a subject")
    if errors:
        raise ValidationError(errors[0], errors)


def send_bulk_message(
    engine: Engine,
    session: Session,
    students: Sequence[Dict[str, Any]],
    channel: str,
    message: str,
    subject: Optional[str] = None,
    schedule_date: Optional[date] = None,
    schedule_time: Optional[time] = None,
    provider: Optional[MessagingProvider] = None,
) -> BulkMessage:
    _validate(channel, message, subject)
    recipients = recipients_for(students, channel)
    if not recipients:
        raise ValidationError(f"No students with a {channel} address in your current view")

    now = datetime.now(timezone.utc).isoformat()
    scheduled_for = None
    if schedule_date and schedule_time:
        scheduled_for = datetime.combine(schedule_date, schedule_time).isoformat()

    accepted = 0
    sent_at = None
    if scheduled_for:
        status = "scheduled"
    else:
        provider = provider or get_provider()
        receipt = provider.send(
            channel, recipients, {"subject": (subject or "").strip() or None, "message": message.strip()}
        )
        accepted = receipt.accepted
        sent_at = now
        status = "sent"

    record = BulkMessage(
        id=str(uuid.uuid4()),
        channel=channel,
        subject=(subject or "").strip() or None,
        message=message.strip(),
        recipient_count=len(recipients),
        accepted_count=accepted,
        status=status,
        scheduled_for=scheduled_for,
        sent_at=sent_at,
        created_by=session.user_id,
        created_by_name=session.name,
        created_at=now,
    )
    try:
        with engine.begin() as conn:
            conn.execute(sa_text("""
                INSERT INTO bulk_messages(id, channel, subject, message, recipient_count,
                                          accepted_count, status, scheduled_for, sent_at,
                                          created_by, created_by_name, created_at)
                VALUES(:id, :channel, :subject, :message, :recipient_count, :accepted_count,
                       :status, :scheduled_for, :sent_at, :created_by, :created_by_name, :created_at)
            """), record.__dict__)
    except SQLAlchemyError as e:
        log.error("Recording bulk %s failed: %s", channel, e)
        raise StoreUnavailableError("Could not record the bulk message") from e

    log.info("Bulk %s %s by %s to %d recipient(s)", channel, status, session.email, len(recipients))
    return record


def list_recent_messages(engine: Engine, limit: int = 20, created_by: Optional[str] = None) -> List[BulkMessage]:
    sql = "SELECT * FROM bulk_messages"
    params: Dict[str, Any] = {"limit": int(limit)}
    if created_by:
        sql += " WHERE created_by = :cb"
        params["cb"] = created_by
    sql += " ORDER BY created_at DESC, id DESC LIMIT :limit"
    try:
        with engine.connect() as conn:
            rows = conn.execute(sa_text(sql), params).fetchall()
    except SQLAlchemyError as e:
        raise StoreUnavailableError("Could not load recent messages") from e
    return [BulkMessage(**dict(r._mapping)) for r in rows]
