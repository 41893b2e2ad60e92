from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import text as sa_text

from core.errors import InvalidStateError, ValidationError
from core.messaging import SendReceipt
from screens.call_center.service import CallQueue, build_queue, end_call, save_call_outcome, start_call

from conftest import student_row


class RecordingProvider:
    def __init__(self):
        self.sent = []

    def send(self, channel, recipients, payload):
        self.sent.append((channel, list(recipients), payload))
        return SendReceipt(accepted=len(recipients), channel=channel)


T0 = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


def _seed(record_store):
    record_store.insert("students", [
        student_row(id="done", studentname="Done", assignedto="executive-1", followupstatus="completed",
                    createdat="2024-01-05T00:00:00+00:00"),
        student_row(id="old", studentname="Old", assignedto="executive-1",
                    createdat="2024-01-01T00:00:00+00:00"),
        student_row(id="new", studentname="New", assignedto="executive-1",
                    createdat="2024-01-03T00:00:00+00:00"),
        student_row(id="other", studentname="Other", assignedto="executive-2"),
    ])


def test_queue_puts_pending_follow_ups_first(record_store, executive_session):
    _seed(record_store)
    queue = build_queue(record_store, executive_session)
    assert [s["id"] for s in queue.students] == ["new", "old", "done"]


def test_queue_advances_to_exhaustion():
    queue = CallQueue([{"id": "a"}, {"id": "b"}])
    assert queue.current["id"] == "a" and queue.remaining == 2
    assert queue.advance()["id"] == "b"
    assert queue.advance() is None
    assert queue.advance() is None
    assert queue.remaining == 0
    with pytest.raises(InvalidStateError):
        queue.replace_current({"id": "c"})


def test_start_call_dials_through_provider(executive_session):
    provider = RecordingProvider()
    call = start_call({"id": "a", "contactnumber": " 9876543210 "}, executive_session, provider, now=T0)
    assert call.is_active
    assert call.phone == "9876543210"
    assert provider.sent[0][0] == "voice"
    assert provider.sent[0][1] == ["9876543210"]


def test_start_call_needs_a_number(executive_session):
    provider = RecordingProvider()
    with pytest.raises(ValidationError):
        start_call({"id": "a", "contactnumber": ""}, executive_session, provider)
    assert provider.sent == []


def test_end_call_measures_duration(executive_session):
    call = start_call({"id": "a", "contactnumber": "1"}, executive_session, RecordingProvider(), now=T0)
    ended = end_call(call, now=T0 + timedelta(seconds=95))
    assert not ended.is_active
    assert ended.duration_seconds == 95
    assert end_call(ended, now=T0 + timedelta(hours=1)) == ended


def test_outcome_requires_a_status(engine, record_store, executive_session):
    _seed(record_store)
    student = record_store.get("students", "new")
    with pytest.raises(ValidationError) as exc:
        save_call_outcome(engine, executive_session, student, None)
    assert str(exc.value) == "Please select a call outcome"
    with pytest.raises(ValidationError):
        save_call_outcome(engine, executive_session, student, "shouted")
    with pytest.raises(ValidationError):
        save_call_outcome(engine, executive_session, student, "answered", outcome="teleported")
    assert record_store.get("students", "new")["callstatus"] is None


def _call_logs(engine):
    with engine.connect() as conn:
        return [dict(r._mapping) for r in conn.execute(sa_text("SELECT * FROM call_logs")).fetchall()]


def test_outcome_with_follow_up_schedules_and_logs(engine, record_store, executive_session):
    _seed(record_store)
    student = record_store.get("students", "new")
    call = end_call(start_call(student, executive_session, RecordingProvider(), now=T0), now=T0 + timedelta(seconds=30))

    updated = save_call_outcome(
        engine, executive_session, student, "answered", "callback_requested",
        notes="call after exams", follow_up_date=date(2024, 6, 10), call=call,
    )
    assert updated["followupstatus"] == "scheduled"
    assert updated["nextfollowupdate"] == "2024-06-10"

    stored = record_store.get("students", "new")
    assert stored["callstatus"] == "answered"
    assert stored["calloutcome"] == "callback_requested"
    assert stored["notes"] == "call after exams"
    assert stored["lastupdatedby"] == "executive-1"

    logs = _call_logs(engine)
    assert len(logs) == 1
    assert logs[0]["student_id"] == "new"
    assert logs[0]["duration"] == 30
    assert logs[0]["follow_up_required"] == 1


def test_outcome_without_follow_up_completes(engine, record_store, executive_session):
    _seed(record_store)
    student = record_store.get("students", "old")
    updated = save_call_outcome(engine, executive_session, student, "not_answered")
    assert updated["followupstatus"] == "completed"
    assert record_store.get("students", "old")["nextfollowupdate"] is None
    assert _call_logs(engine)[0]["duration"] is None


def test_outcome_for_deleted_student_writes_nothing(engine, executive_session):
    with pytest.raises(InvalidStateError):
        save_call_outcome(engine, executive_session, {"id": "ghost"}, "busy")
    assert _call_logs(engine) == []
