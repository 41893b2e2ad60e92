from core.filters import FilterSet
from screens.students.db import (
    FetchGuard,
    get_database_stats,
    get_student,
    load_students_for_session,
    scope_for_session,
    update_student,
)

from conftest import make_session, student_row
from test_data_request_store import make_draft


def _seed(record_store):
    result = record_store.insert("students", [
        student_row(id="a", studentname="A", state="Karnataka", assignedto="executive-1",
                    createdat="2024-01-01T00:00:00+00:00"),
        student_row(id="b", studentname="B", state="Kerala", assignedto="executive-1",
                    admissionstatus="interested", createdat="2024-01-03T00:00:00+00:00"),
        student_row(id="c", studentname="C", state="Karnataka", assignedto="executive-2",
                    **{"class": "11th", "createdat": "2024-01-02T00:00:00+00:00"}),
    ])
    assert result.per_row_errors == []


def test_fetch_guard_only_accepts_latest_token():
    guard = FetchGuard()
    first = guard.begin()
    second = guard.begin()
    assert guard.accept(first, ["stale"]) is None
    assert guard.accept(second, ["fresh"]) == ["fresh"]
    assert not guard.is_current(first)


def test_admin_sees_everything_newest_first(record_store, request_store, admin_session):
    _seed(record_store)
    load = load_students_for_session(record_store, request_store, admin_session)
    assert [r["id"] for r in load.rows] == ["b", "c", "a"]
    assert load.has_access


def test_executive_sees_assigned_students_up_to_limit(record_store, request_store, executive_session):
    _seed(record_store)
    load = load_students_for_session(record_store, request_store, executive_session)
    assert [r["id"] for r in load.rows] == ["b", "a"]

    capped = load_students_for_session(record_store, request_store, executive_session, executive_limit=1)
    assert [r["id"] for r in capped.rows] == ["b"]


def test_manager_without_approval_sees_nothing(record_store, request_store, manager_session):
    _seed(record_store)
    request_store.create(make_draft(filters=FilterSet(states={"Karnataka"})))
    load = load_students_for_session(record_store, request_store, manager_session)
    assert load.rows == []
    assert not load.has_access


def test_manager_sees_approved_scope(record_store, request_store, manager_session):
    _seed(record_store)
    req = request_store.create(make_draft(filters=FilterSet(states={"Karnataka"})))
    request_store.approve(req.id, "admin-1")

    load = load_students_for_session(record_store, request_store, manager_session)
    assert [r["id"] for r in load.rows] == ["c", "a"]
    assert load.has_access


def test_unknown_role_has_no_scope(request_store):
    scope = scope_for_session(request_store, make_session("guest"))
    assert not scope.has_access


def test_stats_follow_the_scope(record_store, request_store, executive_session):
    _seed(record_store)
    assert get_database_stats(record_store)["total"] == 3

    scope = scope_for_session(request_store, executive_session)
    stats = get_database_stats(record_store, scope.predicate)
    assert stats["total"] == 2
    assert stats["by_state"] == {"Karnataka": 1, "Kerala": 1}
    assert stats["by_status"] == {"new": 1, "interested": 1}


def test_update_student_stamps_editor(record_store):
    _seed(record_store)
    assert update_student(record_store, "a", {"admissionstatus": "contacted"}, "executive-1") == 1
    row = get_student(record_store, "a")
    assert row["admissionstatus"] == "contacted"
    assert row["lastupdatedby"] == "executive-1"
    assert row["updatedat"]
