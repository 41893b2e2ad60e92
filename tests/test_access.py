from core.filters import FilterSet
from screens.data_requests.access import NO_ACCESS_MESSAGE, check_data_access, resolve_effective_access

from conftest import student_row
from test_data_request_store import make_draft


def _approved(request_store, filters, requester="manager-1", estimated=None):
    req = request_store.create(make_draft(requested_by=requester, filters=filters), estimated_count=estimated)
    return request_store.approve(req.id, "admin-1")


def _visible_ids(record_store, access):
    return sorted(r["id"] for r in record_store.query("students", access.to_predicate()))


def _seed_students(record_store):
    record_store.insert("students", [
        student_row(id="ka12", studentname="Asha", state="Karnataka", **{"class": "12th"}),
        student_row(id="ka11", studentname="Bharat", state="Karnataka", **{"class": "11th"}),
        student_row(id="kl12", studentname="Chitra", state="Kerala", **{"class": "12th"}),
        student_row(id="tn12", studentname="Dev", state="Tamil Nadu", **{"class": "12th"}),
    ])


def test_no_approvals_means_nothing_is_visible(record_store, request_store):
    _seed_students(record_store)
    # pending and rejected requests grant nothing
    request_store.create(make_draft(filters=FilterSet(states={"Karnataka"})))
    rejected = request_store.create(make_draft(filters=FilterSet(states={"Kerala"})))
    request_store.reject(rejected.id, "no")

    access = resolve_effective_access(request_store, "manager-1")
    assert not access.has_access
    assert access.message == NO_ACCESS_MESSAGE
    assert _visible_ids(record_store, access) == []


def test_single_approval_limits_to_its_scope(record_store, request_store):
    _seed_students(record_store)
    _approved(request_store, FilterSet(states={"Karnataka"}, classes={"12th"}), estimated=1)

    access = resolve_effective_access(request_store, "manager-1")
    assert access.has_access
    assert access.estimated_total == 1
    assert "Karnataka" in access.message
    assert _visible_ids(record_store, access) == ["ka12"]


def test_approvals_are_unioned(record_store, request_store):
    _seed_students(record_store)
    _approved(request_store, FilterSet(states={"Karnataka"}, classes={"12th"}))
    _approved(request_store, FilterSet(states={"Kerala"}, classes={"12th"}))

    access = resolve_effective_access(request_store, "manager-1")
    assert access.scope.states == frozenset({"Karnataka", "Kerala"})
    assert len(access.request_ids) == 2
    assert _visible_ids(record_store, access) == ["ka12", "kl12"]


def test_other_users_approvals_do_not_leak(record_store, request_store):
    _seed_students(record_store)
    _approved(request_store, FilterSet(states={"Tamil Nadu"}), requester="manager-2")

    assert not resolve_effective_access(request_store, "manager-1").has_access
    assert _visible_ids(record_store, resolve_effective_access(request_store, "manager-2")) == ["tn12"]


def test_check_data_access_needs_one_covering_approval(request_store):
    _approved(request_store, FilterSet(states={"Karnataka", "Kerala"}, classes={"12th"}))

    assert check_data_access(request_store, "manager-1", FilterSet(states={"Karnataka"}, classes={"12th"}))
    assert not check_data_access(request_store, "manager-1", FilterSet(states={"Goa"}))
    assert not check_data_access(request_store, "manager-1", FilterSet(classes={"11th"}))
    assert not check_data_access(request_store, "manager-9", FilterSet(states={"Karnataka"}))
