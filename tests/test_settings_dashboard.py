import textwrap

from core.filters import FilterSet
from core.settings import load_settings
from screens.dashboard import dashboard_stats

from conftest import student_row
from test_data_request_store import make_draft


def test_shipped_settings_load():
    settings = load_settings()
    assert settings.app.name == "EduCRM"
    assert {u.role for u in settings.auth.demo_users} == {"admin", "manager", "executive"}
    assert settings.students.page_sizes == [25, 50, 100]
    assert settings.upload.partial_threshold == 0.1


def test_settings_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent("""
        app:
          name: Test CRM
          environment: test
        db:
          url: "sqlite:///:memory:"
        upload:
          batch_size: 5
    """), encoding="utf-8")
    monkeypatch.setenv("EDUCRM_SETTINGS", str(path))
    settings = load_settings()
    assert settings.app.log_level == "INFO"
    assert settings.upload.batch_size == 5
    assert settings.upload.max_errors_shown == 10
    assert settings.auth.demo_users == []


def _seed(record_store):
    record_store.insert("students", [
        student_row(id="a", studentname="A", state="Karnataka", assignedto="executive-1"),
        student_row(id="b", studentname="B", state="Kerala", **{"class": "11th"}),
    ])


def test_dashboard_for_admin_counts_everything(record_store, request_store, admin_session):
    _seed(record_store)
    request_store.create(make_draft())
    stats = dashboard_stats(record_store, request_store, admin_session)
    assert stats["total"] == 2
    assert stats["by_class"] == {"12th": 1, "11th": 1}
    assert stats["requests"]["pending"] == 1
    assert stats["connected"] is True


def test_dashboard_for_manager_follows_approvals(record_store, request_store, manager_session):
    _seed(record_store)
    assert dashboard_stats(record_store, request_store, manager_session)["total"] == 0

    req = request_store.create(make_draft(filters=FilterSet(states={"Kerala"})))
    request_store.create(make_draft(requested_by="manager-2"))
    request_store.approve(req.id, "admin-1")

    stats = dashboard_stats(record_store, request_store, manager_session)
    assert stats["total"] == 1
    assert stats["by_state"] == {"Kerala": 1}
    assert stats["requests"] == {"total": 1, "pending": 0, "approved": 1, "rejected": 0}


def test_dashboard_for_executive_counts_assigned(record_store, request_store, executive_session):
    _seed(record_store)
    stats = dashboard_stats(record_store, request_store, executive_session)
    assert stats["total"] == 1
    assert stats["scope_message"] == "Showing students assigned to you"
