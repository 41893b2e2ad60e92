import pytest
from sqlalchemy import text as sa_text

from core.auth import authenticate, hash_password, verify_password
from core.errors import AuthenticationError
from core.session import SESSION_KEY, current_session, end_session, start_session
from schemas._seed import seed_demo_users


@pytest.fixture()
def seeded(engine, monkeypatch):
    monkeypatch.setenv("SEED_RUN", "1")
    seed_demo_users(engine)
    return engine


def test_password_hashing():
    h = hash_password("s3cret")
    assert h != "s3cret"
    assert verify_password("s3cret", h)
    assert not verify_password("wrong", h)
    assert not verify_password("s3cret", "not-a-hash")
    assert not verify_password("", h)


def test_seed_is_idempotent_and_stores_no_plaintext(seeded):
    seed_demo_users(seeded)
    with seeded.connect() as conn:
        rows = conn.execute(sa_text("SELECT role, password_hash FROM users")).fetchall()
    assert sorted(r[0] for r in rows) == ["admin", "executive", "manager"]
    assert all(r[1].startswith("$2") for r in rows)


def test_seed_can_be_switched_off(engine, monkeypatch):
    monkeypatch.setenv("SEED_RUN", "0")
    seed_demo_users(engine)
    with engine.connect() as conn:
        assert conn.execute(sa_text("SELECT COUNT(*) FROM users")).scalar() == 0


def test_login_by_username_or_email(seeded):
    by_username = authenticate(seeded, "manager_demo", "manager123")
    by_email = authenticate(seeded, "MANAGER@educrm.com", "manager123")
    assert by_username.role == by_email.role == "manager"
    assert by_username.user_id == by_email.user_id
    assert "password_hash" not in by_username.profile


def test_bad_credentials(seeded):
    assert authenticate(seeded, "manager_demo", "nope") is None
    assert authenticate(seeded, "nobody", "manager123") is None
    assert authenticate(seeded, "", "") is None


def test_inactive_accounts_cannot_log_in(seeded):
    with seeded.begin() as conn:
        conn.execute(sa_text("UPDATE users SET is_active = 0 WHERE username = 'executive_demo'"))
    assert authenticate(seeded, "executive_demo", "exec123") is None


def test_start_session_checks_portal(seeded):
    session = start_session(seeded, "admin_demo", "admin123", "admin")
    assert session.is_admin
    assert session.email == "admin@educrm.com"
    assert session.portal_title == "Backend Portal"

    with pytest.raises(AuthenticationError) as exc:
        start_session(seeded, "admin_demo", "admin123", "manager")
    assert "This account is for admin portal" in str(exc.value)

    with pytest.raises(AuthenticationError):
        start_session(seeded, "admin_demo", "wrong", "admin")


def test_end_session_clears_state_but_keeps_engine(seeded):
    state = {"engine": seeded, SESSION_KEY: start_session(seeded, "manager_demo", "manager123", "manager"),
             "students__table": object()}
    ended = end_session(state)
    assert ended.role == "manager"
    assert state == {"engine": seeded}
    assert current_session(state) is None
