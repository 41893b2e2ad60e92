import pytest

from core.auth import authenticate
from core.errors import NotFoundError, ValidationError
from screens.users.db import create_user, delete_user, get_user, list_users, toggle_user_status, update_user
from screens.users.utils import generate_initial_password, is_valid_email, mask_phone, validate_username


def _payload(**overrides):
    payload = {
        "name": "Priya Sharma",
        "email": "Priya@Example.com",
        "username": "priya.s",
        "password": "priyas@1234",
        "role": "executive",
        "phone": "9876543210",
    }
    payload.update(overrides)
    return payload


def test_create_hashes_password_and_hides_it(engine):
    with engine.begin() as conn:
        user = create_user(conn, _payload(), created_by="manager-1", creator_role="manager")
    assert user["email"] == "priya@example.com"
    assert user["is_active"] is True
    assert "password_hash" not in user
    assert authenticate(engine, "priya.s", "priyas@1234").user_id == user["id"]


def test_create_collects_validation_errors(engine):
    with engine.begin() as conn:
        with pytest.raises(ValidationError) as exc:
            create_user(conn, _payload(name=" ", email="nope", username="Admin", role="owner", password=""),
                        created_by="admin-1", creator_role="admin")
    assert len(exc.value.errors) == 5


def test_duplicates_are_rejected(engine):
    with engine.begin() as conn:
        create_user(conn, _payload(), created_by="admin-1", creator_role="admin")
    with engine.begin() as conn:
        with pytest.raises(ValidationError) as exc:
            create_user(conn, _payload(email="PRIYA@example.com"), created_by="admin-1", creator_role="admin")
    assert any("already taken" in e for e in exc.value.errors)
    assert any("already registered" in e for e in exc.value.errors)


def test_list_filters_by_creator_and_role(engine):
    with engine.begin() as conn:
        create_user(conn, _payload(), created_by="manager-1", creator_role="manager")
        create_user(conn, _payload(email="m@example.com", username="mgr.two", role="manager"), created_by="admin-1", creator_role="admin")
        assert [u["username"] for u in list_users(conn, created_by="manager-1")] == ["priya.s"]
        assert [u["username"] for u in list_users(conn, role="manager")] == ["mgr.two"]
        assert len(list_users(conn)) == 2


def test_update_toggle_delete(engine):
    with engine.begin() as conn:
        user = create_user(conn, _payload(), created_by="admin-1", creator_role="admin")
        updated = update_user(conn, user["id"], {"name": "Priya S", "city": "Mysuru", "password": "newpass1"})
        assert (updated["name"], updated["city"]) == ("Priya S", "Mysuru")
        with pytest.raises(ValidationError):
            update_user(conn, user["id"], {"name": ""})
    assert authenticate(engine, "priya.s", "newpass1") is not None
    assert authenticate(engine, "priya.s", "priyas@1234") is None

    with engine.begin() as conn:
        assert toggle_user_status(conn, user["id"]) is False
    assert authenticate(engine, "priya.s", "newpass1") is None
    with engine.begin() as conn:
        assert toggle_user_status(conn, user["id"]) is True
        delete_user(conn, user["id"])
        with pytest.raises(NotFoundError):
            get_user(conn, user["id"])
        with pytest.raises(NotFoundError):
            delete_user(conn, user["id"])


@pytest.mark.parametrize("username,ok", [
    ("priya.s", True),
    ("ab", False),
    ("1priya", False),
    ("Priya", False),
    ("root", False),
])
def test_validate_username(username, ok):
    assert validate_username(username)[0] is ok


def test_small_helpers():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a@b")
    assert mask_phone("9876543210") == "******3210"
    assert mask_phone("123") == "123"
    pw = generate_initial_password("Priya Sharma")
    assert pw.startswith("priyas@") and len(pw) == len("priyas@") + 4


@pytest.mark.parametrize("creator_role,role", [
    ("manager", "manager"),
    ("manager", "admin"),
    ("admin", "admin"),
    ("executive", "executive"),
])
def test_create_enforces_who_may_create_which_role(engine, creator_role, role):
    with engine.begin() as conn:
        with pytest.raises(ValidationError) as exc:
            create_user(conn, _payload(role=role), created_by=f"{creator_role}-1", creator_role=creator_role)
        assert any(f"cannot create {role} accounts" in e for e in exc.value.errors)
        assert list_users(conn) == []
