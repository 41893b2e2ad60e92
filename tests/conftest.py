import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Demo users are seeded explicitly by the tests that need them
os.environ.setdefault("SEED_RUN", "0")

import pytest

from core.db import get_engine, init_db
from core.record_store import RecordStore
from core.session import Session
from screens.data_requests.store import DataRequestStore


@pytest.fixture()
def engine(tmp_path):
    eng = get_engine(f"sqlite:///{tmp_path / 'educrm_test.db'}")
    failed = init_db(eng)
    assert failed == []
    yield eng
    eng.dispose()


@pytest.fixture()
def record_store(engine):
    return RecordStore(engine, batch_size=3)


@pytest.fixture()
def request_store(engine):
    return DataRequestStore(engine)


def make_session(role: str, user_id: str = None, **kwargs) -> Session:
    user_id = user_id or f"{role}-1"
    return Session(
        user_id=user_id,
        role=role,
        name=kwargs.pop("name", f"{role.title()} User"),
        email=kwargs.pop("email", f"{user_id}@example.com"),
        institution_name=kwargs.pop("institution_name", "Test Institute"),
        **kwargs,
    )


@pytest.fixture()
def admin_session():
    return make_session("admin")


@pytest.fixture()
def manager_session():
    return make_session("manager")


@pytest.fixture()
def executive_session():
    return make_session("executive")


def student_row(**overrides):
    row = {
        "id": overrides.pop("id", None) or f"s-{overrides.get('studentname', 'x')}",
        "studentname": "Student",
        "contactnumber": "9000000000",
        "class": "12th",
        "year": 2024,
        "state": "Karnataka",
        "district": "Bangalore Urban",
        "examspreparing": [],
        "tags": [],
        "admissionstatus": "new",
        "followupstatus": "pending",
        "createdat": "2024-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row
