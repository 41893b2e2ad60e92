import io
import json

import pandas as pd
import pytest

from core.errors import StoreUnavailableError, ValidationError
from core.settings import UploadConfig
from screens.students.importer import (
    DEFAULT_DOB,
    TEMPLATE_COLUMNS,
    normalize_row,
    process_rows,
    process_upload,
    read_upload,
    template_csv,
)


def _csv(rows):
    return pd.DataFrame(rows).to_csv(index=False).encode("utf-8")


def _raw(i=1, **overrides):
    row = {
        "student_name": f"Student {i}",
        "contact_number": f"90000000{i:02d}",
        "class": "12th",
        "year": "2024",
        "state": "Karnataka",
    }
    row.update(overrides)
    return row


def test_read_csv_keeps_values_as_text():
    rows = read_upload("leads.csv", _csv([_raw(contact_number="0987654321")]))
    assert rows[0]["contact_number"] == "0987654321"
    assert rows[0]["year"] == "2024"


def test_read_json_requires_a_list():
    assert read_upload("leads.json", json.dumps([_raw()]).encode()) == [_raw()]
    with pytest.raises(ValidationError):
        read_upload("leads.json", b'{"student_name": "x"}')
    with pytest.raises(ValidationError):
        read_upload("leads.json", b"not json")


def test_unsupported_extension():
    with pytest.raises(ValidationError):
        read_upload("leads.pdf", b"%PDF")


def test_normalize_fills_defaults_and_owner(manager_session):
    row = normalize_row(_raw(exams_preparing="KCET, JEE Main", gender="Female"), 1, manager_session, now="T")
    assert row["studentname"] == "Student 1"
    assert row["year"] == 2024
    assert row["gender"] == "female"
    assert row["dateofbirth"] == DEFAULT_DOB
    assert row["category"] == "General"
    assert row["admissionstatus"] == "new"
    assert row["followupstatus"] == "pending"
    assert row["examspreparing"] == ["KCET", "JEE Main"]
    assert row["assignedto"] == row["createdby"] == manager_session.user_id
    assert row["createdat"] == "T"


def test_normalize_accepts_header_aliases(manager_session):
    raw = {"Student Name": "Asha", "Phone": "9876543210", "classExam": "11th", "academic_year": "2023",
           "State": "Goa", "DOB": "2008-03-09", "Email": "asha@example.com"}
    row = normalize_row(raw, 1, manager_session)
    assert (row["studentname"], row["contactnumber"], row["class"], row["year"], row["state"]) == (
        "Asha", "9876543210", "11th", 2023, "Goa")
    assert row["dateofbirth"] == "2008-03-09"
    assert row["studentmailid"] == "asha@example.com"


@pytest.mark.parametrize("column,label", [
    ("student_name", "Student name"),
    ("contact_number", "Contact number"),
    ("state", "State"),
    ("year", "Year"),
])
def test_normalize_reports_missing_required_field(manager_session, column, label):
    with pytest.raises(ValidationError) as exc:
        normalize_row(_raw(**{column: ""}), 7, manager_session)
    assert str(exc.value) == f"Row 7: {label} is required"


def test_all_rows_valid_is_success(record_store, manager_session):
    res = process_upload(record_store, "leads.csv", _csv([_raw(i) for i in range(1, 6)]), manager_session)
    assert (res.status, res.total_rows, res.successful_rows, res.failed_rows) == ("success", 5, 5, 0)
    assert res.errors == []
    assert record_store.count("students") == 5


def test_few_bad_rows_is_partial(record_store, manager_session):
    rows = [_raw(i) for i in range(1, 21)]
    rows[4]["state"] = ""
    res = process_rows(record_store, "leads.csv", rows, manager_session)
    assert (res.status, res.successful_rows, res.failed_rows) == ("partial", 19, 1)
    assert res.errors == ["Row 5: State is required"]


def test_many_bad_rows_is_failed(record_store, manager_session):
    rows = [_raw(1), _raw(2, student_name=""), _raw(3, year="")]
    res = process_rows(record_store, "leads.csv", rows, manager_session)
    assert (res.status, res.successful_rows, res.failed_rows) == ("failed", 1, 2)


def test_errors_shown_are_capped(record_store, manager_session):
    rows = [_raw(i, state="") for i in range(1, 8)]
    res = process_rows(record_store, "leads.csv", rows, manager_session, UploadConfig(max_errors_shown=3))
    assert res.failed_rows == 7
    assert len(res.errors) == 3


def test_empty_file_is_rejected(record_store, manager_session):
    with pytest.raises(ValidationError):
        process_rows(record_store, "leads.csv", [], manager_session)


def test_store_outage_fails_every_row(record_store, manager_session, monkeypatch):
    def boom(*args, **kwargs):
        raise StoreUnavailableError("down")

    monkeypatch.setattr(record_store, "insert", boom)
    res = process_rows(record_store, "leads.csv", [_raw(1), _raw(2)], manager_session)
    assert (res.status, res.successful_rows, res.failed_rows) == ("failed", 0, 2)
    assert res.errors[0].startswith("Database connection error")


def test_template_has_every_column_and_parses_back(manager_session):
    text = template_csv()
    df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    assert list(df.columns) == TEMPLATE_COLUMNS
    row = normalize_row(df.to_dict("records")[0], 1, manager_session)
    assert row["examspreparing"] == ["JEE Main", "KCET"]


@pytest.mark.parametrize("value", ["inf", "-inf", "1e400", "nan"])
def test_non_finite_year_is_a_row_error(record_store, manager_session, value):
    res = process_rows(record_store, "leads.csv", [_raw(1), _raw(2, year=value)], manager_session)
    assert res.successful_rows == 1
    assert res.failed_rows == 1
    assert res.errors == ["Row 2: Year is required"]


def test_non_finite_optional_numbers_are_dropped(manager_session):
    row = normalize_row(_raw(rank="inf", marks_10th="-inf", marks_12th="1e400"), 1, manager_session)
    assert row["rank"] is None
    assert row["marks10th"] == 0
    assert row["marks12th"] is None


def test_insert_errors_point_at_the_file_row(record_store, manager_session, monkeypatch):
    from screens.students import importer

    # file rows 2..5 are valid; rows 4 and 5 get the same id so row 5 collides
    ids = iter(["id-2", "id-3", "id-4", "id-4"])
    monkeypatch.setattr(importer.uuid, "uuid4", lambda: next(ids))
    rows = [_raw(1, student_name="")] + [_raw(i) for i in range(2, 6)]

    res = process_rows(record_store, "leads.csv", rows, manager_session)
    assert res.successful_rows == 3
    assert res.failed_rows == 2
    assert res.errors[0] == "Row 1: Student name is required"
    assert res.errors[1].startswith("Row 5:")
    assert len(res.errors) == 2
