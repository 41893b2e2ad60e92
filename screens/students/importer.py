# screens/students/importer.py
"""
Bulk student upload: CSV / TXT / Excel / JSON files are parsed with pandas,
normalised into student rows, validated per row and inserted in batches.
"""
from __future__ import annotations

from typing import List, Tuple, Dict, Any, Optional, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
import io
import json
import logging
import uuid

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

from core.errors import StoreUnavailableError, ValidationError
from core.policy import PAGE_UPLOAD, require_page
from core.record_store import RecordStore
from core.session import Session
from core.settings import UploadConfig, load_settings
from screens.students.db import STUDENTS_TABLE, get_database_stats

log = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "txt", "xlsx", "xls", "json")
DEFAULT_DOB = "2000-01-01"

# Accepted header spellings per field, first non-empty wins
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "studentname": ("student_name", "Student Name", "name", "Name"),
    "contactnumber": ("contact_number", "Contact Number", "phone", "Phone"),
    "class": ("class", "Class", "class_exam", "classExam"),
    "year": ("year", "Year", "academic_year"),
    "state": ("state", "State"),
    "dateofbirth": ("date_of_birth", "Date of Birth", "dob", "DOB"),
    "gender": ("gender", "Gender"),
    "fathername": ("father_name", "Father Name", "fatherName"),
    "mothername": ("mother_name", "Mother Name", "motherName"),
    "parentsnumber": ("parents_number", "Parents Number", "parent_phone"),
    "studentmailid": ("student_mail_id", "Student Mail ID", "email", "Email"),
    "address": ("address", "Address", "location"),
    "pincode": ("pincode", "Pincode", "pin"),
    "collegeschool": ("college_school", "College/School", "institution"),
    "entranceexam": ("entrance_exam", "Entrance Exam", "exam"),
    "stream": ("stream", "Stream", "branch", "Branch"),
    "rank": ("rank", "Rank"),
    "board": ("board", "Board", "education_board"),
    "district": ("district", "District", "city"),
    "city": ("city", "City", "district"),
    "category": ("category", "Category", "caste"),
    "examspreparing": ("exams_preparing", "exams"),
    "marks10th": ("marks_10th", "10th Marks", "tenth_marks"),
    "marks12th": ("marks_12th", "12th Marks", "twelfth_marks"),
    "graduationmarks": ("graduation_marks", "Graduation Marks"),
    "institutionname": ("institution_name", "Institution Name"),
    "admissionstatus": ("admission_status", "status"),
    "followupstatus": ("follow_up_status",),
    "callstatus": ("call_status",),
    "calloutcome": ("call_outcome",),
    "notes": ("notes", "Notes", "remarks"),
    "assignedexecutive": ("assigned_executive",),
    "tags": ("tags",),
}

REQUIRED_FIELDS = (
    ("studentname", "Student name"),
    ("contactnumber", "Contact number"),
    ("class", "Class"),
    ("year", "Year"),
    ("state", "State"),
)

TEMPLATE_COLUMNS = [
    "student_name", "contact_number", "class", "year", "state", "gender",
    "father_name", "mother_name", "parents_number", "student_mail_id", "address",
    "pincode", "college_school", "entrance_exam", "stream", "rank", "board",
    "district", "city", "date_of_birth", "category", "exams_preparing",
    "marks_10th", "marks_12th", "institution_name", "notes", "tags",
]


@dataclass
class UploadResult:
    filename: str
    total_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    errors: List[str] = field(default_factory=list)
    uploaded_at: str = ""
    status: str = "failed"  # success | partial | failed


# ------------------------------------------------------------------
# PARSING
# ------------------------------------------------------------------

def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""


def read_upload(filename: str, data: bytes) -> List[Dict[str, Any]]:
    """Parses the uploaded bytes into a list of raw row dicts."""
    ext = _extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file format: .{ext or '?'}",
            [f"Please upload one of: {', '.join(SUPPORTED_EXTENSIONS)}"],
        )
    try:
        if ext in ("csv", "txt"):
            df = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False, skipinitialspace=True)
        elif ext in ("xlsx", "xls"):
            df = pd.read_excel(io.BytesIO(data), dtype=str).fillna("")
        else:
            payload = json.loads(data.decode("utf-8"))
            if not isinstance(payload, list):
                raise ValidationError("JSON upload must be an array of objects")
            return [dict(r) for r in payload if isinstance(r, dict)]
    except (ValueError, pd.errors.ParserError) as e:
        raise ValidationError(f"Could not read {filename}: {e}") from e
    return df.to_dict("records")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _first(row: Mapping[str, Any], field_name: str) -> Any:
    for alias in FIELD_ALIASES.get(field_name, ()):
        value = row.get(alias)
        if isinstance(value, list):
            if value:
                return value
            continue
        if _text(value):
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    s = _text(value)
    if not s:
        return None
    try:
        return int(float(s))
    except (ValueError, OverflowError):
        # inf, nan and out-of-range values are treated as missing
        return None


def _split_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [s.strip() for s in _text(value).split(",") if s.strip()]


def _parse_dob(value: Any) -> str:
    s = _text(value)
    if not s:
        return DEFAULT_DOB
    parsed = pd.to_datetime(s, errors="coerce")
    if pd.isna(parsed):
        return DEFAULT_DOB
    return parsed.strftime("%Y-%m-%d")


def normalize_row(
    raw: Mapping[str, Any],
    row_number: int,
    session: Session,
    now: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Maps one uploaded row to a students record.
    Raises ValidationError("Row N: <field> is required") on the first missing required field.
    """
    now = now or datetime.now(timezone.utc).isoformat()
    year = _to_int(_first(raw, "year"))
    for field_name, label in REQUIRED_FIELDS:
        if field_name == "year":
            missing = not year
        else:
            missing = not _text(_first(raw, field_name))
        if missing:
            msg = f"Row {row_number}: {label} is required"
            raise ValidationError(msg, [msg])

    def opt(name: str) -> Optional[str]:
        return _text(_first(raw, name)) or None

    return {
        "id": str(uuid.uuid4()),
        "studentname": _text(_first(raw, "studentname")),
        "contactnumber": _text(_first(raw, "contactnumber")),
        "class": _text(_first(raw, "class")),
        "year": year,
        "state": _text(_first(raw, "state")),
        "dateofbirth": _parse_dob(_first(raw, "dateofbirth")),
        "gender": (opt("gender") or "not_specified").lower(),
        "fathername": opt("fathername") or "",
        "mothername": opt("mothername") or "",
        "parentsnumber": opt("parentsnumber") or "",
        "studentmailid": opt("studentmailid") or "",
        "address": opt("address") or "",
        "pincode": opt("pincode") or "",
        "collegeschool": opt("collegeschool") or "",
        "entranceexam": opt("entranceexam") or "",
        "stream": opt("stream") or "",
        "rank": _to_int(_first(raw, "rank")) or None,
        "board": opt("board") or "",
        "district": opt("district") or "",
        "city": opt("city") or "",
        "category": opt("category") or "General",
        "examspreparing": _split_list(_first(raw, "examspreparing")),
        "marks10th": _to_int(_first(raw, "marks10th")) or 0,
        "marks12th": _to_int(_first(raw, "marks12th")) or None,
        "graduationmarks": _to_int(_first(raw, "graduationmarks")) or None,
        "institutionname": opt("institutionname") or session.institution_name or "",
        "admissionstatus": (opt("admissionstatus") or "new").lower(),
        "followupstatus": (opt("followupstatus") or "pending").lower(),
        "callstatus": opt("callstatus"),
        "calloutcome": opt("calloutcome"),
        "notes": opt("notes"),
        "assignedto": session.user_id,
        "assignedexecutive": opt("assignedexecutive"),
        "tags": _split_list(_first(raw, "tags")),
        "createdat": now,
        "updatedat": now,
        "createdby": session.user_id,
        "lastupdatedby": session.user_id,
    }


def _status(failed: int, total: int, threshold: float) -> str:
    if failed == 0:
        return "success"
    if failed < total * threshold:
        return "partial"
    return "failed"


def process_rows(
    record_store: RecordStore,
    filename: str,
    raw_rows: List[Dict[str, Any]],
    session: Session,
    config: Optional[UploadConfig] = None,
) -> UploadResult:
    config = config or UploadConfig()
    now = datetime.now(timezone.utc).isoformat()
    result = UploadResult(filename=filename, total_rows=len(raw_rows), uploaded_at=now)
    if not raw_rows:
        raise ValidationError("No data found in file")

    errors: List[str] = []
    valid: List[Dict[str, Any]] = []
    valid_rows: List[int] = []
    for i, raw in enumerate(raw_rows, start=1):
        try:
            valid.append(normalize_row(raw, i, session, now))
            valid_rows.append(i)
        except ValidationError as e:
            errors.append(str(e))
    failed = len(raw_rows) - len(valid)

    successful = 0
    if valid:
        try:
            inserted = record_store.insert(STUDENTS_TABLE, valid, row_numbers=valid_rows)
            successful = inserted.inserted_count
            errors.extend(inserted.per_row_errors)
            failed += len(valid) - inserted.inserted_count
        except StoreUnavailableError as e:
            log.error("Upload %s failed, store unavailable: %s", filename, e)
            errors.append(f"Database connection error: {e}")
            successful = 0
            failed = len(raw_rows)

    result.successful_rows = successful
    result.failed_rows = failed
    result.errors = errors[: config.max_errors_shown]
    result.status = _status(failed, len(raw_rows), config.partial_threshold)
    log.info(
        "Upload %s by %s: %d/%d rows inserted (%s)",
        filename, session.email, successful, len(raw_rows), result.status,
    )
    return result


def process_upload(
    record_store: RecordStore,
    filename: str,
    data: bytes,
    session: Session,
    config: Optional[UploadConfig] = None,
) -> UploadResult:
    return process_rows(record_store, filename, read_upload(filename, data), session, config)


def template_csv() -> str:
    sample = {
        "student_name": "Asha Rao", "contact_number": "9876543210", "class": "12th",
        "year": "2025", "state": "Karnataka", "gender": "female", "father_name": "Ravi Rao",
        "mother_name": "Meena Rao", "parents_number": "9876500000",
        "student_mail_id": "asha@example.com", "address": "MG Road", "pincode": "560001",
        "college_school": "City PU College", "entrance_exam": "KCET", "stream": "Science (PCM)",
        "rank": "", "board": "State Board", "district": "Bangalore Urban", "city": "Bengaluru",
        "date_of_birth": "2007-05-14", "category": "General", "exams_preparing": "JEE Main, KCET",
        "marks_10th": "92", "marks_12th": "", "institution_name": "", "notes": "", "tags": "",
    }
    return pd.DataFrame([sample], columns=TEMPLATE_COLUMNS).to_csv(index=False)


# ------------------------------------------------------------------
# UI
# ------------------------------------------------------------------

@require_page(PAGE_UPLOAD)
def render(engine: Engine, session: Optional[Session]) -> None:
    st.title("📤 Upload Student Data")
    settings = load_settings()
    record_store = RecordStore(engine, batch_size=settings.upload.batch_size)

    c1, c2 = st.columns([3, 1])
    with c1:
        if record_store.ping():
            st.success("Database connected")
        else:
            st.error("Database unavailable; uploads will fail until it is reachable.")
    with c2:
        st.download_button(
            "⬇️ Template CSV",
            data=template_csv(),
            file_name="student_upload_template.csv",
            mime="text/csv",
        )

    up = st.file_uploader("Upload file", type=list(SUPPORTED_EXTENSIONS), key="students_upload__file")
    if up is not None and st.button("Import", type="primary", key="students_upload__go"):
        try:
            with st.spinner("Importing..."):
                res = process_upload(record_store, up.name, up.getvalue(), session, settings.upload)
        except ValidationError as e:
            st.error(str(e))
            for msg in e.errors:
                st.caption(msg)
        else:
            history = st.session_state.setdefault("students_upload__history", [])
            history.insert(0, res)
            if res.status == "success":
                st.success(f"Imported {res.successful_rows} of {res.total_rows} rows.")
            elif res.status == "partial":
                st.warning(f"Imported {res.successful_rows} of {res.total_rows} rows; {res.failed_rows} failed.")
            else:
                st.error(f"Import failed: {res.failed_rows} of {res.total_rows} rows could not be imported.")
            for msg in res.errors:
                st.caption(msg)

    history = st.session_state.get("students_upload__history") or []
    if history:
        st.subheader("Recent uploads")
        st.dataframe(
            pd.DataFrame([{
                "file": h.filename, "rows": h.total_rows, "imported": h.successful_rows,
                "failed": h.failed_rows, "status": h.status, "uploaded_at": h.uploaded_at,
            } for h in history]),
            use_container_width=True, hide_index=True,
        )

    try:
        stats = get_database_stats(record_store)
    except StoreUnavailableError:
        return
    st.subheader("Database")
    st.metric("Total students", stats["total"])
    c1, c2 = st.columns(2)
    with c1:
        st.caption("By state")
        st.dataframe(pd.Series(stats["by_state"], name="students"), use_container_width=True)
    with c2:
        st.caption("By class")
        st.dataframe(pd.Series(stats["by_class"], name="students"), use_container_width=True)
