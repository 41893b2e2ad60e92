# screens/data_requests/store.py
"""
DataRequestStore: persistence and the approval state machine.

    pending --approve--> approved
    pending --reject---> rejected

Every transition is a single UPDATE guarded by id, version and status, so
two admins acting on the same request cannot both win.
"""
from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import (
    ConcurrentUpdateError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from core.filters import FilterSet
from screens.data_requests.models import (
    DataRequest,
    DraftRequest,
    RequestedData,
    RequesterRole,
    RequestStatus,
    RequestType,
    Urgency,
)

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_request(row: Dict[str, Any]) -> DataRequest:
    try:
        filters = FilterSet.from_dict(json.loads(row.get("filters_json") or "{}"))
    except ValueError:
        filters = FilterSet()
    requested_data = None
    if row.get("requested_data_json"):
        try:
            requested_data = RequestedData.from_dict(json.loads(row["requested_data_json"]))
        except ValueError:
            requested_data = None
    return DataRequest(
        id=row["id"],
        requested_by=row["requested_by"],
        requested_by_name=row["requested_by_name"],
        requested_by_role=RequesterRole(row["requested_by_role"]),
        institution_name=row.get("institution_name") or "",
        request_type=RequestType(row["request_type"]),
        title=row["title"],
        description=row["description"],
        justification=row["justification"],
        filters=filters,
        urgency=Urgency(row["urgency"]),
        status=RequestStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=int(row.get("version") or 1),
        estimated_count=row.get("estimated_count"),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        rejection_reason=row.get("rejection_reason"),
        requested_data=requested_data,
    )


class DataRequestStore:
    """Create, read and transition data access requests."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            log.error("Data request store failed to %s: %s", action, e)
            raise StoreUnavailableError(f"Could not {action}; the request store is unavailable") from e

    # ── create ────────────────────────────────────────────────────────────

    def create(self, draft: DraftRequest, estimated_count: Optional[int] = None) -> DataRequest:
        errors = draft.validate()
        if errors:
            raise ValidationError("Invalid data request", errors)

        now = _now()
        params = {
            "id": str(uuid.uuid4()),
            "requested_by": draft.requested_by.strip(),
            "requested_by_name": (draft.requested_by_name or "").strip() or draft.requested_by.strip(),
            "requested_by_role": RequesterRole(draft.requested_by_role).value,
            "institution_name": (draft.institution_name or "").strip(),
            "request_type": RequestType(draft.request_type).value,
            "title": draft.title.strip(),
            "description": draft.description.strip(),
            "justification": draft.justification.strip(),
            "filters_json": json.dumps(draft.filters.to_dict()),
            "estimated_count": estimated_count,
            "urgency": Urgency(draft.urgency).value,
            "requested_data_json": (
                json.dumps(draft.requested_data.to_dict()) if draft.requested_data else None
            ),
            "now": now,
        }
        with self._guard("create the request"):
            with self.engine.begin() as conn:
                conn.execute(sa_text("""
                    INSERT INTO data_requests(
                        id, requested_by, requested_by_name, requested_by_role, institution_name,
                        request_type, title, description, justification, filters_json,
                        estimated_count, urgency, status, requested_data_json,
                        created_at, updated_at, version)
                    VALUES(
                        :id, :requested_by, :requested_by_name, :requested_by_role, :institution_name,
                        :request_type, :title, :description, :justification, :filters_json,
                        :estimated_count, :urgency, 'pending', :requested_data_json,
                        :now, :now, 1)
                """), params)
        log.info("Data request %s created by %s (%s)", params["id"], params["requested_by"], params["title"])
        return self.get(params["id"])

    # ── reads ─────────────────────────────────────────────────────────────

    def list(self, status: Optional[str] = None, requester_id: Optional[str] = None) -> List[DataRequest]:
        """Newest first; `status` and `requester_id` narrow the result when given."""
        where, params = [], {}
        if status:
            where.append("status = :status")
            params["status"] = RequestStatus(status).value
        if requester_id:
            where.append("requested_by = :rid")
            params["rid"] = requester_id
        sql = "SELECT * FROM data_requests"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, id DESC"
        with self._guard("list requests"):
            with self.engine.connect() as conn:
                rows = conn.execute(sa_text(sql), params).fetchall()
        return [_row_to_request(dict(r._mapping)) for r in rows]

    def get(self, request_id: str) -> DataRequest:
        with self._guard("load the request"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    sa_text("SELECT * FROM data_requests WHERE id = :id"), {"id": request_id}
                ).fetchone()
        if not row:
            raise NotFoundError(f"Data request {request_id} not found")
        return _row_to_request(dict(row._mapping))

    def summary(self, requester_id: Optional[str] = None) -> Dict[str, int]:
        sql = "SELECT status, COUNT(*) AS n FROM data_requests"
        params: Dict[str, Any] = {}
        if requester_id:
            sql += " WHERE requested_by = :rid"
            params["rid"] = requester_id
        sql += " GROUP BY status"
        with self._guard("summarise requests"):
            with self.engine.connect() as conn:
                rows = conn.execute(sa_text(sql), params).fetchall()
        out = {"total": 0, "pending": 0, "approved": 0, "rejected": 0}
        for status, n in rows:
            out[status] = int(n)
            out["total"] += int(n)
        return out

    # ── transitions ───────────────────────────────────────────────────────

    def _transition(
        self,
        request_id: str,
        expected_version: Optional[int],
        assignments: str,
        values: Dict[str, Any],
        verb: str,
    ) -> DataRequest:
        current = self.get(request_id)
        if current.status != RequestStatus.PENDING:
            raise InvalidStateError(
                f"Request {request_id} is already {current.status.value} and cannot be {verb}"
            )
        if expected_version is not None and int(expected_version) != current.version:
            raise ConcurrentUpdateError(
                f"Request {request_id} was changed by someone else; reload and try again"
            )

        params = dict(values)
        params.update({"id": request_id, "v": current.version, "now": _now()})
        with self._guard(f"mark the request {verb}"):
            with self.engine.begin() as conn:
                res = conn.execute(sa_text(f"""
                    UPDATE data_requests
                       SET {assignments}, updated_at = :now, version = version + 1
                     WHERE id = :id AND version = :v AND status = 'pending'
                """), params)
        if res.rowcount != 1:
            raise ConcurrentUpdateError(
                f"Request {request_id} was changed by someone else; reload and try again"
            )
        log.info("Data request %s %s", request_id, verb)
        return self.get(request_id)

    def approve(self, request_id: str, approver_id: str, expected_version: Optional[int] = None) -> DataRequest:
        approver_id = (approver_id or "").strip()
        if not approver_id:
            raise ValidationError("Approver is required", ["Approver is required"])
        return self._transition(
            request_id,
            expected_version,
            "status = 'approved', approved_by = :by, approved_at = :at",
            {"by": approver_id, "at": _now()},
            "approved",
        )

    def reject(self, request_id: str, reason: str, expected_version: Optional[int] = None) -> DataRequest:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required", ["Rejection reason is required"])
        return self._transition(
            request_id,
            expected_version,
            "status = 'rejected', rejection_reason = :reason",
            {"reason": reason},
            "rejected",
        )
