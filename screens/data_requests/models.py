# screens/data_requests/models.py
"""
Data models for data access requests.
Contains enums, dataclasses, and validation logic.
"""

from __future__ import annotations
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from enum import Enum

from core.filters import FilterSet


# ============================================================================
# ENUMS
# ============================================================================

class RequestType(str, Enum):
    DATA_ACCESS = "data_access"
    BULK_COMMUNICATION = "bulk_communication"
    STUDENT_EXPORT = "student_export"


class RequesterRole(str, Enum):
    MANAGER = "manager"
    EXECUTIVE = "executive"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RequestStatus(str, Enum):
    """pending -> approved | rejected. Approved and rejected are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


REQUEST_TYPE_LABELS = {
    RequestType.DATA_ACCESS: "Data Access",
    RequestType.BULK_COMMUNICATION: "Bulk Communication",
    RequestType.STUDENT_EXPORT: "Student Export",
}


def _enum_value(enum_cls, value) -> Optional[str]:
    try:
        return enum_cls(value).value
    except ValueError:
        return None


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class RequestedData:
    """Descriptive metadata attached to a request; not enforced anywhere."""
    total_students: int = 0
    expected_usage: str = ""
    data_retention: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_students": self.total_students,
            "expected_usage": self.expected_usage,
            "data_retention": self.data_retention,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RequestedData":
        data = data or {}
        return cls(
            total_students=int(data.get("total_students") or data.get("totalStudents") or 0),
            expected_usage=data.get("expected_usage") or data.get("expectedUsage") or "",
            data_retention=data.get("data_retention") or data.get("dataRetention") or "",
        )


@dataclass
class DraftRequest:
    """What a requester submits. The store assigns id, status and timestamps."""
    requested_by: str
    requested_by_name: str
    requested_by_role: str
    institution_name: str
    title: str
    description: str
    justification: str
    filters: FilterSet = field(default_factory=FilterSet)
    request_type: str = RequestType.DATA_ACCESS.value
    urgency: str = Urgency.MEDIUM.value
    requested_data: Optional[RequestedData] = None

    def validate(self) -> List[str]:
        """Validate the draft and return a list of errors (empty when valid)."""
        errors: List[str] = []

        if not (self.requested_by or "").strip():
            errors.append("Requester is required")
        if _enum_value(RequesterRole, self.requested_by_role) is None:
            errors.append("Only managers and executives can submit data requests")
        if _enum_value(RequestType, self.request_type) is None:
            errors.append(f"Unknown request type: {self.request_type}")
        if _enum_value(Urgency, self.urgency) is None:
            errors.append(f"Unknown urgency: {self.urgency}")

        if not (self.title or "").strip():
            errors.append("Title is required")
        if not (self.description or "").strip():
            errors.append("Description is required")
        if not (self.justification or "").strip():
            errors.append("Justification is required")

        # A request has to name some scope
        if self.filters is None or self.filters.is_empty():
            errors.append("Please select at least one filter (state, class, year, ...)")

        return errors


@dataclass
class DataRequest:
    id: str
    requested_by: str
    requested_by_name: str
    requested_by_role: RequesterRole
    institution_name: str
    request_type: RequestType
    title: str
    description: str
    justification: str
    filters: FilterSet
    urgency: Urgency
    status: RequestStatus
    created_at: str
    updated_at: str
    version: int = 1
    estimated_count: Optional[int] = None
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    rejection_reason: Optional[str] = None
    requested_data: Optional[RequestedData] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def type_label(self) -> str:
        return REQUEST_TYPE_LABELS.get(self.request_type, str(self.request_type))

    def to_row(self) -> Dict[str, Any]:
        """Flat dict for tables (st.dataframe)."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type_label,
            "requested_by": self.requested_by_name,
            "institution": self.institution_name,
            "scope": self.filters.describe(),
            "estimated_count": self.estimated_count,
            "urgency": self.urgency.value,
            "status": self.status.value,
            "created_at": self.created_at,
        }
