# screens/data_requests/__init__.py
"""
Data access requests: managers ask for a slice of student records, admins
approve or reject, and approved scopes decide what the manager can load.

Main components:
- models: enums and dataclasses
- store: DataRequestStore (persistence and state machine)
- access: effective access and coverage checks
- page: Streamlit UI
"""

from .models import (
    DataRequest,
    DraftRequest,
    RequestedData,
    RequestStatus,
    RequestType,
    Urgency,
)
from .store import DataRequestStore
from .access import EffectiveAccess, resolve_effective_access, check_data_access

__all__ = [
    "DataRequest",
    "DraftRequest",
    "RequestedData",
    "RequestStatus",
    "RequestType",
    "Urgency",
    "DataRequestStore",
    "EffectiveAccess",
    "resolve_effective_access",
    "check_data_access",
]
