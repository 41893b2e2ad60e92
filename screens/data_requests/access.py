# screens/data_requests/access.py
"""
Effective data access for a requester, derived from their approved requests.

No approvals means no access: the predicate matches nothing. That is not the
same as an empty FilterSet, which would match every student.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List

from core.filters import FilterSet, covered
from core.record_store import Predicate
from screens.data_requests.models import RequestStatus
from screens.data_requests.store import DataRequestStore

log = logging.getLogger(__name__)

NO_ACCESS_MESSAGE = (
    "No approved data access yet. Submit a data request and wait for admin approval."
)


@dataclass(frozen=True)
class EffectiveAccess:
    scope: FilterSet = field(default_factory=FilterSet)
    request_ids: List[str] = field(default_factory=list)
    estimated_total: int = 0
    message: str = NO_ACCESS_MESSAGE

    @property
    def has_access(self) -> bool:
        return bool(self.request_ids)

    def to_predicate(self) -> Predicate:
        if not self.has_access:
            return Predicate.nothing()
        return self.scope.to_predicate()


def resolve_effective_access(store: DataRequestStore, user_id: str) -> EffectiveAccess:
    approved = store.list(status=RequestStatus.APPROVED.value, requester_id=user_id)
    if not approved:
        return EffectiveAccess()

    scope = FilterSet()
    total = 0
    for req in approved:
        scope = scope.union(req.filters)
        total += int(req.estimated_count or 0)

    n = len(approved)
    message = f"Showing students from {n} approved request{'s' if n != 1 else ''}: {scope.describe()}"
    log.debug("Effective access for %s from %d approvals", user_id, n)
    return EffectiveAccess(
        scope=scope,
        request_ids=[r.id for r in approved],
        estimated_total=total,
        message=message,
    )


def check_data_access(store: DataRequestStore, user_id: str, requested: FilterSet) -> bool:
    """True when a single approved request already covers `requested`."""
    approved = store.list(status=RequestStatus.APPROVED.value, requester_id=user_id)
    return any(covered(requested, r.filters) for r in approved)
