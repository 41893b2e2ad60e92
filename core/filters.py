# core/filters.py
"""
FilterSet: the per-dimension scope used both as a student query filter and as
the scope of a data access request.

An empty dimension means "no restriction on this dimension". That convention
is what makes coverage work; see `covered`. Code that needs "no access at all"
must not express it as an empty FilterSet (see screens/data_requests/access.py).
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from core.record_store import Predicate

# Dimensions that take part in the coverage test. districts, exams and
# admission_status are stored and queried but not compared.
COVERAGE_DIMENSIONS = ("states", "classes", "years")

# FilterSet dimension -> students column
DIMENSION_COLUMNS = {
    "states": "state",
    "districts": "district",
    "classes": "class",
    "years": "year",
    "admission_status": "admissionstatus",
}
EXAMS_COLUMN = "examspreparing"

_CAMEL_ALIASES = {"admissionStatus": "admission_status"}


def _str_set(values: Optional[Iterable[Any]]) -> FrozenSet[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip() for v in values if v is not None and str(v).strip())


def _int_set(values: Optional[Iterable[Any]]) -> FrozenSet[int]:
    if not values:
        return frozenset()
    if isinstance(values, (int, str)):
        values = [values]
    return frozenset(int(v) for v in values if v is not None and str(v).strip() != "")


@dataclass(frozen=True)
class FilterSet:
    states: FrozenSet[str] = field(default_factory=frozenset)
    districts: FrozenSet[str] = field(default_factory=frozenset)
    classes: FrozenSet[str] = field(default_factory=frozenset)
    years: FrozenSet[int] = field(default_factory=frozenset)
    exams: FrozenSet[str] = field(default_factory=frozenset)
    admission_status: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        for f in fields(self):
            raw = getattr(self, f.name)
            coerced = _int_set(raw) if f.name == "years" else _str_set(raw)
            object.__setattr__(self, f.name, coerced)

    # ── construction / serialisation ──────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FilterSet":
        """Builds a FilterSet from stored JSON or form input. Unknown keys are ignored."""
        if not data:
            return cls()
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            key = _CAMEL_ALIASES.get(key, key)
            if key in names:
                kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, list]:
        """JSON-safe form with sorted lists; empty dimensions are kept as []."""
        return {f.name: sorted(getattr(self, f.name)) for f in fields(self)}

    # ── queries ───────────────────────────────────────────────────────────

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def union(self, other: "FilterSet") -> "FilterSet":
        return FilterSet(**{
            f.name: getattr(self, f.name) | getattr(other, f.name) for f in fields(self)
        })

    def covered_by(self, approved: "FilterSet") -> bool:
        return covered(self, approved)

    def to_predicate(self) -> Predicate:
        """Open-filter predicate: only non-empty dimensions restrict rows."""
        pred = Predicate.everything()
        for dim, column in DIMENSION_COLUMNS.items():
            values = getattr(self, dim)
            if values:
                pred = pred.isin(column, sorted(values))
        if self.exams:
            pred = pred.overlaps(EXAMS_COLUMN, sorted(self.exams))
        return pred

    def describe(self) -> str:
        parts = []
        for f in fields(self):
            values = getattr(self, f.name)
            if values:
                label = f.name.replace("_", " ").title()
                parts.append(f"{label}: {', '.join(str(v) for v in sorted(values))}")
        return "; ".join(parts) if parts else "No restriction"


def covered(requested: FilterSet, approved: FilterSet) -> bool:
    """
    True when `requested` falls inside the scope already granted by `approved`.

    Per dimension: requested empty, or approved empty, or requested is a
    subset of approved. All coverage dimensions must hold.
    """
    for dim in COVERAGE_DIMENSIONS:
        req = getattr(requested, dim)
        grant = getattr(approved, dim)
        if req and grant and not req <= grant:
            return False
    return True
