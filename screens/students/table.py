# screens/students/table.py
"""
In-memory view over loaded student rows: search, column filters, the three
dropdown filters, single-key sort and pagination.

Everything here is pure; the page keeps a TableState in st.session_state and
calls `apply_view` on every rerun.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

PAGE_SIZES = (25, 50, 100)
ALL = "all"


@dataclass(frozen=True)
class TableState:
    search: str = ""
    column_filters: Dict[str, str] = field(default_factory=dict)
    year: str = ALL
    state: str = ALL
    exam: str = ALL
    sort_key: Optional[str] = None
    sort_desc: bool = False
    page: int = 1
    page_size: int = PAGE_SIZES[0]
    page_sizes: Tuple[int, ...] = PAGE_SIZES

    def toggle_sort(self, key: str) -> "TableState":
        """Same key flips direction; a new key starts ascending."""
        if key == self.sort_key:
            return replace(self, sort_desc=not self.sort_desc)
        return replace(self, sort_key=key, sort_desc=False)

    def with_page_size(self, size: int) -> "TableState":
        if size not in self.page_sizes:
            raise ValueError(f"Unsupported page size: {size}")
        return replace(self, page_size=size, page=1)

    def with_page(self, page: int) -> "TableState":
        return replace(self, page=page)


def initial_state(page_sizes: Sequence[int] = PAGE_SIZES, default_page_size: Optional[int] = None) -> TableState:
    """Fresh state for the configured page sizes (students.page_sizes / default_page_size)."""
    sizes = tuple(int(s) for s in page_sizes if int(s) > 0)
    if not sizes:
        raise ValueError("At least one page size is required")
    size = sizes[0] if default_page_size is None else int(default_page_size)
    if size not in sizes:
        raise ValueError(f"Default page size {size} is not one of {list(sizes)}")
    return TableState(page_size=size, page_sizes=sizes)


@dataclass(frozen=True)
class TableView:
    rows: List[Dict[str, Any]]
    total: int
    page: int
    page_count: int


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _contains(value: Any, needle: str) -> bool:
    return needle.lower() in cell_text(value).lower()


def _matches(row: Mapping[str, Any], state: TableState) -> bool:
    q = (state.search or "").strip()
    if q and not any(_contains(v, q) for v in row.values()):
        return False

    for column, needle in state.column_filters.items():
        needle = (needle or "").strip()
        if needle and not _contains(row.get(column), needle):
            return False

    if state.year != ALL and cell_text(row.get("year")) != str(state.year):
        return False
    if state.state != ALL and cell_text(row.get("state")) != state.state:
        return False
    if state.exam != ALL:
        exams = row.get("examspreparing") or []
        if isinstance(exams, str):
            exams = [e.strip() for e in exams.split(",")]
        if state.exam not in exams:
            return False
    return True


def filter_rows(rows: Sequence[Mapping[str, Any]], state: TableState) -> List[Dict[str, Any]]:
    return [dict(r) for r in rows if _matches(r, state)]


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def _sort_value(value: Any) -> Tuple[int, Any]:
    # numbers before text so mixed columns still compare
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, cell_text(value).lower())


def sort_rows(rows: Sequence[Mapping[str, Any]], key: Optional[str], descending: bool = False) -> List[Dict[str, Any]]:
    """Stable sort on one column; rows missing the value stay last either way."""
    rows = [dict(r) for r in rows]
    if not key:
        return rows
    present = [r for r in rows if not _is_missing(r.get(key))]
    missing = [r for r in rows if _is_missing(r.get(key))]
    present.sort(key=lambda r: _sort_value(r.get(key)), reverse=descending)
    return present + missing


def page_count(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size)) if page_size > 0 else 1


def clamp_page(page: int, total: int, page_size: int) -> int:
    return min(max(1, int(page or 1)), page_count(total, page_size))


def paginate(rows: Sequence[Dict[str, Any]], page: int, page_size: int) -> Tuple[List[Dict[str, Any]], int]:
    page = clamp_page(page, len(rows), page_size)
    start = (page - 1) * page_size
    return list(rows[start:start + page_size]), page


def apply_view(rows: Sequence[Mapping[str, Any]], state: TableState) -> TableView:
    filtered = filter_rows(rows, state)
    ordered = sort_rows(filtered, state.sort_key, state.sort_desc)
    page_rows, page = paginate(ordered, state.page, state.page_size)
    return TableView(
        rows=page_rows,
        total=len(ordered),
        page=page,
        page_count=page_count(len(ordered), state.page_size),
    )


def dropdown_options(rows: Sequence[Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Distinct years (newest first), states and exams present in the loaded rows."""
    years, states, exams = set(), set(), set()
    for r in rows:
        if not _is_missing(r.get("year")):
            years.add(cell_text(r.get("year")))
        if not _is_missing(r.get("state")):
            states.add(cell_text(r.get("state")))
        for e in r.get("examspreparing") or []:
            if e:
                exams.add(str(e))
    return {
        "year": sorted(years, reverse=True),
        "state": sorted(states),
        "exam": sorted(exams),
    }
