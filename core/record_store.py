# core/record_store.py
"""
Generic table access used by the student views, ingestion, bulk operations and
the call center.

Predicates are built fluently and compiled to parameterised SQL:

    Predicate.everything().isin("state", ["Karnataka"]).overlaps("examspreparing", ["NEET UG"])

`Predicate.nothing()` is an explicit "match no rows" predicate; queries with
it return [] without touching the database.
"""
from __future__ import annotations

import json
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import bindparam, text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError, StatementError

from core.errors import StoreUnavailableError

log = logging.getLogger(__name__)

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Columns holding JSON-encoded lists, per table
DEFAULT_JSON_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "students": ("examspreparing", "tags"),
}


def _q(name: str) -> str:
    """Quote a table/column identifier after checking it is a plain name."""
    if not name or not _IDENT.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


# ────────────────────────────────────────────────────────────────────────────────
# Predicates
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Condition:
    column: str
    op: str          # "eq" | "in" | "overlaps"
    value: Any


@dataclass(frozen=True)
class Predicate:
    conditions: Tuple[Condition, ...] = ()
    match_nothing: bool = False

    @classmethod
    def everything(cls) -> "Predicate":
        return cls()

    @classmethod
    def nothing(cls) -> "Predicate":
        return cls(match_nothing=True)

    def _with(self, cond: Condition) -> "Predicate":
        _q(cond.column)
        return Predicate(self.conditions + (cond,), self.match_nothing)

    def eq(self, column: str, value: Any) -> "Predicate":
        return self._with(Condition(column, "eq", value))

    def isin(self, column: str, values: Iterable[Any]) -> "Predicate":
        return self._with(Condition(column, "in", tuple(values)))

    def overlaps(self, column: str, values: Iterable[Any]) -> "Predicate":
        return self._with(Condition(column, "overlaps", tuple(values)))

    def is_unsatisfiable(self) -> bool:
        if self.match_nothing:
            return True
        return any(c.op in ("in", "overlaps") and not c.value for c in self.conditions)

    def compile(self, table: str) -> Tuple[str, Dict[str, Any], List[str]]:
        """
        Returns (where_sql, params, expanding_param_names).
        where_sql is "1=1" for the unrestricted predicate.
        """
        if self.is_unsatisfiable():
            return "1=0", {}, []
        clauses: List[str] = []
        params: Dict[str, Any] = {}
        expanding: List[str] = []
        for i, cond in enumerate(self.conditions):
            name = f"p{i}"
            col = f"{_q(table)}.{_q(cond.column)}"
            if cond.op == "eq":
                if cond.value is None:
                    clauses.append(f"{col} IS NULL")
                    continue
                clauses.append(f"{col} = :{name}")
                params[name] = cond.value
            elif cond.op == "in":
                clauses.append(f"{col} IN :{name}")
                params[name] = list(cond.value)
                expanding.append(name)
            elif cond.op == "overlaps":
                clauses.append(
                    f"EXISTS (SELECT 1 FROM json_each({col}) WHERE json_each.value IN :{name})"
                )
                params[name] = list(cond.value)
                expanding.append(name)
            else:
                raise ValueError(f"Unknown predicate op: {cond.op}")
        return (" AND ".join(clauses) if clauses else "1=1"), params, expanding


@dataclass
class InsertResult:
    inserted_count: int = 0
    per_row_errors: List[str] = field(default_factory=list)


# ────────────────────────────────────────────────────────────────────────────────
# Store
# ────────────────────────────────────────────────────────────────────────────────

class RecordStore:
    def __init__(
        self,
        engine: Engine,
        json_columns: Optional[Mapping[str, Sequence[str]]] = None,
        batch_size: int = 100,
    ):
        self.engine = engine
        self.json_columns = {
            t: set(cols) for t, cols in (json_columns or DEFAULT_JSON_COLUMNS).items()
        }
        self.batch_size = max(1, int(batch_size))

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            log.error("Record store %s failed: %s", action, e)
            raise StoreUnavailableError(f"Database unavailable while trying to {action}") from e

    # ── row codecs ────────────────────────────────────────────────────────

    def _encode(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        out = {}
        json_cols = self.json_columns.get(table, set())
        for key, value in row.items():
            _q(key)
            if key in json_cols and value is not None and not isinstance(value, str):
                value = json.dumps(list(value))
            out[key] = value
        return out

    def _decode(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        out = dict(row)
        for key in self.json_columns.get(table, set()):
            raw = out.get(key)
            if isinstance(raw, str):
                try:
                    out[key] = json.loads(raw) if raw else []
                except ValueError:
                    out[key] = [s.strip() for s in raw.split(",") if s.strip()]
            elif raw is None and key in out:
                out[key] = []
        return out

    def _statement(self, sql: str, expanding: List[str]):
        stmt = sa_text(sql)
        if expanding:
            stmt = stmt.bindparams(*[bindparam(n, expanding=True) for n in expanding])
        return stmt

    # ── reads ─────────────────────────────────────────────────────────────

    def query(
        self,
        table: str,
        predicate: Optional[Predicate] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        predicate = predicate or Predicate.everything()
        if predicate.is_unsatisfiable():
            return []
        where, params, expanding = predicate.compile(table)
        sql = f"SELECT * FROM {_q(table)} WHERE {where}"
        if order_by:
            sql += f" ORDER BY {_q(order_by)} {'DESC' if descending else 'ASC'}"
        if limit:
            sql += " LIMIT :_limit"
            params["_limit"] = int(limit)
        with self._guard(f"query {table}"):
            with self.engine.connect() as conn:
                rows = conn.execute(self._statement(sql, expanding), params).fetchall()
        return [self._decode(table, r._mapping) for r in rows]

    def get(self, table: str, row_id: Any, id_column: str = "id") -> Optional[Dict[str, Any]]:
        rows = self.query(table, Predicate.everything().eq(id_column, row_id), limit=1)
        return rows[0] if rows else None

    def count(self, table: str, predicate: Optional[Predicate] = None) -> int:
        predicate = predicate or Predicate.everything()
        if predicate.is_unsatisfiable():
            return 0
        where, params, expanding = predicate.compile(table)
        sql = f"SELECT COUNT(*) FROM {_q(table)} WHERE {where}"
        with self._guard(f"count {table}"):
            with self.engine.connect() as conn:
                return int(conn.execute(self._statement(sql, expanding), params).scalar() or 0)

    def group_counts(
        self, table: str, column: str, predicate: Optional[Predicate] = None
    ) -> Dict[str, int]:
        predicate = predicate or Predicate.everything()
        if predicate.is_unsatisfiable():
            return {}
        where, params, expanding = predicate.compile(table)
        col = _q(column)
        sql = (
            f"SELECT {col} AS k, COUNT(*) AS n FROM {_q(table)} WHERE {where} "
            f"GROUP BY {col} ORDER BY n DESC"
        )
        with self._guard(f"aggregate {table}"):
            with self.engine.connect() as conn:
                rows = conn.execute(self._statement(sql, expanding), params).fetchall()
        return {("" if r[0] is None else str(r[0])): int(r[1]) for r in rows}

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(sa_text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log.warning("Record store ping failed: %s", e)
            return False

    # ── writes ────────────────────────────────────────────────────────────

    def _insert_sql(self, table: str, row: Mapping[str, Any]) -> str:
        cols = list(row.keys())
        return (
            f"INSERT INTO {_q(table)} ({', '.join(_q(c) for c in cols)}) "
            f"VALUES ({', '.join(':' + c for c in cols)})"
        )

    def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        row_numbers: Optional[Sequence[int]] = None,
    ) -> InsertResult:
        """
        Inserts rows in batches. A batch that fails is retried row by row so
        that one bad row only costs itself; its error lands in per_row_errors
        as "Row N: ...". N is taken from `row_numbers` when given (e.g. the
        line in an uploaded file), otherwise it is 1-based over `rows`.
        """
        if row_numbers is not None and len(row_numbers) != len(rows):
            raise ValueError("row_numbers must have one entry per row")
        result = InsertResult()
        encoded = [self._encode(table, r) for r in rows]
        for start in range(0, len(encoded), self.batch_size):
            batch = encoded[start:start + self.batch_size]
            batch_no = start // self.batch_size + 1
            try:
                with self.engine.begin() as conn:
                    for row in batch:
                        conn.execute(sa_text(self._insert_sql(table, row)), row)
                result.inserted_count += len(batch)
                log.info("Inserted batch %d into %s: %d records", batch_no, table, len(batch))
                continue
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Database unavailable while inserting into {table}") from e
            except StatementError as e:
                log.warning("Batch %d into %s failed (%s), retrying row by row", batch_no, table, e)

            for offset, row in enumerate(batch):
                try:
                    with self.engine.begin() as conn:
                        conn.execute(sa_text(self._insert_sql(table, row)), row)
                    result.inserted_count += 1
                except (OperationalError, InterfaceError) as e:
                    raise StoreUnavailableError(f"Database unavailable while inserting into {table}") from e
                except StatementError as e:
                    reason = getattr(e, "orig", None) or e
                    index = start + offset
                    label = row_numbers[index] if row_numbers is not None else index + 1
                    result.per_row_errors.append(f"Row {label}: {reason}")
        return result

    def update(
        self, table: str, row_id: Any, values: Mapping[str, Any], id_column: str = "id"
    ) -> int:
        if not values:
            return 0
        encoded = self._encode(table, values)
        assignments = ", ".join(f"{_q(k)} = :{k}" for k in encoded)
        params = dict(encoded)
        params["_row_id"] = row_id
        sql = f"UPDATE {_q(table)} SET {assignments} WHERE {_q(id_column)} = :_row_id"
        with self._guard(f"update {table}"):
            with self.engine.begin() as conn:
                return conn.execute(sa_text(sql), params).rowcount
