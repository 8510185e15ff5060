# src/freight_quote/connectors/tariff_store.py
"""
Read-only access to the tariff tables.

Notes:
- Each logical category (ocean / local / transport) maps to an ordered list of
  physical table names. Names are tried in order; a missing table moves on to
  the next candidate, any other database error is raised immediately.
- Every attempt runs on its own connection so a failed statement never
  poisons the transaction used by the next candidate (PostgreSQL aborts the
  whole transaction after an error).
- All SQL goes through SQLAlchemy Core with bound parameters.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import Column, MetaData, Table, and_, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.sql import Select

from ..models import TARIFF_MODELS
from ..settings import settings

logger = logging.getLogger(__name__)

__all__ = [
    "TariffCategory",
    "Predicate",
    "FilterSpec",
    "TableResult",
    "TableNotFound",
    "TariffStoreUnavailable",
    "TariffStore",
]

# SQLSTATE for "relation does not exist"
UNDEFINED_TABLE = "42P01"


class TariffCategory(str, Enum):
    OCEAN = "ocean"
    LOCAL = "local"
    TRANSPORT = "transport"


class TableNotFound(LookupError):
    """None of the candidate tables for a category exist."""

    def __init__(self, category: str, tried: Sequence[str]):
        super().__init__(category)
        self.category = category
        self.tried = tuple(tried)

    def __str__(self) -> str:
        return f"no tariff table for {self.category}; tried {', '.join(self.tried) or 'nothing'}"


class TariffStoreUnavailable(RuntimeError):
    """The tariff database cannot be reached at all."""


@dataclass(frozen=True)
class Predicate:
    column: str
    op: str  # eq | ieq | iin | ilike | lte | gte | nonempty
    value: Any = None


@dataclass
class FilterSpec:
    """Column filters plus paging for a single tariff query."""

    predicates: List[Predicate] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    columns: Optional[Tuple[str, ...]] = None

    def eq(self, column: str, value: Any) -> "FilterSpec":
        self.predicates.append(Predicate(column, "eq", value))
        return self

    def ieq(self, column: str, value: str) -> "FilterSpec":
        self.predicates.append(Predicate(column, "ieq", value))
        return self

    def iin(self, column: str, values: Iterable[str]) -> "FilterSpec":
        self.predicates.append(Predicate(column, "iin", tuple(values)))
        return self

    def ilike(self, column: str, pattern: str) -> "FilterSpec":
        self.predicates.append(Predicate(column, "ilike", pattern))
        return self

    def lte(self, column: str, value: Any) -> "FilterSpec":
        self.predicates.append(Predicate(column, "lte", value))
        return self

    def gte(self, column: str, value: Any) -> "FilterSpec":
        self.predicates.append(Predicate(column, "gte", value))
        return self

    def nonempty(self, column: str) -> "FilterSpec":
        self.predicates.append(Predicate(column, "nonempty"))
        return self


@dataclass
class TableResult:
    table: str
    rows: List[Dict[str, Any]]


@dataclass
class _Attempt:
    """Outcome of querying one candidate table: rows, or a missing-table error."""

    table: str
    rows: Optional[List[Dict[str, Any]]] = None
    missing: Optional[DBAPIError] = None


def _is_missing_table(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNDEFINED_TABLE:
        return True
    # sqlite3 has no SQLSTATE; match its message instead.
    return "no such table" in str(orig).lower()


def _column(table: Table, name: str) -> Column:
    for col in table.columns:
        if col.name == name:
            return col
    raise KeyError(f"unknown column {name!r} on {table.name}")


def _clause(col: Column, predicate: Predicate):
    op, value = predicate.op, predicate.value
    if op == "eq":
        return col == value
    if op == "ieq":
        return func.upper(col) == str(value).upper()
    if op == "iin":
        return func.upper(col).in_([str(v).upper() for v in value])
    if op == "ilike":
        return col.ilike(value)
    if op == "lte":
        return col <= value
    if op == "gte":
        return col >= value
    if op == "nonempty":
        return and_(col.isnot(None), func.trim(col) != "")
    raise ValueError(f"unsupported filter operator {op!r}")


class TariffStore:
    """Query the tariff tables with a per-category resolver chain."""

    def __init__(
        self,
        engine: Engine,
        *,
        candidates: Optional[Mapping[str, Sequence[str]]] = None,
        page_size: Optional[int] = None,
    ):
        self.engine = engine
        source = candidates or settings.table_candidates
        self.candidates: Dict[str, Tuple[str, ...]] = {
            TariffCategory(k).value: tuple(v) for k, v in source.items()
        }
        self.page_size = page_size or settings.options_page_size
        self._metadata = MetaData()
        self._tables: Dict[Tuple[str, str], Table] = {}
        self._tables_lock = threading.Lock()

    # ------------- Table shapes -------------

    def table_for(self, category: str, name: str) -> Table:
        key = (category, name)
        with self._tables_lock:
            if key not in self._tables:
                base = TARIFF_MODELS[category].__table__
                self._tables[key] = base.to_metadata(self._metadata, name=name)
            return self._tables[key]

    def select_for(self, category: str, spec: FilterSpec, table: Table) -> Select:
        if spec.columns:
            cols = [_column(table, name) for name in spec.columns]
        else:
            cols = list(table.columns)
        stmt = select(*[c.label(c.name) for c in cols])
        for predicate in spec.predicates:
            stmt = stmt.where(_clause(_column(table, predicate.column), predicate))
        if spec.offset is not None:
            stmt = stmt.order_by(*table.primary_key.columns).offset(spec.offset)
        if spec.limit is not None:
            stmt = stmt.limit(spec.limit)
        return stmt

    def compile(self, category: str, spec: FilterSpec, table_name: str) -> str:
        stmt = self.select_for(category, spec, self.table_for(category, table_name))
        compiled = stmt.compile(
            dialect=self.engine.dialect,
            compile_kwargs={"render_postcompile": True},
        )
        return f"{compiled} -- params={compiled.params}"

    # ------------- Querying -------------

    def _attempt(self, category: str, name: str, spec: FilterSpec) -> _Attempt:
        stmt = self.select_for(category, spec, self.table_for(category, name))
        try:
            with self.engine.connect() as conn:
                rows = [dict(r) for r in conn.execute(stmt).mappings()]
        except DBAPIError as exc:
            if _is_missing_table(exc):
                return _Attempt(table=name, missing=exc)
            raise
        return _Attempt(table=name, rows=rows)

    def query(self, category: str, spec: FilterSpec) -> TableResult:
        """Run ``spec`` against the first candidate table that exists."""
        category = TariffCategory(category).value
        tried: List[str] = []
        last_missing: Optional[DBAPIError] = None

        for name in self.candidates.get(category, ()):
            attempt = self._attempt(category, name, spec)
            tried.append(name)
            if attempt.rows is not None:
                logger.debug("%s: %d row(s) from %s", category, len(attempt.rows), name)
                return TableResult(table=name, rows=attempt.rows)
            last_missing = attempt.missing
            logger.debug("%s: table %s not found, trying next candidate", category, name)

        raise TableNotFound(category, tried) from last_missing

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).scalar()
        except SQLAlchemyError as exc:
            raise TariffStoreUnavailable(f"tariff store unreachable: {exc}") from exc

    def distinct_values(
        self,
        category: str,
        column: str,
        predicates: Sequence[Predicate] = (),
    ) -> List[str]:
        """All distinct non-empty values of ``column``, scanning the table page by page.

        Filter-option population needs the complete value set, so this ignores
        the pricing row caps and walks the table in ``page_size`` batches.
        """
        category = TariffCategory(category).value
        model_table = TARIFF_MODELS[category].__table__
        _column(model_table, column)  # rejects columns the table does not have

        values = set()
        offset = 0
        while True:
            spec = FilterSpec(
                predicates=list(predicates),
                columns=(column,),
                limit=self.page_size,
                offset=offset,
            )
            batch = self.query(category, spec).rows
            for row in batch:
                value = row.get(column)
                if value is None:
                    continue
                cleaned = str(value).strip()
                if cleaned:
                    values.add(cleaned)
            if len(batch) < self.page_size:
                break
            offset += self.page_size

        return sorted(values)
