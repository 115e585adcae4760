"""
Generic repository layer over the relational store.

Domain services never build Supabase queries themselves. They describe what
they want with Conditions, a Sort and a PageRequest, and hand that to an
ITableRepository. Two implementations exist:

- SupabaseTableRepository: the production store. The Supabase client is
  synchronous, so every query runs in a worker thread and the event loop
  keeps serving other requests while it waits.
- InMemoryTableRepository: same contract, backed by a dict. Used for the
  "memory" storage back end and throughout the tests.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Iterable, Optional, Protocol, Sequence, TypeVar, runtime_checkable

from supabase import Client

from .exceptions import NotFoundError


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides the Supabase client via self._db. Subclasses implement the
    data access methods and map rows to models internally.
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db


# -----------------------------------------------------------------------------
# Query description
# -----------------------------------------------------------------------------


class Op(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    IN = "in"
    ILIKE = "ilike"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    SEARCH = "search"


@dataclass(frozen=True)
class Condition:
    """A single filter. For SEARCH, ``field`` is a comma-separated field list."""

    field: str
    op: Op
    value: Any = None


def eq(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.EQ, value)


def neq(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.NEQ, value)


def lt(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.LT, value)


def lte(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.LTE, value)


def gt(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.GT, value)


def gte(field_name: str, value: Any) -> Condition:
    return Condition(field_name, Op.GTE, value)


def in_(field_name: str, values: Iterable[Any]) -> Condition:
    return Condition(field_name, Op.IN, tuple(values))


def ilike(field_name: str, term: str) -> Condition:
    """Case-insensitive substring match."""
    return Condition(field_name, Op.ILIKE, term)


def is_null(field_name: str) -> Condition:
    return Condition(field_name, Op.IS_NULL)


def not_null(field_name: str) -> Condition:
    return Condition(field_name, Op.NOT_NULL)


def search(fields: Sequence[str], term: str) -> Condition:
    """Case-insensitive substring match on any of ``fields``."""
    return Condition(",".join(fields), Op.SEARCH, term)


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = True


@dataclass(frozen=True)
class PageRequest:
    """1-indexed page request."""

    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    """A page of rows plus the total number of matching rows."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    total_count: int = 0


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -----------------------------------------------------------------------------
# Contract
# -----------------------------------------------------------------------------


@runtime_checkable
class ITableRepository(Protocol):
    """
    Contract for table access.

    ``conditions`` on get/update/delete narrow the match beyond the id,
    which is how callers scope a lookup to the owning tenant.
    """

    table: str

    async def find(
        self,
        conditions: Sequence[Condition] = (),
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
        columns: str = "*",
    ) -> Page:
        """Return matching rows and the total match count."""
        ...

    async def get(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        """Return one row by id, or None."""
        ...

    async def insert(
        self,
        rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Insert one or many rows in a single storage call."""
        ...

    async def update(
        self,
        record_id: str,
        patch: dict[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        """Apply a partial update. Returns the updated row, or None if not found."""
        ...

    async def delete(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> bool:
        """Delete one row. Returns False if nothing matched."""
        ...

    async def delete_where(self, conditions: Sequence[Condition]) -> int:
        """Delete every matching row. Returns how many were removed."""
        ...

    async def atomic_increment(self, record_id: str, field_name: str, delta: int) -> int:
        """Add ``delta`` to a numeric column at the store and return the new value."""
        ...


# -----------------------------------------------------------------------------
# Supabase implementation
# -----------------------------------------------------------------------------


class SupabaseTableRepository(BaseRepository[dict[str, Any]]):
    """ITableRepository backed by a Supabase (PostgREST) table."""

    def __init__(self, db: Client, table: str) -> None:
        super().__init__(db)
        self.table = table

    @staticmethod
    async def _execute(query: Any) -> Any:
        return await asyncio.to_thread(query.execute)

    @staticmethod
    def _apply(query: Any, conditions: Sequence[Condition]) -> Any:
        for c in conditions:
            if c.op is Op.EQ:
                query = query.eq(c.field, c.value)
            elif c.op is Op.NEQ:
                query = query.neq(c.field, c.value)
            elif c.op is Op.LT:
                query = query.lt(c.field, c.value)
            elif c.op is Op.LTE:
                query = query.lte(c.field, c.value)
            elif c.op is Op.GT:
                query = query.gt(c.field, c.value)
            elif c.op is Op.GTE:
                query = query.gte(c.field, c.value)
            elif c.op is Op.IN:
                query = query.in_(c.field, list(c.value))
            elif c.op is Op.ILIKE:
                query = query.ilike(c.field, f"%{c.value}%")
            elif c.op is Op.IS_NULL:
                query = query.is_(c.field, "null")
            elif c.op is Op.NOT_NULL:
                query = query.not_.is_(c.field, "null")
            elif c.op is Op.SEARCH:
                clauses = [f"{name}.ilike.%{c.value}%" for name in c.field.split(",")]
                query = query.or_(",".join(clauses))
        return query

    async def find(
        self,
        conditions: Sequence[Condition] = (),
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
        columns: str = "*",
    ) -> Page:
        query = self._db.table(self.table).select(columns, count="exact")
        query = self._apply(query, conditions)
        if sort is not None:
            query = query.order(sort.field, desc=sort.descending)
        if page is not None:
            query = query.range(page.offset, page.offset + page.limit - 1)

        result = await self._execute(query)
        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return Page(rows=rows, total_count=total)

    async def get(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        query = self._db.table(self.table).select("*").eq("id", record_id)
        query = self._apply(query, conditions)
        result = await self._execute(query.limit(1))
        return result.data[0] if result.data else None

    async def insert(
        self,
        rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        result = await self._execute(self._db.table(self.table).insert(rows))
        return result.data or []

    async def update(
        self,
        record_id: str,
        patch: dict[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        query = self._db.table(self.table).update(patch).eq("id", record_id)
        query = self._apply(query, conditions)
        result = await self._execute(query)
        return result.data[0] if result.data else None

    async def delete(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> bool:
        query = self._db.table(self.table).delete().eq("id", record_id)
        query = self._apply(query, conditions)
        result = await self._execute(query)
        return bool(result.data)

    async def delete_where(self, conditions: Sequence[Condition]) -> int:
        if not conditions:
            raise ValueError("delete_where requires at least one condition")
        query = self._apply(self._db.table(self.table).delete(), conditions)
        result = await self._execute(query)
        return len(result.data or [])

    async def atomic_increment(self, record_id: str, field_name: str, delta: int) -> int:
        result = await self._execute(
            self._db.rpc(
                "increment_field",
                {
                    "p_table": self.table,
                    "p_id": record_id,
                    "p_field": field_name,
                    "p_delta": delta,
                },
            )
        )
        return int(result.data)


# -----------------------------------------------------------------------------
# In-memory implementation
# -----------------------------------------------------------------------------


def _matches(row: dict[str, Any], condition: Condition) -> bool:
    value = row.get(condition.field)
    op = condition.op

    if op is Op.EQ:
        return value == condition.value
    if op is Op.NEQ:
        return value != condition.value
    if op is Op.IS_NULL:
        return value is None
    if op is Op.NOT_NULL:
        return value is not None
    if op is Op.IN:
        return value in condition.value
    if op is Op.ILIKE:
        return value is not None and str(condition.value).lower() in str(value).lower()
    if op is Op.SEARCH:
        term = str(condition.value).lower()
        return any(
            row.get(name) is not None and term in str(row.get(name)).lower()
            for name in condition.field.split(",")
        )

    # Ordering comparisons never match NULL, as in SQL
    if value is None:
        return False
    if op is Op.LT:
        return value < condition.value
    if op is Op.LTE:
        return value <= condition.value
    if op is Op.GT:
        return value > condition.value
    if op is Op.GTE:
        return value >= condition.value
    raise ValueError(f"Unsupported operator: {op}")


class InMemoryTableRepository:
    """
    ITableRepository backed by a dict.

    Rows get an ``id``, ``created_at`` and ``updated_at`` on insert when the
    caller did not provide them, like the database defaults do.
    """

    def __init__(self, table: str, rows: Optional[Iterable[dict[str, Any]]] = None) -> None:
        self.table = table
        self._rows: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        for row in rows or []:
            stored = self._prepare(row)
            self._rows[stored["id"]] = stored

    @staticmethod
    def _prepare(row: dict[str, Any]) -> dict[str, Any]:
        now = utc_now_iso()
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)
        return stored

    def _select(self, conditions: Sequence[Condition]) -> list[dict[str, Any]]:
        return [
            row for row in self._rows.values()
            if all(_matches(row, c) for c in conditions)
        ]

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Snapshot of every stored row."""
        return [dict(row) for row in self._rows.values()]

    async def find(
        self,
        conditions: Sequence[Condition] = (),
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
        columns: str = "*",
    ) -> Page:
        matched = self._select(conditions)

        if sort is not None:
            present = [r for r in matched if r.get(sort.field) is not None]
            missing = [r for r in matched if r.get(sort.field) is None]
            present.sort(key=lambda r: r[sort.field], reverse=sort.descending)
            matched = present + missing

        total = len(matched)
        if page is not None:
            matched = matched[page.offset : page.offset + page.limit]

        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            matched = [{k: r.get(k) for k in wanted} for r in matched]

        return Page(rows=[dict(r) for r in matched], total_count=total)

    async def get(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        row = self._rows.get(record_id)
        if row is None or not all(_matches(row, c) for c in conditions):
            return None
        return dict(row)

    async def insert(
        self,
        rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        batch = [rows] if isinstance(rows, dict) else list(rows)
        async with self._lock:
            stored = [self._prepare(row) for row in batch]
            for row in stored:
                self._rows[row["id"]] = row
        return [dict(row) for row in stored]

    async def update(
        self,
        record_id: str,
        patch: dict[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Optional[dict[str, Any]]:
        async with self._lock:
            row = self._rows.get(record_id)
            if row is None or not all(_matches(row, c) for c in conditions):
                return None
            row.update(patch)
            row["updated_at"] = utc_now_iso()
            return dict(row)

    async def delete(
        self,
        record_id: str,
        conditions: Sequence[Condition] = (),
    ) -> bool:
        async with self._lock:
            row = self._rows.get(record_id)
            if row is None or not all(_matches(row, c) for c in conditions):
                return False
            del self._rows[record_id]
            return True

    async def delete_where(self, conditions: Sequence[Condition]) -> int:
        if not conditions:
            raise ValueError("delete_where requires at least one condition")
        async with self._lock:
            doomed = [row["id"] for row in self._select(conditions)]
            for record_id in doomed:
                del self._rows[record_id]
            return len(doomed)

    async def atomic_increment(self, record_id: str, field_name: str, delta: int) -> int:
        async with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFoundError(f"{self.table} row not found: {record_id}")
            row[field_name] = int(row.get(field_name) or 0) + delta
            return row[field_name]
