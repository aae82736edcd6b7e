"""
Row-oriented data store client.

The domain layer talks to the database the way the hosted store exposes it:
select / insert / update / delete by filter, one short transaction per call.
There is deliberately no API for spanning several calls with one transaction;
multi-record consistency is the job of the compensating write coordinator.

Tables are addressed by name through lightweight ``table()``/``column()``
constructs so the same calls work against any historical column layout.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy import (
    Boolean, Date, DateTime, Float, Integer, JSON, Numeric, String,
    column, delete, func, insert, literal_column, select, table, update,
)
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.types import NullType

logger = logging.getLogger("bizledger.store")

Row = Dict[str, Any]
Filters = Mapping[str, Any]


class StoreError(Exception):
    """A single store call failed. Carries the driver error code when known."""

    def __init__(self, operation: str, table_name: str, message: str, code: Optional[str] = None):
        self.operation = operation
        self.table = table_name
        self.message = message
        self.code = code
        super().__init__(f"{operation} on '{table_name}' failed: {message}")


@dataclass(frozen=True)
class Range:
    """Inclusive range filter; either bound may be omitted."""
    gte: Any = None
    lte: Any = None


def new_id() -> str:
    return str(uuid.uuid4())


def _sql_type(value: Any):
    if isinstance(value, bool):
        return Boolean()
    if isinstance(value, Decimal):
        return Numeric(asdecimal=True)
    if isinstance(value, int):
        return Integer()
    if isinstance(value, float):
        return Float()
    if isinstance(value, datetime):
        return DateTime(timezone=True)
    if isinstance(value, date):
        return Date()
    if isinstance(value, (dict, list)):
        return JSON()
    if isinstance(value, str):
        return String()
    return NullType()


def _typed_table(name: str, rows: Sequence[Row]):
    """Build a table clause whose columns carry bind types inferred from values."""
    types = {}
    for row in rows:
        for key, value in row.items():
            if key not in types or (isinstance(types[key], NullType) and value is not None):
                types[key] = _sql_type(value)
    return table(name, *[column(key, type_) for key, type_ in types.items()])


def _where(filters: Optional[Filters]) -> list:
    clauses = []
    for name, value in (filters or {}).items():
        col = column(name)
        if value is None:
            clauses.append(col.is_(None))
        elif isinstance(value, Range):
            if value.gte is not None:
                clauses.append(col >= value.gte)
            if value.lte is not None:
                clauses.append(col <= value.lte)
        elif isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(col.in_(list(value)))
        else:
            clauses.append(col == value)
    return clauses


def _error_code(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            code = getattr(candidate, attr, None)
            if code:
                return str(code)
    return None


def _error_message(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class SqlRowStore:
    """
    Row store backed by an async SQLAlchemy engine.

    Every public method runs in its own ``engine.begin()`` block and either
    completes or raises ``StoreError``.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def _run(self, operation: str, table_name: str, work):
        try:
            async with self.engine.begin() as conn:
                return await work(conn)
        except DBAPIError as e:
            raise StoreError(operation, table_name, _error_message(e), _error_code(e)) from e
        except SQLAlchemyError as e:
            raise StoreError(operation, table_name, str(e)) from e

    async def probe(self, table_name: str, column_name: str) -> None:
        """Zero-row read of one column; raises StoreError if the store rejects it."""
        stmt = select(column(column_name)).select_from(table(table_name)).limit(0)

        async def work(conn):
            result = await conn.execute(stmt)
            result.fetchall()

        await self._run("probe", table_name, work)

    async def select(
        self,
        table_name: str,
        columns: Optional[Sequence[str]] = None,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        targets = [column(c) for c in columns] if columns else [literal_column("*")]
        stmt = select(*targets).select_from(table(table_name)).where(*_where(filters))
        if order_by:
            stmt = stmt.order_by(column(order_by).desc() if descending else column(order_by))
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async def work(conn):
            result = await conn.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

        return await self._run("select", table_name, work)

    async def select_one(self, table_name: str, filters: Filters, columns: Optional[Sequence[str]] = None) -> Optional[Row]:
        rows = await self.select(table_name, columns=columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def count(self, table_name: str, filters: Optional[Filters] = None) -> int:
        stmt = select(func.count()).select_from(table(table_name)).where(*_where(filters))

        async def work(conn):
            result = await conn.execute(stmt)
            return int(result.scalar() or 0)

        return await self._run("count", table_name, work)

    async def insert(self, table_name: str, rows: Union[Row, Iterable[Row]]) -> List[Row]:
        """
        Insert one row or many rows in a single statement per column layout.

        Rows without an ``id`` get a fresh UUID. Returns the stored rows
        (including server defaults) in input order.
        """
        batch = [dict(rows)] if isinstance(rows, Mapping) else [dict(r) for r in rows]
        if not batch:
            return []
        for row in batch:
            if not row.get("id"):
                row["id"] = new_id()
        ids = [row["id"] for row in batch]

        groups: Dict[tuple, List[Row]] = {}
        for row in batch:
            groups.setdefault(tuple(row.keys()), []).append(row)

        async def work(conn):
            for group in groups.values():
                await conn.execute(insert(_typed_table(table_name, group)), group)
            result = await conn.execute(
                select(literal_column("*")).select_from(table(table_name)).where(column("id").in_(ids))
            )
            by_id = {row["id"]: dict(row) for row in result.mappings().all()}
            return [by_id[i] for i in ids if i in by_id]

        return await self._run("insert", table_name, work)

    async def update(self, table_name: str, values: Row, filters: Filters) -> List[Row]:
        """Update rows matching ``filters``; returns the rows after the update."""
        if not values:
            return await self.select(table_name, filters=filters)
        target = _typed_table(table_name, [values])

        async def work(conn):
            result = await conn.execute(
                select(column("id")).select_from(table(table_name)).where(*_where(filters))
            )
            ids = [row[0] for row in result.all()]
            if not ids:
                return []
            await conn.execute(update(target).where(column("id").in_(ids)).values(**values))
            result = await conn.execute(
                select(literal_column("*")).select_from(table(table_name)).where(column("id").in_(ids))
            )
            return [dict(row) for row in result.mappings().all()]

        return await self._run("update", table_name, work)

    async def delete(self, table_name: str, filters: Filters) -> int:
        if not filters:
            raise StoreError("delete", table_name, "refusing to delete without a filter")
        stmt = delete(table(table_name)).where(*_where(filters))

        async def work(conn):
            result = await conn.execute(stmt)
            return result.rowcount or 0

        return await self._run("delete", table_name, work)
