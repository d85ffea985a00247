"""
Record store — the generic table-level interface the finance services use.

The interface is deliberately small, the shape a hosted backend-as-a-service
exposes to a browser client:

    select(table, filters, ...) -> rows
    insert(table, record)       -> record with generated id and defaults
    update(table, patch, filters) -> number of rows matched
    delete(table, filters)      -> number of rows deleted

Filters are plain dicts:

    {"id": wallet_id}                 equality
    {"id": [a, b, c]}                 membership (list, set or frozenset)
    {"category_id": None}             IS NULL
    {"date": (">=", some_date)}       comparison: == != < <= > >=

No multi-statement atomicity is offered. SqlRecordStore runs every call in
its own short connection transaction, so each statement is atomic and nothing
spans two calls. The update() match count is what optimistic version checks
build on.
"""

import operator
import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from trackhub.exceptions import StoreReadFailedError, StoreWriteFailedError


Filters = Mapping[str, Any]
# alias -> (foreign key column on the row, related table)
Expansions = Mapping[str, tuple[str, str]]

_COMPARATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class RecordStore(Protocol):
    """Per-table CRUD with filter predicates and no cross-call atomicity."""

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        order_by: str | Sequence[str] | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        expand: Expansions | None = None,
    ) -> list[dict]: ...

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict: ...

    async def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> int: ...

    async def delete(self, table: str, filters: Filters) -> int: ...


class SqlRecordStore:
    """
    RecordStore backed by a SQLAlchemy async engine.

    Tables are looked up by name in the given MetaData, so any table declared
    on the ORM Base is addressable. Driver errors are translated into
    StoreReadFailedError / StoreWriteFailedError with the original exception
    chained.
    """

    def __init__(self, engine: AsyncEngine, metadata: MetaData):
        self._engine = engine
        self._metadata = metadata

    def _table(self, name: str) -> Table:
        try:
            return self._metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table {name!r}") from None

    @staticmethod
    def _where(table: Table, filters: Filters | None) -> list:
        clauses = []
        for column_name, value in (filters or {}).items():
            column = table.c[column_name]
            if value is None:
                clauses.append(column.is_(None))
            elif isinstance(value, tuple):
                op, operand = value
                clauses.append(_COMPARATORS[op](column, operand))
            elif isinstance(value, (list, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        order_by: str | Sequence[str] | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        expand: Expansions | None = None,
    ) -> list[dict]:
        tbl = self._table(table)
        stmt = select(tbl).where(*self._where(tbl, filters))

        if order_by:
            columns = [order_by] if isinstance(order_by, str) else list(order_by)
            for name in columns:
                column = tbl.c[name]
                stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = [dict(row._mapping) for row in result]
        except SQLAlchemyError as exc:
            raise StoreReadFailedError("select", table) from exc

        if expand and rows:
            await self._expand(rows, expand)
        return rows

    async def _expand(self, rows: list[dict], expand: Expansions) -> None:
        """Attach related rows under each alias (None when unresolved)."""
        for alias, (fk_column, related_table) in expand.items():
            ids = {row[fk_column] for row in rows if row.get(fk_column) is not None}
            related: dict = {}
            if ids:
                related = {
                    r["id"]: r
                    for r in await self.select(related_table, {"id": ids})
                }
            for row in rows:
                row[alias] = related.get(row.get(fk_column))

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict:
        tbl = self._table(table)
        values = dict(record)
        # Ids are generated client-side so callers can compensate an insert
        # whose response never arrived
        values.setdefault("id", uuid.uuid4())

        try:
            async with self._engine.begin() as conn:
                await conn.execute(insert(tbl).values(**values))
                result = await conn.execute(select(tbl).where(tbl.c.id == values["id"]))
                return dict(result.one()._mapping)
        except SQLAlchemyError as exc:
            raise StoreWriteFailedError("insert", table) from exc

    async def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> int:
        tbl = self._table(table)
        if not filters:
            raise ValueError("update() requires at least one filter")

        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(
                    update(tbl).where(*self._where(tbl, filters)).values(**patch)
                )
                return result.rowcount
        except SQLAlchemyError as exc:
            raise StoreWriteFailedError("update", table) from exc

    async def delete(self, table: str, filters: Filters) -> int:
        tbl = self._table(table)
        if not filters:
            raise ValueError("delete() requires at least one filter")

        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(delete(tbl).where(*self._where(tbl, filters)))
                return result.rowcount
        except SQLAlchemyError as exc:
            raise StoreWriteFailedError("delete", table) from exc
