from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Iterable, Literal, Sequence, Union

from sqlalchemy import asc, delete, desc, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from crudkit.core.errors import CrudKitError, QueryExecutionError
from crudkit.db.session import Database, QueryOp, R
from crudkit.repositories.table import TableAdapter

ID = Union[str, int]
Record = dict[str, Any]


@dataclass
class RepositoryFindOptions:
    where: ColumnElement[bool] | None = None
    order_by: list[tuple[ColumnElement, Literal["asc", "desc"]]] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None


class GenericRepository:
    def __init__(self, db: Database, adapter: TableAdapter, logger: logging.Logger | None = None):
        self.db = db
        self.adapter = adapter
        self.log = logger or logging.getLogger("crudkit.repository")

    @property
    def table(self):
        return self.adapter.table

    @property
    def pk(self):
        return self.adapter.primary_key_column

    async def _execute(self, label: str, op: QueryOp[R]) -> R:
        meta = {"resource": self.adapter.name, "query": label}
        self.log.debug("[%s] %s started", label, self.adapter.name, extra=meta)
        started = perf_counter()
        try:
            result = await self.db.execute(label, op)
        except CrudKitError:
            raise
        except Exception:
            self.log.exception(
                "[%s] %s failed in %.2fms", label, self.adapter.name, (perf_counter() - started) * 1000.0, extra=meta
            )
            raise QueryExecutionError(label) from None
        self.log.debug(
            "[%s] %s completed in %.2fms", label, self.adapter.name, (perf_counter() - started) * 1000.0, extra=meta
        )
        return result

    def _select_statement(self, options: RepositoryFindOptions):
        stmt = select(self.table)
        if options.where is not None:
            stmt = stmt.where(options.where)
        if options.order_by:
            stmt = stmt.order_by(*[asc(col) if direction == "asc" else desc(col) for col, direction in options.order_by])
        if options.offset:
            stmt = stmt.offset(options.offset)
        # limit=0 means "no limit"
        if options.limit:
            stmt = stmt.limit(options.limit)
        return stmt

    def _count_statement(self, where: ColumnElement[bool] | None = None):
        stmt = select(func.count()).select_from(self.table)
        if where is not None:
            stmt = stmt.where(where)
        return stmt

    async def _fetch_by_id(self, session: AsyncSession, item_id: ID) -> Record | None:
        row = (await session.execute(select(self.table).where(self.pk == item_id))).mappings().first()
        return self.adapter.to_record(row) if row is not None else None

    async def _insert_one(self, session: AsyncSession, values: Record) -> Record:
        result = await session.execute(insert(self.table).values(**values))
        item_id = result.inserted_primary_key[0]
        record = await self._fetch_by_id(session, item_id)
        if record is None:
            raise LookupError(f"inserted row {item_id!r} is not readable")
        return record

    # Queries

    async def find_all(self, options: RepositoryFindOptions | None = None) -> list[Record]:
        stmt = self._select_statement(options or RepositoryFindOptions())

        async def op(session: AsyncSession) -> list[Record]:
            rows = (await session.execute(stmt)).mappings().all()
            return [self.adapter.to_record(row) for row in rows]

        return await self._execute("FindAll", op)

    async def find_by_id(self, item_id: ID) -> Record | None:
        async def op(session: AsyncSession) -> Record | None:
            return await self._fetch_by_id(session, item_id)

        return await self._execute("FindById", op)

    async def find_one(self, where: ColumnElement[bool]) -> Record | None:
        stmt = select(self.table).where(where).limit(1)

        async def op(session: AsyncSession) -> Record | None:
            row = (await session.execute(stmt)).mappings().first()
            return self.adapter.to_record(row) if row is not None else None

        return await self._execute("FindOne", op)

    async def find_and_count(self, options: RepositoryFindOptions | None = None) -> tuple[list[Record], int]:
        options = options or RepositoryFindOptions()
        stmt = self._select_statement(options)
        count_stmt = self._count_statement(options.where)

        async def op(session: AsyncSession) -> tuple[list[Record], int]:
            rows = (await session.execute(stmt)).mappings().all()
            total = (await session.execute(count_stmt)).scalar_one()
            return [self.adapter.to_record(row) for row in rows], int(total)

        return await self._execute("FindAndCount", op)

    async def count(self, where: ColumnElement[bool] | None = None) -> int:
        stmt = self._count_statement(where)

        async def op(session: AsyncSession) -> int:
            return int((await session.execute(stmt)).scalar_one())

        return await self._execute("Count", op)

    async def check_exists(self, where: ColumnElement[bool]) -> bool:
        return await self.count(where) > 0

    async def check_exists_by_id(self, item_id: ID) -> bool:
        return await self.check_exists(self.pk == item_id)

    # Create

    async def create(self, data: Any) -> Record:
        values = self.adapter.insert_values(data)

        async def op(session: AsyncSession) -> Record:
            return await self._insert_one(session, values)

        return await self._execute("Create", op)

    async def create_many(self, items: Iterable[Any]) -> list[Record]:
        rows = [self.adapter.insert_values(item) for item in items]
        if not rows:
            return []

        async def op(session: AsyncSession) -> list[Record]:
            return [await self._insert_one(session, values) for values in rows]

        return await self._execute("CreateMany", op)

    # Update

    async def update(self, item_id: ID, data: Any) -> Record | None:
        values = self.adapter.update_values(data)

        async def op(session: AsyncSession) -> Record | None:
            if values:
                result = await session.execute(update(self.table).where(self.pk == item_id).values(**values))
                if result.rowcount == 0:
                    return None
            return await self._fetch_by_id(session, item_id)

        return await self._execute("Update", op)

    async def update_many(self, items: Sequence[Any]) -> list[Record]:
        """Each item carries its own ``id``; ids that match no row are skipped."""
        pk_key = self.pk.key
        changes: list[tuple[ID, Record]] = []
        for item in items:
            data = item.model_dump(exclude_unset=True) if hasattr(item, "model_dump") else dict(item)
            if data.get(pk_key) is None:
                raise ValueError(f'update_many item without "{pk_key}"')
            changes.append((data[pk_key], self.adapter.update_values(data)))
        if not changes:
            return []

        async def op(session: AsyncSession) -> list[Record]:
            updated: list[Record] = []
            for item_id, values in changes:
                if values:
                    await session.execute(update(self.table).where(self.pk == item_id).values(**values))
                record = await self._fetch_by_id(session, item_id)
                if record is not None:
                    updated.append(record)
            return updated

        return await self._execute("UpdateMany", op)

    # Delete

    async def delete(self, item_id: ID) -> None:
        async def op(session: AsyncSession) -> None:
            await session.execute(delete(self.table).where(self.pk == item_id))

        await self._execute("Delete", op)

    async def delete_many(self, ids: Sequence[ID]) -> None:
        ids = list(ids)
        if not ids:
            return

        async def op(session: AsyncSession) -> None:
            await session.execute(delete(self.table).where(self.pk.in_(ids)))

        await self._execute("DeleteMany", op)
