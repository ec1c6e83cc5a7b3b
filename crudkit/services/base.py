from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from crudkit.core.errors import InvalidFilterError, NotFoundError
from crudkit.repositories.base import ID, GenericRepository, Record, RepositoryFindOptions
from crudkit.schemas.query import OrderBy, QueryOptions
from crudkit.services.filter_compiler import compile_filter


class GenericService:
    default_limit = 10
    default_offset = 0

    def __init__(self, repository: GenericRepository, logger: logging.Logger | None = None):
        self.repository = repository
        self.log = logger or logging.getLogger("crudkit.service")

    @property
    def resource_name(self) -> str:
        return self.repository.adapter.name

    def _query_options(self, options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        if options is None:
            return QueryOptions()
        if isinstance(options, QueryOptions):
            return options
        try:
            return QueryOptions.model_validate(options)
        except ValidationError as exc:
            raise InvalidFilterError(f"Invalid query options: {exc.error_count()} error(s)") from exc

    def build_find_options(self, options: QueryOptions | Mapping[str, Any] | None = None) -> RepositoryFindOptions:
        opts = self._query_options(options)
        where = None
        if opts.filter is not None:
            where = compile_filter(opts.filter, self.repository.adapter.columns)
        return RepositoryFindOptions(
            where=where,
            order_by=self.transform_order_by(opts.order_by),
            limit=self.default_limit if opts.limit is None else opts.limit,
            offset=self.default_offset if opts.offset is None else opts.offset,
        )

    def transform_order_by(self, order_by: Iterable[OrderBy] | None):
        if not order_by:
            return []
        columns = self.repository.adapter.columns
        out = []
        for item in order_by:
            col = columns.get(item.field)
            if col is None:
                self.log.debug("order_by dropped unknown field=%s resource=%s", item.field, self.resource_name)
                continue
            out.append((col, item.direction))
        return out

    async def find_all(self, options: QueryOptions | Mapping[str, Any] | None = None) -> list[Record]:
        return await self.repository.find_all(self.build_find_options(options))

    async def find_and_count(self, options: QueryOptions | Mapping[str, Any] | None = None) -> tuple[list[Record], int]:
        return await self.repository.find_and_count(self.build_find_options(options))

    async def find_by_id(self, item_id: ID) -> Record:
        item = await self.repository.find_by_id(item_id)
        if item is None:
            raise NotFoundError(self.resource_name, item_id)
        return item

    async def exists(self, item_id: ID) -> bool:
        return await self.repository.check_exists_by_id(item_id)

    async def create(self, data: Any) -> Record:
        return await self.repository.create(data)

    async def create_many(self, items: Iterable[Any]) -> list[Record]:
        return await self.repository.create_many(items)

    async def update(self, item_id: ID, data: Any) -> Record:
        if not await self.repository.check_exists_by_id(item_id):
            raise NotFoundError(self.resource_name, item_id)
        item = await self.repository.update(item_id, data)
        if item is None:
            # deleted between the check and the write
            raise NotFoundError(self.resource_name, item_id)
        return item

    async def delete(self, item_id: ID) -> None:
        if not await self.repository.check_exists_by_id(item_id):
            raise NotFoundError(self.resource_name, item_id)
        await self.repository.delete(item_id)
