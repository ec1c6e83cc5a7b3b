from typing import Any, Dict

from fastapi import Body, Depends, HTTPException, Response
from pydantic import BaseModel, ValidationError

from crudkit.api.query_params import query_options
from crudkit.repositories.table import TableAdapter
from crudkit.routing.decorators import delete, get, patch, post, put
from crudkit.schemas.query import QueryOptions
from crudkit.services.base import GenericService


class CrudController:
    """Standard routes for one resource; subclasses add ``@controller(base_path)``."""

    def __init__(self, service: GenericService):
        self.service = service

    @property
    def adapter(self) -> TableAdapter:
        return self.service.repository.adapter

    def _validate(self, shape: type[BaseModel], payload: Dict[str, Any]) -> BaseModel:
        try:
            return shape.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=[{"loc": [str(p) for p in err["loc"]], "msg": err["msg"]} for err in exc.errors()],
            )

    def _serialize(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.adapter.select_shape.model_validate(record).model_dump(mode="json")

    def _page(self, rows, total: int) -> Dict[str, Any]:
        return {"rows": [self._serialize(row) for row in rows], "total": total}

    @get("/")
    async def find_all(self, options: QueryOptions = Depends(query_options)):
        rows, total = await self.service.find_and_count(options)
        return self._page(rows, total)

    @post("/query")
    async def query(self, options: QueryOptions):
        rows, total = await self.service.find_and_count(options)
        return self._page(rows, total)

    @get("/{item_id}")
    async def find_by_id(self, item_id: str):
        record = await self.service.find_by_id(self.adapter.parse_id(item_id))
        return self._serialize(record)

    @post("/")
    async def create(self, payload: Dict[str, Any] = Body(...)):
        data = self._validate(self.adapter.insert_shape, payload)
        return self._serialize(await self.service.create(data))

    @put("/{item_id}")
    async def replace(self, item_id: str, payload: Dict[str, Any] = Body(...)):
        data = self._validate(self.adapter.insert_shape, payload)
        # full replacement: defaults count as set
        return self._serialize(await self.service.update(self.adapter.parse_id(item_id), data.model_dump()))

    @patch("/{item_id}")
    async def update(self, item_id: str, payload: Dict[str, Any] = Body(...)):
        shape = self.adapter.update_shape or self.adapter.insert_shape
        data = self._validate(shape, payload)
        return self._serialize(await self.service.update(self.adapter.parse_id(item_id), data))

    @delete("/{item_id}", status_code=204)
    async def delete(self, item_id: str):
        await self.service.delete(self.adapter.parse_id(item_id))
        return Response(status_code=204)
