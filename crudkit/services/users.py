from typing import Any, Iterable

from pydantic import BaseModel

from crudkit.core.security import hash_password
from crudkit.repositories.base import ID, Record
from crudkit.repositories.users import UserRepository
from crudkit.services.base import GenericService


def _with_password_hash(data: Any, partial: bool = False) -> dict[str, Any]:
    values = data.model_dump(exclude_unset=partial) if isinstance(data, BaseModel) else dict(data)
    if values.get("password"):
        values["password"] = hash_password(values["password"])
    return values


class UserService(GenericService):
    repository: UserRepository

    async def create(self, data: Any) -> Record:
        return await super().create(_with_password_hash(data))

    async def create_many(self, items: Iterable[Any]) -> list[Record]:
        return await super().create_many([_with_password_hash(item) for item in items])

    async def update(self, item_id: ID, data: Any) -> Record:
        return await super().update(item_id, _with_password_hash(data, partial=True))
