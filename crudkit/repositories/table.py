from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Generic, Mapping, TypeVar

from pydantic import BaseModel
from sqlalchemy import Column, Table

from crudkit.core.errors import ConfigurationError, NotFoundError

InsertT = TypeVar("InsertT", bound=BaseModel)
SelectT = TypeVar("SelectT", bound=BaseModel)


@dataclass(frozen=True)
class TableAdapter(Generic[InsertT, SelectT]):
    """What the generic repository needs to know about a resource table."""

    table: Table
    insert_shape: type[InsertT]
    select_shape: type[SelectT]
    update_shape: type[BaseModel] | None = None
    label: str | None = None

    @classmethod
    def for_model(cls, model: Any, **kwargs: Any) -> "TableAdapter":
        return cls(table=model.__table__, **kwargs)

    @property
    def name(self) -> str:
        return self.label or self.table.name

    @cached_property
    def primary_key_column(self) -> Column:
        pk_columns = list(self.table.primary_key.columns)
        if len(pk_columns) != 1:
            raise ConfigurationError(f'Table "{self.table.name}" must have exactly one primary key column')
        return pk_columns[0]

    @cached_property
    def columns(self) -> dict[str, Column]:
        return {col.key: col for col in self.table.columns}

    def insert_values(self, record: Any) -> dict[str, Any]:
        if isinstance(record, BaseModel):
            data = record.model_dump()
        else:
            data = dict(record)
        return {key: value for key, value in data.items() if key in self.columns}

    def update_values(self, partial: Any) -> dict[str, Any]:
        if isinstance(partial, BaseModel):
            data = partial.model_dump(exclude_unset=True)
        else:
            data = dict(partial)
        pk_key = self.primary_key_column.key
        return {key: value for key, value in data.items() if key in self.columns and key != pk_key}

    def to_record(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return dict(row)

    def parse_id(self, raw: Any) -> Any:
        """Path ids arrive as text: integer keys are converted, unparsable ones raise NotFoundError."""
        try:
            python_type = self.primary_key_column.type.python_type
        except NotImplementedError:
            return raw
        if python_type is int and not isinstance(raw, int):
            text = str(raw).strip()
            if not text.lstrip("-").isdigit():
                raise NotFoundError(self.name, raw)
            return int(text)
        return raw
