from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Operator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER = ">"
    GREATER_EQUALS = ">="
    LESS = "<"
    LESS_EQUALS = "<="

    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    LIKE = "like"
    ILIKE = "ilike"

    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"

    IN = "in"
    NOT_IN = "not_in"

    BETWEEN = "between"
    NOT_BETWEEN = "not_between"


Combinator = Literal["and", "or"]
Dir = Literal["asc", "desc"]


class FilterRule(BaseModel):
    field: str
    operator: Operator
    value: Any = None


class FilterRuleGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    combinator: Combinator
    negate: bool = Field(default=False, alias="not")
    rules: List[Union["FilterRuleGroup", FilterRule]]

    @field_validator("combinator", mode="before")
    @classmethod
    def _lower_combinator(cls, value):
        return value.lower() if isinstance(value, str) else value


FilterRuleGroup.model_rebuild()


class OrderBy(BaseModel):
    field: str = Field(validation_alias=AliasChoices("field", "column"))
    direction: Dir = "asc"


class QueryOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filter: Optional[FilterRuleGroup] = Field(default=None, validation_alias=AliasChoices("filter", "where"))
    order_by: List[OrderBy] = Field(default_factory=list, validation_alias=AliasChoices("order_by", "orderBy"))
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
