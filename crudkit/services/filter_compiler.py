"""Compile a JSON-shaped filter tree into a SQLAlchemy boolean condition.

A tree is a group::

    {
        "combinator": "and",
        "not": False,
        "rules": [
            {"field": "name", "operator": "=", "value": "John"},
            {"field": "age", "operator": ">", "value": 25},
            {
                "combinator": "or",
                "rules": [
                    {"field": "city", "operator": "=", "value": "New York"},
                    {"field": "city", "operator": "=", "value": "Los Angeles"},
                ],
            },
        ],
    }

which compiles to ``name = :p1 AND age > :p2 AND (city = :p3 OR city = :p4)``.
Values are always bound parameters; field names must match
``[A-Za-z0-9_]+``. An empty ``rules`` list compiles to ``true()``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel
from sqlalchemy import and_, column, literal, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from crudkit.core.errors import InvalidFilterError
from crudkit.schemas.query import Operator

_FIELD_RE = re.compile(r"^[A-Za-z0-9_]+$")
_TRUE_WORDS = {"1", "true", "yes", "y"}
_FALSE_WORDS = {"0", "false", "no", "n"}

ColumnMap = Mapping[str, ColumnElement]


def compile_filter(tree: Any, columns: ColumnMap | None = None) -> ColumnElement[bool]:
    """``columns`` restricts fields to known table columns when given."""
    if isinstance(tree, BaseModel):
        tree = tree.model_dump()
    return _compile_group(tree, columns)


def render_condition(condition: ColumnElement[bool]) -> tuple[str, dict[str, Any]]:
    """SQL text with placeholders plus the bound values, for logs and debugging."""
    compiled = condition.compile()
    return str(compiled), dict(compiled.params)


def _is_group(node: Any) -> bool:
    return isinstance(node, Mapping) and "rules" in node


def _compile_group(group: Any, columns: ColumnMap | None) -> ColumnElement[bool]:
    if not isinstance(group, Mapping):
        raise InvalidFilterError("Filter group must be an object")
    rules = group.get("rules")
    if not isinstance(rules, (list, tuple)):
        raise InvalidFilterError('Filter group "rules" must be a list')
    if not rules:
        return true()

    combinator = str(group.get("combinator") or "").lower()
    if combinator not in {"and", "or"}:
        raise InvalidFilterError(f"Unknown combinator: {group.get('combinator')!r}")

    conditions = [
        _compile_group(child, columns) if _is_group(child) else _compile_rule(child, columns)
        for child in rules
    ]
    combined = and_(*conditions) if combinator == "and" else or_(*conditions)
    negate = group.get("negate", group.get("not", False))
    return not_(combined) if negate else combined


def _compile_rule(rule: Any, columns: ColumnMap | None) -> ColumnElement[bool]:
    if not isinstance(rule, Mapping):
        raise InvalidFilterError("Filter rule must be an object")
    col = _resolve_column(rule.get("field"), columns)
    operator = _parse_operator(rule.get("operator"))
    return _BUILDERS[operator](col, rule.get("value"))


def _resolve_column(field: Any, columns: ColumnMap | None) -> ColumnElement:
    if not isinstance(field, str) or not _FIELD_RE.fullmatch(field):
        raise InvalidFilterError(f"Invalid filter field: {field!r}")
    if columns is None:
        return column(field)
    col = columns.get(field)
    if col is None:
        raise InvalidFilterError(f'Unknown filter field "{field}"')
    return col


def _parse_operator(raw: Any) -> Operator:
    if isinstance(raw, Operator):
        return raw
    try:
        return Operator(raw)
    except ValueError:
        raise InvalidFilterError(f"Unknown operator: {raw!r}") from None


def _range(col: ColumnElement, value: Any, operator: Operator) -> tuple[Any, Any]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidFilterError(f'"{operator.value}" operator requires two values')
    return _bound(col, value[0]), _bound(col, value[1])


def _as_list(col: ColumnElement, value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce(col, item) for item in value]
    return [_coerce(col, value)]


def _column_python_type(col: ColumnElement):
    try:
        return col.type.python_type
    except (AttributeError, NotImplementedError):
        return None


def _coerce(col: ColumnElement, value: Any) -> Any:
    # Best effort only: values that do not parse are passed through as-is.
    if not isinstance(value, str):
        return value
    python_type = _column_python_type(col)
    text = value.strip()
    try:
        if python_type is datetime:
            if len(text) == 10:
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        if python_type is date:
            if "T" in text or " " in text:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            return date.fromisoformat(text)
        if python_type is bool:
            lowered = text.lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
            return value
        if python_type in {int, float}:
            return python_type(text.replace(",", "."))
    except ValueError:
        return value
    return value


def _bound(col: ColumnElement, value: Any) -> ColumnElement:
    # typed bind: takes any value, None and booleans included
    return literal(_coerce(col, value), type_=col.type)


def _pattern(value: Any) -> str:
    return "" if value is None else str(value)


_Builder = Callable[[ColumnElement, Any], ColumnElement[bool]]

_BUILDERS: dict[Operator, _Builder] = {
    Operator.EQUALS: lambda col, v: col == _coerce(col, v),
    Operator.NOT_EQUALS: lambda col, v: col != _coerce(col, v),
    Operator.GREATER: lambda col, v: col > _bound(col, v),
    Operator.GREATER_EQUALS: lambda col, v: col >= _bound(col, v),
    Operator.LESS: lambda col, v: col < _bound(col, v),
    Operator.LESS_EQUALS: lambda col, v: col <= _bound(col, v),
    Operator.CONTAINS: lambda col, v: col.icontains(_pattern(v), autoescape=True),
    Operator.NOT_CONTAINS: lambda col, v: not_(col.icontains(_pattern(v), autoescape=True)),
    Operator.STARTS_WITH: lambda col, v: col.istartswith(_pattern(v), autoescape=True),
    Operator.ENDS_WITH: lambda col, v: col.iendswith(_pattern(v), autoescape=True),
    Operator.LIKE: lambda col, v: col.like(_pattern(v)),
    Operator.ILIKE: lambda col, v: col.ilike(_pattern(v)),
    Operator.IS_NULL: lambda col, v: col.is_(None),
    Operator.IS_NOT_NULL: lambda col, v: col.is_not(None),
    Operator.IN: lambda col, v: col.in_(_as_list(col, v)),
    Operator.NOT_IN: lambda col, v: col.not_in(_as_list(col, v)),
    Operator.BETWEEN: lambda col, v: col.between(*_range(col, v, Operator.BETWEEN)),
    Operator.NOT_BETWEEN: lambda col, v: not_(col.between(*_range(col, v, Operator.NOT_BETWEEN))),
}
