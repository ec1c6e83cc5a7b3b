import json
from typing import Any, List, Optional

from fastapi import HTTPException, Query
from pydantic import ValidationError

from crudkit.schemas.query import QueryOptions


def _parse_order_by(raw: str) -> List[Any]:
    text = raw.strip()
    if text.startswith("["):
        return json.loads(text)
    items = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        field, _, direction = part.partition(":")
        items.append({"field": field.strip(), "direction": (direction.strip() or "asc").lower()})
    return items


def query_options(
    filter_json: Optional[str] = Query(default=None, alias="filter", description="FilterRuleGroup as JSON"),
    limit: Optional[int] = Query(default=None, ge=0),
    offset: Optional[int] = Query(default=None, ge=0),
    order_by: Optional[str] = Query(
        default=None, alias="orderBy", description='JSON list or "field:asc,other:desc"'
    ),
) -> QueryOptions:
    data: dict[str, Any] = {"limit": limit, "offset": offset}
    try:
        if filter_json:
            data["filter"] = json.loads(filter_json)
        if order_by:
            data["order_by"] = _parse_order_by(order_by)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid query: malformed JSON")
    try:
        return QueryOptions.model_validate(data)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=[{"loc": [str(p) for p in err["loc"]], "msg": err["msg"]} for err in exc.errors()],
        )
