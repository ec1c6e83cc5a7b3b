"""Route metadata table.

Controllers describe themselves by attaching values to a ``MetadataStore``
under ``(kind, target, member_name)`` keys. Targets are classes or plain
functions; ``member_name`` scopes a value to one method of a class.

List-valued kinds accumulate: attaching twice appends, and the attachment
order is the order later used for middleware execution and route
declaration. ``BASE_PATH`` is scalar and is replaced on re-attach.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Mapping

HTTP_VERBS = ("GET", "POST", "PUT", "PATCH", "DELETE")

Middleware = Callable[..., Any]


class MetadataKind(str, Enum):
    BASE_PATH = "controller:base_path"
    ROUTES = "controller:routes"
    CLASS_MIDDLEWARES = "controller:middlewares"
    METHOD_MIDDLEWARES = "route:middlewares"

    @property
    def is_list(self) -> bool:
        return self is not MetadataKind.BASE_PATH


@dataclass(frozen=True)
class RouteEntry:
    verb: str
    path: str
    handler_name: str
    middlewares: tuple[Middleware, ...] = ()
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ControllerMetadata:
    base_path: str | None
    routes: list[RouteEntry]
    middlewares: list[Middleware]


class MetadataStore:
    def __init__(self):
        self._entries: dict[tuple[MetadataKind, Any, str | None], Any] = {}

    def attach(self, kind: MetadataKind, target: Any, value: Any, member_name: str | None = None) -> None:
        key = (kind, target, member_name)
        if kind.is_list:
            values = list(value) if isinstance(value, (list, tuple)) else [value]
            self._entries.setdefault(key, []).extend(values)
        else:
            self._entries[key] = value

    def read(self, kind: MetadataKind, target: Any, member_name: str | None = None, default: Any = None) -> Any:
        key = (kind, target, member_name)
        if key not in self._entries:
            return default
        value = self._entries[key]
        return list(value) if kind.is_list else value

    def has(self, kind: MetadataKind, target: Any, member_name: str | None = None) -> bool:
        return (kind, target, member_name) in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


route_metadata = MetadataStore()


def _class_chain(cls: type) -> list[type]:
    # base-first, without ``object``
    return [klass for klass in reversed(cls.__mro__) if klass is not object]


def _function_of(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def collect_routes(cls: type, store: MetadataStore) -> list[RouteEntry]:
    """Routes declared on the functions of ``cls`` and its bases.

    Bases come first. A subclass that re-declares routes for a member
    replaces the base entries for that member but keeps their position.
    Method guards are appended after the route's own middlewares.
    """
    by_member: dict[str, list[RouteEntry]] = {}
    for klass in _class_chain(cls):
        for name, member in vars(klass).items():
            func = _function_of(member)
            if not inspect.isfunction(func):
                continue
            entries = store.read(MetadataKind.ROUTES, func, default=[])
            if not entries:
                continue
            guards = tuple(store.read(MetadataKind.METHOD_MIDDLEWARES, func, default=[]))
            by_member[name] = [
                replace(entry, handler_name=name, middlewares=tuple(entry.middlewares) + guards) for entry in entries
            ]
    return [entry for entries in by_member.values() for entry in entries]


def controller_metadata(cls: type, store: MetadataStore) -> ControllerMetadata:
    base_path = None
    middlewares: list[Middleware] = []
    for klass in _class_chain(cls):
        if store.has(MetadataKind.BASE_PATH, klass):
            base_path = store.read(MetadataKind.BASE_PATH, klass)
        middlewares.extend(store.read(MetadataKind.CLASS_MIDDLEWARES, klass, default=[]))

    routes = store.read(MetadataKind.ROUTES, cls)
    if routes is None:
        routes = collect_routes(cls, store)
    return ControllerMetadata(base_path=base_path, routes=routes, middlewares=middlewares)
