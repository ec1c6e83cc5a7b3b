from __future__ import annotations

import inspect
from typing import Any, Callable, Iterable, TypeVar

from crudkit.core.errors import ConfigurationError
from crudkit.routing.metadata import (
    HTTP_VERBS,
    MetadataKind,
    MetadataStore,
    Middleware,
    RouteEntry,
    collect_routes,
    route_metadata,
)

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


def controller(base_path: str, *, store: MetadataStore | None = None) -> Callable[[C], C]:
    store = route_metadata if store is None else store

    def decorate(cls: C) -> C:
        store.attach(MetadataKind.BASE_PATH, cls, base_path)
        for entry in collect_routes(cls, store):
            store.attach(MetadataKind.ROUTES, cls, entry)
        return cls

    return decorate


def route(
    verb: str,
    path: str,
    middlewares: Iterable[Middleware] = (),
    *,
    store: MetadataStore | None = None,
    **options: Any,
) -> Callable[[F], F]:
    """Declare ``verb path`` for the decorated method.

    ``options`` are passed to ``APIRouter.add_api_route`` (``status_code``,
    ``response_model``, ``summary``...).
    """
    store = route_metadata if store is None else store
    verb = str(verb or "").upper()
    if verb not in HTTP_VERBS:
        raise ConfigurationError(f"Unsupported HTTP verb: {verb!r}")

    def decorate(func: F) -> F:
        entry = RouteEntry(
            verb=verb,
            path=path,
            handler_name=func.__name__,
            middlewares=tuple(middlewares),
            options=dict(options),
        )
        store.attach(MetadataKind.ROUTES, func, entry)
        return func

    return decorate


def get(path: str, middlewares: Iterable[Middleware] = (), **kwargs: Any) -> Callable[[F], F]:
    return route("GET", path, middlewares, **kwargs)


def post(path: str, middlewares: Iterable[Middleware] = (), **kwargs: Any) -> Callable[[F], F]:
    return route("POST", path, middlewares, **kwargs)


def put(path: str, middlewares: Iterable[Middleware] = (), **kwargs: Any) -> Callable[[F], F]:
    return route("PUT", path, middlewares, **kwargs)


def patch(path: str, middlewares: Iterable[Middleware] = (), **kwargs: Any) -> Callable[[F], F]:
    return route("PATCH", path, middlewares, **kwargs)


def delete(path: str, middlewares: Iterable[Middleware] = (), **kwargs: Any) -> Callable[[F], F]:
    return route("DELETE", path, middlewares, **kwargs)


def guard(*middlewares: Middleware, store: MetadataStore | None = None):
    """Attach middlewares to a controller class or to one of its methods.

    Stacked guards run bottom-up (the one nearest the definition first).
    """
    store = route_metadata if store is None else store
    flat: list[Middleware] = []
    for item in middlewares:
        if isinstance(item, (list, tuple)):
            flat.extend(item)
        else:
            flat.append(item)

    def decorate(target):
        if inspect.isclass(target):
            store.attach(MetadataKind.CLASS_MIDDLEWARES, target, flat)
        else:
            store.attach(MetadataKind.METHOD_MIDDLEWARES, target, flat)
        return target

    return decorate
