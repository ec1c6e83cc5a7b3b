from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from fastapi import APIRouter, Depends

from crudkit.core.errors import ConfigurationError, log_errors
from crudkit.routing.metadata import (
    ControllerMetadata,
    MetadataKind,
    MetadataStore,
    controller_metadata,
    route_metadata,
)

_LOG = logging.getLogger("crudkit.routing")

Resolver = Callable[[type], Any]


def _instantiate(cls: type) -> Any:
    return cls()


def _check_base_path(name: str, base_path: Any) -> str:
    if not isinstance(base_path, str) or not base_path:
        raise ConfigurationError(f"[register_controllers] Base path is not defined for controller {name}")
    if not base_path.startswith("/") or base_path.endswith("/"):
        raise ConfigurationError(
            f'[register_controllers] Base path "{base_path}" of controller {name} must start with "/" and not end with "/"'
        )
    return base_path


def build_controller_router(
    cls: type,
    *,
    resolver: Resolver = _instantiate,
    store: MetadataStore | None = None,
    logger: logging.Logger | None = None,
) -> tuple[ControllerMetadata, APIRouter]:
    """Validate one controller and build its sub-router without mounting it."""
    store = route_metadata if store is None else store
    logger = logger or _LOG
    name = cls.__name__

    instance = resolver(cls)
    meta = controller_metadata(cls, store)
    _check_base_path(name, meta.base_path)
    if not meta.routes:
        raise ConfigurationError(f"[register_controllers] No routes defined for controller {name}")

    router = APIRouter(dependencies=[Depends(middleware) for middleware in meta.middlewares])
    for entry in meta.routes:
        handler = getattr(instance, entry.handler_name, None)
        if handler is None or not callable(handler):
            raise ConfigurationError(
                f"[register_controllers] Method {entry.handler_name} is not defined in controller {name}"
            )
        if entry.path and not entry.path.startswith("/"):
            raise ConfigurationError(
                f'[register_controllers] Route path "{entry.path}" of {name}.{entry.handler_name} must start with "/"'
            )
        middlewares = [
            *entry.middlewares,
            *store.read(MetadataKind.METHOD_MIDDLEWARES, cls, entry.handler_name, default=[]),
        ]
        label = f"{name}.{entry.handler_name}"
        options = dict(entry.options)
        options.setdefault("name", label)
        router.add_api_route(
            entry.path,
            log_errors(handler, logger, label),
            methods=[entry.verb],
            dependencies=[Depends(middleware) for middleware in middlewares],
            **options,
        )
    return meta, router


def register_controllers(
    app: Any,
    controllers: Sequence[type],
    *,
    resolver: Resolver | None = None,
    store: MetadataStore | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Mount every controller's routes on ``app`` (a FastAPI app or APIRouter).

    All controllers are validated and built before anything is mounted, so a
    ``ConfigurationError`` leaves ``app`` untouched. Call once: a second call
    mounts the same routes again.
    """
    logger = logger or _LOG
    prepared = [
        build_controller_router(cls, resolver=resolver or _instantiate, store=store, logger=logger)
        for cls in controllers
    ]
    for cls, (meta, router) in zip(controllers, prepared):
        app.include_router(router, prefix=meta.base_path)
        for entry in meta.routes:
            logger.info("mapped %s %s%s -> %s.%s", entry.verb, meta.base_path, entry.path, cls.__name__, entry.handler_name)
