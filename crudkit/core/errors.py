from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

_LOG = logging.getLogger("crudkit.http")


class CrudKitError(Exception):
    status_code = 500
    public_message = "Something went wrong!"

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.public_message}


class ConfigurationError(CrudKitError):
    """Malformed controller/route metadata. Raised at startup only."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidFilterError(CrudKitError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message}


class NotFoundError(CrudKitError):
    status_code = 404

    def __init__(self, resource: str, item_id: Any = None):
        self.resource = resource
        self.item_id = item_id
        if item_id is None:
            message = f"{resource} not found"
        else:
            message = f'{resource} "{item_id}" not found'
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message}


class QueryExecutionError(CrudKitError):
    # Store/driver detail stays in the log, never in the message.
    def __init__(self, label: str):
        super().__init__(f"[{label}] Database query failed")
        self.label = label


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CrudKitError)
    async def _crudkit_error_handler(request: Request, exc: CrudKitError):
        if exc.status_code >= 500:
            _LOG.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            _LOG.info("%s %s rejected status=%s: %s", request.method, request.url.path, exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "errors": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception):
        _LOG.exception("%s %s unhandled error", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": CrudKitError.public_message})


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out = []
    for err in exc.errors():
        out.append(
            {
                "loc": [str(part) for part in err.get("loc", ())],
                "msg": str(err.get("msg") or ""),
                "type": str(err.get("type") or ""),
            }
        )
    return out


def log_errors(operation: Callable[..., Any], logger: logging.Logger, label: str) -> Callable[..., Any]:
    """Return ``operation`` wrapped so failures are logged under ``label`` and re-raised."""
    if inspect.iscoroutinefunction(operation):

        @functools.wraps(operation)
        async def async_wrapper(*args, **kwargs):
            try:
                return await operation(*args, **kwargs)
            except Exception as exc:
                _log_failure(logger, label, exc)
                raise

        return async_wrapper

    @functools.wraps(operation)
    def wrapper(*args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except Exception as exc:
            _log_failure(logger, label, exc)
            raise

    return wrapper


def _log_failure(logger: logging.Logger, label: str, exc: Exception) -> None:
    status_code = getattr(exc, "status_code", 500)
    if isinstance(exc, (CrudKitError, HTTPException)) and status_code < 500:
        logger.info("%s: %s %s", label, type(exc).__name__, exc)
    elif isinstance(exc, CrudKitError):
        logger.error("%s: %s", label, exc)
    else:
        logger.exception("Caught error in %s", label)
