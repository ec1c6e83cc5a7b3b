from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("crudkit.http")

# API responses only: no framing, no sniffing, never cached.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


def request_id_for(request: Request) -> str:
    incoming = str(request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if _REQUEST_ID_RE.fullmatch(incoming):
        return incoming
    return uuid4().hex


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        request.state.request_id = request_id = request_id_for(request)
        started = perf_counter()
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        response.headers[REQUEST_ID_HEADER] = request_id

        elapsed_ms = (perf_counter() - started) * 1000.0
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        _LOG.log(
            level,
            "%s %s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
            extra={"request_id": request_id, "duration_ms": round(elapsed_ms, 2)},
        )
        return response
