from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("eventhub.request")

# Probes and scrapes are logged at DEBUG so they do not drown real traffic.
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it finishes."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = (request.headers.get(self.header_name) or "").strip()
        request_id = incoming[:128] or uuid4().hex
        request.state.request_id = request_id
        id_token = request_id_ctx_var.set(request_id)
        principal_token = principal_ctx_var.set(None)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            principal = getattr(request.state, "principal", None)
        finally:
            request_id_ctx_var.reset(id_token)
            principal_ctx_var.reset(principal_token)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{elapsed_ms}ms")

        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
        }
        if principal:
            fields["principal"] = principal
        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
        logger.log(level, "request.completed", extra={"extra_data": fields})
        return response
