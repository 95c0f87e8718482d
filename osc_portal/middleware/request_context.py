"""Request context middleware — captures caller metadata for audit entries."""


import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Methods that mutate state
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@dataclass(frozen=True)
class RequestContext:
    ip_address: str | None
    user_agent: str | None
    request_id: str


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "request_context", default=None
)


def current_request_context() -> RequestContext | None:
    """Metadata of the HTTP request being served, or None outside a request."""
    return _request_context.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds ip / user-agent / X-Request-ID to the current request.

    The AuditService merges this into every audit row written while the
    request is served. Write requests are logged with their duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        ctx = RequestContext(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
        )
        token = _request_context.set(ctx)
        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            _request_context.reset(token)
        duration_ms = round((time.monotonic() - start) * 1000)

        response.headers["X-Request-ID"] = ctx.request_id
        if request.method in _WRITE_METHODS:
            logger.info(
                "%s %s -> %s (%sms) [%s]",
                request.method, request.url.path, response.status_code,
                duration_ms, ctx.request_id,
            )
        return response
