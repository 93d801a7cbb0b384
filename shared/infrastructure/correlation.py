"""
Request Correlation.

Every HTTP request and every live feed connection gets a correlation ID so
the log lines of one action can be grouped together.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

HEADER_NAME = "X-Request-ID"

# Copied into asyncio tasks and to_thread workers started under it
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


@contextmanager
def bind_request_id(request_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of the block.

    Uses the caller's ID when given (an incoming X-Request-ID header),
    otherwise generates a new UUID.
    """
    request_id = request_id or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Binds a correlation ID to each HTTP request and echoes it in the
    X-Request-ID response header.

    WebSocket connections bypass HTTP middleware; the live feed binds its
    own ID with bind_request_id().
    """

    HEADER_NAME = HEADER_NAME

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        with bind_request_id(request.headers.get(self.HEADER_NAME)) as request_id:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response


class CorrelationIdFilter:
    """Logging filter that adds request_id to log records."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
