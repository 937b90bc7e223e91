"""Correlation ID middleware for request tracing.

Generates a unique correlation ID per incoming HTTP request (or reuses the one
supplied by the caller), sets it in ``request.state.correlation_id`` for
handlers and propagates it to the response headers.

Secrets MUST NOT be logged. The correlation ID is a random UUID4 hex string.
"""

from __future__ import annotations

import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from auth_facade.utils.environment import get_correlation_header

_logger = logging.getLogger("auth-facade.correlation")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that attaches a per-request correlation ID."""

    def __init__(self, app: ASGIApp, header_name: str | None = None) -> None:
        super().__init__(app)
        self.header_name = header_name or get_correlation_header()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        _logger.debug(
            "%s %s", request.method, request.url.path, extra={"correlation_id": correlation_id}
        )
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response
