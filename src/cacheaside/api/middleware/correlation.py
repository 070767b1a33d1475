"""Request ID middleware.

Propagates a request ID to logging so cache, lock and source log lines
from one request can be correlated.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cacheaside.observability.logging import request_id_var


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware for propagating the request ID.

    Reads x-request-id (or generates one), stores it in request state and
    the logging context variable, and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Extract and propagate the request ID."""
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            request_id_var.reset(token)
