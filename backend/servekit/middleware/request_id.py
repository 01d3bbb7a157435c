"""
Servekit — Request ID Middleware
================================

What:  Gives every HTTP request a short correlation ID.
How:   Reuses the client's X-Request-ID header when present, otherwise makes
       one up. The ID is stored in a ContextVar (for loggers and exception
       handlers), on `request.state.request_id` (so controllers see it in
       `all_data["request_id"]`) and echoed in the response header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
