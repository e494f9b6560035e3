"""
Agora Backend: Request ID Middleware
=====================================

What:  Assigns a correlation id to each request and returns it in the
       `X-Request-ID` response header.
Why:   A cascade deletion logs from several modules (routes, cascade service,
       file service). The id ties those lines to one request, and the client
       sees the same id in every error body.

A client-supplied `X-Request-ID` is reused so a trace can start in the
frontend; otherwise a short uuid is generated.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests share one thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
