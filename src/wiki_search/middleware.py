# -*- coding: utf-8 -*-
"""
Request tracking middleware.
"""
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import settings

# Request ID of the current request, readable from log filters
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    """Get current request ID from context."""
    return request_id_ctx.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's request ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(settings.REQUEST_ID_HEADER) or uuid.uuid4().hex

        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
            response.headers[settings.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)
