"""
Request ID Middleware

Tags every request with an id so log lines and error bodies can be correlated.
"""
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ...core.logging_config import request_id_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses an upstream X-Request-ID header or generates one, exposes it as
    request.state.request_id and on log records, and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
