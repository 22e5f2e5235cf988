"""
Request Logging Middleware

Logs incoming requests and responses with timing information.
"""
import time
from typing import Callable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ...core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SKIP_PATHS = ["/health", "/docs", "/redoc", "/openapi.json"]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration of each request.

    Health and docs endpoints are skipped to reduce noise.
    """

    def __init__(self, app, skip_paths: Optional[List[str]] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or DEFAULT_SKIP_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if any(request.url.path.startswith(path) for path in self.skip_paths):
            return await call_next(request)

        request_id = getattr(request.state, "request_id", None)
        request_id_str = f" [{request_id}]" if request_id else ""

        start_time = time.time()
        method = request.method
        path = request.url.path
        query = f"?{request.query_params}" if request.query_params else ""
        logger.info(f"→ {method} {path}{query}{request_id_str}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"{method} {path} → exception after {duration_ms:.2f}ms{request_id_str}: {e}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        level = logger.info if response.status_code < 400 else logger.warning
        level(f"{method} {path} → {response.status_code} ({duration_ms:.2f}ms){request_id_str}")
        return response
