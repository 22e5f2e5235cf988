"""
Error Handling Middleware

Centralized error handling and response formatting.
"""
import os
import traceback

from fastapi import HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ...api.exceptions import JobNotFoundError, PipelineError, handle_business_exception
from ...core.logging_config import get_logger

logger = get_logger(__name__)


def _error_body(request: Request, error, status_code: int) -> dict:
    return {
        "error": error,
        "status_code": status_code,
        "path": request.url.path,
        "request_id": getattr(request.state, "request_id", None),
    }


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Converts exceptions escaping a route into JSON error responses:
    - HTTPException → its status code
    - Pipeline and job lookup errors → mapped by handle_business_exception
    - Anything else → 500 (with detail outside production)
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except HTTPException as e:
            logger.debug(f"HTTP exception for {request.method} {request.url.path}: {e.status_code} - {e.detail}")
            return JSONResponse(status_code=e.status_code, content=_error_body(request, e.detail, e.status_code))

        except (PipelineError, JobNotFoundError) as e:
            http_exception = handle_business_exception(e)
            logger.warning(f"Business exception for {request.method} {request.url.path}: {http_exception.detail}")
            return JSONResponse(
                status_code=http_exception.status_code,
                content=_error_body(request, http_exception.detail, http_exception.status_code),
            )

        except Exception as e:
            is_development = os.getenv("ENVIRONMENT", "development") != "production"
            logger.error(f"Unexpected error for {request.method} {request.url.path}: {e}", exc_info=True)

            body = _error_body(
                request,
                str(e) if is_development else "Internal server error",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
            if is_development:
                body["traceback"] = traceback.format_exc()
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
