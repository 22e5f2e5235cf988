"""
API Gateway

Builds the FastAPI application: middleware, rate limiting, routers and the
health endpoint. Acts as the single entry point for all API requests.
"""
import os
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from ..core.config import CORS_ORIGINS, RATE_LIMIT_ENABLED, RATE_LIMIT_PER_MINUTE
from ..core.logging_config import get_logger
from .middleware import ErrorHandlingMiddleware, RequestIDMiddleware, RequestLoggingMiddleware

logger = get_logger(__name__)


class APIGateway:
    """
    Manages the FastAPI app.

    Responsibilities:
    - Initialize FastAPI application
    - Register middleware (CORS, rate limiting, logging, error handling)
    - Register routers
    - Provide the health check endpoint
    """

    def __init__(
        self,
        title: str = "KB Vault API",
        description: str = "PDF to knowledge base processing with hybrid AI dispatch",
        version: str = "1.0.0",
        enable_docs: Optional[bool] = None,
        rate_limit_enabled: bool = RATE_LIMIT_ENABLED,
    ):
        self.title = title
        self.version = version
        self.enable_docs = enable_docs if enable_docs is not None else (
            os.getenv("ENVIRONMENT") != "production"
        )

        self.app = FastAPI(
            title=title,
            description=description,
            version=version,
            docs_url="/docs" if self.enable_docs else None,
            redoc_url="/redoc" if self.enable_docs else None,
        )

        self.limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[f"{RATE_LIMIT_PER_MINUTE}/minute"],
            enabled=rate_limit_enabled,
        )
        self.app.state.limiter = self.limiter
        self.app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

        logger.info("API Gateway initialized")

    def setup_middleware(self):
        """Configure all middleware. The last one added runs first."""
        logger.info("Setting up middleware...")

        self.app.add_middleware(SlowAPIMiddleware)
        self.app.add_middleware(ErrorHandlingMiddleware)
        self.app.add_middleware(RequestLoggingMiddleware)
        self.app.add_middleware(RequestIDMiddleware)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.debug(f"CORS origins: {', '.join(CORS_ORIGINS)}")
        logger.info("All middleware configured")

    def register_router(self, router: APIRouter, prefix: str = "", tags: Optional[List[str]] = None):
        self.app.include_router(router, prefix=prefix, tags=tags or [])
        logger.info(f"Registered router at prefix '{prefix}'")

    def register_health_endpoints(self):
        """Register the health check endpoint."""

        @self.app.get("/health")
        async def health_check():
            """Returns 200 once services are initialized, 503 before."""
            from ..routers import dependencies

            if dependencies.pdf_pipeline is None or dependencies.hybrid_ai_service is None:
                logger.warning("Health check failed: services not initialized")
                return Response(
                    content='{"status": "unhealthy", "reason": "Services not initialized"}',
                    media_type="application/json",
                    status_code=503,
                )
            return {
                "status": "healthy",
                "version": self.version,
                "providers": dependencies.hybrid_ai_service.check_provider_availability(),
            }

        logger.info("Health check endpoint registered")

    def get_app(self) -> FastAPI:
        return self.app
