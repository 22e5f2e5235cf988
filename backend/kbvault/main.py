import os

from .core.config import DATABASE_TYPE, RATE_LIMIT_ENABLED, RATE_LIMIT_PER_MINUTE, STORAGE_TYPE
from .core.logging_config import get_logger, setup_logging
from .gateway import APIGateway
from .routers import files, hybrid_ai, pdf_processing
from .routers.dependencies import initialize_database, initialize_services, shutdown_services

# Initialize logging
setup_logging()
logger = get_logger(__name__)

gateway = APIGateway()
gateway.setup_middleware()

gateway.register_router(pdf_processing.router, tags=["PDF Processing"])
gateway.register_router(hybrid_ai.router, tags=["Hybrid AI"])
gateway.register_router(files.router, tags=["Files"])
gateway.register_health_endpoints()

app = gateway.get_app()


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("=" * 60)
    logger.info("Starting KB Vault Backend...")
    logger.info("=" * 60)
    logger.info(f"  → Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"  → Docs URL: {app.docs_url if app.docs_url else 'Disabled (production)'}")
    logger.info(f"  → Rate Limiting: {RATE_LIMIT_PER_MINUTE}/minute" if RATE_LIMIT_ENABLED else "  → Rate Limiting: disabled")
    logger.info(f"  → Storage Backend: {STORAGE_TYPE.upper()}")
    logger.info(f"  → Database Backend: {DATABASE_TYPE.upper()}")

    await initialize_database()
    await initialize_services()

    logger.info("✅ KB Vault Backend initialized successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down KB Vault Backend...")
    await shutdown_services()
    logger.info("KB Vault Backend shutdown complete")
