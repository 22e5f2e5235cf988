"""
Shared dependencies for routers.
Provides service initialization and lookup.

Services are process-wide globals created at startup and shared across
all request handlers.
"""
from ..core.config import AUTH_TYPE, DATABASE_TYPE, STORAGE_TYPE
from ..core.logging_config import get_logger
from ..services.auth import AuthServiceFactory
from ..services.conversion import ConvertAPIClient
from ..services.database import DatabaseFactory
from ..services.embedding_service import EmbeddingService
from ..services.hybrid_ai_service import HybridAIService
from ..services.image_relocation import ImageRelocationEngine
from ..services.pipeline import PDFProcessingPipeline
from ..services.providers import AIProviderFactory
from ..services.storage import ObjectStorageFactory
from ..services.workflow_observer import WorkflowStore

logger = get_logger(__name__)

# Global services (initialized on startup)
db_service = None
storage_service = None
auth_service = None
workflow_store = None
pdf_pipeline = None
hybrid_ai_service = None


async def initialize_database():
    """Initialize database adapter based on configuration."""
    global db_service

    logger.info(f"Initializing database: {DATABASE_TYPE}")
    db_service = await DatabaseFactory.create_and_initialize(DATABASE_TYPE)
    logger.info("  ✅ Database initialized")


async def initialize_services():
    """
    Initialize all services after the database is ready:
    - object storage and auth capabilities
    - the workflow store shared by the pipeline and progress streams
    - the PDF processing pipeline
    - the hybrid AI dispatcher
    """
    global storage_service, auth_service, workflow_store, pdf_pipeline, hybrid_ai_service

    if db_service is None:
        await initialize_database()

    logger.info("Initializing services...")

    logger.info(f"  → Storage Type: {STORAGE_TYPE}")
    storage_service = await ObjectStorageFactory.create_and_initialize(STORAGE_TYPE)

    logger.info(f"  → Auth Type: {AUTH_TYPE}")
    auth_service = AuthServiceFactory.create(AUTH_TYPE)

    workflow_store = WorkflowStore()

    converter = ConvertAPIClient()
    if not converter.api_key:
        logger.warning("  ⚠️  CONVERTAPI_KEY not configured, PDF conversion will fail")

    embedding_service = EmbeddingService()
    if not embedding_service.available:
        logger.warning("  ⚠️  OpenAI key not configured, knowledge entries will be stored without embeddings")

    pdf_pipeline = PDFProcessingPipeline(
        auth_service=auth_service,
        storage=storage_service,
        db=db_service,
        converter=converter,
        relocation_engine=ImageRelocationEngine(storage_service),
        embedding_service=embedding_service,
        workflow_store=workflow_store,
    )
    logger.info("  ✅ PDF Processing Pipeline initialized")

    hybrid_ai_service = HybridAIService(AIProviderFactory.build_registry())
    logger.info("  ✅ Hybrid AI Service initialized")

    logger.info("✅ All services initialized successfully")


async def shutdown_services():
    """Wait for in-flight pipeline runs, then release capability clients."""
    if pdf_pipeline is not None:
        await pdf_pipeline.wait_for_background_tasks()
    if storage_service is not None:
        await storage_service.close()
    if db_service is not None:
        await db_service.close()


def get_db_service():
    """Get database service (dependency injection)."""
    if db_service is None:
        raise RuntimeError("Database service not initialized")
    return db_service


def get_storage_service():
    """Get object storage service (dependency injection)."""
    if storage_service is None:
        raise RuntimeError("Storage service not initialized")
    return storage_service


def get_workflow_store():
    """Get workflow store (dependency injection)."""
    if workflow_store is None:
        raise RuntimeError("Workflow store not initialized")
    return workflow_store


def get_pdf_pipeline():
    """Get PDF processing pipeline (dependency injection)."""
    if pdf_pipeline is None:
        raise RuntimeError("PDF processing pipeline not initialized")
    return pdf_pipeline


def get_hybrid_ai_service():
    """Get hybrid AI service (dependency injection)."""
    if hybrid_ai_service is None:
        raise RuntimeError("Hybrid AI service not initialized")
    return hybrid_ai_service
