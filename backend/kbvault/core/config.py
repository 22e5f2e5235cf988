import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (only in development)
# In containers, environment variables are set directly
if os.getenv("ENVIRONMENT") != "production":
    load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Public base URL of this service, used to build URLs for locally stored objects
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

# Object storage configuration
STORAGE_TYPE = os.getenv("STORAGE_TYPE", "local")  # Options: 'local', 's3', 'supabase'
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", str(BASE_DIR / "storage"))
PDF_DOCUMENTS_BUCKET = os.getenv("PDF_DOCUMENTS_BUCKET", "pdf-documents")
MATERIAL_IMAGES_BUCKET = os.getenv("MATERIAL_IMAGES_BUCKET", "material-images")

# S3 storage configuration
S3_BUCKET_PREFIX = os.getenv("S3_BUCKET_PREFIX", "")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")  # For S3-compatible services (MinIO, etc.)

# Supabase configuration (storage, database and auth)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Database configuration
DATABASE_TYPE = os.getenv("DATABASE_TYPE", "memory")  # Options: 'memory', 'supabase'
PROCESSING_JOBS_TABLE = os.getenv("PROCESSING_JOBS_TABLE", "pdf_processing_results")
KNOWLEDGE_BASE_TABLE = os.getenv("KNOWLEDGE_BASE_TABLE", "enhanced_knowledge_base")

# Auth configuration
AUTH_TYPE = os.getenv("AUTH_TYPE", "static")  # Options: 'static', 'supabase'
# Comma separated token:user_id:email triples for the static auth service
STATIC_AUTH_TOKENS = os.getenv("STATIC_AUTH_TOKENS", "dev-token:dev-user:dev@example.com")

# PDF conversion service
CONVERTAPI_KEY = os.getenv("CONVERTAPI_KEY")
CONVERTAPI_BASE_URL = os.getenv("CONVERTAPI_BASE_URL", "https://v2.convertapi.com").rstrip("/")
DEFAULT_MAX_PAGES = int(os.getenv("DEFAULT_MAX_PAGES", "50"))  # 0 = all pages

# AI providers
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3-haiku")

# Embeddings
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "1536"))

# Pipeline limits
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
IMAGE_FETCH_DELAY_SECONDS = float(os.getenv("IMAGE_FETCH_DELAY_SECONDS", "0.1"))
IMAGE_FETCH_CONCURRENCY = int(os.getenv("IMAGE_FETCH_CONCURRENCY", "1"))
IMAGE_USER_AGENT = os.getenv("IMAGE_USER_AGENT", "Mozilla/5.0 (compatible; PDF-Processor/1.0)")
MAX_TEXT_CHARS = int(os.getenv("MAX_TEXT_CHARS", "8000"))
EMBEDDING_TEXT_CHARS = int(os.getenv("EMBEDDING_TEXT_CHARS", "4000"))
MAX_CONTENT_CHARS = int(os.getenv("MAX_CONTENT_CHARS", str(1024 * 1024)))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# Confidence heuristics for stored knowledge entries
CONFIDENCE_CONVERSION = float(os.getenv("CONFIDENCE_CONVERSION", "0.9"))
CONFIDENCE_TEXT_EXTRACTION = float(os.getenv("CONFIDENCE_TEXT_EXTRACTION", "0.85"))
CONFIDENCE_IMAGE_PROCESSING = float(os.getenv("CONFIDENCE_IMAGE_PROCESSING", "0.8"))
CONFIDENCE_OVERALL = float(os.getenv("CONFIDENCE_OVERALL", "0.87"))

# Hybrid AI dispatcher
HYBRID_DEFAULT_MIN_SCORE = float(os.getenv("HYBRID_DEFAULT_MIN_SCORE", "0.7"))
HYBRID_DEFAULT_MAX_RETRIES = int(os.getenv("HYBRID_DEFAULT_MAX_RETRIES", "2"))
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "60"))

# Workflow observer
WORKFLOW_MAX_LOG_ENTRIES = int(os.getenv("WORKFLOW_MAX_LOG_ENTRIES", "200"))

# Rate Limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",") if o.strip()]
