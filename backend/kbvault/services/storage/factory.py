"""
Object Storage Factory for creating storage adapters.
Implements Factory Pattern for plug-and-play storage support.
"""
from pathlib import Path
from typing import Optional

from .base import ObjectStorageInterface
from .local_storage import LocalObjectStorage
from ...core import config
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class ObjectStorageFactory:
    """
    Factory for creating object storage adapters.
    Supports multiple storage backends: Local, S3, Supabase Storage.
    """

    @staticmethod
    def create(storage_type: Optional[str] = None, **kwargs) -> ObjectStorageInterface:
        """
        Create a storage adapter instance.

        Args:
            storage_type: 'local', 's3', 'supabase', or None to read STORAGE_TYPE
            **kwargs: Additional arguments for specific storage adapters

        Returns:
            ObjectStorageInterface instance
        """
        storage_type = (storage_type or config.STORAGE_TYPE).lower()
        logger.info(f"Creating object storage adapter: {storage_type}")

        if storage_type == "local":
            return ObjectStorageFactory._create_local(**kwargs)
        elif storage_type == "s3":
            return ObjectStorageFactory._create_s3(**kwargs)
        elif storage_type == "supabase":
            return ObjectStorageFactory._create_supabase(**kwargs)
        else:
            raise ValueError(
                f"Unsupported storage type: {storage_type}. "
                f"Supported types: 'local', 's3', 'supabase'"
            )

    @staticmethod
    def _create_local(**kwargs) -> LocalObjectStorage:
        base_dir = kwargs.get("base_dir", config.LOCAL_STORAGE_DIR)
        return LocalObjectStorage(
            base_dir=Path(base_dir),
            public_base_url=kwargs.get("public_base_url", config.PUBLIC_BASE_URL),
        )

    @staticmethod
    def _create_s3(**kwargs):
        from .s3_storage import S3ObjectStorage

        return S3ObjectStorage(
            bucket_prefix=kwargs.get("bucket_prefix", config.S3_BUCKET_PREFIX),
            aws_access_key_id=kwargs.get("aws_access_key_id", config.AWS_ACCESS_KEY_ID),
            aws_secret_access_key=kwargs.get("aws_secret_access_key", config.AWS_SECRET_ACCESS_KEY),
            region_name=kwargs.get("region_name", config.AWS_REGION),
            endpoint_url=kwargs.get("endpoint_url", config.S3_ENDPOINT_URL),
        )

    @staticmethod
    def _create_supabase(**kwargs):
        from .supabase_storage import SupabaseObjectStorage

        supabase_url = kwargs.get("supabase_url", config.SUPABASE_URL)
        if not supabase_url:
            raise ValueError("Supabase URL is required")
        supabase_key = kwargs.get("supabase_key", config.SUPABASE_KEY)
        if not supabase_key:
            raise ValueError("Supabase key is required")

        return SupabaseObjectStorage(supabase_url=supabase_url, supabase_key=supabase_key)

    @staticmethod
    async def create_and_initialize(storage_type: Optional[str] = None, **kwargs) -> ObjectStorageInterface:
        """Create storage adapter and initialize it."""
        storage = ObjectStorageFactory.create(storage_type, **kwargs)
        await storage.initialize()
        return storage
