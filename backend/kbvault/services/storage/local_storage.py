"""
Local filesystem storage adapter implementing ObjectStorageInterface.
Each bucket is a directory below the base directory; objects are served
back through the /files route.
"""
import asyncio
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from .base import ObjectStorageInterface
from ...core.config import LOCAL_STORAGE_DIR, PUBLIC_BASE_URL
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class LocalObjectStorage(ObjectStorageInterface):
    """
    Local filesystem storage adapter.
    Perfect for development, demos and tests.
    """

    def __init__(self, base_dir: Optional[Path] = None, public_base_url: str = PUBLIC_BASE_URL):
        self.base_dir = Path(base_dir or LOCAL_STORAGE_DIR)
        self.public_base_url = public_base_url.rstrip("/")

    async def initialize(self):
        """Initialize storage - ensure base directory exists."""
        self.base_dir.mkdir(parents=True, exist_ok=True)

    async def close(self):
        """Close storage (no-op for local filesystem)."""
        pass

    def _get_full_path(self, bucket: str, path: str) -> Path:
        """Get full filesystem path, refusing anything outside the bucket."""
        bucket_dir = (self.base_dir / bucket).resolve()
        normalized = Path(path).as_posix().lstrip("/")
        full_path = (bucket_dir / normalized).resolve()
        if bucket_dir != full_path and bucket_dir not in full_path.parents:
            raise ValueError(f"Invalid storage path: {path}")
        return full_path

    async def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        full_path = self._get_full_path(bucket, path)
        if full_path.exists():
            raise FileExistsError(f"Object already exists: {bucket}/{path}")

        def _save():
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _save)
        logger.debug(f"Stored {len(data)} bytes at {bucket}/{path}")
        return path

    async def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/files/{quote(bucket)}/{quote(path)}"

    async def download(self, bucket: str, path: str) -> bytes:
        full_path = self._get_full_path(bucket, path)
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {bucket}/{path}")

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, full_path.read_bytes)

    async def delete(self, bucket: str, path: str) -> bool:
        full_path = self._get_full_path(bucket, path)
        if not full_path.is_file():
            return False

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, full_path.unlink)
        return True

    async def exists(self, bucket: str, path: str) -> bool:
        return self._get_full_path(bucket, path).is_file()

    def resolve_path(self, bucket: str, path: str) -> Path:
        """Filesystem path of an object, used by the /files route."""
        return self._get_full_path(bucket, path)
