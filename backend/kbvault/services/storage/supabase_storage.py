"""
Supabase Storage adapter implementing ObjectStorageInterface.
"""
import asyncio
from typing import Optional

from supabase import Client, create_client

from .base import ObjectStorageInterface
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class SupabaseObjectStorage(ObjectStorageInterface):
    """
    Supabase Storage adapter.
    Buckets are expected to exist and to be public.
    """

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        self.supabase: Client = client or create_client(supabase_url, supabase_key)

    async def initialize(self):
        """Supabase buckets are provisioned outside the service."""
        pass

    async def close(self):
        """Close storage connection (no-op for Supabase)."""
        pass

    async def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        def _upload():
            try:
                self.supabase.storage.from_(bucket).upload(
                    path=path,
                    file=data,
                    file_options={
                        "content-type": content_type or "application/octet-stream",
                        "upsert": "false",
                    },
                )
            except Exception as e:
                if "duplicate" in str(e).lower() or "already exists" in str(e).lower():
                    raise FileExistsError(f"Object already exists: {bucket}/{path}") from e
                raise

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _upload)
        return path

    async def get_public_url(self, bucket: str, path: str) -> str:
        def _url():
            return self.supabase.storage.from_(bucket).get_public_url(path)

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _url)

    async def download(self, bucket: str, path: str) -> bytes:
        def _download():
            try:
                return self.supabase.storage.from_(bucket).download(path)
            except Exception as e:
                if "not found" in str(e).lower() or "404" in str(e):
                    raise FileNotFoundError(f"File not found in Supabase Storage: {bucket}/{path}") from e
                raise

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _download)

    async def delete(self, bucket: str, path: str) -> bool:
        def _delete():
            response = self.supabase.storage.from_(bucket).remove([path])
            return bool(response)

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _delete)

    async def exists(self, bucket: str, path: str) -> bool:
        folder, _, name = path.rpartition("/")

        def _check():
            files = self.supabase.storage.from_(bucket).list(folder, {"search": name})
            return any(f.get("name") == name for f in files or [])

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _check)
