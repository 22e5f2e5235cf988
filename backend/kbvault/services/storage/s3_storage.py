"""
AWS S3 storage adapter implementing ObjectStorageInterface.
Logical buckets map to S3 buckets named `{prefix}{bucket}`.
"""
import asyncio
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .base import ObjectStorageInterface
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class S3ObjectStorage(ObjectStorageInterface):
    """
    AWS S3 storage adapter.
    Public URLs are virtual-hosted style, or path style when a custom
    endpoint (MinIO and friends) is configured.
    """

    def __init__(
        self,
        bucket_prefix: str = "",
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket_prefix = bucket_prefix
        self.region_name = region_name
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

        config = Config(
            signature_version="s3v4",
            retries={"max_attempts": 3}
        )
        self.s3_client = client or boto3.client(
            "s3",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region_name,
            endpoint_url=endpoint_url,
            config=config
        )

    def _bucket(self, bucket: str) -> str:
        return f"{self.bucket_prefix}{bucket}"

    async def initialize(self):
        """S3 buckets are created on demand by the first upload check."""
        pass

    async def close(self):
        """Close storage connection (no-op for boto3)."""
        pass

    async def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        if await self.exists(bucket, path):
            raise FileExistsError(f"Object already exists: {bucket}/{path}")

        def _upload():
            self.s3_client.put_object(
                Bucket=self._bucket(bucket),
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _upload)
        return path

    async def get_public_url(self, bucket: str, path: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self._bucket(bucket)}/{path}"
        return f"https://{self._bucket(bucket)}.s3.{self.region_name}.amazonaws.com/{path}"

    async def download(self, bucket: str, path: str) -> bytes:
        def _download():
            try:
                response = self.s3_client.get_object(Bucket=self._bucket(bucket), Key=path)
                return response["Body"].read()
            except ClientError as e:
                if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                    raise FileNotFoundError(f"File not found in S3: {bucket}/{path}")
                raise

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _download)

    async def delete(self, bucket: str, path: str) -> bool:
        if not await self.exists(bucket, path):
            return False

        def _delete():
            self.s3_client.delete_object(Bucket=self._bucket(bucket), Key=path)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _delete)
        return True

    async def exists(self, bucket: str, path: str) -> bool:
        def _check():
            try:
                self.s3_client.head_object(Bucket=self._bucket(bucket), Key=path)
                return True
            except ClientError as e:
                if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                    return False
                raise

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _check)
