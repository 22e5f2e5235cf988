"""
Object storage abstraction layer for plug-and-play storage support.
S3 and Supabase adapters are imported lazily by the factory.
"""
from .base import ObjectStorageInterface
from .local_storage import LocalObjectStorage
from .factory import ObjectStorageFactory

__all__ = [
    "ObjectStorageInterface",
    "LocalObjectStorage",
    "ObjectStorageFactory",
]
