"""
Files Router - serves objects kept by the local storage adapter.

Remote adapters (S3, Supabase) hand out their own public URLs, so this
route only answers for local storage.
"""
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from .dependencies import get_storage_service
from ..services.storage import LocalObjectStorage

router = APIRouter()


@router.get("/files/{bucket}/{path:path}")
async def get_file(bucket: str, path: str):
    """Get a stored object by bucket and path."""
    storage = get_storage_service()
    if not isinstance(storage, LocalObjectStorage):
        raise HTTPException(status_code=404, detail="File serving is only available for local storage")

    try:
        local_path = storage.resolve_path(bucket, path)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid file path")

    if not local_path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(local_path)
