"""
Custom exceptions for the processing pipeline and API layer.
Separates business exceptions from HTTP exceptions.

Fatal pipeline errors abort a run and mark the processing job failed.
Non-fatal errors are raised and caught at the point of occurrence so the
run continues with degraded output.
"""
from typing import Optional
from fastapi import HTTPException, status


class PipelineError(Exception):
    """Base class for errors raised by pipeline stages."""

    fatal = True

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class AuthError(PipelineError):
    """Raised when no valid user session can be resolved."""
    pass


class StorageError(PipelineError):
    """Raised when the primary PDF cannot be stored."""
    pass


class ValidationError(PipelineError):
    """Raised when the stored object is not a readable, non-encrypted PDF."""
    pass


class ConversionError(PipelineError):
    """Raised when the conversion service returns no usable HTML artifact."""
    pass


class ExtractionError(PipelineError):
    """Raised when no HTML content can be obtained from the artifact."""
    pass


class PersistenceError(PipelineError):
    """Raised when the knowledge entry insert fails."""
    pass


class ImageRelocationFailure(PipelineError):
    """A single image could not be fetched, decoded or uploaded."""

    fatal = False


class EmbeddingFailure(PipelineError):
    """The embedding service failed or returned an unusable vector."""

    fatal = False


class HtmlPersistFailure(PipelineError):
    """The finalized HTML could not be written to object storage."""

    fatal = False


class ProviderAttemptFailure(PipelineError):
    """One AI provider attempt failed; the next provider is tried."""

    fatal = False


class JobNotFoundError(Exception):
    """Raised when a workflow job id is unknown."""
    pass


def handle_business_exception(e: Exception) -> HTTPException:
    """
    Convert business exceptions to HTTP exceptions.
    This keeps business logic clean of HTTP concerns.
    """
    if isinstance(e, AuthError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    elif isinstance(e, JobNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    elif isinstance(e, (ConversionError, ExtractionError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    else:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
