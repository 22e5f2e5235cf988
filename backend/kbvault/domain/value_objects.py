"""
Value Objects - Immutable objects that represent domain concepts.
These have no identity and are compared by value.
"""
from enum import Enum
from typing import NewType

# Value objects for type safety and domain clarity
UserId = NewType("UserId", str)
StoragePath = NewType("StoragePath", str)
PublicUrl = NewType("PublicUrl", str)


class JobStatus(str, Enum):
    """Persisted processing job status."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Workflow step and workflow job status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class RequestType(str, Enum):
    """Intent of a hybrid AI request."""
    MATERIAL_ANALYSIS = "material-analysis"
    GENERATION_3D = "3d-generation"
    TEXT_PROCESSING = "text-processing"
    GENERAL = "general"


class ImageSourceKind(str, Enum):
    """Where a discovered image reference points."""
    HTTP = "http"
    BASE64 = "base64"
