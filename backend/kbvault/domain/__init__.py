"""
Domain layer - entities and value objects for the processing pipeline and
the hybrid AI dispatcher.
"""
from .entities import (
    AuthenticatedUser,
    HybridRequest,
    HybridResponse,
    KnowledgeEntry,
    PDFSubmission,
    PipelineResult,
    ProcessingJob,
    ProcessingOptions,
    RelocationManifest,
    WorkflowJob,
    WorkflowStep,
)
from .value_objects import ImageSourceKind, JobStatus, RequestType, StepStatus

__all__ = [
    "AuthenticatedUser",
    "HybridRequest",
    "HybridResponse",
    "KnowledgeEntry",
    "PDFSubmission",
    "PipelineResult",
    "ProcessingJob",
    "ProcessingOptions",
    "RelocationManifest",
    "WorkflowJob",
    "WorkflowStep",
    "ImageSourceKind",
    "JobStatus",
    "RequestType",
    "StepStatus",
]
