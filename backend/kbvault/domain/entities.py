"""
Domain entities - Core business objects.
These represent the business concepts, not database models.
"""
import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .value_objects import (
    ImageSourceKind,
    JobStatus,
    PublicUrl,
    RequestType,
    StepStatus,
    StoragePath,
    UserId,
)
from ..core.config import DEFAULT_MAX_PAGES


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AuthenticatedUser:
    """The acting user resolved from a session token."""
    id: UserId
    email: Optional[str] = None


@dataclass
class PDFSubmission:
    """A PDF handed to the pipeline by a caller."""
    filename: str
    content: bytes
    content_type: str = "application/pdf"
    access_token: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def stem(self) -> str:
        return self.filename.replace(".pdf", "")


@dataclass
class ProcessingOptions:
    """Caller options for one pipeline run."""
    language: str = "en"
    max_pages: int = DEFAULT_MAX_PAGES  # 0 = all pages
    extract_materials: bool = True


@dataclass
class ProcessingJob:
    """
    ProcessingJob entity - one PDF-to-knowledge-base run.
    Persisted for audit; never deleted by the pipeline.
    """
    user_id: UserId
    original_filename: str
    file_size: int
    id: Optional[str] = None
    file_url: Optional[str] = None
    status: JobStatus = JobStatus.PROCESSING
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    processing_time_ms: int = 0

    def to_row(self) -> Dict[str, Any]:
        row = {
            "user_id": self.user_id,
            "original_filename": self.original_filename,
            "file_size": self.file_size,
            "file_url": self.file_url,
            "processing_status": self.status.value,
            "processing_started_at": _iso(self.started_at),
            "processing_completed_at": _iso(self.completed_at),
            "processing_time_ms": self.processing_time_ms,
            "error_message": self.error_message,
        }
        if self.id:
            row["id"] = self.id
        return row

    def mark_completed(self, processing_time_ms: int):
        """Mark job as completed."""
        self.status = JobStatus.COMPLETED
        self.completed_at = datetime.now()
        self.processing_time_ms = processing_time_ms

    def mark_failed(self, error_message: str, processing_time_ms: int):
        """Mark job as failed."""
        self.status = JobStatus.FAILED
        self.completed_at = datetime.now()
        self.error_message = error_message
        self.processing_time_ms = processing_time_ms


@dataclass
class KnowledgeEntry:
    """KnowledgeEntry entity - the searchable artifact created from a PDF."""
    title: str
    content: str
    source_url: str
    created_by: UserId
    content_type: str = "enhanced_pdf_html"
    language: str = "en"
    embedding: Optional[List[float]] = None
    confidence_scores: Dict[str, float] = field(default_factory=dict)
    search_keywords: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    semantic_tags: List[str] = field(default_factory=lambda: ["pdf", "html", "convertapi", "uploaded-content"])
    technical_complexity: int = 5
    reading_level: int = 8
    status: str = "published"
    id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "content_type": self.content_type,
            "source_url": self.source_url,
            "semantic_tags": list(self.semantic_tags),
            "language": self.language,
            "technical_complexity": self.technical_complexity,
            "reading_level": self.reading_level,
            "openai_embedding": self.embedding,
            "confidence_scores": dict(self.confidence_scores),
            "search_keywords": list(self.search_keywords),
            "metadata": copy.deepcopy(self.metadata),
            "created_by": self.created_by,
            "last_modified_by": self.created_by,
            "status": self.status,
        }


@dataclass(frozen=True)
class ImageReference:
    """
    One image reference discovered in HTML.

    `reference` is the exact string found in the document: the http(s) URL,
    or the full data URL for inline base64 images.
    """
    kind: ImageSourceKind
    reference: str
    image_type: Optional[str] = None  # base64 only: png, jpeg, ...
    payload: Optional[str] = None  # base64 only: encoded data


@dataclass
class RelocatedImage:
    """Correlates a discovered reference with its new storage location."""
    original_reference: str
    public_url: PublicUrl
    filename: str
    size: int
    kind: ImageSourceKind
    storage_path: Optional[StoragePath] = None


@dataclass
class ImageDiscovery:
    """Result of scanning one HTML document for images."""
    http_images: List[ImageReference] = field(default_factory=list)
    base64_images: List[ImageReference] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.http_images) + len(self.base64_images)


@dataclass
class RelocationManifest:
    """
    Outcome of relocating every discovered image.

    Every discovered reference is a key in `outcomes`, mapped either to its
    RelocatedImage or to the reason it was skipped.
    """
    outcomes: Dict[str, Union[RelocatedImage, str]] = field(default_factory=dict)
    http_found: int = 0
    base64_found: int = 0

    def record_success(self, image: RelocatedImage):
        self.outcomes[image.original_reference] = image

    def record_skip(self, reference: str, reason: str):
        self.outcomes[reference] = reason

    @property
    def relocated(self) -> List[RelocatedImage]:
        return [o for o in self.outcomes.values() if isinstance(o, RelocatedImage)]

    @property
    def skipped(self) -> Dict[str, str]:
        return {ref: o for ref, o in self.outcomes.items() if isinstance(o, str)}

    @property
    def http_processed(self) -> List[RelocatedImage]:
        return [img for img in self.relocated if img.kind == ImageSourceKind.HTTP]

    @property
    def base64_processed(self) -> List[RelocatedImage]:
        return [img for img in self.relocated if img.kind == ImageSourceKind.BASE64]


@dataclass
class StepLogEntry:
    """One line of a workflow step's log."""
    message: str
    at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "at": _iso(self.at)}


@dataclass
class WorkflowStep:
    """In-memory mirror of one pipeline stage."""
    id: str
    name: str
    description: str
    status: StepStatus = StepStatus.PENDING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None
    details: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    logs: List[StepLogEntry] = field(default_factory=list)
    error: Optional[str] = None
    result: Any = None

    def reset(self):
        """Return the step to pending and drop everything it captured."""
        self.status = StepStatus.PENDING
        self.start_time = None
        self.end_time = None
        self.duration_ms = None
        self.details = []
        self.metadata = {}
        self.logs = []
        self.error = None
        self.result = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_ms": self.duration_ms,
            "details": list(self.details),
            "metadata": copy.deepcopy(self.metadata),
            "logs": [entry.to_dict() for entry in self.logs],
            "error": self.error,
        }


def derive_workflow_status(steps: List[WorkflowStep]) -> StepStatus:
    """
    Job status as a pure function of its steps: failed if any step failed,
    completed if all completed, running if any running, else pending.
    """
    statuses = [step.status for step in steps]
    if any(s == StepStatus.FAILED for s in statuses):
        return StepStatus.FAILED
    if statuses and all(s == StepStatus.COMPLETED for s in statuses):
        return StepStatus.COMPLETED
    if any(s == StepStatus.RUNNING for s in statuses):
        return StepStatus.RUNNING
    return StepStatus.PENDING


@dataclass
class WorkflowJob:
    """In-memory mirror of a ProcessingJob for progress reporting."""
    id: str
    name: str
    filename: str
    steps: List[WorkflowStep] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    processing_job_id: Optional[str] = None

    @property
    def status(self) -> StepStatus:
        return derive_workflow_status(self.steps)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    @property
    def failed_step(self) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.status == StepStatus.FAILED:
                return step
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "filename": self.filename,
            "status": self.status.value,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "processing_job_id": self.processing_job_id,
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass
class HybridRequest:
    """A generation or analysis request for the provider fallback dispatcher."""
    prompt: str
    type: RequestType = RequestType.GENERAL
    model: Optional[str] = None
    image_url: Optional[str] = None
    max_retries: Optional[int] = None
    minimum_score: Optional[float] = None


@dataclass
class ProviderAttempt:
    """One try of one provider for one request."""
    provider: str
    success: bool
    processing_time_ms: int
    score: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class AttemptSuccess:
    """Tagged attempt outcome: the provider produced a scored result."""
    value: Dict[str, Any]
    score: float
    validation: Dict[str, Any]


@dataclass
class AttemptFailure:
    """Tagged attempt outcome: the provider raised or timed out."""
    error: str


AttemptOutcome = Union[AttemptSuccess, AttemptFailure]


@dataclass
class HybridResponse:
    """Aggregated dispatcher outcome; failure is a value, never an exception."""
    success: bool
    data: Optional[Dict[str, Any]]
    provider: str
    attempts: List[ProviderAttempt]
    final_score: float
    validation: Dict[str, Any]
    total_processing_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "provider": self.provider,
            "attempts": [a.to_dict() for a in self.attempts],
            "final_score": self.final_score,
            "validation": self.validation,
            "total_processing_time_ms": self.total_processing_time_ms,
        }


@dataclass
class PipelineResult:
    """What a successful pipeline run hands back to its caller."""
    processing_id: str
    knowledge_entry_id: str
    processing_time_ms: int
    confidence: float
    text_length: int
    html_length: int
    title: str
    html_url: str
    images_found: int
    images_processed: int
    base64_images_found: int
    base64_images_processed: int
    pages_processed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processing_id": self.processing_id,
            "knowledge_entry_id": self.knowledge_entry_id,
            "processing_time_ms": self.processing_time_ms,
            "confidence": self.confidence,
            "extracted_content": {
                "text_length": self.text_length,
                "html_length": self.html_length,
                "title": self.title,
                "html_url": self.html_url,
            },
            "conversion_info": {
                "images_found": self.images_found,
                "images_processed": self.images_processed,
                "base64_images_found": self.base64_images_found,
                "base64_images_processed": self.base64_images_processed,
                "pages_processed": self.pages_processed,
            },
        }
