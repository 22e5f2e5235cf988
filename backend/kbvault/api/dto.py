"""
Data Transfer Objects (DTOs) for API layer.
Separates API contracts from domain entities.
"""
from pydantic import BaseModel, Field
from typing import Any, List, Optional, Dict

from ..domain.value_objects import RequestType


class ProcessJobResponseDTO(BaseModel):
    """Returned when a PDF is accepted for processing."""
    job_id: str


class StepLogDTO(BaseModel):
    message: str
    at: Optional[str]


class WorkflowStepDTO(BaseModel):
    """One pipeline stage as shown to progress displays."""
    id: str
    name: str
    description: str
    status: str
    start_time: Optional[str]
    end_time: Optional[str]
    duration_ms: Optional[int]
    details: List[str]
    metadata: Dict[str, Any]
    logs: List[StepLogDTO]
    error: Optional[str]


class WorkflowJobDTO(BaseModel):
    """Workflow job snapshot for API responses."""
    id: str
    name: str
    filename: str
    status: str
    start_time: Optional[str]
    end_time: Optional[str]
    processing_job_id: Optional[str]
    steps: List[WorkflowStepDTO]


class HybridRequestDTO(BaseModel):
    """Request body for the hybrid AI dispatcher."""
    prompt: str = Field(..., min_length=1)
    type: RequestType = RequestType.GENERAL
    model: Optional[str] = None
    image_url: Optional[str] = None
    max_retries: Optional[int] = Field(None, ge=1)
    minimum_score: Optional[float] = Field(None, ge=0.0, le=1.0)


class ProviderAttemptDTO(BaseModel):
    provider: str
    success: bool
    processing_time_ms: int
    score: Optional[float] = None
    error: Optional[str] = None


class HybridResponseDTO(BaseModel):
    """Aggregated dispatcher outcome."""
    success: bool
    data: Optional[Dict[str, Any]]
    provider: str
    attempts: List[ProviderAttemptDTO]
    final_score: float
    validation: Dict[str, Any]
    total_processing_time_ms: int
