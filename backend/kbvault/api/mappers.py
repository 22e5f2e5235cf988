"""
Mappers between domain entities and DTOs.
Separates domain layer from API layer.
"""
from typing import List
from ..domain.entities import HybridRequest, HybridResponse, WorkflowJob
from .dto import HybridRequestDTO, HybridResponseDTO, WorkflowJobDTO


class WorkflowJobMapper:
    """Maps between WorkflowJob entity and WorkflowJobDTO."""

    @staticmethod
    def to_dto(job: WorkflowJob) -> WorkflowJobDTO:
        """Convert domain entity to DTO."""
        return WorkflowJobDTO(**job.to_dict())

    @staticmethod
    def to_dto_list(jobs: List[WorkflowJob]) -> List[WorkflowJobDTO]:
        """Convert list of entities to DTOs."""
        return [WorkflowJobMapper.to_dto(job) for job in jobs]


class HybridMapper:
    """Maps hybrid AI requests and responses across the API boundary."""

    @staticmethod
    def to_entity(dto: HybridRequestDTO) -> HybridRequest:
        return HybridRequest(
            prompt=dto.prompt,
            type=dto.type,
            model=dto.model,
            image_url=dto.image_url,
            max_retries=dto.max_retries,
            minimum_score=dto.minimum_score,
        )

    @staticmethod
    def to_dto(response: HybridResponse) -> HybridResponseDTO:
        return HybridResponseDTO(**response.to_dict())
