"""
Hybrid AI Router - provider fallback dispatch for analysis and generation requests.
"""
from typing import Dict

from fastapi import APIRouter

from .dependencies import get_hybrid_ai_service
from ..api.dto import HybridRequestDTO, HybridResponseDTO
from ..api.mappers import HybridMapper
from ..core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/ai/hybrid", response_model=HybridResponseDTO)
async def hybrid_request(body: HybridRequestDTO):
    """
    Try providers in priority order until one scores at or above the
    minimum score. Provider failures are reported in `attempts`, never as
    an HTTP error.
    """
    response = await get_hybrid_ai_service().process_request(HybridMapper.to_entity(body))
    logger.info(
        f"Hybrid {body.type.value} request answered by {response.provider} "
        f"(score {response.final_score}, {len(response.attempts)} attempts)"
    )
    return HybridMapper.to_dto(response)


@router.get("/ai/providers", response_model=Dict[str, bool])
async def provider_availability():
    """Which providers are configured."""
    return get_hybrid_ai_service().check_provider_availability()
