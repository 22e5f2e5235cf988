"""
Mock AI Provider.

Deterministic responses without API calls, for development, tests and
deployments without provider keys.
"""
import json
from typing import Any, Dict

from .base import AIProvider, build_result
from ...domain.entities import HybridRequest
from ...domain.value_objects import RequestType


class MockProvider(AIProvider):
    """Mock AI Provider for testing and keyless fallback."""

    name = "mock"

    async def invoke(self, request: HybridRequest) -> Dict[str, Any]:
        if request.type == RequestType.MATERIAL_ANALYSIS:
            payload = {
                "material_name": "unknown material",
                "category": "other",
                "confidence": 0.5,
                "properties": {},
                "chemical_composition": {},
                "safety_considerations": [],
                "standards": [],
            }
            return build_result(json.dumps(payload), self.name)

        if request.type == RequestType.GENERATION_3D:
            payload = {
                "room_type": "living room",
                "style": "modern",
                "materials": [],
                "features": [],
                "layout": "open plan",
                "enhanced_prompt": request.prompt,
            }
            return build_result(json.dumps(payload), self.name)

        return build_result(f"MOCK response: {request.prompt[:200]}", self.name)
