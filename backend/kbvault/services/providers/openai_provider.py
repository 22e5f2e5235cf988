"""
OpenAI AI Provider.

Chat completions with optional image input. Structured request types ask
for a JSON object response.
"""
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from .base import AIProvider, build_result
from ...api.exceptions import ProviderAttemptFailure
from .prompts import STRUCTURED_TYPES, get_system_prompt
from ...core.config import OPENAI_API_KEY, OPENAI_MODEL
from ...core.logging_config import get_logger
from ...domain.entities import HybridRequest

logger = get_logger(__name__)


class OpenAIProvider(AIProvider):
    """AI Provider using the OpenAI chat completions API."""

    name = "openai"
    supports_json_mode = True

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: str = OPENAI_MODEL,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key
        self.model = model
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        else:
            self.client = None

    def _user_content(self, request: HybridRequest):
        if not request.image_url:
            return request.prompt
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": request.prompt},
            {"type": "image_url", "image_url": {"url": request.image_url}},
        ]
        return content

    async def invoke(self, request: HybridRequest) -> Dict[str, Any]:
        if not self.client:
            raise ProviderAttemptFailure(f"{self.name} API key not configured")

        model = request.model or self.model
        kwargs: Dict[str, Any] = {}
        if self.supports_json_mode and request.type in STRUCTURED_TYPES:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": get_system_prompt(request.type)},
                    {"role": "user", "content": self._user_content(request)},
                ],
                max_tokens=1500,
                **kwargs,
            )
        except Exception as e:
            logger.error(f"{self.name} API Error ({request.type.value}): {e}")
            raise

        return build_result(response.choices[0].message.content, self.name, model)
