"""
Anthropic AI Provider.

Provides completions using Anthropic's Claude messages API directly.
"""
from typing import Any, Dict, List, Optional

import anthropic

from .base import AIProvider, build_result
from ...api.exceptions import ProviderAttemptFailure
from .prompts import get_system_prompt
from ...core.config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL
from ...core.logging_config import get_logger
from ...domain.entities import HybridRequest

logger = get_logger(__name__)


class AnthropicProvider(AIProvider):
    """AI Provider using the Anthropic Claude API."""

    name = "claude"

    def __init__(
        self,
        api_key: Optional[str] = ANTHROPIC_API_KEY,
        model: str = ANTHROPIC_MODEL,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.api_key = api_key
        self.model = model
        if client is not None:
            self.client = client
        elif api_key:
            self.client = anthropic.AsyncAnthropic(api_key=api_key)
        else:
            self.client = None

    async def invoke(self, request: HybridRequest) -> Dict[str, Any]:
        if not self.client:
            raise ProviderAttemptFailure("Anthropic API key not configured")

        content: List[Dict[str, Any]] = []
        if request.image_url:
            content.append({"type": "image", "source": {"type": "url", "url": request.image_url}})
        content.append({"type": "text", "text": request.prompt})

        model = request.model or self.model
        try:
            message = await self.client.messages.create(
                model=model,
                max_tokens=1500,
                system=get_system_prompt(request.type),
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            logger.error(f"Anthropic API Error ({request.type.value}): {e}")
            raise

        text = "".join(block.text for block in message.content if getattr(block, "type", None) == "text")
        return build_result(text, self.name, model)
