"""
OpenRouter AI Provider.

OpenRouter exposes an OpenAI-compatible API, so this reuses the OpenAI
provider with a different base URL and model.
"""
from typing import Optional

from openai import AsyncOpenAI

from .openai_provider import OpenAIProvider
from ...core.config import OPENROUTER_API_KEY, OPENROUTER_BASE_URL, OPENROUTER_MODEL


class OpenRouterProvider(OpenAIProvider):
    """AI Provider using OpenRouter (Claude models by default)."""

    name = "openrouter"
    # JSON mode is not honoured by every routed model
    supports_json_mode = False

    def __init__(
        self,
        api_key: Optional[str] = OPENROUTER_API_KEY,
        model: str = OPENROUTER_MODEL,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(api_key=api_key, model=model, base_url=OPENROUTER_BASE_URL, client=client)
