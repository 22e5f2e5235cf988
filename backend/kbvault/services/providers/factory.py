"""
AI Provider Factory.

Builds the prioritized provider list for the hybrid dispatcher from the
configured API keys.
"""
from typing import List

from .anthropic_provider import AnthropicProvider
from .base import ProviderRegistration
from .mock_provider import MockProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider
from ...core import config
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class AIProviderFactory:
    """
    Factory for the hybrid dispatcher's provider registry.

    OpenAI is tried first, then Claude, then OpenRouter. A provider is
    available when its key is configured. When no key is configured at all
    the MockProvider is registered so the dispatcher still answers.
    """

    @staticmethod
    def build_registry() -> List[ProviderRegistration]:
        registry = [
            ProviderRegistration(OpenAIProvider(), priority=1, available=bool(config.OPENAI_API_KEY)),
            ProviderRegistration(AnthropicProvider(), priority=2, available=bool(config.ANTHROPIC_API_KEY)),
            ProviderRegistration(OpenRouterProvider(), priority=3, available=bool(config.OPENROUTER_API_KEY)),
        ]

        if not any(r.available for r in registry):
            logger.warning("No AI provider keys configured, using MockProvider")
            registry.append(ProviderRegistration(MockProvider(), priority=99, available=True))
        else:
            available = [r.name for r in registry if r.available]
            logger.info(f"AI providers available: {', '.join(available)}")

        return registry
