"""
AI Providers Module - completion providers for the hybrid dispatcher.

To add a new AI provider:
1. Create a new provider class inheriting from AIProvider
2. Implement `invoke`
3. Register it with a priority in AIProviderFactory.build_registry
"""
from .base import AIProvider, ProviderRegistration
from .factory import AIProviderFactory
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider
from .openrouter_provider import OpenRouterProvider
from .mock_provider import MockProvider

__all__ = [
    "AIProvider",
    "ProviderRegistration",
    "AIProviderFactory",
    "OpenAIProvider",
    "AnthropicProvider",
    "OpenRouterProvider",
    "MockProvider",
]
