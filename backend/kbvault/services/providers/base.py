"""
Base AI Provider Interface.

All AI providers must inherit from this base class. A provider turns one
HybridRequest into a raw result dict; it raises on any failure and leaves
retry and fallback decisions to the hybrid dispatcher.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...domain.entities import HybridRequest


class AIProvider(ABC):
    """Abstract base class for AI completion providers."""

    name: str = "provider"

    @abstractmethod
    async def invoke(self, request: HybridRequest) -> Dict[str, Any]:
        """
        Run one completion for the request.

        Returns:
            Dict with at least `text`; `parsed` when the text is JSON
        """
        pass


@dataclass
class ProviderRegistration:
    """A provider as seen by the dispatcher: priority 1 is tried first."""
    provider: AIProvider
    priority: int
    available: bool = True

    @property
    def name(self) -> str:
        return self.provider.name


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def build_result(text: Optional[str], provider: str, model: Optional[str] = None) -> Dict[str, Any]:
    """Wrap completion text in the common result shape."""
    result: Dict[str, Any] = {"text": text or "", "provider": provider}
    if model:
        result["model"] = model
    if text:
        try:
            result["parsed"] = json.loads(_strip_code_fence(text))
        except json.JSONDecodeError:
            pass
    return result
