"""
Hybrid AI Service - provider fallback dispatcher.

Tries available providers in ascending priority order, scores each result,
keeps the best one and stops as soon as a result clears the minimum score
or the attempt budget is spent. Failure is returned as a HybridResponse,
never raised.
"""
import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from .providers.base import ProviderRegistration
from ..core.config import HYBRID_DEFAULT_MAX_RETRIES, HYBRID_DEFAULT_MIN_SCORE, PROVIDER_TIMEOUT_SECONDS
from ..core.logging_config import get_logger
from ..domain.entities import (
    AttemptFailure,
    AttemptOutcome,
    AttemptSuccess,
    HybridRequest,
    HybridResponse,
    ProviderAttempt,
)

logger = get_logger(__name__)

Validator = Callable[[Any, HybridRequest], Dict[str, Any]]

# Bookkeeping keys that do not count as content
_META_KEYS = ("provider", "model", "error", "status")


def default_validator(result: Any, request: HybridRequest) -> Dict[str, Any]:
    """
    Coarse response score: 0.1 for an explicit error, 0.9 for a result with
    any non-empty field, 0.3 otherwise.
    """
    is_dict = isinstance(result, dict)
    has_error = is_dict and (bool(result.get("error")) or result.get("status") == "error")
    if is_dict:
        has_content = any(
            value not in (None, "", [], {}) for key, value in result.items() if key not in _META_KEYS
        )
    else:
        has_content = bool(result)

    return {
        "score": 0.1 if has_error else (0.9 if has_content else 0.3),
        "confidence": 0.8 if has_content else 0.2,
        "reasoning": "Response contains content" if has_content else "Response is empty or invalid",
        "issues": [] if has_content else ["Empty or invalid response"],
        "suggestions": [] if has_content else ["Retry with different parameters"],
    }


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class HybridAIService:
    """Dispatches a HybridRequest across prioritized providers."""

    def __init__(
        self,
        registry: List[ProviderRegistration],
        validator: Validator = default_validator,
        default_min_score: float = HYBRID_DEFAULT_MIN_SCORE,
        default_max_retries: int = HYBRID_DEFAULT_MAX_RETRIES,
        attempt_timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ):
        self.registry = registry
        self.validator = validator
        self.default_min_score = default_min_score
        self.default_max_retries = default_max_retries
        self.attempt_timeout = attempt_timeout

    def check_provider_availability(self) -> Dict[str, bool]:
        return {registration.name: registration.available for registration in self.registry}

    def candidates(self) -> List[ProviderRegistration]:
        """Available providers, lowest priority number first."""
        return sorted((r for r in self.registry if r.available), key=lambda r: r.priority)

    async def _attempt(self, registration: ProviderRegistration, request: HybridRequest) -> AttemptOutcome:
        try:
            result = await asyncio.wait_for(registration.provider.invoke(request), timeout=self.attempt_timeout)
        except asyncio.TimeoutError:
            return AttemptFailure(error=f"{registration.name} timed out after {self.attempt_timeout}s")
        except Exception as e:
            return AttemptFailure(error=str(e) or type(e).__name__)

        try:
            validation = self.validator(result, request)
            score = float(validation.get("score", 0.0))
        except Exception as e:
            return AttemptFailure(error=f"{registration.name} result validation failed: {str(e) or type(e).__name__}")
        return AttemptSuccess(value=result, score=score, validation=validation)

    async def process_request(self, request: HybridRequest) -> HybridResponse:
        """Run the fallback loop. Never raises."""
        start = time.monotonic()
        min_score = request.minimum_score if request.minimum_score is not None else self.default_min_score
        max_retries = request.max_retries if request.max_retries is not None else self.default_max_retries

        attempts: List[ProviderAttempt] = []
        best: Optional[AttemptSuccess] = None
        best_provider = "none"

        for registration in self.candidates():
            if len(attempts) >= max_retries:
                break

            logger.info(f"Attempting {request.type.value} with {registration.name}")
            attempt_start = time.monotonic()
            outcome = await self._attempt(registration, request)
            elapsed = _elapsed_ms(attempt_start)

            if isinstance(outcome, AttemptFailure):
                attempts.append(ProviderAttempt(
                    provider=registration.name, success=False, processing_time_ms=elapsed, error=outcome.error
                ))
                logger.warning(f"{registration.name} failed: {outcome.error}")
                continue

            attempts.append(ProviderAttempt(
                provider=registration.name, success=True, processing_time_ms=elapsed, score=outcome.score
            ))
            if best is None or outcome.score > best.score:
                best = outcome
                best_provider = registration.name

            if outcome.score >= min_score:
                logger.info(f"{registration.name} met minimum score threshold: {outcome.score}")
                break
            logger.info(f"{registration.name} score {outcome.score} below threshold {min_score}")

        total = _elapsed_ms(start)
        if best is None:
            return HybridResponse(
                success=False,
                data=None,
                provider="none",
                attempts=attempts,
                final_score=0.0,
                validation={"score": 0, "issues": ["All providers failed"]},
                total_processing_time_ms=total,
            )

        return HybridResponse(
            success=True,
            data=best.value,
            provider=best_provider,
            attempts=attempts,
            final_score=best.score,
            validation=best.validation,
            total_processing_time_ms=total,
        )
