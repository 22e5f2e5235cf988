"""
Embedding generation for knowledge entries.

Failures never propagate: callers get an empty list and the pipeline stores
the entry without a vector.
"""
from typing import List, Optional

import numpy as np
from openai import AsyncOpenAI

from ..api.exceptions import EmbeddingFailure
from ..core.config import EMBEDDING_DIMENSION, EMBEDDING_MODEL, EMBEDDING_TEXT_CHARS, OPENAI_API_KEY
from ..core.logging_config import get_logger

logger = get_logger(__name__)


def validate_embedding(vector, dimension: int) -> List[float]:
    """
    Check an embedding has the expected dimension and only finite values.

    Raises:
        EmbeddingFailure: if the vector is unusable
    """
    array = np.asarray(vector, dtype=float)
    if array.ndim != 1 or array.shape[0] != dimension:
        raise EmbeddingFailure(
            f"Embedding has dimension {array.shape}, expected {dimension}", stage="embedding-generation"
        )
    if not np.all(np.isfinite(array)):
        raise EmbeddingFailure("Embedding contains non-finite values", stage="embedding-generation")
    return array.tolist()


class EmbeddingService:
    """OpenAI embeddings client returning a single fixed-size vector."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: str = EMBEDDING_MODEL,
        dimension: int = EMBEDDING_DIMENSION,
        max_chars: int = EMBEDDING_TEXT_CHARS,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.dimension = dimension
        self.max_chars = max_chars
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key)
        else:
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    async def generate(self, text: str) -> List[float]:
        """
        Embed the first `max_chars` characters of text.

        Raises:
            EmbeddingFailure: no client, no text, request failure or bad vector
        """
        if not self.client:
            raise EmbeddingFailure("OpenAI API key not configured", stage="embedding-generation")
        if not text.strip():
            raise EmbeddingFailure("No text to embed", stage="embedding-generation")

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text[:self.max_chars],
                dimensions=self.dimension,
            )
        except Exception as e:
            raise EmbeddingFailure(f"OpenAI embedding request failed: {e}", stage="embedding-generation") from e

        try:
            vector = response.data[0].embedding
            return validate_embedding(vector, self.dimension)
        except EmbeddingFailure:
            raise
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingFailure(f"Malformed embedding response: {e}", stage="embedding-generation") from e

    async def embed(self, text: str) -> List[float]:
        """Like `generate`, but returns [] instead of raising."""
        try:
            return await self.generate(text)
        except EmbeddingFailure as e:
            logger.warning(f"Embedding generation skipped: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected embedding error, storing entry without vector: {e}", exc_info=True)
            return []
