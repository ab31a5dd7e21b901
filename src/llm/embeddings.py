"""
Embedding provider adapter.

Turns text into a fixed-length vector via the OpenAI embeddings API.
Best-effort: any failure yields an empty vector, which downstream code
treats as "embedding unavailable".
"""

import logging
import os
from typing import Optional

import openai
from openai import AsyncOpenAI

from src.utils.logging import get_logger


# Provider input limit, in characters
MAX_EMBEDDING_INPUT_CHARS = 8000


class EmbeddingClient:
    """Async embedding client. `embed()` never raises."""

    DEFAULT_MODEL = "text-embedding-3-small"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 15.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the embedding client.

        Without an API key the client is disabled and always returns [].

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional OpenAI-compatible base URL.
            model: Embedding model identifier.
            timeout: Per-request timeout in seconds.
            logger: Optional injected logger.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.logger = logger or get_logger("llm.embeddings")
        self.client = (
            AsyncOpenAI(api_key=self.api_key, base_url=base_url, timeout=timeout, max_retries=1)
            if self.api_key
            else None
        )

    @property
    def is_available(self) -> bool:
        return self.client is not None

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed (truncated to the provider's input limit)

        Returns:
            Embedding vector, or [] if unavailable
        """
        if not self.is_available or not text or not text.strip():
            return []

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text[:MAX_EMBEDDING_INPUT_CHARS],
            )
        except openai.OpenAIError as e:
            self.logger.error(f"Embedding generation failed: {e}")
            return []

        if not response.data:
            return []
        return list(response.data[0].embedding)


class MockEmbeddingClient:
    """Embedding client returning a fixed vector, for tests and offline runs."""

    def __init__(self, vector: Optional[list[float]] = None):
        self.vector = vector if vector is not None else []
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return list(self.vector)
