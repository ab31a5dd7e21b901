"""
Shared Protocol definitions for type hints across the codebase.

These protocols define the interfaces expected from external collaborators
(LLM, embeddings, literature repository, vector search, persistence),
allowing for dependency injection and testing.
"""

from typing import Callable, Optional, Protocol

from src.models.conversation import Conversation, ConversationMessage
from src.models.literature import PubMedArticle, PubMedSearchResult
from src.storage.vector_index import VectorHit


class LLMClientProtocol(Protocol):
    """Interface for text-generation clients."""

    async def generate(
        self,
        prompt: str,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        Generate text for a single prompt.

        Raises on hard failure after the client's own retries.
        """
        ...


class EmbeddingProviderProtocol(Protocol):
    """Interface for embedding providers. Never raises."""

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector, or an empty list if unavailable."""
        ...


class LiteratureRepositoryProtocol(Protocol):
    """Two-phase literature search: ids first, then records."""

    async def search(
        self,
        query: str,
        max_results: int = 10,
        sort: str = "relevance",
    ) -> PubMedSearchResult:
        ...

    async def fetch_multiple(self, pmids: list[str]) -> list[PubMedArticle]:
        ...


class VectorSearchProtocol(Protocol):
    """Nearest-neighbour search over stored embeddings."""

    def nearest(
        self,
        embedding: list[float],
        k: int,
        predicate: Optional[Callable[[str], bool]] = None,
    ) -> list[VectorHit]:
        ...


class RedactionProtocol(Protocol):
    """PII/PHI scrubbing."""

    async def redact(self, text: str) -> str:
        ...


class ConversationStoreProtocol(Protocol):
    """Persistence boundary for conversations."""

    async def create(self, conversation: Conversation) -> Conversation:
        ...

    async def find(self, conversation_id: str) -> Optional[Conversation]:
        ...

    async def append_messages(
        self,
        conversation_id: str,
        messages: list[ConversationMessage],
    ) -> Conversation:
        ...

    async def update_timestamp(self, conversation_id: str) -> None:
        ...
