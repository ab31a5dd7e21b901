"""
Similar-Case Retriever - published cases close to the query in embedding space.

Content is redacted before it is cut to an excerpt, so no identifier can
survive at the truncation boundary.
"""

import asyncio
import logging
from typing import Optional

from src.models.insights import CaseParameters, SimilarCase
from src.storage.directory import PlatformDirectory
from src.utils.logging import get_logger
from src.utils.parsing import contains_any, truncate
from src.utils.protocols import EmbeddingProviderProtocol, RedactionProtocol


EXCERPT_CHARS = 200
NEIGHBOURS = 5

ROLE_DISPLAY_NAMES = {
    "THERAPIST": "Licensed Therapist",
    "EDUCATOR": "Special Educator",
    "USER": "Community Member",
    "ORGANIZATION": "Healthcare Organization",
}


def format_role(role: Optional[str]) -> str:
    """Display name for a platform role."""
    if not role:
        return ROLE_DISPLAY_NAMES["USER"]
    return ROLE_DISPLAY_NAMES.get(role.upper(), role.title())


def explain_relevance(content: str, params: CaseParameters) -> str:
    """Why a case was surfaced, based on which terms its content mentions."""
    if contains_any(content, params.diagnosis):
        return "Similar diagnosis and treatment context"
    if contains_any(content, params.challenges):
        return "Addresses similar challenges"
    return "Related therapeutic approach"


class SimilarCaseRetriever:
    """Nearest-neighbour search over published cases."""

    def __init__(
        self,
        directory: PlatformDirectory,
        embedder: EmbeddingProviderProtocol,
        redactor: RedactionProtocol,
        logger: Optional[logging.Logger] = None,
    ):
        self.directory = directory
        self.embedder = embedder
        self.redactor = redactor
        self.logger = logger or get_logger("insights.similar_cases")

    async def retrieve(
        self,
        query: str,
        params: CaseParameters,
        requester_id: str,
        embedding: Optional[list[float]] = None,
    ) -> list[SimilarCase]:
        """
        Find up to five similar published cases.

        Args:
            query: Query text, embedded if no embedding is supplied
            params: Extracted case parameters, used for explanations
            requester_id: The requester's own cases are excluded
            embedding: Precomputed query embedding (optional)

        Returns:
            Similar cases, best first; [] when no embedding is available
        """
        if not embedding:
            embedding = await self.embedder.embed(query)
        if not embedding:
            self.logger.warning("No query embedding available, skipping similar-case search")
            return []

        try:
            neighbours = self.directory.nearest_cases(
                embedding,
                exclude_author_id=requester_id,
                k=NEIGHBOURS,
            )
        except Exception as e:
            self.logger.error(f"Vector search failed: {e}")
            return []

        redacted = await asyncio.gather(
            *(self.redactor.redact(case.content) for case, _ in neighbours)
        )
        results = [
            SimilarCase(
                id=case.id,
                title=case.title,
                content=truncate(text, EXCERPT_CHARS),
                author_name=case.author_name or "Anonymous Professional",
                author_role=format_role(case.author_role),
                similarity=similarity,
                relevance_explanation=explain_relevance(case.content, params),
                years_of_experience=case.author_years_of_experience,
            )
            for (case, similarity), text in zip(neighbours, redacted)
        ]

        self.logger.debug(f"Found {len(results)} similar cases")
        return results
