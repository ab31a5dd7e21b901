"""
Expert Matcher - rank verified professionals against the case.

The score blends keyword overlap with specializations and, when a query
embedding is available, half the vector similarity of the profile.
"""

import logging
from typing import Optional

from src.models.insights import ActivityCounts, CaseParameters, ExpertMatch
from src.models.platform import ProfessionalProfile
from src.storage.directory import PlatformDirectory
from src.utils.logging import get_logger


CANDIDATE_POOL_SIZE = 20
VECTOR_NEIGHBOURS = 10
VECTOR_WEIGHT = 0.5
MAX_EXPERTS = 5


def keyword_score(keywords: list[str], specializations: list[str]) -> float:
    """
    Fraction of keywords matching any specialization.

    A keyword matches when either string contains the other, ignoring case.
    """
    specs = [s.lower() for s in specializations]
    matched = sum(
        1 for keyword in keywords
        if any(keyword in spec or spec in keyword for spec in specs)
    )
    return matched / max(1, len(keywords))


class ExpertMatcher:
    """Finds platform professionals relevant to a case."""

    def __init__(
        self,
        directory: PlatformDirectory,
        logger: Optional[logging.Logger] = None,
    ):
        self.directory = directory
        self.logger = logger or get_logger("insights.experts")

    async def match(
        self,
        params: CaseParameters,
        embedding: Optional[list[float]] = None,
    ) -> list[ExpertMatch]:
        """
        Rank experts for the case.

        Args:
            params: Extracted case parameters
            embedding: Query embedding (optional)

        Returns:
            Up to five experts by (score, trust score) descending
        """
        keywords = params.keywords(include_goals=True)
        if not keywords:
            return []

        candidates = self.directory.verified_professionals(limit=CANDIDATE_POOL_SIZE)
        scores = {
            profile.id: keyword_score(keywords, profile.specializations)
            for profile in candidates
        }

        if embedding:
            try:
                hits = self.directory.nearest_professionals(embedding, k=VECTOR_NEIGHBOURS)
            except Exception as e:
                self.logger.warning(f"Vector expert matching failed: {e}")
            else:
                for hit in hits:
                    if hit.id in scores:
                        scores[hit.id] += hit.similarity * VECTOR_WEIGHT

        ranked = sorted(
            candidates,
            key=lambda p: (scores[p.id], p.trust_score),
            reverse=True,
        )
        return [self._to_match(p, scores[p.id]) for p in ranked[:MAX_EXPERTS]]

    @staticmethod
    def _to_match(profile: ProfessionalProfile, score: float) -> ExpertMatch:
        return ExpertMatch(
            id=profile.id,
            name=profile.name or "Healthcare Professional",
            role=profile.role,
            specializations=profile.specializations,
            years_of_experience=profile.years_of_experience or 0,
            trust_score=profile.trust_score,
            organization=profile.organization,
            relevance_score=score,
            activity=ActivityCounts(posts=profile.post_count, comments=profile.comment_count),
        )
