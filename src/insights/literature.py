"""
Literature Retriever - ranked external articles for a case.

Flow:
1. Ask the LLM for a MeSH-aware search string (fallback: diagnoses AND-ed)
2. Search the repository; on zero hits retry once with diagnoses OR-ed
3. Fetch the records, cap abstracts and author lists
4. Rank by term overlap and recency

Any repository failure empties this branch only. Articles are never
fabricated.
"""

import logging
from datetime import date
from typing import Callable, Optional

from src.models.insights import CaseParameters, LiteratureArticle
from src.models.literature import PubMedArticle
from src.utils.logging import get_logger
from src.utils.parsing import truncate
from src.utils.protocols import LLMClientProtocol, LiteratureRepositoryProtocol


MAX_ABSTRACT_CHARS = 500
MAX_AUTHORS = 3
NO_ABSTRACT = "No abstract available"

PRIMARY_SEARCH_LIMIT = 10
SIMPLIFIED_SEARCH_LIMIT = 5

# Ranking weights
DIAGNOSIS_TERM_WEIGHT = 0.3
INTERVENTION_TERM_WEIGHT = 0.2
RECENT_BONUS = 0.2
SEMI_RECENT_BONUS = 0.1

QUERY_PROMPT = """Generate a PubMed search query for a patient with:
Diagnosis: {diagnosis}
Interventions: {interventions}
Challenges: {challenges}

Return ONLY the search string. Use MeSH terms where possible. Use AND/OR operators.
Focus on PRACTICAL CLINICAL INTERVENTIONS, MANAGEMENT STRATEGIES, and THERAPIES.
Avoid purely genetic or molecular research unless directly relevant to treatment."""


def score_article(
    article: LiteratureArticle,
    params: CaseParameters,
    current_year: int,
) -> float:
    """
    Relevance of an article to the case, capped at 1.0.

    +0.3 per diagnosis term and +0.2 per intervention term found in the
    title or abstract; +0.2 for the last two years, else +0.1 for the
    last five.
    """
    text = f"{article.title} {article.abstract}".lower()
    score = 0.0
    for term in params.diagnosis:
        if term and term.lower() in text:
            score += DIAGNOSIS_TERM_WEIGHT
    for term in params.interventions:
        if term and term.lower() in text:
            score += INTERVENTION_TERM_WEIGHT

    if article.year >= current_year - 1:
        score += RECENT_BONUS
    elif article.year >= current_year - 4:
        score += SEMI_RECENT_BONUS

    return min(score, 1.0)


def rank_articles(
    articles: list[LiteratureArticle],
    params: CaseParameters,
    current_year: int,
) -> list[LiteratureArticle]:
    """Score and sort articles, best first. Ties keep repository order."""
    scored = [
        article.model_copy(update={
            "relevance_score": score_article(article, params, current_year),
        })
        for article in articles
    ]
    return sorted(scored, key=lambda a: a.relevance_score, reverse=True)


def to_literature_article(record: PubMedArticle) -> LiteratureArticle:
    """Cap a raw record's abstract and author list."""
    if not record.abstract:
        abstract = NO_ABSTRACT
    elif len(record.abstract) > MAX_ABSTRACT_CHARS:
        abstract = truncate(record.abstract, MAX_ABSTRACT_CHARS)
    else:
        abstract = record.abstract

    return LiteratureArticle(
        id=record.pmid,
        title=record.title,
        abstract=abstract,
        authors=record.authors[:MAX_AUTHORS],
        journal=record.journal,
        year=record.year,
        doi=record.doi,
    )


class LiteratureRetriever:
    """Two-phase search and fetch against the literature repository."""

    QUERY_TEMPERATURE = 0.3
    QUERY_MAX_TOKENS = 100

    def __init__(
        self,
        repository: LiteratureRepositoryProtocol,
        llm_client: LLMClientProtocol,
        model: Optional[str] = None,
        today: Callable[[], date] = date.today,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the retriever.

        Args:
            repository: Literature repository (PubMed client)
            llm_client: Client used to write the search string
            model: Model override for query generation
            today: Clock used for recency scoring
            logger: Optional injected logger
        """
        self.repository = repository
        self.llm_client = llm_client
        self.model = model
        self.today = today
        self.logger = logger or get_logger("insights.literature")

    async def build_query(self, params: CaseParameters) -> str:
        """LLM-written search string, or the diagnoses joined with AND."""
        fallback = " AND ".join(params.diagnosis)
        prompt = QUERY_PROMPT.format(
            diagnosis=", ".join(params.diagnosis),
            interventions=", ".join(params.interventions),
            challenges=", ".join(params.challenges),
        )
        try:
            content = await self.llm_client.generate(
                prompt=prompt,
                max_tokens=self.QUERY_MAX_TOKENS,
                temperature=self.QUERY_TEMPERATURE,
                model=self.model,
            )
        except Exception as e:
            self.logger.warning(f"Query generation failed, using diagnoses: {e}")
            return fallback

        query = (content or "").strip()
        return query or fallback

    async def retrieve(self, params: CaseParameters) -> list[LiteratureArticle]:
        """
        Search, fetch and rank articles for the case.

        Returns:
            Ranked articles; [] on no results or any repository failure
        """
        try:
            pmids = await self._search(params)
            if not pmids:
                return []
            records = await self.repository.fetch_multiple(pmids)
        except Exception as e:
            self.logger.error(f"PubMed search failed: {e}")
            return []

        articles = [to_literature_article(record) for record in records]
        ranked = rank_articles(articles, params, self.today().year)
        self.logger.debug(f"Retrieved {len(ranked)} articles")
        return ranked

    async def _search(self, params: CaseParameters) -> list[str]:
        query = await self.build_query(params)
        self.logger.debug(f"PubMed search query: {query}")

        if query.strip():
            result = await self.repository.search(query, max_results=PRIMARY_SEARCH_LIMIT)
            if result.pmids:
                return result.pmids

        simplified = " OR ".join(params.diagnosis)
        if not simplified.strip():
            return []

        self.logger.debug("No PubMed results for generated query, trying diagnoses only")
        result = await self.repository.search(simplified, max_results=SIMPLIFIED_SEARCH_LIMIT)
        return result.pmids
