"""
Insight Orchestrator - fan-out / fan-in over the retrieval branches.

Pipeline:
1. Parameter extraction and query embedding (concurrently)
2. Similar cases, literature, experts, communities, organizations and
   recommendations (concurrently)
3. Bundle assembly: caps, confidence and citations

Every branch runs through `run_branch()`, which bounds it in time and turns
any failure into a BranchResult. The fallback for a failed branch is chosen
here, in one place. Only input validation raises out of a run.

`stream()` runs the same pipeline in four stages and yields a progress
event after each one.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from src.insights.communities import CommunityMatcher, OrganizationMatcher
from src.insights.experts import ExpertMatcher
from src.insights.extractor import CaseParameterExtractor
from src.insights.literature import LiteratureRetriever
from src.insights.recommendations import RecommendationGenerator, fallback_recommendations
from src.insights.similar_cases import SimilarCaseRetriever
from src.models.errors import InputValidationError
from src.models.insights import CaseParameters, InsightBundle
from src.models.progress import STAGE_PROGRESS, ProgressStage, StreamEvent
from src.models.results import Branch, BranchError, BranchErrorKind, BranchResult
from src.utils.logging import get_logger
from src.utils.protocols import EmbeddingProviderProtocol


# Called with the finished bundle before the "complete" event is sent.
# The returned dict is merged into that event's data.
Finalizer = Callable[[InsightBundle], Awaitable[dict[str, Any]]]

BRANCH_FALLBACKS: dict[Branch, Callable[[], Any]] = {
    Branch.SIMILAR_CASES: list,
    Branch.LITERATURE: list,
    Branch.EXPERTS: list,
    Branch.COMMUNITIES: list,
    Branch.ORGANIZATIONS: list,
    Branch.RECOMMENDATIONS: fallback_recommendations,
}


def validate_query(query: Optional[str], min_length: int) -> str:
    """
    Strip a query and check it is long enough to analyze.

    Raises:
        InputValidationError: If the query is empty or too short
    """
    text = (query or "").strip()
    if not text:
        raise InputValidationError("Query must not be empty")
    if len(text) < min_length:
        raise InputValidationError(f"Query must be at least {min_length} characters")
    return text


class InsightOrchestrator:
    """Runs the insight pipeline for one query."""

    def __init__(
        self,
        extractor: CaseParameterExtractor,
        embedder: EmbeddingProviderProtocol,
        similar_cases: SimilarCaseRetriever,
        literature: LiteratureRetriever,
        experts: ExpertMatcher,
        communities: CommunityMatcher,
        organizations: OrganizationMatcher,
        recommendations: RecommendationGenerator,
        branch_timeout: float = 20.0,
        literature_timeout: float = 15.0,
        min_query_length: int = 10,
        queue_size: int = 16,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            extractor: Case parameter extractor
            embedder: Embedding provider for the query
            similar_cases: Similar-case retriever
            literature: Literature retriever
            experts: Expert matcher
            communities: Community matcher
            organizations: Organization matcher
            recommendations: Recommendation generator
            branch_timeout: Per-branch time limit in seconds
            literature_timeout: Time limit for the literature branch
            min_query_length: Minimum stripped query length
            queue_size: Buffered events between pipeline and stream consumer
            logger: Optional injected logger
        """
        self.extractor = extractor
        self.embedder = embedder
        self.similar_cases = similar_cases
        self.literature = literature
        self.experts = experts
        self.communities = communities
        self.organizations = organizations
        self.recommendations = recommendations
        self.branch_timeout = branch_timeout
        self.literature_timeout = literature_timeout
        self.min_query_length = min_query_length
        self.queue_size = queue_size
        self.logger = logger or get_logger("insights.orchestrator")

    # =========================================================================
    # Branch execution
    # =========================================================================

    async def run_branch(
        self,
        branch: Branch,
        operation: Awaitable[Any],
        timeout: Optional[float] = None,
    ) -> BranchResult:
        """
        Await one branch, bounded in time.

        Returns:
            BranchResult holding the value, or the timeout/failure
        """
        limit = timeout if timeout is not None else self.branch_timeout
        try:
            value = await asyncio.wait_for(operation, timeout=limit)
        except asyncio.TimeoutError:
            self.logger.warning(f"Branch {branch.value} timed out after {limit}s")
            return BranchResult.failure(BranchError(
                branch=branch,
                kind=BranchErrorKind.TIMEOUT,
                message=f"Timed out after {limit}s",
            ))
        except Exception as e:
            self.logger.error(f"Branch {branch.value} failed: {e}")
            return BranchResult.failure(BranchError(
                branch=branch,
                kind=BranchErrorKind.FAILURE,
                message=str(e),
            ))
        return BranchResult.success(value)

    async def _branch_value(
        self,
        branch: Branch,
        operation: Awaitable[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        result = await self.run_branch(branch, operation, timeout)
        return result.unwrap_or(BRANCH_FALLBACKS[branch])

    async def _embed(self, query: str) -> list[float]:
        try:
            return await self.embedder.embed(query)
        except Exception as e:
            self.logger.warning(f"Query embedding failed: {e}")
            return []

    async def prepare(
        self,
        query: str,
        params: Optional[CaseParameters] = None,
    ) -> tuple[CaseParameters, list[float]]:
        """
        Extract parameters and embed the query concurrently.

        When `params` is given, extraction is skipped.
        """
        if params is not None:
            return params, await self._embed(query)
        extracted, embedding = await asyncio.gather(
            self.extractor.extract(query),
            self._embed(query),
        )
        return extracted, embedding

    async def _search(
        self,
        query: str,
        requester_id: str,
        params: CaseParameters,
        embedding: list[float],
    ) -> tuple[list, list, list, list]:
        """Similar cases, literature, communities and organizations."""
        return await asyncio.gather(
            self._branch_value(
                Branch.SIMILAR_CASES,
                self.similar_cases.retrieve(query, params, requester_id, embedding),
            ),
            self._branch_value(
                Branch.LITERATURE,
                self.literature.retrieve(params),
                timeout=self.literature_timeout,
            ),
            self._branch_value(Branch.COMMUNITIES, self.communities.match(params)),
            self._branch_value(Branch.ORGANIZATIONS, self.organizations.match(params)),
        )

    async def _generate(
        self,
        query: str,
        params: CaseParameters,
        embedding: list[float],
    ) -> tuple:
        """Recommendations and experts."""
        return await asyncio.gather(
            self._branch_value(Branch.RECOMMENDATIONS, self.recommendations.generate(query, params)),
            self._branch_value(Branch.EXPERTS, self.experts.match(params, embedding)),
        )

    # =========================================================================
    # Single-shot run
    # =========================================================================

    async def run(
        self,
        query: str,
        requester_id: str,
        params: Optional[CaseParameters] = None,
    ) -> InsightBundle:
        """
        Run the full pipeline and return the bundle.

        Args:
            query: Case query text
            requester_id: User asking; their own cases are excluded
            params: Pre-merged parameters (follow-ups); skips extraction

        Raises:
            InputValidationError: If the query is empty or too short
        """
        query = validate_query(query, self.min_query_length)
        params, embedding = await self.prepare(query, params)

        (similar, articles, communities, organizations), (recommendations, experts) = (
            await asyncio.gather(
                self._search(query, requester_id, params, embedding),
                self._generate(query, params, embedding),
            )
        )

        bundle = InsightBundle.assemble(
            case_analysis=params,
            similar_cases=similar,
            articles=articles,
            recommendations=recommendations,
            experts=experts,
            communities=communities,
            organizations=organizations,
        )
        self.logger.info(
            f"Generated insights: {len(bundle.similar_cases)} cases, "
            f"{len(bundle.articles)} articles, confidence {bundle.confidence}"
        )
        return bundle

    # =========================================================================
    # Streamed run
    # =========================================================================

    def stream(
        self,
        query: str,
        requester_id: str,
        params: Optional[CaseParameters] = None,
        finalize: Optional[Finalizer] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Run the pipeline in stages, yielding a progress event per stage.

        Validation happens before the iterator is returned, so a bad query
        raises here rather than mid-stream. Closing the iterator stops the
        pipeline at its next stage boundary.

        Raises:
            InputValidationError: If the query is empty or too short
        """
        query = validate_query(query, self.min_query_length)
        return self._drain(query, requester_id, params, finalize)

    async def _drain(
        self,
        query: str,
        requester_id: str,
        params: Optional[CaseParameters],
        finalize: Optional[Finalizer],
    ) -> AsyncIterator[StreamEvent]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        cancelled = asyncio.Event()
        producer = asyncio.create_task(
            self._produce(queue, cancelled, query, requester_id, params, finalize)
        )

        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            cancelled.set()
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    async def _produce(
        self,
        queue: asyncio.Queue,
        cancelled: asyncio.Event,
        query: str,
        requester_id: str,
        params: Optional[CaseParameters],
        finalize: Optional[Finalizer],
    ):
        stage = ProgressStage.EXTRACTING

        async def emit(event: StreamEvent):
            if cancelled.is_set():
                raise asyncio.CancelledError()
            await queue.put(event)

        try:
            await emit(StreamEvent.for_stage(stage, "Analyzing case details..."))
            params, embedding = await self.prepare(query, params)

            stage = ProgressStage.PARAMETERS
            await emit(StreamEvent.for_stage(
                stage,
                "Case parameters extracted",
                {"case_analysis": params.model_dump(mode="json")},
            ))

            similar, articles, communities, organizations = await self._search(
                query, requester_id, params, embedding
            )
            stage = ProgressStage.SEARCHING
            await emit(StreamEvent.for_stage(
                stage,
                "Found related cases and research",
                {
                    "similar_cases": len(similar),
                    "articles": len(articles),
                    "communities": len(communities),
                    "organizations": len(organizations),
                },
            ))

            recommendations, experts = await self._generate(query, params, embedding)
            stage = ProgressStage.GENERATING
            await emit(StreamEvent.for_stage(
                stage,
                "Recommendations generated",
                {"recommendations": len(recommendations.recommendations), "experts": len(experts)},
            ))

            bundle = InsightBundle.assemble(
                case_analysis=params,
                similar_cases=similar,
                articles=articles,
                recommendations=recommendations,
                experts=experts,
                communities=communities,
                organizations=organizations,
            )
            data = bundle.model_dump(mode="json")
            if finalize is not None:
                if cancelled.is_set():
                    raise asyncio.CancelledError()
                data.update(await finalize(bundle))

            stage = ProgressStage.COMPLETE
            await emit(StreamEvent.for_stage(stage, "Analysis complete", data))
        except Exception as e:
            self.logger.error(f"Streamed insight generation failed at {stage.value}: {e}")
            await queue.put(StreamEvent(
                step=ProgressStage.ERROR,
                progress=STAGE_PROGRESS[stage],
                message=f"Failed to generate insights: {e}",
            ))

        await queue.put(None)
