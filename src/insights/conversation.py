"""
Conversation State Manager - analyses as persistent conversations.

Each analysis opens a conversation holding the query and an assistant
message whose metadata is the insight bundle. Follow-ups reuse the
latest bundle's case parameters: the question is enriched with the prior
diagnosis and challenges, and the newly extracted terms are merged into
the old ones before the pipeline reruns.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Optional

from src.insights.extractor import CaseParameterExtractor
from src.insights.orchestrator import InsightOrchestrator, validate_query
from src.insights.similar_cases import format_role
from src.models.conversation import (
    Conversation,
    ConversationMessage,
    ConversationSummary,
    Feedback,
    FollowUpExchange,
    MessageRole,
    RelatedPost,
)
from src.models.errors import ConversationNotFoundError, InputValidationError
from src.models.insights import CaseParameters, InsightBundle
from src.models.platform import PublishedCase
from src.models.progress import StreamEvent
from src.storage.conversation_store import ConversationStore
from src.storage.directory import PlatformDirectory
from src.storage.usage_log import UsageLog
from src.utils.logging import get_logger
from src.utils.protocols import EmbeddingProviderProtocol


ANALYSIS_MESSAGE = "Here is the clinical analysis based on your case."
FOLLOW_UP_MESSAGE = "Follow-up analysis"
PENDING_ANSWER = "Processing..."

MAX_RELATED_POSTS = 5
PER_TERM_POST_LIMIT = 3
POST_EXCERPT_CHARS = 300


@dataclass(frozen=True)
class AnalysisResult:
    """A bundle and the conversation it was stored in."""

    bundle: InsightBundle
    conversation_id: str


def conversation_title(params: CaseParameters, today: Optional[date] = None) -> str:
    """Title from the diagnoses, or a dated generic title."""
    if params.diagnosis:
        return f"Case: {', '.join(params.diagnosis)}"
    return f"Clinical Analysis {(today or date.today()).isoformat()}"


def enrich_query(question: str, prior: Optional[CaseParameters]) -> str:
    """Prefix a follow-up question with the prior case context."""
    if prior is None:
        return question
    return (
        f"Previous context - Diagnosis: {', '.join(prior.diagnosis)}. "
        f"Challenges: {', '.join(prior.challenges)}. "
        f"Follow-up question: {question}"
    )


def pair_follow_ups(conversation: Conversation) -> list[FollowUpExchange]:
    """Pair the messages after the opening exchange into question/answer items."""
    messages = conversation.messages[2:]
    exchanges = []
    for i in range(0, len(messages), 2):
        question = messages[i]
        if question.role != MessageRole.USER:
            continue
        answer = messages[i + 1] if i + 1 < len(messages) else None
        exchanges.append(FollowUpExchange(
            id=question.id,
            question=question.content,
            answer=answer.content if answer else PENDING_ANSWER,
            created_at=question.created_at,
        ))
    return exchanges


class ConversationManager:
    """Entry point for analyses, follow-ups and conversation history."""

    def __init__(
        self,
        orchestrator: InsightOrchestrator,
        extractor: CaseParameterExtractor,
        store: ConversationStore,
        directory: PlatformDirectory,
        embedder: EmbeddingProviderProtocol,
        usage_log: Optional[UsageLog] = None,
        min_follow_up_length: int = 5,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the manager.

        Args:
            orchestrator: Pipeline runner
            extractor: Extractor used on enriched follow-up questions
            store: Conversation persistence
            directory: Platform content, for related posts
            embedder: Embedding provider, for related-post fallback search
            usage_log: Analytics sink (optional)
            min_follow_up_length: Minimum stripped follow-up length
            logger: Optional injected logger
        """
        self.orchestrator = orchestrator
        self.extractor = extractor
        self.store = store
        self.directory = directory
        self.embedder = embedder
        self.usage_log = usage_log
        self.min_follow_up_length = min_follow_up_length
        self.logger = logger or get_logger("insights.conversation")

    # =========================================================================
    # Analyses
    # =========================================================================

    async def analyze(self, query: str, user_id: str) -> AnalysisResult:
        """
        Analyze a new case and store it as a conversation.

        Raises:
            InputValidationError: If the query is empty or too short
        """
        self.logger.info(f"Generating clinical insights for user {user_id}")
        bundle = await self.orchestrator.run(query, user_id)
        conversation = await self._save_new(user_id, query.strip(), bundle)
        return AnalysisResult(bundle=bundle, conversation_id=conversation.id)

    def analyze_stream(self, query: str, user_id: str) -> AsyncIterator[StreamEvent]:
        """
        Analyze a new case, yielding progress events.

        The conversation is stored just before the "complete" event, whose
        data carries its id.

        Raises:
            InputValidationError: If the query is empty or too short
        """
        self.logger.info(f"Streaming clinical insights for user {user_id}")
        stripped = (query or "").strip()

        async def persist(bundle: InsightBundle) -> dict:
            conversation = await self._save_new(user_id, stripped, bundle)
            return {"conversation_id": conversation.id}

        return self.orchestrator.stream(query, user_id, finalize=persist)

    async def follow_up(self, conversation_id: str, query: str, user_id: str) -> AnalysisResult:
        """
        Answer a follow-up question within a conversation.

        Raises:
            InputValidationError: If the question is empty or too short
            ConversationNotFoundError: If the conversation is missing or not the user's
        """
        question = validate_query(query, self.min_follow_up_length)
        conversation = await self._owned(conversation_id, user_id)

        latest = conversation.latest_assistant_message()
        prior = latest.case_parameters() if latest else None
        enriched = enrich_query(question, prior)

        params = await self.extractor.extract(enriched)
        if prior is not None:
            params = params.merged_with(prior)

        bundle = await self.orchestrator.run(enriched, user_id, params=params)

        await self.store.append_messages(conversation_id, [
            ConversationMessage.from_user(question),
            ConversationMessage.from_assistant(FOLLOW_UP_MESSAGE, bundle),
        ])
        await self.store.update_timestamp(conversation_id)
        return AnalysisResult(bundle=bundle, conversation_id=conversation_id)

    async def _save_new(self, user_id: str, query: str, bundle: InsightBundle) -> Conversation:
        conversation = Conversation(
            user_id=user_id,
            title=conversation_title(bundle.case_analysis),
            messages=[
                ConversationMessage.from_user(query),
                ConversationMessage.from_assistant(ANALYSIS_MESSAGE, bundle),
            ],
        )
        conversation = await self.store.create(conversation)
        if self.usage_log is not None:
            await self.usage_log.record_insights(user_id, query, bundle)
        return conversation

    # =========================================================================
    # History
    # =========================================================================

    async def _owned(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self.store.find(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def list_history(self, user_id: str) -> list[ConversationSummary]:
        """The user's conversations, most recently updated first."""
        return [
            ConversationSummary(
                id=c.id,
                title=c.title,
                updated_at=c.updated_at,
                message_count=len(c.messages),
            )
            for c in await self.store.list_for_user(user_id)
        ]

    async def get_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        return await self._owned(conversation_id, user_id)

    async def delete_conversation(self, conversation_id: str, user_id: str) -> None:
        await self._owned(conversation_id, user_id)
        await self.store.delete(conversation_id)
        self.logger.info(f"Deleted conversation {conversation_id}")

    async def get_follow_ups(self, conversation_id: str, user_id: str) -> list[FollowUpExchange]:
        return pair_follow_ups(await self._owned(conversation_id, user_id))

    async def submit_feedback(
        self,
        conversation_id: str,
        user_id: str,
        value: int,
        comment: Optional[str] = None,
    ) -> Feedback:
        """
        Record thumbs up (1) or down (-1) on a conversation.

        Raises:
            InputValidationError: If value is not 1 or -1
            ConversationNotFoundError: If the conversation is missing or not the user's
        """
        if value not in (1, -1):
            raise InputValidationError("Feedback value must be 1 or -1")
        await self._owned(conversation_id, user_id)
        return await self.store.add_feedback(Feedback(
            user_id=user_id,
            conversation_id=conversation_id,
            value=value,
            comment=comment,
        ))

    # =========================================================================
    # Related posts
    # =========================================================================

    async def find_related_posts(self, conversation_id: str, user_id: str) -> list[RelatedPost]:
        """
        Community posts related to the conversation's latest case parameters.

        Tries a combined search on the first two terms, then each of the
        first three terms, then vector search on all terms.

        Raises:
            ConversationNotFoundError: If the conversation is missing or not the user's
        """
        conversation = await self._owned(conversation_id, user_id)
        latest = conversation.latest_assistant_message()
        params = latest.case_parameters() if latest else None
        if params is None:
            return []

        terms = [t for t in [*params.diagnosis, *params.challenges, *params.goals] if t]
        if not terms:
            return []

        posts = self.directory.search_cases_by_text(" ".join(terms[:2]), MAX_RELATED_POSTS)

        if not posts:
            seen: set[str] = set()
            for term in terms[:3]:
                for post in self.directory.search_cases_by_text(term, PER_TERM_POST_LIMIT):
                    if post.id not in seen:
                        seen.add(post.id)
                        posts.append(post)
                if len(posts) >= MAX_RELATED_POSTS:
                    break
            posts = posts[:MAX_RELATED_POSTS]

        if not posts:
            embedding = await self.embedder.embed(" ".join(terms))
            if embedding:
                try:
                    posts = [
                        case for case, _ in
                        self.directory.nearest_cases(embedding, k=MAX_RELATED_POSTS)
                    ]
                except Exception as e:
                    self.logger.warning(f"Vector search fallback failed: {e}")

        return [self._to_related_post(post) for post in posts]

    def _to_related_post(self, post: PublishedCase) -> RelatedPost:
        community = self.directory.communities.get(post.community_id) if post.community_id else None
        return RelatedPost(
            id=post.id,
            title=post.title or "Untitled Post",
            content=post.content[:POST_EXCERPT_CHARS],
            author_name=post.author_name or "Community Member",
            author_role=format_role(post.author_role),
            tags=post.tags,
            upvotes=post.upvotes,
            view_count=post.view_count,
            comment_count=post.comment_count,
            created_at=post.created_at,
            community_name=community.name if community else None,
            community_slug=community.slug if community else None,
        )
