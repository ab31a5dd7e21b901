"""
Wiring for the insight pipeline.

Builds every adapter, store and pipeline component from InsightSettings.
"""

import logging
from typing import Optional

from src.config import InsightSettings
from src.insights.communities import CommunityMatcher, OrganizationMatcher
from src.insights.conversation import ConversationManager
from src.insights.experts import ExpertMatcher
from src.insights.extractor import CaseParameterExtractor
from src.insights.literature import LiteratureRetriever
from src.insights.orchestrator import InsightOrchestrator
from src.insights.plans import PlanGenerator
from src.insights.recommendations import RecommendationGenerator
from src.insights.similar_cases import SimilarCaseRetriever
from src.insights.simplifier import ContentSimplifier
from src.literature.pubmed_client import PubMedClient
from src.llm.client import DisabledLLMClient, LLMClient
from src.llm.embeddings import EmbeddingClient
from src.privacy.redaction import RedactionService
from src.storage.conversation_store import ConversationStore
from src.storage.directory import PlatformDirectory
from src.storage.plan_store import PlanStore
from src.storage.usage_log import UsageLog
from src.utils.logging import get_logger
from src.utils.protocols import LLMClientProtocol


DIRECTORY_FILE = "directory.json"
CONVERSATIONS_FILE = "conversations.json"
PLANS_FILE = "plans.json"
USAGE_FILE = "usage.jsonl"


def build_llm_client(
    settings: InsightSettings,
    logger: Optional[logging.Logger] = None,
) -> LLMClientProtocol:
    """The OpenAI client, or a disabled stand-in when no key is configured."""
    if settings.openai_api_key:
        return LLMClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            default_model=settings.models.extraction_model,
            timeout=settings.llm_timeout_seconds,
        )
    logger = logger or get_logger("insights.factory")
    logger.warning("OPENAI_API_KEY not configured, LLM steps will use fallbacks")
    return DisabledLLMClient()


def build_conversation_manager(
    settings: InsightSettings,
    logger: Optional[logging.Logger] = None,
) -> ConversationManager:
    """
    Construct a ConversationManager and everything it depends on.

    Without an OpenAI key the service still runs: every LLM step takes its
    fallback path and embeddings are unavailable.
    """
    models = settings.models
    llm_client = build_llm_client(settings, logger)

    if settings.openai_api_key:
        redactor = RedactionService(llm_client=llm_client, model=models.redaction_model)
    else:
        redactor = RedactionService()

    embedder = EmbeddingClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=models.embedding_model,
    )

    data_dir = settings.data_dir
    directory = PlatformDirectory(storage_path=data_dir / DIRECTORY_FILE)
    store = ConversationStore(storage_path=data_dir / CONVERSATIONS_FILE)
    usage_log = UsageLog(storage_path=data_dir / USAGE_FILE)

    extractor = CaseParameterExtractor(llm_client, model=models.extraction_model)
    pubmed = PubMedClient(
        api_key=settings.ncbi_api_key,
        timeout=settings.literature_timeout_seconds,
    )

    orchestrator = InsightOrchestrator(
        extractor=extractor,
        embedder=embedder,
        similar_cases=SimilarCaseRetriever(directory, embedder, redactor),
        literature=LiteratureRetriever(pubmed, llm_client, model=models.query_model),
        experts=ExpertMatcher(directory),
        communities=CommunityMatcher(directory),
        organizations=OrganizationMatcher(directory),
        recommendations=RecommendationGenerator(llm_client, model=models.recommendation_model),
        branch_timeout=settings.branch_timeout_seconds,
        literature_timeout=settings.literature_branch_timeout_seconds,
        min_query_length=settings.min_query_length,
        queue_size=settings.stream_queue_size,
    )

    return ConversationManager(
        orchestrator=orchestrator,
        extractor=extractor,
        store=store,
        directory=directory,
        embedder=embedder,
        usage_log=usage_log,
        min_follow_up_length=settings.min_follow_up_length,
    )


def build_plan_generator(
    settings: InsightSettings,
    logger: Optional[logging.Logger] = None,
) -> PlanGenerator:
    store = PlanStore(storage_path=settings.data_dir / PLANS_FILE)
    return PlanGenerator(
        build_llm_client(settings, logger),
        store,
        model=settings.models.plan_model,
    )


def build_content_simplifier(
    settings: InsightSettings,
    logger: Optional[logging.Logger] = None,
) -> ContentSimplifier:
    return ContentSimplifier(
        build_llm_client(settings, logger),
        model=settings.models.simplify_model,
    )
