"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

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
from src.llm.client import MockLLMClient
from src.llm.embeddings import MockEmbeddingClient
from src.models.insights import CaseParameters
from src.models.literature import PubMedArticle, PubMedSearchResult
from src.models.platform import (
    Community,
    Organization,
    ProfessionalProfile,
    PublishedCase,
)
from src.privacy.redaction import RedactionService
from src.storage.conversation_store import ConversationStore
from src.storage.directory import PlatformDirectory
from src.storage.plan_store import PlanStore
from src.storage.usage_log import UsageLog


# ============================================================================
# Canned LLM output
# ============================================================================

EXTRACTION_JSON = json.dumps({
    "age": 6,
    "diagnosis": ["autism"],
    "interventions": ["ABA"],
    "challenges": ["tantrums"],
    "goals": ["communication"],
})

RECOMMENDATIONS_JSON = json.dumps({
    "recommendations": [
        {
            "title": "Functional Communication Training",
            "description": "Teach replacement communication for tantrum triggers.",
            "action_steps": ["Identify triggers", "Teach a request card"],
            "priority": "high",
            "timeline": "6-8 weeks",
            "availability": {"region": True, "telehealth": True, "languages": ["English"]},
            "cost_estimate": "Varies",
        },
    ],
    "alternatives": [
        {
            "title": "Visual Schedules",
            "description": "Predictable routines reduce transition distress.",
            "actionSteps": ["Print a daily schedule"],
            "priority": "low",
        },
    ],
})

PLAN_JSON = json.dumps({
    "title": "Communication Training Plan",
    "weeks": [
        {"week": 1, "focus": "Baseline", "activities": ["Log tantrum triggers"], "goals": "Know the triggers"},
        {"week": 2, "focus": "Request card", "activities": ["Model the card", "Prompt use"], "goals": ["Card used daily"]},
    ],
})


@pytest.fixture
def case_params():
    """Typical extracted parameters."""
    return CaseParameters(
        age="6",
        diagnosis=["autism"],
        interventions=["ABA"],
        challenges=["tantrums"],
        goals=["communication"],
    )


@pytest.fixture
def llm_client():
    """Mock LLM keyed on distinctive phrases of each prompt."""
    return MockLLMClient(responses={
        "Extract clinical case parameters": EXTRACTION_JSON,
        "Generate a PubMed search query": "autism[MeSH] AND ABA",
        "Generate 3-5 detailed, actionable recommendations": RECOMMENDATIONS_JSON,
    })


@pytest.fixture
def failing_llm_client():
    return MockLLMClient(error=RuntimeError("provider down"))


@pytest.fixture
def embedder():
    return MockEmbeddingClient(vector=[1.0, 0.0, 0.0])


@pytest.fixture
def empty_embedder():
    return MockEmbeddingClient(vector=[])


# ============================================================================
# Literature repository
# ============================================================================

def make_pubmed_article(pmid: str, title: str, abstract: str = "", year: int = 2020, **kwargs):
    return PubMedArticle(
        pmid=pmid,
        title=title,
        abstract=abstract,
        year=year,
        authors=kwargs.pop("authors", ["Smith J"]),
        journal=kwargs.pop("journal", "Pediatrics"),
        **kwargs,
    )


@pytest.fixture
def pubmed_repository():
    """Repository returning two ids and two records."""
    repository = MagicMock()
    repository.search = AsyncMock(return_value=PubMedSearchResult(
        found=True, pmids=["1", "2"], total_count=2, query_used="q",
    ))
    repository.fetch_multiple = AsyncMock(return_value=[
        make_pubmed_article("1", "Parent training outcomes", "General outcomes.", year=2015),
        make_pubmed_article("2", "ABA for autism", "Autism intervention study.", year=2015),
    ])
    return repository


@pytest.fixture
def failing_repository():
    repository = MagicMock()
    repository.search = AsyncMock(side_effect=RuntimeError("network down"))
    repository.fetch_multiple = AsyncMock(side_effect=RuntimeError("network down"))
    return repository


# ============================================================================
# Platform directory
# ============================================================================

@pytest.fixture
def directory():
    """Small in-memory directory with cases, professionals and communities."""
    d = PlatformDirectory()

    d.add_case(PublishedCase(
        id="case-1",
        author_id="author-1",
        author_name="Dana Reyes",
        author_role="THERAPIST",
        author_years_of_experience=8,
        title="Reducing tantrums",
        content="A child with autism and tantrums responded to visual supports. Contact dana@example.com.",
        tags=["autism", "behavior"],
        community_id="comm-1",
        embedding=[1.0, 0.0, 0.0],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    ))
    d.add_case(PublishedCase(
        id="case-2",
        author_id="author-2",
        author_role="EDUCATOR",
        title="Classroom transitions",
        content="Transitions were hard; timers helped.",
        tags=["school"],
        embedding=[0.8, 0.6, 0.0],
        created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
    ))
    d.add_case(PublishedCase(
        id="case-pending",
        author_id="author-3",
        title="Pending case",
        content="Not yet moderated.",
        moderation_status="PENDING",
        embedding=[1.0, 0.0, 0.0],
    ))
    d.add_case(PublishedCase(
        id="case-own",
        author_id="requester",
        title="My own case",
        content="Autism question.",
        embedding=[1.0, 0.0, 0.0],
    ))

    d.add_professional(ProfessionalProfile(
        id="pro-1",
        name="Dr. Autism Specialist",
        specializations=["Autism", "Behavior therapy"],
        trust_score=0.9,
        years_of_experience=12,
        post_count=4,
        comment_count=10,
        embedding=[1.0, 0.0, 0.0],
    ))
    d.add_professional(ProfessionalProfile(
        id="pro-2",
        name="Speech Therapist",
        role="EDUCATOR",
        specializations=["Communication"],
        trust_score=0.7,
        embedding=[0.0, 1.0, 0.0],
    ))
    d.add_professional(ProfessionalProfile(
        id="pro-unverified",
        name="Pending Pro",
        verification_status="PENDING",
        specializations=["Autism"],
    ))

    d.add_organization(Organization(id="org-1", name="Autism Alliance", slug="autism-alliance"))
    d.add_organization(Organization(id="org-2", name="Parents Network", slug="parents-network"))

    d.add_community(Community(
        id="comm-1", name="Autism Parents", slug="autism-parents",
        description="Support for families", tags=["autism", "support"],
        member_count=500, organization_id="org-1",
    ))
    d.add_community(Community(
        id="comm-2", name="General Parenting", slug="general-parenting",
        description="Everyday parenting", tags=["parenting", "general"],
        member_count=900, organization_id="org-2",
    ))
    d.add_community(Community(
        id="comm-3", name="Sleep Help", slug="sleep-help",
        description="Bedtime routines and tantrums at night", tags=["sleep"],
        member_count=100, organization_id="org-2",
    ))
    return d


# ============================================================================
# Pipeline wiring
# ============================================================================

def build_orchestrator(llm, embedder, directory, repository, **kwargs):
    extractor = CaseParameterExtractor(llm)
    return InsightOrchestrator(
        extractor=extractor,
        embedder=embedder,
        similar_cases=SimilarCaseRetriever(directory, embedder, RedactionService()),
        literature=LiteratureRetriever(repository, llm),
        experts=ExpertMatcher(directory),
        communities=CommunityMatcher(directory),
        organizations=OrganizationMatcher(directory),
        recommendations=RecommendationGenerator(llm),
        **kwargs,
    )


@pytest.fixture
def orchestrator(llm_client, embedder, directory, pubmed_repository):
    return build_orchestrator(llm_client, embedder, directory, pubmed_repository)


@pytest.fixture
def conversation_store(tmp_path):
    return ConversationStore(storage_path=tmp_path / "conversations.json")


@pytest.fixture
def usage_log():
    return UsageLog()


@pytest.fixture
def manager(orchestrator, llm_client, conversation_store, directory, embedder, usage_log):
    return ConversationManager(
        orchestrator=orchestrator,
        extractor=CaseParameterExtractor(llm_client),
        store=conversation_store,
        directory=directory,
        embedder=embedder,
        usage_log=usage_log,
    )


@pytest.fixture
def orchestrator_factory():
    """Build an orchestrator from custom collaborators."""
    return build_orchestrator


@pytest.fixture
def plan_store(tmp_path):
    return PlanStore(storage_path=tmp_path / "plans.json")


@pytest.fixture
def planner(plan_store):
    return PlanGenerator(MockLLMClient(default_response=PLAN_JSON), plan_store)


@pytest.fixture
def simplifier():
    return ContentSimplifier(MockLLMClient(default_response="Your child may get upset when plans change."))
