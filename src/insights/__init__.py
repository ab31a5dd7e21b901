"""
Insight Generation Layer.

Contains components for:
- Extractor: Case parameters from free text
- Retrievers: Similar cases and literature
- Matchers: Experts, communities and organizations
- Recommendation Generator: Actionable next steps with a fixed fallback
- Orchestrator: Concurrent fan-out, bundle assembly and streaming
- Conversation Manager: Persistence and follow-up enrichment
"""

from src.insights.communities import CommunityMatcher, OrganizationMatcher
from src.insights.conversation import AnalysisResult, ConversationManager
from src.insights.experts import ExpertMatcher
from src.insights.extractor import CaseParameterExtractor
from src.insights.literature import LiteratureRetriever
from src.insights.orchestrator import InsightOrchestrator, validate_query
from src.insights.recommendations import RecommendationGenerator, fallback_recommendations
from src.insights.similar_cases import SimilarCaseRetriever

__all__ = [
    "CommunityMatcher",
    "OrganizationMatcher",
    "AnalysisResult",
    "ConversationManager",
    "ExpertMatcher",
    "CaseParameterExtractor",
    "LiteratureRetriever",
    "InsightOrchestrator",
    "validate_query",
    "RecommendationGenerator",
    "fallback_recommendations",
    "SimilarCaseRetriever",
]
