"""Data models for the clinical insights pipeline."""

from src.models.conversation import Conversation, ConversationMessage, MessageRole
from src.models.errors import (
    ConversationNotFoundError,
    GenerationError,
    InputValidationError,
    InsightsError,
    LiteratureRepositoryError,
    PlanNotFoundError,
)
from src.models.insights import (
    CaseParameters,
    CommunityMatch,
    ExpertMatch,
    InsightBundle,
    LiteratureArticle,
    OrganizationMatch,
    Recommendation,
    RecommendationSet,
    SimilarCase,
)
from src.models.progress import ProgressStage, StreamEvent
from src.models.results import Branch, BranchError, BranchResult

__all__ = [
    "Branch",
    "BranchError",
    "BranchResult",
    "CaseParameters",
    "CommunityMatch",
    "Conversation",
    "ConversationMessage",
    "ConversationNotFoundError",
    "ExpertMatch",
    "GenerationError",
    "InputValidationError",
    "InsightBundle",
    "InsightsError",
    "LiteratureArticle",
    "LiteratureRepositoryError",
    "MessageRole",
    "OrganizationMatch",
    "PlanNotFoundError",
    "ProgressStage",
    "Recommendation",
    "RecommendationSet",
    "SimilarCase",
    "StreamEvent",
]
