"""API schema modules."""

from api.schemas.insights import (
    AnalyzeRequest,
    ConversationResponse,
    ConversationSummaryResponse,
    FeedbackRequest,
    FeedbackResponse,
    FollowUpRequest,
    FollowUpResponse,
    InsightResponse,
    PlanRequest,
    SimplifyRequest,
    SimplifyResponse,
)

__all__ = [
    "AnalyzeRequest",
    "ConversationResponse",
    "ConversationSummaryResponse",
    "FeedbackRequest",
    "FeedbackResponse",
    "FollowUpRequest",
    "FollowUpResponse",
    "InsightResponse",
    "PlanRequest",
    "SimplifyRequest",
    "SimplifyResponse",
]
