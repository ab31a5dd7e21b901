"""Clinical insights API schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.models.conversation import ConversationMessage
from src.models.insights import InsightBundle, Recommendation


class AnalyzeRequest(BaseModel):
    """Request to analyze a new case."""
    query: str = Field(..., description="Free-text clinical case description")
    user_id: str = Field(..., min_length=1, description="Requesting user")


class FollowUpRequest(BaseModel):
    """Follow-up question within an existing conversation."""
    query: str = Field(..., description="Follow-up question")
    user_id: str = Field(..., min_length=1)


class FeedbackRequest(BaseModel):
    """Thumbs up / down on a conversation."""
    conversation_id: str
    user_id: str = Field(..., min_length=1)
    value: int = Field(..., description="1 or -1")
    comment: Optional[str] = None


class InsightResponse(InsightBundle):
    """Insight bundle plus the conversation it was stored in."""
    conversation_id: str


class ConversationSummaryResponse(BaseModel):
    id: str
    title: str
    updated_at: datetime
    message_count: int


class ConversationResponse(BaseModel):
    """Full conversation with ordered messages."""
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: list[ConversationMessage]


class FollowUpResponse(BaseModel):
    id: str
    question: str
    answer: str
    created_at: datetime


class FeedbackResponse(BaseModel):
    conversation_id: str
    value: int
    comment: Optional[str] = None
    created_at: datetime


class PlanRequest(BaseModel):
    """Turn one recommendation into a week-by-week plan."""
    user_id: str = Field(..., min_length=1)
    recommendation: Recommendation


class SimplifyRequest(BaseModel):
    """Clinical text to rewrite for parents."""
    content: str


class SimplifyResponse(BaseModel):
    text: str
    simplified: bool = Field(..., description="False when the original text was returned")
