"""
Conversation models.

A conversation holds the ordered query/response history for one user.
Assistant messages carry the serialized insight bundle as metadata.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.models.insights import CaseParameters, InsightBundle


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(BaseModel):
    """A single message in a conversation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: MessageRole
    content: str
    metadata: Optional[dict[str, Any]] = Field(
        default=None,
        description="Serialized InsightBundle for assistant messages",
    )
    created_at: datetime = Field(default_factory=_now)

    @classmethod
    def from_user(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def from_assistant(cls, content: str, bundle: InsightBundle) -> "ConversationMessage":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            metadata=bundle.model_dump(mode="json"),
        )

    def case_parameters(self) -> Optional[CaseParameters]:
        """Case parameters stored with this message, if any."""
        if not self.metadata or "case_analysis" not in self.metadata:
            return None
        return CaseParameters.model_validate(self.metadata["case_analysis"])


class Conversation(BaseModel):
    """Ordered query/response history owned by a single user."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    title: str
    messages: list[ConversationMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def latest_assistant_message(self) -> Optional[ConversationMessage]:
        for message in reversed(self.messages):
            if message.role == MessageRole.ASSISTANT:
                return message
        return None


class ConversationSummary(BaseModel):
    """History listing entry."""

    id: str
    title: str
    updated_at: datetime
    message_count: int


class FollowUpExchange(BaseModel):
    """A follow-up question paired with its answer."""

    id: str
    question: str
    answer: str
    created_at: datetime


class Feedback(BaseModel):
    """Thumbs up / down on a conversation."""

    user_id: str
    conversation_id: str
    value: int = Field(..., description="1 or -1")
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class RelatedPost(BaseModel):
    """A community post related to a conversation's case."""

    id: str
    title: str
    content: str
    author_name: str
    author_role: str
    tags: list[str] = Field(default_factory=list)
    upvotes: int = 0
    view_count: int = 0
    comment_count: int = 0
    created_at: datetime
    community_name: Optional[str] = None
    community_slug: Optional[str] = None
