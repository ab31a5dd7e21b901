"""
Conversation Store - persistence for conversations and feedback.

Conversations are kept in memory and written through to a JSON file.
Writes are serialized with an asyncio.Lock so two runs appending to the
same conversation cannot interleave. Unlike the usage log, storage
failures here propagate to the caller, and a write that cannot be persisted
leaves the in-memory state unchanged.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from src.models.conversation import Conversation, ConversationMessage, Feedback
from src.models.errors import ConversationNotFoundError
from src.utils.logging import get_logger


class ConversationStore:
    """
    JSON-backed conversation store.

    Storage file layout:
        {"conversations": {id: {...}}, "feedback": [...]}
    """

    def __init__(
        self,
        storage_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the store.

        Args:
            storage_path: Path to JSON file for persistence (optional)
            logger: Optional injected logger
        """
        self.storage_path = storage_path
        self.logger = logger or get_logger("storage.conversations")
        self._conversations: dict[str, Conversation] = {}
        self._feedback: list[Feedback] = []
        self._lock = asyncio.Lock()

        if storage_path and storage_path.exists():
            self._load_from_storage()

    async def create(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            self._commit({**self._conversations, conversation.id: conversation})
        self.logger.debug(f"Created conversation {conversation.id}")
        return conversation

    async def find(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    async def append_messages(
        self,
        conversation_id: str,
        messages: list[ConversationMessage],
    ) -> Conversation:
        """
        Append messages in order.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        async with self._lock:
            conversation = self._get_or_raise(conversation_id)
            updated = conversation.model_copy(
                update={"messages": [*conversation.messages, *messages]}
            )
            self._commit({**self._conversations, conversation_id: updated})
        return updated

    async def update_timestamp(self, conversation_id: str) -> None:
        async with self._lock:
            conversation = self._get_or_raise(conversation_id)
            updated = conversation.model_copy(update={"updated_at": datetime.now(timezone.utc)})
            self._commit({**self._conversations, conversation_id: updated})

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        """A user's conversations, most recently updated first."""
        owned = [c for c in self._conversations.values() if c.user_id == user_id]
        owned.sort(key=lambda c: c.updated_at, reverse=True)
        return owned

    async def delete(self, conversation_id: str) -> bool:
        async with self._lock:
            if conversation_id not in self._conversations:
                return False
            self._commit({
                conv_id: conv
                for conv_id, conv in self._conversations.items()
                if conv_id != conversation_id
            })
        return True

    async def add_feedback(self, feedback: Feedback) -> Feedback:
        """Store feedback, replacing the user's earlier feedback on the conversation."""
        async with self._lock:
            kept = [
                f for f in self._feedback
                if not (f.user_id == feedback.user_id and f.conversation_id == feedback.conversation_id)
            ]
            self._commit(self._conversations, [*kept, feedback])
        return feedback

    async def feedback_for(self, conversation_id: str) -> list[Feedback]:
        return [f for f in self._feedback if f.conversation_id == conversation_id]

    def _get_or_raise(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def _commit(
        self,
        conversations: dict[str, Conversation],
        feedback: Optional[list[Feedback]] = None,
    ) -> None:
        """Persist the new state, then swap it in. Caller holds the lock."""
        if feedback is None:
            feedback = self._feedback
        self._save_to_storage(conversations, feedback)
        self._conversations = conversations
        self._feedback = feedback

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load_from_storage(self):
        """Load conversations from JSON file."""
        data = json.loads(self.storage_path.read_text())
        for conv_id, conv_data in data.get("conversations", {}).items():
            self._conversations[conv_id] = Conversation.model_validate(conv_data)
        self._feedback = [Feedback.model_validate(f) for f in data.get("feedback", [])]
        self.logger.info(f"Loaded {len(self._conversations)} conversations from storage")

    def _save_to_storage(
        self,
        conversations: dict[str, Conversation],
        feedback: list[Feedback],
    ):
        """Write the given state to the JSON file, if one is configured."""
        if not self.storage_path:
            return
        data = {
            "conversations": {
                conv_id: conv.model_dump(mode="json")
                for conv_id, conv in conversations.items()
            },
            "feedback": [f.model_dump(mode="json") for f in feedback],
        }
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(data, indent=2))
