"""Per-conversation turn log and current-topic slot."""

import logging
from typing import List, Optional, Tuple

from .models import Conversation, ConversationTurn
from .store import ConversationStore

logger = logging.getLogger(__name__)


class ConversationState:
    """
    Conversation state over a persistence collaborator.

    Turns are append-only. The topic is a single slot that is overwritten,
    never merged.
    """

    ROLES = ("user", "assistant")
    TITLE_LENGTH = 50

    def __init__(self, store: ConversationStore):
        """
        Initialize conversation state.

        Args:
            store: Conversation store
        """
        self.store = store

    def get_or_create(self, conversation_id: Optional[str] = None) -> Conversation:
        """Load a conversation, creating it on first message."""
        if conversation_id:
            existing = self.store.get_conversation(conversation_id)
            if existing:
                return existing

        conversation = self.store.create_conversation(conversation_id=conversation_id)
        logger.info(f"Created new conversation: {conversation.conversation_id}")
        return conversation

    def append_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[dict] = None
    ) -> ConversationTurn:
        """Append a turn to the conversation log."""
        return self.store.create_turn(conversation_id, role, content, metadata)

    def recent_turns(self, conversation_id: str, n: int) -> List[ConversationTurn]:
        """
        Last ``n`` user/assistant turns, oldest first.

        Args:
            conversation_id: Conversation ID
            n: Maximum number of turns

        Returns:
            List of turns in chronological order
        """
        if n <= 0:
            return []
        turns = [turn for turn in self.store.list_turns(conversation_id) if turn.role in self.ROLES]
        return turns[-n:]

    def get_topic(self, conversation_id: str) -> Optional[str]:
        """Current topic, or None."""
        conversation = self.store.get_conversation(conversation_id)
        return conversation.current_topic if conversation else None

    def set_topic(self, conversation_id: str, topic: Optional[str]) -> None:
        """Overwrite the current topic."""
        self.store.update_conversation(conversation_id, current_topic=topic)

    def record_exchange(
        self,
        conversation_id: str,
        message: str,
        reply: str,
        metadata: Optional[dict] = None,
        topic: Optional[str] = None
    ) -> Tuple[ConversationTurn, ConversationTurn]:
        """
        Save a user message and its reply in one write.

        The topic slot is overwritten, and the first exchange also titles the
        conversation. Nothing is stored if the write fails.
        """
        return self.store.save_exchange(
            conversation_id,
            message,
            reply,
            assistant_metadata=metadata,
            current_topic=topic,
            first_title=self.title_for(message),
        )

    def title_for(self, first_message: str) -> str:
        """First 50 characters of the opening message, ellipsized when cut."""
        title = first_message[:self.TITLE_LENGTH]
        if len(first_message) > self.TITLE_LENGTH:
            title += "..."
        return title or "New Chat"
