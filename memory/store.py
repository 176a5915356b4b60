"""Conversation persistence interface and an in-process implementation."""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Tuple

from .models import Conversation, ConversationTurn

_UNSET = object()


class PersistenceError(RuntimeError):
    """The conversation store could not read or write."""


class TurnNotSavedError(PersistenceError):
    """A reply was produced but the turn could not be stored."""

    def __init__(self, message: str, reply=None):
        super().__init__(message)
        self.reply = reply


class ConversationStore(ABC):
    """Storage collaborator for conversations and their turns."""

    @abstractmethod
    def create_conversation(
        self,
        conversation_id: Optional[str] = None,
        title: str = "New Chat"
    ) -> Conversation:
        """Create an empty conversation, generating an id when none is given."""

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation with all turns, or None."""

    @abstractmethod
    def create_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[dict] = None
    ) -> ConversationTurn:
        """Append a turn and bump the conversation's updated_at."""

    @abstractmethod
    def save_exchange(
        self,
        conversation_id: str,
        user_content: str,
        assistant_content: str,
        assistant_metadata: Optional[dict] = None,
        current_topic: Optional[str] = None,
        first_title: Optional[str] = None
    ) -> Tuple[ConversationTurn, ConversationTurn]:
        """
        Append a user turn and its reply, and overwrite the topic, all or nothing.

        ``first_title`` is applied only when the conversation had no turns.
        """

    @abstractmethod
    def list_turns(self, conversation_id: str) -> List[ConversationTurn]:
        """All turns of a conversation, oldest first."""

    @abstractmethod
    def update_conversation(
        self,
        conversation_id: str,
        current_topic=_UNSET,
        title=_UNSET
    ) -> Optional[Conversation]:
        """Overwrite the topic and/or title. Omitted fields are left alone."""

    @abstractmethod
    def list_conversations(self, limit: int = 50) -> List[Conversation]:
        """Conversations without turns, most recently updated first."""

    @abstractmethod
    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its turns. False when it did not exist."""


class InMemoryConversationStore(ConversationStore):
    """Thread-safe store kept in process memory."""

    def __init__(self):
        self._conversations: dict[str, Conversation] = {}
        self._turns: dict[str, List[ConversationTurn]] = {}
        self._lock = threading.Lock()

    def create_conversation(
        self,
        conversation_id: Optional[str] = None,
        title: str = "New Chat"
    ) -> Conversation:
        conversation_id = conversation_id or str(uuid.uuid4())
        now = datetime.now()
        conversation = Conversation(
            conversation_id=conversation_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if conversation_id in self._conversations:
                raise PersistenceError(f"Conversation already exists: {conversation_id}")
            self._conversations[conversation_id] = conversation
            self._turns[conversation_id] = []
        return conversation.model_copy()

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            return conversation.model_copy(update={"turns": list(self._turns[conversation_id])})

    def create_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[dict] = None
    ) -> ConversationTurn:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise PersistenceError(f"Conversation not found: {conversation_id}")

            turns = self._turns[conversation_id]
            turn = ConversationTurn(
                turn_id=len(turns) + 1,
                role=role,
                content=content,
                metadata=metadata,
            )
            turns.append(turn)
            self._conversations[conversation_id] = conversation.model_copy(
                update={"updated_at": turn.created_at}
            )
        return turn

    def save_exchange(
        self,
        conversation_id: str,
        user_content: str,
        assistant_content: str,
        assistant_metadata: Optional[dict] = None,
        current_topic: Optional[str] = None,
        first_title: Optional[str] = None
    ) -> Tuple[ConversationTurn, ConversationTurn]:
        now = datetime.now()

        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise PersistenceError(f"Conversation not found: {conversation_id}")

            turns = self._turns[conversation_id]
            # Both turns are built before anything is stored
            user_turn = ConversationTurn(
                turn_id=len(turns) + 1,
                role="user",
                content=user_content,
                created_at=now,
            )
            assistant_turn = ConversationTurn(
                turn_id=len(turns) + 2,
                role="assistant",
                content=assistant_content,
                created_at=now,
                metadata=assistant_metadata,
            )

            updates = {"updated_at": now, "current_topic": current_topic}
            if first_title and not turns:
                updates["title"] = first_title

            turns.extend([user_turn, assistant_turn])
            self._conversations[conversation_id] = conversation.model_copy(update=updates)
        return user_turn, assistant_turn

    def list_turns(self, conversation_id: str) -> List[ConversationTurn]:
        with self._lock:
            return list(self._turns.get(conversation_id, []))

    def update_conversation(
        self,
        conversation_id: str,
        current_topic=_UNSET,
        title=_UNSET
    ) -> Optional[Conversation]:
        updates = {"updated_at": datetime.now()}
        if current_topic is not _UNSET:
            updates["current_topic"] = current_topic
        if title is not _UNSET:
            updates["title"] = title

        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            conversation = conversation.model_copy(update=updates)
            self._conversations[conversation_id] = conversation
        return conversation.model_copy()

    def list_conversations(self, limit: int = 50) -> List[Conversation]:
        with self._lock:
            conversations = list(self._conversations.values())
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations[:limit]

    def delete_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            self._turns.pop(conversation_id, None)
            return self._conversations.pop(conversation_id, None) is not None
