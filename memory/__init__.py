"""Memory system for conversation persistence."""

from .models import Conversation, ConversationTurn
from .store import (
    ConversationStore,
    InMemoryConversationStore,
    PersistenceError,
    TurnNotSavedError,
)
from .sqlite_store import SQLiteConversationStore
from .context_manager import ConversationState

__all__ = [
    "Conversation",
    "ConversationTurn",
    "ConversationStore",
    "InMemoryConversationStore",
    "PersistenceError",
    "TurnNotSavedError",
    "SQLiteConversationStore",
    "ConversationState",
]
