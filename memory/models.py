"""Memory data models."""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict, Field


class ConversationTurn(BaseModel):
    """A single turn in a conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    turn_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None  # Context bag and generation mode for assistant turns


class Conversation(BaseModel):
    """A complete conversation."""
    conversation_id: str
    title: str = "New Chat"
    current_topic: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    turns: List[ConversationTurn] = Field(default_factory=list)
