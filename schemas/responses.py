"""Agent response schemas."""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field
from .context import Mode, AdapterKind, ContextBag


class ClassifierStrategy(str, Enum):
    """Which classifier produced a routing decision."""
    KEYWORD = "keyword"
    MODEL = "model"


class Generation(str, Enum):
    """How a reply was produced."""
    MODEL = "model"
    FALLBACK = "fallback"


class Entities(BaseModel):
    """Named subjects pulled out of a message."""
    movie: Optional[str] = None
    game: Optional[str] = None
    person: Optional[str] = None
    topic: Optional[str] = None

    def primary_subject(self) -> Optional[str]:
        """First non-empty entity, most specific first."""
        for value in (self.movie, self.game, self.person, self.topic):
            if value and value.strip():
                return value.strip()
        return None


class ClassifierOutput(BaseModel):
    """Output from the intent classifier."""
    mode: Mode
    entities: Entities = Field(default_factory=Entities)
    suggested_sources: set[AdapterKind] = Field(default_factory=set)
    question_type: Optional[str] = None
    topic: Optional[str] = Field(None, description="Current topic after the continuity rule")
    strategy: ClassifierStrategy = ClassifierStrategy.KEYWORD


class ComposerOutput(BaseModel):
    """Output from a composer."""
    response_text: str
    generation: Generation = Generation.FALLBACK


class ChatReply(BaseModel):
    """Result of processing one user message."""
    conversation_id: str
    content: str
    mode: Mode
    topic: Optional[str] = None
    generation: Generation = Generation.FALLBACK
    context: ContextBag = Field(default_factory=ContextBag)
    metadata: dict[str, Any] = Field(default_factory=dict)
