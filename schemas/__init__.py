"""Pydantic schemas for the mode-routing chat assistant."""

from .context import Mode, AdapterKind, ContextBag
from .evidence import MovieSummary, PersonSummary, GameSummary, SearchHit
from .responses import (
    ClassifierStrategy,
    Generation,
    Entities,
    ClassifierOutput,
    ComposerOutput,
    ChatReply,
)

__all__ = [
    "Mode",
    "AdapterKind",
    "ContextBag",
    "MovieSummary",
    "PersonSummary",
    "GameSummary",
    "SearchHit",
    "ClassifierStrategy",
    "Generation",
    "Entities",
    "ClassifierOutput",
    "ComposerOutput",
    "ChatReply",
]
