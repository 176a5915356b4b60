"""Mode and context bag schemas."""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel

from .evidence import MovieSummary, PersonSummary, GameSummary, SearchHit


class Mode(str, Enum):
    """Conversational posture that drives adapter selection and reply templates."""
    RESEARCH = "research"
    CINEPHILE = "cinephile"
    GAME = "game"
    CHAT = "chat"


class AdapterKind(str, Enum):
    """External data sources the aggregator can consult."""
    MOVIES = "movies"
    PEOPLE = "people"
    GAMES = "games"
    WEB_SEARCH = "web_search"


class ContextBag(BaseModel):
    """Per-request collection of normalized external data.

    A field is None when its adapter was not invoked or came back empty.
    """
    movies: Optional[list[MovieSummary]] = None
    people: Optional[list[PersonSummary]] = None
    games: Optional[list[GameSummary]] = None
    search_results: Optional[list[SearchHit]] = None

    def is_empty(self) -> bool:
        """True when no adapter produced anything."""
        return not (self.movies or self.people or self.games or self.search_results)

    def to_metadata(self) -> dict[str, Any]:
        """Audit payload stored alongside assistant turns."""
        return {
            "sources": [hit.model_dump() for hit in self.search_results or []],
            "movies": [movie.model_dump() for movie in self.movies or []],
            "games": [game.model_dump() for game in self.games or []],
            "people": [person.model_dump() for person in self.people or []],
        }
