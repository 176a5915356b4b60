"""Normalized records returned by the external data adapters."""

from typing import Optional
from pydantic import BaseModel, Field


class MovieSummary(BaseModel):
    """Movie as returned by TMDb, trimmed to what replies need."""
    id: Optional[int] = None
    title: str
    overview: str = ""
    release_date: Optional[str] = None
    vote_average: float = Field(0.0, ge=0.0, le=10.0)
    poster_path: Optional[str] = None
    genre_ids: list[int] = Field(default_factory=list)

    @property
    def year(self) -> Optional[str]:
        """Release year, if the date looks usable."""
        if self.release_date and len(self.release_date) >= 4 and self.release_date[:4].isdigit():
            return self.release_date[:4]
        return None


class PersonSummary(BaseModel):
    """Cast or crew member from a TMDb people search."""
    id: Optional[int] = None
    name: str
    known_for_department: Optional[str] = None
    known_for: list[str] = Field(default_factory=list, description="Titles the person is known for")
    popularity: Optional[float] = None


class GameSummary(BaseModel):
    """Game as returned by RAWG."""
    id: Optional[int] = None
    name: str
    rating: float = Field(0.0, ge=0.0, le=5.0)
    released: Optional[str] = None
    platforms: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    background_image: Optional[str] = None


class SearchHit(BaseModel):
    """Organic web search result."""
    title: str
    link: str
    snippet: str = ""
    source: str = ""
