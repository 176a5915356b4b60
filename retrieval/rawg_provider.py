"""RAWG adapter for game lookups."""

import logging
from datetime import date
from typing import Optional

from schemas.evidence import GameSummary
from .base_provider import HTTPProvider
from .errors import ProviderError

logger = logging.getLogger(__name__)


class RAWGProvider(HTTPProvider):
    """Game metadata adapter backed by the RAWG API."""

    name = "RAWG"
    BASE_URL = "https://api.rawg.io/api"
    PAGE_SIZE = 6

    def search_games(self, query: str) -> list[GameSummary]:
        """Search games by name."""
        if not query or not query.strip():
            return []
        games = self._guarded(self._fetch_search, query, label="game search")
        logger.info(f"Found {len(games)} games for: {query}")
        return games

    def trending_games(self) -> list[GameSummary]:
        """Top-rated games released this calendar year."""
        return self._guarded(self._fetch_trending, label="trending games")

    def _fetch_search(self, query: str) -> list[GameSummary]:
        data = self._get_json(
            f"{self.BASE_URL}/games",
            params={
                "key": self._require_key(),
                "search": query,
                "page_size": self.PAGE_SIZE,
            }
        )
        return self._parse_results(data)

    def _fetch_trending(self) -> list[GameSummary]:
        year = date.today().year
        data = self._get_json(
            f"{self.BASE_URL}/games",
            params={
                "key": self._require_key(),
                "dates": f"{year}-01-01,{year}-12-31",
                "ordering": "-rating",
                "page_size": self.PAGE_SIZE,
            }
        )
        return self._parse_results(data)

    def _parse_results(self, data) -> list[GameSummary]:
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected RAWG response format: {type(data)}")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ProviderError(f"Unexpected RAWG results format: {type(results)}")

        games = []
        for item in results[:self.PAGE_SIZE]:
            game = self._parse_game(item)
            if game:
                games.append(game)
        return games

    @staticmethod
    def _parse_game(item: dict) -> Optional[GameSummary]:
        """Map a RAWG game result to a GameSummary."""
        try:
            name = item.get("name")
            if not name:
                return None

            rating = float(item.get("rating") or 0.0)
            rating = max(0.0, min(5.0, rating))

            platforms = []
            for entry in item.get("platforms") or []:
                platform_name = (entry.get("platform") or {}).get("name")
                if platform_name:
                    platforms.append(platform_name)

            genres = [genre["name"] for genre in item.get("genres") or [] if genre.get("name")]

            return GameSummary(
                id=item.get("id"),
                name=name,
                rating=rating,
                released=item.get("released"),
                platforms=platforms,
                genres=genres,
                background_image=item.get("background_image"),
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to parse RAWG game: {e}")
            return None
