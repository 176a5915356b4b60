"""TMDb adapter for movie and people lookups."""

import logging
import re
from typing import Optional

from schemas.evidence import MovieSummary, PersonSummary
from .base_provider import HTTPProvider
from .errors import ProviderError

logger = logging.getLogger(__name__)


class TMDbProvider(HTTPProvider):
    """
    Movie metadata adapter backed by The Movie Database API.

    Every public method returns a list and never raises.
    """

    name = "TMDb"
    BASE_URL = "https://api.themoviedb.org/3"

    SEARCH_LIMIT = 8
    TRENDING_LIMIT = 6
    PEOPLE_LIMIT = 5

    # Retried when a plain search finds nothing
    ALTERNATIVE_QUERIES = {
        "f1": ["rush", "ford v ferrari", "senna", "grand prix"],
        "racing": ["rush", "ford v ferrari", "senna", "grand prix"],
    }
    RECENT_PATTERN = re.compile(r"\b(recent|new|latest)\b")

    def search_movies(self, query: str) -> list[MovieSummary]:
        """
        Search movies by title.

        Falls back to alternative queries, or to trending titles for
        "recent"/"new" requests, when the plain search is empty.
        """
        if not query or not query.strip():
            return []

        movies = self._guarded(self._fetch_movie_search, query, label="movie search")
        if movies:
            logger.info(f"Found {len(movies)} movies for: {query}")
            return movies

        query_lower = query.lower()
        if self.RECENT_PATTERN.search(query_lower):
            return self.trending_movies()

        for keyword, alternatives in self.ALTERNATIVE_QUERIES.items():
            if keyword not in query_lower:
                continue
            for alt_query in alternatives:
                movies = self._guarded(self._fetch_movie_search, alt_query, label="movie search")
                if movies:
                    logger.info(f"Found {len(movies)} movies with alternative query: {alt_query}")
                    return movies

        return []

    def trending_movies(self) -> list[MovieSummary]:
        """Movies trending this week."""
        return self._guarded(self._fetch_trending, label="trending movies")

    def search_people(self, query: str) -> list[PersonSummary]:
        """Search actors, directors and other crew."""
        if not query or not query.strip():
            return []
        return self._guarded(self._fetch_people_search, query, label="people search")

    def _fetch_movie_search(self, query: str) -> list[MovieSummary]:
        data = self._get_json(
            f"{self.BASE_URL}/search/movie",
            params={
                "api_key": self._require_key(),
                "query": query,
                "language": "en-US",
                "page": 1,
                "include_adult": "false",
            }
        )
        return self._parse_results(data, self._parse_movie, self.SEARCH_LIMIT)

    def _fetch_trending(self) -> list[MovieSummary]:
        data = self._get_json(
            f"{self.BASE_URL}/trending/movie/week",
            params={"api_key": self._require_key()}
        )
        return self._parse_results(data, self._parse_movie, self.TRENDING_LIMIT)

    def _fetch_people_search(self, query: str) -> list[PersonSummary]:
        data = self._get_json(
            f"{self.BASE_URL}/search/person",
            params={
                "api_key": self._require_key(),
                "query": query,
                "language": "en-US",
                "page": 1,
                "include_adult": "false",
            }
        )
        return self._parse_results(data, self._parse_person, self.PEOPLE_LIMIT)

    @staticmethod
    def _parse_results(data, parse_item, limit: int) -> list:
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected TMDb response format: {type(data)}")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ProviderError(f"Unexpected TMDb results format: {type(results)}")

        parsed = []
        for item in results:
            result = parse_item(item)
            if result:
                parsed.append(result)
            if len(parsed) >= limit:
                break
        return parsed

    @staticmethod
    def _parse_movie(item: dict) -> Optional[MovieSummary]:
        """Map a TMDb movie (or TV) result to a MovieSummary."""
        try:
            title = item.get("title") or item.get("name")
            if not title:
                return None

            vote_average = float(item.get("vote_average") or 0.0)
            vote_average = max(0.0, min(10.0, vote_average))

            return MovieSummary(
                id=item.get("id"),
                title=title,
                overview=item.get("overview") or "",
                release_date=item.get("release_date") or item.get("first_air_date") or None,
                vote_average=vote_average,
                poster_path=item.get("poster_path"),
                genre_ids=item.get("genre_ids") or [],
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to parse TMDb movie: {e}")
            return None

    @staticmethod
    def _parse_person(item: dict) -> Optional[PersonSummary]:
        """Map a TMDb person result to a PersonSummary."""
        try:
            name = item.get("name")
            if not name:
                return None

            known_for = []
            for work in item.get("known_for") or []:
                work_title = work.get("title") or work.get("name")
                if work_title:
                    known_for.append(work_title)

            popularity = item.get("popularity")
            return PersonSummary(
                id=item.get("id"),
                name=name,
                known_for_department=item.get("known_for_department"),
                known_for=known_for,
                popularity=float(popularity) if popularity is not None else None,
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to parse TMDb person: {e}")
            return None
