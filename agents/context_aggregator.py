"""Context aggregator that fans out to the data adapters for a mode."""

import concurrent.futures
import logging
from functools import partial
from typing import Callable, Iterable, Optional

from retrieval.tmdb_provider import TMDbProvider
from retrieval.rawg_provider import RAWGProvider
from retrieval.serper_provider import SerperProvider
from schemas.context import Mode, AdapterKind, ContextBag
from .router import load_keywords, contains_keyword

logger = logging.getLogger(__name__)


class ContextAggregator:
    """
    Collects external data for one message.

    Adapter calls run concurrently and independently; a failing adapter only
    empties its own field. ``gather`` never raises.
    """

    MODE_SOURCES = {
        Mode.RESEARCH: {AdapterKind.WEB_SEARCH},
        Mode.CINEPHILE: {AdapterKind.MOVIES},
        Mode.GAME: {AdapterKind.GAMES},
        Mode.CHAT: set(),
    }

    def __init__(
        self,
        movie_provider: TMDbProvider,
        game_provider: RAWGProvider,
        search_provider: SerperProvider,
        trending_keywords: Optional[list[str]] = None,
        max_workers: int = 4,
        timeout: Optional[float] = 30.0
    ):
        """
        Initialize aggregator.

        Args:
            movie_provider: Movie/people adapter
            game_provider: Game adapter
            search_provider: Web search adapter
            trending_keywords: Marker words that select trending lookups
            max_workers: Upper bound on concurrent adapter calls
            timeout: Overall wall-clock bound for one gather in seconds
        """
        self.movie_provider = movie_provider
        self.game_provider = game_provider
        self.search_provider = search_provider
        self.trending_keywords = (
            trending_keywords if trending_keywords is not None
            else load_keywords().get("trending", [])
        )
        self.max_workers = max_workers
        self.timeout = timeout

    def gather(
        self,
        mode: Mode,
        message: str,
        hinted_sources: Optional[Iterable[AdapterKind]] = None
    ) -> ContextBag:
        """
        Query the adapters implied by ``mode`` plus any hinted ones.

        Args:
            mode: Classified mode
            message: Raw user message (used as the search query)
            hinted_sources: Extra adapters suggested by the classifier

        Returns:
            ContextBag; fields are None when not queried or empty
        """
        sources = set(self.MODE_SOURCES[mode]) | set(hinted_sources or ())
        calls = self._plan_calls(sources, message or "")

        if not calls:
            logger.info(f"No adapters to query for mode={mode.value}")
            return ContextBag()

        logger.info(f"Gathering context for mode={mode.value}: {sorted(calls)}")
        results = self._run_concurrently(calls)

        return ContextBag(**{field: items or None for field, items in results.items()})

    def _plan_calls(self, sources: set[AdapterKind], message: str) -> dict[str, Callable[[], list]]:
        """Map ContextBag field names to zero-argument adapter calls."""
        has_query = bool(message.strip())
        trending = contains_keyword(message.lower(), self.trending_keywords)
        calls: dict[str, Callable[[], list]] = {}

        if AdapterKind.MOVIES in sources:
            if trending:
                calls["movies"] = self.movie_provider.trending_movies
            elif has_query:
                calls["movies"] = partial(self.movie_provider.search_movies, message)
                calls["people"] = partial(self.movie_provider.search_people, message)

        if AdapterKind.PEOPLE in sources and has_query:
            calls.setdefault("people", partial(self.movie_provider.search_people, message))

        if AdapterKind.GAMES in sources:
            if trending:
                calls["games"] = self.game_provider.trending_games
            elif has_query:
                calls["games"] = partial(self.game_provider.search_games, message)

        if AdapterKind.WEB_SEARCH in sources and has_query:
            calls["search_results"] = partial(self.search_provider.search, message)

        return calls

    def _run_concurrently(self, calls: dict[str, Callable[[], list]]) -> dict[str, list]:
        results = {field: [] for field in calls}
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=min(len(calls), self.max_workers),
            thread_name_prefix="adapter"
        )
        try:
            futures = {executor.submit(call): field for field, call in calls.items()}
            done, pending = concurrent.futures.wait(futures, timeout=self.timeout)

            for future in pending:
                logger.warning(f"Adapter call for {futures[future]} timed out")

            for future in done:
                field = futures[future]
                try:
                    items = future.result()
                except Exception as e:
                    logger.warning(f"Adapter call for {field} failed: {e}")
                    continue
                if isinstance(items, list):
                    results[field] = items
                else:
                    logger.warning(f"Adapter call for {field} returned {type(items).__name__}, expected list")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results
