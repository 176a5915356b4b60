"""Serper adapter for Google web search."""

import logging
from typing import Optional
from urllib.parse import urlparse

from schemas.evidence import SearchHit
from .base_provider import HTTPProvider
from .errors import ProviderError

logger = logging.getLogger(__name__)


class SerperProvider(HTTPProvider):
    """Web search adapter backed by google.serper.dev."""

    name = "Serper"
    SEARCH_URL = "https://google.serper.dev/search"
    NUM_RESULTS = 5

    def search(self, query: str) -> list[SearchHit]:
        """Run a web search and return organic hits."""
        if not query or not query.strip():
            return []
        hits = self._guarded(self._fetch_search, query, label="web search")
        logger.info(f"Found {len(hits)} search results for: {query}")
        return hits

    def _fetch_search(self, query: str) -> list[SearchHit]:
        data = self._post_json(
            self.SEARCH_URL,
            body={"q": query, "num": self.NUM_RESULTS},
            headers={"X-API-KEY": self._require_key()}
        )
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected Serper response format: {type(data)}")

        organic = data.get("organic") or []
        if not isinstance(organic, list):
            raise ProviderError(f"Unexpected Serper results format: {type(organic)}")

        hits = []
        for item in organic:
            hit = self._parse_hit(item)
            if hit:
                hits.append(hit)
        return hits[:self.NUM_RESULTS]

    @staticmethod
    def _parse_hit(item: dict) -> Optional[SearchHit]:
        """Map a Serper organic result; source is the link's hostname."""
        try:
            link = item.get("link")
            title = item.get("title")
            if not link or not title:
                return None

            return SearchHit(
                title=title,
                link=link,
                snippet=item.get("snippet") or "",
                source=urlparse(link).hostname or "",
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to parse Serper result: {e}")
            return None
