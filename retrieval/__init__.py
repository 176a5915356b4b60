"""External data adapters for movies, games and web search."""

from .errors import ProviderError, ProviderConfigError, ProviderTransientError
from .retry import call_with_retry
from .tmdb_provider import TMDbProvider
from .rawg_provider import RAWGProvider
from .serper_provider import SerperProvider

__all__ = [
    "ProviderError",
    "ProviderConfigError",
    "ProviderTransientError",
    "call_with_retry",
    "TMDbProvider",
    "RAWGProvider",
    "SerperProvider",
]
