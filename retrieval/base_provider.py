"""Shared HTTP plumbing for the external data adapters."""

import logging
from typing import Any, Callable, Optional

import requests

from .errors import ProviderError, ProviderConfigError, ProviderTransientError
from .retry import call_with_retry

logger = logging.getLogger(__name__)


class HTTPProvider:
    """
    Base class for adapters that wrap one JSON API.

    Subclasses implement single-attempt ``_fetch_*`` methods that raise
    ProviderError subclasses and expose public methods that go through
    ``_guarded`` so callers only ever see a list.
    """

    name = "http"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 8.0,
        retries: int = 2,
        retry_wait: float = 0.25
    ):
        """
        Initialize the adapter.

        Args:
            api_key: Credential for the API (None disables the adapter)
            timeout: Request timeout in seconds
            retries: Extra attempts after the first transient failure
            retry_wait: Pause between attempts in seconds
        """
        self.api_key = api_key
        self.timeout = timeout
        self.retries = retries
        self.retry_wait = retry_wait
        self._last_error: Optional[str] = None

    def _get_headers(self) -> dict:
        """Build request headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "ShawnGPT-Assistant/1.0",
        }

    def _require_key(self) -> str:
        if not self.api_key:
            raise ProviderConfigError(f"{self.name} API key not configured")
        return self.api_key

    def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        """GET ``url`` and decode the JSON body."""
        return self._send(
            lambda: requests.get(
                url,
                params=params,
                headers=self._get_headers(),
                timeout=self.timeout
            )
        )

    def _post_json(self, url: str, body: dict, headers: Optional[dict] = None) -> Any:
        """POST ``body`` as JSON to ``url`` and decode the JSON response."""
        request_headers = self._get_headers()
        request_headers["Content-Type"] = "application/json"
        if headers:
            request_headers.update(headers)
        return self._send(
            lambda: requests.post(
                url,
                json=body,
                headers=request_headers,
                timeout=self.timeout
            )
        )

    def _send(self, do_request: Callable[[], requests.Response]) -> Any:
        try:
            response = do_request()
        except requests.exceptions.Timeout as e:
            raise ProviderTransientError(f"Request timeout after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderTransientError(f"Connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Request failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise ProviderConfigError(f"Authentication failed: {status}")
        if status < 200 or status >= 300:
            raise ProviderTransientError(f"API returned status {status}")

        try:
            return response.json()
        except ValueError as e:
            raise ProviderTransientError("API returned invalid JSON") from e

    def _guarded(self, fetch: Callable[..., list], *args, label: str) -> list:
        """Run a single-attempt fetch through the retry combinator."""
        if not self.is_configured():
            self._last_error = f"{self.name} API key not configured"
            logger.warning(f"{self.name} API key not found, skipping {label}")
            return []

        self._last_error = None
        return call_with_retry(
            self._record_errors(fetch),
            *args,
            default=[],
            attempts=self.retries + 1,
            wait_seconds=self.retry_wait,
            label=f"{self.name} {label}"
        )

    def _record_errors(self, fetch: Callable[..., list]) -> Callable[..., list]:
        def attempt(*args):
            try:
                return fetch(*args)
            except ProviderError as e:
                self._last_error = str(e)
                raise
        return attempt

    def is_configured(self) -> bool:
        """True when a credential is present."""
        return bool(self.api_key)

    def get_last_error(self) -> Optional[str]:
        """Get the last error message."""
        return self._last_error
