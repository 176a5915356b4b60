"""Errors raised inside the data adapters.

These never escape an adapter's public methods.
"""


class ProviderError(Exception):
    """A request to an external data API failed and should not be retried."""


class ProviderConfigError(ProviderError):
    """The adapter is missing credentials or was rejected as unauthorized."""


class ProviderTransientError(ProviderError):
    """Timeout, connection failure or server-side error worth retrying."""
