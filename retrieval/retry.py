"""Retry-then-default combinator shared by every external data adapter."""

import logging
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .errors import ProviderError, ProviderConfigError, ProviderTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[..., T],
    *args,
    default: T,
    attempts: int = 3,
    wait_seconds: float = 0.0,
    label: str = "adapter call",
    **kwargs
) -> T:
    """
    Call ``fn`` and retry transient failures, then give up with ``default``.

    Only ProviderTransientError is retried. Configuration errors and other
    provider errors resolve to ``default`` immediately.

    Args:
        fn: Callable performing one attempt
        default: Value returned when every attempt fails
        attempts: Total attempts including the first one
        wait_seconds: Fixed pause between attempts
        label: Name used in log messages

    Returns:
        The result of ``fn`` or ``default``
    """
    retryer = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(ProviderTransientError),
        reraise=True,
    )

    try:
        return retryer(fn, *args, **kwargs)
    except ProviderConfigError as e:
        logger.warning(f"{label} skipped: {e}")
        return default
    except ProviderTransientError as e:
        logger.warning(f"{label} failed after {attempts} attempts: {e}")
        return default
    except ProviderError as e:
        logger.warning(f"{label} failed: {e}")
        return default
