"""Retry decorator for handling rate limits and transient transport errors.

This module provides a decorator that implements retry logic for calls made to
GitHub (through PyGithub) and to Jira (through httpx), including respect for
rate limit headers and exponential backoff. Transport errors are only retried
when the decorated call is a read; for mutations they are surfaced at once.
"""

import asyncio
import functools
import inspect
import time
from typing import Any, Callable, Mapping, TypeVar

import httpx
import requests
import structlog
from github import GithubException, RateLimitExceededException

from jitrub.exceptions import RemoteNetworkError, RemoteRateLimitError, RemoteTimeoutError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TIMEOUT_ERRORS: tuple[type[Exception], ...] = (requests.exceptions.Timeout, httpx.TimeoutException)
TRANSPORT_ERRORS: tuple[type[Exception], ...] = (requests.exceptions.ConnectionError, httpx.TransportError)


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    """Case-insensitive header lookup."""
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def is_rate_limit_error(exc: Exception) -> bool:
    """Return True when a PyGithub exception reports a primary or secondary rate limit."""
    if isinstance(exc, RateLimitExceededException):
        return True
    if isinstance(exc, GithubException) and exc.status in (403, 429):
        return exc.status == 429 or "rate limit" in str(exc.data).lower()
    return False


def rate_limit_wait_time(headers: Mapping[str, str] | None, default: float) -> float:
    """Work out how long to wait from Retry-After or X-RateLimit-Reset headers."""
    retry_after = _header(headers, "retry-after")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            logger.warning("Invalid retry-after header value", retry_after=retry_after)
    rate_limit_reset = _header(headers, "x-ratelimit-reset")
    if rate_limit_reset:
        try:
            reset_timestamp = int(rate_limit_reset)
            current_timestamp = int(time.time())
            if reset_timestamp > current_timestamp:
                return float(reset_timestamp - current_timestamp + 1)
        except ValueError:
            logger.warning("Invalid x-ratelimit-reset header value", rate_limit_reset=rate_limit_reset)
    return default


def retry_on_rate_limit(
    max_retries: int = 5,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retry_transport_errors: bool = False,
) -> Callable[[F], F]:
    """Decorator for retrying async functions when they hit rate limits or transport failures.

    Args:
        max_retries: Maximum number of retry attempts (default: 5)
        initial_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 60.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
        retry_transport_errors: Retry connection errors and timeouts. Only set
            this for idempotent reads.

    Returns:
        Decorated function with retry logic

    Example:
        @retry_on_rate_limit(retry_transport_errors=True)
        async def branch(self, name: str) -> Branch | None:
            ...
    """

    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"Function {func.__name__} decorated with @retry_on_rate_limit must be async.")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except RemoteRateLimitError as e:
                    if attempt == max_retries:
                        logger.error("Max retries reached for rate limit error", function=func.__name__, attempt=attempt + 1)
                        raise
                    wait_time = min(e.retry_after if e.retry_after is not None else delay, max_delay)
                except GithubException as e:
                    if not is_rate_limit_error(e):
                        raise
                    if attempt == max_retries:
                        logger.error(
                            "Max retries reached for GitHub rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            status_code=e.status,
                        )
                        raise
                    wait_time = min(rate_limit_wait_time(e.headers, delay), max_delay)
                except TIMEOUT_ERRORS as e:
                    if not retry_transport_errors or attempt == max_retries:
                        logger.error("Request timed out", function=func.__name__, attempt=attempt + 1, error=str(e))
                        raise RemoteTimeoutError(f"request timed out in {func.__name__}: {e}") from e
                    wait_time = min(delay, max_delay)
                except TRANSPORT_ERRORS as e:
                    if not retry_transport_errors or attempt == max_retries:
                        logger.error("Request failed to reach remote", function=func.__name__, attempt=attempt + 1, error=str(e))
                        raise RemoteNetworkError(f"could not reach remote in {func.__name__}: {e}") from e
                    wait_time = min(delay, max_delay)

                logger.warning(
                    f"Retrying in {wait_time} seconds",
                    function=func.__name__,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    wait_time=wait_time,
                )
                await asyncio.sleep(wait_time)
                delay = min(delay * exponential_base, max_delay)

            # Loop always returns or raises.
            raise AssertionError("unreachable")

        return async_wrapper  # type: ignore

    return decorator
