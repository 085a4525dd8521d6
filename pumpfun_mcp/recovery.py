"""
Error Classification and Retry

Errors are classified as recoverable (can retry) or unrecoverable (caller
must fix the request). Upstream calls may opt into ``retry_with_backoff``.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Coroutine, Optional, TypeVar

import httpx

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for recovery decisions."""

    NETWORK = "network"           # Network/connectivity issues
    RATE_LIMIT = "rate_limit"     # API rate limits
    PROVIDER = "provider"         # External provider error
    VALIDATION = "validation"     # Input validation error
    UNKNOWN = "unknown"           # Unclassified error


class PumpFunError(Exception):
    """Base class for errors raised by this package."""

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.provider = provider


class RecoverableError(PumpFunError):
    """
    Base class for errors that can be retried.

    These errors are typically transient:
    - Network issues
    - Rate limits
    - Timeouts
    - Temporary provider outages
    """

    recoverable = True

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, category=category, provider=provider)
        self.retry_after = retry_after


class UnrecoverableError(PumpFunError):
    """Base class for errors that retrying will not fix."""


class NetworkError(RecoverableError):
    """Network connectivity error."""

    def __init__(self, message: str = "Network error", provider: Optional[str] = None):
        super().__init__(message, category=ErrorCategory.NETWORK, provider=provider)


class RateLimitError(RecoverableError):
    """API rate limit exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT,
            provider=provider,
            retry_after=retry_after,
        )


class UpstreamError(RecoverableError):
    """Upstream answered with a server-side (5xx) failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message, category=ErrorCategory.PROVIDER, provider=provider)
        self.status_code = status_code


class UpstreamRequestError(UnrecoverableError):
    """Upstream rejected the request (4xx or GraphQL errors)."""

    def __init__(self, message: str, status_code: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message, category=ErrorCategory.PROVIDER, provider=provider)
        self.status_code = status_code


class ValidationError(UnrecoverableError):
    """Tool input failed validation."""

    def __init__(self, message: str):
        super().__init__(message, category=ErrorCategory.VALIDATION)


def error_from_response(response: httpx.Response, provider: str) -> PumpFunError:
    """Map a non-success HTTP response to the error taxonomy."""
    status = response.status_code
    message = f"{provider} API error: {status} {response.reason_phrase}"
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            delay = float(retry_after) if retry_after else None
        except ValueError:
            delay = None
        return RateLimitError(message, retry_after=delay, provider=provider)
    if status >= 500:
        return UpstreamError(message, status_code=status, provider=provider)
    return UpstreamRequestError(message, status_code=status, provider=provider)


def is_recoverable(error: Exception) -> bool:
    if isinstance(error, PumpFunError):
        return error.recoverable
    return isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError))


async def retry_with_backoff(
    operation: Callable[[], Coroutine[Any, Any, T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Run ``operation``, retrying recoverable failures with exponential backoff.

    Makes at most ``max_retries + 1`` attempts, sleeping ``base_delay * 2**attempt``
    between them (or the upstream's Retry-After when given). Unrecoverable errors
    and the last failure are raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or not is_recoverable(e):
                raise

            delay = base_delay * (2 ** attempt)
            if isinstance(e, RecoverableError) and e.retry_after:
                delay = e.retry_after

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1
