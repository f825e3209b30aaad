"""
Shared utility functions used throughout the Voice Profile Engine.

Provides:
    - utc_now(): Timezone-aware UTC datetime (for TIMESTAMPTZ columns)
    - generate_id(): UUID4 string generator (contribution and round ids)
    - ensure_utc(dt): Convert any datetime to timezone-aware UTC
    - parse_timestamp(value): Read an ISO-8601 string back into a UTC datetime
    - clamp(value): Bound a number to a closed interval (default [0, 1])
    - @with_retry: Async decorator with exponential backoff for storage reads
"""

from datetime import datetime, timezone
import asyncio
import logging
import uuid
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar, Union

from voice_engine.exceptions import RetryExhaustedError

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ===========================================================================
# TIME AND IDENTIFIERS
# ===========================================================================


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of ``datetime.now()`` or ``datetime.utcnow()`` so that
    profile timestamps compare correctly with those read back from storage.
    """
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Generate a UUID4 string for contributions and calibration rounds."""
    return str(uuid.uuid4())


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Accepts ``None``, a ``datetime`` or an ISO-8601 string (a trailing ``Z``
    is accepted as UTC).  Always returns an aware UTC datetime or ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


# ===========================================================================
# NUMERIC HELPERS
# ===========================================================================


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Bound *value* to ``[low, high]``."""
    return max(low, min(high, value))


# ===========================================================================
# RETRY DECORATOR WITH EXPONENTIAL BACKOFF
# Only storage adapters use this.  The engine core never retries.
# ===========================================================================


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    retryable_exceptions: Tuple[Type[Exception], ...] = (ConnectionError, TimeoutError),
    operation_name: Optional[str] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying an async call with exponential backoff.

    Delays grow as ``base_delay * 2 ** (attempt - 1)``.  Exceptions that are
    not in *retryable_exceptions* propagate immediately.

    Raises:
        RetryExhaustedError: When every attempt failed.  The last error is
            kept on ``last_error`` and chained as ``__cause__``.

    Usage::

        @with_retry(max_attempts=3, operation_name="get_profile")
        async def get_profile(self, user_id: str) -> Optional[VoiceDNA]:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        op_name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Optional[Exception] = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_error = e
                    if attempt < max_attempts:
                        delay = base_delay * (2 ** (attempt - 1))
                        logger.warning(
                            "[RETRY] %s attempt %d/%d failed: %s. Retrying in %.1fs...",
                            op_name,
                            attempt,
                            max_attempts,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            "[RETRY EXHAUSTED] %s failed after %d attempts: %s",
                            op_name,
                            max_attempts,
                            e,
                        )
            raise RetryExhaustedError(
                op_name, max_attempts, last_error  # type: ignore[arg-type]
            ) from last_error

        return wrapper

    return decorator
