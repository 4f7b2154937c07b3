"""
Bounded exponential backoff for AI provider calls.

``run_with_retry`` calls an async operation up to ``retries + 1`` times.
Provider failures and unparseable JSON are recoverable; anything else is a
programming or configuration error and propagates on the first occurrence.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from app.errors import AIProviderError, JSONParseError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[Exception], ...] = (AIProviderError, JSONParseError)


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff curve. All times are in seconds."""

    retries: int = 3
    backoff: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        if self.backoff < 0:
            raise ValueError(f"backoff must be >= 0, got {self.backoff}")
        if self.max_delay < 0:
            raise ValueError(f"max_delay must be >= 0, got {self.max_delay}")

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the *attempt*-th (1-based) failed call."""
        return min(self.backoff * (2 ** (attempt - 1)), self.max_delay)

    @classmethod
    def from_milliseconds(
        cls, retries: int, backoff_ms: float, max_delay_ms: float
    ) -> "RetryPolicy":
        """Build a policy from the millisecond values the CLI flags use."""
        return cls(
            retries=retries,
            backoff=backoff_ms / 1000.0,
            max_delay=max_delay_ms / 1000.0,
        )


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` until it succeeds or the retry budget is spent.

    Raises:
        RetryExhaustedError: every attempt failed with a retryable error.
            The last error is chained as ``__cause__``.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await operation()
        except RETRYABLE_ERRORS as exc:
            last_error = exc
            if attempt >= policy.max_attempts:
                break
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s: attempt %d/%d failed (%s), retrying in %.2fs",
                label,
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
            continue

        if attempt > 1:
            logger.info("%s: succeeded on attempt %d", label, attempt)
        return result

    logger.error(
        "%s: giving up after %d attempt(s): %s", label, policy.max_attempts, last_error
    )
    raise RetryExhaustedError(label, policy.max_attempts, last_error) from last_error
