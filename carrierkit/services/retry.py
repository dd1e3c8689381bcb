"""Caller-side retry policy for carrier operations.

Adapters never retry. A caller that wants retries wraps the adapter call in
``call_with_retry`` (or consults ``decide_retry`` in its own loop), so
policy stays swappable per host.

- Validation, Auth, Permanent: fail now
- RateLimit: wait the carrier's suggested delay (capped), then retry
- Transient: exponential backoff
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from carrierkit.errors import CarrierError, ErrorCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay_ms: First Transient backoff delay; doubles per attempt.
        max_delay_ms: Upper bound for any single delay.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30_000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must not be negative")


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay_ms: int
    reason: str


def decide_retry(error: CarrierError, attempt: int, policy: RetryPolicy) -> RetryDecision:
    """Decide whether to retry after a failed attempt.

    Args:
        error: The failure of the attempt.
        attempt: 1-based number of the attempt that just failed.
        policy: Retry limits.

    Returns:
        RetryDecision with the delay to wait before the next attempt.
    """
    if not error.is_retryable():
        return RetryDecision(False, 0, f"{error.category.value} errors are not retryable")
    if attempt >= policy.max_attempts:
        return RetryDecision(False, 0, f"gave up after {attempt} attempts")

    if error.category is ErrorCategory.RATE_LIMIT:
        suggested = error.retry_after_ms if error.retry_after_ms is not None else policy.base_delay_ms
        return RetryDecision(
            True, min(suggested, policy.max_delay_ms), "rate limited, waiting suggested delay",
        )

    delay = policy.base_delay_ms * (2 ** (attempt - 1))
    return RetryDecision(True, min(delay, policy.max_delay_ms), "transient failure, backing off")


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``fn`` with retries driven by decide_retry.

    Args:
        fn: Zero-argument coroutine function performing one attempt.
        policy: Retry limits. Defaults to RetryPolicy().
        sleep: Awaitable sleep taking seconds. Injected in tests.

    Returns:
        The first successful result.

    Raises:
        CarrierError: The last failure once the policy says to stop.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except CarrierError as e:
            decision = decide_retry(e, attempt, policy)
            if not decision.retry:
                logger.debug("Not retrying: %s (%s)", e, decision.reason)
                raise
            logger.warning(
                "Carrier call failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt, policy.max_attempts, decision.delay_ms / 1000, e,
            )
            await sleep(decision.delay_ms / 1000)
