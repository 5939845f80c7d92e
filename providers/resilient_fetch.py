"""
Resilient Fetch Wrapper — Retries with exponential backoff and health tracking.

Usage:
    policy = RetryPolicy(max_attempts=3, base_delay=0.5, retry_on=(TransientError,))
    result = await resilient_call("open_meteo", lambda: fetch(city), policy)

Only exceptions listed in ``retry_on`` are retried. Anything else fails on the
spot. Once attempts are exhausted the last error is re-raised so the caller
decides what a failed source means.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from providers.source_health import record_call, record_failure, record_success

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between.

    The delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)``.
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, attempt: int) -> float:
        """Backoff after the given 1-based attempt."""
        return self.base_delay * (2 ** (attempt - 1))

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        return attempt < self.max_attempts and isinstance(error, self.retry_on)

    def total_backoff(self) -> float:
        """Seconds spent sleeping if every attempt fails."""
        return sum(self.delay_for(a) for a in range(1, self.max_attempts))


DEFAULT_POLICY = RetryPolicy()


async def resilient_call(
    source_name: str,
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` with retries and health tracking.

    Args:
        source_name: Name of the data source, used for health counters and logs
        fn: Zero-argument coroutine factory, called once per attempt
        policy: Retry policy
        sleep: Backoff sleeper, replaceable in tests

    Returns:
        Result of the first successful attempt

    Raises:
        The last error once the policy gives up.
    """
    attempt = 0
    while True:
        attempt += 1
        record_call(source_name)
        t0 = time.monotonic()
        try:
            result = await fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            latency_ms = (time.monotonic() - t0) * 1000
            error_msg = f"{type(e).__name__}: {e}"
            record_failure(source_name, error_msg)

            if not policy.should_retry(e, attempt):
                if isinstance(e, policy.retry_on):
                    logger.error(
                        "resilient: %s ALL %d attempts failed: %s",
                        source_name, attempt, error_msg[:200]
                    )
                else:
                    logger.warning(
                        "resilient: %s attempt %d FAILED permanently (%.0fms): %s",
                        source_name, attempt, latency_ms, error_msg[:200]
                    )
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                "resilient: %s attempt %d/%d FAILED (%.0fms): %s",
                source_name, attempt, policy.max_attempts, latency_ms, error_msg[:200]
            )
            logger.debug("resilient: %s backing off %.1fs before retry", source_name, delay)
            await sleep(delay)
            continue

        latency_ms = (time.monotonic() - t0) * 1000
        record_success(source_name, latency_ms)
        if attempt > 1:
            logger.info("resilient: %s succeeded on attempt %d (%.0fms)", source_name, attempt, latency_ms)
        else:
            logger.debug("resilient: %s OK (%.0fms)", source_name, latency_ms)
        return result
