"""Rate-limit retry for the primary feed."""

import time
from collections.abc import Callable
from typing import Annotated, TypeVar

import structlog
from pydantic import Field

from paper_daily.data_model import StrictBaseModel
from paper_daily.sources.errors import RateLimitedError


logger = structlog.get_logger()

T = TypeVar("T")


class RateLimitRetryPolicy(StrictBaseModel):
    """Fixed, capped backoff schedule for rate-limited requests.

    ``delays_seconds[i]`` is slept before retry ``i + 1``; once the
    schedule is exhausted the last :class:`RateLimitedError` propagates.
    A server ``Retry-After`` longer than the scheduled delay is honoured up
    to the largest scheduled delay.
    """

    delays_seconds: Annotated[tuple[float, ...], Field(max_length=10)] = (
        5.0,
        15.0,
        30.0,
    )

    @property
    def max_retries(self) -> int:
        """Number of retries after the first attempt."""
        return len(self.delays_seconds)


def call_with_rate_limit_retry(
    operation: Callable[[], T],
    policy: RateLimitRetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    source: str = "",
) -> T:
    """Run ``operation``, retrying only when it raises :class:`RateLimitedError`.

    Args:
        operation: Zero-argument callable performing the fetch.
        policy: Backoff schedule (default 5s/15s/30s).
        sleep: Sleep function, injectable for tests.
        source: Source name for logging.

    Returns:
        Whatever ``operation`` returns on its first non-rate-limited attempt.

    Raises:
        RateLimitedError: If every attempt was rate limited.
    """
    policy = policy or RateLimitRetryPolicy()
    log = logger.bind(component="sources", subcomponent="retry", source=source)

    for attempt, delay in enumerate((*policy.delays_seconds, None)):
        try:
            return operation()
        except RateLimitedError as e:
            if delay is None:
                log.warning("fetch_rate_limited_giving_up", attempts=attempt + 1)
                raise
            wait = delay
            if e.retry_after is not None:
                wait = min(max(delay, float(e.retry_after)), max(policy.delays_seconds))
            log.warning(
                "fetch_rate_limited",
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                retry_in_seconds=wait,
                retry_after=e.retry_after,
            )
            sleep(wait)

    msg = "retry loop exited without result"
    raise AssertionError(msg)
