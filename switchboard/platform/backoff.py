"""Jittered exponential backoff for telephony platform calls."""

import asyncio
import math
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from switchboard.config.models.inference import PlatformConfig
from switchboard.observability.logging import get_logger
from switchboard.observability.metrics import PLATFORM_RETRIES
from switchboard.platform.errors import PlatformError, RetryExhaustedError

logger = get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


def compute_backoff_ms(
    retry: int,
    config: PlatformConfig,
    rng: random.Random | None = None,
) -> int:
    """Sleep time in milliseconds before the given retry.

    Growth is exponential in the retry number up to backoff_clamp_retry,
    jittered uniformly and never below backoff_base_ms.
    """
    jitter = (rng or random).random()
    exponent = min(retry, config.backoff_clamp_retry)
    scaled = math.floor(config.backoff_base_ms * config.backoff_scaling**exponent * jitter)
    return max(config.backoff_base_ms, scaled)


async def with_backoff(
    operation: str,
    call: Callable[[], Awaitable[T]],
    config: PlatformConfig,
    rng: random.Random | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Run a platform call, retrying PlatformError with backoff.

    Raises:
        RetryExhaustedError: If every attempt failed
    """
    last_error: PlatformError | None = None
    for attempt in range(config.max_retries):
        try:
            return await call()
        except PlatformError as e:
            last_error = e
            if attempt == config.max_retries - 1:
                break
            delay_ms = compute_backoff_ms(attempt, config, rng)
            PLATFORM_RETRIES.labels(operation=operation).inc()
            logger.warning(
                "platform_call_retrying",
                operation=operation,
                attempt=attempt + 1,
                max_retries=config.max_retries,
                delay_ms=delay_ms,
                error=str(e),
            )
            await sleep(delay_ms / 1000)

    logger.error(
        "platform_call_exhausted",
        operation=operation,
        attempts=config.max_retries,
        error=str(last_error),
    )
    raise RetryExhaustedError(
        f"Platform call: {operation} failed after {config.max_retries} attempts",
        attempts=config.max_retries,
        cause=last_error,
    )
