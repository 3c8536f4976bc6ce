"""Unit tests for platform call backoff."""

import random

import pytest

from switchboard.config.models.inference import PlatformConfig
from switchboard.platform.backoff import compute_backoff_ms, with_backoff
from switchboard.platform.errors import PlatformError, RetryExhaustedError


class FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__()
        self._value = value

    def random(self) -> float:
        return self._value


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class TestComputeBackoff:
    """Tests for backoff delay calculation."""

    def test_grows_exponentially(self) -> None:
        config = PlatformConfig()

        assert compute_backoff_ms(3, config, FixedRandom(0.5)) == 1000

    def test_clamped_at_retry_limit(self) -> None:
        config = PlatformConfig()

        assert compute_backoff_ms(10, config, FixedRandom(0.5)) == 4000
        assert compute_backoff_ms(5, config, FixedRandom(0.5)) == 4000

    def test_never_below_base(self) -> None:
        config = PlatformConfig()

        assert compute_backoff_ms(0, config, FixedRandom(0.1)) == 250
        assert compute_backoff_ms(0, config, FixedRandom(0.0)) == 250

    def test_uses_configured_values(self) -> None:
        config = PlatformConfig(backoff_base_ms=100, backoff_scaling=3, backoff_clamp_retry=2)

        assert compute_backoff_ms(4, config, FixedRandom(0.5)) == 450


class TestWithBackoff:
    """Tests for retried platform calls."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self) -> None:
        sleep = RecordingSleep()

        async def call() -> str:
            return "ok"

        result = await with_backoff("op", call, PlatformConfig(), sleep=sleep)

        assert result == "ok"
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self) -> None:
        sleep = RecordingSleep()
        attempts = 0

        async def call() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise PlatformError("throttled")
            return "ok"

        result = await with_backoff(
            "op", call, PlatformConfig(), rng=FixedRandom(0.5), sleep=sleep
        )

        assert result == "ok"
        assert attempts == 3
        assert sleep.delays == [0.25, 0.25]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self) -> None:
        sleep = RecordingSleep()
        error = PlatformError("down")

        async def call() -> str:
            raise error

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_backoff("op", call, PlatformConfig(max_retries=4), sleep=sleep)

        assert exc_info.value.attempts == 4
        assert exc_info.value.cause is error
        assert len(sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        sleep = RecordingSleep()

        async def call() -> str:
            raise ValueError("bug")

        with pytest.raises(ValueError):
            await with_backoff("op", call, PlatformConfig(), sleep=sleep)
        assert sleep.delays == []
