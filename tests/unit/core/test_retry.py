"""Tests for RetryManager."""

import pytest

from flowcore.core.retry import MaxRetriesExceeded, RetryConfig, RetryManager


def _instant(max_attempts: int) -> RetryManager:
    return RetryManager(RetryConfig(max_attempts=max_attempts, base_delay=0.0, max_delay=0.0))


class TestRetryConfig:
    def test_defaults(self) -> None:
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0

    def test_no_retry(self) -> None:
        assert RetryConfig.no_retry().max_attempts == 1

    def test_from_millis(self) -> None:
        config = RetryConfig.from_millis(max_attempts=5, base_delay_ms=250)

        assert config.max_attempts == 5
        assert config.base_delay == 0.25
        assert config.max_delay == 30.0

    def test_from_millis_clamps(self) -> None:
        config = RetryConfig.from_millis(max_attempts=0, base_delay_ms=-5)

        assert config.max_attempts == 1
        assert config.base_delay == 0.0

    def test_invalid_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryConfig(max_attempts=0)


class TestRetryManager:
    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        calls = 0

        async def operation() -> str:
            nonlocal calls
            calls += 1
            return "ok"

        result = await _instant(3).execute_with_retry_async(operation, is_retryable=lambda e: True)

        assert result == "ok"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        """Retryable failures are retried; on_retry sees each failed attempt."""
        attempts: list[int] = []
        calls = 0

        async def operation() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ConnectionError("refused")
            return "connected"

        result = await _instant(3).execute_with_retry_async(
            operation,
            is_retryable=lambda e: isinstance(e, ConnectionError),
            on_retry=lambda attempt, error: attempts.append(attempt),
        )

        assert result == "connected"
        assert calls == 3
        assert attempts == [1, 2]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_max_retries(self) -> None:
        calls = 0

        async def operation() -> None:
            nonlocal calls
            calls += 1
            raise ConnectionError("refused")

        with pytest.raises(MaxRetriesExceeded, match="Failed after 3 attempts: refused") as exc_info:
            await _instant(3).execute_with_retry_async(operation, is_retryable=lambda e: True)

        assert calls == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ConnectionError)

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_unchanged(self) -> None:
        """A non-retryable error is raised as-is after one attempt."""
        calls = 0

        async def operation() -> None:
            nonlocal calls
            calls += 1
            raise ValueError("bad query")

        with pytest.raises(ValueError, match="bad query"):
            await _instant(5).execute_with_retry_async(operation, is_retryable=lambda e: isinstance(e, ConnectionError))

        assert calls == 1
