# src/flowcore/core/retry.py
"""RetryManager: bounded retry with exponential backoff (tenacity).

Used by nodes that own a connection lifecycle to retry the CONNECT step.
Operations themselves are never retried here: a rejected query cannot
succeed on retry, and cross-call retry policy belongs to the orchestrator.

Backoff for attempt n (1-based) is base_delay * exponential_base ** (n - 1),
capped at max_delay. With the defaults that is 1s, 2s, 4s, ...
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from flowcore.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class MaxRetriesExceeded(Exception):
    """Raised when max retry attempts are exceeded."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    max_attempts is the TOTAL number of tries, not the number of retries.
    So max_attempts=3 means: try, retry, retry (3 total).
    """

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Factory for no-retry configuration (single attempt)."""
        return cls(max_attempts=1)

    @classmethod
    def from_millis(cls, *, max_attempts: int, base_delay_ms: float, max_delay_ms: float = 30_000) -> "RetryConfig":
        """Factory from millisecond values as used in node configuration."""
        return cls(
            max_attempts=max(1, int(max_attempts)),
            base_delay=max(0.0, base_delay_ms / 1000.0),
            max_delay=max(0.0, max_delay_ms / 1000.0),
        )


class RetryManager:
    """Runs an async operation under a RetryConfig.

    Example:
        manager = RetryManager(RetryConfig(max_attempts=3))

        client = await manager.execute_with_retry_async(
            connect,
            is_retryable=lambda e: isinstance(e, ConnectionError),
        )
    """

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    @property
    def config(self) -> RetryConfig:
        return self._config

    async def execute_with_retry_async(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        is_retryable: Callable[[BaseException], bool],
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Execute operation with retry logic.

        Args:
            operation: Zero-argument coroutine function to execute
            is_retryable: Function to check if error is retryable
            on_retry: Optional callback on retry (attempt, error)

        Returns:
            Result of operation

        Raises:
            MaxRetriesExceeded: If max attempts exceeded
            Exception: If non-retryable error occurs
        """
        attempt = 0
        last_error: BaseException | None = None

        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(self._config.max_attempts),
                wait=wait_exponential(
                    multiplier=self._config.base_delay,
                    exp_base=self._config.exponential_base,
                    max=self._config.max_delay,
                ),
                retry=retry_if_exception(is_retryable),
                reraise=False,  # RetryError is converted to MaxRetriesExceeded below
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    try:
                        return await operation()
                    except Exception as e:
                        last_error = e
                        if is_retryable(e):
                            logger.warning(
                                "retry_attempt_failed",
                                attempt=attempt,
                                max_attempts=self._config.max_attempts,
                                error=str(e),
                            )
                            if on_retry is not None:
                                on_retry(attempt, e)
                        raise

        except RetryError as e:
            final_error = last_error or e.last_attempt.exception()
            assert final_error is not None, "RetryError without exception is impossible"
            raise MaxRetriesExceeded(attempt, final_error) from e

        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover
