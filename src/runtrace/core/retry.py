# src/runtrace/core/retry.py
"""Bounded retry with exponential backoff for backend requests (tenacity).

The log exporter wraps each push in RetryManager.execute_with_retry() so a
transient 5xx or dropped connection costs one more attempt instead of a
job's logs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

if TYPE_CHECKING:
    from runtrace.core.config import RetrySettings

T = TypeVar("T")


class MaxRetriesExceeded(Exception):
    """Every attempt failed with a retryable error.

    Attributes:
        attempts: How many attempts were made
        last_error: Exception of the final attempt
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy.

    max_attempts counts the first try: 2 means one retry.
    """

    max_attempts: int = 2
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 1.0
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def no_retry(cls) -> RetryConfig:
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryConfig:
        # Jitter is not configurable
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.initial_delay_seconds,
            max_delay=settings.max_delay_seconds,
            exponential_base=settings.exponential_base,
        )


class RetryManager:
    """Runs an operation until it succeeds, fails for good, or runs out of attempts.

    Example:
        manager = RetryManager(RetryConfig(max_attempts=3))

        response = manager.execute_with_retry(
            lambda: client.post(url, content=body),
            is_retryable=lambda e: isinstance(e, httpx.TransportError),
            on_retry=lambda attempt, e: logger.warning("Retrying", attempt=attempt),
        )
    """

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    def _retrying(
        self,
        is_retryable: Callable[[BaseException], bool],
        on_retry: Callable[[int, BaseException], None] | None,
    ) -> Retrying:
        config = self._config

        def before_sleep(state: RetryCallState) -> None:
            if on_retry is not None and state.outcome is not None:
                error = state.outcome.exception()
                if error is not None:
                    on_retry(state.attempt_number, error)

        return Retrying(
            stop=stop_after_attempt(config.max_attempts),
            wait=wait_exponential_jitter(
                initial=config.base_delay,
                max=config.max_delay,
                exp_base=config.exponential_base,
                jitter=config.jitter,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep,
            reraise=False,
        )

    def execute_with_retry(
        self,
        operation: Callable[[], T],
        *,
        is_retryable: Callable[[BaseException], bool],
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Call operation, retrying errors for which is_retryable is true.

        Args:
            operation: Zero-argument callable to run
            is_retryable: Decides per exception whether another attempt is made
            on_retry: Called as (failed_attempt_number, error) before each
                backoff sleep, i.e. only when another attempt follows

        Returns:
            The operation's return value

        Raises:
            MaxRetriesExceeded: If the last allowed attempt also failed retryably
            Exception: A non-retryable error, unchanged, on the attempt it occurred
        """
        try:
            return self._retrying(is_retryable, on_retry)(operation)
        except RetryError as e:
            last_attempt = e.last_attempt
            error = last_attempt.exception()
            assert error is not None, "RetryError is only raised for failed attempts"
            raise MaxRetriesExceeded(last_attempt.attempt_number, error) from e
