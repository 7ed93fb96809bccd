# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Retry engine with exponential backoff and jitter.

Every exception raised by the wrapped callable is treated as retryable, as is
a result the optional validator rejects. The loop is iterative and bounded
by attempt count, not by elapsed time.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from ..config import RetryConfig, apply_updates
from ..exceptions import RetriesExhausted, ValidationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryStats:
    """
    Counters accumulated across executions until reset_stats().

    Attributes:
        total_attempts: Attempts made across all executions
        successful_retries: Executions that succeeded after more than one attempt
        failed_retries: Executions that exhausted every attempt
        successful_executions: Executions that eventually succeeded
        average_attempts: Mean attempts per successful execution
    """

    total_attempts: int = 0
    successful_retries: int = 0
    failed_retries: int = 0
    successful_executions: int = 0
    average_attempts: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RetryEngine:
    """
    Run an async callable until it succeeds or the attempt budget is spent.

    Example:
        >>> engine = RetryEngine(RetryConfig(max_retries=3))
        >>> text = await engine.execute(call_provider, validator=lambda r: bool(r))
    """

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()
        self._stats = RetryStats()

    def compute_delay(self, attempt: int) -> float:
        """
        Backoff before the attempt following ``attempt``.

        Args:
            attempt: The attempt that just failed (1-based)

        Returns:
            Delay in seconds, never above max_delay
        """
        base = self.config.initial_delay * (
            self.config.backoff_multiplier ** (attempt - 1)
        )
        jitter = random.uniform(0, self.config.jitter)  # noqa: S311
        return min(base + jitter, self.config.max_delay)

    async def execute(
        self,
        fn: Callable[[], Awaitable[T]],
        validator: Callable[[T], bool] | None = None,
    ) -> T:
        """
        Execute ``fn`` with retries.

        Args:
            fn: Zero-argument async callable; called once per attempt
            validator: Optional check on the result; False counts as a failure

        Returns:
            The first result that was produced without error and accepted by
            the validator

        Raises:
            RetriesExhausted: After max_retries failed attempts, chained from
                the last error
            asyncio.CancelledError: Propagated immediately, never retried
        """
        max_retries = self.config.max_retries
        last_error: Exception | None = None

        for attempt in range(1, max_retries + 1):
            self._stats.total_attempts += 1
            try:
                result = await fn()
                if validator is not None and not validator(result):
                    raise ValidationFailure(attempt=attempt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Attempt {attempt}/{max_retries} failed: {e}")
                if attempt < max_retries:
                    delay = self.compute_delay(attempt)
                    logger.debug(f"Retrying in {delay:.2f}s")
                    await asyncio.sleep(delay)
                continue

            self._record_success(attempt)
            if attempt > 1:
                logger.info(f"Succeeded after {attempt} attempts")
            return result

        self._stats.failed_retries += 1
        message = f"Failed after {max_retries} attempts: {last_error}"
        logger.error(message)
        raise RetriesExhausted(
            message, attempts=max_retries, last_error=last_error
        ) from last_error

    def _record_success(self, attempt: int) -> None:
        stats = self._stats
        stats.successful_executions += 1
        if attempt > 1:
            stats.successful_retries += 1
        n = stats.successful_executions
        stats.average_attempts = (stats.average_attempts * (n - 1) + attempt) / n

    def get_stats(self) -> RetryStats:
        """Return a copy of the current counters."""
        return RetryStats(**asdict(self._stats))

    def reset_stats(self) -> None:
        self._stats = RetryStats()

    def update_config(self, **changes: Any) -> None:
        """
        Replace configuration fields.

        Raises:
            ValueError: If a field is unknown or a value is out of range
        """
        self.config = apply_updates(self.config, changes)
        logger.info(f"Retry config updated: {changes}")


__all__ = ["RetryEngine", "RetryStats"]
