# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the LLM dispatcher.

All exceptions inherit from DispatcherError, so callers can catch anything
raised by the library with a single except clause. Only RateLimitTimeout and
RetriesExhausted are expected to reach callers of ``Dispatcher.call`` during
normal operation; transient provider failures, validation rejections and
quota exhaustion are recovered inside the dispatcher.
"""

from typing import Any


class DispatcherError(Exception):
    """Base exception for all dispatcher errors.

    Example:
        try:
            response = await dispatcher.call("Summarise this page")
        except DispatcherError as e:
            logger.error(f"Dispatch failed: {e}")
    """

    pass


class RateLimitTimeout(DispatcherError):
    """Raised when the rate limiter cannot admit a request in time.

    Admission is polled until the window and concurrency bounds allow the
    request or the admission timeout elapses. The limiter never retries a
    timed-out admission itself.

    Attributes:
        waited: Seconds spent waiting before giving up.
        timeout: The configured admission timeout in seconds.

    Example:
        try:
            await limiter.wait_for_slot()
        except RateLimitTimeout as e:
            logger.warning(f"No slot after {e.waited:.1f}s")
            raise HTTPException(status_code=503)
    """

    def __init__(
        self,
        message: str | None = None,
        waited: float | None = None,
        timeout: float | None = None,
    ):
        if message is None:
            message = f"Rate limiter timeout after {timeout or 0:.0f}s"
        super().__init__(message)
        self.waited = waited
        self.timeout = timeout


class ProviderTransientError(DispatcherError):
    """Raised when a provider call fails.

    Every error raised by a provider adapter is treated as retryable; 4xx and
    5xx are not distinguished. Adapters that want to fail fast must do their
    own classification.

    Attributes:
        provider: Which side produced the error ("primary" or "secondary").
        attempt: The retry attempt (1-based) during which the error occurred.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        attempt: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.attempt = attempt


class ValidationFailure(ProviderTransientError):
    """Raised when a response is rejected by the result validator.

    The provider answered, but the answer is unusable (too short, a refusal,
    an error payload rendered as text). Retried exactly like a transient
    provider failure.
    """

    def __init__(
        self,
        message: str = "Result quality check failed",
        attempt: int | None = None,
    ):
        super().__init__(message, provider=None, attempt=attempt)


class TierUnavailableError(DispatcherError):
    """Raised when a tier is unknown or disabled.

    Attributes:
        tier: The tier identifier that was requested.
    """

    def __init__(self, tier: Any):
        super().__init__(f"Tier not available: {getattr(tier, 'value', tier)}")
        self.tier = tier


class QuotaExceeded(TierUnavailableError):
    """Raised when a tier has used up its daily request budget.

    The tier router catches this and falls back to a cheaper tier; it is
    not surfaced to dispatcher callers.

    Attributes:
        tier: The exhausted tier.
        used: Requests counted against the tier today.
        limit: The tier's maximum requests per day.
    """

    def __init__(self, tier: Any, used: int, limit: int):
        DispatcherError.__init__(
            self,
            f"Daily quota exhausted for tier {getattr(tier, 'value', tier)} "
            f"({used}/{limit})",
        )
        self.tier = tier
        self.used = used
        self.limit = limit


class RetriesExhausted(DispatcherError):
    """Raised when every retry attempt has failed.

    Wraps the last underlying error and the number of attempts made. The
    original exception is also chained as ``__cause__``.

    Attributes:
        attempts: Number of attempts made before giving up.
        last_error: The exception raised by the final attempt.

    Example:
        try:
            result = await engine.execute(call_provider)
        except RetriesExhausted as e:
            logger.error(f"Gave up after {e.attempts} attempts: {e.last_error}")
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        last_error: BaseException | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ConfigurationError(DispatcherError):
    """Raised when a dispatcher component is wired up inconsistently.

    Common causes include a tier table missing the free tier or a dispatcher
    constructed with a provider that does not implement ProviderProtocol.
    """

    pass


class DispatcherNotRunningError(DispatcherError):
    """Raised when work is submitted to a dispatcher that is not running.

    Also delivered to tasks still queued when the dispatcher is stopped
    without draining.
    """

    def __init__(self, message: str = "Dispatcher is not running"):
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "DispatcherError",
    "DispatcherNotRunningError",
    "ProviderTransientError",
    "QuotaExceeded",
    "RateLimitTimeout",
    "RetriesExhausted",
    "TierUnavailableError",
    "ValidationFailure",
]
