# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Primary/secondary provider alternation across retry attempts.

Odd attempts go to the primary provider, even attempts to the secondary.
Without a secondary, even attempts fail fast so the retry loop moves on to
the next primary attempt after its usual backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from ..exceptions import ProviderTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRIMARY = "primary"
SECONDARY = "secondary"


class AlternatingCall(Generic[T]):
    """
    Zero-argument async callable for RetryEngine.execute.

    Attributes:
        attempts: Times this callable has been invoked
        last_provider: Side used by the most recent attempt that reached a
            provider ("primary" or "secondary"), None before the first one
        provider_calls: Sides of every attempt that reached a provider, in order
    """

    def __init__(
        self,
        primary: Callable[[], Awaitable[T]],
        secondary: Callable[[], Awaitable[T]] | None = None,
    ):
        self._primary = primary
        self._secondary = secondary
        self.attempts = 0
        self.last_provider: str | None = None
        self.provider_calls: list[str] = []

    async def __call__(self) -> T:
        self.attempts += 1
        attempt = self.attempts

        if attempt % 2 == 1:
            side, call = PRIMARY, self._primary
        else:
            if self._secondary is None:
                logger.warning(
                    f"Attempt {attempt}: fallback provider disabled, skipping"
                )
                raise ProviderTransientError(
                    "fallback provider disabled", provider=SECONDARY, attempt=attempt
                )
            side, call = SECONDARY, self._secondary

        self.last_provider = side
        self.provider_calls.append(side)
        logger.debug(f"Attempt {attempt} using {side} provider")

        try:
            return await call()
        except asyncio.CancelledError:
            raise
        except ProviderTransientError:
            raise
        except Exception as e:
            raise ProviderTransientError(
                f"{side} provider error: {e}", provider=side, attempt=attempt
            ) from e


__all__ = ["PRIMARY", "SECONDARY", "AlternatingCall"]
