# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Sliding-window rate limiter.

Admission is bounded two ways at once: the number of requests admitted
within the last rolling second (steady rate plus burst allowance) and the
number of requests currently in flight. Callers poll for admission at a
fixed interval until both bounds allow them through or the admission
timeout elapses.

The limiter relies on cooperative scheduling: the bound check and the state
mutation in wait_for_slot happen with no await between them, so two
coroutines on the same event loop can never both take the last slot.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from ..config import RateLimitConfig, apply_updates
from ..exceptions import RateLimitTimeout

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 1.0


class RateLimiter:
    """
    Admission control for outbound provider calls.

    Example:
        >>> limiter = RateLimiter(RateLimitConfig(max_requests_per_second=5))
        >>> async with limiter.slot():
        ...     await provider.invoke(messages, model_id, options)
    """

    def __init__(self, config: RateLimitConfig | None = None):
        self.config = config or RateLimitConfig()
        self._window: deque[float] = deque()
        self._active = 0

    @property
    def active_requests(self) -> int:
        return self._active

    def _prune(self, now: float) -> None:
        cutoff = now - WINDOW_SECONDS
        while self._window and self._window[0] <= cutoff:
            self._window.popleft()

    def can_proceed(self) -> bool:
        """Return True if a request could be admitted right now."""
        self._prune(time.monotonic())
        return (
            len(self._window) < self.config.window_capacity
            and self._active < self.config.max_concurrent
        )

    async def wait_for_slot(self) -> None:
        """
        Wait until a request may proceed, then claim the slot.

        Raises:
            RateLimitTimeout: If no slot became free within admission_timeout
        """
        start = time.monotonic()
        while not self.can_proceed():
            await asyncio.sleep(self.config.poll_interval)
            waited = time.monotonic() - start
            if waited > self.config.admission_timeout:
                logger.warning(
                    f"Admission timed out after {waited:.2f}s "
                    f"(window={len(self._window)}, active={self._active})"
                )
                raise RateLimitTimeout(
                    waited=waited, timeout=self.config.admission_timeout
                )

        # No await between the check above and the claim below.
        self._window.append(time.monotonic())
        self._active += 1
        logger.debug(
            f"Slot acquired (window={len(self._window)}, active={self._active})"
        )

    def release_slot(self) -> None:
        """Release a slot claimed by wait_for_slot. Extra releases are ignored."""
        if self._active > 0:
            self._active -= 1
        else:
            logger.debug("release_slot called with no active requests")

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold a slot for the duration of the block."""
        await self.wait_for_slot()
        try:
            yield
        finally:
            self.release_slot()

    def get_status(self) -> dict[str, Any]:
        """Snapshot of the limiter state."""
        self._prune(time.monotonic())
        requests = len(self._window)
        max_rps = self.config.max_requests_per_second
        max_concurrent = self.config.max_concurrent
        return {
            "requests_last_second": requests,
            "active_requests": self._active,
            "can_proceed": (
                requests < self.config.window_capacity
                and self._active < max_concurrent
            ),
            "config": asdict(self.config),
            "utilization": {
                "requests": f"{requests}/{max_rps}",
                "concurrent": f"{self._active}/{max_concurrent}",
            },
            "requests_ratio": requests / max_rps,
            "concurrent_ratio": self._active / max_concurrent,
        }

    def reset(self) -> None:
        """Forget all admitted requests. Intended for tests and admin tooling."""
        self._window.clear()
        self._active = 0

    def update_config(self, **changes: Any) -> None:
        """
        Replace configuration fields. Existing window state is kept.

        Raises:
            ValueError: If a field is unknown or a value is out of range
        """
        self.config = apply_updates(self.config, changes)
        logger.info(f"Rate limiter config updated: {changes}")


__all__ = ["WINDOW_SECONDS", "RateLimiter"]
