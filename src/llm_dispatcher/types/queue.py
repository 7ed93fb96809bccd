# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Queue types for the dispatcher.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(order=True)
class QueuedTask:
    """
    A unit of work waiting in the dispatcher heap.

    Ordering uses (sort_key, sequence) only: sort_key is the negated priority
    so the heap pops the highest priority first, and sequence breaks ties in
    enqueue order.

    Attributes:
        sort_key: Negated priority (heap key)
        sequence: Monotonic enqueue counter (FIFO tie-breaker)
        run: Async callable producing the task result
        future: Future resolved with the result or the task's exception
        priority: Original priority value
        enqueued_at: time.monotonic() at enqueue
    """

    sort_key: int
    sequence: int
    run: Callable[[], Awaitable[Any]] = field(compare=False)
    future: "asyncio.Future[Any]" = field(compare=False)
    priority: int = field(default=0, compare=False)
    enqueued_at: float = field(default_factory=time.monotonic, compare=False)

    @classmethod
    def create(
        cls,
        run: Callable[[], Awaitable[Any]],
        priority: int,
        sequence: int,
        future: "asyncio.Future[Any]",
    ) -> "QueuedTask":
        return cls(
            sort_key=-int(priority),
            sequence=sequence,
            run=run,
            future=future,
            priority=int(priority),
        )

    @property
    def wait_time(self) -> float:
        """Seconds since the task was enqueued."""
        return time.monotonic() - self.enqueued_at


__all__ = ["QueuedTask"]
