# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request dispatcher.

The dispatcher owns one rate limiter, retry engine, tier router and response
cache, and a priority queue drained by dispatch workers. A request flows:

    cache lookup -> enqueue -> wait_for_slot -> select tier -> resolve model
    -> retry(primary/secondary alternation, validator) -> release_slot
    -> quota and usage accounting -> cache store

With the default single worker, queued tasks run strictly one after another
in priority order (FIFO among equal priorities).
"""

import asyncio
import dataclasses
import heapq
import itertools
import logging
import sys
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from typing_extensions import Self

from ..cache.response_cache import ResponseCache
from ..config import DispatcherConfig
from ..exceptions import (
    ConfigurationError,
    DispatcherError,
    DispatcherNotRunningError,
    RateLimitTimeout,
    RetriesExhausted,
)
from ..limiter.rate_limiter import RateLimiter
from ..observability.collector import MetricsCollector, get_metrics_collector
from ..observability.constants import (
    ACTIVE_REQUESTS,
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    QUEUE_DEPTH,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_COMPLETED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_SCHEDULED_TOTAL,
    RETRY_ATTEMPTS_TOTAL,
)
from ..protocols.provider import ProviderProtocol
from ..retry.alternating import PRIMARY, SECONDARY, AlternatingCall
from ..retry.engine import RetryEngine
from ..routing.tier_router import TierRouter
from ..types.plan import SECONDARY_QUOTA_KEY, RequestPriority, TierId
from ..types.queue import QueuedTask
from ..types.request import DispatchRequest, DispatchResponse
from ..types.stats import UsageStats
from .validation import validate_response

logger = logging.getLogger(__name__)


def _failure_reason(error: BaseException) -> str:
    if isinstance(error, RateLimitTimeout):
        return "rate_limit"
    if isinstance(error, RetriesExhausted):
        return "retries_exhausted"
    return "error"


class Dispatcher:
    """
    Rate-limited, tier-routed, retrying front end for LLM providers.

    Example:
        >>> async with Dispatcher(primary=gateway, secondary=groq) as dispatcher:
        ...     response = await dispatcher.call(
        ...         "Explain the CAP theorem", plan=UserPlan.PRO, priority="high"
        ...     )
        ...     print(response.result, response.tier, response.cost)
    """

    def __init__(
        self,
        primary: ProviderProtocol,
        secondary: ProviderProtocol | None = None,
        config: DispatcherConfig | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        retry_engine: RetryEngine | None = None,
        tier_router: TierRouter | None = None,
        cache: ResponseCache | None = None,
        metrics_collector: MetricsCollector | None = None,
        validator: Callable[[str], bool] = validate_response,
    ):
        """
        Initialize the dispatcher.

        Args:
            primary: Provider for odd-numbered attempts
            secondary: Provider for even-numbered attempts (None disables it)
            config: Dispatcher configuration (defaults to DispatcherConfig.default())
            rate_limiter: Pre-built limiter (overrides config.rate_limit)
            retry_engine: Pre-built retry engine (overrides config.retry)
            tier_router: Pre-built tier router
            cache: Pre-built response cache (overrides config.cache)
            metrics_collector: Collector to report to; the global collector is
                used when metrics are enabled and none is given
            validator: Response quality check for requests with validate_quality

        Raises:
            ConfigurationError: If a provider does not implement ProviderProtocol
                or the tier table has no free tier
        """
        if not isinstance(primary, ProviderProtocol):
            raise ConfigurationError("primary provider must implement ProviderProtocol")
        if secondary is not None and not isinstance(secondary, ProviderProtocol):
            raise ConfigurationError(
                "secondary provider must implement ProviderProtocol"
            )

        self.config = config or DispatcherConfig.default()
        self.primary = primary
        self.secondary = secondary
        self.rate_limiter = rate_limiter or RateLimiter(self.config.rate_limit)
        self.retry_engine = retry_engine or RetryEngine(self.config.retry)
        self.tier_router = tier_router or TierRouter()
        if self.tier_router.get_tier_config(TierId.FREE) is None:
            raise ConfigurationError("tier table must define the free tier")

        if cache is not None:
            self.cache: ResponseCache | None = cache
        elif self.config.enable_cache:
            self.cache = ResponseCache.from_config(self.config.cache)
        else:
            self.cache = None

        if metrics_collector is not None:
            self._metrics: MetricsCollector | None = metrics_collector
        elif self.config.metrics_enabled:
            self._metrics = get_metrics_collector()
        else:
            self._metrics = None

        self.validator = validator
        self.stats = UsageStats()

        self._heap: list[QueuedTask] = []
        self._sequence = itertools.count()
        self._workers: set[asyncio.Task[None]] = set()
        self._running = False
        self._aborting = False
        self._shutdown_lock = asyncio.Lock()

    # Lifecycle

    async def start(self) -> None:
        """Start accepting work."""
        if self._running:
            return
        self._running = True
        self._aborting = False
        interval = self.config.cache.cleanup_interval
        if self.cache is not None and interval:
            await self.cache.start_cleanup(interval)
        logger.info(
            f"Dispatcher started (workers={self.config.max_workers}, "
            f"cache={'on' if self.cache is not None else 'off'})"
        )

    async def stop(self, drain: bool = True) -> None:
        """
        Stop accepting work.

        Args:
            drain: Finish every queued task before returning. When False,
                workers are cancelled and queued tasks fail with
                DispatcherNotRunningError.
        """
        async with self._shutdown_lock:
            if not self._running:
                return
            self._running = False

            if drain:
                if self._heap and not self._workers:
                    self._ensure_workers()
                if self._workers:
                    await asyncio.gather(*list(self._workers), return_exceptions=True)
            else:
                self._aborting = True
                for worker in list(self._workers):
                    worker.cancel()
                if self._workers:
                    await asyncio.gather(*list(self._workers), return_exceptions=True)
                while self._heap:
                    task = heapq.heappop(self._heap)
                    self._settle(task, error=DispatcherNotRunningError())
                self._report_queue_depth()

            self._workers.clear()
            if self.cache is not None:
                await self.cache.stop_cleanup()
            logger.info("Dispatcher stopped")

    def is_running(self) -> bool:
        return self._running

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    # Queue

    @property
    def queue_depth(self) -> int:
        return len(self._heap)

    async def enqueue(
        self,
        run: Callable[[], Awaitable[Any]],
        priority: "RequestPriority | str | int" = RequestPriority.MEDIUM,
    ) -> Any:
        """
        Queue ``run`` and wait for its result.

        Higher priorities are dispatched first; equal priorities in enqueue
        order. Each task holds a rate limiter slot while it runs. Cancelling
        the caller cancels the task, whether still queued or running.

        Raises:
            DispatcherNotRunningError: If the dispatcher is not running
            RateLimitTimeout: If no limiter slot became free in time
            Exception: Whatever ``run`` raised
        """
        if not self._running:
            raise DispatcherNotRunningError()

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        task = QueuedTask.create(
            run,
            priority=RequestPriority.from_label(priority),
            sequence=next(self._sequence),
            future=future,
        )
        heapq.heappush(self._heap, task)
        self._inc(REQUESTS_SCHEDULED_TOTAL)
        self._report_queue_depth()
        self._ensure_workers()
        return await future

    def _ensure_workers(self) -> None:
        spare = self.config.max_workers - len(self._workers)
        for _ in range(min(spare, len(self._heap))):
            worker = asyncio.create_task(self._worker(), name="dispatch_worker")
            self._workers.add(worker)

    async def _worker(self) -> None:
        current = asyncio.current_task()
        try:
            while self._heap:
                task = heapq.heappop(self._heap)
                self._report_queue_depth()
                if task.future.done():
                    # Caller went away while the task was queued.
                    continue
                await self._run_task(task)
        finally:
            if current is not None:
                self._workers.discard(current)

    async def _run_task(self, task: QueuedTask) -> None:
        try:
            await self.rate_limiter.wait_for_slot()
        except RateLimitTimeout as e:
            self._settle(task, error=e)
            return
        except asyncio.CancelledError:
            self._settle(task, error=DispatcherNotRunningError())
            raise

        if task.future.done():
            # Caller went away while the task waited for admission.
            self.rate_limiter.release_slot()
            return

        self._report_active()
        job = asyncio.ensure_future(task.run())

        def _cancel_job(fut: "asyncio.Future[Any]") -> None:
            if fut.cancelled():
                job.cancel()

        task.future.add_done_callback(_cancel_job)
        try:
            result = await job
        except asyncio.CancelledError:
            if self._worker_cancelled():
                self._settle(task, error=DispatcherNotRunningError())
                raise
            if task.future.cancelled():
                logger.debug("Task cancelled by its caller")
            else:
                logger.warning("Queued task cancelled itself")
                task.future.cancel()
        except Exception as e:
            logger.error(f"Queued task failed after {task.wait_time:.2f}s: {e}")
            self._settle(task, error=e)
        else:
            self._settle(task, result=result)
        finally:
            task.future.remove_done_callback(_cancel_job)
            self.rate_limiter.release_slot()
            self._report_active()

    def _worker_cancelled(self) -> bool:
        """True when the running worker itself, not a task's caller, is being cancelled."""
        if self._aborting:
            return True
        current = asyncio.current_task()
        if sys.version_info >= (3, 11) and current is not None:
            return current.cancelling() > 0
        return False

    @staticmethod
    def _settle(
        task: QueuedTask, result: Any = None, error: BaseException | None = None
    ) -> None:
        if task.future.done():
            return
        if error is not None:
            task.future.set_exception(error)
        else:
            task.future.set_result(result)

    # Requests

    async def call(
        self, prompt: "str | DispatchRequest", **overrides: Any
    ) -> DispatchResponse:
        """
        Dispatch a text-generation request.

        Args:
            prompt: Prompt text, or a complete DispatchRequest
            **overrides: DispatchRequest fields (plan, complexity, priority, ...)

        Returns:
            The response, served from the cache or a provider

        Raises:
            DispatcherNotRunningError: If the dispatcher is not running
            RateLimitTimeout: If no limiter slot became free in time
            RetriesExhausted: If every provider attempt failed
            pydantic.ValidationError: If the request fields are invalid
        """
        if not self._running:
            raise DispatcherNotRunningError()

        if isinstance(prompt, DispatchRequest):
            request = (
                DispatchRequest.model_validate({**prompt.model_dump(), **overrides})
                if overrides
                else prompt
            )
        else:
            request = DispatchRequest(prompt=prompt, **overrides)

        use_cache = self.cache is not None and request.use_cache
        if use_cache:
            cached = self._lookup_cache(request)
            if cached is not None:
                return cached

        # Dispatched work only; cache hits are counted separately.
        self.stats.total_requests += 1
        queued_at = time.monotonic()
        try:
            response: DispatchResponse = await self.enqueue(
                lambda: self._execute_request(request, queued_at), request.priority
            )
        except DispatcherError as e:
            self.stats.record_failure()
            self._inc(REQUESTS_FAILED_TOTAL, {"reason": _failure_reason(e)})
            raise

        if use_cache:
            self._store_cache(request, response)
        return response

    @staticmethod
    def cache_scope(request: DispatchRequest) -> str:
        """
        Cache partition for a request.

        Responses are only shared between requests that agree on every field
        besides the prompt that shapes the output: plan, explicit model,
        thinking mode and system prompt.
        """
        return "|".join(
            (
                request.plan.value,
                request.override_model or "",
                "thinking" if request.enable_thinking else "",
                request.system_prompt or "",
            )
        )

    def _lookup_cache(self, request: DispatchRequest) -> DispatchResponse | None:
        assert self.cache is not None
        hit = self.cache.find_similar(
            request.prompt,
            self.config.cache.similarity_threshold,
            scope=self.cache_scope(request),
        )
        if hit is None:
            self.stats.cache_misses += 1
            self._inc(CACHE_MISSES_TOTAL)
            return None

        self.stats.cache_hits += 1
        self._inc(CACHE_HITS_TOTAL)
        cached: DispatchResponse = hit.response
        return dataclasses.replace(
            cached,
            attempts=0,
            cost=0.0,
            duration=0.0,
            queue_time=0.0,
            cached=True,
            provider="cache",
            metadata=dict(cached.metadata),
        )

    def _store_cache(self, request: DispatchRequest, response: DispatchResponse) -> None:
        assert self.cache is not None
        evictions = self.cache.get_stats()["evictions"]
        self.cache.set(
            request.prompt,
            response,
            request.cache_complexity,
            scope=self.cache_scope(request),
        )
        if self.cache.get_stats()["evictions"] > evictions:
            self._inc(CACHE_EVICTIONS_TOTAL)

    async def _execute_request(
        self, request: DispatchRequest, queued_at: float
    ) -> DispatchResponse:
        start = time.monotonic()
        queue_time = start - queued_at

        tier = self.tier_router.select_tier(
            request.complexity, request.preferred_tier, request.plan
        )
        tier_config = self.tier_router.get_tier_config(tier)
        if tier_config is None:
            raise ConfigurationError(f"No configuration for tier {tier.value}")
        model = self.tier_router.resolve_model(
            tier, request.plan, request.prompt, request.override_model
        )

        messages = request.messages()
        options: dict[str, Any] = {
            "enable_thinking": request.enable_thinking,
            "endpoint": tier_config.endpoint,
            "user_id": request.user_id,
        }

        async def call_primary() -> str:
            self.tier_router.track_usage(tier)
            self._inc(RETRY_ATTEMPTS_TOTAL, {"provider": PRIMARY})
            return await self.primary.invoke(messages, model, options)

        fallback = self.tier_router.fallback_provider
        secondary = self.secondary

        async def call_secondary() -> str:
            assert secondary is not None
            self.tier_router.track_usage(SECONDARY_QUOTA_KEY)
            self._inc(RETRY_ATTEMPTS_TOTAL, {"provider": SECONDARY})
            return await secondary.invoke(
                messages, fallback.model, {**options, "endpoint": fallback.endpoint}
            )

        alternating: AlternatingCall[str] = AlternatingCall(
            call_primary,
            call_secondary if secondary is not None and fallback.enabled else None,
        )
        logger.debug(
            f"Dispatching to tier={tier.value} model={model} "
            f"(queued {queue_time:.2f}s)"
        )
        result = await self.retry_engine.execute(
            alternating,
            validator=self.validator if request.validate_quality else None,
        )

        attempts = alternating.attempts
        cost = tier_config.cost_per_request * attempts
        duration = time.monotonic() - start
        provider = alternating.last_provider or PRIMARY

        self.stats.record_success(duration, cost)
        self._inc(REQUESTS_COMPLETED_TOTAL, {"tier": tier.value, "provider": provider})
        if self._metrics is not None:
            self._metrics.observe_histogram(
                REQUEST_LATENCY_SECONDS, duration, {"tier": tier.value}
            )

        return DispatchResponse(
            result=result,
            tier=tier,
            model=fallback.model if provider == SECONDARY else model,
            attempts=attempts,
            cost=cost,
            duration=duration,
            queue_time=queue_time,
            provider=provider,
            metadata={"provider_calls": list(alternating.provider_calls)},
        )

    async def batch(
        self,
        requests: Iterable["str | DispatchRequest"],
        return_exceptions: bool = False,
    ) -> list[Any]:
        """Dispatch several requests concurrently; results keep the input order."""
        return await asyncio.gather(
            *(self.call(request) for request in requests),
            return_exceptions=return_exceptions,
        )

    # Status

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "queue": {
                "length": len(self._heap),
                "is_processing": bool(self._workers),
                "workers": len(self._workers),
            },
            "rate_limiter": self.rate_limiter.get_status(),
            "retry_handler": self.retry_engine.get_stats().to_dict(),
            "tier_usage": self.tier_router.get_usage_stats(),
            "stats": self.stats.to_dict(),
            "cache": self.cache.get_stats() if self.cache is not None else None,
        }

    def reset_daily_stats(self) -> None:
        """Zero usage statistics, tier quota counters and retry statistics."""
        self.stats.reset()
        self.tier_router.reset_quota()
        self.retry_engine.reset_stats()
        logger.info("Daily stats reset")

    # Metrics helpers

    def _inc(self, name: str, labels: dict[str, str] | None = None) -> None:
        if self._metrics is not None:
            self._metrics.inc_counter(name, labels=labels)

    def _report_queue_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.set_gauge(QUEUE_DEPTH, len(self._heap))

    def _report_active(self) -> None:
        if self._metrics is not None:
            self._metrics.set_gauge(ACTIVE_REQUESTS, self.rate_limiter.active_requests)


__all__ = ["Dispatcher"]
