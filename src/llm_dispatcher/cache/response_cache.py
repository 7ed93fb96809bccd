# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Approximate-match response cache.

Queries are normalized and reduced to a set of content tokens; a lookup
returns the stored entry whose token set is most similar (Jaccard) to
the query's, provided the similarity reaches the threshold. Entries only
match queries of the same scope, an opaque partition string chosen by the
caller. Entries expire a fixed time after insertion and are evicted
oldest-first when the cache is full. Hits never refresh an entry's age.
"""

import asyncio
import contextlib
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..config import CACHE_LIMITS, CacheConfig
from ..types.plan import ComplexityClass, UserPlan

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 200
DEFAULT_THRESHOLD = 0.7
DEFAULT_TTL = 1800.0

STOP_WORDS = frozenset(
    {
        # English
        "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can",
        # Indonesian
        "dengan", "dan", "yang", "untuk", "di", "ke", "dari",
    }
)  # fmt: skip

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Lower-case, strip punctuation, collapse whitespace, keep the first 200 chars."""
    text = _NON_WORD.sub(" ", query.lower())
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:MAX_KEY_LENGTH]


def tokenize(normalized: str) -> frozenset[str]:
    """Content tokens of a normalized query: longer than 2 chars, not a stop word."""
    return frozenset(
        word
        for word in normalized.split(" ")
        if len(word) > 2 and word not in STOP_WORDS
    )


def jaccard_similarity(a: frozenset[str], b: frozenset[str]) -> float:
    """|a & b| / |a | b|; 0.0 when either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


@dataclass
class CacheEntry:
    """
    A cached response.

    Attributes:
        query: Query text as first stored
        normalized_key: normalize_query(query), the exact-match key
        token_set: tokenize(normalized_key)
        response: Stored response
        inserted_at: Clock reading at insertion (never refreshed by hits)
        hit_count: Times this entry was returned
        complexity: Complexity label supplied by the caller
        scope: Partition the entry belongs to ("" when unscoped)
    """

    query: str
    normalized_key: str
    token_set: frozenset[str]
    response: Any
    inserted_at: float
    hit_count: int = 0
    complexity: ComplexityClass = ComplexityClass.MEDIUM
    scope: str = ""

    def age(self, now: float) -> float:
        return now - self.inserted_at


class ResponseCache:
    """
    Similarity cache with age-based eviction.

    Example:
        >>> cache = ResponseCache(plan=UserPlan.PRO)
        >>> cache.set("build a react login form", response)
        >>> cache.find_similar("build a login form in react")
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int | None = None,
        plan: UserPlan = UserPlan.FREE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl = ttl
        self._plan = UserPlan(plan)
        self._explicit_max_size = max_size
        self._clock = clock
        # Insertion-ordered: the first entry is always the oldest.
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._cleanup_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls, config: CacheConfig, clock: Callable[[], float] = time.monotonic
    ) -> "ResponseCache":
        return cls(
            ttl=config.ttl,
            max_size=config.max_size,
            plan=config.plan,
            clock=clock,
        )

    @property
    def max_size(self) -> int:
        if self._explicit_max_size is not None:
            return self._explicit_max_size
        return CACHE_LIMITS[self._plan]

    def set_tier(self, plan: UserPlan) -> None:
        """Switch the plan whose capacity applies. Shrinking evicts oldest entries."""
        self._plan = UserPlan(plan)
        logger.info(f"Cache tier set to {self._plan.value} (max {self.max_size})")
        while len(self._entries) > self.max_size:
            self._evict_oldest()

    def get_tier(self) -> UserPlan:
        return self._plan

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.age(now) > self.ttl

    def find_similar(
        self, query: str, threshold: float = DEFAULT_THRESHOLD, scope: str = ""
    ) -> CacheEntry | None:
        """
        Return the most similar live entry in ``scope``, or None.

        Expired entries found during the scan are removed. Among entries with
        equal similarity the most recently inserted one wins.
        """
        tokens = tokenize(normalize_query(query))
        now = self._clock()

        best: CacheEntry | None = None
        best_score = 0.0
        expired: list[tuple[str, str]] = []
        for key, entry in self._entries.items():
            if self._is_expired(entry, now):
                expired.append(key)
                continue
            if entry.scope != scope:
                continue
            score = jaccard_similarity(tokens, entry.token_set)
            if score >= threshold and score >= best_score:
                best, best_score = entry, score

        for key in expired:
            del self._entries[key]

        if best is None:
            self._misses += 1
            return None

        best.hit_count += 1
        self._hits += 1
        logger.debug(f"Cache hit ({best_score:.0%} similar): {best.query[:50]}")
        return best

    def _live_entry(self, key: tuple[str, str]) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry

    def get(self, query: str, scope: str = "") -> CacheEntry | None:
        """Exact lookup by normalized key. Counts as a hit or a miss."""
        entry = self._live_entry((scope, normalize_query(query)))
        if entry is None:
            self._misses += 1
            return None
        entry.hit_count += 1
        self._hits += 1
        return entry

    def set(
        self,
        query: str,
        response: Any,
        complexity: ComplexityClass = ComplexityClass.MEDIUM,
        scope: str = "",
    ) -> None:
        """Store a response. Re-setting an existing key replaces it with a fresh age."""
        normalized = normalize_query(query)
        key = (scope, normalized)
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            self._evict_oldest()

        self._entries[key] = CacheEntry(
            query=query,
            normalized_key=normalized,
            token_set=tokenize(normalized),
            response=response,
            inserted_at=self._clock(),
            complexity=ComplexityClass(complexity),
            scope=scope,
        )

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        self._evictions += 1
        logger.debug(f"Evicted oldest cache entry: {oldest[1][:50]}")

    def cleanup(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Cache cleanup removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        """Drop all entries and zero the hit, miss and eviction counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0.0,
            "evictions": self._evictions,
            "tier": self._plan.value,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: object) -> bool:
        return (
            isinstance(query, str)
            and self._live_entry(("", normalize_query(query))) is not None
        )

    async def start_cleanup(self, interval: float) -> None:
        """Start a background task that calls cleanup() every ``interval`` seconds."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(
            self._cleanup_loop(interval), name="response_cache_cleanup"
        )

    async def stop_cleanup(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None

    async def _cleanup_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.cleanup()
            except Exception as e:
                logger.error(f"Error during cache cleanup: {e}", exc_info=True)


__all__ = [
    "DEFAULT_THRESHOLD",
    "DEFAULT_TTL",
    "MAX_KEY_LENGTH",
    "STOP_WORDS",
    "CacheEntry",
    "ResponseCache",
    "jaccard_similarity",
    "normalize_query",
    "tokenize",
]
