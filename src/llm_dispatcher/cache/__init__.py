# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Approximate-match response cache."""

from .response_cache import (
    DEFAULT_THRESHOLD,
    DEFAULT_TTL,
    STOP_WORDS,
    CacheEntry,
    ResponseCache,
    jaccard_similarity,
    normalize_query,
    tokenize,
)

__all__ = [
    "DEFAULT_THRESHOLD",
    "DEFAULT_TTL",
    "STOP_WORDS",
    "CacheEntry",
    "ResponseCache",
    "jaccard_similarity",
    "normalize_query",
    "tokenize",
]
