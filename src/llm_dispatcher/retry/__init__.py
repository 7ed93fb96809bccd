# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Retry with backoff and provider alternation."""

from .alternating import PRIMARY, SECONDARY, AlternatingCall
from .engine import RetryEngine, RetryStats

__all__ = [
    "PRIMARY",
    "SECONDARY",
    "AlternatingCall",
    "RetryEngine",
    "RetryStats",
]
