# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Admission control for provider calls."""

from .rate_limiter import WINDOW_SECONDS, RateLimiter

__all__ = ["WINDOW_SECONDS", "RateLimiter"]
