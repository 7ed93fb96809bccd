# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Request dispatcher."""

from .dispatcher import Dispatcher
from .validation import MIN_RESPONSE_LENGTH, REJECTED_PATTERNS, validate_response

__all__ = [
    "MIN_RESPONSE_LENGTH",
    "REJECTED_PATTERNS",
    "Dispatcher",
    "validate_response",
]
