# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Default quality check for provider responses."""

import logging

logger = logging.getLogger(__name__)

MIN_RESPONSE_LENGTH = 20

# Matched case-insensitively as substrings. Only refusals and error payloads
# rendered as text; responses that merely discuss errors pass.
REJECTED_PATTERNS = (
    "sorry, i cannot",
    "i apologize, but i cannot",
    "as an ai, i cannot",
    '{"error":',
    '"error":{"message"',
)


def validate_response(response: str) -> bool:
    """Return False for empty, very short, refusal or error-payload responses."""
    if not response or len(response) < MIN_RESPONSE_LENGTH:
        logger.warning("Response rejected: too short")
        return False

    lower = response.lower()
    for pattern in REJECTED_PATTERNS:
        if pattern in lower:
            logger.warning(f"Response rejected: contains {pattern!r}")
            return False
    return True


__all__ = ["MIN_RESPONSE_LENGTH", "REJECTED_PATTERNS", "validate_response"]
