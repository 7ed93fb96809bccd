# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for model provider adapters."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ProviderProtocol(Protocol):
    """
    A text-generation backend.

    The dispatcher does not speak HTTP. Adapters own the network call and
    may raise anything on failure; every error is treated as retryable.

    ``messages`` is a list of ``{"role": "system" | "user", "content": str}``.
    ``options`` carries at least ``enable_thinking`` and ``endpoint``.
    """

    @property
    def name(self) -> str:
        """Provider name (for logging)."""
        ...

    async def invoke(
        self,
        messages: list[dict[str, str]],
        model_id: str,
        options: dict[str, Any],
    ) -> str:
        """Generate a completion and return its text."""
        ...
