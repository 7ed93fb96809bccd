"""Unit tests for AlternatingCall provider alternation."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from llm_dispatcher.config import RetryConfig
from llm_dispatcher.exceptions import ProviderTransientError, RetriesExhausted
from llm_dispatcher.retry import AlternatingCall, RetryEngine


class TestAlternation:
    """Tests for odd/even provider selection."""

    @pytest.mark.asyncio
    async def test_odd_primary_even_secondary(self):
        primary = AsyncMock(return_value="p")
        secondary = AsyncMock(return_value="s")
        call = AlternatingCall(primary, secondary)

        results = [await call() for _ in range(4)]

        assert results == ["p", "s", "p", "s"]
        assert call.attempts == 4
        assert call.provider_calls == ["primary", "secondary", "primary", "secondary"]
        assert call.last_provider == "secondary"

    @pytest.mark.asyncio
    async def test_missing_secondary_fails_fast(self):
        primary = AsyncMock(return_value="p")
        call = AlternatingCall(primary)

        assert await call() == "p"
        with pytest.raises(ProviderTransientError, match="fallback provider disabled"):
            await call()

        assert call.attempts == 2
        assert call.provider_calls == ["primary"]
        assert call.last_provider == "primary"
        primary.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_errors_are_wrapped(self):
        cause = ConnectionError("reset by peer")
        call = AlternatingCall(AsyncMock(side_effect=cause))

        with pytest.raises(ProviderTransientError) as exc_info:
            await call()

        assert exc_info.value.provider == "primary"
        assert exc_info.value.attempt == 1
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_cancellation_not_wrapped(self):
        call = AlternatingCall(AsyncMock(side_effect=asyncio.CancelledError()))
        with pytest.raises(asyncio.CancelledError):
            await call()


class TestWithRetryEngine:
    """Tests for AlternatingCall driven by RetryEngine."""

    @pytest.mark.asyncio
    async def test_secondary_answers_second_attempt(self):
        primary = AsyncMock(side_effect=RuntimeError("primary down"))
        secondary = AsyncMock(return_value="from fallback")
        call = AlternatingCall(primary, secondary)
        engine = RetryEngine(RetryConfig(max_retries=3))

        with patch("llm_dispatcher.retry.engine.asyncio.sleep", new_callable=AsyncMock):
            result = await engine.execute(call)

        assert result == "from fallback"
        assert call.attempts == 2
        assert call.last_provider == "secondary"

    @pytest.mark.asyncio
    async def test_disabled_secondary_consumes_an_attempt(self):
        primary = AsyncMock(side_effect=[RuntimeError("down"), "recovered"])
        call = AlternatingCall(primary)
        engine = RetryEngine(RetryConfig(max_retries=3))

        with patch("llm_dispatcher.retry.engine.asyncio.sleep", new_callable=AsyncMock):
            result = await engine.execute(call)

        assert result == "recovered"
        assert call.attempts == 3
        assert call.provider_calls == ["primary", "primary"]

    @pytest.mark.asyncio
    async def test_exhausted_message_names_last_error(self):
        call = AlternatingCall(AsyncMock(side_effect=RuntimeError("down")))
        engine = RetryEngine(RetryConfig(max_retries=2))

        with patch("llm_dispatcher.retry.engine.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RetriesExhausted) as exc_info:
                await engine.execute(call)

        assert str(exc_info.value) == (
            "Failed after 2 attempts: fallback provider disabled"
        )
