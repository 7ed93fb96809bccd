"""Unit tests for RetryEngine backoff, validation and statistics."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from llm_dispatcher.config import RetryConfig
from llm_dispatcher.exceptions import RetriesExhausted, ValidationFailure
from llm_dispatcher.retry import RetryEngine


@pytest.fixture
def engine():
    return RetryEngine(
        RetryConfig(
            max_retries=3,
            initial_delay=1.0,
            max_delay=10.0,
            backoff_multiplier=2.0,
            jitter=0.1,
        )
    )


@pytest.fixture
def mock_sleep():
    with patch("llm_dispatcher.retry.engine.asyncio.sleep", new_callable=AsyncMock) as m:
        yield m


class TestComputeDelay:
    """Tests for the backoff formula."""

    def test_exponential_growth_without_jitter(self, engine):
        with patch("llm_dispatcher.retry.engine.random.uniform", return_value=0.0):
            assert engine.compute_delay(1) == 1.0
            assert engine.compute_delay(2) == 2.0
            assert engine.compute_delay(3) == 4.0
            assert engine.compute_delay(4) == 8.0

    def test_capped_at_max_delay(self, engine):
        with patch("llm_dispatcher.retry.engine.random.uniform", return_value=0.1):
            assert engine.compute_delay(5) == 10.0
            assert engine.compute_delay(20) == 10.0

    def test_jitter_within_bounds(self, engine):
        for _ in range(50):
            delay = engine.compute_delay(1)
            assert 1.0 <= delay <= 1.1

    def test_non_decreasing_in_attempt(self):
        engine = RetryEngine(
            RetryConfig(initial_delay=0.5, max_delay=30.0, backoff_multiplier=1.5, jitter=0)
        )
        delays = [engine.compute_delay(n) for n in range(1, 12)]
        assert delays == sorted(delays)
        assert max(delays) <= 30.0


class TestExecute:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, engine, mock_sleep):
        fn = AsyncMock(return_value="ok")
        assert await engine.execute(fn) == "ok"
        fn.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_always_failing_makes_three_calls(self, engine, mock_sleep):
        """Three attempts, sleeping about 1s then 2s, then a terminal error."""
        fn = AsyncMock(side_effect=RuntimeError("503 Service Unavailable"))

        with pytest.raises(RetriesExhausted) as exc_info:
            await engine.execute(fn)

        assert fn.await_count == 3
        assert mock_sleep.await_count == 2
        slept = [call.args[0] for call in mock_sleep.await_args_list]
        assert 1.0 <= slept[0] <= 1.1
        assert 2.0 <= slept[1] <= 2.1
        assert sum(slept) == pytest.approx(3.0, abs=0.2)

        error = exc_info.value
        assert error.attempts == 3
        assert isinstance(error.last_error, RuntimeError)
        assert error.__cause__ is error.last_error
        assert str(error) == "Failed after 3 attempts: 503 Service Unavailable"

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self, engine, mock_sleep):
        fn = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        assert await engine.execute(fn) == "ok"
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_validator_rejection_is_retried(self, engine, mock_sleep):
        fn = AsyncMock(side_effect=["bad", "good answer"])
        validator = Mock(side_effect=lambda r: r != "bad")

        assert await engine.execute(fn, validator) == "good answer"
        assert validator.call_count == 2

    @pytest.mark.asyncio
    async def test_validator_never_satisfied(self, engine, mock_sleep):
        fn = AsyncMock(return_value="short")

        with pytest.raises(RetriesExhausted) as exc_info:
            await engine.execute(fn, validator=lambda r: False)

        assert isinstance(exc_info.value.last_error, ValidationFailure)
        assert "Result quality check failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_cancellation_not_retried(self, engine, mock_sleep):
        fn = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await engine.execute(fn)

        fn.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_attempt_config_does_not_sleep(self, mock_sleep):
        engine = RetryEngine(RetryConfig(max_retries=1))
        with pytest.raises(RetriesExhausted):
            await engine.execute(AsyncMock(side_effect=ValueError("x")))
        mock_sleep.assert_not_awaited()


class TestRetryStats:
    """Tests for statistics tracking."""

    @pytest.mark.asyncio
    async def test_stats_accumulate(self, engine, mock_sleep):
        await engine.execute(AsyncMock(return_value="ok"))
        await engine.execute(AsyncMock(side_effect=[RuntimeError("x"), "ok"]))
        with pytest.raises(RetriesExhausted):
            await engine.execute(AsyncMock(side_effect=RuntimeError("x")))

        stats = engine.get_stats()
        assert stats.total_attempts == 1 + 2 + 3
        assert stats.successful_executions == 2
        assert stats.successful_retries == 1
        assert stats.failed_retries == 1
        assert stats.average_attempts == pytest.approx(1.5)

    @pytest.mark.asyncio
    async def test_get_stats_returns_copy(self, engine, mock_sleep):
        snapshot = engine.get_stats()
        await engine.execute(AsyncMock(return_value="ok"))
        assert snapshot.total_attempts == 0

    @pytest.mark.asyncio
    async def test_reset_stats(self, engine, mock_sleep):
        await engine.execute(AsyncMock(return_value="ok"))
        engine.reset_stats()
        assert engine.get_stats().to_dict() == {
            "total_attempts": 0,
            "successful_retries": 0,
            "failed_retries": 0,
            "successful_executions": 0,
            "average_attempts": 0.0,
        }

    def test_update_config(self, engine):
        engine.update_config(max_retries=5, jitter=0.0)
        assert engine.config.max_retries == 5
        assert engine.config.jitter == 0.0
