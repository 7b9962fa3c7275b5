"""
Tests for the reconnection backoff policy.
"""

import pytest

from livecaptions.config.models import ReconnectConfig
from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.utils.retry_utils import RetryUtils


class Flaky:
    """connect() stand-in that fails a fixed number of times."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError(f"refused #{self.calls}")


class TestBackoffSchedule:
    def test_delay_sequence(self):
        manager = ReconnectionManager()
        assert [manager.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_calculate_backoff_delay(self):
        assert RetryUtils.calculate_backoff_delay(1, 1.0) == 1.0
        assert RetryUtils.calculate_backoff_delay(5, 1.0) == 16.0
        assert RetryUtils.calculate_backoff_delay(5, 1.0, max_delay=10.0) == 10.0

    def test_calculate_backoff_delay_rejects_zero(self):
        with pytest.raises(ValueError):
            RetryUtils.calculate_backoff_delay(0)

    def test_from_config(self, recording_sleep):
        manager = ReconnectionManager.from_config(
            ReconnectConfig(max_attempts=3, base_delay=0.5), sleep=recording_sleep
        )
        assert manager.max_attempts == 3
        assert manager.delay_for(2) == 1.0


class TestReconnect:
    @pytest.mark.asyncio
    async def test_exhaustion_after_five_attempts(self, recording_sleep):
        manager = ReconnectionManager(sleep=recording_sleep)
        connect = Flaky(failures=100)

        result = await manager.reconnect(connect, lambda: True)

        assert result is False
        assert connect.calls == 5
        assert recording_sleep.delays == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert manager.exhausted

    @pytest.mark.asyncio
    async def test_exhausted_manager_makes_no_further_attempts(self, recording_sleep):
        manager = ReconnectionManager(sleep=recording_sleep)
        await manager.reconnect(Flaky(failures=100), lambda: True)

        connect = Flaky(failures=0)
        assert await manager.reconnect(connect, lambda: True) is False
        assert connect.calls == 0

    @pytest.mark.asyncio
    async def test_success_resets_counter(self, recording_sleep):
        manager = ReconnectionManager(sleep=recording_sleep)

        assert await manager.reconnect(Flaky(failures=2), lambda: True) is True
        assert manager.attempts == 0
        assert recording_sleep.delays == [1.0, 2.0, 4.0]

        # A later drop starts from the base delay again
        assert await manager.reconnect(Flaky(failures=0), lambda: True) is True
        assert recording_sleep.delays[-1] == 1.0

    @pytest.mark.asyncio
    async def test_inactive_owner_stops_before_connecting(self, recording_sleep):
        manager = ReconnectionManager(sleep=recording_sleep)
        connect = Flaky(failures=0)

        assert await manager.reconnect(connect, lambda: False) is False
        assert connect.calls == 0

    @pytest.mark.asyncio
    async def test_owner_going_inactive_during_wait(self, recording_sleep):
        manager = ReconnectionManager(sleep=recording_sleep)
        connect = Flaky(failures=100)
        state = {"active": True}

        async def on_attempt(attempt, delay):
            if attempt == 2:
                state["active"] = False

        result = await manager.reconnect(connect, lambda: state["active"], on_attempt)

        assert result is False
        assert connect.calls == 1

    @pytest.mark.asyncio
    async def test_on_attempt_receives_schedule(self, recording_sleep):
        manager = ReconnectionManager(max_attempts=3, sleep=recording_sleep)
        seen = []

        async def on_attempt(attempt, delay):
            seen.append((attempt, delay))

        await manager.reconnect(Flaky(failures=100), lambda: True, on_attempt)
        assert seen == [(1, 1.0), (2, 2.0), (3, 4.0)]

    def test_reset(self):
        manager = ReconnectionManager()
        manager.attempts = 4
        manager.reset()
        assert manager.attempts == 0
