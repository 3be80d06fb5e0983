"""
Unit tests for clocks.
"""

import asyncio

import pytest

from batcher.engine.clock import AsyncioClock, Clock, ManualClock


class TestManualClock:
    """Tests for ManualClock."""

    async def test_sleepers_wake_at_their_deadline(self, manual_clock: ManualClock):
        """Test sleepers wake in deadline order as time advances."""
        woken = []

        async def sleeper(name: str, seconds: float) -> None:
            await manual_clock.sleep(seconds)
            woken.append((name, manual_clock.now()))

        tasks = [
            asyncio.create_task(sleeper("late", 2.0)),
            asyncio.create_task(sleeper("early", 1.0)),
        ]

        await manual_clock.advance(0.5)
        assert woken == []

        await manual_clock.advance(2.0)
        assert woken == [("early", 1.0), ("late", 2.0)]
        assert manual_clock.now() == 2.5

        await asyncio.gather(*tasks)

    async def test_zero_sleep_does_not_wait_for_advance(self, manual_clock: ManualClock):
        """Test non-positive sleeps return without moving time."""
        await manual_clock.sleep(0)

        assert manual_clock.now() == 0.0
        assert manual_clock.pending_sleepers == 0

    async def test_cannot_go_backwards(self, manual_clock: ManualClock):
        """Test negative advances are rejected."""
        with pytest.raises(ValueError):
            await manual_clock.advance(-1)

    def test_satisfies_protocol(self, manual_clock: ManualClock):
        """Test both clocks implement the Clock protocol."""
        assert isinstance(manual_clock, Clock)
        assert isinstance(AsyncioClock(), Clock)


class TestAsyncioClock:
    """Tests for AsyncioClock."""

    async def test_sleep_advances_loop_time(self):
        """Test sleeping moves the monotonic time forward."""
        clock = AsyncioClock()
        before = clock.now()

        await clock.sleep(0.01)

        assert clock.now() - before >= 0.009
