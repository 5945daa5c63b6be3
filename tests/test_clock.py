import asyncio
from datetime import datetime

import pytest

from status_bridge.clock import ClockTicker, clock_value


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(2024, 1, 1, 0, 5), "00:05"),
        (datetime(2024, 1, 1, 9, 7, 59), "09:07"),
        (datetime(2024, 1, 1, 23, 59), "23:59"),
        (datetime(2024, 1, 1, 13, 0), "13:00"),
    ],
)
def test_clock_value_is_24_hour(moment: datetime, expected: str) -> None:
    assert clock_value(moment) == expected


@pytest.mark.asyncio
async def test_ticker_fires_on_start_and_stops() -> None:
    ticks = []
    ticker = ClockTicker(lambda: ticks.append(1), interval_sec=60)
    ticker.start()
    await asyncio.sleep(0.01)
    assert ticks == [1]
    assert ticker.running
    ticker.stop()
    assert not ticker.running


@pytest.mark.asyncio
async def test_failing_callback_does_not_kill_ticker() -> None:
    def broken() -> None:
        raise RuntimeError("clock sink down")

    ticker = ClockTicker(broken, interval_sec=60)
    ticker.start()
    await asyncio.sleep(0.01)
    try:
        assert ticker.running
    finally:
        ticker.stop()
