import asyncio

import pytest

from stockdash.infrastructure.market_data.pacing import RequestPacer


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_first_request_does_not_wait():
    clock = FakeClock()
    pacer = RequestPacer("alpha_vantage", 5, clock=clock, sleep=clock.sleep, wall_clock=clock)

    await pacer.wait()

    assert clock.sleeps == []
    assert pacer.request_count == 1


@pytest.mark.asyncio
async def test_back_to_back_requests_are_spaced():
    clock = FakeClock()
    pacer = RequestPacer("alpha_vantage", 5, clock=clock, sleep=clock.sleep, wall_clock=clock)

    await pacer.wait()
    clock.now += 2
    await pacer.wait()

    # 5/minute -> 12s apart
    assert clock.sleeps == [pytest.approx(10.0)]
    assert pacer.request_count == 2


@pytest.mark.asyncio
async def test_no_wait_after_interval_elapsed():
    clock = FakeClock()
    pacer = RequestPacer("finnhub", 60, clock=clock, sleep=clock.sleep, wall_clock=clock)

    await pacer.wait()
    clock.now += 1.5
    await pacer.wait()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_are_serialized():
    clock = FakeClock()
    pacer = RequestPacer("polygon", 5, clock=clock, sleep=clock.sleep, wall_clock=clock)

    await asyncio.gather(pacer.wait(), pacer.wait(), pacer.wait())

    assert clock.sleeps == [pytest.approx(12.0), pytest.approx(12.0)]
    assert pacer.request_count == 3


def test_status_reports_counters():
    pacer = RequestPacer("iex", 100)
    status = pacer.status()

    assert status == {"request_count": 0, "last_request": None, "rate_limit": "100 requests/minute"}


def test_rate_limit_must_be_positive():
    with pytest.raises(ValueError):
        RequestPacer("iex", 0)
