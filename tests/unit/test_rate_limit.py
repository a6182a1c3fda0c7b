"""Unit tests for request pacing, driven by a virtual clock."""

import pytest

from cricket_sync.config import AppSettings
from cricket_sync.rate_limit import FixedDelayPacer, TokenBucket, build_pacer


class VirtualClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_fixed_delay_sleeps_before_every_request():
    clock = VirtualClock()
    pacer = FixedDelayPacer(0.2, sleep=clock.sleep)

    for _ in range(3):
        await pacer.wait()

    assert clock.sleeps == [0.2, 0.2, 0.2]


@pytest.mark.asyncio
async def test_zero_delay_never_sleeps():
    clock = VirtualClock()
    pacer = FixedDelayPacer(0, sleep=clock.sleep)
    await pacer.wait()
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_token_bucket_allows_burst_then_waits():
    clock = VirtualClock()
    bucket = TokenBucket(rate=2, clock=clock, sleep=clock.sleep)

    await bucket.wait()
    await bucket.wait()
    assert clock.sleeps == []

    await bucket.wait()
    assert clock.sleeps == [pytest.approx(0.5)]


@pytest.mark.asyncio
async def test_token_bucket_refills_over_time():
    clock = VirtualClock()
    bucket = TokenBucket(rate=1, clock=clock, sleep=clock.sleep)

    await bucket.wait()
    clock.now += 5.0
    await bucket.wait()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_token_bucket_context_manager():
    clock = VirtualClock()
    async with TokenBucket(rate=1, clock=clock, sleep=clock.sleep):
        pass
    assert clock.sleeps == []


def test_token_bucket_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        TokenBucket(rate=0)


def test_build_pacer_selects_policy():
    fixed = build_pacer(AppSettings(PACING_DELAY_S=0.5, _env_file=None))
    assert isinstance(fixed, FixedDelayPacer)
    assert fixed.delay_s == 0.5

    bucket = build_pacer(AppSettings(PACING_RPS=4, _env_file=None))
    assert isinstance(bucket, TokenBucket)
    assert bucket.rate == 4
