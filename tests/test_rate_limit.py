import asyncio

import pytest

from src.services.rate_limit import TokenBucketLimiter


def test_rate_must_be_positive():
    with pytest.raises(ValueError):
        TokenBucketLimiter(rate=0)


async def test_first_call_does_not_wait(clock):
    limiter = TokenBucketLimiter(rate=1.0, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    assert clock.sleeps == []


async def test_consecutive_calls_are_spaced(clock):
    limiter = TokenBucketLimiter(rate=2.0, clock=clock, sleep=clock.sleep)
    for _ in range(3):
        await limiter.acquire()
    assert clock.sleeps == [pytest.approx(0.5), pytest.approx(0.5)]


async def test_tokens_refill_over_time(clock):
    limiter = TokenBucketLimiter(rate=1.0, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    clock.advance(1.0)
    await limiter.acquire()
    assert clock.sleeps == []


async def test_concurrent_callers_share_the_bucket(clock):
    limiter = TokenBucketLimiter(rate=1.0, clock=clock, sleep=clock.sleep)
    await asyncio.gather(*(limiter.acquire() for _ in range(4)))
    assert len(clock.sleeps) == 3
    assert sum(clock.sleeps) == pytest.approx(3.0)
