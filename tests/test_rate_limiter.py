import asyncio

from rentradar.adapters.clients.rate_limiter import RateLimiter
from rentradar.domain.types import RateLimit


async def test_pacing_and_rolling_window(clock):
    limiter = RateLimiter(
        RateLimit(requests_per_minute=2, delay_between_requests_s=1.0, max_concurrent_requests=5),
        clock=clock,
        sleep=clock.sleep,
    )

    grants = []
    for _ in range(3):
        async with limiter.slot():
            grants.append(clock.now)

    # second call waits out the gap; third waits for the first grant to leave the window
    assert grants == [0.0, 1.0, 60.0]


async def test_window_allows_burst_after_it_expires(clock):
    limiter = RateLimiter(
        RateLimit(requests_per_minute=3, delay_between_requests_s=0.0, max_concurrent_requests=3),
        clock=clock,
        sleep=clock.sleep,
    )
    for _ in range(3):
        await limiter.acquire()
        limiter.release()
    assert clock.now == 0.0

    clock.now = 61.0
    await limiter.acquire()
    limiter.release()
    assert clock.now == 61.0
    assert clock.sleeps == []


async def test_concurrency_cap_blocks_until_release(clock):
    limiter = RateLimiter(
        RateLimit(requests_per_minute=100, delay_between_requests_s=0.0, max_concurrent_requests=1),
        clock=clock,
        sleep=clock.sleep,
    )
    await limiter.acquire()

    waiter = asyncio.create_task(limiter.acquire())
    for _ in range(5):
        await asyncio.sleep(0)
    assert not waiter.done()
    assert limiter.stats()["active_requests"] == 1

    limiter.release()
    await asyncio.wait_for(waiter, timeout=1.0)
    assert limiter.stats()["active_requests"] == 1

    limiter.release()
    assert limiter.stats()["active_requests"] == 0


async def test_slot_releases_on_error(clock):
    limiter = RateLimiter(
        RateLimit(requests_per_minute=100, delay_between_requests_s=0.0, max_concurrent_requests=1),
        clock=clock,
        sleep=clock.sleep,
    )

    try:
        async with limiter.slot():
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert limiter.stats()["active_requests"] == 0
    await asyncio.wait_for(limiter.acquire(), timeout=1.0)


async def test_limiters_do_not_share_state(clock):
    slow = RateLimiter(RateLimit(requests_per_minute=1, delay_between_requests_s=30.0), clock=clock, sleep=clock.sleep)
    fast = RateLimiter(RateLimit(requests_per_minute=100, delay_between_requests_s=0.0), clock=clock, sleep=clock.sleep)

    async with slow.slot():
        pass
    async with fast.slot():
        pass
    async with fast.slot():
        pass

    assert clock.sleeps == []
    assert slow.stats()["requests_in_last_minute"] == 1
    assert fast.stats()["requests_in_last_minute"] == 2


def test_stats_shape(clock):
    limiter = RateLimiter(RateLimit(), clock=clock, sleep=clock.sleep)
    stats = limiter.stats()
    assert stats == {
        "requests_in_last_minute": 0,
        "active_requests": 0,
        "requests_per_minute": 30,
        "delay_between_requests_s": 2.0,
        "max_concurrent_requests": 2,
    }
