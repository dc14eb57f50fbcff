import pytest

from crewroute.services.routing.rate_limit import RateLimiter


def test_first_call_does_not_wait(clock):
    limiter = RateLimiter(1.1, clock=clock, sleep=clock.sleep)

    assert limiter.acquire() == 0.0
    assert clock.sleeps == []


def test_consecutive_calls_are_spaced_by_interval(clock):
    limiter = RateLimiter(1.1, clock=clock, sleep=clock.sleep)

    limiter.acquire()
    limiter.acquire()
    limiter.acquire()

    assert clock.sleeps == [pytest.approx(1.1), pytest.approx(1.1)]
    assert clock.now == pytest.approx(2.2)


def test_elapsed_time_refills_the_bucket(clock):
    limiter = RateLimiter(0.05, clock=clock, sleep=clock.sleep)

    limiter.acquire()
    clock.advance(1.0)
    limiter.acquire()

    assert clock.sleeps == []


def test_partial_elapsed_time_only_waits_the_remainder(clock):
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep)

    limiter.acquire()
    clock.advance(0.75)
    waited = limiter.acquire()

    assert waited == pytest.approx(0.25)


def test_burst_allows_back_to_back_calls(clock):
    limiter = RateLimiter(1.0, burst=3, clock=clock, sleep=clock.sleep)

    for _ in range(3):
        limiter.acquire()
    assert clock.sleeps == []

    limiter.acquire()
    assert clock.sleeps == [pytest.approx(1.0)]


def test_zero_interval_never_sleeps(clock):
    limiter = RateLimiter(0.0, clock=clock, sleep=clock.sleep)

    for _ in range(5):
        limiter.acquire()

    assert clock.sleeps == []


def test_invalid_arguments_rejected():
    with pytest.raises(ValueError):
        RateLimiter(-1)
    with pytest.raises(ValueError):
        RateLimiter(1, burst=0)
