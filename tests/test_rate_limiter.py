from datetime import datetime, timedelta

import pytest

from teletext.services.rate_limiter import (
    DailyCounterPolicy,
    RateLimiter,
    SlidingWindowPolicy,
)


def test_unknown_source_is_unlimited(limiter):
    for _ in range(100):
        assert limiter.try_acquire("anything")
    assert limiter.remaining("anything") is None
    assert limiter.time_until_reset("anything") == timedelta(0)


def test_sliding_window_admits_up_to_limit(limiter, clock):
    limiter.configure("tvmaze", SlidingWindowPolicy(timedelta(seconds=10), 2))

    assert limiter.try_acquire("tvmaze")
    clock.advance(seconds=1)
    assert limiter.try_acquire("tvmaze")
    clock.advance(seconds=1)
    assert not limiter.try_acquire("tvmaze")
    assert limiter.remaining("tvmaze") == 0
    assert limiter.time_until_reset("tvmaze") == timedelta(seconds=8)

    # the first request leaves the window exactly 10s after it was made
    clock.advance(seconds=8)
    assert limiter.can_proceed("tvmaze")
    assert limiter.remaining("tvmaze") == 1


def test_denied_attempt_is_not_recorded(limiter, clock):
    limiter.configure("coinlore", SlidingWindowPolicy(timedelta(minutes=1), 1))
    assert limiter.try_acquire("coinlore")
    for _ in range(5):
        assert not limiter.try_acquire("coinlore")

    clock.advance(minutes=1)
    assert limiter.try_acquire("coinlore")


def test_can_proceed_does_not_consume(limiter):
    limiter.configure("ipapi", SlidingWindowPolicy(timedelta(minutes=1), 1))
    assert limiter.can_proceed("ipapi")
    assert limiter.can_proceed("ipapi")
    limiter.record("ipapi")
    assert not limiter.can_proceed("ipapi")


def test_daily_counter_resets_at_midnight(limiter, clock):
    clock.set(datetime(2024, 1, 15, 23, 0))
    limiter.configure("newsdata", DailyCounterPolicy(2))

    assert limiter.try_acquire("newsdata")
    assert limiter.try_acquire("newsdata")
    assert not limiter.try_acquire("newsdata")
    assert limiter.time_until_reset("newsdata") == timedelta(hours=1)

    clock.advance(hours=1)
    assert limiter.try_acquire("newsdata")
    assert limiter.remaining("newsdata") == 1


def test_daily_counter_with_budget_left_needs_no_reset(limiter):
    limiter.configure("rss2json", DailyCounterPolicy(10))
    limiter.record("rss2json")
    assert limiter.time_until_reset("rss2json") == timedelta(0)
    assert limiter.remaining("rss2json") == 9


def test_reset_one_or_all(limiter):
    limiter.configure("a", SlidingWindowPolicy(timedelta(minutes=1), 1))
    limiter.configure("b", DailyCounterPolicy(1))
    limiter.record("a")
    limiter.record("b")

    limiter.reset("a")
    assert limiter.can_proceed("a")
    assert not limiter.can_proceed("b")

    limiter.reset()
    assert limiter.can_proceed("b")


def test_configure_none_removes_policy(limiter):
    limiter.configure("a", SlidingWindowPolicy(timedelta(minutes=1), 1))
    limiter.record("a")
    limiter.configure("a", None)
    assert limiter.get_policy("a") is None
    assert limiter.can_proceed("a")


def test_status_report(limiter):
    limiter.configure("coinlore", SlidingWindowPolicy(timedelta(minutes=1), 30))
    limiter.record("coinlore")
    status = limiter.get_status()["coinlore"]
    assert status["remaining"] == 29
    assert status["can_proceed"] is True
    assert status["reset_in"] == 60.0


@pytest.mark.parametrize(
    "make",
    [
        lambda: SlidingWindowPolicy(timedelta(seconds=1), 0),
        lambda: DailyCounterPolicy(0),
    ],
)
def test_policies_need_a_positive_budget(make):
    with pytest.raises(ValueError):
        make()


def test_default_clock_is_wall_time():
    limiter = RateLimiter()
    limiter.configure("x", DailyCounterPolicy(1))
    assert limiter.try_acquire("x")
    assert not limiter.try_acquire("x")
