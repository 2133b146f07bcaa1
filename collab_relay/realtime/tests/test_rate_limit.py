from collab_relay.realtime.rate_limit import EventRateLimiter
from collab_relay.realtime.tests.factories import ManualClock


def test_second_call_inside_interval_is_rejected():
    clock = ManualClock(start=0)
    limiter = EventRateLimiter(now_provider=clock)

    assert limiter.allow("sid-1", "state:update", 200) is True
    clock.advance(199)
    assert limiter.allow("sid-1", "state:update", 200) is False


def test_call_exactly_one_interval_later_is_accepted():
    clock = ManualClock(start=0)
    limiter = EventRateLimiter(now_provider=clock)

    assert limiter.allow("sid-1", "state:update", 200) is True
    clock.advance(200)
    assert limiter.allow("sid-1", "state:update", 200) is True


def test_rejection_does_not_reset_the_window():
    clock = ManualClock(start=0)
    limiter = EventRateLimiter(now_provider=clock)

    assert limiter.allow("sid-1", "presence:ping", 5000)
    clock.advance(4000)
    assert not limiter.allow("sid-1", "presence:ping", 5000)
    clock.advance(1000)
    assert limiter.allow("sid-1", "presence:ping", 5000)


def test_keys_are_independent_per_connection_and_event():
    clock = ManualClock(start=0)
    limiter = EventRateLimiter(now_provider=clock)

    assert limiter.allow("sid-1", "state:update", 200)
    assert limiter.allow("sid-2", "state:update", 200)
    assert limiter.allow("sid-1", "presence:ping", 5000)
    assert not limiter.allow("sid-1", "state:update", 200)


def test_purge_forgets_connection():
    clock = ManualClock(start=0)
    limiter = EventRateLimiter(now_provider=clock)
    limiter.allow("sid-1", "state:update", 200)
    limiter.allow("sid-2", "state:update", 200)

    limiter.purge("sid-1")
    limiter.purge("never-seen")

    assert limiter.tracked_connections() == 1
    assert limiter.allow("sid-1", "state:update", 200) is True


def test_default_clock_is_monotonic_milliseconds():
    limiter = EventRateLimiter()
    assert limiter.allow("sid-1", "state:update", 60_000) is True
    assert limiter.allow("sid-1", "state:update", 60_000) is False
