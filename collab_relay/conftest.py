import pytest

from collab_relay.realtime.coordinator import RelayIntervals
from collab_relay.realtime.coordinator import SessionCoordinator
from collab_relay.realtime.rate_limit import EventRateLimiter
from collab_relay.realtime.tests.factories import TEST_SECRET
from collab_relay.realtime.tests.factories import FakeNotifier
from collab_relay.realtime.tests.factories import FakeTransport
from collab_relay.realtime.tests.factories import ManualClock
from collab_relay.realtime.tokens import TokenVerifier


@pytest.fixture
def timeline() -> list[tuple]:
    return []


@pytest.fixture
def transport(timeline) -> FakeTransport:
    return FakeTransport(timeline=timeline)


@pytest.fixture
def notifier(timeline) -> FakeNotifier:
    return FakeNotifier(timeline=timeline)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def coordinator(transport, notifier, clock) -> SessionCoordinator:
    return SessionCoordinator(
        transport,
        TokenVerifier(TEST_SECRET),
        notifier,
        limiter=EventRateLimiter(now_provider=clock),
        intervals=RelayIntervals(state_update_ms=200, presence_ping_ms=5000),
    )
