"""Per-connection, per-event throttle for relayed events.

This is a plain minimum-interval gate, not a token bucket: an event is
accepted when at least ``min_interval_ms`` have passed since the last
*accepted* event of the same kind on the same connection. Rejections are
silent; diffs and heartbeats are superseded by the next one anyway.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class EventRateLimiter:
    def __init__(self, now_provider: Callable[[], float] | None = None):
        self._now = now_provider or _monotonic_ms
        self._last_accepted: dict[str, dict[str, float]] = defaultdict(dict)

    def allow(self, connection_id: str, event_kind: str, min_interval_ms: float) -> bool:
        now = self._now()
        per_event = self._last_accepted[connection_id]
        last = per_event.get(event_kind)
        if last is not None and now - last < min_interval_ms:
            return False
        per_event[event_kind] = now
        return True

    def purge(self, connection_id: str) -> None:
        """Forget every timestamp recorded for a closed connection."""

        self._last_accepted.pop(connection_id, None)

    def tracked_connections(self) -> int:
        return len(self._last_accepted)
