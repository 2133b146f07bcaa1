"""Per-connection session protocol.

Each Socket.IO connection moves through an explicit lifecycle::

    CONNECTING -> AUTHENTICATED -> JOINED -> DISCONNECTING -> CLOSED

Inbound events are routed through a single table keyed by
``(phase, event)``. An event with no entry for the connection's current
phase is dropped, which is also what makes a repeated ``join`` a no-op.

The coordinator owns all mutable relay state (connections, rate-limit
timestamps, pending presence calls). Nothing lives at module level.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from collab_relay.realtime.events.collab import ERROR
from collab_relay.realtime.events.collab import SESSION_ENDED
from collab_relay.realtime.events.collab import STATE_UPDATE
from collab_relay.realtime.events.collab import USER_JOIN
from collab_relay.realtime.events.collab import USER_LEAVE
from collab_relay.realtime.events.collab import USER_PRESENCE
from collab_relay.realtime.events.collab import build_error_payload
from collab_relay.realtime.events.collab import build_session_ended_payload
from collab_relay.realtime.events.collab import build_state_update_payload
from collab_relay.realtime.events.collab import build_user_join_payload
from collab_relay.realtime.events.collab import build_user_leave_payload
from collab_relay.realtime.events.collab import build_user_presence_payload
from collab_relay.realtime.presence import STATUS_ACTIVE
from collab_relay.realtime.presence import STATUS_INACTIVE
from collab_relay.realtime.rate_limit import EventRateLimiter
from collab_relay.realtime.registry import SessionRegistry
from collab_relay.realtime.registry import room_for_session
from collab_relay.realtime.tokens import TokenVerificationError

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from collab_relay.realtime.presence import PresenceNotifier
    from collab_relay.realtime.tokens import Identity
    from collab_relay.realtime.tokens import TokenVerifier
    from collab_relay.realtime.transport import RealtimeTransport

logger = logging.getLogger(__name__)

JOIN = "join"
PRESENCE_PING = "presence:ping"
SESSION_END = "session:end"

SLUG_MISMATCH = "Slug mismatch"
INVALID_STATE_UPDATE = "Invalid state:update payload"


class ConnectionPhase(enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    DISCONNECTING = "disconnecting"
    CLOSED = "closed"


@dataclass
class ConnectionState:
    sid: str
    phase: ConnectionPhase = ConnectionPhase.CONNECTING
    identity: Identity | None = None
    token_slug: str | None = None
    slug: str | None = None
    participant_key: str | None = None


@dataclass(frozen=True)
class RelayIntervals:
    state_update_ms: int = 200
    presence_ping_ms: int = 5000


def _payload_slug(data: Any) -> Any:
    if isinstance(data, dict):
        return data.get("slug")
    return data


class SessionCoordinator:
    def __init__(  # noqa: PLR0913
        self,
        transport: RealtimeTransport,
        verifier: TokenVerifier,
        notifier: PresenceNotifier,
        *,
        limiter: EventRateLimiter | None = None,
        intervals: RelayIntervals | None = None,
    ):
        self.transport = transport
        self.verifier = verifier
        self.notifier = notifier
        self.registry = SessionRegistry(transport)
        self.limiter = limiter or EventRateLimiter()
        self.intervals = intervals or RelayIntervals()
        self._connections: dict[str, ConnectionState] = {}
        self._background: set[asyncio.Task] = set()

    # -- lifecycle -----------------------------------------------------------

    async def connect(self, sid: str, token: str) -> ConnectionState:
        """Authenticate a new connection and park it in the lobby.

        Raises ``TokenVerificationError`` when the token is refused. A
        connection is only tracked once the whole handshake succeeded, since
        a refused connection never gets a disconnect callback.
        """

        state = ConnectionState(sid=sid)
        try:
            verified = self.verifier.verify(token)
        except TokenVerificationError as exc:
            logger.info("Refused connection %s: %s", sid, exc.code)
            raise

        state.identity = verified.identity
        state.token_slug = verified.slug
        await self.registry.enter_lobby(sid)
        state.phase = ConnectionPhase.AUTHENTICATED
        self._connections[sid] = state
        logger.info(
            "Connection %s authenticated as user %s",
            sid,
            verified.identity.user_id,
        )
        return state

    async def disconnect(self, sid: str) -> None:
        state = self._connections.get(sid)
        if state is None or state.phase is ConnectionPhase.CLOSED:
            return

        was_joined = state.phase is ConnectionPhase.JOINED
        state.phase = ConnectionPhase.DISCONNECTING
        try:
            if was_joined:
                await self._announce_departure(state)
        finally:
            state.phase = ConnectionPhase.CLOSED
            self.limiter.purge(sid)
            self._connections.pop(sid, None)
            logger.info("Connection %s closed", sid)

    async def _announce_departure(self, state: ConnectionState) -> None:
        slug = state.slug
        identity = state.identity
        await self.transport.broadcast_to_group(
            room_for_session(slug),
            USER_LEAVE,
            build_user_leave_payload(state.sid, identity),
            exclude=state.sid,
        )
        # The record store expects the inactive mark before the departure.
        await self._best_effort(
            self.notifier.notify_presence(slug, identity, STATUS_INACTIVE),
            "presence inactive",
        )
        await self._best_effort(
            self.notifier.notify_leave(slug, identity),
            "leave",
        )
        await self.registry.leave(state.sid, slug)
        logger.info("User %s left session %s", identity.user_id, slug)

    # -- dispatch ------------------------------------------------------------

    async def dispatch(self, sid: str, event: str, data: Any = None) -> None:
        state = self._connections.get(sid)
        if state is None:
            logger.debug("Dropping %s from unknown connection %s", event, sid)
            return
        handler = self._DISPATCH.get((state.phase, event))
        if handler is None:
            logger.debug(
                "Ignoring %s from %s in phase %s",
                event,
                sid,
                state.phase.value,
            )
            return
        await handler(self, state, data)

    async def _on_join(self, state: ConnectionState, data: Any) -> None:
        slug = data
        if not isinstance(slug, str) or not slug:
            logger.debug("Ignoring join with invalid slug from %s", state.sid)
            return
        if state.token_slug is not None and slug != state.token_slug:
            await self._send_error(state.sid, SLUG_MISMATCH)
            return

        key = self.registry.participant_key_for(state.identity)
        # Claim the phase before suspending so a concurrent join is dropped.
        state.phase = ConnectionPhase.JOINED
        state.slug = slug
        state.participant_key = key

        await self.registry.join(state.sid, slug)
        await self.transport.broadcast_to_group(
            room_for_session(slug),
            USER_JOIN,
            build_user_join_payload(state.sid, state.identity, key),
        )
        self._spawn(
            self.notifier.notify_presence(slug, state.identity, STATUS_ACTIVE),
            "presence active",
        )
        logger.info("User %s joined session %s", state.identity.user_id, slug)

    async def _on_presence_ping(self, state: ConnectionState, data: Any) -> None:
        if not self.limiter.allow(
            state.sid,
            PRESENCE_PING,
            self.intervals.presence_ping_ms,
        ):
            logger.debug("Rate limited presence:ping from %s", state.sid)
            return
        self._spawn(
            self.notifier.notify_presence(state.slug, state.identity, STATUS_ACTIVE),
            "presence active",
        )
        await self.transport.broadcast_to_group(
            room_for_session(state.slug),
            USER_PRESENCE,
            build_user_presence_payload(state.participant_key, STATUS_ACTIVE),
        )

    async def _on_state_update(self, state: ConnectionState, data: Any) -> None:
        if not self.limiter.allow(
            state.sid,
            STATE_UPDATE,
            self.intervals.state_update_ms,
        ):
            logger.debug("Rate limited state:update from %s", state.sid)
            return

        payload = data if isinstance(data, dict) else {}
        slug = payload.get("slug")
        diff = payload.get("diff")
        if not isinstance(slug, str) or not isinstance(diff, dict):
            await self._send_error(state.sid, INVALID_STATE_UPDATE)
            return
        if slug != state.slug:
            await self._send_error(state.sid, SLUG_MISMATCH)
            return

        await self.transport.broadcast_to_group(
            room_for_session(state.slug),
            STATE_UPDATE,
            build_state_update_payload(state.slug, diff, state.identity),
            exclude=state.sid,
        )

    async def _on_session_end(self, state: ConnectionState, data: Any) -> None:
        slug = _payload_slug(data)
        if slug is not None and slug != state.slug:
            await self._send_error(state.sid, SLUG_MISMATCH)
            return
        await self.transport.broadcast_to_group(
            room_for_session(state.slug),
            SESSION_ENDED,
            build_session_ended_payload(state.slug, state.identity),
        )
        logger.info(
            "Session %s ended by user %s",
            state.slug,
            state.identity.user_id,
        )

    _DISPATCH = {
        (ConnectionPhase.AUTHENTICATED, JOIN): _on_join,
        (ConnectionPhase.JOINED, PRESENCE_PING): _on_presence_ping,
        (ConnectionPhase.JOINED, STATE_UPDATE): _on_state_update,
        (ConnectionPhase.JOINED, SESSION_END): _on_session_end,
    }

    # -- helpers -------------------------------------------------------------

    async def _send_error(self, sid: str, message: str) -> None:
        await self.transport.send(sid, ERROR, build_error_payload(message))

    async def _best_effort(self, call: Awaitable[Any], what: str) -> None:
        try:
            await call
        except Exception:  # noqa: BLE001 - presence must never break the relay
            logger.exception("Presence notifier raised during %s", what)

    def _spawn(self, call: Awaitable[Any], what: str) -> None:
        task = asyncio.create_task(self._best_effort(call, what))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for outstanding fire-and-forget presence calls."""

        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # -- introspection -------------------------------------------------------

    def get_state(self, sid: str) -> ConnectionState | None:
        return self._connections.get(sid)

    def stats(self) -> dict[str, Any]:
        sessions = Counter(
            state.slug
            for state in self._connections.values()
            if state.phase is ConnectionPhase.JOINED
        )
        return {"connections": len(self._connections), "sessions": dict(sessions)}
