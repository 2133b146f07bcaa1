"""Socket.IO server for collaboration sessions.

Client convention:
- Socket.IO path: ``settings.COLLAB_SOCKETIO_PATH`` (``/socket.io`` by default)
- Auth: ``auth.token`` (session token minted by the application server);
  ``query.token`` is accepted as a fallback for clients that cannot send auth
- Events: ``join``, ``presence:ping``, ``state:update``, ``session:end``

All protocol decisions live in ``SessionCoordinator``; the handlers below
only translate Socket.IO callbacks into coordinator calls.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import socketio
from django.conf import settings
from socketio.exceptions import ConnectionRefusedError  # noqa: A004

from collab_relay.realtime.coordinator import JOIN
from collab_relay.realtime.coordinator import PRESENCE_PING
from collab_relay.realtime.coordinator import SESSION_END
from collab_relay.realtime.coordinator import RelayIntervals
from collab_relay.realtime.coordinator import SessionCoordinator
from collab_relay.realtime.events.collab import STATE_UPDATE
from collab_relay.realtime.presence import get_presence_notifier_from_settings
from collab_relay.realtime.tokens import TokenVerificationError
from collab_relay.realtime.tokens import TokenVerifier
from collab_relay.realtime.transport import SocketIOTransport

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.CORS_ALLOWED_ORIGINS,
    # Events from one connection are handled in arrival order.
    async_handlers=False,
    logger=False,
    engineio_logger=False,
)


def build_coordinator(server: socketio.AsyncServer) -> SessionCoordinator:
    return SessionCoordinator(
        SocketIOTransport(server),
        TokenVerifier(settings.COLLAB_TOKEN_SECRET),
        get_presence_notifier_from_settings(),
        intervals=RelayIntervals(
            state_update_ms=settings.COLLAB_STATE_UPDATE_INTERVAL_MS,
            presence_ping_ms=settings.COLLAB_PRESENCE_PING_INTERVAL_MS,
        ),
    )


coordinator = build_coordinator(sio)


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract the session token from Socket.IO auth/environ.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    return None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        msg = "Missing auth token"
        raise ConnectionRefusedError(msg, {"code": "unauthorized"})

    try:
        await coordinator.connect(sid, token)
    except TokenVerificationError as exc:
        raise ConnectionRefusedError(exc.message, {"code": exc.code}) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise ConnectionRefusedError(msg, {"code": msg}) from exc


@sio.event
async def disconnect(sid: str, reason: Any = None):
    await coordinator.disconnect(sid)


@sio.on(JOIN)
async def join(sid: str, data: Any = None):
    await coordinator.dispatch(sid, JOIN, data)


@sio.on(PRESENCE_PING)
async def presence_ping(sid: str, data: Any = None):
    await coordinator.dispatch(sid, PRESENCE_PING, data)


@sio.on(STATE_UPDATE)
async def state_update(sid: str, data: Any = None):
    await coordinator.dispatch(sid, STATE_UPDATE, data)


@sio.on(SESSION_END)
async def session_end(sid: str, data: Any = None):
    await coordinator.dispatch(sid, SESSION_END, data)


async def lifespan(scope: dict[str, Any], receive, send) -> None:
    """ASGI lifespan handler; waits for pending presence calls on shutdown."""

    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            await coordinator.drain()
            logger.info("Realtime coordinator drained")
            await send({"type": "lifespan.shutdown.complete"})
            return
