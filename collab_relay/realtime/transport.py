"""Narrow view of the Socket.IO server used by the session layer.

The coordinator and registry only ever need these four operations, which
keeps them testable against a recording fake instead of a live server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

if TYPE_CHECKING:
    import socketio


class RealtimeTransport(Protocol):
    async def send(self, sid: str, event: str, payload: dict[str, Any]) -> None: ...

    async def broadcast_to_group(
        self,
        group: str,
        event: str,
        payload: dict[str, Any],
        exclude: str | None = None,
    ) -> None: ...

    async def join_group(self, sid: str, group: str) -> None: ...

    async def leave_group(self, sid: str, group: str) -> None: ...


class SocketIOTransport:
    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio

    async def send(self, sid: str, event: str, payload: dict[str, Any]) -> None:
        await self.sio.emit(event, payload, to=sid)

    async def broadcast_to_group(
        self,
        group: str,
        event: str,
        payload: dict[str, Any],
        exclude: str | None = None,
    ) -> None:
        await self.sio.emit(event, payload, room=group, skip_sid=exclude)

    async def join_group(self, sid: str, group: str) -> None:
        await self.sio.enter_room(sid, group)

    async def leave_group(self, sid: str, group: str) -> None:
        await self.sio.leave_room(sid, group)
