"""Slug semantics on top of Socket.IO rooms.

Rooms are the only record of membership; this module just decides which
room a connection belongs in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collab_relay.realtime.tokens import Identity
    from collab_relay.realtime.transport import RealtimeTransport

# Authenticated connections wait here until they join a session.
LOBBY_ROOM = "lobby"


def room_for_session(slug: str) -> str:
    return f"session_{slug}"


class SessionRegistry:
    def __init__(self, transport: RealtimeTransport):
        self.transport = transport

    @staticmethod
    def participant_key_for(identity: Identity) -> str:
        return f"u:{identity.user_id}"

    async def enter_lobby(self, sid: str) -> None:
        await self.transport.join_group(sid, LOBBY_ROOM)

    async def join(self, sid: str, slug: str) -> None:
        await self.transport.leave_group(sid, LOBBY_ROOM)
        await self.transport.join_group(sid, room_for_session(slug))

    async def leave(self, sid: str, slug: str) -> None:
        await self.transport.leave_group(sid, room_for_session(slug))
