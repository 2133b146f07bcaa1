from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from django.utils import timezone

if TYPE_CHECKING:
    from collab_relay.realtime.tokens import Identity

USER_JOIN = "user:join"
USER_PRESENCE = "user:presence"
USER_LEAVE = "user:leave"
STATE_UPDATE = "state:update"
SESSION_ENDED = "session:ended"
ERROR = "error"


def build_user_join_payload(sid: str, identity: Identity, key: str) -> dict[str, Any]:
    return {"id": sid, "user": identity.as_payload(), "key": key}


def build_user_presence_payload(key: str, status: str) -> dict[str, Any]:
    return {
        "key": key,
        "status": status,
        "last_seen": timezone.now().isoformat(),
    }


def build_state_update_payload(
    slug: str,
    diff: dict[str, Any],
    identity: Identity,
) -> dict[str, Any]:
    return {"slug": slug, "diff": diff, "user": identity.as_payload()}


def build_session_ended_payload(slug: str, identity: Identity) -> dict[str, Any]:
    return {"slug": slug, "endedBy": identity.as_payload()}


def build_user_leave_payload(sid: str, identity: Identity) -> dict[str, Any]:
    return {"id": sid, "user": identity.as_payload()}


def build_error_payload(message: str) -> dict[str, Any]:
    return {"message": message}
