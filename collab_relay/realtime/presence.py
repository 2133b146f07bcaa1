"""Best-effort presence sync with the application server.

The application server keeps the durable record of who is active in a
session. Calls made from here are fire-and-forget: failures are logged and
never reach the real-time path.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any
from urllib.parse import quote

from asgiref.sync import sync_to_async
from django.conf import settings

if TYPE_CHECKING:
    from collab_relay.realtime.tokens import Identity

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


@dataclass
class PresenceAPIConfig:
    base_url: str | None = None
    api_token: str | None = None
    timeout: float = 5.0


class PresenceAPIError(Exception):
    """Raised internally when the record store refuses a presence call."""


class PresenceNotifier:
    def __init__(self, cfg: PresenceAPIConfig):
        self.cfg = cfg

    @property
    def configured(self) -> bool:
        return bool(self.cfg.base_url)

    def _url_for(self, slug: str, action: str) -> str:
        base = (self.cfg.base_url or "").rstrip("/")
        return f"{base}/collab/{quote(slug, safe='')}/{action}"

    def _post_json(self, url: str, body: dict[str, Any]) -> int:
        headers = {"Content-Type": "application/json"}
        if self.cfg.api_token:
            headers["Authorization"] = f"Bearer {self.cfg.api_token}"
        req = urllib.request.Request(  # noqa: S310 - URL comes from settings
            url,
            data=json.dumps(body).encode("utf-8"),
            headers=headers,
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.cfg.timeout) as resp:  # noqa: S310
            status = resp.status
        if not 200 <= status < 300:  # noqa: PLR2004
            msg = f"unexpected status {status}"
            raise PresenceAPIError(msg)
        return status

    async def _send(self, slug: str, action: str, body: dict[str, Any]) -> bool:
        if not self.configured:
            logger.debug("Presence API not configured; skipping %s for %s", action, slug)
            return False
        url = self._url_for(slug, action)
        try:
            await sync_to_async(self._post_json, thread_sensitive=False)(url, body)
        except urllib.error.HTTPError as e:
            logger.warning("Presence %s for %s failed: HTTP %s", action, slug, e.code)
            return False
        except Exception as e:  # noqa: BLE001 - presence is best-effort
            logger.warning("Presence %s for %s failed: %s", action, slug, e)
            return False
        return True

    async def notify_presence(self, slug: str, identity: Identity, status: str) -> bool:
        body = {**identity.as_payload(), "status": status}
        return await self._send(slug, "presence", body)

    async def notify_leave(self, slug: str, identity: Identity) -> bool:
        return await self._send(slug, "leave", identity.as_payload())


def get_presence_notifier_from_settings() -> PresenceNotifier:
    cfg = PresenceAPIConfig(
        base_url=getattr(settings, "COLLAB_API_URL", None) or None,
        api_token=getattr(settings, "COLLAB_API_TOKEN", None) or None,
        timeout=float(getattr(settings, "COLLAB_API_TIMEOUT", 5.0)),
    )
    if not cfg.base_url:
        logger.warning("COLLAB_API_URL is not set; presence will not be recorded")
    return PresenceNotifier(cfg)
