from __future__ import annotations

from typing import Any

from django.http import HttpResponse
from django.http import JsonResponse


def check_relay() -> dict[str, Any]:
    from collab_relay.realtime.socketio import coordinator  # noqa: PLC0415

    try:
        stats = coordinator.stats()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True, **stats}


def check_presence_api() -> dict[str, Any]:
    from collab_relay.realtime.socketio import coordinator  # noqa: PLC0415

    configured = coordinator.notifier.configured
    if not configured:
        return {
            "ok": False,
            "configured": False,
            "error": "COLLAB_API_URL not configured",
        }
    return {"ok": True, "configured": True}


def health(request):
    components = {"relay": check_relay(), "presence_api": check_presence_api()}

    all_ok = all(v.get("ok", False) for v in components.values())
    some_ok = any(v.get("ok", False) for v in components.values())

    status = "ok" if all_ok else ("degraded" if some_ok else "down")
    http_status = 200 if all_ok else 503

    return JsonResponse(
        {"status": status, "components": components},
        status=http_status,
    )


def index(request):
    return HttpResponse("Collab relay is running", content_type="text/plain")
