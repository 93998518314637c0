from __future__ import annotations

import time

from fastapi import APIRouter, Request

from foxyswitch.version import __version__

router = APIRouter()

_start_time = time.time()


@router.get("/healthz")
async def healthz(request: Request):
    relay = request.app.state.relay
    snap = relay.state.snapshot()
    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.time() - _start_time),
        "session": {
            "has_token": snap.has_token,
            "generation": snap.generation,
            "refreshed_at": snap.refreshed_at,
            "last_error": relay.session.last_error,
        },
        "warm": {
            "stale": relay.tracker.is_stale(),
            "last_via": relay.tracker.last_via,
        },
        "event_stream": relay.channel.status() if relay.channel else None,
        "tasks": {t.name: t.status.model_dump() for t in relay.tasks},
    }
