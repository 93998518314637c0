from __future__ import annotations

import secrets

from fastapi import HTTPException, Request

from foxyswitch.config import settings

# Paths reachable without a key, for uptime probes.
OPEN_PATHS = frozenset({"/healthz"})


async def require_api_key(request: Request) -> None:
    """Check X-API-KEY (or ?key=) against FOXYSWITCH_API_KEY when one is set.

    Shortcut apps on phones can only build plain GET URLs, hence the
    query-string form.
    """
    expected = settings.API_KEY
    if not expected or request.url.path in OPEN_PATHS:
        return
    supplied = request.headers.get("X-API-KEY") or request.query_params.get("key", "")
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
