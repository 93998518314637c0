from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from foxyswitch.errors import UnknownGroup

log = logging.getLogger(__name__)

router = APIRouter()


async def _switch(request: Request, group_id: str | None, on: bool):
    if not group_id:
        return JSONResponse(status_code=400, content={"error": "Missing switch parameter"})
    dispatcher = request.app.state.dispatcher
    try:
        results = await dispatcher.set_group_state(group_id, on)
    except UnknownGroup as e:
        log.warning("Rejected switch request: %s", e)
        return JSONResponse(status_code=400, content={"error": str(e)})
    return {
        "message": f"Light group {group_id} turned {'on' if on else 'off'}",
        "details": [str(r) for r in results],
    }


@router.get("/lightgroups")
async def get_light_groups(request: Request):
    return {
        "message": "Available light groups",
        "lightGroups": request.app.state.dispatcher.registry.as_dict(),
    }


@router.get("/switch/on")
async def switch_on(request: Request, switch: str | None = None):
    return await _switch(request, switch, True)


@router.get("/switch/off")
async def switch_off(request: Request, switch: str | None = None):
    return await _switch(request, switch, False)
