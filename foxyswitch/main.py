"""Foxy Switch — group on/off relay in front of Homebridge UI."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI

from foxyswitch.auth import require_api_key
from foxyswitch.config import settings
from foxyswitch.relay import build_relay
from foxyswitch.routes import health, switch
from foxyswitch.version import __version__

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("foxyswitch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.load_file()
    settings.validate()

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
        limits=httpx.Limits(max_connections=64, max_keepalive_connections=32),
        headers={"Content-Type": "application/json"},
    )
    relay = build_relay(settings, client)
    app.state.relay = relay
    app.state.dispatcher = relay.dispatcher

    await relay.start()
    log.info(
        "Foxy Switch API listening at http://%s:%s", settings.HOST, settings.PORT
    )
    yield

    await relay.stop()
    await client.aclose()
    log.info("Foxy Switch shutdown complete")


app = FastAPI(
    title="Foxy Switch",
    version=__version__,
    lifespan=lifespan,
    dependencies=[Depends(require_api_key)],
)

app.include_router(health.router)
app.include_router(switch.router)


def run() -> None:
    import uvicorn

    settings.load_file()
    uvicorn.run(
        "foxyswitch.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level="info",
    )


if __name__ == "__main__":
    run()
