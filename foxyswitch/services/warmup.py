"""Accessory-cache warm-state tracking.

Homebridge UI forgets accessory UUIDs after a while and answers control
writes with 400/404 until something lists the accessories again. This
module remembers when the cache was last warmed and re-warms it before
control when that is too long ago.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from foxyswitch.errors import TransportError, UpstreamError, WarmError, error_detail
from foxyswitch.services.session import SessionState

if TYPE_CHECKING:
    from foxyswitch.services.events import EventChannel
    from foxyswitch.services.homebridge import HomebridgeClient

log = logging.getLogger(__name__)


class WarmStateTracker:
    def __init__(
        self,
        state: SessionState,
        client: HomebridgeClient,
        channel: EventChannel | None = None,
        *,
        stale_after: float = 60.0,
        ready_timeout: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._state = state
        self._client = client
        self._channel = channel
        self._stale_after = stale_after
        self._ready_timeout = ready_timeout
        self._clock = clock
        self._inflight: asyncio.Task | None = None
        self.last_warmed_at: float | None = None
        self.last_via: str | None = None

    @property
    def channel_ready_for_control(self) -> bool:
        return self._channel is not None and self._channel.ready_for_control

    def is_stale(self) -> bool:
        if self.last_warmed_at is None:
            return True
        if self._clock() - self.last_warmed_at > self._stale_after:
            return True
        return self._channel is not None and not self._channel.ready_for_control

    async def ensure_warm(self) -> None:
        """Warm only if stale; a no-op otherwise."""
        if self.is_stale():
            await self.warm()

    async def warm(self) -> None:
        """Run a warm sequence, joining one that is already in flight."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._warm_sequence())
        await asyncio.shield(self._inflight)

    async def _warm_sequence(self) -> None:
        snap = self._state.snapshot()
        if not snap.has_token:
            raise WarmError("No Homebridge token yet; skipping warm-up")

        if self._channel is not None:
            try:
                await self._channel.ensure_open(snap)
                if await self._channel.request_warm(self._ready_timeout):
                    self._mark_warm("WS")
                    return
                log.info("No ready signal within %.1fs; warming over HTTP", self._ready_timeout)
            except TransportError as e:
                log.info("Event-stream warm-up failed (%s); warming over HTTP", e)

        try:
            accessories = await self._client.list_accessories()
        except UpstreamError as e:
            log.warning("Warmup failed: %s", error_detail(e).model_dump())
            raise WarmError("Accessory warm-up failed", e.detail) from e
        self._mark_warm("HTTP")
        log.info("Accessories warmed (count=%d)", len(accessories))

    def _mark_warm(self, via: str) -> None:
        self.last_warmed_at = self._clock()
        self.last_via = via
        log.debug("Warm state refreshed via %s", via)
