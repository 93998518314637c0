"""Socket.IO event-stream channel to the Homebridge UI ``/accessories`` namespace.

The UI server pushes ``accessories-data`` and
``accessories-ready-for-control`` events on this channel and accepts
``accessory-control`` writes. Keeping it open also keeps the accessory
cache warm. The token is a connection parameter, so a channel belongs to
exactly one session generation and is replaced, never patched, when the
token changes.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import socketio

from foxyswitch.errors import TransportError, error_detail
from foxyswitch.services.session import SessionSnapshot

log = logging.getLogger(__name__)

NAMESPACE = "/accessories"


class EventChannel:
    def __init__(
        self,
        base_url: str,
        *,
        user: str = "",
        connect_timeout: float = 3.0,
        sio_factory: Callable[..., Any] = socketio.AsyncClient,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user = user
        self._connect_timeout = connect_timeout
        self._sio_factory = sio_factory
        self._sio: Any = None
        self._generation: int | None = None
        self._connected = False
        self._ready_for_control = False
        self._ready_signal = asyncio.Event()
        self._lifecycle = asyncio.Lock()
        self.accessory_count: int | None = None

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._connected

    @property
    def ready_for_control(self) -> bool:
        return self.connected and self._ready_for_control

    @property
    def generation(self) -> int | None:
        return self._generation

    def status(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "ready_for_control": self.ready_for_control,
            "generation": self._generation,
            "accessory_count": self.accessory_count,
        }

    # ---- Lifecycle -----------------------------------------------------

    async def open(self, snap: SessionSnapshot) -> None:
        """Close any current channel, then connect one for *snap*'s token."""
        if not snap.has_token:
            raise TransportError("No token available for event stream")
        async with self._lifecycle:
            await self._close_locked()
            sio = self._sio_factory(reconnection=True, logger=False, engineio_logger=False)
            self._register_handlers(sio)
            url = f"{self._base_url}?{urlencode({'token': snap.token})}"
            log.debug("Event stream connecting (generation %d)", snap.generation)
            try:
                await asyncio.wait_for(
                    sio.connect(
                        url,
                        namespaces=[NAMESPACE],
                        transports=["websocket"],
                        socketio_path="socket.io",
                        wait_timeout=self._connect_timeout,
                    ),
                    timeout=self._connect_timeout,
                )
            except Exception as e:
                try:
                    await sio.disconnect()
                except Exception:
                    log.debug("Abandoned event stream client disconnect failed", exc_info=True)
                detail = error_detail(e)
                raise TransportError(
                    f"Event stream connect failed: {detail.message}", detail
                ) from e
            self._sio = sio
            self._generation = snap.generation
            self._connected = True
            log.info("Event stream connected (generation %d)", snap.generation)

    async def ensure_open(self, snap: SessionSnapshot) -> None:
        if self.connected and self._generation == snap.generation:
            return
        await self.open(snap)

    async def close(self) -> None:
        async with self._lifecycle:
            await self._close_locked()

    async def _close_locked(self) -> None:
        sio, self._sio = self._sio, None
        self._connected = False
        self._ready_for_control = False
        self._generation = None
        if sio is None:
            return
        try:
            await sio.disconnect()
        except Exception:
            log.debug("Event stream disconnect failed", exc_info=True)

    # ---- Handlers ------------------------------------------------------

    def _register_handlers(self, sio: Any) -> None:
        async def on_connect() -> None:
            if sio is self._sio:
                self._connected = True

        async def on_disconnect(*_args: Any) -> None:
            if sio is self._sio:
                log.warning("Event stream disconnected")
                self._connected = False
                self._ready_for_control = False

        async def on_accessories_data(data: Any = None) -> None:
            if sio is not self._sio:
                return
            if isinstance(data, list):
                self.accessory_count = len(data)
            if self._ready_for_control:
                self._ready_signal.set()

        async def on_ready_for_control(*_args: Any) -> None:
            if sio is not self._sio:
                return
            self._ready_for_control = True
            self._ready_signal.set()
            log.info("Event stream ready for control")

        sio.on("connect", handler=on_connect, namespace=NAMESPACE)
        sio.on("disconnect", handler=on_disconnect, namespace=NAMESPACE)
        sio.on("accessories-data", handler=on_accessories_data, namespace=NAMESPACE)
        sio.on(
            "accessories-ready-for-control",
            handler=on_ready_for_control,
            namespace=NAMESPACE,
        )

    # ---- Operations ----------------------------------------------------

    async def request_warm(self, timeout: float) -> bool:
        """Ask for layout + accessories and wait for a readiness signal.

        Returns False if nothing arrived within *timeout*.
        """
        if not self.connected:
            raise TransportError("Event stream is not connected")
        self._ready_signal.clear()
        try:
            await self._sio.emit("get-layout", {"user": self._user}, namespace=NAMESPACE)
            await self._sio.emit("get-accessories", namespace=NAMESPACE)
        except Exception as e:
            detail = error_detail(e)
            raise TransportError(f"Event stream emit failed: {detail.message}", detail) from e
        try:
            await asyncio.wait_for(self._ready_signal.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def send_control(
        self, unique_id: str, characteristic: str, value: Any, *, generation: int
    ) -> None:
        """Fire-and-forget ``accessory-control`` write."""
        if not self.ready_for_control:
            raise TransportError("Event stream is not ready for control")
        if self._generation != generation:
            raise TransportError(
                f"Event stream belongs to generation {self._generation}, "
                f"request started on {generation}"
            )
        payload = {
            "set": {
                "uniqueId": unique_id,
                "characteristicType": characteristic,
                "value": value,
            }
        }
        try:
            await self._sio.emit("accessory-control", payload, namespace=NAMESPACE)
        except Exception as e:
            detail = error_detail(e)
            raise TransportError(f"Event stream emit failed: {detail.message}", detail) from e
