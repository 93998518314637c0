"""Group on/off dispatch with transport fallback and warm-up retry.

Each device walks its own small state machine::

    TRY_PREFERRED -> TRY_FALLBACK -> WARM_AND_RETRY -> FAILED
          |               |                |
          +---------------+----------------+--> SUCCEEDED

TRY_PREFERRED is skipped when the event stream is not ready for control.
Devices run concurrently and a failure stays inside its own result.
"""
from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from foxyswitch.errors import (
    DeviceControlError,
    ErrorDetail,
    TransportError,
    UpstreamError,
    WarmError,
    error_detail,
)
from foxyswitch.registry import GroupRegistry
from foxyswitch.services.session import SessionSnapshot, SessionState

if TYPE_CHECKING:
    from foxyswitch.services.events import EventChannel
    from foxyswitch.services.homebridge import HomebridgeClient
    from foxyswitch.services.warmup import WarmStateTracker

log = logging.getLogger(__name__)

CHARACTERISTIC = "On"


class ControlStep(enum.Enum):
    TRY_PREFERRED = "try_preferred"
    TRY_FALLBACK = "try_fallback"
    WARM_AND_RETRY = "warm_and_retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ControlResult(BaseModel):
    """Outcome for one device of one group command."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    success: bool
    via: str | None = None
    message: str
    error: ErrorDetail | None = None

    def __str__(self) -> str:
        return self.message


def _state_word(on: bool) -> str:
    return "on" if on else "off"


class CommandDispatcher:
    def __init__(
        self,
        registry: GroupRegistry,
        state: SessionState,
        tracker: WarmStateTracker,
        client: HomebridgeClient,
        channel: EventChannel | None = None,
    ) -> None:
        self._registry = registry
        self._state = state
        self._tracker = tracker
        self._client = client
        self._channel = channel

    @property
    def registry(self) -> GroupRegistry:
        return self._registry

    async def set_group_state(self, group_id: str, on: bool) -> list[ControlResult]:
        """Set every device in *group_id* on or off.

        Raises ``UnknownGroup`` before any network call; otherwise
        returns one result per device, in group order.
        """
        device_ids = self._registry.resolve(group_id)

        try:
            await self._tracker.ensure_warm()
        except WarmError as e:
            log.warning("Proceeding without warm-up: %s", e)

        snap = self._state.snapshot()
        return list(
            await asyncio.gather(
                *(self._isolated(uid, on, snap) for uid in device_ids)
            )
        )

    async def _isolated(
        self, device_id: str, on: bool, snap: SessionSnapshot
    ) -> ControlResult:
        try:
            return await self._control_device(device_id, on, snap)
        except Exception as e:
            return self._failed(device_id, error_detail(e))

    async def _control_device(
        self, device_id: str, on: bool, snap: SessionSnapshot
    ) -> ControlResult:
        word = _state_word(on)
        last_error: ErrorDetail | None = None

        if not snap.has_token:
            return self._failed(device_id, ErrorDetail(message="No Homebridge token available"))

        if self._channel is not None and self._channel.ready_for_control:
            step = ControlStep.TRY_PREFERRED
        else:
            step = ControlStep.TRY_FALLBACK

        while True:
            if step is ControlStep.TRY_PREFERRED:
                try:
                    await self._channel.send_control(
                        device_id, CHARACTERISTIC, on, generation=snap.generation
                    )
                except TransportError as e:
                    log.info("WS control of %s failed (%s); falling back to HTTP", device_id, e)
                    last_error = error_detail(e)
                    step = ControlStep.TRY_FALLBACK
                    continue
                return self._succeeded(device_id, "WS", f"Lamp with UUID {device_id} turned {word} successfully via WS")

            if step is ControlStep.TRY_FALLBACK:
                try:
                    await self._client.set_on(device_id, on)
                except UpstreamError as e:
                    last_error = error_detail(e)
                    if e.not_found_class:
                        log.info("HTTP %s for %s; warming up and retrying", e.status, device_id)
                        step = ControlStep.WARM_AND_RETRY
                    else:
                        step = ControlStep.FAILED
                    continue
                return self._succeeded(device_id, "HTTP", f"Lamp with UUID {device_id} turned {word} successfully via HTTP")

            if step is ControlStep.WARM_AND_RETRY:
                try:
                    await self._tracker.warm()
                except WarmError as e:
                    log.warning("Forced warm-up before retry failed: %s", e)
                try:
                    await self._client.set_on(device_id, on)
                except UpstreamError as e:
                    last_error = error_detail(e)
                    step = ControlStep.FAILED
                    continue
                return self._succeeded(
                    device_id,
                    "HTTP",
                    f"Lamp with UUID {device_id} turned {word} successfully via HTTP (after warmup retry)",
                )

            return self._failed(device_id, last_error or ErrorDetail(message="unknown error"))

    def _succeeded(self, device_id: str, via: str, message: str) -> ControlResult:
        log.info(message)
        return ControlResult(device_id=device_id, success=True, via=via, message=message)

    def _failed(self, device_id: str, detail: ErrorDetail) -> ControlResult:
        err = DeviceControlError(device_id, detail)
        log.error("%s: %s", err, detail.model_dump())
        return ControlResult(
            device_id=device_id,
            success=False,
            message=f"{err}: {json.dumps(detail.model_dump(exclude_none=True), default=str)}",
            error=detail,
        )
