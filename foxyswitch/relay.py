"""Wire the session, transports, warm tracker and dispatcher together."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from foxyswitch.config import Settings
from foxyswitch.registry import GroupRegistry
from foxyswitch.services.dispatcher import CommandDispatcher
from foxyswitch.services.events import EventChannel
from foxyswitch.services.homebridge import HomebridgeClient
from foxyswitch.services.session import SessionManager, SessionSnapshot, SessionState
from foxyswitch.services.warmup import WarmStateTracker
from foxyswitch.tasks import PeriodicTask

log = logging.getLogger(__name__)


@dataclass
class Relay:
    state: SessionState
    client: HomebridgeClient
    channel: EventChannel | None
    tracker: WarmStateTracker
    session: SessionManager
    dispatcher: CommandDispatcher
    tasks: list[PeriodicTask] = field(default_factory=list)

    async def start(self) -> None:
        """First login (failure is tolerated), then start the timers."""
        for task in self.tasks:
            if task.name == "session-refresh":
                await task.run_once()
                task.start(initial_delay=task.interval)
            else:
                task.start()

    async def stop(self) -> None:
        for task in self.tasks:
            await task.stop()
        if self.channel is not None:
            await self.channel.close()


def build_relay(settings: Settings, http: httpx.AsyncClient) -> Relay:
    state = SessionState()
    client = HomebridgeClient(
        http, settings.HOMEBRIDGE_URL, state, timeout=settings.HTTP_TIMEOUT
    )
    channel = None
    if settings.USE_EVENT_STREAM:
        channel = EventChannel(
            settings.HOMEBRIDGE_URL,
            user=settings.HOMEBRIDGE_USERNAME,
            connect_timeout=settings.EVENT_READY_TIMEOUT,
        )
    tracker = WarmStateTracker(
        state,
        client,
        channel,
        stale_after=settings.WARM_STALE_AFTER,
        ready_timeout=settings.EVENT_READY_TIMEOUT,
    )
    session = SessionManager(
        client,
        state,
        username=settings.HOMEBRIDGE_USERNAME,
        password=settings.HOMEBRIDGE_PASSWORD,
    )

    if channel is not None:
        async def reopen_channel(snap: SessionSnapshot) -> None:
            await channel.open(snap)

        session.on_refresh(reopen_channel)

    async def warm_after_login(_snap: SessionSnapshot) -> None:
        await tracker.warm()

    session.on_refresh(warm_after_login)

    refresh_task = PeriodicTask(
        "session-refresh", session.refresh_session, settings.REFRESH_TOKEN_EVERY
    )
    warm_task = PeriodicTask(
        "warmup",
        tracker.warm,
        settings.WARMUP_EVERY,
        initial_delay=settings.WARMUP_EVERY,
    )
    session.bind_wakeup(refresh_task.trigger)
    client.set_unauthorized_hook(session.request_refresh)

    dispatcher = CommandDispatcher(
        GroupRegistry(settings.LIGHT_GROUPS), state, tracker, client, channel
    )
    log.info(
        "Relay ready: %d light groups, event stream %s",
        len(dispatcher.registry),
        "on" if channel is not None else "off",
    )
    return Relay(
        state=state,
        client=client,
        channel=channel,
        tracker=tracker,
        session=session,
        dispatcher=dispatcher,
        tasks=[refresh_task, warm_task],
    )
