"""Homebridge session (token) ownership and refresh."""
from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from foxyswitch.errors import AuthError, error_detail

if TYPE_CHECKING:
    from foxyswitch.services.homebridge import HomebridgeClient

log = logging.getLogger(__name__)

RefreshListener = Callable[["SessionSnapshot"], Awaitable[None]]


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable copy of the session at one point in time."""

    token: str | None
    generation: int
    refreshed_at: float | None

    @property
    def has_token(self) -> bool:
        return bool(self.token)


class SessionState:
    """Current token plus a generation counter.

    Only ``SessionManager`` writes here. Everyone else reads a snapshot,
    so a reader can tell whether the token changed under it.
    """

    def __init__(self) -> None:
        self._token: str | None = None
        self._generation = 0
        self._refreshed_at: float | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(self._token, self._generation, self._refreshed_at)

    def replace_token(self, token: str) -> SessionSnapshot:
        self._token = token
        self._generation += 1
        self._refreshed_at = time.time()
        return self.snapshot()


class SessionManager:
    """Logs in on a fixed cadence and tells listeners about new tokens."""

    def __init__(
        self,
        client: HomebridgeClient,
        state: SessionState,
        *,
        username: str,
        password: str,
    ) -> None:
        self._client = client
        self._state = state
        self._username = username
        self._password = password
        self._listeners: list[RefreshListener] = []
        self._wakeup: Callable[[], None] | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def on_refresh(self, listener: RefreshListener) -> None:
        """Register a coroutine called with the new snapshot after each login."""
        self._listeners.append(listener)

    def bind_wakeup(self, wakeup: Callable[[], None]) -> None:
        """Hook used by ``request_refresh`` to wake the periodic refresh task."""
        self._wakeup = wakeup

    def request_refresh(self) -> None:
        """Ask for an early refresh, e.g. after a 401 from a protected call."""
        if self._wakeup is not None:
            log.info("Early token refresh requested")
            self._wakeup()

    async def refresh_session(self) -> SessionSnapshot:
        """Log in again; on failure the previous token stays in place."""
        try:
            token = await self._client.login(self._username, self._password)
        except AuthError as e:
            self.last_error = str(e)
            log.error("Failed to refresh token: %s", error_detail(e).model_dump())
            raise

        snap = self._state.replace_token(token)
        self.last_error = None
        log.info("Token refreshed (generation %d)", snap.generation)

        for listener in self._listeners:
            try:
                await listener(snap)
            except Exception as e:
                log.warning(
                    "Post-refresh hook %s failed: %s",
                    getattr(listener, "__qualname__", listener),
                    error_detail(e).model_dump(),
                )
        return snap
