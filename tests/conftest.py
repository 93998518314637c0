"""Shared fixtures and in-memory stand-ins for the Homebridge transports."""
from __future__ import annotations

from typing import Any

import pytest

from foxyswitch.errors import AuthError, ErrorDetail, TransportError, UpstreamError
from foxyswitch.services.session import SessionSnapshot, SessionState


def upstream_error(status: int) -> UpstreamError:
    """Build the error HomebridgeClient raises for an HTTP *status*."""
    detail = ErrorDetail(message=f"HTTP {status}", status=status)
    return UpstreamError(detail.message, detail)


class FakeClient:
    """Records every call made to the request/response channel."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.login_result: str | Exception = "token-1"
        self.list_error: Exception | None = None
        self.set_failures: dict[str, list[Exception]] = {}

    async def login(self, username: str, password: str) -> str:
        self.calls.append(("login", username))
        if isinstance(self.login_result, Exception):
            raise self.login_result
        return self.login_result

    async def list_accessories(self) -> list[dict[str, Any]]:
        self.calls.append(("list",))
        if self.list_error is not None:
            raise self.list_error
        return [{"uniqueId": "uuidA"}, {"uniqueId": "uuidB"}]

    async def set_on(self, unique_id: str, on: bool) -> None:
        self.calls.append(("set", unique_id, on))
        failures = self.set_failures.get(unique_id)
        if failures:
            raise failures.pop(0)

    def set_calls(self, unique_id: str | None = None) -> list[tuple]:
        return [
            c for c in self.calls
            if c[0] == "set" and (unique_id is None or c[1] == unique_id)
        ]


class FakeChannel:
    """Event-stream stand-in with the same surface as EventChannel."""

    def __init__(self, *, ready: bool = True, generation: int | None = 1) -> None:
        self.connected = ready
        self.ready_for_control = ready
        self.generation = generation
        self.warm_ok = True
        self.warm_requests = 0
        self.open_error: Exception | None = None
        self.send_error: Exception | None = None
        self.opened: list[int] = []
        self.sent: list[tuple[str, Any]] = []
        self.closed = False

    async def open(self, snap: SessionSnapshot) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened.append(snap.generation)
        self.connected = True
        self.ready_for_control = False
        self.generation = snap.generation

    async def ensure_open(self, snap: SessionSnapshot) -> None:
        if self.connected and self.generation == snap.generation:
            return
        await self.open(snap)

    async def request_warm(self, timeout: float) -> bool:
        self.warm_requests += 1
        if self.warm_ok:
            self.ready_for_control = True
        return self.warm_ok

    async def send_control(
        self, unique_id: str, characteristic: str, value: Any, *, generation: int
    ) -> None:
        if self.send_error is not None:
            raise self.send_error
        if generation != self.generation:
            raise TransportError("generation mismatch")
        self.sent.append((unique_id, value))

    async def close(self) -> None:
        self.closed = True
        self.connected = False
        self.ready_for_control = False

    def status(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "ready_for_control": self.ready_for_control,
            "generation": self.generation,
        }


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def state() -> SessionState:
    """Session that has already logged in once (generation 1)."""
    s = SessionState()
    s.replace_token("token-1")
    return s


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_error() -> AuthError:
    return AuthError("Homebridge login failed: 401", ErrorDetail(message="401", status=401))
