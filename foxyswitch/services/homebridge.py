"""Homebridge UI X REST API client (the request/response channel).

Handles login, accessory listing and per-accessory characteristic
writes. The bearer token is read from the shared ``SessionState`` on
every call; this module never writes it.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from foxyswitch.errors import AuthError, UpstreamError, error_detail
from foxyswitch.services.session import SessionState

log = logging.getLogger(__name__)


class HomebridgeClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        state: SessionState,
        *,
        timeout: float = 7.0,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._state = state
        self._timeout = timeout
        self._on_unauthorized = on_unauthorized

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_unauthorized_hook(self, hook: Callable[[], None]) -> None:
        self._on_unauthorized = hook

    def _headers(self) -> dict[str, str]:
        token = self._state.token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def login(self, username: str, password: str) -> str:
        """POST credentials and return the new access token."""
        try:
            resp = await self._client.post(
                f"{self._base_url}/api/auth/login",
                json={"username": username, "password": password},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            token = resp.json()["access_token"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            detail = error_detail(e)
            raise AuthError(f"Homebridge login failed: {detail.message}", detail) from e
        log.info("Authenticated with Homebridge")
        return token

    async def _authed(
        self, method: str, path: str, body: dict | None = None
    ) -> httpx.Response:
        """Send an authenticated request; normalise every failure."""
        try:
            resp = await self._client.request(
                method,
                f"{self._base_url}{path}",
                json=body,
                headers=self._headers(),
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            err = UpstreamError.wrap(e)
            if err.unauthorized and self._on_unauthorized is not None:
                self._on_unauthorized()
            raise err from e
        return resp

    # ---- Public API ----------------------------------------------------

    async def list_accessories(self) -> list[dict[str, Any]]:
        """GET the accessory list; also makes Homebridge load its cache."""
        resp = await self._authed("GET", "/api/accessories")
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError.wrap(e) from e
        return data if isinstance(data, list) else []

    async def set_characteristic(
        self, unique_id: str, characteristic: str, value: Any
    ) -> None:
        """Write one characteristic of one accessory."""
        await self._authed(
            "PUT",
            f"/api/accessories/{quote(unique_id, safe='')}",
            {"characteristicType": characteristic, "value": value},
        )

    async def set_on(self, unique_id: str, on: bool) -> None:
        await self.set_characteristic(unique_id, "On", on)
