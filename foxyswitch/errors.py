"""Error taxonomy and upstream error normalisation."""
from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404


class ErrorDetail(BaseModel):
    """Structured view of an upstream failure, safe to log or serialise."""

    message: str
    code: str | None = None
    status: int | None = None
    status_text: str | None = None
    url: str | None = None
    method: str | None = None
    data: Any = None


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


def error_detail(exc: BaseException) -> ErrorDetail:
    """Normalise any exception into an ``ErrorDetail``."""
    if isinstance(exc, FoxySwitchError) and exc.detail is not None:
        return exc.detail

    if isinstance(exc, httpx.HTTPStatusError):
        resp = exc.response
        return ErrorDetail(
            message=str(exc),
            code=type(exc).__name__,
            status=resp.status_code,
            status_text=resp.reason_phrase,
            url=str(exc.request.url),
            method=exc.request.method,
            data=_response_body(resp),
        )

    if isinstance(exc, httpx.RequestError):
        try:
            request = exc.request
        except RuntimeError:
            request = None
        return ErrorDetail(
            message=str(exc) or type(exc).__name__,
            code=type(exc).__name__,
            url=str(request.url) if request is not None else None,
            method=request.method if request is not None else None,
        )

    return ErrorDetail(message=str(exc) or type(exc).__name__, code=type(exc).__name__)


class FoxySwitchError(Exception):
    """Base exception for the relay."""

    def __init__(self, message: str, detail: ErrorDetail | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class AuthError(FoxySwitchError):
    """Login against Homebridge failed."""


class UnknownGroup(FoxySwitchError):
    """The requested light group is not configured."""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Light group with ID {group_id} does not exist")
        self.group_id = group_id


class WarmError(FoxySwitchError):
    """Neither transport managed to warm the accessory cache."""


class TransportError(FoxySwitchError):
    """The event-stream channel could not carry a message."""


class UpstreamError(FoxySwitchError):
    """A request/response call to Homebridge failed."""

    @property
    def status(self) -> int | None:
        return self.detail.status if self.detail else None

    @property
    def not_found_class(self) -> bool:
        """400/404 from Homebridge usually means the accessory cache is cold."""
        return self.status in (HTTP_BAD_REQUEST, HTTP_NOT_FOUND)

    @property
    def unauthorized(self) -> bool:
        return self.status == HTTP_UNAUTHORIZED

    @classmethod
    def wrap(cls, exc: BaseException) -> UpstreamError:
        detail = error_detail(exc)
        return cls(detail.message, detail)


class DeviceControlError(FoxySwitchError):
    """Final failure to control one device."""

    def __init__(self, device_id: str, detail: ErrorDetail) -> None:
        super().__init__(f"Failed to control lamp with UUID {device_id}", detail)
        self.device_id = device_id
