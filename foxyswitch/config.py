from __future__ import annotations

import json
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger(__name__)


def _csv_list(key: str) -> list[str]:
    raw = os.getenv(key, "")
    return [x.strip() for x in raw.split(",") if x.strip()]


def _env(primary: str, *fallbacks: str, default: str = "") -> str:
    """Read env var with fallback aliases."""
    val = os.getenv(primary)
    if val is not None:
        return val
    for fb in fallbacks:
        val = os.getenv(fb)
        if val is not None:
            return val
    return default


def _flag(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


class Settings:
    # --- Auth / Server ---
    API_KEY: str = os.getenv("FOXYSWITCH_API_KEY", "")
    HOST: str = os.getenv("FOXYSWITCH_HOST", "0.0.0.0")
    PORT: int = int(_env("FOXYSWITCH_PORT", "PORT", default="2322"))
    CONFIG_PATH: str = os.getenv("FOXYSWITCH_CONFIG_PATH", "config.json")

    # --- Homebridge UI ---
    HOMEBRIDGE_URL: str = os.getenv("HOMEBRIDGE_URL", "").rstrip("/")
    HOMEBRIDGE_USERNAME: str = os.getenv("HOMEBRIDGE_USERNAME", "")
    HOMEBRIDGE_PASSWORD: str = os.getenv("HOMEBRIDGE_PASSWORD", "")
    USE_EVENT_STREAM: bool = _flag("USE_EVENT_STREAM", "true")

    # Legacy single-group setup: comma-separated uniqueIds become group "1".
    HOMEBRIDGE_UUIDS: list[str] = _csv_list("HOMEBRIDGE_UUIDS")

    # --- Light groups (filled from the config file) ---
    LIGHT_GROUPS: dict[str, list[str]] = {}

    # --- Keepalive intervals and timeouts (seconds) ---
    REFRESH_TOKEN_EVERY: float = float(os.getenv("REFRESH_TOKEN_EVERY", "30"))
    WARMUP_EVERY: float = float(os.getenv("WARMUP_EVERY", "60"))
    WARM_STALE_AFTER: float = float(os.getenv("WARM_STALE_AFTER", "60"))
    EVENT_READY_TIMEOUT: float = float(os.getenv("EVENT_READY_TIMEOUT", "3"))
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "7"))

    def load_file(self, path: str | None = None) -> None:
        """Merge the JSON config file into this instance.

        Environment variables win over file values; the file only fills
        what the environment leaves empty.
        """
        path = path or self.CONFIG_PATH
        if not path or not os.path.exists(path):
            log.warning("Config file %s not found; using environment only", path)
            raw: dict = {}
        else:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                log.warning("Config file %s is not a JSON object; ignoring", path)
                raw = {}

        hb = raw.get("homebridge") or {}
        if not self.HOMEBRIDGE_URL:
            self.HOMEBRIDGE_URL = str(hb.get("url", "")).rstrip("/")
        if not self.HOMEBRIDGE_USERNAME:
            self.HOMEBRIDGE_USERNAME = hb.get("username", "")
        if not self.HOMEBRIDGE_PASSWORD:
            self.HOMEBRIDGE_PASSWORD = hb.get("password", "")
        if "port" in raw and os.getenv("FOXYSWITCH_PORT") is None and os.getenv("PORT") is None:
            self.PORT = int(raw["port"])

        groups = raw.get("lightGroups") or {}
        self.LIGHT_GROUPS = {
            str(gid): [str(uid) for uid in uids] for gid, uids in groups.items()
        }
        if not self.LIGHT_GROUPS and self.HOMEBRIDGE_UUIDS:
            log.info("Using legacy HOMEBRIDGE_UUIDS as light group 1")
            self.LIGHT_GROUPS = {"1": list(self.HOMEBRIDGE_UUIDS)}

    def validate(self) -> None:
        """Log warnings for missing settings; exit if the relay cannot work."""
        fatal = False
        if not self.HOMEBRIDGE_USERNAME or not self.HOMEBRIDGE_PASSWORD:
            log.warning(
                "Homebridge credentials are incomplete — token refresh will fail"
            )
        if not self.HOMEBRIDGE_URL:
            log.error("HOMEBRIDGE_URL is not set — cannot reach Homebridge")
            fatal = True
        if not self.LIGHT_GROUPS:
            log.error("No light groups configured — run the configuration script")
            fatal = True
        if fatal:
            sys.exit(1)


settings = Settings()
