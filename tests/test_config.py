"""Tests for Settings file loading and validation."""
from __future__ import annotations

import json

import pytest

from foxyswitch.config import Settings


@pytest.fixture
def blank(monkeypatch) -> Settings:
    monkeypatch.delenv("FOXYSWITCH_PORT", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    s = Settings()
    s.HOMEBRIDGE_URL = ""
    s.HOMEBRIDGE_USERNAME = ""
    s.HOMEBRIDGE_PASSWORD = ""
    s.HOMEBRIDGE_UUIDS = []
    s.PORT = 2322
    return s


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "homebridge": {
                    "url": "http://hb.local:8581/",
                    "username": "admin",
                    "password": "pw",
                },
                "port": 3000,
                "lightGroups": {"1": ["uuidA", "uuidB"], "2": ["uuidC"]},
            }
        ),
        encoding="utf-8",
    )
    return str(path)


def test_load_file_fills_settings(blank, config_file) -> None:
    blank.load_file(config_file)
    assert blank.HOMEBRIDGE_URL == "http://hb.local:8581"
    assert blank.HOMEBRIDGE_USERNAME == "admin"
    assert blank.PORT == 3000
    assert blank.LIGHT_GROUPS == {"1": ["uuidA", "uuidB"], "2": ["uuidC"]}


def test_environment_wins_over_file(blank, config_file, monkeypatch) -> None:
    monkeypatch.setenv("FOXYSWITCH_PORT", "9000")
    blank.HOMEBRIDGE_URL = "http://other:8581"
    blank.PORT = 9000
    blank.load_file(config_file)
    assert blank.HOMEBRIDGE_URL == "http://other:8581"
    assert blank.PORT == 9000


def test_legacy_uuid_list_becomes_group_one(blank, tmp_path) -> None:
    blank.HOMEBRIDGE_UUIDS = ["uuidA", "uuidB"]
    blank.load_file(str(tmp_path / "missing.json"))
    assert blank.LIGHT_GROUPS == {"1": ["uuidA", "uuidB"]}


def test_validate_exits_without_groups(blank, tmp_path) -> None:
    blank.HOMEBRIDGE_URL = "http://hb.local"
    blank.load_file(str(tmp_path / "missing.json"))
    with pytest.raises(SystemExit):
        blank.validate()


def test_validate_passes_with_complete_config(blank, config_file) -> None:
    blank.load_file(config_file)
    blank.validate()
