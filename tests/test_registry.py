"""Tests for the light-group registry."""
from __future__ import annotations

import pytest

from foxyswitch.errors import UnknownGroup
from foxyswitch.registry import GroupRegistry


@pytest.fixture
def registry() -> GroupRegistry:
    return GroupRegistry({"1": ["uuidA", "uuidB"], "porch": ["uuidC"]})


def test_resolve_preserves_order(registry) -> None:
    assert registry.resolve("1") == ("uuidA", "uuidB")


def test_resolve_unknown_group(registry) -> None:
    with pytest.raises(UnknownGroup) as exc_info:
        registry.resolve("99")
    assert exc_info.value.group_id == "99"


def test_registry_is_read_only(registry) -> None:
    with pytest.raises(TypeError):
        registry["2"] = ("uuidD",)  # type: ignore[index]


def test_as_dict_round_trips_mapping(registry) -> None:
    assert registry.as_dict() == {"1": ["uuidA", "uuidB"], "porch": ["uuidC"]}
    assert len(registry) == 2
    assert "porch" in registry


def test_numeric_group_ids_become_strings() -> None:
    registry = GroupRegistry({1: ["uuidA"]})  # type: ignore[dict-item]
    assert registry.resolve("1") == ("uuidA",)
