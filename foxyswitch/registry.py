"""Static light-group registry."""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from foxyswitch.errors import UnknownGroup


class GroupRegistry(Mapping[str, tuple[str, ...]]):
    """Read-only ``{group_id: (device_id, ...)}`` mapping.

    Built once at startup from configuration; device order is preserved
    because results are reported in that order.
    """

    def __init__(self, groups: Mapping[str, list[str] | tuple[str, ...]]) -> None:
        self._groups = MappingProxyType(
            {str(gid): tuple(uids) for gid, uids in groups.items()}
        )

    def __getitem__(self, group_id: str) -> tuple[str, ...]:
        return self._groups[group_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def resolve(self, group_id: str) -> tuple[str, ...]:
        try:
            return self._groups[group_id]
        except KeyError:
            raise UnknownGroup(group_id) from None

    def as_dict(self) -> dict[str, list[str]]:
        return {gid: list(uids) for gid, uids in self._groups.items()}
