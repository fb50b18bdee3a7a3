"""Resolution of the area tree manifest into a two-level index."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping

import structlog

from ..logging_conf import component_logger
from .fetcher import TransportError

_AREA_ID = re.compile(r"secAreaID\[(\d+)\]\[(\d+)\]='(\d+)';")
_AREA_NAME = re.compile(r"secAreaName\[(\d+)\]\[(\d+)\]='([^']*)';")


class ManifestError(RuntimeError):
    """The manifest could not be fetched or is structurally inconsistent."""


@dataclass(frozen=True, slots=True)
class Area:
    """One entry of the manifest; member 0 of each group is its header."""

    area_id: str
    name: str
    division: str
    group_index: int
    member_index: int

    @property
    def is_header(self) -> bool:
        return self.member_index == 0


class ManifestIndex(Mapping[int, Mapping[int, Area]]):
    """Group index -> member index -> Area, iterated in ascending order."""

    def __init__(self, groups: dict[int, dict[int, Area]]) -> None:
        self._groups = {
            group: dict(sorted(members.items())) for group, members in sorted(groups.items())
        }

    def __getitem__(self, group: int) -> Mapping[int, Area]:
        return self._groups[group]

    def __iter__(self) -> Iterator[int]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def headers(self) -> list[Area]:
        return [members[0] for members in self._groups.values()]

    def leaves(self) -> Iterator[Area]:
        for members in self._groups.values():
            for member, area in members.items():
                if member != 0:
                    yield area

    def leaf_count(self) -> int:
        return sum(len(members) - 1 for members in self._groups.values())


class ManifestResolver:
    """Fetch and parse the ``secAreaID`` / ``secAreaName`` assignment script."""

    def __init__(
        self,
        fetch_bytes: Callable[[str], bytes],
        encoding: str = "utf-8",
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetch_bytes = fetch_bytes
        self.encoding = encoding
        self.logger = logger or component_logger("manifest")

    def resolve(self, url: str) -> ManifestIndex:
        try:
            body = self.fetch_bytes(url)
        except TransportError as exc:
            raise ManifestError(f"Manifest fetch failed: {exc}") from exc
        index = self.parse(body.decode(self.encoding, errors="replace"))
        self.logger.info(
            "manifest_resolved", url=url, groups=len(index), leaves=index.leaf_count()
        )
        return index

    def parse(self, text: str) -> ManifestIndex:
        ids: dict[int, dict[int, str]] = {}
        for match in _AREA_ID.finditer(text):
            group, member = int(match.group(1)), int(match.group(2))
            ids.setdefault(group, {})[member] = match.group(3)
        if not ids:
            raise ManifestError("Manifest contains no secAreaID assignments")
        for group, members in ids.items():
            if 0 not in members:
                raise ManifestError(f"Group {group} has members but no header entry [{group}][0]")

        # Names are collected in full before any Area is built, so members
        # listed ahead of their header still inherit its name.
        names: dict[tuple[int, int], str] = {}
        for match in _AREA_NAME.finditer(text):
            coordinate = (int(match.group(1)), int(match.group(2)))
            if coordinate[1] not in ids.get(coordinate[0], {}):
                raise ManifestError(
                    "Name assigned to unknown area [{}][{}]".format(*coordinate)
                )
            names[coordinate] = match.group(3)

        groups: dict[int, dict[int, Area]] = {}
        for group, members in ids.items():
            division = names.get((group, 0), "")
            groups[group] = {
                member: Area(
                    area_id=area_id,
                    name=names.get((group, member), ""),
                    division="" if member == 0 else division,
                    group_index=group,
                    member_index=member,
                )
                for member, area_id in members.items()
            }
        return ManifestIndex(groups)


__all__ = ["Area", "ManifestError", "ManifestIndex", "ManifestResolver"]
