"""Selectable-unit catalog: parsing, snapshots and staleness."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class Selection:
    """One bannable/pickable unit."""

    id: str
    key: str
    name: str
    title: str = ""
    tags: tuple[str, ...] = ()
    image: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "title": self.title,
            "tags": list(self.tags),
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Selection:
        return cls(
            id=str(payload["id"]),
            key=str(payload.get("key", payload["id"])),
            name=str(payload.get("name", payload["id"])),
            title=str(payload.get("title", "")),
            tags=tuple(str(tag) for tag in payload.get("tags", ())),
            image=payload.get("image"),
        )


@dataclass(frozen=True)
class CatalogRelease:
    """What a fetcher returns: a version string and its selections."""

    version: str
    selections: tuple[Selection, ...]


@dataclass(frozen=True)
class CatalogSnapshot:
    version: str
    selections: tuple[Selection, ...]
    fetched_at: datetime

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(selection.id for selection in self.selections)

    def is_stale(self, now: datetime, *, ttl_days: int) -> bool:
        return now - self.fetched_at >= timedelta(days=ttl_days)


CatalogFetcher = Callable[[], CatalogRelease]


def parse_champion_json(payload: Mapping[str, Any], *, image_base_url: str | None = None) -> CatalogRelease:
    """Parse a game-data `champion.json` document into a release sorted by name."""
    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise ValueError("champion.json payload has no 'data' table")
    version = str(payload.get("version", "")).strip()
    if not version:
        raise ValueError("champion.json payload has no 'version'")

    selections: list[Selection] = []
    for entry in data.values():
        image = None
        image_info = entry.get("image")
        if image_base_url and isinstance(image_info, Mapping) and "full" in image_info:
            image = f"{image_base_url.rstrip('/')}/{image_info['full']}"
        selections.append(
            Selection(
                id=str(entry["id"]),
                key=str(entry.get("key", entry["id"])),
                name=str(entry.get("name", entry["id"])),
                title=str(entry.get("title", "")),
                tags=tuple(str(tag) for tag in entry.get("tags", ())),
                image=image,
            )
        )
    selections.sort(key=lambda selection: selection.name.lower())
    return CatalogRelease(version=version, selections=tuple(selections))


__all__ = [
    "CatalogFetcher",
    "CatalogRelease",
    "CatalogSnapshot",
    "Selection",
    "parse_champion_json",
]
