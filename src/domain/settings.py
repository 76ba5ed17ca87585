"""Load the full application settings from one TOML file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import read_toml, require_positive, section
from domain.draft.config import DraftParameters, parse_draft_parameters
from domain.matchmaking.config import QueueParameters, parse_queue_parameters
from domain.rating.calculator import RatingParameters
from domain.rating.config import parse_rating_parameters

ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SETTINGS_PATH = ROOT_DIR / "configs" / "drafty.toml"


@dataclass(frozen=True)
class CatalogParameters:
    ttl_days: int = 7


@dataclass(frozen=True)
class StoreParameters:
    max_attempts: int = 5


@dataclass(frozen=True)
class Settings:
    rating: RatingParameters = field(default_factory=RatingParameters)
    queue: QueueParameters = field(default_factory=QueueParameters)
    draft: DraftParameters = field(default_factory=DraftParameters)
    catalog: CatalogParameters = field(default_factory=CatalogParameters)
    store: StoreParameters = field(default_factory=StoreParameters)
    file_path: Path | None = None


def load_settings(file_path: Path | None = None) -> Settings:
    """Read and validate settings; missing sections keep their defaults."""
    target = file_path or DEFAULT_SETTINGS_PATH
    return parse_settings(read_toml(target), target)


def parse_settings(raw: dict[str, Any], file_path: Path) -> Settings:
    catalog_raw = section(raw, "catalog", file_path)
    store_raw = section(raw, "store", file_path)

    catalog = CatalogParameters(ttl_days=int(catalog_raw.get("ttl_days", CatalogParameters.ttl_days)))
    require_positive(catalog.ttl_days, file_path=file_path, key="[catalog].ttl_days")
    store = StoreParameters(max_attempts=int(store_raw.get("max_attempts", StoreParameters.max_attempts)))
    require_positive(store.max_attempts, file_path=file_path, key="[store].max_attempts")

    return Settings(
        rating=parse_rating_parameters(raw, file_path),
        queue=parse_queue_parameters(raw, file_path),
        draft=parse_draft_parameters(raw, file_path),
        catalog=catalog,
        store=store,
        file_path=file_path,
    )


__all__ = [
    "CatalogParameters",
    "DEFAULT_SETTINGS_PATH",
    "Settings",
    "StoreParameters",
    "load_settings",
    "parse_settings",
]
