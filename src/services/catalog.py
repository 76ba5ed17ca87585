"""Cached selection catalog refreshed through a pluggable fetcher."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from domain.catalog import CatalogFetcher, CatalogRelease, CatalogSnapshot, parse_champion_json
from domain.common import utcnow
from repositories.catalog_repository import load_catalog, store_catalog
from services.transactions import DEFAULT_MAX_ATTEMPTS, run_in_transaction

logger = logging.getLogger(__name__)


def load_catalog_file(file_path: Path, *, image_base_url: str | None = None) -> CatalogFetcher:
    """Fetcher reading a local game-data `champion.json` file."""

    def fetch() -> CatalogRelease:
        if not file_path.is_file():
            raise FileNotFoundError(f"Catalog file not found: {file_path}")
        with file_path.open("r", encoding="utf-8") as file:
            payload = json.load(file)
        return parse_champion_json(payload, image_base_url=image_base_url)

    return fetch


class SelectionCatalog:
    """Read-through cache of selectable units with a multi-day TTL."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        fetcher: CatalogFetcher | None = None,
        ttl_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.ttl_days = ttl_days
        self.clock = clock
        self.max_attempts = max_attempts

    def get(self) -> CatalogSnapshot | None:
        """Return the cached catalog, refreshing it first when missing or stale.

        A fetcher that cannot be read or parsed leaves the cached snapshot (or
        None) in place.
        """
        with self.session_factory() as session:
            cached = load_catalog(session)

        now = self.clock()
        if cached is not None and not cached.is_stale(now, ttl_days=self.ttl_days):
            return cached
        if self.fetcher is None:
            return cached
        try:
            return self.refresh()
        except (OSError, ValueError) as exc:
            logger.warning(
                "Catalog refresh failed, serving cached version=%s: %s",
                cached.version if cached is not None else None,
                exc,
            )
            return cached

    def refresh(self) -> CatalogSnapshot:
        if self.fetcher is None:
            raise ValueError("No catalog fetcher configured")

        release = self.fetcher()
        snapshot = CatalogSnapshot(
            version=release.version,
            selections=release.selections,
            fetched_at=self.clock(),
        )

        def work(session: Session) -> None:
            store_catalog(session, snapshot)

        run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label="catalog refresh",
        )
        logger.info("Catalog refreshed version=%s selections=%d", snapshot.version, len(snapshot.selections))
        return snapshot

    def known_ids(self) -> frozenset[str] | None:
        """Valid selection ids, or None when no catalog is available."""
        snapshot = self.get()
        if snapshot is None:
            return None
        return snapshot.ids


__all__ = ["SelectionCatalog", "load_catalog_file"]
