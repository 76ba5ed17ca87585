"""Persistence helpers for the cached selection catalog."""

from __future__ import annotations

from sqlalchemy.orm import Session

from domain.catalog import CatalogSnapshot, Selection
from models import SelectionCatalogRow

DEFAULT_CATALOG_KEY = "selections"


def load_catalog(session: Session, *, key: str = DEFAULT_CATALOG_KEY) -> CatalogSnapshot | None:
    row = session.get(SelectionCatalogRow, key)
    if row is None:
        return None
    return CatalogSnapshot(
        version=row.version,
        selections=tuple(Selection.from_dict(entry) for entry in row.entries),
        fetched_at=row.fetched_at,
    )


def store_catalog(session: Session, snapshot: CatalogSnapshot, *, key: str = DEFAULT_CATALOG_KEY) -> None:
    """Replace the cached catalog."""
    row = session.get(SelectionCatalogRow, key)
    if row is None:
        row = SelectionCatalogRow(key=key)
        session.add(row)
    row.version = snapshot.version
    row.entries = [selection.as_dict() for selection in snapshot.selections]
    row.fetched_at = snapshot.fetched_at
    session.flush()


__all__ = ["DEFAULT_CATALOG_KEY", "load_catalog", "store_catalog"]
