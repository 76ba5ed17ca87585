"""Persistence helpers for queue entries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from domain.matchmaking.matcher import QueueCandidate
from models import QueueEntry


def _to_candidate(row: QueueEntry) -> QueueCandidate:
    return QueueCandidate(
        identity=row.identity,
        display_name=row.display_name,
        role=row.role,
        rating=row.rating,
        region=row.region,
        joined_at=row.joined_at,
        photo_url=row.photo_url,
    )


def get_queue_entry(session: Session, identity: str) -> QueueCandidate | None:
    row = session.get(QueueEntry, identity)
    return _to_candidate(row) if row is not None else None


def fetch_queue_entries(session: Session) -> list[QueueCandidate]:
    """Fetch every waiting entry in deterministic order."""
    statement = select(QueueEntry).order_by(
        QueueEntry.role,
        QueueEntry.rating,
        QueueEntry.joined_at,
        QueueEntry.identity,
    )
    return [_to_candidate(row) for row in session.scalars(statement)]


def insert_queue_entry(session: Session, candidate: QueueCandidate) -> None:
    session.add(
        QueueEntry(
            identity=candidate.identity,
            display_name=candidate.display_name,
            photo_url=candidate.photo_url,
            role=candidate.role,
            rating=candidate.rating,
            region=candidate.region,
            joined_at=candidate.joined_at,
        )
    )
    session.flush()


def delete_queue_entries(session: Session, identities: Iterable[str]) -> None:
    """Delete entries at the version they were read.

    Raises StaleDataError when any entry was removed or rewritten concurrently.
    """
    for identity in identities:
        row = session.get(QueueEntry, identity)
        if row is None:
            raise StaleDataError(f"queue entry for identity={identity} is gone")
        session.delete(row)
    session.flush()


def delete_queue_entry(session: Session, identity: str) -> bool:
    row = session.get(QueueEntry, identity)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


def delete_queue_entries_before(session: Session, cutoff: datetime) -> list[str]:
    """Delete entries that joined before the cutoff and return their identities."""
    rows = session.scalars(select(QueueEntry).where(QueueEntry.joined_at < cutoff)).all()
    for row in rows:
        session.delete(row)
    session.flush()
    return [row.identity for row in rows]


__all__ = [
    "delete_queue_entries",
    "delete_queue_entries_before",
    "delete_queue_entry",
    "fetch_queue_entries",
    "get_queue_entry",
    "insert_queue_entry",
]
