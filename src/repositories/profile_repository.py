"""Persistence helpers for player profiles."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from domain.common import PlayerProfile
from models import PlayerProfileRow


def _to_profile(row: PlayerProfileRow) -> PlayerProfile:
    return PlayerProfile(
        identity=row.identity,
        display_name=row.display_name,
        photo_url=row.photo_url,
        rank_tiers=tuple(row.rank_tiers or ()),
    )


def get_profile(session: Session, identity: str) -> PlayerProfile | None:
    row = session.get(PlayerProfileRow, identity)
    return _to_profile(row) if row is not None else None


def upsert_profile(session: Session, profile: PlayerProfile, *, now: datetime) -> PlayerProfile:
    """Create or update one profile."""
    row = session.get(PlayerProfileRow, profile.identity)
    if row is None:
        row = PlayerProfileRow(identity=profile.identity, created_at=now)
        session.add(row)
    row.display_name = profile.display_name
    row.photo_url = profile.photo_url
    row.rank_tiers = list(profile.rank_tiers)
    row.updated_at = now
    session.flush()
    return _to_profile(row)


__all__ = ["get_profile", "upsert_profile"]
