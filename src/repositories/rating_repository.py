"""Persistence helpers for player rating ledgers and their history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.rating.player import PlayerRatingState, RatingHistoryEntry
from models import PlayerRating, RatingHistory


def _to_entry(row: RatingHistory) -> RatingHistoryEntry:
    return RatingHistoryEntry(
        match_id=row.match_id,
        rating_before=row.rating_before,
        rating_after=row.rating_after,
        change=row.change,
        performance_score=row.performance_score,
        recorded_at=row.recorded_at,
    )


def _to_state(row: PlayerRating, *, history: tuple[RatingHistoryEntry, ...] = ()) -> PlayerRatingState:
    return PlayerRatingState(
        identity=row.identity,
        rating=row.rating,
        placement_games_played=row.placement_games_played,
        placed=row.placed,
        games_played=row.games_played,
        wins=row.wins,
        losses=row.losses,
        peak_rating=row.peak_rating,
        history=history,
    )


def load_rating(session: Session, identity: str) -> PlayerRatingState | None:
    """Load the ledger without history; `save_rating` appends new entries only."""
    row = session.get(PlayerRating, identity)
    return _to_state(row) if row is not None else None


def insert_rating(session: Session, state: PlayerRatingState, *, now: datetime) -> None:
    session.add(
        PlayerRating(
            identity=state.identity,
            rating=state.rating,
            placement_games_played=state.placement_games_played,
            placed=state.placed,
            games_played=state.games_played,
            wins=state.wins,
            losses=state.losses,
            peak_rating=state.peak_rating,
            created_at=now,
            updated_at=now,
        )
    )
    session.flush()


def save_rating(session: Session, state: PlayerRatingState, *, now: datetime) -> None:
    """Write counters back at the version read and insert the state's history entries.

    States from `load_rating` carry no history, so only entries appended since
    the read are written.
    """
    row = session.get(PlayerRating, state.identity)
    if row is None:
        raise ValueError(f"rating for identity={state.identity} is not loaded in this session")

    row.rating = state.rating
    row.placement_games_played = state.placement_games_played
    row.placed = state.placed
    row.games_played = state.games_played
    row.wins = state.wins
    row.losses = state.losses
    row.peak_rating = state.peak_rating
    row.updated_at = now

    for entry in state.history:
        session.add(
            RatingHistory(
                identity=state.identity,
                match_id=entry.match_id,
                rating_before=entry.rating_before,
                rating_after=entry.rating_after,
                change=entry.change,
                performance_score=entry.performance_score,
                recorded_at=entry.recorded_at,
            )
        )
    session.flush()


def fetch_rating_history(session: Session, identity: str, *, limit: int) -> tuple[RatingHistoryEntry, ...]:
    """Most recent history entries, newest first."""
    statement = (
        select(RatingHistory)
        .where(RatingHistory.identity == identity)
        .order_by(RatingHistory.recorded_at.desc(), RatingHistory.id.desc())
        .limit(limit)
    )
    return tuple(_to_entry(row) for row in session.scalars(statement))


def fetch_leaderboard(session: Session, *, limit: int) -> list[PlayerRatingState]:
    """Placed players ordered by rating, highest first."""
    statement = (
        select(PlayerRating)
        .where(PlayerRating.placed.is_(True))
        .order_by(PlayerRating.rating.desc(), PlayerRating.identity)
        .limit(limit)
    )
    return [_to_state(row) for row in session.scalars(statement)]


__all__ = [
    "fetch_leaderboard",
    "fetch_rating_history",
    "insert_rating",
    "load_rating",
    "save_rating",
]
