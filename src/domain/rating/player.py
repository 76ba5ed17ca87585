"""Per-player rating ledger state and the apply step that advances it."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from domain.rating.calculator import RatingCalculator, RatingChange
from domain.rating.tiers import tier_for_rating, win_rate


@dataclass(frozen=True)
class RatingHistoryEntry:
    match_id: str
    rating_before: int
    rating_after: int
    change: int
    performance_score: int
    recorded_at: datetime


@dataclass(frozen=True)
class PlayerRatingState:
    """Current rating and counters of one player."""

    identity: str
    rating: int
    placement_games_played: int = 0
    placed: bool = False
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    peak_rating: int = 0
    history: tuple[RatingHistoryEntry, ...] = ()

    @property
    def tier(self) -> str:
        return tier_for_rating(self.rating)

    @property
    def win_rate(self) -> int:
        return win_rate(self.wins, self.games_played)

    @property
    def in_placement(self) -> bool:
        return not self.placed


def seed_player_rating(identity: str, rating: int) -> PlayerRatingState:
    """Fresh ledger for a player who has never completed a match."""
    return PlayerRatingState(identity=identity, rating=rating, peak_rating=rating)


def apply_rating_change(
    state: PlayerRatingState,
    change: RatingChange,
    *,
    calculator: RatingCalculator,
    match_id: str,
    recorded_at: datetime,
) -> PlayerRatingState:
    """Fold one match result into a player's ledger."""
    if change.identity != state.identity:
        raise ValueError(
            f"rating change for identity={change.identity} applied to identity={state.identity}"
        )

    placement_games = calculator.params.placement_games
    new_rating = calculator.apply(state.rating, change.change)
    placement_played = min(state.placement_games_played + 1, placement_games)
    entry = RatingHistoryEntry(
        match_id=match_id,
        rating_before=state.rating,
        rating_after=new_rating,
        change=change.change,
        performance_score=change.performance_score,
        recorded_at=recorded_at,
    )

    return replace(
        state,
        rating=new_rating,
        placement_games_played=placement_played,
        placed=state.placed or placement_played >= placement_games,
        games_played=state.games_played + 1,
        wins=state.wins + (1 if change.won else 0),
        losses=state.losses + (0 if change.won else 1),
        peak_rating=max(state.peak_rating, new_rating),
        history=state.history + (entry,),
    )


__all__ = [
    "PlayerRatingState",
    "RatingHistoryEntry",
    "apply_rating_change",
    "seed_player_rating",
]
