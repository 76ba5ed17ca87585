"""Shared payload types passed between the queue, draft and rating layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from domain.protocol import Role, Team


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention used for every stored datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class PlayerProfile:
    """Identity-store view of one player, used for display and rating seeding."""

    identity: str
    display_name: str
    photo_url: str | None = None
    rank_tiers: tuple[str, ...] = ()


@dataclass(frozen=True)
class StatLine:
    """Raw in-match statistics submitted for one player."""

    kills: int = 0
    deaths: int = 0
    assists: int = 0
    farm: int = 0
    damage: int = 0
    vision_score: int = 0
    objective_score: int = 0
    selection_id: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "kills": self.kills,
            "deaths": self.deaths,
            "assists": self.assists,
            "farm": self.farm,
            "damage": self.damage,
            "vision_score": self.vision_score,
            "objective_score": self.objective_score,
            "selection_id": self.selection_id,
        }


@dataclass(frozen=True)
class MatchParticipant:
    """One roster slot of a submitted match result."""

    identity: str
    role: Role
    stats: StatLine
    display_name: str | None = None


@dataclass(frozen=True)
class PlayerStats:
    """Per-player input to the rating engine."""

    identity: str
    team: Team
    kills: int
    deaths: int
    assists: int
    farm: float
    damage: float
    vision_score: float
    objective_score: float
    rating_at_time: int

    @classmethod
    def from_participant(
        cls,
        participant: MatchParticipant,
        *,
        team: Team,
        rating_at_time: int,
    ) -> PlayerStats:
        stats = participant.stats
        return cls(
            identity=participant.identity,
            team=team,
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            farm=stats.farm,
            damage=stats.damage,
            vision_score=stats.vision_score,
            objective_score=stats.objective_score,
            rating_at_time=rating_at_time,
        )


@dataclass(frozen=True)
class MatchContext:
    """Match-wide information the rating engine needs for every player."""

    winner: Team
    blue_avg_rating: float
    red_avg_rating: float
    all_stats: tuple[PlayerStats, ...]

    def opponent_avg_rating(self, team: Team) -> float:
        return self.red_avg_rating if team is Team.BLUE else self.blue_avg_rating


__all__ = [
    "MatchContext",
    "MatchParticipant",
    "PlayerProfile",
    "PlayerStats",
    "StatLine",
    "utcnow",
]
