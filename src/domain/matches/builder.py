"""Assemble match records and run the rating engine over them exactly once."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from domain.common import MatchContext, MatchParticipant, PlayerStats, StatLine
from domain.errors import PreconditionError, ValidationError
from domain.matchmaking.matcher import TEAM_SIZE
from domain.protocol import Team
from domain.rating.calculator import PerformanceBreakdown, RatingCalculator
from domain.rating.player import PlayerRatingState, apply_rating_change

_STAT_FIELDS = ("kills", "deaths", "assists", "farm", "damage", "vision_score", "objective_score")


@dataclass(frozen=True)
class PlayerResult:
    """Computed outcome for one player of a processed match."""

    identity: str
    team: Team
    role: str
    performance_score: int
    rating_change: int
    rating_before: int
    rating_after: int
    won: bool
    breakdown: PerformanceBreakdown | None = None


@dataclass(frozen=True)
class MatchRecord:
    match_id: str
    created_at: datetime
    submitted_by: str
    winner: Team
    blue_team: tuple[MatchParticipant, ...]
    red_team: tuple[MatchParticipant, ...]
    draft_session_id: str | None = None
    blue_avg_rating: float | None = None
    red_avg_rating: float | None = None
    results: tuple[PlayerResult, ...] = ()
    processed: bool = False
    processed_at: datetime | None = None

    @property
    def participants(self) -> tuple[MatchParticipant, ...]:
        return self.blue_team + self.red_team

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(participant.identity for participant in self.participants)

    def team_of(self, identity: str) -> Team | None:
        if any(participant.identity == identity for participant in self.blue_team):
            return Team.BLUE
        if any(participant.identity == identity for participant in self.red_team):
            return Team.RED
        return None

    def result_for(self, identity: str) -> PlayerResult | None:
        return next((result for result in self.results if result.identity == identity), None)


@dataclass(frozen=True)
class MatchOutcome:
    record: MatchRecord
    ratings: dict[str, PlayerRatingState]


def _validate_stats(identity: str, stats: StatLine) -> None:
    for field_name in _STAT_FIELDS:
        value = getattr(stats, field_name)
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{identity}: {field_name} must be an integer")
        if value < 0:
            raise ValidationError(f"{identity}: {field_name} must be >= 0")


def validate_teams(
    blue_team: Sequence[MatchParticipant],
    red_team: Sequence[MatchParticipant],
) -> None:
    """Reject rosters that are not two full teams of distinct players."""
    if len(blue_team) != TEAM_SIZE or len(red_team) != TEAM_SIZE:
        raise ValidationError(f"Each team must have exactly {TEAM_SIZE} players")

    identities = [participant.identity for participant in (*blue_team, *red_team)]
    if any(not identity for identity in identities):
        raise ValidationError("Every player needs an identity")
    if len(set(identities)) != len(identities):
        raise ValidationError("A player cannot appear twice in one match")

    for participant in (*blue_team, *red_team):
        _validate_stats(participant.identity, participant.stats)


class MatchRecordBuilder:
    """Builds immutable match records and folds them into player ratings."""

    def __init__(self, calculator: RatingCalculator) -> None:
        self.calculator = calculator

    def build(
        self,
        *,
        match_id: str,
        winner: Team,
        blue_team: Sequence[MatchParticipant],
        red_team: Sequence[MatchParticipant],
        created_at: datetime,
        submitted_by: str,
        draft_session_id: str | None = None,
    ) -> MatchRecord:
        validate_teams(blue_team, red_team)
        return MatchRecord(
            match_id=match_id,
            created_at=created_at,
            submitted_by=submitted_by,
            winner=winner,
            blue_team=tuple(blue_team),
            red_team=tuple(red_team),
            draft_session_id=draft_session_id,
        )

    def process(
        self,
        record: MatchRecord,
        ratings: Mapping[str, PlayerRatingState],
        *,
        processed_at: datetime,
    ) -> MatchOutcome:
        """Compute every player's delta and the updated rating ledgers."""
        if record.processed:
            raise PreconditionError(f"Match {record.match_id} has already been processed")

        missing = [identity for identity in record.identities if identity not in ratings]
        if missing:
            raise ValueError(f"match_id={record.match_id} is missing rating state for {missing}")

        blue_avg = sum(ratings[p.identity].rating for p in record.blue_team) / len(record.blue_team)
        red_avg = sum(ratings[p.identity].rating for p in record.red_team) / len(record.red_team)

        all_stats = tuple(
            PlayerStats.from_participant(
                participant,
                team=team,
                rating_at_time=ratings[participant.identity].rating,
            )
            for team, roster in ((Team.BLUE, record.blue_team), (Team.RED, record.red_team))
            for participant in roster
        )
        context = MatchContext(
            winner=record.winner,
            blue_avg_rating=blue_avg,
            red_avg_rating=red_avg,
            all_stats=all_stats,
        )

        roles = {participant.identity: participant.role.value for participant in record.participants}
        results: list[PlayerResult] = []
        updated: dict[str, PlayerRatingState] = {}
        for player_stats in all_stats:
            state = ratings[player_stats.identity]
            change = self.calculator.delta(player_stats, context, is_placement=state.in_placement)
            new_state = apply_rating_change(
                state,
                change,
                calculator=self.calculator,
                match_id=record.match_id,
                recorded_at=processed_at,
            )
            updated[player_stats.identity] = new_state
            results.append(
                PlayerResult(
                    identity=player_stats.identity,
                    team=player_stats.team,
                    role=roles[player_stats.identity],
                    performance_score=change.performance_score,
                    rating_change=change.change,
                    rating_before=state.rating,
                    rating_after=new_state.rating,
                    won=change.won,
                    breakdown=change.breakdown,
                )
            )

        processed = replace(
            record,
            blue_avg_rating=blue_avg,
            red_avg_rating=red_avg,
            results=tuple(results),
            processed=True,
            processed_at=processed_at,
        )
        return MatchOutcome(record=processed, ratings=updated)


__all__ = [
    "MatchOutcome",
    "MatchRecord",
    "MatchRecordBuilder",
    "PlayerResult",
    "validate_teams",
]
