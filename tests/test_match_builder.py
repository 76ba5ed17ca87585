"""Tests for match record validation and processing."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from domain.common import MatchParticipant, StatLine
from domain.errors import PreconditionError, ValidationError
from domain.matches.builder import MatchRecordBuilder, validate_teams
from domain.protocol import ROLE_ORDER, Team
from domain.rating.calculator import RatingCalculator
from domain.rating.player import PlayerRatingState, seed_player_rating

CREATED_AT = datetime(2026, 1, 1, 12, 0, 0)
PROCESSED_AT = datetime(2026, 1, 1, 12, 40, 0)
EVEN_STATS = StatLine(kills=4, deaths=4, assists=6, farm=180, damage=15000, vision_score=25, objective_score=2)


def _roster(prefix: str, stats: StatLine = EVEN_STATS) -> list[MatchParticipant]:
    return [MatchParticipant(identity=f"{prefix}-{role.value}", role=role, stats=stats) for role in ROLE_ORDER]


def _placed(identity: str, rating: int = 1000) -> PlayerRatingState:
    return replace(
        seed_player_rating(identity, rating),
        placed=True,
        placement_games_played=5,
        games_played=5,
        wins=3,
        losses=2,
    )


def _build(builder: MatchRecordBuilder, winner: Team = Team.BLUE):
    return builder.build(
        match_id="match-1",
        winner=winner,
        blue_team=_roster("blue"),
        red_team=_roster("red"),
        created_at=CREATED_AT,
        submitted_by="blue-top",
    )


def test_validate_teams_requires_two_full_rosters() -> None:
    with pytest.raises(ValidationError, match="exactly 5 players"):
        validate_teams(_roster("blue")[:4], _roster("red"))


def test_validate_teams_rejects_duplicates_and_blank_identities() -> None:
    blue = _roster("blue")
    red = _roster("red")
    red[0] = replace(red[0], identity="blue-top")
    with pytest.raises(ValidationError, match="twice"):
        validate_teams(blue, red)

    red = _roster("red")
    red[2] = replace(red[2], identity="")
    with pytest.raises(ValidationError, match="identity"):
        validate_teams(blue, red)


@pytest.mark.parametrize(
    "stats",
    [
        StatLine(kills=-1),
        StatLine(damage=12.5),  # type: ignore[arg-type]
        StatLine(deaths=True),  # type: ignore[arg-type]
    ],
)
def test_validate_teams_rejects_bad_stat_values(stats: StatLine) -> None:
    blue = _roster("blue")
    blue[0] = replace(blue[0], stats=stats)
    with pytest.raises(ValidationError):
        validate_teams(blue, _roster("red"))


def test_even_match_between_placed_players_moves_by_base_change() -> None:
    builder = MatchRecordBuilder(RatingCalculator())
    record = _build(builder)
    ratings = {identity: _placed(identity) for identity in record.identities}

    outcome = builder.process(record, ratings, processed_at=PROCESSED_AT)

    assert outcome.record.processed is True
    assert outcome.record.processed_at == PROCESSED_AT
    assert outcome.record.blue_avg_rating == 1000
    for result in outcome.record.results:
        assert result.performance_score == 50
        if result.team is Team.BLUE:
            assert result.won is True
            assert result.rating_change == 25
            assert result.rating_after == 1025
        else:
            assert result.won is False
            assert result.rating_change == -25
            assert result.rating_after == 975

    winner = outcome.ratings["blue-top"]
    assert winner.rating == 1025
    assert winner.wins == 4
    assert winner.games_played == 6
    assert winner.peak_rating == 1025
    assert winner.history[-1].match_id == "match-1"
    assert outcome.ratings["red-top"].losses == 3


def test_placement_players_move_twice_as_far() -> None:
    builder = MatchRecordBuilder(RatingCalculator())
    record = _build(builder, winner=Team.RED)
    ratings = {identity: seed_player_rating(identity, 1000) for identity in record.identities}

    outcome = builder.process(record, ratings, processed_at=PROCESSED_AT)

    assert outcome.record.result_for("red-mid").rating_change == 50
    assert outcome.record.result_for("blue-mid").rating_change == -50
    assert outcome.ratings["red-mid"].placement_games_played == 1
    assert outcome.ratings["red-mid"].placed is False


def test_processing_twice_is_rejected() -> None:
    builder = MatchRecordBuilder(RatingCalculator())
    record = _build(builder)
    ratings = {identity: _placed(identity) for identity in record.identities}
    outcome = builder.process(record, ratings, processed_at=PROCESSED_AT)

    with pytest.raises(PreconditionError, match="already been processed"):
        builder.process(outcome.record, outcome.ratings, processed_at=PROCESSED_AT)


def test_processing_requires_every_rating() -> None:
    builder = MatchRecordBuilder(RatingCalculator())
    record = _build(builder)
    ratings = {identity: _placed(identity) for identity in record.identities[:-1]}

    with pytest.raises(ValueError, match="missing rating state"):
        builder.process(record, ratings, processed_at=PROCESSED_AT)


def test_record_lookups() -> None:
    record = _build(MatchRecordBuilder(RatingCalculator()))
    assert record.team_of("red-adc") is Team.RED
    assert record.team_of("stranger") is None
    assert record.result_for("red-adc") is None
    assert len(record.identities) == 10
