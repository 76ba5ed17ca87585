"""Persistence helpers for match records."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.common import MatchParticipant, StatLine
from domain.matches.builder import MatchRecord, PlayerResult
from domain.protocol import Team
from domain.rating.calculator import PerformanceBreakdown
from models import MatchPlayerStat, MatchRecordRow


def _to_participant(row: MatchPlayerStat) -> MatchParticipant:
    return MatchParticipant(
        identity=row.identity,
        role=row.role,
        display_name=row.display_name,
        stats=StatLine(
            kills=row.kills,
            deaths=row.deaths,
            assists=row.assists,
            farm=row.farm,
            damage=row.damage,
            vision_score=row.vision_score,
            objective_score=row.objective_score,
            selection_id=row.selection_id,
        ),
    )


def _to_result(row: MatchPlayerStat, winner: Team) -> PlayerResult:
    breakdown = PerformanceBreakdown(**row.breakdown_json) if row.breakdown_json else None
    return PlayerResult(
        identity=row.identity,
        team=row.team,
        role=row.role.value,
        performance_score=row.performance_score or 0,
        rating_change=row.rating_change or 0,
        rating_before=row.rating_before or 0,
        rating_after=row.rating_after or 0,
        won=row.team is winner,
        breakdown=breakdown,
    )


def _to_record(row: MatchRecordRow) -> MatchRecord:
    players = sorted(row.players, key=lambda player: player.slot)
    blue = [player for player in players if player.team is Team.BLUE]
    red = [player for player in players if player.team is Team.RED]
    results: tuple[PlayerResult, ...] = ()
    if row.processed:
        results = tuple(_to_result(player, row.winner) for player in blue + red)

    return MatchRecord(
        match_id=row.id,
        created_at=row.created_at,
        submitted_by=row.submitted_by,
        winner=row.winner,
        blue_team=tuple(_to_participant(player) for player in blue),
        red_team=tuple(_to_participant(player) for player in red),
        draft_session_id=row.draft_session_id,
        blue_avg_rating=row.blue_avg_rating,
        red_avg_rating=row.red_avg_rating,
        results=results,
        processed=row.processed,
        processed_at=row.processed_at,
    )


def insert_match_record(session: Session, record: MatchRecord) -> None:
    row = MatchRecordRow(
        id=record.match_id,
        created_at=record.created_at,
        submitted_by=record.submitted_by,
        winner=record.winner,
        draft_session_id=record.draft_session_id,
        processed=False,
    )
    row.players = [
        MatchPlayerStat(
            identity=participant.identity,
            team=team,
            slot=slot,
            role=participant.role,
            display_name=participant.display_name,
            selection_id=participant.stats.selection_id,
            kills=participant.stats.kills,
            deaths=participant.stats.deaths,
            assists=participant.stats.assists,
            farm=participant.stats.farm,
            damage=participant.stats.damage,
            vision_score=participant.stats.vision_score,
            objective_score=participant.stats.objective_score,
        )
        for team, roster in ((Team.BLUE, record.blue_team), (Team.RED, record.red_team))
        for slot, participant in enumerate(roster)
    ]
    session.add(row)
    session.flush()


def load_match_record(session: Session, match_id: str) -> MatchRecord | None:
    row = session.get(MatchRecordRow, match_id)
    return _to_record(row) if row is not None else None


def save_processed_match(session: Session, record: MatchRecord) -> None:
    """Flip `processed` and store the computed per-player outcomes."""
    row = session.get(MatchRecordRow, record.match_id)
    if row is None:
        raise ValueError(f"match_id={record.match_id} is not loaded in this session")

    row.processed = record.processed
    row.processed_at = record.processed_at
    row.blue_avg_rating = record.blue_avg_rating
    row.red_avg_rating = record.red_avg_rating

    results = {result.identity: result for result in record.results}
    for player_row in row.players:
        result = results[player_row.identity]
        player_row.performance_score = result.performance_score
        player_row.rating_change = result.rating_change
        player_row.rating_before = result.rating_before
        player_row.rating_after = result.rating_after
        player_row.breakdown_json = result.breakdown.as_dict() if result.breakdown is not None else None
    session.flush()


def find_match_id_for_draft(session: Session, draft_session_id: str) -> str | None:
    statement = select(MatchRecordRow.id).where(MatchRecordRow.draft_session_id == draft_session_id)
    return session.scalar(statement)


def fetch_match_history(session: Session, identity: str, *, limit: int) -> list[MatchRecord]:
    """Records the identity played in, newest first."""
    statement = (
        select(MatchRecordRow)
        .join(MatchPlayerStat, MatchPlayerStat.match_id == MatchRecordRow.id)
        .where(MatchPlayerStat.identity == identity)
        .order_by(MatchRecordRow.created_at.desc(), MatchRecordRow.id)
        .limit(limit)
    )
    return [_to_record(row) for row in session.scalars(statement)]


__all__ = [
    "fetch_match_history",
    "find_match_id_for_draft",
    "insert_match_record",
    "load_match_record",
    "save_processed_match",
]
