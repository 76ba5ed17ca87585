"""Persistence helpers mapping draft sessions to `DraftState` snapshots."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.draft.state import DraftAction, DraftPlayer, DraftState, LobbyCredentials
from domain.protocol import ACTIVE_DRAFT_STATUSES, Team
from models import DraftSession, DraftSessionAction, DraftSessionPlayer


def _to_state(row: DraftSession) -> DraftState:
    players = [
        DraftPlayer(
            identity=player.identity,
            display_name=player.display_name,
            role=player.role,
            team=player.team,
            rating=player.rating,
            slot=player.slot,
            ready=player.ready,
            selection_id=player.selection_id,
            photo_url=player.photo_url,
        )
        for player in row.players
    ]
    lobby = None
    if row.lobby_name is not None and row.lobby_password is not None:
        lobby = LobbyCredentials(name=row.lobby_name, password=row.lobby_password)

    return DraftState(
        session_id=row.id,
        status=row.status,
        phase_index=row.phase_index,
        actions=tuple(
            DraftAction(
                phase=action.phase,
                action_type=action.action_type,
                team=action.team,
                selection_id=action.selection_id,
                completed_at=action.completed_at,
                active=action.active,
            )
            for action in sorted(row.actions, key=lambda action: action.phase)
        ),
        blue_team=tuple(
            sorted((p for p in players if p.team is Team.BLUE), key=lambda player: player.slot)
        ),
        red_team=tuple(
            sorted((p for p in players if p.team is Team.RED), key=lambda player: player.slot)
        ),
        blue_avg_rating=row.blue_avg_rating,
        red_avg_rating=row.red_avg_rating,
        created_at=row.created_at,
        phase_started_at=row.phase_started_at,
        phase_time_limit=row.phase_time_limit,
        lobby=lobby,
        cancel_reason=row.cancel_reason,
        finished_at=row.finished_at,
    )


def insert_draft(session: Session, state: DraftState) -> None:
    row = DraftSession(
        id=state.session_id,
        status=state.status,
        phase_index=state.phase_index,
        phase_started_at=state.phase_started_at,
        phase_time_limit=state.phase_time_limit,
        blue_avg_rating=state.blue_avg_rating,
        red_avg_rating=state.red_avg_rating,
        created_at=state.created_at,
        updated_at=state.created_at,
    )
    row.players = [
        DraftSessionPlayer(
            identity=player.identity,
            display_name=player.display_name,
            photo_url=player.photo_url,
            role=player.role,
            team=player.team,
            slot=player.slot,
            rating=player.rating,
            ready=player.ready,
            selection_id=player.selection_id,
        )
        for player in state.players
    ]
    row.actions = [
        DraftSessionAction(
            phase=action.phase,
            action_type=action.action_type,
            team=action.team,
            selection_id=action.selection_id,
            completed_at=action.completed_at,
            active=action.active,
        )
        for action in state.actions
    ]
    session.add(row)
    session.flush()


def load_draft(session: Session, session_id: str) -> DraftState | None:
    row = session.get(DraftSession, session_id)
    return _to_state(row) if row is not None else None


def save_draft(session: Session, state: DraftState, *, now: datetime) -> None:
    """Write a transitioned state back onto the row read in this session.

    `updated_at` always changes, so the session version is bumped and checked
    even when only nested players or actions differ.
    """
    row = session.get(DraftSession, state.session_id)
    if row is None:
        raise ValueError(f"draft session_id={state.session_id} is not loaded in this session")

    row.status = state.status
    row.phase_index = state.phase_index
    row.phase_started_at = state.phase_started_at
    row.lobby_name = state.lobby.name if state.lobby is not None else None
    row.lobby_password = state.lobby.password if state.lobby is not None else None
    row.cancel_reason = state.cancel_reason
    row.finished_at = state.finished_at
    row.updated_at = now

    players_by_identity = {player.identity: player for player in state.players}
    for player_row in row.players:
        player = players_by_identity[player_row.identity]
        player_row.ready = player.ready
        player_row.selection_id = player.selection_id

    actions_by_phase = {action.phase: action for action in state.actions}
    for action_row in row.actions:
        action = actions_by_phase[action_row.phase]
        action_row.selection_id = action.selection_id
        action_row.completed_at = action.completed_at
        action_row.active = action.active

    session.flush()


def find_active_draft_id(session: Session, identity: str) -> str | None:
    """Return the non-terminal session the identity plays in, if any."""
    statement = (
        select(DraftSession.id)
        .join(DraftSessionPlayer, DraftSessionPlayer.session_id == DraftSession.id)
        .where(
            DraftSessionPlayer.identity == identity,
            DraftSession.status.in_(list(ACTIVE_DRAFT_STATUSES)),
        )
        .order_by(DraftSession.created_at.desc())
        .limit(1)
    )
    return session.scalar(statement)


def fetch_active_draft_ids(session: Session) -> list[str]:
    statement = (
        select(DraftSession.id)
        .where(DraftSession.status.in_(list(ACTIVE_DRAFT_STATUSES)))
        .order_by(DraftSession.created_at, DraftSession.id)
    )
    return list(session.scalars(statement))


__all__ = [
    "fetch_active_draft_ids",
    "find_active_draft_id",
    "insert_draft",
    "load_draft",
    "save_draft",
]
