"""Draft state machine: ready, submit, timeout and cancel transitions.

Every transition is a pure function from one `DraftState` to the next. Callers
persist the returned state inside the same transaction that read the input,
so a transition is applied at most once per stored version.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from domain.draft.state import DraftAction, DraftPlayer, DraftState, LobbyCredentials
from domain.draft.template import FIRST_PICK_PHASE
from domain.errors import (
    ExpiredError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from domain.protocol import ActionType, DraftStatus, Team

LobbyFactory = Callable[[str], LobbyCredentials]

TIMEOUT_REASON = "timeout"
READY_TIMEOUT_REASON = "ready_timeout"
CANCELLED_REASON = "cancelled"


@dataclass(frozen=True)
class ReadyOutcome:
    state: DraftState
    all_ready: bool
    changed: bool


@dataclass(frozen=True)
class ActionOutcome:
    state: DraftState
    resolved_phase: int
    action: DraftAction
    next_phase: int | None
    completed: bool


def _require_participant(state: DraftState, identity: str) -> Team:
    team = state.team_of(identity)
    if team is None:
        raise PermissionDeniedError(f"{identity} is not a participant in draft {state.session_id}")
    return team


def _replace_player(players: tuple[DraftPlayer, ...], updated: DraftPlayer) -> tuple[DraftPlayer, ...]:
    return tuple(updated if player.identity == updated.identity else player for player in players)


def mark_ready(state: DraftState, identity: str, *, now: datetime) -> ReadyOutcome:
    """Flag one player ready; the last ready flag starts the ban phase clock."""
    team = _require_participant(state, identity)
    if state.status is not DraftStatus.WAITING:
        raise PreconditionError(f"Draft {state.session_id} is not waiting for players (status={state.status.value})")

    player = next(player for player in state.roster(team) if player.identity == identity)
    if player.ready:
        return ReadyOutcome(state=state, all_ready=state.all_ready, changed=False)

    updated = replace(player, ready=True)
    if team is Team.BLUE:
        state = replace(state, blue_team=_replace_player(state.blue_team, updated))
    else:
        state = replace(state, red_team=_replace_player(state.red_team, updated))

    if state.all_ready:
        actions = tuple(replace(action, active=action.phase == 0) for action in state.actions)
        state = replace(
            state,
            status=DraftStatus.BANNING,
            phase_index=0,
            actions=actions,
            phase_started_at=now,
        )
    return ReadyOutcome(state=state, all_ready=state.all_ready, changed=True)


def phase_expired(state: DraftState, now: datetime, *, grace_seconds: int = 0) -> bool:
    deadline = state.phase_deadline
    if deadline is None:
        return False
    return now > deadline + timedelta(seconds=grace_seconds)


def ready_expired(state: DraftState, now: datetime, *, ready_timeout_seconds: int) -> bool:
    if state.status is not DraftStatus.WAITING:
        return False
    return now > state.created_at + timedelta(seconds=ready_timeout_seconds)


def _assign_pick(
    roster: tuple[DraftPlayer, ...],
    selection_id: str,
) -> tuple[DraftPlayer, ...]:
    # Roster order is fixed at formation, so the first unassigned slot is deterministic.
    for index, player in enumerate(roster):
        if player.selection_id is None:
            updated = replace(player, selection_id=selection_id)
            return roster[:index] + (updated,) + roster[index + 1 :]
    raise RuntimeError("pick resolved for a roster with no unassigned player")


def submit_action(
    state: DraftState,
    identity: str,
    selection_id: str,
    *,
    now: datetime,
    lobby_factory: LobbyFactory,
    expected_phase: int | None = None,
    grace_seconds: int = 0,
) -> ActionOutcome:
    """Resolve the active ban/pick for the caller's team and advance the clock."""
    selection_id = (selection_id or "").strip()
    if not selection_id:
        raise ValidationError("selection_id is required")

    team = _require_participant(state, identity)
    if not state.is_clocked:
        raise PreconditionError(f"Draft {state.session_id} is not in an active phase (status={state.status.value})")
    if expected_phase is not None and expected_phase != state.phase_index:
        raise PreconditionError(f"Phase {expected_phase} of draft {state.session_id} is already resolved")

    action = state.current_action
    if action is None or not action.active:
        raise PreconditionError(f"Draft {state.session_id} has no active action")
    if action.team is not team:
        raise PermissionDeniedError(f"It is not {team.value}'s turn in phase {action.phase}")
    if phase_expired(state, now, grace_seconds=grace_seconds):
        raise ExpiredError(f"Phase {action.phase} of draft {state.session_id} has timed out")
    if selection_id in state.used_selection_ids:
        raise PreconditionError(f"{selection_id} is already banned or picked")

    resolved = replace(action, selection_id=selection_id, completed_at=now, active=False)
    actions = list(state.actions)
    actions[action.phase] = resolved

    blue_team = state.blue_team
    red_team = state.red_team
    if action.action_type is ActionType.PICK:
        if team is Team.BLUE:
            blue_team = _assign_pick(blue_team, selection_id)
        else:
            red_team = _assign_pick(red_team, selection_id)

    next_phase = action.phase + 1
    if next_phase >= len(actions):
        next_state = replace(
            state,
            status=DraftStatus.COMPLETED,
            phase_index=len(actions),
            actions=tuple(actions),
            blue_team=blue_team,
            red_team=red_team,
            phase_started_at=None,
            lobby=lobby_factory(state.session_id),
            finished_at=now,
        )
        return ActionOutcome(
            state=next_state,
            resolved_phase=action.phase,
            action=resolved,
            next_phase=None,
            completed=True,
        )

    actions[next_phase] = replace(actions[next_phase], active=True)
    status = DraftStatus.PICKING if next_phase >= FIRST_PICK_PHASE else state.status
    next_state = replace(
        state,
        status=status,
        phase_index=next_phase,
        actions=tuple(actions),
        blue_team=blue_team,
        red_team=red_team,
        phase_started_at=now,
    )
    return ActionOutcome(
        state=next_state,
        resolved_phase=action.phase,
        action=resolved,
        next_phase=next_phase,
        completed=False,
    )


def _deactivate(actions: tuple[DraftAction, ...]) -> tuple[DraftAction, ...]:
    return tuple(replace(action, active=False) if action.active else action for action in actions)


def cancel(state: DraftState, *, reason: str, now: datetime) -> DraftState:
    """Move a non-terminal session to `cancelled`; cancelled sessions never resume."""
    if state.is_terminal:
        raise PreconditionError(f"Draft {state.session_id} is already {state.status.value}")
    return replace(
        state,
        status=DraftStatus.CANCELLED,
        actions=_deactivate(state.actions),
        phase_started_at=None,
        cancel_reason=reason,
        finished_at=now,
    )


def time_out(state: DraftState, *, now: datetime, grace_seconds: int = 0) -> DraftState:
    """Cancel a session whose phase clock (plus grace) has run out."""
    if not state.is_clocked:
        raise PreconditionError(f"Draft {state.session_id} is not in an active phase (status={state.status.value})")
    if not phase_expired(state, now, grace_seconds=grace_seconds):
        raise PreconditionError(f"Phase {state.phase_index} of draft {state.session_id} has time remaining")
    return cancel(state, reason=TIMEOUT_REASON, now=now)


__all__ = [
    "ActionOutcome",
    "CANCELLED_REASON",
    "LobbyFactory",
    "READY_TIMEOUT_REASON",
    "ReadyOutcome",
    "TIMEOUT_REASON",
    "cancel",
    "mark_ready",
    "phase_expired",
    "ready_expired",
    "submit_action",
    "time_out",
]
