"""Tests for the ban/pick draft state machine."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.draft.lobby import draft_result, generate_lobby_credentials
from domain.draft.machine import (
    READY_TIMEOUT_REASON,
    TIMEOUT_REASON,
    cancel,
    mark_ready,
    phase_expired,
    ready_expired,
    submit_action,
    time_out,
)
from domain.draft.state import DraftState, LobbyCredentials, new_draft_state
from domain.draft.template import BAN_ORDER, DRAFT_TEMPLATE, FIRST_PICK_PHASE, PICK_ORDER
from domain.errors import ExpiredError, PermissionDeniedError, PreconditionError, ValidationError
from domain.matchmaking.matcher import QueueCandidate, propose_match
from domain.protocol import ROLE_ORDER, ActionType, DraftStatus, Team

START = datetime(2026, 1, 1, 12, 0, 0)


def _lobby(session_id: str) -> LobbyCredentials:
    return LobbyCredentials(name=f"Drafty-{session_id[:8]}", password="abcd1234")


def _new_state() -> DraftState:
    candidates = [
        QueueCandidate(
            identity=f"{role.value}-{suffix}",
            display_name=f"{role.value} {suffix}",
            role=role,
            rating=1000 + index * 10 + (5 if suffix == "b" else 0),
            region="euw",
            joined_at=START,
        )
        for index, role in enumerate(ROLE_ORDER)
        for suffix in ("a", "b")
    ]
    proposal = propose_match(candidates)
    assert proposal is not None
    return new_draft_state("session-0001-abcdef", proposal, created_at=START, phase_time_limit=30)


def _ready_all(state: DraftState, now: datetime = START) -> DraftState:
    for identity in state.identities:
        state = mark_ready(state, identity, now=now).state
    return state


def _actor(state: DraftState) -> str:
    action = state.current_action
    assert action is not None
    return state.roster(action.team)[0].identity


def _run_full_draft(state: DraftState) -> DraftState:
    now = START
    for phase in range(len(DRAFT_TEMPLATE)):
        now = now + timedelta(seconds=5)
        state = submit_action(state, _actor(state), f"unit-{phase}", now=now, lobby_factory=_lobby).state
    return state


def test_template_has_bans_then_snake_picks() -> None:
    assert len(DRAFT_TEMPLATE) == 16
    assert [slot.team for slot in DRAFT_TEMPLATE[:FIRST_PICK_PHASE]] == list(BAN_ORDER)
    assert [slot.team for slot in DRAFT_TEMPLATE[FIRST_PICK_PHASE:]] == list(PICK_ORDER)
    assert all(slot.action_type is ActionType.BAN for slot in DRAFT_TEMPLATE[:6])
    assert all(slot.action_type is ActionType.PICK for slot in DRAFT_TEMPLATE[6:])
    assert BAN_ORDER == (Team.BLUE, Team.RED) * 3


def test_new_session_waits_with_first_ban_flagged_active() -> None:
    state = _new_state()

    assert state.status is DraftStatus.WAITING
    assert len(state.blue_team) == 5
    assert len(state.red_team) == 5
    assert state.actions[0].action_type is ActionType.BAN
    assert state.actions[0].team is Team.BLUE
    assert state.actions[0].active is True
    assert sum(action.active for action in state.actions) == 1
    assert state.phase_deadline is None


def test_ready_is_idempotent_and_last_ready_starts_the_clock() -> None:
    state = _new_state()
    first = state.identities[0]

    once = mark_ready(state, first, now=START)
    twice = mark_ready(once.state, first, now=START)
    assert once.changed is True
    assert twice.changed is False
    assert twice.state == once.state

    started = _ready_all(state, now=START + timedelta(seconds=10))
    assert started.status is DraftStatus.BANNING
    assert started.phase_started_at == START + timedelta(seconds=10)
    assert started.phase_deadline == START + timedelta(seconds=40)


def test_ready_rejects_strangers_and_started_sessions() -> None:
    state = _new_state()
    with pytest.raises(PermissionDeniedError, match="not a participant"):
        mark_ready(state, "stranger", now=START)

    started = _ready_all(state)
    with pytest.raises(PreconditionError, match="not waiting"):
        mark_ready(started, started.identities[0], now=START)


def test_submit_requires_clocked_status() -> None:
    state = _new_state()
    with pytest.raises(PreconditionError, match="not in an active phase"):
        submit_action(state, _actor(state), "unit-0", now=START, lobby_factory=_lobby)


def test_wrong_team_is_rejected_without_mutation() -> None:
    state = _ready_all(_new_state())
    red_player = state.red_team[0].identity

    with pytest.raises(PermissionDeniedError, match="not red's turn"):
        submit_action(state, red_player, "unit-0", now=START, lobby_factory=_lobby)
    assert state.phase_index == 0
    assert state.actions[0].selection_id is None


def test_empty_selection_is_a_validation_error() -> None:
    state = _ready_all(_new_state())
    with pytest.raises(ValidationError, match="selection_id is required"):
        submit_action(state, _actor(state), "  ", now=START, lobby_factory=_lobby)


def test_duplicate_selection_is_rejected() -> None:
    state = _ready_all(_new_state())
    state = submit_action(state, _actor(state), "unit-x", now=START, lobby_factory=_lobby).state

    with pytest.raises(PreconditionError, match="already banned or picked"):
        submit_action(state, _actor(state), "unit-x", now=START, lobby_factory=_lobby)


def test_racing_submissions_for_one_phase_resolve_once() -> None:
    state = _ready_all(_new_state())
    blue = _actor(state)
    pinned = state.phase_index

    winner = submit_action(state, blue, "unit-a", now=START, lobby_factory=_lobby, expected_phase=pinned)
    with pytest.raises(PreconditionError, match="already resolved"):
        submit_action(winner.state, blue, "unit-b", now=START, lobby_factory=_lobby, expected_phase=pinned)

    assert winner.state.phase_index == 1
    assert winner.state.banned_selection_ids == ("unit-a",)


def test_first_pick_switches_status_to_picking() -> None:
    state = _ready_all(_new_state())
    for phase in range(FIRST_PICK_PHASE):
        state = submit_action(state, _actor(state), f"ban-{phase}", now=START, lobby_factory=_lobby).state

    assert state.status is DraftStatus.PICKING
    assert state.phase_index == FIRST_PICK_PHASE
    assert state.actions[FIRST_PICK_PHASE].active is True
    assert state.bans_for(Team.BLUE) == ("ban-0", "ban-2", "ban-4")
    assert state.bans_for(Team.RED) == ("ban-1", "ban-3", "ban-5")


def test_full_draft_completes_in_template_order() -> None:
    state = _run_full_draft(_ready_all(_new_state()))

    assert state.status is DraftStatus.COMPLETED
    assert state.phase_index == 16
    assert state.phase_started_at is None
    assert state.lobby == LobbyCredentials(name="Drafty-session-", password="abcd1234")
    assert not any(action.active for action in state.actions)
    assert [action.team for action in state.actions] == [slot.team for slot in DRAFT_TEMPLATE]
    assert all(player.selection_id for player in state.players)
    assert len(state.used_selection_ids) == 16
    # Picks fill each roster in slot order.
    blue_picks = [action.selection_id for action in state.actions[6:] if action.team is Team.BLUE]
    assert [player.selection_id for player in state.blue_team] == blue_picks


def test_completed_session_yields_lobby_summary() -> None:
    state = _run_full_draft(_ready_all(_new_state()))
    result = draft_result(state)

    assert result.lobby.password == "abcd1234"
    assert result.blue.bans == ("unit-0", "unit-2", "unit-4")
    assert len(result.red.players) == 5

    with pytest.raises(PreconditionError, match="not completed"):
        draft_result(_new_state())


def test_late_submission_past_grace_is_expired() -> None:
    state = _ready_all(_new_state())
    late = START + timedelta(seconds=34)

    with pytest.raises(ExpiredError, match="timed out"):
        submit_action(state, _actor(state), "unit-0", now=late, lobby_factory=_lobby, grace_seconds=3)
    outcome = submit_action(
        state,
        _actor(state),
        "unit-0",
        now=START + timedelta(seconds=32),
        lobby_factory=_lobby,
        grace_seconds=3,
    )
    assert outcome.next_phase == 1


def test_timeout_only_after_the_clock_elapses() -> None:
    state = _ready_all(_new_state())

    with pytest.raises(PreconditionError, match="has time remaining"):
        time_out(state, now=START + timedelta(seconds=10))

    cancelled = time_out(state, now=START + timedelta(seconds=31))
    assert cancelled.status is DraftStatus.CANCELLED
    assert cancelled.cancel_reason == TIMEOUT_REASON
    assert not any(action.active for action in cancelled.actions)

    with pytest.raises(PreconditionError):
        time_out(_new_state(), now=START + timedelta(seconds=3600))


def test_timeout_waits_out_the_submission_grace() -> None:
    state = _ready_all(_new_state())

    with pytest.raises(PreconditionError, match="has time remaining"):
        time_out(state, now=START + timedelta(seconds=33), grace_seconds=3)

    cancelled = time_out(state, now=START + timedelta(seconds=34), grace_seconds=3)
    assert cancelled.cancel_reason == TIMEOUT_REASON


def test_cancellation_is_one_directional() -> None:
    cancelled = cancel(_new_state(), reason=READY_TIMEOUT_REASON, now=START)

    with pytest.raises(PreconditionError, match="already cancelled"):
        cancel(cancelled, reason="cancelled", now=START)
    with pytest.raises(PreconditionError):
        mark_ready(cancelled, cancelled.identities[0], now=START)
    with pytest.raises(PreconditionError):
        submit_action(cancelled, cancelled.identities[0], "unit-0", now=START, lobby_factory=_lobby)


def test_expiry_predicates() -> None:
    waiting = _new_state()
    assert ready_expired(waiting, START + timedelta(seconds=121), ready_timeout_seconds=120) is True
    assert ready_expired(waiting, START + timedelta(seconds=60), ready_timeout_seconds=120) is False

    started = _ready_all(waiting)
    assert phase_expired(started, START + timedelta(seconds=31)) is True
    assert phase_expired(started, START + timedelta(seconds=31), grace_seconds=3) is False
    assert phase_expired(waiting, START + timedelta(hours=1)) is False


def test_generated_lobby_credentials_shape() -> None:
    credentials = generate_lobby_credentials("0f1e2d3c-4b5a", prefix="Scrim")
    assert credentials.name == "Scrim-0f1e2d3c"
    assert len(credentials.password) == 8
    assert credentials.password.isalnum()
    assert credentials.password == credentials.password.lower()
