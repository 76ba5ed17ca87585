"""Draft state machine modules."""

from domain.draft.config import DraftParameters, parse_draft_parameters
from domain.draft.lobby import DraftResult, TeamSummary, draft_result, generate_lobby_credentials
from domain.draft.machine import (
    ActionOutcome,
    ReadyOutcome,
    cancel,
    mark_ready,
    phase_expired,
    ready_expired,
    submit_action,
    time_out,
)
from domain.draft.state import DraftAction, DraftPlayer, DraftState, LobbyCredentials, new_draft_state
from domain.draft.template import DRAFT_LENGTH, DRAFT_TEMPLATE, FIRST_PICK_PHASE

__all__ = [
    "ActionOutcome",
    "DRAFT_LENGTH",
    "DRAFT_TEMPLATE",
    "DraftAction",
    "DraftParameters",
    "DraftPlayer",
    "DraftResult",
    "DraftState",
    "FIRST_PICK_PHASE",
    "LobbyCredentials",
    "ReadyOutcome",
    "TeamSummary",
    "cancel",
    "draft_result",
    "generate_lobby_credentials",
    "mark_ready",
    "new_draft_state",
    "parse_draft_parameters",
    "phase_expired",
    "ready_expired",
    "submit_action",
    "time_out",
]
