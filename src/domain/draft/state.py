"""Immutable snapshot types for one draft session."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from domain.draft.template import DRAFT_TEMPLATE
from domain.matchmaking.matcher import MatchProposal, QueueCandidate
from domain.protocol import (
    ACTIVE_DRAFT_STATUSES,
    CLOCKED_DRAFT_STATUSES,
    TERMINAL_DRAFT_STATUSES,
    ActionType,
    DraftStatus,
    Role,
    Team,
)


@dataclass(frozen=True)
class DraftPlayer:
    identity: str
    display_name: str
    role: Role
    team: Team
    rating: int
    slot: int
    ready: bool = False
    selection_id: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True)
class DraftAction:
    phase: int
    action_type: ActionType
    team: Team
    selection_id: str | None = None
    completed_at: datetime | None = None
    active: bool = False

    @property
    def resolved(self) -> bool:
        return self.selection_id is not None


@dataclass(frozen=True)
class LobbyCredentials:
    name: str
    password: str


@dataclass(frozen=True)
class DraftState:
    """Full session document; every transition returns a new instance."""

    session_id: str
    status: DraftStatus
    phase_index: int
    actions: tuple[DraftAction, ...]
    blue_team: tuple[DraftPlayer, ...]
    red_team: tuple[DraftPlayer, ...]
    blue_avg_rating: float
    red_avg_rating: float
    created_at: datetime
    phase_started_at: datetime | None
    phase_time_limit: int
    lobby: LobbyCredentials | None = None
    cancel_reason: str | None = None
    finished_at: datetime | None = None

    @property
    def players(self) -> tuple[DraftPlayer, ...]:
        return self.blue_team + self.red_team

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(player.identity for player in self.players)

    @property
    def current_action(self) -> DraftAction | None:
        if 0 <= self.phase_index < len(self.actions):
            return self.actions[self.phase_index]
        return None

    @property
    def banned_selection_ids(self) -> tuple[str, ...]:
        return tuple(
            action.selection_id
            for action in self.actions
            if action.action_type is ActionType.BAN and action.selection_id is not None
        )

    @property
    def picked_selection_ids(self) -> tuple[str, ...]:
        return tuple(
            action.selection_id
            for action in self.actions
            if action.action_type is ActionType.PICK and action.selection_id is not None
        )

    @property
    def used_selection_ids(self) -> frozenset[str]:
        return frozenset(self.banned_selection_ids + self.picked_selection_ids)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_DRAFT_STATUSES

    @property
    def is_clocked(self) -> bool:
        return self.status in CLOCKED_DRAFT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DRAFT_STATUSES

    @property
    def all_ready(self) -> bool:
        return all(player.ready for player in self.players)

    @property
    def phase_deadline(self) -> datetime | None:
        if not self.is_clocked or self.phase_started_at is None:
            return None
        return self.phase_started_at + timedelta(seconds=self.phase_time_limit)

    def team_of(self, identity: str) -> Team | None:
        for player in self.players:
            if player.identity == identity:
                return player.team
        return None

    def roster(self, team: Team) -> tuple[DraftPlayer, ...]:
        return self.blue_team if team is Team.BLUE else self.red_team

    def bans_for(self, team: Team) -> tuple[str, ...]:
        return tuple(
            action.selection_id
            for action in self.actions
            if action.action_type is ActionType.BAN
            and action.team is team
            and action.selection_id is not None
        )


def _draft_player(candidate: QueueCandidate, *, team: Team, slot: int) -> DraftPlayer:
    return DraftPlayer(
        identity=candidate.identity,
        display_name=candidate.display_name,
        role=candidate.role,
        team=team,
        rating=candidate.rating,
        slot=slot,
        photo_url=candidate.photo_url,
    )


def new_draft_state(
    session_id: str,
    proposal: MatchProposal,
    *,
    created_at: datetime,
    phase_time_limit: int,
) -> DraftState:
    """Build a `waiting` session from a formed match; phase 0 starts flagged active."""
    actions = tuple(
        DraftAction(
            phase=slot.phase,
            action_type=slot.action_type,
            team=slot.team,
            active=slot.phase == 0,
        )
        for slot in DRAFT_TEMPLATE
    )
    return DraftState(
        session_id=session_id,
        status=DraftStatus.WAITING,
        phase_index=0,
        actions=actions,
        blue_team=tuple(
            _draft_player(candidate, team=Team.BLUE, slot=index) for index, candidate in enumerate(proposal.blue)
        ),
        red_team=tuple(
            _draft_player(candidate, team=Team.RED, slot=index) for index, candidate in enumerate(proposal.red)
        ),
        blue_avg_rating=proposal.blue_avg_rating,
        red_avg_rating=proposal.red_avg_rating,
        created_at=created_at,
        phase_started_at=None,
        phase_time_limit=phase_time_limit,
    )


__all__ = [
    "DraftAction",
    "DraftPlayer",
    "DraftState",
    "LobbyCredentials",
    "new_draft_state",
]
