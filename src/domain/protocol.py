"""Shared enums for queue, draft and match entities."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """One of the five fixed in-game roles a player queues for."""

    TOP = "top"
    JUNGLE = "jungle"
    MID = "mid"
    ADC = "adc"
    SUPPORT = "support"


# Canonical processing order for matching and team balancing.
ROLE_ORDER: tuple[Role, ...] = (Role.TOP, Role.JUNGLE, Role.MID, Role.ADC, Role.SUPPORT)


class Team(str, Enum):
    """Side of the map a roster plays on."""

    BLUE = "blue"
    RED = "red"


class DraftStatus(str, Enum):
    """Lifecycle states of a draft session."""

    WAITING = "waiting"
    BANNING = "banning"
    PICKING = "picking"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_DRAFT_STATUSES: frozenset[DraftStatus] = frozenset(
    {DraftStatus.WAITING, DraftStatus.BANNING, DraftStatus.PICKING}
)
CLOCKED_DRAFT_STATUSES: frozenset[DraftStatus] = frozenset({DraftStatus.BANNING, DraftStatus.PICKING})
TERMINAL_DRAFT_STATUSES: frozenset[DraftStatus] = frozenset(
    {DraftStatus.COMPLETED, DraftStatus.CANCELLED}
)


class ActionType(str, Enum):
    """Kind of draft action resolved in one phase."""

    BAN = "ban"
    PICK = "pick"


def parse_role(value: str | Role) -> Role:
    """Coerce user input to a Role, raising ValueError for unknown roles."""
    if isinstance(value, Role):
        return value
    return Role(str(value).strip().lower())


def parse_team(value: str | Team) -> Team:
    """Coerce user input to a Team, raising ValueError for unknown sides."""
    if isinstance(value, Team):
        return value
    return Team(str(value).strip().lower())


__all__ = [
    "ACTIVE_DRAFT_STATUSES",
    "ActionType",
    "CLOCKED_DRAFT_STATUSES",
    "DraftStatus",
    "ROLE_ORDER",
    "Role",
    "TERMINAL_DRAFT_STATUSES",
    "Team",
    "parse_role",
    "parse_team",
]
