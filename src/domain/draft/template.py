"""Fixed 16-phase ban/pick order."""

from __future__ import annotations

from dataclasses import dataclass

from domain.protocol import ActionType, Team


@dataclass(frozen=True)
class ActionSlot:
    phase: int
    action_type: ActionType
    team: Team


BAN_ORDER: tuple[Team, ...] = (Team.BLUE, Team.RED, Team.BLUE, Team.RED, Team.BLUE, Team.RED)
PICK_ORDER: tuple[Team, ...] = (
    Team.BLUE,
    Team.RED,
    Team.RED,
    Team.BLUE,
    Team.BLUE,
    Team.RED,
    Team.RED,
    Team.BLUE,
    Team.BLUE,
    Team.RED,
)

FIRST_PICK_PHASE = len(BAN_ORDER)

DRAFT_TEMPLATE: tuple[ActionSlot, ...] = tuple(
    ActionSlot(phase=index, action_type=ActionType.BAN, team=team) for index, team in enumerate(BAN_ORDER)
) + tuple(
    ActionSlot(phase=FIRST_PICK_PHASE + index, action_type=ActionType.PICK, team=team)
    for index, team in enumerate(PICK_ORDER)
)

DRAFT_LENGTH = len(DRAFT_TEMPLATE)


__all__ = [
    "ActionSlot",
    "BAN_ORDER",
    "DRAFT_LENGTH",
    "DRAFT_TEMPLATE",
    "FIRST_PICK_PHASE",
    "PICK_ORDER",
]
