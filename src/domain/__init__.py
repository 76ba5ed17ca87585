"""Domain logic for role queues, drafts and ratings."""

from domain.common import MatchParticipant, PlayerProfile, StatLine
from domain.protocol import ActionType, DraftStatus, Role, Team

__all__ = [
    "ActionType",
    "DraftStatus",
    "MatchParticipant",
    "PlayerProfile",
    "Role",
    "StatLine",
    "Team",
]
