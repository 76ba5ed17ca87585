"""ORM models."""

from models.base import Base
from models.catalog import SelectionCatalogRow
from models.draft import DraftSession, DraftSessionAction, DraftSessionPlayer
from models.match import MatchPlayerStat, MatchRecordRow
from models.profile import PlayerProfileRow
from models.queue import QueueEntry
from models.rating import PlayerRating, RatingHistory

__all__ = [
    "Base",
    "DraftSession",
    "DraftSessionAction",
    "DraftSessionPlayer",
    "MatchPlayerStat",
    "MatchRecordRow",
    "PlayerProfileRow",
    "PlayerRating",
    "QueueEntry",
    "RatingHistory",
    "SelectionCatalogRow",
]
