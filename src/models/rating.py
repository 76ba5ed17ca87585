"""player_ratings and rating_history table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base


class PlayerRating(Base):
    """Current rating ledger for one player."""

    __tablename__ = "player_ratings"
    __table_args__ = (
        CheckConstraint("games_played = wins + losses", name="ck_player_ratings_games"),
        Index("idx_player_ratings_leaderboard", "placed", "rating"),
    )

    identity: Mapped[str] = mapped_column(String(128), primary_key=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    placement_games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    placed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    peak_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    history: Mapped[list[RatingHistory]] = relationship(
        back_populates="player",
        cascade="all, delete-orphan",
        order_by="RatingHistory.id",
    )

    __mapper_args__ = {"version_id_col": version}


class RatingHistory(Base):
    """One applied rating change (one row per player per match)."""

    __tablename__ = "rating_history"
    __table_args__ = (
        UniqueConstraint("identity", "match_id", name="uq_rating_history_identity_match"),
        Index("idx_rating_history_identity_recorded", "identity", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(ForeignKey("player_ratings.identity"), nullable=False)
    match_id: Mapped[str] = mapped_column(String(36), nullable=False)
    rating_before: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_after: Mapped[int] = mapped_column(Integer, nullable=False)
    change: Mapped[int] = mapped_column(Integer, nullable=False)
    performance_score: Mapped[int] = mapped_column(Integer, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    player: Mapped[PlayerRating] = relationship(back_populates="history")
