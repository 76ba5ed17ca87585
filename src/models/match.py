"""match_records and match_player_stats table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from domain.protocol import Role, Team
from models.base import Base, JSONDocument, value_enum


class MatchRecordRow(Base):
    """One submitted match; `processed` flips once, with the rating writes."""

    __tablename__ = "match_records"
    __table_args__ = (
        UniqueConstraint("draft_session_id", name="uq_match_records_draft_session"),
        Index("idx_match_records_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(128), nullable=False)
    winner: Mapped[Team] = mapped_column(value_enum(Team, "match_winner"), nullable=False)
    draft_session_id: Mapped[str | None] = mapped_column(ForeignKey("draft_sessions.id"), nullable=True)
    blue_avg_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    red_avg_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    players: Mapped[list[MatchPlayerStat]] = relationship(
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchPlayerStat.slot",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class MatchPlayerStat(Base):
    """Submitted statistics and computed outcome for one player of one match."""

    __tablename__ = "match_player_stats"
    __table_args__ = (
        CheckConstraint(
            "kills >= 0 AND deaths >= 0 AND assists >= 0 AND farm >= 0 AND damage >= 0 "
            "AND vision_score >= 0 AND objective_score >= 0",
            name="ck_match_player_stats_non_negative",
        ),
        Index("idx_match_player_stats_identity", "identity"),
    )

    match_id: Mapped[str] = mapped_column(ForeignKey("match_records.id"), primary_key=True)
    identity: Mapped[str] = mapped_column(String(128), primary_key=True)
    team: Mapped[Team] = mapped_column(value_enum(Team, "match_player_team"), nullable=False)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[Role] = mapped_column(value_enum(Role, "match_player_role"), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    selection_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    kills: Mapped[int] = mapped_column(Integer, nullable=False)
    deaths: Mapped[int] = mapped_column(Integer, nullable=False)
    assists: Mapped[int] = mapped_column(Integer, nullable=False)
    farm: Mapped[int] = mapped_column(Integer, nullable=False)
    damage: Mapped[int] = mapped_column(Integer, nullable=False)
    vision_score: Mapped[int] = mapped_column(Integer, nullable=False)
    objective_score: Mapped[int] = mapped_column(Integer, nullable=False)
    performance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating_change: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    breakdown_json: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)

    match: Mapped[MatchRecordRow] = relationship(back_populates="players")
