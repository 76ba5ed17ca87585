"""draft_sessions, draft_session_players and draft_session_actions table models."""

from __future__ import annotations

from datetime import datetime

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
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from domain.protocol import ActionType, DraftStatus, Role, Team
from models.base import Base, value_enum


class DraftSession(Base):
    """Session document; its version counter guards players and actions too."""

    __tablename__ = "draft_sessions"
    __table_args__ = (
        CheckConstraint("phase_index >= 0 AND phase_index <= 16", name="ck_draft_sessions_phase_index"),
        Index("idx_draft_sessions_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[DraftStatus] = mapped_column(value_enum(DraftStatus, "draft_status"), nullable=False)
    phase_index: Mapped[int] = mapped_column(Integer, nullable=False)
    phase_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    phase_time_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    blue_avg_rating: Mapped[float] = mapped_column(Float, nullable=False)
    red_avg_rating: Mapped[float] = mapped_column(Float, nullable=False)
    lobby_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lobby_password: Mapped[str | None] = mapped_column(String(32), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    players: Mapped[list[DraftSessionPlayer]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="DraftSessionPlayer.slot",
        lazy="selectin",
    )
    actions: Mapped[list[DraftSessionAction]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="DraftSessionAction.phase",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class DraftSessionPlayer(Base):
    __tablename__ = "draft_session_players"
    __table_args__ = (
        UniqueConstraint("session_id", "team", "slot", name="uq_draft_session_players_slot"),
        Index("idx_draft_session_players_identity", "identity"),
    )

    session_id: Mapped[str] = mapped_column(ForeignKey("draft_sessions.id"), primary_key=True)
    identity: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    role: Mapped[Role] = mapped_column(value_enum(Role, "draft_role"), nullable=False)
    team: Mapped[Team] = mapped_column(value_enum(Team, "draft_team"), nullable=False)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    ready: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    selection_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    session: Mapped[DraftSession] = relationship(back_populates="players")


class DraftSessionAction(Base):
    """One slot of the ban/pick template; a selection appears once per session."""

    __tablename__ = "draft_session_actions"
    __table_args__ = (
        UniqueConstraint("session_id", "selection_id", name="uq_draft_session_actions_selection"),
        CheckConstraint("phase >= 0 AND phase < 16", name="ck_draft_session_actions_phase"),
    )

    session_id: Mapped[str] = mapped_column(ForeignKey("draft_sessions.id"), primary_key=True)
    phase: Mapped[int] = mapped_column(Integer, primary_key=True)
    action_type: Mapped[ActionType] = mapped_column(value_enum(ActionType, "draft_action_type"), nullable=False)
    team: Mapped[Team] = mapped_column(value_enum(Team, "draft_action_team"), nullable=False)
    selection_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session: Mapped[DraftSession] = relationship(back_populates="actions")
