"""queue_entries table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from domain.protocol import Role
from models.base import Base, value_enum


class QueueEntry(Base):
    """One waiting player; the primary key keeps a single entry per identity."""

    __tablename__ = "queue_entries"
    __table_args__ = (
        Index("idx_queue_entries_role_rating", "role", "rating", "joined_at"),
        Index("idx_queue_entries_joined_at", "joined_at"),
    )

    identity: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    role: Mapped[Role] = mapped_column(value_enum(Role, "queue_role"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    region: Mapped[str] = mapped_column(String(32), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
