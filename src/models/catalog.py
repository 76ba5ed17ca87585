"""selection_catalog cache table model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONDocument


class SelectionCatalogRow(Base):
    __tablename__ = "selection_catalog"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    entries: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
