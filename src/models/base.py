"""Declarative base and column helpers shared by every ORM table."""

from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import JSON, Enum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests and local runs).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


def value_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    """Non-native enum column storing member values ("blue", "top") rather than names."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda enum: [member.value for member in enum],
    )


__all__ = ["Base", "JSONDocument", "value_enum"]
