"""Shared TOML loading and validation helpers for settings sections."""

from __future__ import annotations

from pathlib import Path
from typing import Any
import tomllib


def read_toml(file_path: Path) -> dict[str, Any]:
    """Read one TOML settings file."""
    if not file_path.exists():
        raise FileNotFoundError(f"Settings file not found: {file_path}")
    if not file_path.is_file():
        raise IsADirectoryError(f"Settings path is not a file: {file_path}")

    with file_path.open("rb") as file:
        return tomllib.load(file)


def section(raw: dict[str, Any], name: str, file_path: Path) -> dict[str, Any]:
    """Return one table of the parsed file, or an empty table when absent."""
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"{file_path}: [{name}] must be a table")
    return value


def require_positive(value: float, *, file_path: Path, key: str) -> None:
    if value <= 0:
        raise ValueError(f"{file_path}: {key} must be > 0")


def require_non_negative(value: float, *, file_path: Path, key: str) -> None:
    if value < 0:
        raise ValueError(f"{file_path}: {key} must be >= 0")


__all__ = ["read_toml", "require_non_negative", "require_positive", "section"]
