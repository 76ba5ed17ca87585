"""Parse the [queue] settings section."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from domain.config_base import require_non_negative, section


@dataclass(frozen=True)
class QueueParameters:
    max_wait_seconds: int = 1800
    match_by_region: bool = False


def parse_queue_parameters(raw: dict[str, Any], file_path: Path) -> QueueParameters:
    queue_raw = section(raw, "queue", file_path)
    defaults = QueueParameters()
    parameters = QueueParameters(
        max_wait_seconds=int(queue_raw.get("max_wait_seconds", defaults.max_wait_seconds)),
        match_by_region=bool(queue_raw.get("match_by_region", defaults.match_by_region)),
    )
    require_non_negative(parameters.max_wait_seconds, file_path=file_path, key="[queue].max_wait_seconds")
    return parameters


__all__ = ["QueueParameters", "parse_queue_parameters"]
