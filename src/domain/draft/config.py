"""Parse the [draft] settings section."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from domain.config_base import require_non_negative, require_positive, section


@dataclass(frozen=True)
class DraftParameters:
    phase_time_limit_seconds: int = 30
    ready_timeout_seconds: int = 120
    submission_grace_seconds: int = 3
    lobby_name_prefix: str = "Drafty"


def parse_draft_parameters(raw: dict[str, Any], file_path: Path) -> DraftParameters:
    draft_raw = section(raw, "draft", file_path)
    defaults = DraftParameters()
    parameters = DraftParameters(
        phase_time_limit_seconds=int(
            draft_raw.get("phase_time_limit_seconds", defaults.phase_time_limit_seconds)
        ),
        ready_timeout_seconds=int(draft_raw.get("ready_timeout_seconds", defaults.ready_timeout_seconds)),
        submission_grace_seconds=int(
            draft_raw.get("submission_grace_seconds", defaults.submission_grace_seconds)
        ),
        lobby_name_prefix=str(draft_raw.get("lobby_name_prefix", defaults.lobby_name_prefix)).strip(),
    )
    require_positive(
        parameters.phase_time_limit_seconds,
        file_path=file_path,
        key="[draft].phase_time_limit_seconds",
    )
    require_positive(
        parameters.ready_timeout_seconds,
        file_path=file_path,
        key="[draft].ready_timeout_seconds",
    )
    require_non_negative(
        parameters.submission_grace_seconds,
        file_path=file_path,
        key="[draft].submission_grace_seconds",
    )
    if not parameters.lobby_name_prefix:
        raise ValueError(f"{file_path}: [draft].lobby_name_prefix is required")
    return parameters


__all__ = ["DraftParameters", "parse_draft_parameters"]
