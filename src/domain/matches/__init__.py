"""Match record modules."""

from domain.matches.builder import (
    MatchOutcome,
    MatchRecord,
    MatchRecordBuilder,
    PlayerResult,
    validate_teams,
)

__all__ = ["MatchOutcome", "MatchRecord", "MatchRecordBuilder", "PlayerResult", "validate_teams"]
