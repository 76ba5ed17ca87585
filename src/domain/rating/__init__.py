"""Rating engine modules."""

from domain.rating.calculator import (
    PerformanceBreakdown,
    PerformanceWeights,
    RatingCalculator,
    RatingChange,
    RatingParameters,
    calculate_expected_score,
)
from domain.rating.config import parse_rating_parameters
from domain.rating.player import (
    PlayerRatingState,
    RatingHistoryEntry,
    apply_rating_change,
    seed_player_rating,
)
from domain.rating.tiers import initial_rating, tier_for_rating, win_rate

__all__ = [
    "PerformanceBreakdown",
    "PerformanceWeights",
    "PlayerRatingState",
    "RatingCalculator",
    "RatingChange",
    "RatingHistoryEntry",
    "RatingParameters",
    "apply_rating_change",
    "calculate_expected_score",
    "initial_rating",
    "parse_rating_parameters",
    "seed_player_rating",
    "tier_for_rating",
    "win_rate",
]
