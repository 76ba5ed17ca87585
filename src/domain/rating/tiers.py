"""Display tiers and initial rating seeding from external rank data."""

from __future__ import annotations

from collections.abc import Iterable

from domain.rating.calculator import round_half_up

RANK_ORDER: tuple[str, ...] = (
    "IRON",
    "BRONZE",
    "SILVER",
    "GOLD",
    "PLATINUM",
    "EMERALD",
    "DIAMOND",
    "MASTER",
    "GRANDMASTER",
    "CHALLENGER",
)

RANK_TO_RATING: dict[str, int] = {
    "IRON": 400,
    "BRONZE": 600,
    "SILVER": 800,
    "GOLD": 1000,
    "PLATINUM": 1200,
    "EMERALD": 1400,
    "DIAMOND": 1600,
    "MASTER": 1800,
    "GRANDMASTER": 2000,
    "CHALLENGER": 2200,
}

# (lowest rating of the band, tier), ascending.
TIER_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (0, "IRON"),
    (500, "BRONZE"),
    (700, "SILVER"),
    (900, "GOLD"),
    (1100, "PLATINUM"),
    (1300, "EMERALD"),
    (1500, "DIAMOND"),
    (1700, "MASTER"),
    (1900, "GRANDMASTER"),
    (2100, "CHALLENGER"),
)


def tier_for_rating(rating: int) -> str:
    """Return the display tier band containing a rating."""
    tier = TIER_THRESHOLDS[0][1]
    for lower_bound, name in TIER_THRESHOLDS:
        if rating >= lower_bound:
            tier = name
        else:
            break
    return tier


def initial_rating(rank_tiers: Iterable[str | None], *, unranked_rating: int = 800) -> int:
    """Seed a rating from the highest externally supplied rank tier."""
    highest_index = -1
    for tier in rank_tiers:
        if not tier:
            continue
        normalized = str(tier).strip().upper()
        if normalized in RANK_ORDER:
            highest_index = max(highest_index, RANK_ORDER.index(normalized))

    if highest_index < 0:
        return unranked_rating
    return RANK_TO_RATING[RANK_ORDER[highest_index]]


def win_rate(wins: int, games_played: int) -> int:
    """Whole-number win percentage; 0 before the first game."""
    if games_played <= 0:
        return 0
    return round_half_up(wins * 100 / games_played)


__all__ = [
    "RANK_ORDER",
    "RANK_TO_RATING",
    "TIER_THRESHOLDS",
    "initial_rating",
    "tier_for_rating",
    "win_rate",
]
