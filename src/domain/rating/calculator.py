"""Performance-normalized, opponent-aware rating engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from math import floor

from domain.common import MatchContext, PlayerStats
from domain.errors import ValidationError


@dataclass(frozen=True)
class PerformanceWeights:
    kda: float = 0.30
    damage: float = 0.25
    farm: float = 0.20
    vision: float = 0.15
    objective: float = 0.10

    def total(self) -> float:
        return self.kda + self.damage + self.farm + self.vision + self.objective


@dataclass(frozen=True)
class RatingParameters:
    base_change: int = 25
    placement_multiplier: float = 2.0
    placement_games: int = 5
    min_rating: int = 100
    max_rating: int = 3000
    unranked_rating: int = 800
    scale_factor: float = 400.0
    opponent_weight: float = 0.4
    min_performance_multiplier: float = 0.5
    max_performance_multiplier: float = 1.5
    min_opponent_multiplier: float = 0.8
    max_opponent_multiplier: float = 1.2
    weights: PerformanceWeights = field(default_factory=PerformanceWeights)


@dataclass(frozen=True)
class PerformanceBreakdown:
    """Per-category scores (0-100) and the derived multiplier for one player."""

    kda_score: float
    damage_score: float
    farm_score: float
    vision_score: float
    objective_score: float
    total_score: float
    multiplier: float

    def as_dict(self) -> dict[str, float | int]:
        return {
            "kda_score": round_half_up(self.kda_score),
            "damage_score": round_half_up(self.damage_score),
            "farm_score": round_half_up(self.farm_score),
            "vision_score": round_half_up(self.vision_score),
            "objective_score": round_half_up(self.objective_score),
            "total_score": round_half_up(self.total_score),
            "multiplier": self.multiplier,
        }


@dataclass(frozen=True)
class RatingChange:
    identity: str
    change: int
    unrounded_change: float
    performance_score: int
    breakdown: PerformanceBreakdown
    opponent_multiplier: float
    expected_score: float
    won: bool
    is_placement: bool


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going toward +infinity."""
    return int(floor(value + 0.5))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def guarded_kda(kills: float, deaths: float, assists: float) -> float:
    """(kills + assists) / deaths, or twice the takedowns for a deathless game."""
    if deaths == 0:
        return (kills + assists) * 2.0
    return (kills + assists) / deaths


def normalize_score(value: float, average: float) -> float:
    """Map a raw value onto 0-100 relative to the match average (average = 50)."""
    if average == 0:
        return 50.0
    return clamp(50.0 * value / average, 0.0, 100.0)


def _average(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


class RatingCalculator:
    """Stateless per-player rating delta computation for one match."""

    def __init__(self, params: RatingParameters | None = None) -> None:
        self.params = params or RatingParameters()

    def performance_multiplier(self, total_score: float) -> float:
        multiplier = clamp(
            0.5 + total_score / 100.0,
            self.params.min_performance_multiplier,
            self.params.max_performance_multiplier,
        )
        return round_half_up(multiplier * 100) / 100

    def score(
        self,
        player: PlayerStats,
        all_stats: tuple[PlayerStats, ...] | list[PlayerStats],
    ) -> tuple[int, PerformanceBreakdown]:
        """Score one player's performance against the match-wide averages."""
        if not all_stats:
            raise ValidationError("Cannot score a player without match statistics")

        avg_kills = _average([stats.kills for stats in all_stats])
        avg_deaths = _average([stats.deaths for stats in all_stats])
        avg_assists = _average([stats.assists for stats in all_stats])

        kda_score = normalize_score(
            guarded_kda(player.kills, player.deaths, player.assists),
            guarded_kda(avg_kills, avg_deaths, avg_assists),
        )
        damage_score = normalize_score(player.damage, _average([stats.damage for stats in all_stats]))
        farm_score = normalize_score(player.farm, _average([stats.farm for stats in all_stats]))
        vision_score = normalize_score(
            player.vision_score,
            _average([stats.vision_score for stats in all_stats]),
        )
        objective_score = normalize_score(
            player.objective_score,
            _average([stats.objective_score for stats in all_stats]),
        )

        weights = self.params.weights
        total_score = (
            kda_score * weights.kda
            + damage_score * weights.damage
            + farm_score * weights.farm
            + vision_score * weights.vision
            + objective_score * weights.objective
        )

        breakdown = PerformanceBreakdown(
            kda_score=kda_score,
            damage_score=damage_score,
            farm_score=farm_score,
            vision_score=vision_score,
            objective_score=objective_score,
            total_score=total_score,
            multiplier=self.performance_multiplier(total_score),
        )
        return round_half_up(total_score), breakdown

    def opponent_multiplier(
        self,
        player_rating: float,
        opponent_avg_rating: float,
        *,
        won: bool,
    ) -> tuple[float, float]:
        """Return (multiplier, expected score); 1.0 against an equally rated side."""
        expected = calculate_expected_score(player_rating, opponent_avg_rating, self.params.scale_factor)
        if won:
            # expected < 0.5 means the player beat a stronger side.
            multiplier = 1.0 + (0.5 - expected) * self.params.opponent_weight
        else:
            # expected > 0.5 means the player lost to a weaker side.
            multiplier = 1.0 + (expected - 0.5) * self.params.opponent_weight
        multiplier = clamp(
            multiplier,
            self.params.min_opponent_multiplier,
            self.params.max_opponent_multiplier,
        )
        return multiplier, expected

    def delta(
        self,
        player: PlayerStats,
        context: MatchContext,
        *,
        is_placement: bool,
    ) -> RatingChange:
        """Compute the signed, rounded rating change for one player."""
        won = player.team is context.winner
        performance_score, breakdown = self.score(player, context.all_stats)

        opponent_multiplier, expected = self.opponent_multiplier(
            player.rating_at_time,
            context.opponent_avg_rating(player.team),
            won=won,
        )

        change = float(self.params.base_change) * (1.0 if won else -1.0)
        change *= breakdown.multiplier
        change *= opponent_multiplier
        if is_placement:
            change *= self.params.placement_multiplier

        return RatingChange(
            identity=player.identity,
            change=round_half_up(change),
            unrounded_change=change,
            performance_score=performance_score,
            breakdown=breakdown,
            opponent_multiplier=opponent_multiplier,
            expected_score=expected,
            won=won,
            is_placement=is_placement,
        )

    def apply(self, current_rating: int, change: int) -> int:
        """Apply a change and keep the result inside the rating bounds."""
        return int(clamp(current_rating + change, self.params.min_rating, self.params.max_rating))


__all__ = [
    "PerformanceBreakdown",
    "PerformanceWeights",
    "RatingCalculator",
    "RatingChange",
    "RatingParameters",
    "calculate_expected_score",
    "clamp",
    "guarded_kda",
    "normalize_score",
    "round_half_up",
]
