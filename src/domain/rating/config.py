"""Parse the [rating] settings section."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from domain.config_base import require_non_negative, require_positive, section
from domain.rating.calculator import PerformanceWeights, RatingParameters


def parse_rating_parameters(raw: dict[str, Any], file_path: Path) -> RatingParameters:
    rating_raw = section(raw, "rating", file_path)
    weights_raw = rating_raw.get("weights", {})
    if not isinstance(weights_raw, dict):
        raise ValueError(f"{file_path}: [rating.weights] must be a table")

    defaults = RatingParameters()
    default_weights = PerformanceWeights()
    weights = PerformanceWeights(
        kda=float(weights_raw.get("kda", default_weights.kda)),
        damage=float(weights_raw.get("damage", default_weights.damage)),
        farm=float(weights_raw.get("farm", default_weights.farm)),
        vision=float(weights_raw.get("vision", default_weights.vision)),
        objective=float(weights_raw.get("objective", default_weights.objective)),
    )
    parameters = RatingParameters(
        base_change=int(rating_raw.get("base_change", defaults.base_change)),
        placement_multiplier=float(rating_raw.get("placement_multiplier", defaults.placement_multiplier)),
        placement_games=int(rating_raw.get("placement_games", defaults.placement_games)),
        min_rating=int(rating_raw.get("min_rating", defaults.min_rating)),
        max_rating=int(rating_raw.get("max_rating", defaults.max_rating)),
        unranked_rating=int(rating_raw.get("unranked_rating", defaults.unranked_rating)),
        scale_factor=float(rating_raw.get("scale_factor", defaults.scale_factor)),
        opponent_weight=float(rating_raw.get("opponent_weight", defaults.opponent_weight)),
        min_performance_multiplier=float(
            rating_raw.get("min_performance_multiplier", defaults.min_performance_multiplier)
        ),
        max_performance_multiplier=float(
            rating_raw.get("max_performance_multiplier", defaults.max_performance_multiplier)
        ),
        min_opponent_multiplier=float(
            rating_raw.get("min_opponent_multiplier", defaults.min_opponent_multiplier)
        ),
        max_opponent_multiplier=float(
            rating_raw.get("max_opponent_multiplier", defaults.max_opponent_multiplier)
        ),
        weights=weights,
    )
    _validate_parameters(file_path=file_path, parameters=parameters)
    return parameters


def _validate_parameters(*, file_path: Path, parameters: RatingParameters) -> None:
    require_positive(parameters.base_change, file_path=file_path, key="[rating].base_change")
    require_positive(
        parameters.placement_multiplier,
        file_path=file_path,
        key="[rating].placement_multiplier",
    )
    require_non_negative(parameters.placement_games, file_path=file_path, key="[rating].placement_games")
    require_non_negative(parameters.min_rating, file_path=file_path, key="[rating].min_rating")
    if parameters.max_rating <= parameters.min_rating:
        raise ValueError(f"{file_path}: [rating].max_rating must be > min_rating")
    if not parameters.min_rating <= parameters.unranked_rating <= parameters.max_rating:
        raise ValueError(f"{file_path}: [rating].unranked_rating must be between min_rating and max_rating")
    require_positive(parameters.scale_factor, file_path=file_path, key="[rating].scale_factor")
    require_non_negative(parameters.opponent_weight, file_path=file_path, key="[rating].opponent_weight")
    if parameters.min_performance_multiplier > parameters.max_performance_multiplier:
        raise ValueError(
            f"{file_path}: [rating].min_performance_multiplier must be <= max_performance_multiplier"
        )
    if parameters.min_opponent_multiplier > parameters.max_opponent_multiplier:
        raise ValueError(f"{file_path}: [rating].min_opponent_multiplier must be <= max_opponent_multiplier")

    weights = parameters.weights
    for key, value in (
        ("kda", weights.kda),
        ("damage", weights.damage),
        ("farm", weights.farm),
        ("vision", weights.vision),
        ("objective", weights.objective),
    ):
        require_non_negative(value, file_path=file_path, key=f"[rating.weights].{key}")
    if abs(weights.total() - 1.0) > 1e-9:
        raise ValueError(f"{file_path}: [rating.weights] must sum to 1.0 (got {weights.total():.4f})")


__all__ = ["parse_rating_parameters"]
