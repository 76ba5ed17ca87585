"""Tests for tier bands, rank seeding and the player ledger apply step."""

from __future__ import annotations

from datetime import datetime

import pytest

from domain.common import MatchContext, PlayerStats
from domain.protocol import Team
from domain.rating.calculator import RatingCalculator, RatingChange, RatingParameters
from domain.rating.player import apply_rating_change, seed_player_rating
from domain.rating.tiers import initial_rating, tier_for_rating, win_rate


@pytest.mark.parametrize(
    ("rating", "tier"),
    [
        (100, "IRON"),
        (499, "IRON"),
        (500, "BRONZE"),
        (899, "SILVER"),
        (1025, "GOLD"),
        (1500, "DIAMOND"),
        (2100, "CHALLENGER"),
        (3000, "CHALLENGER"),
    ],
)
def test_tier_for_rating_uses_band_lower_bounds(rating: int, tier: str) -> None:
    assert tier_for_rating(rating) == tier


def test_initial_rating_uses_highest_known_rank() -> None:
    assert initial_rating(["silver", "PLATINUM", "gold"]) == 1200
    assert initial_rating(["Challenger"]) == 2200


def test_initial_rating_falls_back_to_unranked() -> None:
    assert initial_rating([]) == 800
    assert initial_rating(["", None, "WOOD"]) == 800
    assert initial_rating([], unranked_rating=900) == 900


def test_win_rate_is_rounded_percent() -> None:
    assert win_rate(0, 0) == 0
    assert win_rate(2, 3) == 67
    assert win_rate(1, 8) == 13


def _one_player_change(calculator: RatingCalculator, *, won: bool, is_placement: bool) -> RatingChange:
    winner_stats = PlayerStats("p1", Team.BLUE, 5, 5, 5, 100, 100, 10, 1, 1000)
    loser_stats = PlayerStats("p2", Team.RED, 5, 5, 5, 100, 100, 10, 1, 1000)
    context = MatchContext(
        winner=Team.BLUE if won else Team.RED,
        blue_avg_rating=1000,
        red_avg_rating=1000,
        all_stats=(winner_stats, loser_stats),
    )
    return calculator.delta(winner_stats, context, is_placement=is_placement)


def test_apply_step_updates_counters_peak_and_history() -> None:
    calculator = RatingCalculator()
    state = seed_player_rating("p1", 1000)
    recorded_at = datetime(2026, 1, 1, 12, 0, 0)

    after_win = apply_rating_change(
        state,
        _one_player_change(calculator, won=True, is_placement=True),
        calculator=calculator,
        match_id="m1",
        recorded_at=recorded_at,
    )
    after_loss = apply_rating_change(
        after_win,
        _one_player_change(calculator, won=False, is_placement=True),
        calculator=calculator,
        match_id="m2",
        recorded_at=recorded_at,
    )

    assert after_win.rating == 1050
    assert after_win.peak_rating == 1050
    assert after_loss.rating == 1000
    assert after_loss.peak_rating == 1050
    assert (after_loss.games_played, after_loss.wins, after_loss.losses) == (2, 1, 1)
    assert after_loss.placement_games_played == 2
    assert [entry.match_id for entry in after_loss.history] == ["m1", "m2"]
    assert after_loss.history[1].rating_before == 1050


def test_placement_flag_sets_at_threshold_and_never_reverts() -> None:
    calculator = RatingCalculator(RatingParameters(placement_games=2))
    state = seed_player_rating("p1", 1000)
    recorded_at = datetime(2026, 1, 1, 12, 0, 0)

    for index in range(4):
        state = apply_rating_change(
            state,
            _one_player_change(calculator, won=index % 2 == 0, is_placement=state.in_placement),
            calculator=calculator,
            match_id=f"m{index}",
            recorded_at=recorded_at,
        )
        if index >= 1:
            assert state.placed is True

    assert state.placement_games_played == 2
    assert state.games_played == 4


def test_apply_step_rejects_foreign_change() -> None:
    calculator = RatingCalculator()
    with pytest.raises(ValueError, match="applied to identity=other"):
        apply_rating_change(
            seed_player_rating("other", 1000),
            _one_player_change(calculator, won=True, is_placement=False),
            calculator=calculator,
            match_id="m1",
            recorded_at=datetime(2026, 1, 1),
        )
