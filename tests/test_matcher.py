"""Tests for role-pair selection and greedy team balancing."""

from __future__ import annotations

from datetime import datetime, timedelta

from domain.matchmaking.matcher import (
    QueueCandidate,
    balance_teams,
    propose_match,
    role_counts,
    select_role_pairs,
)
from domain.protocol import ROLE_ORDER, Role

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def _candidate(
    identity: str,
    role: Role,
    rating: int = 1000,
    *,
    offset: int = 0,
    region: str = "euw",
) -> QueueCandidate:
    return QueueCandidate(
        identity=identity,
        display_name=identity.title(),
        role=role,
        rating=rating,
        region=region,
        joined_at=BASE_TIME + timedelta(seconds=offset),
    )


def _full_pool(ratings: dict[Role, tuple[int, int]] | None = None) -> list[QueueCandidate]:
    pool: list[QueueCandidate] = []
    for index, role in enumerate(ROLE_ORDER):
        first, second = (ratings or {}).get(role, (1000, 1000))
        pool.append(_candidate(f"{role.value}-a", role, first, offset=index * 2))
        pool.append(_candidate(f"{role.value}-b", role, second, offset=index * 2 + 1))
    return pool


def test_role_counts_cover_every_role() -> None:
    counts = role_counts([_candidate("a", Role.MID), _candidate("b", Role.MID), _candidate("c", Role.TOP)])
    assert counts == {Role.TOP: 1, Role.JUNGLE: 0, Role.MID: 2, Role.ADC: 0, Role.SUPPORT: 0}


def test_no_match_when_any_role_is_short() -> None:
    pool = _full_pool()
    pool = [candidate for candidate in pool if candidate.identity != "support-b"]
    assert select_role_pairs(pool) is None
    assert propose_match(pool) is None


def test_two_lowest_ratings_per_role_are_selected_with_join_time_tie_break() -> None:
    pool = _full_pool()
    pool.append(_candidate("top-low", Role.TOP, 700, offset=100))
    pool.append(_candidate("top-late-tie", Role.TOP, 1000, offset=200))

    pairs = select_role_pairs(pool)

    assert pairs is not None
    assert {candidate.identity for candidate in pairs[Role.TOP]} == {"top-low", "top-a"}


def test_balance_gives_higher_rated_player_to_lower_running_sum() -> None:
    pool = _full_pool(
        {
            Role.TOP: (1200, 1000),
            Role.JUNGLE: (1100, 900),
            Role.MID: (1000, 1000),
            Role.ADC: (1500, 1300),
            Role.SUPPORT: (800, 850),
        }
    )

    proposal = balance_teams(select_role_pairs(pool))

    assert [candidate.identity for candidate in proposal.blue] == [
        "top-a",
        "jungle-b",
        "mid-a",
        "adc-a",
        "support-a",
    ]
    assert [candidate.identity for candidate in proposal.red] == [
        "top-b",
        "jungle-a",
        "mid-b",
        "adc-b",
        "support-b",
    ]
    assert [candidate.role for candidate in proposal.blue] == list(ROLE_ORDER)
    assert [candidate.role for candidate in proposal.red] == list(ROLE_ORDER)


def test_average_gap_is_bounded_by_largest_role_gap() -> None:
    ratings = {
        Role.TOP: (2000, 400),
        Role.JUNGLE: (1300, 1250),
        Role.MID: (900, 1700),
        Role.ADC: (1000, 1010),
        Role.SUPPORT: (600, 1600),
    }
    proposal = propose_match(_full_pool(ratings))

    assert proposal is not None
    largest_gap = max(abs(first - second) for first, second in ratings.values())
    assert abs(proposal.blue_avg_rating - proposal.red_avg_rating) <= largest_gap
    assert len(set(proposal.identities)) == 10


def test_region_filter_only_matches_same_region() -> None:
    pool = _full_pool()
    pool = [
        candidate if candidate.identity != "mid-b" else _candidate("mid-b", Role.MID, region="na")
        for candidate in pool
    ]

    assert propose_match(pool, region="euw") is None
    assert propose_match(pool) is not None
