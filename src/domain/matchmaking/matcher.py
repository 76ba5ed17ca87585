"""Role-based match selection and greedy team balancing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from domain.protocol import ROLE_ORDER, Role

PLAYERS_PER_ROLE = 2
TEAM_SIZE = len(ROLE_ORDER)


@dataclass(frozen=True)
class QueueCandidate:
    """Snapshot of one waiting queue entry."""

    identity: str
    display_name: str
    role: Role
    rating: int
    region: str
    joined_at: datetime
    photo_url: str | None = None


@dataclass(frozen=True)
class MatchProposal:
    """Ten selected players split into two role-complete rosters."""

    blue: tuple[QueueCandidate, ...]
    red: tuple[QueueCandidate, ...]

    @property
    def blue_avg_rating(self) -> float:
        return sum(candidate.rating for candidate in self.blue) / len(self.blue)

    @property
    def red_avg_rating(self) -> float:
        return sum(candidate.rating for candidate in self.red) / len(self.red)

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(candidate.identity for candidate in self.blue + self.red)


def group_by_role(candidates: Iterable[QueueCandidate]) -> dict[Role, list[QueueCandidate]]:
    grouped: dict[Role, list[QueueCandidate]] = {role: [] for role in ROLE_ORDER}
    for candidate in candidates:
        grouped[candidate.role].append(candidate)
    return grouped


def role_counts(candidates: Iterable[QueueCandidate]) -> dict[Role, int]:
    return {role: len(entries) for role, entries in group_by_role(candidates).items()}


def select_role_pairs(
    candidates: Iterable[QueueCandidate],
) -> dict[Role, tuple[QueueCandidate, QueueCandidate]] | None:
    """Pick the two lowest-rated entries per role, or None when any role is short.

    Ties on rating go to the earlier join.
    """
    grouped = group_by_role(candidates)
    if any(len(grouped[role]) < PLAYERS_PER_ROLE for role in ROLE_ORDER):
        return None

    pairs: dict[Role, tuple[QueueCandidate, QueueCandidate]] = {}
    for role in ROLE_ORDER:
        ordered = sorted(grouped[role], key=lambda entry: (entry.rating, entry.joined_at, entry.identity))
        pairs[role] = (ordered[0], ordered[1])
    return pairs


def balance_teams(pairs: dict[Role, tuple[QueueCandidate, QueueCandidate]]) -> MatchProposal:
    """Split role pairs so the higher-rated player joins the team with the lower running sum.

    Equal running sums favor blue. The worst-case average gap is bounded by the
    largest single per-role rating gap.
    """
    blue: list[QueueCandidate] = []
    red: list[QueueCandidate] = []
    blue_total = 0
    red_total = 0

    for role in ROLE_ORDER:
        first, second = pairs[role]
        if second.rating > first.rating:
            higher, lower = second, first
        else:
            higher, lower = first, second

        if blue_total <= red_total:
            blue.append(higher)
            red.append(lower)
        else:
            blue.append(lower)
            red.append(higher)
        blue_total = sum(candidate.rating for candidate in blue)
        red_total = sum(candidate.rating for candidate in red)

    return MatchProposal(blue=tuple(blue), red=tuple(red))


def propose_match(
    candidates: Iterable[QueueCandidate],
    *,
    region: str | None = None,
) -> MatchProposal | None:
    """Form a match from the waiting pool, optionally restricted to one region."""
    pool = [candidate for candidate in candidates if region is None or candidate.region == region]
    pairs = select_role_pairs(pool)
    if pairs is None:
        return None
    return balance_teams(pairs)


__all__ = [
    "MatchProposal",
    "PLAYERS_PER_ROLE",
    "QueueCandidate",
    "TEAM_SIZE",
    "balance_teams",
    "group_by_role",
    "propose_match",
    "role_counts",
    "select_role_pairs",
]
