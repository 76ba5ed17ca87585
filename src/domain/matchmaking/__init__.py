"""Matchmaking queue modules."""

from domain.matchmaking.config import QueueParameters, parse_queue_parameters
from domain.matchmaking.matcher import (
    MatchProposal,
    QueueCandidate,
    balance_teams,
    propose_match,
    role_counts,
    select_role_pairs,
)

__all__ = [
    "MatchProposal",
    "QueueCandidate",
    "QueueParameters",
    "balance_teams",
    "parse_queue_parameters",
    "propose_match",
    "role_counts",
    "select_role_pairs",
]
