"""Rating ledger use cases: seeding, lookup and the leaderboard."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import utcnow
from domain.errors import NotFoundError
from domain.rating.calculator import RatingParameters
from domain.rating.player import PlayerRatingState, RatingHistoryEntry, seed_player_rating
from domain.rating.tiers import initial_rating
from repositories.profile_repository import get_profile
from repositories.rating_repository import (
    fetch_leaderboard,
    fetch_rating_history,
    insert_rating,
    load_rating,
)
from services.notifications import ChangeFeed, rating_topic
from services.transactions import DEFAULT_MAX_ATTEMPTS, run_in_transaction

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 50
MAX_LEADERBOARD_LIMIT = 100
DEFAULT_HISTORY_LIMIT = 20


def seed_rating_for(session: Session, identity: str, *, unranked_rating: int) -> PlayerRatingState:
    """Initial ledger derived from the profile's best known rank tier."""
    profile = get_profile(session, identity)
    rank_tiers = profile.rank_tiers if profile is not None else ()
    return seed_player_rating(identity, initial_rating(rank_tiers, unranked_rating=unranked_rating))


def current_rating(session: Session, identity: str, *, unranked_rating: int) -> int:
    """Stored rating, or the rating the player would be seeded with."""
    state = load_rating(session, identity)
    if state is None:
        state = seed_rating_for(session, identity, unranked_rating=unranked_rating)
    return state.rating


def ensure_rating(
    session: Session,
    identity: str,
    *,
    unranked_rating: int,
    now: datetime,
) -> tuple[PlayerRatingState, bool]:
    """Load the ledger, creating it when absent. Returns (state, created)."""
    state = load_rating(session, identity)
    if state is not None:
        return state, False
    state = seed_rating_for(session, identity, unranked_rating=unranked_rating)
    insert_rating(session, state, now=now)
    return state, True


@dataclass(frozen=True)
class InitializeResult:
    state: PlayerRatingState
    already_exists: bool


@dataclass(frozen=True)
class LeaderboardRow:
    position: int
    identity: str
    display_name: str
    photo_url: str | None
    state: PlayerRatingState


class RatingService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        params: RatingParameters | None = None,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.session_factory = session_factory
        self.params = params or RatingParameters()
        self.feed = feed or ChangeFeed()
        self.clock = clock
        self.max_attempts = max_attempts

    def initialize(self, identity: str) -> InitializeResult:
        """Seed a ledger from the caller's profile unless one already exists."""

        def work(session: Session) -> InitializeResult:
            if get_profile(session, identity) is None:
                raise NotFoundError(f"No profile found for {identity}")
            state, created = ensure_rating(
                session,
                identity,
                unranked_rating=self.params.unranked_rating,
                now=self.clock(),
            )
            return InitializeResult(state=state, already_exists=not created)

        result = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            retry_on=(IntegrityError,),
            label="rating initialization",
        )
        if not result.already_exists:
            logger.info("Seeded rating identity=%s rating=%d", identity, result.state.rating)
            self.feed.publish(rating_topic(identity), {"identity": identity, "rating": result.state.rating})
        return result

    def get_rating(self, identity: str) -> PlayerRatingState | None:
        with self.session_factory() as session:
            return load_rating(session, identity)

    def history(self, identity: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> tuple[RatingHistoryEntry, ...]:
        with self.session_factory() as session:
            return fetch_rating_history(session, identity, limit=max(1, limit))

    def leaderboard(self, limit: int | None = None) -> list[LeaderboardRow]:
        """Placed players by rating, highest first; limit defaults to 50, capped at 100."""
        effective = min(limit or DEFAULT_LEADERBOARD_LIMIT, MAX_LEADERBOARD_LIMIT)
        with self.session_factory() as session:
            states = fetch_leaderboard(session, limit=max(1, effective))
            rows: list[LeaderboardRow] = []
            for position, state in enumerate(states, start=1):
                profile = get_profile(session, state.identity)
                rows.append(
                    LeaderboardRow(
                        position=position,
                        identity=state.identity,
                        display_name=profile.display_name if profile is not None else "Unknown",
                        photo_url=profile.photo_url if profile is not None else None,
                        state=state,
                    )
                )
            return rows


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_LEADERBOARD_LIMIT",
    "InitializeResult",
    "LeaderboardRow",
    "MAX_LEADERBOARD_LIMIT",
    "RatingService",
    "current_rating",
    "ensure_rating",
    "seed_rating_for",
]
