"""Match submission and the single atomic rating update per match."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain.common import MatchParticipant, utcnow
from domain.errors import NotFoundError, PermissionDeniedError, PreconditionError, ValidationError
from domain.matches.builder import MatchRecord, MatchRecordBuilder
from domain.protocol import DraftStatus, Team, parse_team
from domain.rating.calculator import RatingCalculator, RatingParameters
from repositories.draft_repository import load_draft
from repositories.match_repository import (
    fetch_match_history,
    find_match_id_for_draft,
    insert_match_record,
    load_match_record,
    save_processed_match,
)
from repositories.rating_repository import save_rating
from services.notifications import ChangeFeed, rating_topic
from services.rating_service import ensure_rating
from services.transactions import DEFAULT_MAX_ATTEMPTS, run_in_transaction

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 50


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_draft_link(session: Session, record: MatchRecord) -> None:
    """A draft-linked record needs a completed draft with the same rosters, once."""
    draft_id = record.draft_session_id
    if draft_id is None:
        return
    state = load_draft(session, draft_id)
    if state is None:
        raise NotFoundError(f"Draft {draft_id} not found")
    if state.status is not DraftStatus.COMPLETED:
        raise PreconditionError(f"Draft {draft_id} is not completed")
    if state.team_of(record.submitted_by) is None:
        raise PermissionDeniedError(f"{record.submitted_by} is not a participant in draft {draft_id}")

    draft_blue = {player.identity for player in state.blue_team}
    draft_red = {player.identity for player in state.red_team}
    if {p.identity for p in record.blue_team} != draft_blue or {p.identity for p in record.red_team} != draft_red:
        raise ValidationError(f"Submitted teams do not match the rosters of draft {draft_id}")
    if find_match_id_for_draft(session, draft_id) is not None:
        raise PreconditionError(f"A result for draft {draft_id} has already been submitted")


class MatchService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        rating_params: RatingParameters | None = None,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.session_factory = session_factory
        self.rating_params = rating_params or RatingParameters()
        self.builder = MatchRecordBuilder(RatingCalculator(self.rating_params))
        self.feed = feed or ChangeFeed()
        self.clock = clock
        self.id_factory = id_factory
        self.max_attempts = max_attempts

    def _process(self, session: Session, record: MatchRecord) -> MatchRecord:
        now = self.clock()
        ratings = {}
        for identity in record.identities:
            state, _ = ensure_rating(
                session,
                identity,
                unranked_rating=self.rating_params.unranked_rating,
                now=now,
            )
            ratings[identity] = state

        outcome = self.builder.process(record, ratings, processed_at=now)
        save_processed_match(session, outcome.record)
        for state in outcome.ratings.values():
            save_rating(session, state, now=now)
        return outcome.record

    def _announce(self, record: MatchRecord) -> None:
        logger.info(
            "Match processed match_id=%s winner=%s blue_avg=%.1f red_avg=%.1f",
            record.match_id,
            record.winner.value,
            record.blue_avg_rating or 0.0,
            record.red_avg_rating or 0.0,
        )
        for result in record.results:
            self.feed.publish(
                rating_topic(result.identity),
                {
                    "identity": result.identity,
                    "match_id": record.match_id,
                    "rating": result.rating_after,
                    "change": result.rating_change,
                },
            )

    def submit_result(
        self,
        submitted_by: str,
        winner: str | Team,
        blue_team: Sequence[MatchParticipant],
        red_team: Sequence[MatchParticipant],
        *,
        draft_id: str | None = None,
        process: bool = True,
    ) -> MatchRecord:
        """Record a finished match and, by default, apply every rating change with it.

        The record insert and all rating writes commit together or not at all.
        """
        try:
            parsed_winner = parse_team(winner)
        except ValueError as exc:
            raise ValidationError(f"Invalid winner: {winner}") from exc

        record = self.builder.build(
            match_id=self.id_factory(),
            winner=parsed_winner,
            blue_team=blue_team,
            red_team=red_team,
            created_at=self.clock(),
            submitted_by=submitted_by,
            draft_session_id=draft_id or None,
        )

        def work(session: Session) -> MatchRecord:
            _check_draft_link(session, record)
            insert_match_record(session, record)
            if not process:
                return record
            return self._process(session, record)

        stored = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            retry_on=(StaleDataError, IntegrityError),
            label="match submission",
        )
        logger.info("Match recorded match_id=%s submitted_by=%s", stored.match_id, submitted_by)
        if stored.processed:
            self._announce(stored)
        return stored

    def process_match(self, match_id: str) -> MatchRecord:
        """Apply ratings for a record stored without processing."""

        def work(session: Session) -> MatchRecord:
            record = load_match_record(session, match_id)
            if record is None:
                raise NotFoundError(f"Match {match_id} not found")
            if record.processed:
                raise PreconditionError(f"Match {match_id} has already been processed")
            return self._process(session, record)

        stored = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            retry_on=(StaleDataError, IntegrityError),
            label=f"match {match_id} processing",
        )
        self._announce(stored)
        return stored

    def get_match(self, match_id: str) -> MatchRecord:
        with self.session_factory() as session:
            record = load_match_record(session, match_id)
        if record is None:
            raise NotFoundError(f"Match {match_id} not found")
        return record

    def history(self, identity: str, *, limit: int | None = None) -> list[MatchRecord]:
        """The player's most recent records, newest first (limit capped at 50)."""
        effective = min(limit or DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT)
        with self.session_factory() as session:
            return fetch_match_history(session, identity, limit=max(1, effective))


__all__ = ["DEFAULT_HISTORY_LIMIT", "MAX_HISTORY_LIMIT", "MatchService"]
