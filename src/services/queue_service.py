"""Role queue use cases: join (with match formation), leave, status and expiry."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain.common import utcnow
from domain.draft.config import DraftParameters
from domain.draft.state import new_draft_state
from domain.errors import NotFoundError, PreconditionError, ValidationError
from domain.matchmaking.config import QueueParameters
from domain.matchmaking.matcher import MatchProposal, QueueCandidate, propose_match, role_counts
from domain.protocol import Role, parse_role
from domain.rating.calculator import RatingParameters
from repositories.draft_repository import find_active_draft_id, insert_draft
from repositories.profile_repository import get_profile
from repositories.queue_repository import (
    delete_queue_entries,
    delete_queue_entries_before,
    delete_queue_entry,
    fetch_queue_entries,
    get_queue_entry,
    insert_queue_entry,
)
from services.notifications import QUEUE_TOPIC, ChangeFeed, draft_topic
from services.rating_service import current_rating
from services.transactions import DEFAULT_MAX_ATTEMPTS, run_in_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    in_queue: bool
    match_found: bool
    draft_id: str | None = None
    proposal: MatchProposal | None = None


@dataclass(frozen=True)
class QueueStatus:
    in_queue: bool
    entry: QueueCandidate | None
    total_waiting: int
    per_role_counts: dict[Role, int]


def _new_id() -> str:
    return str(uuid.uuid4())


class QueueService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        queue_params: QueueParameters | None = None,
        draft_params: DraftParameters | None = None,
        rating_params: RatingParameters | None = None,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.session_factory = session_factory
        self.queue_params = queue_params or QueueParameters()
        self.draft_params = draft_params or DraftParameters()
        self.rating_params = rating_params or RatingParameters()
        self.feed = feed or ChangeFeed()
        self.clock = clock
        self.id_factory = id_factory
        self.max_attempts = max_attempts

    def join(self, identity: str, role: str | Role, region: str) -> JoinResult:
        """Queue the player, then try to form a match from the whole pool.

        The pool is read and matched before anything is written. Match formation
        inserts the draft session and deletes the selected entries in the same
        transaction as the join; a joiner who is matched is never stored. An
        entry that vanished since the read raises StaleDataError and the join
        is retried from a fresh read.
        """
        if not role or not region or not str(region).strip():
            raise ValidationError("Role and region are required")
        try:
            parsed_role = parse_role(role)
        except ValueError as exc:
            raise ValidationError(f"Invalid role: {role}") from exc
        region = str(region).strip().lower()

        def work(session: Session) -> JoinResult:
            if get_queue_entry(session, identity) is not None:
                raise PreconditionError("Already in queue")
            if find_active_draft_id(session, identity) is not None:
                raise PreconditionError("Already in an active draft")
            profile = get_profile(session, identity)
            if profile is None:
                raise NotFoundError(f"No profile found for {identity}")

            now = self.clock()
            candidate = QueueCandidate(
                identity=identity,
                display_name=profile.display_name,
                role=parsed_role,
                rating=current_rating(
                    session,
                    identity,
                    unranked_rating=self.rating_params.unranked_rating,
                ),
                region=region,
                joined_at=now,
                photo_url=profile.photo_url,
            )

            proposal = propose_match(
                [*fetch_queue_entries(session), candidate],
                region=region if self.queue_params.match_by_region else None,
            )
            if proposal is None:
                insert_queue_entry(session, candidate)
                return JoinResult(in_queue=True, match_found=False)

            state = new_draft_state(
                self.id_factory(),
                proposal,
                created_at=now,
                phase_time_limit=self.draft_params.phase_time_limit_seconds,
            )
            if identity not in proposal.identities:
                insert_queue_entry(session, candidate)
            insert_draft(session, state)
            delete_queue_entries(session, [other for other in proposal.identities if other != identity])
            return JoinResult(in_queue=True, match_found=True, draft_id=state.session_id, proposal=proposal)

        result = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            retry_on=(StaleDataError, IntegrityError),
            label="queue join",
        )

        logger.info("Queue join identity=%s role=%s region=%s", identity, parsed_role.value, region)
        self.feed.publish(QUEUE_TOPIC, {"event": "joined", "identity": identity, "role": parsed_role.value})
        if result.match_found and result.proposal is not None:
            logger.info(
                "Match formed draft_id=%s blue_avg=%.1f red_avg=%.1f",
                result.draft_id,
                result.proposal.blue_avg_rating,
                result.proposal.red_avg_rating,
            )
            self.feed.publish(
                QUEUE_TOPIC,
                {
                    "event": "match_found",
                    "draft_id": result.draft_id,
                    "identities": list(result.proposal.identities),
                },
            )
            self.feed.publish(draft_topic(result.draft_id), {"event": "created", "status": "waiting"})
        return result

    def leave(self, identity: str) -> bool:
        """Remove the caller's entry; returns False when there was none."""

        def work(session: Session) -> bool:
            return delete_queue_entry(session, identity)

        removed = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label="queue leave",
        )
        if removed:
            logger.info("Queue leave identity=%s", identity)
            self.feed.publish(QUEUE_TOPIC, {"event": "left", "identity": identity})
        return removed

    def status(self, identity: str | None = None) -> QueueStatus:
        with self.session_factory() as session:
            entries = fetch_queue_entries(session)
        entry = next((candidate for candidate in entries if candidate.identity == identity), None)
        return QueueStatus(
            in_queue=entry is not None,
            entry=entry,
            total_waiting=len(entries),
            per_role_counts=role_counts(entries),
        )

    def expire_stale_entries(self) -> list[str]:
        """Drop entries that have waited longer than `max_wait_seconds`."""
        if self.queue_params.max_wait_seconds <= 0:
            return []
        cutoff = self.clock() - timedelta(seconds=self.queue_params.max_wait_seconds)

        def work(session: Session) -> list[str]:
            return delete_queue_entries_before(session, cutoff)

        expired = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label="queue expiry",
        )
        for identity in expired:
            logger.info("Queue entry expired identity=%s", identity)
            self.feed.publish(QUEUE_TOPIC, {"event": "expired", "identity": identity})
        return expired


__all__ = ["JoinResult", "QueueService", "QueueStatus"]
