"""Draft session use cases run as optimistic transactions on the session row."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from domain.common import utcnow
from domain.draft.config import DraftParameters
from domain.draft.lobby import DraftResult, draft_result, generate_lobby_credentials
from domain.draft.machine import (
    CANCELLED_REASON,
    READY_TIMEOUT_REASON,
    TIMEOUT_REASON,
    ActionOutcome,
    ReadyOutcome,
    cancel,
    mark_ready,
    phase_expired,
    ready_expired,
    submit_action,
    time_out,
)
from domain.draft.state import DraftState, LobbyCredentials
from domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from repositories.draft_repository import (
    fetch_active_draft_ids,
    find_active_draft_id,
    load_draft,
    save_draft,
)
from services.catalog import SelectionCatalog
from services.notifications import ChangeFeed, draft_topic
from services.transactions import DEFAULT_MAX_ATTEMPTS, run_in_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpiredDraft:
    session_id: str
    reason: str


def _load(session: Session, session_id: str) -> DraftState:
    if not session_id:
        raise ValidationError("Draft ID is required")
    state = load_draft(session, session_id)
    if state is None:
        raise NotFoundError(f"Draft {session_id} not found")
    return state


def _require_participant(state: DraftState, identity: str) -> None:
    if state.team_of(identity) is None:
        raise PermissionDeniedError(f"{identity} is not a participant in draft {state.session_id}")


class DraftService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        draft_params: DraftParameters | None = None,
        catalog: SelectionCatalog | None = None,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        lobby_factory: Callable[[str], LobbyCredentials] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.draft_params = draft_params or DraftParameters()
        self.catalog = catalog
        self.feed = feed or ChangeFeed()
        self.clock = clock
        self.max_attempts = max_attempts
        self.lobby_factory = lobby_factory or self._default_lobby

    def _default_lobby(self, session_id: str) -> LobbyCredentials:
        return generate_lobby_credentials(session_id, prefix=self.draft_params.lobby_name_prefix)

    def _publish(self, state: DraftState, event: str, **extra: object) -> None:
        payload: dict[str, object] = {
            "event": event,
            "status": state.status.value,
            "phase_index": state.phase_index,
        }
        payload.update(extra)
        self.feed.publish(draft_topic(state.session_id), payload)

    def get_draft(self, session_id: str) -> DraftState:
        with self.session_factory() as session:
            return _load(session, session_id)

    def get_active_draft(self, identity: str) -> DraftState | None:
        with self.session_factory() as session:
            session_id = find_active_draft_id(session, identity)
            if session_id is None:
                return None
            return load_draft(session, session_id)

    def ready_up(self, session_id: str, identity: str) -> ReadyOutcome:
        def work(session: Session) -> ReadyOutcome:
            now = self.clock()
            outcome = mark_ready(_load(session, session_id), identity, now=now)
            if outcome.changed:
                save_draft(session, outcome.state, now=now)
            return outcome

        outcome = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label=f"draft {session_id} ready",
        )
        if outcome.changed:
            self._publish(outcome.state, "ready", identity=identity)
            if outcome.all_ready:
                logger.info("Draft started draft_id=%s", session_id)
                self._publish(outcome.state, "started")
        return outcome

    def submit_action(self, session_id: str, identity: str, selection_id: str) -> ActionOutcome:
        """Resolve the active phase for the caller's team.

        The phase seen on the first read is pinned, so a retried attempt that
        finds it already resolved fails instead of resolving the next phase.
        """
        selection_id = (selection_id or "").strip()
        if not selection_id:
            raise ValidationError("selection_id is required")
        if self.catalog is not None:
            known = self.catalog.known_ids()
            if known is not None and selection_id not in known:
                raise ValidationError(f"Unknown selection: {selection_id}")

        pinned_phase: list[int] = []

        def work(session: Session) -> ActionOutcome:
            state = _load(session, session_id)
            if not pinned_phase:
                pinned_phase.append(state.phase_index)
            now = self.clock()
            outcome = submit_action(
                state,
                identity,
                selection_id,
                now=now,
                lobby_factory=self.lobby_factory,
                expected_phase=pinned_phase[0],
                grace_seconds=self.draft_params.submission_grace_seconds,
            )
            save_draft(session, outcome.state, now=now)
            return outcome

        outcome = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label=f"draft {session_id} action",
        )
        logger.info(
            "Draft action draft_id=%s phase=%d type=%s team=%s selection=%s",
            session_id,
            outcome.resolved_phase,
            outcome.action.action_type.value,
            outcome.action.team.value,
            selection_id,
        )
        self._publish(
            outcome.state,
            "action",
            resolved_phase=outcome.resolved_phase,
            selection_id=selection_id,
        )
        if outcome.completed:
            logger.info("Draft completed draft_id=%s", session_id)
            self._publish(outcome.state, "completed")
        return outcome

    def timeout(self, session_id: str, identity: str) -> DraftState:
        """Cancel a session whose phase clock has run out."""

        def work(session: Session) -> DraftState:
            state = _load(session, session_id)
            _require_participant(state, identity)
            now = self.clock()
            cancelled = time_out(
                state,
                now=now,
                grace_seconds=self.draft_params.submission_grace_seconds,
            )
            save_draft(session, cancelled, now=now)
            return cancelled

        state = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label=f"draft {session_id} timeout",
        )
        logger.info("Draft cancelled draft_id=%s reason=%s", session_id, TIMEOUT_REASON)
        self._publish(state, "cancelled", reason=TIMEOUT_REASON)
        return state

    def cancel(self, session_id: str, identity: str) -> DraftState:
        def work(session: Session) -> DraftState:
            state = _load(session, session_id)
            _require_participant(state, identity)
            now = self.clock()
            cancelled = cancel(state, reason=CANCELLED_REASON, now=now)
            save_draft(session, cancelled, now=now)
            return cancelled

        state = run_in_transaction(
            self.session_factory,
            work,
            max_attempts=self.max_attempts,
            label=f"draft {session_id} cancel",
        )
        logger.info("Draft cancelled draft_id=%s reason=%s by=%s", session_id, CANCELLED_REASON, identity)
        self._publish(state, "cancelled", reason=CANCELLED_REASON)
        return state

    def lobby(self, session_id: str, identity: str) -> DraftResult:
        state = self.get_draft(session_id)
        _require_participant(state, identity)
        return draft_result(state)

    def expire_stalled(self) -> list[ExpiredDraft]:
        """Cancel sessions never readied in time or stuck past their phase deadline."""
        with self.session_factory() as session:
            candidates = fetch_active_draft_ids(session)

        expired: list[ExpiredDraft] = []
        for session_id in candidates:

            def work(session: Session, session_id: str = session_id) -> DraftState | None:
                state = load_draft(session, session_id)
                if state is None or state.is_terminal:
                    return None
                now = self.clock()
                if ready_expired(state, now, ready_timeout_seconds=self.draft_params.ready_timeout_seconds):
                    reason = READY_TIMEOUT_REASON
                elif phase_expired(state, now, grace_seconds=self.draft_params.submission_grace_seconds):
                    reason = TIMEOUT_REASON
                else:
                    return None
                cancelled = cancel(state, reason=reason, now=now)
                save_draft(session, cancelled, now=now)
                return cancelled

            state = run_in_transaction(
                self.session_factory,
                work,
                max_attempts=self.max_attempts,
                label=f"draft {session_id} expiry",
            )
            if state is None:
                continue
            reason = state.cancel_reason or TIMEOUT_REASON
            logger.info("Draft cancelled draft_id=%s reason=%s", session_id, reason)
            self._publish(state, "cancelled", reason=reason)
            expired.append(ExpiredDraft(session_id=session_id, reason=reason))
        return expired


__all__ = ["DraftService", "ExpiredDraft"]
