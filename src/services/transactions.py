"""Optimistic read-modify-write transactions with bounded retry."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5


def run_in_transaction(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], T],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_on: tuple[type[Exception], ...] = (StaleDataError,),
    label: str = "transaction",
) -> T:
    """Run `work` in a fresh session and commit; re-run it from scratch on conflicts.

    Conflicts listed in `retry_on` are retried up to `max_attempts` times and then
    surface as `ConflictError`. Any other exception rolls back and propagates.
    """
    if max_attempts <= 0:
        raise ValueError("max_attempts must be greater than 0")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        with session_factory() as session:
            try:
                result = work(session)
                session.commit()
                return result
            except retry_on as exc:
                session.rollback()
                last_error = exc
                logger.warning(
                    "%s conflicted (attempt %d/%d): %s",
                    label,
                    attempt,
                    max_attempts,
                    exc,
                )
            except Exception:
                session.rollback()
                raise

    raise ConflictError(
        f"{label} kept conflicting with concurrent writes; please retry"
    ) from last_error


__all__ = ["DEFAULT_MAX_ATTEMPTS", "run_in_transaction"]
