"""Shared fixtures: a throwaway SQLite store, a controllable clock and a full roster."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory, ensure_schema
from domain.common import PlayerProfile
from domain.draft.state import LobbyCredentials
from domain.protocol import ROLE_ORDER, DraftStatus
from repositories.profile_repository import upsert_profile
from services.draft_service import DraftService
from services.queue_service import QueueService

# "<role>-a" players join first and land on blue when ratings are equal.
BLUE_IDS = tuple(f"{role.value}-a" for role in ROLE_ORDER)
RED_IDS = tuple(f"{role.value}-b" for role in ROLE_ORDER)
PLAYER_IDS = BLUE_IDS + RED_IDS


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class InterleavingClock:
    """Runs a competing write the first time a service reads the time."""

    def __init__(self, clock: FakeClock, interloper: Callable[[], object]) -> None:
        self.clock = clock
        self.interloper: Callable[[], object] | None = interloper

    def __call__(self) -> datetime:
        if self.interloper is not None:
            interloper, self.interloper = self.interloper, None
            interloper()
        return self.clock()


def fixed_lobby(session_id: str) -> LobbyCredentials:
    return LobbyCredentials(name=f"Drafty-{session_id[:8]}", password="pass1234")


def register_players(
    session_factory: sessionmaker[Session],
    identities: tuple[str, ...] = PLAYER_IDS,
    *,
    now: datetime,
    rank_tiers: tuple[str, ...] = (),
) -> None:
    with session_factory() as session:
        for identity in identities:
            upsert_profile(
                session,
                PlayerProfile(identity=identity, display_name=identity.upper(), rank_tiers=rank_tiers),
                now=now,
            )
        session.commit()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'drafty.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def registered(session_factory: sessionmaker[Session], clock: FakeClock) -> tuple[str, ...]:
    register_players(session_factory, now=clock())
    return PLAYER_IDS


def form_draft(session_factory: sessionmaker[Session], clock: FakeClock, draft_id: str = "draft-0001") -> str:
    """Queue the ten registered players so that their tenth join forms `draft_id`."""
    queue = QueueService(session_factory, clock=clock, id_factory=lambda: draft_id)
    result = None
    for identity in PLAYER_IDS:
        result = queue.join(identity, identity.rsplit("-", 1)[0], "euw")
    assert result is not None and result.match_found
    return draft_id


def complete_draft(session_factory: sessionmaker[Session], clock: FakeClock, draft_id: str) -> None:
    """Ready everyone and resolve all sixteen phases."""
    service = DraftService(session_factory, clock=clock, lobby_factory=fixed_lobby)
    state = service.get_draft(draft_id)
    for identity in state.identities:
        state = service.ready_up(draft_id, identity).state
    phase = 0
    while state.status is not DraftStatus.COMPLETED:
        actor = state.roster(state.current_action.team)[0].identity
        state = service.submit_action(draft_id, actor, f"unit-{phase}").state
        phase += 1
