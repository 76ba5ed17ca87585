"""End-to-end tests for match submission and rating processing."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from conftest import (
    BLUE_IDS,
    PLAYER_IDS,
    RED_IDS,
    FakeClock,
    InterleavingClock,
    complete_draft,
    form_draft,
)
from domain.common import MatchParticipant, StatLine
from domain.errors import (
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from domain.protocol import Role, Team
from domain.rating.player import seed_player_rating
from repositories.match_repository import load_match_record
from repositories.rating_repository import insert_rating, load_rating
from services import match_service as match_service_module
from services.match_service import MatchService
from services.notifications import ChangeFeed, rating_topic
from services.rating_service import RatingService

EVEN_STATS = StatLine(kills=3, deaths=3, assists=7, farm=160, damage=14000, vision_score=30, objective_score=1)


def _team(identities: tuple[str, ...], stats: StatLine = EVEN_STATS) -> list[MatchParticipant]:
    return [
        MatchParticipant(identity=identity, role=Role(identity.rsplit("-", 1)[0]), stats=stats)
        for identity in identities
    ]


def _service(session_factory: sessionmaker[Session], clock: FakeClock, **kwargs: Any) -> MatchService:
    ids = iter(f"match-{index:04d}" for index in range(1, 100))
    return MatchService(session_factory, clock=clock, id_factory=lambda: next(ids), **kwargs)


def _seed_placed(session_factory: sessionmaker[Session], clock: FakeClock, rating: int = 1000) -> None:
    with session_factory() as session:
        for identity in PLAYER_IDS:
            state = replace(
                seed_player_rating(identity, rating),
                placed=True,
                placement_games_played=5,
                games_played=5,
                wins=3,
                losses=2,
            )
            insert_rating(session, state, now=clock())
        session.commit()


def test_even_match_moves_placed_players_by_base_change(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    _seed_placed(session_factory, clock)
    feed = ChangeFeed()
    updates: list[dict[str, Any]] = []
    feed.subscribe(rating_topic("top-a"), lambda topic, payload: updates.append(payload))
    service = _service(session_factory, clock, feed=feed)

    record = service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS))

    assert record.match_id == "match-0001"
    assert record.processed is True
    assert {result.rating_change for result in record.results if result.team is Team.BLUE} == {25}
    assert {result.rating_change for result in record.results if result.team is Team.RED} == {-25}

    ratings = RatingService(session_factory, clock=clock)
    winner = ratings.get_rating("top-a")
    assert winner.rating == 1025
    assert winner.wins == 4
    assert winner.games_played == 6
    assert ratings.get_rating("top-b").rating == 975
    assert ratings.history("top-a")[0].match_id == "match-0001"
    assert updates == [{"identity": "top-a", "match_id": "match-0001", "rating": 1025, "change": 25}]


def test_unrated_players_are_seeded_and_placement_doubles(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    record = _service(session_factory, clock).submit_result("mid-b", Team.RED, _team(BLUE_IDS), _team(RED_IDS))

    assert record.result_for("mid-b").rating_before == 800
    assert record.result_for("mid-b").rating_after == 850
    assert record.result_for("mid-a").rating_after == 750
    with session_factory() as session:
        state = load_rating(session, "mid-b")
    assert state.placement_games_played == 1
    assert state.placed is False


def test_stored_record_keeps_stats_and_breakdowns(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    blue = _team(BLUE_IDS)
    blue[2] = replace(blue[2], stats=replace(EVEN_STATS, kills=9, selection_id="Ahri"))
    record = _service(session_factory, clock).submit_result("top-a", "blue", blue, _team(RED_IDS))

    with session_factory() as session:
        stored = load_match_record(session, record.match_id)

    assert stored.identities == record.identities
    assert [(r.identity, r.rating_change, r.rating_after) for r in stored.results] == [
        (r.identity, r.rating_change, r.rating_after) for r in record.results
    ]
    mid = stored.blue_team[2]
    assert mid.stats.kills == 9
    assert mid.stats.selection_id == "Ahri"
    assert stored.result_for("mid-a").breakdown.kda_score > 50
    assert stored.result_for("mid-a").performance_score > 50


def test_invalid_submissions_store_nothing(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    service = _service(session_factory, clock)

    with pytest.raises(ValidationError, match="Invalid winner"):
        service.submit_result("top-a", "green", _team(BLUE_IDS), _team(RED_IDS))
    with pytest.raises(ValidationError, match="exactly 5"):
        service.submit_result("top-a", "blue", _team(BLUE_IDS[:4]), _team(RED_IDS))
    with pytest.raises(ValidationError):
        service.submit_result("top-a", "blue", _team(BLUE_IDS, replace(EVEN_STATS, deaths=-1)), _team(RED_IDS))

    assert service.history("top-a") == []


def test_failure_mid_processing_rolls_everything_back(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed_placed(session_factory, clock)
    real_save_rating = match_service_module.save_rating
    saved: list[str] = []

    def failing_save_rating(session: Session, state, *, now) -> None:
        if len(saved) == 5:
            raise RuntimeError("store went away")
        saved.append(state.identity)
        real_save_rating(session, state, now=now)

    monkeypatch.setattr(match_service_module, "save_rating", failing_save_rating)
    service = _service(session_factory, clock)

    with pytest.raises(RuntimeError, match="store went away"):
        service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS))

    assert service.history("top-a") == []
    with session_factory() as session:
        for identity in PLAYER_IDS:
            state = load_rating(session, identity)
            assert state.rating == 1000
            assert state.games_played == 5


def test_deferred_processing(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    service = _service(session_factory, clock)
    record = service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS), process=False)

    assert record.processed is False
    with session_factory() as session:
        assert load_rating(session, "top-a") is None

    clock.advance(60)
    processed = service.process_match(record.match_id)
    assert processed.processed is True
    assert processed.processed_at == clock()
    assert service.get_match(record.match_id).result_for("top-a").rating_after == 850

    with pytest.raises(PreconditionError, match="already been processed"):
        service.process_match(record.match_id)
    with pytest.raises(NotFoundError):
        service.process_match("missing")
    with pytest.raises(NotFoundError):
        service.get_match("missing")


def test_racing_processors_apply_a_match_once(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
    caplog: pytest.LogCaptureFixture,
) -> None:
    _seed_placed(session_factory, clock)
    rival = _service(session_factory, clock)
    match_id = rival.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS), process=False).match_id

    racing = MatchService(session_factory, clock=InterleavingClock(clock, lambda: rival.process_match(match_id)))
    with caplog.at_level(logging.WARNING, logger="services.transactions"):
        with pytest.raises(PreconditionError, match="already been processed"):
            racing.process_match(match_id)

    assert any("processing conflicted" in record.message for record in caplog.records)
    ratings = RatingService(session_factory, clock=clock)
    for identity in PLAYER_IDS:
        history = ratings.history(identity)
        assert len(history) == 1
        assert history[0].match_id == match_id
    assert ratings.get_rating("top-a").rating == 1025
    assert ratings.get_rating("top-b").rating == 975
    assert ratings.get_rating("top-a").games_played == 6


def test_draft_linked_results(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    draft_id = form_draft(session_factory, clock)
    service = _service(session_factory, clock)

    with pytest.raises(NotFoundError):
        service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS), draft_id="missing")
    with pytest.raises(PreconditionError, match="not completed"):
        service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS), draft_id=draft_id)

    complete_draft(session_factory, clock, draft_id)

    swapped_blue = _team(BLUE_IDS[:4] + RED_IDS[4:])
    swapped_red = _team(RED_IDS[:4] + BLUE_IDS[4:])
    with pytest.raises(ValidationError, match="do not match"):
        service.submit_result("top-a", "blue", swapped_blue, swapped_red, draft_id=draft_id)

    with pytest.raises(PermissionDeniedError):
        service.submit_result("stranger", "blue", _team(BLUE_IDS), _team(RED_IDS), draft_id=draft_id)

    record = service.submit_result("jungle-b", "red", _team(BLUE_IDS), _team(RED_IDS), draft_id=draft_id)
    assert record.draft_session_id == draft_id
    assert record.winner is Team.RED

    with pytest.raises(PreconditionError, match="already been submitted"):
        service.submit_result("jungle-b", "red", _team(BLUE_IDS), _team(RED_IDS), draft_id=draft_id)


def test_history_is_newest_first_and_capped(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    registered: tuple[str, ...],
) -> None:
    service = _service(session_factory, clock)
    for _ in range(3):
        service.submit_result("top-a", "blue", _team(BLUE_IDS), _team(RED_IDS))
        clock.advance(3600)

    history = service.history("top-a")
    assert [record.match_id for record in history] == ["match-0003", "match-0002", "match-0001"]
    assert [record.match_id for record in service.history("top-a", limit=2)] == ["match-0003", "match-0002"]
    assert service.history("stranger") == []
