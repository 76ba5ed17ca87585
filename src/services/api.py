"""Caller-facing operations returning plain dict payloads.

Every operation except the maintenance sweep acts on behalf of an
authenticated identity; an empty caller is rejected before any work is done.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from domain.catalog import CatalogFetcher
from domain.common import MatchParticipant, PlayerProfile, StatLine, utcnow
from domain.draft.state import DraftState
from domain.errors import PermissionDeniedError, ValidationError
from domain.matches.builder import MatchRecord
from domain.protocol import parse_role
from domain.rating.player import PlayerRatingState
from domain.settings import Settings
from repositories.profile_repository import upsert_profile
from services.catalog import SelectionCatalog
from services.draft_service import DraftService
from services.match_service import MatchService
from services.notifications import ChangeFeed
from services.queue_service import QueueService
from services.rating_service import RatingService
from services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

# Accepted spellings for submitted statistics; the first name is canonical.
_STAT_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("kills", ("kills",)),
    ("deaths", ("deaths",)),
    ("assists", ("assists",)),
    ("farm", ("farm", "cs")),
    ("damage", ("damage",)),
    ("vision_score", ("visionScore", "vision_score")),
    ("objective_score", ("objectiveScore", "objective_score")),
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _require_caller(caller: str | None) -> str:
    if not caller or not str(caller).strip():
        raise PermissionDeniedError("User must be authenticated")
    return str(caller).strip()


def draft_to_dict(state: DraftState) -> dict[str, Any]:
    def player(p: Any) -> dict[str, Any]:
        return {
            "identity": p.identity,
            "displayName": p.display_name,
            "photoUrl": p.photo_url,
            "role": p.role.value,
            "team": p.team.value,
            "rating": p.rating,
            "ready": p.ready,
            "selectionId": p.selection_id,
        }

    return {
        "id": state.session_id,
        "status": state.status.value,
        "currentPhase": state.phase_index,
        "phaseStartedAt": _iso(state.phase_started_at),
        "phaseTimeLimit": state.phase_time_limit,
        "phaseDeadline": _iso(state.phase_deadline),
        "blueTeam": [player(p) for p in state.blue_team],
        "redTeam": [player(p) for p in state.red_team],
        "blueAvgRating": state.blue_avg_rating,
        "redAvgRating": state.red_avg_rating,
        "actions": [
            {
                "phase": action.phase,
                "type": action.action_type.value,
                "team": action.team.value,
                "selectionId": action.selection_id,
                "completedAt": _iso(action.completed_at),
                "active": action.active,
            }
            for action in state.actions
        ],
        "bannedSelections": list(state.banned_selection_ids),
        "lobbyName": state.lobby.name if state.lobby is not None else None,
        "lobbyPassword": state.lobby.password if state.lobby is not None else None,
        "cancelReason": state.cancel_reason,
        "createdAt": _iso(state.created_at),
        "finishedAt": _iso(state.finished_at),
    }


def rating_to_dict(state: PlayerRatingState) -> dict[str, Any]:
    return {
        "identity": state.identity,
        "rating": state.rating,
        "tier": state.tier,
        "placed": state.placed,
        "placementGamesPlayed": state.placement_games_played,
        "gamesPlayed": state.games_played,
        "wins": state.wins,
        "losses": state.losses,
        "winRate": state.win_rate,
        "peakRating": state.peak_rating,
    }


def match_to_dict(record: MatchRecord, identity: str | None = None) -> dict[str, Any]:
    def team(roster: Sequence[MatchParticipant], avg: float | None) -> dict[str, Any]:
        return {
            "avgRating": avg,
            "players": [
                {
                    "identity": participant.identity,
                    "displayName": participant.display_name,
                    "role": participant.role.value,
                    "stats": participant.stats.as_dict(),
                }
                for participant in roster
            ],
        }

    payload: dict[str, Any] = {
        "id": record.match_id,
        "createdAt": _iso(record.created_at),
        "winner": record.winner.value,
        "draftId": record.draft_session_id,
        "processed": record.processed,
        "blueTeam": team(record.blue_team, record.blue_avg_rating),
        "redTeam": team(record.red_team, record.red_avg_rating),
        "perPlayerDelta": [
            {
                "identity": result.identity,
                "team": result.team.value,
                "role": result.role,
                "performanceScore": result.performance_score,
                "change": result.rating_change,
                "ratingBefore": result.rating_before,
                "newRating": result.rating_after,
            }
            for result in record.results
        ],
    }
    if identity is not None:
        team_of = record.team_of(identity)
        payload["playerTeam"] = team_of.value if team_of is not None else None
        payload["didWin"] = team_of is record.winner
    return payload


def _stat_value(raw: Mapping[str, Any], names: tuple[str, ...], *, identity: str) -> int:
    for name in names:
        if name in raw and raw[name] is not None:
            value = raw[name]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{identity}: {names[0]} must be an integer")
            return value
    raise ValidationError(f"{identity}: missing statistic {names[0]}")


def parse_participant(raw: Mapping[str, Any]) -> MatchParticipant:
    """Build one roster entry from a submitted payload (flat or nested `stats`)."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Each team entry must be an object")
    identity = str(raw.get("identity") or "").strip()
    if not identity:
        raise ValidationError("Each team entry needs an identity")
    try:
        role = parse_role(raw.get("role") or "")
    except ValueError as exc:
        raise ValidationError(f"{identity}: invalid role {raw.get('role')!r}") from exc

    stats_raw = raw.get("stats", raw)
    if not isinstance(stats_raw, Mapping):
        raise ValidationError(f"{identity}: stats must be an object")
    values = {field: _stat_value(stats_raw, names, identity=identity) for field, names in _STAT_ALIASES}
    selection = stats_raw.get("selectionId") or stats_raw.get("champion")
    return MatchParticipant(
        identity=identity,
        role=role,
        display_name=raw.get("displayName"),
        stats=StatLine(selection_id=str(selection) if selection else None, **values),
    )


class DraftyApi:
    """Facade over the queue, draft, match, rating and catalog services."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        queue: QueueService,
        drafts: DraftService,
        matches: MatchService,
        ratings: RatingService,
        catalog: SelectionCatalog,
        feed: ChangeFeed,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 5,
    ) -> None:
        self.session_factory = session_factory
        self.queue = queue
        self.drafts = drafts
        self.matches = matches
        self.ratings = ratings
        self.catalog = catalog
        self.feed = feed
        self.clock = clock
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(
        cls,
        session_factory: sessionmaker[Session],
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        feed: ChangeFeed | None = None,
        catalog_fetcher: CatalogFetcher | None = None,
    ) -> DraftyApi:
        settings = settings or Settings()
        feed = feed or ChangeFeed()
        attempts = settings.store.max_attempts
        catalog = SelectionCatalog(
            session_factory,
            fetcher=catalog_fetcher,
            ttl_days=settings.catalog.ttl_days,
            clock=clock,
            max_attempts=attempts,
        )
        return cls(
            session_factory,
            queue=QueueService(
                session_factory,
                queue_params=settings.queue,
                draft_params=settings.draft,
                rating_params=settings.rating,
                feed=feed,
                clock=clock,
                max_attempts=attempts,
            ),
            drafts=DraftService(
                session_factory,
                draft_params=settings.draft,
                catalog=catalog,
                feed=feed,
                clock=clock,
                max_attempts=attempts,
            ),
            matches=MatchService(
                session_factory,
                rating_params=settings.rating,
                feed=feed,
                clock=clock,
                max_attempts=attempts,
            ),
            ratings=RatingService(
                session_factory,
                params=settings.rating,
                feed=feed,
                clock=clock,
                max_attempts=attempts,
            ),
            catalog=catalog,
            feed=feed,
            clock=clock,
            max_attempts=attempts,
        )

    # Profiles

    def register_profile(
        self,
        caller: str | None,
        display_name: str,
        *,
        photo_url: str | None = None,
        rank_tiers: Iterable[str] = (),
    ) -> dict[str, Any]:
        identity = _require_caller(caller)
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValidationError("Display name is required")
        profile = PlayerProfile(
            identity=identity,
            display_name=display_name,
            photo_url=photo_url,
            rank_tiers=tuple(tier for tier in rank_tiers if tier),
        )
        stored = run_in_transaction(
            self.session_factory,
            lambda session: upsert_profile(session, profile, now=self.clock()),
            max_attempts=self.max_attempts,
            label="profile upsert",
        )
        return {
            "identity": stored.identity,
            "displayName": stored.display_name,
            "photoUrl": stored.photo_url,
            "rankTiers": list(stored.rank_tiers),
        }

    # Queue

    def join_queue(self, caller: str | None, role: str, region: str) -> dict[str, Any]:
        result = self.queue.join(_require_caller(caller), role, region)
        return {"inQueue": result.in_queue, "matchFound": result.match_found, "draftId": result.draft_id}

    def leave_queue(self, caller: str | None) -> dict[str, Any]:
        self.queue.leave(_require_caller(caller))
        return {"ok": True}

    def get_queue_status(self, caller: str | None) -> dict[str, Any]:
        status = self.queue.status(_require_caller(caller))
        entry = None
        if status.entry is not None:
            entry = {
                "identity": status.entry.identity,
                "displayName": status.entry.display_name,
                "role": status.entry.role.value,
                "rating": status.entry.rating,
                "region": status.entry.region,
                "joinedAt": _iso(status.entry.joined_at),
            }
        return {
            "inQueue": status.in_queue,
            "entry": entry,
            "totalWaiting": status.total_waiting,
            "perRoleCounts": {role.value: count for role, count in status.per_role_counts.items()},
        }

    # Drafts

    def get_draft(self, caller: str | None, draft_id: str) -> dict[str, Any]:
        _require_caller(caller)
        return {"draft": draft_to_dict(self.drafts.get_draft(draft_id))}

    def get_active_draft(self, caller: str | None) -> dict[str, Any]:
        state = self.drafts.get_active_draft(_require_caller(caller))
        return {"draft": draft_to_dict(state) if state is not None else None}

    def ready_up(self, caller: str | None, draft_id: str) -> dict[str, Any]:
        outcome = self.drafts.ready_up(draft_id, _require_caller(caller))
        return {"ok": True, "allReady": outcome.all_ready}

    def submit_draft_action(self, caller: str | None, draft_id: str, selection_id: str) -> dict[str, Any]:
        outcome = self.drafts.submit_action(draft_id, _require_caller(caller), selection_id)
        return {"ok": True, "nextPhase": outcome.next_phase, "completed": outcome.completed}

    def timeout_draft(self, caller: str | None, draft_id: str) -> dict[str, Any]:
        self.drafts.timeout(draft_id, _require_caller(caller))
        return {"ok": True}

    def cancel_draft(self, caller: str | None, draft_id: str) -> dict[str, Any]:
        self.drafts.cancel(draft_id, _require_caller(caller))
        return {"ok": True}

    def get_lobby(self, caller: str | None, draft_id: str) -> dict[str, Any]:
        result = self.drafts.lobby(draft_id, _require_caller(caller))

        def team(summary: Any) -> dict[str, Any]:
            return {
                "players": [
                    {
                        "identity": player.identity,
                        "displayName": player.display_name,
                        "role": player.role.value,
                        "selectionId": player.selection_id,
                    }
                    for player in summary.players
                ],
                "bans": list(summary.bans),
                "avgRating": summary.avg_rating,
            }

        return {
            "draftId": result.session_id,
            "lobbyName": result.lobby.name,
            "lobbyPassword": result.lobby.password,
            "blueTeam": team(result.blue),
            "redTeam": team(result.red),
        }

    # Matches and ratings

    def submit_match_result(
        self,
        caller: str | None,
        winner: str,
        blue_team: Sequence[Mapping[str, Any]],
        red_team: Sequence[Mapping[str, Any]],
        *,
        draft_id: str | None = None,
    ) -> dict[str, Any]:
        identity = _require_caller(caller)
        if not winner or blue_team is None or red_team is None:
            raise ValidationError("Missing required match data")
        record = self.matches.submit_result(
            identity,
            winner,
            [parse_participant(entry) for entry in blue_team],
            [parse_participant(entry) for entry in red_team],
            draft_id=draft_id,
        )
        payload = match_to_dict(record)
        return {"matchId": record.match_id, "perPlayerDelta": payload["perPlayerDelta"]}

    def get_match_history(
        self,
        caller: str | None,
        identity: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        me = _require_caller(caller)
        target = identity or me
        return [match_to_dict(record, target) for record in self.matches.history(target, limit=limit)]

    def initialize_rating(self, caller: str | None) -> dict[str, Any]:
        result = self.ratings.initialize(_require_caller(caller))
        return {"rating": rating_to_dict(result.state), "alreadyExists": result.already_exists}

    def get_rating(self, caller: str | None, identity: str | None = None) -> dict[str, Any] | None:
        """The player's ledger, or None when they have never been rated."""
        me = _require_caller(caller)
        target = identity or me
        state = self.ratings.get_rating(target)
        return rating_to_dict(state) if state is not None else None

    def get_leaderboard(self, caller: str | None, limit: int | None = None) -> list[dict[str, Any]]:
        _require_caller(caller)
        return [
            {
                "position": row.position,
                "identity": row.identity,
                "displayName": row.display_name,
                "photoUrl": row.photo_url,
                "rating": row.state.rating,
                "tier": row.state.tier,
                "gamesPlayed": row.state.games_played,
                "wins": row.state.wins,
                "losses": row.state.losses,
                "winRate": row.state.win_rate,
            }
            for row in self.ratings.leaderboard(limit)
        ]

    def get_catalog(self, caller: str | None) -> dict[str, Any]:
        _require_caller(caller)
        snapshot = self.catalog.get()
        if snapshot is None:
            return {"version": None, "selections": []}
        return {
            "version": snapshot.version,
            "selections": [selection.as_dict() for selection in snapshot.selections],
        }

    # Maintenance

    def sweep_expired(self) -> dict[str, Any]:
        expired_entries = self.queue.expire_stale_entries()
        cancelled = self.drafts.expire_stalled()
        if expired_entries or cancelled:
            logger.info(
                "Sweep removed queue_entries=%d cancelled_drafts=%d",
                len(expired_entries),
                len(cancelled),
            )
        return {
            "expiredQueueEntries": expired_entries,
            "cancelledDrafts": [{"draftId": item.session_id, "reason": item.reason} for item in cancelled],
        }


__all__ = [
    "DraftyApi",
    "draft_to_dict",
    "match_to_dict",
    "parse_participant",
    "rating_to_dict",
]
