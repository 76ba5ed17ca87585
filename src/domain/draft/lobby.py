"""Lobby credentials and the post-draft summary handed to players."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from domain.draft.state import DraftPlayer, DraftState, LobbyCredentials
from domain.errors import PreconditionError
from domain.protocol import DraftStatus, Team

_PASSWORD_ALPHABET = string.ascii_lowercase + string.digits
PASSWORD_LENGTH = 8


def generate_lobby_credentials(session_id: str, *, prefix: str = "Drafty") -> LobbyCredentials:
    password = "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))
    return LobbyCredentials(name=f"{prefix}-{session_id[:8]}", password=password)


@dataclass(frozen=True)
class TeamSummary:
    team: Team
    players: tuple[DraftPlayer, ...]
    bans: tuple[str, ...]
    avg_rating: float


@dataclass(frozen=True)
class DraftResult:
    """Everything players need to set up the custom game."""

    session_id: str
    blue: TeamSummary
    red: TeamSummary
    lobby: LobbyCredentials


def draft_result(state: DraftState) -> DraftResult:
    if state.status is not DraftStatus.COMPLETED or state.lobby is None:
        raise PreconditionError(f"Draft {state.session_id} is not completed")

    return DraftResult(
        session_id=state.session_id,
        blue=TeamSummary(
            team=Team.BLUE,
            players=state.blue_team,
            bans=state.bans_for(Team.BLUE),
            avg_rating=state.blue_avg_rating,
        ),
        red=TeamSummary(
            team=Team.RED,
            players=state.red_team,
            bans=state.bans_for(Team.RED),
            avg_rating=state.red_avg_rating,
        ),
        lobby=state.lobby,
    )


__all__ = [
    "DraftResult",
    "PASSWORD_LENGTH",
    "TeamSummary",
    "draft_result",
    "generate_lobby_credentials",
]
