#!/usr/bin/env python3
"""Command-line entry point for the role queue, drafts and ratings."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import DEFAULT_DB_URL, create_db_engine, create_session_factory, ensure_schema
from domain.errors import DraftyError
from domain.settings import DEFAULT_SETTINGS_PATH, load_settings
from services.api import DraftyApi
from services.catalog import load_catalog_file

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Role queue, ban/pick draft and rating commands.",
)

CallerOption = Annotated[str, typer.Option("--as", help="Identity performing the operation.")]


@dataclass
class CliState:
    db_url: str
    config: Path


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _build_api(ctx: typer.Context, *, catalog_file: Path | None = None) -> DraftyApi:
    state: CliState = ctx.obj
    settings = load_settings(state.config)
    engine = create_db_engine(state.db_url)
    ensure_schema(engine)
    fetcher = load_catalog_file(catalog_file) if catalog_file is not None else None
    return DraftyApi.from_settings(create_session_factory(engine), settings, catalog_fetcher=fetcher)


def _run(ctx: typer.Context, operation: Callable[[DraftyApi], Any], **api_kwargs: Any) -> None:
    try:
        payload = operation(_build_api(ctx, **api_kwargs))
    except DraftyError as exc:
        typer.echo(f"error[{exc.code}]: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(payload)


@app.callback()
def main(
    ctx: typer.Context,
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local drafty postgres instance."),
    ] = DEFAULT_DB_URL,
    config: Annotated[
        Path,
        typer.Option("--config", help="Settings TOML file."),
    ] = DEFAULT_SETTINGS_PATH,
    log_level: Annotated[str, typer.Option("--log-level")] = "WARNING",
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = CliState(db_url=db_url, config=config)


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create every table."""
    engine = create_db_engine(ctx.obj.db_url)
    ensure_schema(engine)
    typer.echo("schema ready")


@app.command("register")
def register(
    ctx: typer.Context,
    caller: CallerOption,
    display_name: Annotated[str, typer.Option("--name")],
    photo_url: Annotated[str | None, typer.Option("--photo-url")] = None,
    rank: Annotated[list[str] | None, typer.Option("--rank", help="Known rank tier; repeatable.")] = None,
) -> None:
    """Create or update a player profile."""
    _run(
        ctx,
        lambda api: api.register_profile(caller, display_name, photo_url=photo_url, rank_tiers=rank or ()),
    )


@app.command("init-rating")
def init_rating(ctx: typer.Context, caller: CallerOption) -> None:
    """Seed the caller's rating from their profile rank tiers."""
    _run(ctx, lambda api: api.initialize_rating(caller))


@app.command("join")
def join(
    ctx: typer.Context,
    caller: CallerOption,
    role: Annotated[str, typer.Option("--role")],
    region: Annotated[str, typer.Option("--region")] = "euw",
) -> None:
    """Join the role queue."""
    _run(ctx, lambda api: api.join_queue(caller, role, region))


@app.command("leave")
def leave(ctx: typer.Context, caller: CallerOption) -> None:
    _run(ctx, lambda api: api.leave_queue(caller))


@app.command("status")
def status(ctx: typer.Context, caller: CallerOption) -> None:
    """Show queue counts and the caller's entry."""
    _run(ctx, lambda api: api.get_queue_status(caller))


@app.command("draft")
def draft(
    ctx: typer.Context,
    caller: CallerOption,
    draft_id: Annotated[str | None, typer.Argument()] = None,
) -> None:
    """Show one draft, or the caller's active draft when no id is given."""
    if draft_id is None:
        _run(ctx, lambda api: api.get_active_draft(caller))
    else:
        _run(ctx, lambda api: api.get_draft(caller, draft_id))


@app.command("ready")
def ready(ctx: typer.Context, caller: CallerOption, draft_id: Annotated[str, typer.Argument()]) -> None:
    _run(ctx, lambda api: api.ready_up(caller, draft_id))


@app.command("action")
def action(
    ctx: typer.Context,
    caller: CallerOption,
    draft_id: Annotated[str, typer.Argument()],
    selection_id: Annotated[str, typer.Argument()],
    catalog_file: Annotated[
        Path | None,
        typer.Option("--catalog-file", help="champion.json used to validate selections."),
    ] = None,
) -> None:
    """Ban or pick for the caller's team in the active phase."""
    _run(
        ctx,
        lambda api: api.submit_draft_action(caller, draft_id, selection_id),
        catalog_file=catalog_file,
    )


@app.command("timeout")
def timeout(ctx: typer.Context, caller: CallerOption, draft_id: Annotated[str, typer.Argument()]) -> None:
    """Cancel a draft whose phase clock ran out."""
    _run(ctx, lambda api: api.timeout_draft(caller, draft_id))


@app.command("cancel")
def cancel(ctx: typer.Context, caller: CallerOption, draft_id: Annotated[str, typer.Argument()]) -> None:
    _run(ctx, lambda api: api.cancel_draft(caller, draft_id))


@app.command("lobby")
def lobby(ctx: typer.Context, caller: CallerOption, draft_id: Annotated[str, typer.Argument()]) -> None:
    """Show lobby credentials and final teams of a completed draft."""
    _run(ctx, lambda api: api.get_lobby(caller, draft_id))


@app.command("submit-match")
def submit_match(
    ctx: typer.Context,
    caller: CallerOption,
    result_file: Annotated[
        Path,
        typer.Argument(help="JSON file with winner, blueTeam, redTeam and optional draftId."),
    ],
) -> None:
    """Record a finished match and apply rating changes."""
    if not result_file.is_file():
        raise typer.BadParameter(f"{result_file} does not exist", param_hint="result_file")
    try:
        payload = json.loads(result_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{result_file} is not valid JSON: {exc}", param_hint="result_file") from exc

    _run(
        ctx,
        lambda api: api.submit_match_result(
            caller,
            payload.get("winner"),
            payload.get("blueTeam"),
            payload.get("redTeam"),
            draft_id=payload.get("draftId"),
        ),
    )


@app.command("history")
def history(
    ctx: typer.Context,
    caller: CallerOption,
    identity: Annotated[str | None, typer.Option("--player")] = None,
    limit: Annotated[int, typer.Option("--limit")] = 20,
) -> None:
    _run(ctx, lambda api: api.get_match_history(caller, identity, limit))


@app.command("rating")
def rating(
    ctx: typer.Context,
    caller: CallerOption,
    identity: Annotated[str | None, typer.Option("--player")] = None,
) -> None:
    """Show a player's rating, tier and record."""
    _run(ctx, lambda api: api.get_rating(caller, identity))


@app.command("leaderboard")
def leaderboard(
    ctx: typer.Context,
    caller: CallerOption,
    limit: Annotated[int, typer.Option("--limit")] = 50,
) -> None:
    _run(ctx, lambda api: api.get_leaderboard(caller, limit))


@app.command("catalog")
def catalog(
    ctx: typer.Context,
    caller: CallerOption,
    catalog_file: Annotated[
        Path | None,
        typer.Option("--file", help="champion.json used when the cache is missing or stale."),
    ] = None,
) -> None:
    """Show the cached selection catalog."""
    _run(ctx, lambda api: api.get_catalog(caller), catalog_file=catalog_file)


@app.command("sweep")
def sweep(ctx: typer.Context) -> None:
    """Expire old queue entries and cancel stalled drafts."""
    _run(ctx, lambda api: api.sweep_expired())


if __name__ == "__main__":
    app()
