"""cricket-sync CLI using Typer."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

import pydantic
import typer
from typing_extensions import Annotated

from .config import AppSettings, get_settings
from .cricket_logging import clear_trace_id, configure_logging, get_logger, new_trace_id
from .errors import ConfigurationError, PersistenceError
from .pipelines import (
    DuplicateCleaner,
    MatchListSync,
    PipelineContext,
    Reconciler,
    RunSummary,
    SyncOrchestrator,
    TeamStatsBackfill,
)

app = typer.Typer(help="Cricket feed ingestion, sync and repair CLI")

logger = get_logger(__name__)

Runner = Callable[[PipelineContext], Awaitable[RunSummary]]


class RepairMode(str, Enum):
    RESULTS = "results"
    CLEAN = "clean"


def _load_settings() -> AppSettings:
    """Settings with the store configured, or exit 2 before any network access."""
    try:
        settings = get_settings()
        settings.require_store()
    except (ConfigurationError, pydantic.ValidationError) as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(2)
    configure_logging()
    return settings


async def _execute(settings: AppSettings, dry_run: bool, runner: Runner) -> RunSummary:
    ctx = await PipelineContext.open(settings, dry_run=dry_run)
    async with ctx:
        return await runner(ctx)


def _run(settings: AppSettings, dry_run: bool, runner: Runner) -> None:
    if dry_run:
        typer.echo("🔍 DRY RUN MODE - No data will be written")
    new_trace_id()
    logger.info("Run started", dry_run=dry_run)
    try:
        summary = asyncio.run(_execute(settings, dry_run, runner))
    except PersistenceError as e:
        logger.error("Store unavailable", error=str(e))
        typer.echo(f"❌ Store error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        clear_trace_id()

    typer.echo("")
    for line in summary.lines():
        typer.echo(line)

    if not summary.success:
        raise typer.Exit(1)


@app.command()
def sync(
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report would-be writes without touching the store")] = False,
    limit: Annotated[Optional[int], typer.Option("--limit", min=1, help="Process at most N new matches")] = None,
    lookback_days: Annotated[Optional[int], typer.Option("--lookback-days", min=0, help="Match list window in days")] = None,
    gamestate: Annotated[Optional[str], typer.Option("--gamestate", help="Use a feed gamestate listing instead of the date window")] = None,
    since: Annotated[Optional[str], typer.Option("--since", help="Ignore matches starting before this date (YYYY-MM-DD)")] = None,
):
    """Sync scorecards of new premium-tournament matches."""
    settings = _load_settings()
    typer.echo("🏏 Starting incremental sync")
    _run(settings, dry_run, lambda ctx: SyncOrchestrator(ctx).run(
        lookback_days=lookback_days,
        gamestate=gamestate,
        since=since,
        limit=limit,
    ))


@app.command("sync-matches")
def sync_matches(
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report would-be writes without touching the store")] = False,
    lookback_days: Annotated[Optional[int], typer.Option("--lookback-days", min=0, help="Match list window in days")] = None,
):
    """Sync the flat matches table used for form and head-to-head."""
    settings = _load_settings()
    typer.echo("🗓️  Syncing match list")
    _run(settings, dry_run, lambda ctx: MatchListSync(ctx).run(lookback_days=lookback_days))


@app.command()
def repair(
    mode: Annotated[RepairMode, typer.Argument(help="results: fix provisional results; clean: remove duplicate batting rows")] = RepairMode.RESULTS,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report would-be changes without touching the store")] = False,
    limit: Annotated[Optional[int], typer.Option("--limit", min=1, help="Process at most N candidates")] = None,
    match_id: Annotated[Optional[str], typer.Option("--match-id", help="Repair this match only")] = None,
):
    """Repair stored data: provisional results or duplicate rows."""
    settings = _load_settings()
    if mode == RepairMode.CLEAN:
        typer.echo("🧹 Removing duplicate batting rows")
        _run(settings, dry_run, lambda ctx: DuplicateCleaner(ctx).run())
    else:
        typer.echo("🔧 Repairing provisional results")
        if match_id:
            typer.echo(f"   Specific match: {match_id}")
        _run(settings, dry_run, lambda ctx: Reconciler(ctx).run(match_id=match_id, limit=limit))


@app.command("backfill-team-stats")
def backfill_team_stats(
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report would-be writes without touching the store")] = False,
    lookback_days: Annotated[Optional[int], typer.Option("--lookback-days", min=0, help="Stored-match window in days")] = None,
):
    """Re-derive team innings stats for recent premium matches."""
    settings = _load_settings()
    typer.echo("📊 Backfilling team innings stats")
    _run(settings, dry_run, lambda ctx: TeamStatsBackfill(ctx).run(lookback_days=lookback_days))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    app()
