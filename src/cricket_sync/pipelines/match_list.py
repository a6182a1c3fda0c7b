"""Sync the flat ``matches`` table used for team form and head-to-head."""

from typing import List, Optional

from ..cricket_logging import get_logger
from ..errors import PersistenceError
from ..models.feed import MatchSummary
from ..models.rows import MatchResultRow
from ..store.base import chunked
from ..utils.dates import date_from_game_id, lookback_window
from .context import PipelineContext, RunSummary

logger = get_logger(__name__)


def to_result_row(match: MatchSummary) -> Optional[MatchResultRow]:
    """Flatten a match-list entry; None without an id or a recoverable date.

    The winner is the participant the feed highlights.
    """
    if not match.game_id:
        return None
    match_date = match.match_date() or date_from_game_id(match.game_id)
    if match_date is None:
        return None

    teams = match.participants
    teama = teams[0] if len(teams) > 0 else None
    teamb = teams[1] if len(teams) > 1 else None
    winner = next((p for p in teams if p.highlight == "true"), None)

    return MatchResultRow(
        id=match.game_id,
        match_date=match_date,
        teama_id=teama.id if teama else None,
        teamb_id=teamb.id if teamb else None,
        teama=teama.name if teama else None,
        teamb=teamb.name if teamb else None,
        winner_id=winner.id if winner else None,
        result=match.event_sub_status or match.winning_margin,
        league=match.league_code,
        series_id=match.series_id,
        series_name=match.series_name,
        venue=match.venue,
        match_type=match.event_format,
    )


class MatchListSync:
    """Upsert every match of the look-back window into ``matches``."""

    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx

    async def run(self, lookback_days: Optional[int] = None) -> RunSummary:
        summary = RunSummary("sync-matches", dry_run=self.ctx.dry_run)
        days = self.ctx.settings.SYNC_LOOKBACK_DAYS if lookback_days is None else lookback_days
        start, end = lookback_window(days, end=self.ctx.now().date())

        matches = await self.ctx.feed.fetch_matches(start=start, end=end)
        rows: List[MatchResultRow] = []
        seen = set()
        for match in matches:
            row = to_result_row(match)
            if row is None:
                summary.record_skip("missing_id_or_date")
                continue
            if row.id in seen:
                continue
            seen.add(row.id)
            rows.append(row)

        logger.info("Transformed match list", fetched=len(matches), valid=len(rows))

        for batch in chunked(rows, self.ctx.settings.BATCH_SIZE):
            if self.ctx.dry_run:
                summary.processed += len(batch)
                summary.record_rows({MatchResultRow.TABLE: len(batch)})
                continue
            try:
                written = await self.ctx.store.upsert_models(batch)
            except PersistenceError as e:
                summary.failed += len(batch)
                logger.error("Match batch upsert failed", rows=len(batch), error=str(e))
                continue
            summary.processed += written
            summary.record_rows({MatchResultRow.TABLE: written})
            logger.info("Upserted matches", upserted=summary.processed, total=len(rows))

        return summary.finish()
