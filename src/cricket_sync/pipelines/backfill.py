"""Re-derive team innings stats for recently stored premium matches.

Net run rate needs each team's total, balls faced and alloted balls. This
pipeline walks matches stored within the look-back window whose result
marks them as finished, re-fetches their scorecards and upserts one
``team_innings_stats`` row per team.

Stored rows carry no participant list, so the premium check here uses the
series' best priority only; the team-count rule of the sync run does not
apply.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..classify.priority import PREMIUM_TIER_CEILING, match_priority
from ..cricket_logging import get_logger
from ..errors import PersistenceError
from ..models.rows import MatchRecord, TeamInningsStats
from ..store.base import at_least, one_of
from ..transformers.scorecard import extract_team_innings, innings_list
from .context import PipelineContext, RunSummary

logger = get_logger(__name__)

FINISHED_RESULTS = ("Result", "Completed", "Match Ended", "Stumps")


def stored_priority(row: Dict[str, Any]) -> int:
    priority = row.get("priority")
    if isinstance(priority, int):
        return priority
    return match_priority({"series_name": row.get("series_name")})


def premium_rows(rows: List[Dict[str, Any]], max_tier: int = PREMIUM_TIER_CEILING) -> List[Dict[str, Any]]:
    """Rows whose series has at least one match at or below ``max_tier``."""
    best: Dict[str, int] = {}
    for row in rows:
        sid = row.get("series_id") or "unknown"
        best[sid] = min(best.get(sid, 999), stored_priority(row))
    return [r for r in rows if best[r.get("series_id") or "unknown"] <= max_tier]


class TeamStatsBackfill:
    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx

    async def eligible_matches(self, lookback_days: Optional[int] = None) -> List[Dict[str, Any]]:
        days = self.ctx.settings.BACKFILL_LOOKBACK_DAYS if lookback_days is None else lookback_days
        cutoff = self.ctx.now() - timedelta(days=days)
        rows = await self.ctx.store.select(
            MatchRecord.TABLE,
            columns=["id", "series_id", "series_name", "priority", "result"],
            where={"created_at": at_least(cutoff), "result": one_of(FINISHED_RESULTS)},
            order_by=["id"],
        )
        selected = premium_rows(rows)
        logger.info("Found backfill candidates", stored=len(rows), premium=len(selected), lookback_days=days)
        return selected

    async def backfill_one(self, row: Dict[str, Any], summary: RunSummary) -> None:
        match_id = row["id"]
        scorecard = await self.ctx.fetch_scorecard(match_id)
        if not scorecard or innings_list(scorecard) is None:
            logger.info("No scorecard data, skipping", match_id=match_id, series=row.get("series_name"))
            summary.record_skip("no_scorecard")
            return

        stats: List[TeamInningsStats] = extract_team_innings(scorecard, match_id, row.get("series_id"))
        if not stats:
            summary.record_skip("no_team_innings")
            return

        if self.ctx.dry_run:
            summary.processed += 1
            summary.record_rows({TeamInningsStats.TABLE: len(stats)})
            return

        try:
            written = await self.ctx.store.upsert_models(stats)
        except PersistenceError as e:
            logger.error("Team stats upsert failed", match_id=match_id, error=str(e))
            summary.failed += 1
            return
        summary.processed += 1
        summary.record_rows({TeamInningsStats.TABLE: written})

    async def run(self, lookback_days: Optional[int] = None) -> RunSummary:
        summary = RunSummary("backfill-team-stats", dry_run=self.ctx.dry_run)
        try:
            rows = await self.eligible_matches(lookback_days)
        except PersistenceError as e:
            summary.error = str(e)
            logger.error("Could not load backfill candidates", error=str(e))
            return summary.finish()

        for i, row in enumerate(rows, start=1):
            await self.backfill_one(row, summary)
            if i % 10 == 0:
                logger.info("Backfill progress", progress=f"{i}/{len(rows)}", processed=summary.processed)

        return summary.finish()
