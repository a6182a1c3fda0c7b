"""Repair matches stored while their result was still provisional.

An earlier sync may have captured a match that had not finished, leaving
``result`` as "Match in progress" or "Match yet to begin" and the team
innings rows incomplete. The reconciler re-fetches those scorecards and,
once the match has really ended, replaces the team innings rows and the
stored result in one transaction.
"""

from typing import Any, Dict, List, Optional

from ..cricket_logging import get_logger
from ..errors import PersistenceError, ValidationError
from ..models.rows import MatchRecord, TeamInningsStats
from ..store.base import ilike_any
from ..transformers.scorecard import extract_team_innings, innings_list
from .context import PipelineContext, RunSummary

logger = get_logger(__name__)

PROVISIONAL_RESULT_PATTERNS = ("%progress%", "%yet to begin%")
# Substring match: a live "won the toss" status also passes and is held
# back by the two-team-innings requirement instead.
COMPLETION_MARKERS = ("ended", "won", "beat")
MIN_TEAM_INNINGS = 2


def completed_status(scorecard: Dict[str, Any]) -> Optional[str]:
    """The scorecard status when it says the match is over, else None."""
    detail = scorecard.get("Matchdetail")
    status = detail.get("Status") if isinstance(detail, dict) else None
    if not isinstance(status, str):
        return None
    lowered = status.lower()
    if any(marker in lowered for marker in COMPLETION_MARKERS):
        return status
    return None


class Reconciler:
    """Re-fetch and repair matches with a provisional stored result."""

    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx

    async def candidates(self, match_id: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        if match_id:
            where = {"id": match_id}
        else:
            where = {"result": ilike_any(*PROVISIONAL_RESULT_PATTERNS)}
        rows = await self.ctx.store.select(
            MatchRecord.TABLE,
            columns=["id", "series_id", "result"],
            where=where,
            order_by=["id"],
            limit=limit,
        )
        logger.info("Found repair candidates", count=len(rows), match_id=match_id, limit=limit)
        return rows

    def validate(self, match_id: str, series_id: Optional[str], scorecard: Optional[Dict[str, Any]]):
        """Fresh team innings rows and status for a finished match.

        Raises:
            ValidationError: If the scorecard is missing, the match has not
                ended or fewer than two teams have batted
        """
        if not scorecard or not innings_list(scorecard):
            raise ValidationError(match_id, "no_scorecard")

        status = completed_status(scorecard)
        if status is None:
            raise ValidationError(match_id, "not_complete")

        stats = extract_team_innings(scorecard, match_id, series_id)
        if len(stats) < MIN_TEAM_INNINGS:
            raise ValidationError(match_id, "incomplete_innings")
        return stats, status

    async def apply(self, match_id: str, stats: List[TeamInningsStats], status: str) -> None:
        store = self.ctx.store
        async with store.transaction():
            await store.delete(TeamInningsStats.TABLE, {"match_id": match_id})
            await store.upsert_models(stats)
            await store.update(MatchRecord.TABLE, {"result": status}, {"id": match_id})

    async def repair_one(self, row: Dict[str, Any], summary: RunSummary) -> None:
        match_id = row["id"]
        scorecard = await self.ctx.fetch_scorecard(match_id)
        try:
            stats, status = self.validate(match_id, row.get("series_id"), scorecard)
        except ValidationError as e:
            logger.info("Skipping repair", match_id=match_id, reason=e.reason, stored_result=row.get("result"))
            summary.record_skip(e.reason)
            return

        for s in stats:
            logger.debug("Team innings", match_id=match_id, team_id=s.team_id,
                         runs=s.runs, wickets=s.wickets, balls_faced=s.balls_faced)

        if self.ctx.dry_run:
            logger.info("DRY RUN: would repair match", match_id=match_id, result=status, innings=len(stats))
            summary.repaired += 1
            return

        try:
            await self.apply(match_id, stats, status)
        except PersistenceError as e:
            logger.error("Repair failed, rolled back", match_id=match_id, table=e.table, error=str(e))
            summary.failed += 1
            return

        logger.info("Repaired match", match_id=match_id, result=status)
        summary.repaired += 1
        summary.record_rows({TeamInningsStats.TABLE: len(stats)})

    async def run(self, match_id: Optional[str] = None, limit: Optional[int] = None) -> RunSummary:
        """Repair provisional results.

        Args:
            match_id: Repair only this match, whatever its stored result
            limit: Process at most this many candidates

        Returns:
            RunSummary with repaired, skipped and failed counts
        """
        summary = RunSummary("repair", dry_run=self.ctx.dry_run)
        try:
            rows = await self.candidates(match_id=match_id, limit=limit)
        except PersistenceError as e:
            summary.error = str(e)
            logger.error("Could not load repair candidates", error=str(e))
            return summary.finish()

        for i, row in enumerate(rows, start=1):
            logger.info("Processing repair candidate", match_id=row["id"], progress=f"{i}/{len(rows)}")
            await self.repair_one(row, summary)
            summary.processed += 1

        return summary.finish()
