"""Incremental sync of premium-tournament scorecards into the store.

A run fetches recently finished matches, keeps premium tournaments, drops
ids already stored, then fetches and transforms each remaining scorecard
one at a time. Transformed matches are written in chunks; each chunk is a
single transaction that upserts the match rows and replaces their batting,
bowling and team-innings rows. A failed chunk rolls back completely and
its matches are picked up again by the next run.
"""

from typing import Callable, Dict, List, Optional, Sequence

import pydantic

from ..classify.priority import match_priority
from ..classify.tournaments import filter_premium_tournaments
from ..cricket_logging import get_logger
from ..errors import PersistenceError
from ..models.enums import EventState
from ..models.feed import MatchSummary
from ..models.rows import (
    BattingInningsRow,
    BowlingInningsRow,
    MatchRecord,
    TeamInningsStats,
    TransformedMatch,
)
from ..store.base import chunked, one_of
from ..transformers.scorecard import transform_scorecard
from ..utils.dates import lookback_window
from .context import PipelineContext, RunSummary

logger = get_logger(__name__)

DETAIL_MODELS = (BattingInningsRow, BowlingInningsRow, TeamInningsStats)


class SyncOrchestrator:
    """Drives one incremental sync run."""

    def __init__(
        self,
        ctx: PipelineContext,
        classifier: Callable[[MatchSummary], int] = match_priority,
    ) -> None:
        self.ctx = ctx
        self.classifier = classifier

    async def fetch_candidates(
        self,
        lookback_days: Optional[int] = None,
        gamestate: Optional[str] = None,
        since: Optional[str] = None,
    ) -> List[MatchSummary]:
        """Finished matches from the look-back window or a gamestate listing."""
        if gamestate is not None:
            matches = await self.ctx.feed.fetch_matches(gamestate=gamestate, since=since)
        else:
            days = self.ctx.settings.SYNC_LOOKBACK_DAYS if lookback_days is None else lookback_days
            start, end = lookback_window(days, end=self.ctx.now().date())
            matches = await self.ctx.feed.fetch_matches(start=start, end=end, since=since)

        finished = EventState.finished()
        return [m for m in matches if m.event_state in finished]

    async def new_matches(self, matches: Sequence[MatchSummary]) -> List[MatchSummary]:
        """Matches whose ids are neither stored nor seen earlier in this run."""
        unique: Dict[str, MatchSummary] = {}
        for match in matches:
            if match.game_id and match.game_id not in unique:
                unique[match.game_id] = match

        stored = await self.ctx.store.existing_ids(MatchRecord.TABLE, list(unique))
        self.ctx.known_ids.update(stored)

        fresh = [m for gid, m in unique.items() if gid not in self.ctx.known_ids]
        logger.info("Computed new matches",
                    candidates=len(unique),
                    already_synced=len(unique) - len(fresh),
                    new=len(fresh))
        return fresh

    async def collect(self, matches: Sequence[MatchSummary], summary: RunSummary) -> List[TransformedMatch]:
        """Fetch and transform scorecards sequentially, skipping unusable ones."""
        transformed: List[TransformedMatch] = []
        total = len(matches)
        for i, match in enumerate(matches, start=1):
            scorecard = await self.ctx.fetch_scorecard(match.game_id)
            if scorecard is None:
                logger.info("No scorecard, skipping", match_id=match.game_id, progress=f"{i}/{total}")
                summary.record_skip("no_scorecard")
                continue

            try:
                result = transform_scorecard(scorecard, match)
            except (pydantic.ValidationError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Scorecard could not be transformed", match_id=match.game_id, error=str(e))
                summary.record_skip("invalid_scorecard")
                continue

            if result is None:
                summary.record_skip("rejected")
                continue

            transformed.append(result)
            if i % 10 == 0:
                logger.info("Sync progress", progress=f"{i}/{total}", series=match.series_name)
        return transformed

    async def write_chunk(self, chunk: Sequence[TransformedMatch]) -> Dict[str, int]:
        """Upsert match rows and replace their detail rows; caller owns the transaction."""
        store = self.ctx.store
        ids = [t.match_id for t in chunk]
        counts = {MatchRecord.TABLE: await store.upsert_models([t.match for t in chunk])}

        for model in DETAIL_MODELS:
            await store.delete(model.TABLE, {"match_id": one_of(ids)})

        counts[BattingInningsRow.TABLE] = await store.upsert_models(
            [row for t in chunk for row in t.batting])
        counts[BowlingInningsRow.TABLE] = await store.upsert_models(
            [row for t in chunk for row in t.bowling])
        counts[TeamInningsStats.TABLE] = await store.upsert_models(
            [row for t in chunk for row in t.team_stats])
        return counts

    async def write(self, transformed: Sequence[TransformedMatch], summary: RunSummary) -> None:
        chunk_size = self.ctx.settings.BATCH_SIZE
        for chunk in chunked(list(transformed), chunk_size):
            if self.ctx.dry_run:
                summary.processed += len(chunk)
                summary.record_rows({
                    MatchRecord.TABLE: len(chunk),
                    BattingInningsRow.TABLE: sum(len(t.batting) for t in chunk),
                    BowlingInningsRow.TABLE: sum(len(t.bowling) for t in chunk),
                    TeamInningsStats.TABLE: sum(len(t.team_stats) for t in chunk),
                })
                continue

            try:
                async with self.ctx.store.transaction():
                    counts = await self.write_chunk(chunk)
            except PersistenceError as e:
                summary.failed += len(chunk)
                logger.error("Chunk write failed, rolled back",
                             matches=len(chunk),
                             table=e.table,
                             error=str(e))
                continue

            summary.processed += len(chunk)
            summary.record_rows(counts)
            self.ctx.known_ids.update(t.match_id for t in chunk)

    async def run(
        self,
        lookback_days: Optional[int] = None,
        gamestate: Optional[str] = None,
        since: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> RunSummary:
        """Run one incremental sync.

        Args:
            lookback_days: Window size in days (defaults to SYNC_LOOKBACK_DAYS)
            gamestate: Use a gamestate listing instead of the date window
            since: Ignore matches starting before this ISO date
            limit: Process at most this many new matches

        Returns:
            RunSummary with processed, skipped and failed counts
        """
        summary = RunSummary("sync", dry_run=self.ctx.dry_run)
        logger.info("Starting sync",
                    lookback_days=lookback_days,
                    gamestate=gamestate,
                    since=since,
                    limit=limit,
                    dry_run=self.ctx.dry_run)
        try:
            candidates = await self.fetch_candidates(lookback_days, gamestate, since)
            premium = filter_premium_tournaments(candidates, classifier=self.classifier)
            fresh = await self.new_matches(premium)
            if limit is not None:
                fresh = fresh[:limit]

            if not fresh:
                logger.info("No new matches to sync")
            else:
                transformed = await self.collect(fresh, summary)
                await self.write(transformed, summary)
        except PersistenceError as e:
            summary.error = str(e)
            logger.error("Sync aborted", error=str(e))

        return summary.finish()
