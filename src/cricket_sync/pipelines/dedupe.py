"""Remove redundant batting rows left behind by non-idempotent runs."""

from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..cricket_logging import get_logger
from ..errors import PersistenceError
from ..models.rows import BattingInningsRow, MatchRecord
from ..store.base import chunked, one_of
from .context import PipelineContext, RunSummary

logger = get_logger(__name__)

# A player has one batting row per innings; rows from different innings are never duplicates.
DUPLICATE_KEY: Tuple[str, ...] = ("match_id", "innings_number", "player_id")


def _recency(row: Dict[str, Any]):
    created_at = row.get("created_at")
    return (created_at is not None, created_at if created_at is not None else 0, row.get("id") or 0)


def redundant_row_ids(rows: Iterable[Dict[str, Any]], key: Sequence[str] = DUPLICATE_KEY) -> List[Any]:
    """Ids of every row except the newest in each duplicate group.

    The newest row has the latest ``created_at``; ties go to the highest id.
    """
    groups: Dict[Tuple[Any, ...], List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(tuple(row.get(k) for k in key), []).append(row)

    doomed = []
    for members in groups.values():
        if len(members) < 2:
            continue
        keep = max(members, key=_recency)
        doomed.extend(r["id"] for r in members if r is not keep)
    return doomed


class DuplicateCleaner:
    """Chunked duplicate cleanup over all stored matches."""

    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx
        self.key = DUPLICATE_KEY

    async def clean_chunk(self, match_ids: Sequence[str], summary: RunSummary) -> None:
        store = self.ctx.store
        rows = await store.select(
            BattingInningsRow.TABLE,
            columns=["id", "match_id", "innings_number", "player_id", "created_at"],
            where={"match_id": one_of(match_ids)},
        )
        doomed = redundant_row_ids(rows, self.key)
        if not doomed:
            return

        if self.ctx.dry_run:
            logger.info("DRY RUN: would remove duplicate rows", rows=len(doomed), matches=len(match_ids))
            summary.removed += len(doomed)
            return

        removed = 0
        async with store.transaction():
            for batch in chunked(doomed, store.batch_size):
                removed += await store.delete(BattingInningsRow.TABLE, {"id": one_of(batch)})
        logger.info("Removed duplicate rows", rows=removed, matches=len(match_ids))
        summary.removed += removed

    async def run(self) -> RunSummary:
        """Remove duplicates chunk by chunk; a failed chunk is counted and skipped."""
        summary = RunSummary("clean", dry_run=self.ctx.dry_run)
        try:
            match_rows = await self.ctx.store.select(MatchRecord.TABLE, columns=["id"], order_by=["id"])
        except PersistenceError as e:
            summary.error = str(e)
            logger.error("Could not load stored matches", error=str(e))
            return summary.finish()

        match_ids = [row["id"] for row in match_rows]
        logger.info("Scanning for duplicate batting rows",
                    matches=len(match_ids),
                    key=list(self.key),
                    chunk_size=self.ctx.settings.DEDUPE_CHUNK_SIZE)

        for chunk in chunked(match_ids, self.ctx.settings.DEDUPE_CHUNK_SIZE):
            try:
                await self.clean_chunk(chunk, summary)
            except PersistenceError as e:
                summary.failed += 1
                logger.error("Duplicate cleanup failed for chunk",
                             first_match=chunk[0], matches=len(chunk), error=str(e))
                continue
            summary.processed += len(chunk)

        return summary.finish()
