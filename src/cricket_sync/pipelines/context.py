"""Per-run context and run summaries shared by all pipelines."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from ..config import AppSettings
from ..cricket_logging import get_logger
from ..io_clients.feed import FeedClient
from ..rate_limit import build_pacer
from ..store.base import Store
from ..store.postgres import create_store

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunSummary:
    """Counters reported at the end of every run."""
    name: str
    dry_run: bool = False
    processed: int = 0
    repaired: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0
    rows_written: Dict[str, int] = field(default_factory=dict)
    skip_reasons: Dict[str, int] = field(default_factory=dict)
    started_at: datetime = field(default_factory=utc_now)
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def record_skip(self, reason: str) -> None:
        self.skipped += 1
        self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1

    def record_rows(self, counts: Dict[str, int]) -> None:
        for table, count in counts.items():
            self.rows_written[table] = self.rows_written.get(table, 0) + count

    def finish(self) -> "RunSummary":
        self.duration_seconds = (utc_now() - self.started_at).total_seconds()
        logger.info("Run finished", **self.as_dict())
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {
            "run": self.name,
            "dry_run": self.dry_run,
            "processed": self.processed,
            "repaired": self.repaired,
            "skipped": self.skipped,
            "failed": self.failed,
            "removed": self.removed,
            "rows_written": dict(self.rows_written),
            "duration_seconds": round(self.duration_seconds, 2),
            "error": self.error,
        }

    def lines(self) -> List[str]:
        """Human-readable summary for the CLI."""
        prefix = "DRY RUN " if self.dry_run else ""
        verb = "would write" if self.dry_run else "written"
        out = [f"{prefix}{self.name} complete in {self.duration_seconds:.1f}s"]
        out.append(f"  processed: {self.processed}")
        if self.repaired:
            out.append(f"  repaired:  {self.repaired}")
        if self.removed:
            out.append(f"  removed:   {self.removed}")
        out.append(f"  skipped:   {self.skipped}")
        for reason, count in sorted(self.skip_reasons.items()):
            out.append(f"    {reason}: {count}")
        out.append(f"  failed:    {self.failed}")
        for table, count in sorted(self.rows_written.items()):
            out.append(f"  {table}: {count} rows {verb}")
        if self.error:
            out.append(f"  error: {self.error}")
        return out


@dataclass
class PipelineContext:
    """Collaborators and state for one run.

    Replaces module-level caches: everything a pipeline stage needs is
    passed in explicitly, and ``known_ids`` lives only as long as the run.
    """
    settings: AppSettings
    feed: FeedClient
    store: Store
    pacer: Any
    dry_run: bool = False
    known_ids: Set[str] = field(default_factory=set)
    now: Callable[[], datetime] = utc_now

    @classmethod
    async def open(cls, settings: AppSettings, dry_run: bool = False) -> "PipelineContext":
        """Connect the store and build the feed client from settings.

        Raises:
            ConfigurationError: If the store settings are missing
        """
        settings.require_store()
        store = await create_store(settings)
        return cls(
            settings=settings,
            feed=FeedClient(settings),
            store=store,
            pacer=build_pacer(settings),
            dry_run=dry_run,
        )

    async def fetch_scorecard(self, game_id: str) -> Optional[Dict[str, Any]]:
        """Paced scorecard fetch; None when the feed had nothing usable."""
        await self.pacer.wait()
        return await self.feed.fetch_scorecard(game_id)

    async def aclose(self) -> None:
        try:
            await self.feed.aclose()
        finally:
            await self.store.close()

    async def __aenter__(self) -> "PipelineContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
