"""Pipeline orchestration for cricket feed ingestion and repair."""

from .backfill import TeamStatsBackfill
from .context import PipelineContext, RunSummary
from .dedupe import DuplicateCleaner
from .match_list import MatchListSync
from .reconcile import Reconciler
from .sync import SyncOrchestrator

__all__ = [
    'DuplicateCleaner',
    'MatchListSync',
    'PipelineContext',
    'Reconciler',
    'RunSummary',
    'SyncOrchestrator',
    'TeamStatsBackfill',
]
