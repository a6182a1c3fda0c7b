"""Unit tests for duplicate batting row cleanup."""

from datetime import datetime, timedelta, timezone

import pytest

from cricket_sync.pipelines.dedupe import DuplicateCleaner, redundant_row_ids
from cricket_sync.pipelines.sync import SyncOrchestrator

from tests.fakes import make_innings, make_match, make_scorecard

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _row(row_id, player_id="P1", match_id="M1", innings=1, created=T0):
    return {
        "id": row_id,
        "match_id": match_id,
        "innings_number": innings,
        "player_id": player_id,
        "player_name": f"Player {player_id}",
        "created_at": created,
    }


def test_keeps_latest_created_row():
    rows = [
        _row(1, created=T0),
        _row(2, created=T0 + timedelta(hours=2)),
        _row(3, created=T0 + timedelta(hours=1)),
    ]
    assert sorted(redundant_row_ids(rows)) == [1, 3]


def test_ties_keep_highest_id():
    rows = [_row(7), _row(9), _row(8)]
    assert sorted(redundant_row_ids(rows)) == [7, 8]


def test_unique_rows_are_kept():
    rows = [_row(1, player_id="P1"), _row(2, player_id="P2"), _row(3, match_id="M2")]
    assert redundant_row_ids(rows) == []


def test_rows_from_different_innings_are_kept():
    rows = [_row(1, innings=1), _row(2, innings=3), _row(3, innings=3)]
    assert redundant_row_ids(rows) == [2]


def _seed(store):
    store.seed("tournament_matches", [{"id": "M1"}, {"id": "M2"}, {"id": "M3"}])
    store.seed("batting_innings", [
        _row(1, created=T0),
        _row(2, created=T0 + timedelta(minutes=5)),
        _row(3, created=T0 + timedelta(minutes=10)),
        _row(4, player_id="P2"),
        _row(5, match_id="M3", innings=1),
        _row(6, match_id="M3", innings=2, created=T0 + timedelta(minutes=1)),
    ])


@pytest.mark.asyncio
async def test_run_removes_all_but_newest(ctx, store):
    _seed(store)

    summary = await DuplicateCleaner(ctx).run()

    assert summary.removed == 2
    assert summary.processed == 3
    assert sorted(r["id"] for r in store.rows("batting_innings")) == [3, 4, 5, 6]


@pytest.mark.asyncio
async def test_synced_multi_innings_matches_are_untouched(ctx, feed, store):
    four_innings = [
        make_innings("First", "1", "2"),
        make_innings("Second", "2", "1"),
        make_innings("Third", "1", "2"),
        make_innings("Fourth", "2", "1"),
    ]
    feed.matches = [
        make_match(gid, team_ids=teams)
        for gid, teams in (("M1", ("1", "2")), ("M2", ("2", "3")), ("M3", ("3", "1")))
    ]
    feed.scorecards = {gid: make_scorecard(innings=four_innings) for gid in ("M1", "M2", "M3")}
    await SyncOrchestrator(ctx).run()
    assert len(store.rows("batting_innings")) == 24

    summary = await DuplicateCleaner(ctx).run()

    assert summary.removed == 0
    assert len(store.rows("batting_innings")) == 24


@pytest.mark.asyncio
async def test_run_is_chunked(ctx, store, settings):
    settings.DEDUPE_CHUNK_SIZE = 2
    _seed(store)

    await DuplicateCleaner(ctx).run()

    assert store.calls.count(("select", "batting_innings")) == 2


@pytest.mark.asyncio
async def test_dry_run_reports_without_deleting(dry_ctx, store):
    _seed(store)

    summary = await DuplicateCleaner(dry_ctx).run()

    assert summary.removed == 2
    assert len(store.rows("batting_innings")) == 6


@pytest.mark.asyncio
async def test_failed_chunk_is_counted(ctx, store):
    _seed(store)
    store.fail_on.add(("delete", "batting_innings"))

    summary = await DuplicateCleaner(ctx).run()

    assert summary.failed == 1
    assert summary.removed == 0
    assert summary.success
    assert len(store.rows("batting_innings")) == 6
