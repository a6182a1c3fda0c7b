"""Unit tests for store filter semantics and the shared Store helpers."""

from datetime import datetime, timezone

import pytest

from cricket_sync.models.rows import TeamInningsStats
from cricket_sync.store.base import (
    Condition,
    as_rows,
    at_least,
    chunked,
    condition_holds,
    ilike_any,
    one_of,
    row_matches,
)

from tests.fakes import InMemoryStore


class TestConditions:
    """Filter conditions follow SQL semantics, NULL included."""

    def test_bare_value_is_equality(self):
        assert row_matches({"id": "M1"}, {"id": "M1"})
        assert not row_matches({"id": "M2"}, {"id": "M1"})

    def test_null_never_matches(self):
        assert not row_matches({"result": None}, {"result": None})
        assert not row_matches({"result": None}, {"result": ilike_any("%")})
        assert not row_matches({}, {"id": one_of(["M1"])})

    def test_one_of(self):
        assert row_matches({"id": "M2"}, {"id": one_of(["M1", "M2"])})
        assert not row_matches({"id": "M3"}, {"id": one_of(["M1", "M2"])})
        assert not row_matches({"id": "M1"}, {"id": one_of([])})

    def test_at_least(self):
        cutoff = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert row_matches({"created_at": cutoff}, {"created_at": at_least(cutoff)})
        assert not row_matches(
            {"created_at": datetime(2024, 12, 31, tzinfo=timezone.utc)},
            {"created_at": at_least(cutoff)},
        )

    @pytest.mark.parametrize("value,expected", [
        ("Match in progress", True),
        ("MATCH IN PROGRESS", True),
        ("Match yet to begin", True),
        ("India won by 5 wickets", False),
        ("progress report", True),
    ])
    def test_ilike_any(self, value, expected):
        where = {"result": ilike_any("%progress%", "%yet to begin%")}
        assert row_matches({"result": value}, where) is expected

    def test_ilike_escapes_regex_characters(self):
        assert condition_holds("a.b", Condition("ilike_any", ("a.b",)))
        assert not condition_holds("axb", Condition("ilike_any", ("a.b",)))

    def test_conditions_are_anded(self):
        row = {"id": "M1", "result": "Result"}
        assert row_matches(row, {"id": "M1", "result": one_of(["Result"])})
        assert not row_matches(row, {"id": "M1", "result": "Stumps"})

    def test_empty_filter_matches_everything(self):
        assert row_matches({"id": "M1"}, None)
        assert row_matches({"id": "M1"}, {})

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            condition_holds(1, Condition("between", (0, 2)))


def test_chunked():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 3)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_as_rows_accepts_models_and_dicts():
    model = TeamInningsStats(match_id="M1", team_id="1", innings_number=1)
    rows = as_rows([model, {"match_id": "M2"}])
    assert rows[0]["match_id"] == "M1"
    assert rows[0]["is_all_out"] is False
    assert rows[1] == {"match_id": "M2"}


@pytest.mark.asyncio
async def test_existing_ids_batches_lookups():
    store = InMemoryStore(batch_size=2)
    store.seed("tournament_matches", [{"id": "M1"}, {"id": "M3"}, {"id": "M5"}])

    found = await store.existing_ids("tournament_matches", ["M1", "M2", "M3", "M4", "M5"])

    assert found == {"M1", "M3", "M5"}
    assert store.calls.count(("select", "tournament_matches")) == 3


@pytest.mark.asyncio
async def test_upsert_models_uses_model_table_and_key():
    store = InMemoryStore(batch_size=1)
    stats = [
        TeamInningsStats(match_id="M1", team_id="1", innings_number=1, runs=150),
        TeamInningsStats(match_id="M1", team_id="2", innings_number=2, runs=120),
    ]
    assert await store.upsert_models(stats) == 2
    assert await store.upsert_models([TeamInningsStats(match_id="M1", team_id="1", innings_number=1, runs=155)]) == 1

    rows = store.rows("team_innings_stats")
    assert len(rows) == 2
    assert sorted(r["runs"] for r in rows) == [120, 155]
    assert await store.upsert_models([]) == 0
