"""In-memory collaborators and document builders for pipeline tests."""

import copy
import itertools
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from cricket_sync.errors import PersistenceError
from cricket_sync.models.feed import MatchSummary
from cricket_sync.store.base import Row, Store, Where, as_rows, row_matches


class InMemoryStore(Store):
    """Store that keeps tables as lists of dicts.

    Mirrors the PostgreSQL store closely enough for pipeline tests:
    surrogate ids and ``created_at`` are assigned on insert, upserts
    overwrite on the conflict key, and a transaction restores a snapshot
    when its body raises. ``fail_on`` holds ``(operation, table)`` pairs
    that raise ``PersistenceError``.
    """

    def __init__(self, batch_size: int = 500) -> None:
        self.batch_size = batch_size
        self.tables: Dict[str, List[Row]] = defaultdict(list)
        self.fail_on: Set[Tuple[str, str]] = set()
        self.calls: List[Tuple[str, str]] = []
        self.transactions = 0
        self.rollbacks = 0
        self._ids = itertools.count(1)
        self.clock = lambda: datetime.now(timezone.utc)

    def _record(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if (op, table) in self.fail_on:
            raise PersistenceError(f"{op} on {table} failed", table=table)

    def seed(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        for row in rows:
            stored = dict(row)
            stored.setdefault("id", next(self._ids))
            stored.setdefault("created_at", self.clock())
            self.tables[table].append(stored)

    def rows(self, table: str) -> List[Row]:
        return [dict(r) for r in self.tables[table]]

    async def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Where] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        self._record("select", table)
        rows = [dict(r) for r in self.tables[table] if row_matches(r, where)]
        for item in reversed(order_by or []):
            tokens = item.split()
            rows.sort(
                key=lambda r: (r.get(tokens[0]) is None, r.get(tokens[0])),
                reverse=len(tokens) == 2 and tokens[1].upper() == "DESC",
            )
        if limit is not None:
            rows = rows[:limit]
        if columns:
            rows = [{c: r.get(c) for c in columns} for r in rows]
        return rows

    async def upsert(self, table: str, rows: Iterable[Any], conflict_keys: Tuple[str, ...]) -> int:
        self._record("upsert", table)
        written = 0
        for row in as_rows(rows):
            key = tuple(row.get(k) for k in conflict_keys)
            existing = next(
                (r for r in self.tables[table] if tuple(r.get(k) for k in conflict_keys) == key),
                None,
            )
            if existing is not None:
                existing.update(row)
                existing["updated_at"] = self.clock()
            else:
                stored = dict(row)
                stored.setdefault("id", next(self._ids))
                stored["created_at"] = self.clock()
                self.tables[table].append(stored)
            written += 1
        return written

    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> int:
        self._record("update", table)
        updated = 0
        for row in self.tables[table]:
            if row_matches(row, where):
                row.update(values)
                updated += 1
        return updated

    async def delete(self, table: str, where: Where) -> int:
        self._record("delete", table)
        before = len(self.tables[table])
        self.tables[table] = [r for r in self.tables[table] if not row_matches(r, where)]
        return before - len(self.tables[table])

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        snapshot = copy.deepcopy(self.tables)
        try:
            yield
        except BaseException:
            self.tables = snapshot
            self.rollbacks += 1
            raise


class FakeFeedClient:
    """Feed client serving canned match lists and scorecards."""

    def __init__(
        self,
        matches: Optional[Sequence[Any]] = None,
        scorecards: Optional[Mapping[str, Optional[Dict[str, Any]]]] = None,
    ) -> None:
        self.matches = list(matches or [])
        self.scorecards = dict(scorecards or {})
        self.match_calls: List[Dict[str, Any]] = []
        self.scorecard_calls: List[str] = []
        self.closed = False

    async def fetch_matches(self, start=None, end=None, gamestate=None, since=None) -> List[MatchSummary]:
        self.match_calls.append({"start": start, "end": end, "gamestate": gamestate, "since": since})
        matches = [m if isinstance(m, MatchSummary) else MatchSummary.model_validate(m) for m in self.matches]
        if since:
            matches = [m for m in matches if m.start_date and m.start_date >= since]
        return matches

    async def fetch_scorecard(self, game_id: str) -> Optional[Dict[str, Any]]:
        self.scorecard_calls.append(game_id)
        return copy.deepcopy(self.scorecards.get(game_id))

    async def aclose(self) -> None:
        self.closed = True


class RecordingPacer:
    def __init__(self) -> None:
        self.waits = 0

    async def wait(self) -> None:
        self.waits += 1


def make_match(
    game_id: str,
    series_id: Optional[str] = "S1",
    series_name: str = "Big Bash League",
    team_ids: Sequence[str] = ("1", "2"),
    event_state: str = "R",
    start_date: str = "2025-01-10T08:00:00",
    **extra: Any,
) -> Dict[str, Any]:
    """Match-list entry as the feed returns it."""
    match = {
        "game_id": game_id,
        "series_id": series_id,
        "series_name": series_name,
        "parent_series_name": "",
        "championship_name": "",
        "event_state": event_state,
        "event_format": "T20",
        "start_date": start_date,
        "venue": "Melbourne Cricket Ground",
        "participants": [{"id": tid, "name": f"Team {tid}"} for tid in team_ids],
    }
    match.update(extra)
    return match


def make_innings(
    number: str = "First",
    batting_team: str = "1",
    bowling_team: str = "2",
    total: str = "150",
    wickets: str = "6",
    balls: str = "120",
    alloted: str = "120",
    overs: str = "20",
    batsmen: Optional[List[Dict[str, Any]]] = None,
    bowlers: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    if batsmen is None:
        batsmen = [
            {"Batsman": f"{batting_team}01", "Number": "1", "Runs": "45", "Balls": "30",
             "Fours": "4", "Sixes": "2", "Dots": "8", "Strikerate": "150.00",
             "Dismissal": "c Fielder b Bowler", "DismissalType": "C",
             "Bowler": f"{bowling_team}01", "Fielder": f"{bowling_team}02"},
            {"Batsman": f"{batting_team}02", "Number": "2", "Runs": "60", "Balls": "44",
             "Fours": "5", "Sixes": "1", "Dots": "12", "Strikerate": "136.36",
             "Dismissal": "not out", "DismissalType": "", "Bowler": "", "Fielder": ""},
        ]
    if bowlers is None:
        bowlers = [
            {"Bowler": f"{bowling_team}01", "Overs": "4", "Balls_Bowled": "24", "Maidens": "0",
             "Runs": "32", "Wickets": "1", "Dots": "9", "Economyrate": "8.00",
             "Wides": "1", "Noballs": "0", "Avg_Speed": "138.5"},
        ]
    return {
        "Number": number,
        "Battingteam": batting_team,
        "Bowlingteam": bowling_team,
        "Total": total,
        "Wickets": wickets,
        "Total_Balls_Bowled": balls,
        "AllotedBalls": alloted,
        "Overs": overs,
        "Batsmen": batsmen,
        "Bowlers": bowlers,
    }


def make_scorecard(
    status: str = "Team 1 won by 20 runs",
    innings: Optional[List[Dict[str, Any]]] = None,
    home: str = "1",
    away: str = "2",
    series_id: str = "S1",
    series_name: str = "Big Bash League",
) -> Dict[str, Any]:
    """Scorecard ``data`` block with two teams of two named players."""
    if innings is None:
        innings = [
            make_innings("First", home, away, total="170", wickets="10", balls="118"),
            make_innings("Second", away, home, total="150", wickets="8", balls="120"),
        ]
    teams = {
        tid: {
            "Name_Full": f"Team {tid}",
            "Players": {
                f"{tid}01": {"Name_Full": f"Player One of {tid}"},
                f"{tid}02": {"Name_Full": f"Player Two of {tid}"},
            },
        }
        for tid in (home, away)
    }
    return {
        "Matchdetail": {
            "Status": status,
            "Series": {"Id": series_id, "Name": series_name},
            "Match": {"Type": "T20"},
            "Venue": {
                "Id": "V1", "Name": "Melbourne Cricket Ground", "City": "Melbourne",
                "Country": "Australia", "Pitch_Detail": {"Pitch_Suited_For": "Batting"},
            },
            "Tosswonby": home,
            "Toss_elected_to": "bat",
            "Team_Home": home,
            "Team_Away": away,
        },
        "Teams": teams,
        "Innings": innings,
    }
