"""Row models written to the analytics store."""

from datetime import date
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from .feed import MatchSummary


class _Row(BaseModel):
    """Base for rows that map one-to-one onto a store table."""

    TABLE: ClassVar[str] = ""
    CONFLICT_KEYS: ClassVar[Tuple[str, ...]] = ()

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump()


class MatchRecord(_Row):
    """``tournament_matches`` row; the aggregate root of a synced match."""

    TABLE = "tournament_matches"
    CONFLICT_KEYS = ("id",)

    id: str
    series_id: Optional[str] = None
    series_name: Optional[str] = None
    match_date: Optional[date] = None
    match_type: Optional[str] = None
    venue_id: Optional[str] = None
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None
    venue_country: Optional[str] = None
    pitch_suited_for: Optional[str] = None
    toss_winner_id: Optional[str] = None
    toss_elected_to: Optional[str] = None
    team_home_id: Optional[str] = None
    team_away_id: Optional[str] = None
    team_home_name: Optional[str] = None
    team_away_name: Optional[str] = None
    result: Optional[str] = None
    priority: int = 100


class BattingInningsRow(_Row):
    TABLE = "batting_innings"
    CONFLICT_KEYS = ("match_id", "innings_number", "player_id")

    match_id: str
    innings_number: int = Field(ge=1, le=4)
    player_id: str
    player_name: str
    team_id: Optional[str] = None
    batting_position: Optional[int] = None
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    dots: int = 0
    strike_rate: Optional[float] = None
    is_out: bool = False
    dismissal_type: Optional[str] = None
    dismissed_by_id: Optional[str] = None
    fielder_id: Optional[str] = None


class BowlingInningsRow(_Row):
    TABLE = "bowling_innings"
    CONFLICT_KEYS = ("match_id", "innings_number", "player_id")

    match_id: str
    innings_number: int = Field(ge=1, le=4)
    player_id: str
    player_name: str
    team_id: Optional[str] = None
    overs: float = 0.0
    balls_bowled: int = 0
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    dots: int = 0
    economy: Optional[float] = None
    wides: int = 0
    noballs: int = 0
    avg_speed: Optional[float] = None


class TeamInningsStats(_Row):
    """Per-team totals for NRR: one row per (match, team)."""

    TABLE = "team_innings_stats"
    CONFLICT_KEYS = ("match_id", "team_id")

    match_id: str
    team_id: str
    innings_number: int = Field(ge=1, le=4)
    series_id: Optional[str] = None
    runs: int = 0
    wickets: int = 0
    overs_display: Optional[str] = None
    balls_faced: int = 0
    alloted_balls: int = 0
    is_all_out: bool = False


class MatchResultRow(_Row):
    """Flat ``matches`` row used for team form and head-to-head lookups."""

    TABLE = "matches"
    CONFLICT_KEYS = ("id",)

    id: str
    match_date: date
    teama_id: Optional[str] = None
    teamb_id: Optional[str] = None
    teama: Optional[str] = None
    teamb: Optional[str] = None
    winner_id: Optional[str] = None
    result: Optional[str] = None
    league: Optional[str] = None
    series_id: Optional[str] = None
    series_name: Optional[str] = None
    venue: Optional[str] = None
    match_type: Optional[str] = None


class TransformedMatch(BaseModel):
    """Everything one scorecard contributes to the store."""

    match: MatchRecord
    batting: List[BattingInningsRow] = Field(default_factory=list)
    bowling: List[BowlingInningsRow] = Field(default_factory=list)
    team_stats: List[TeamInningsStats] = Field(default_factory=list)

    @property
    def match_id(self) -> str:
        return self.match.id


class SeriesGroup(BaseModel):
    """Matches sharing a series id; derived, never persisted."""

    series_id: str
    series_name: Optional[str] = None
    team_ids: Set[str] = Field(default_factory=set)
    matches: List[MatchSummary] = Field(default_factory=list)
    best_priority: int = 999

    @property
    def team_count(self) -> int:
        return len(self.team_ids)
