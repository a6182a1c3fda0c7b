"""Scorecard transformation functions - pure, synchronous.

A scorecard document (the ``data`` block of the scorecard endpoint) has
this shape::

    {
      "Matchdetail": {"Status", "Series": {"Id", "Name"}, "Match": {"Type"},
                      "Venue": {...}, "Tosswonby", "Toss_elected_to",
                      "Team_Home", "Team_Away"},
      "Teams": {"<team id>": {"Name_Full", "Players": {"<player id>": {"Name_Full"}}}},
      "Innings": [{"Number", "Battingteam", "Bowlingteam", "Batsmen": [...],
                   "Bowlers": [...], "Total", "Wickets", "Total_Balls_Bowled",
                   "AllotedBalls", "Overs"}]
    }

Every value may be missing or arrive as a string. Numeric parsing goes
through :mod:`cricket_sync.utils.coerce`.
"""

from typing import Any, List, Mapping, Optional

from ..classify.priority import match_priority
from ..cricket_logging import get_logger
from ..models.enums import MatchFormat
from ..models.feed import MatchSummary
from ..models.rows import (
    BattingInningsRow,
    BowlingInningsRow,
    MatchRecord,
    TeamInningsStats,
    TransformedMatch,
)
from ..utils.coerce import (
    to_float,
    to_float_or_none,
    to_int,
    to_int_or_none,
    to_positive_float_or_none,
    to_str_or_none,
)
from ..utils.dates import date_from_game_id

logger = get_logger(__name__)

INNINGS_ORDINALS: Mapping[str, int] = {"First": 1, "Second": 2, "Third": 3, "Fourth": 4}

ABANDONED_MARKERS = ("abandoned", "no result", "rain stoppage")

NOT_OUT = "not out"
ALL_OUT_WICKETS = 10


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _entries(value: Any) -> List[Mapping[str, Any]]:
    """Dict entries of a list value; anything that is not a list counts as empty."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def _get(d: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(d, Mapping):
            return None
        d = d.get(key)
    return d


def innings_ordinal(label: Any) -> int:
    """Map "First".."Fourth" to 1..4; anything else counts as the first innings."""
    return INNINGS_ORDINALS.get(str(label).strip() if label is not None else "", 1)


def is_abandoned(result: Optional[str]) -> bool:
    if not result:
        return False
    lowered = result.lower()
    return any(marker in lowered for marker in ABANDONED_MARKERS)


def innings_list(scorecard: Any) -> Optional[List[Mapping[str, Any]]]:
    """The scorecard's innings, or None when the document has none."""
    innings = _get(scorecard, "Innings")
    if not isinstance(innings, list):
        return None
    return _entries(innings)


def player_name(teams: Mapping[str, Any], team_id: Optional[str], player_id: str) -> str:
    name = to_str_or_none(_get(teams, team_id or "", "Players", player_id, "Name_Full"))
    return name or f"Player {player_id}"


def team_name(teams: Mapping[str, Any], summary: MatchSummary, team_id: Optional[str]) -> Optional[str]:
    if not team_id:
        return None
    name = to_str_or_none(_get(teams, team_id, "Name_Full"))
    if name:
        return name
    for participant in summary.participants:
        if participant.id == team_id:
            return participant.name
    return None


def build_match_record(scorecard: Mapping[str, Any], summary: MatchSummary) -> MatchRecord:
    """Match row from ``Matchdetail``, falling back to the match-list entry."""
    detail = _mapping(_get(scorecard, "Matchdetail"))
    teams = _mapping(_get(scorecard, "Teams"))
    home_id = to_str_or_none(detail.get("Team_Home"))
    away_id = to_str_or_none(detail.get("Team_Away"))

    return MatchRecord(
        id=summary.game_id,
        series_id=to_str_or_none(_get(detail, "Series", "Id")) or summary.series_id,
        series_name=to_str_or_none(_get(detail, "Series", "Name")) or summary.series_name,
        match_date=summary.match_date() or date_from_game_id(summary.game_id),
        match_type=MatchFormat.normalize(
            to_str_or_none(_get(detail, "Match", "Type")) or summary.event_format
        ),
        venue_id=to_str_or_none(_get(detail, "Venue", "Id")),
        venue_name=to_str_or_none(_get(detail, "Venue", "Name")) or summary.venue,
        venue_city=to_str_or_none(_get(detail, "Venue", "City")),
        venue_country=to_str_or_none(_get(detail, "Venue", "Country")),
        pitch_suited_for=to_str_or_none(_get(detail, "Venue", "Pitch_Detail", "Pitch_Suited_For")),
        toss_winner_id=to_str_or_none(detail.get("Tosswonby")),
        toss_elected_to=to_str_or_none(detail.get("Toss_elected_to")),
        team_home_id=home_id,
        team_away_id=away_id,
        team_home_name=team_name(teams, summary, home_id),
        team_away_name=team_name(teams, summary, away_id),
        result=to_str_or_none(detail.get("Status")) or summary.event_sub_status,
        priority=match_priority(summary),
    )


def transform_batting(
    innings: Mapping[str, Any],
    teams: Mapping[str, Any],
    match_id: str,
) -> List[BattingInningsRow]:
    number = innings_ordinal(innings.get("Number"))
    team_id = to_str_or_none(innings.get("Battingteam"))
    rows = []
    for bat in _entries(innings.get("Batsmen")):
        player_id = to_str_or_none(_get(bat, "Batsman"))
        if not player_id:
            continue
        dismissal = (to_str_or_none(bat.get("Dismissal")) or "").lower()
        rows.append(BattingInningsRow(
            match_id=match_id,
            innings_number=number,
            player_id=player_id,
            player_name=player_name(teams, team_id, player_id),
            team_id=team_id,
            batting_position=to_int_or_none(bat.get("Number")),
            runs=to_int(bat.get("Runs")),
            balls=to_int(bat.get("Balls")),
            fours=to_int(bat.get("Fours")),
            sixes=to_int(bat.get("Sixes")),
            dots=to_int(bat.get("Dots")),
            strike_rate=to_float_or_none(bat.get("Strikerate")),
            is_out=dismissal not in ("", NOT_OUT),
            dismissal_type=to_str_or_none(bat.get("DismissalType")),
            dismissed_by_id=to_str_or_none(bat.get("Bowler")),
            fielder_id=to_str_or_none(bat.get("Fielder")),
        ))
    return rows


def transform_bowling(
    innings: Mapping[str, Any],
    teams: Mapping[str, Any],
    match_id: str,
) -> List[BowlingInningsRow]:
    number = innings_ordinal(innings.get("Number"))
    team_id = to_str_or_none(innings.get("Bowlingteam"))
    rows = []
    for bowl in _entries(innings.get("Bowlers")):
        player_id = to_str_or_none(_get(bowl, "Bowler"))
        if not player_id:
            continue
        rows.append(BowlingInningsRow(
            match_id=match_id,
            innings_number=number,
            player_id=player_id,
            player_name=player_name(teams, team_id, player_id),
            team_id=team_id,
            overs=to_float(bowl.get("Overs")),
            balls_bowled=to_int(bowl.get("Balls_Bowled")),
            maidens=to_int(bowl.get("Maidens")),
            runs=to_int(bowl.get("Runs")),
            wickets=to_int(bowl.get("Wickets")),
            dots=to_int(bowl.get("Dots")),
            economy=to_float_or_none(bowl.get("Economyrate")),
            wides=to_int(bowl.get("Wides")),
            noballs=to_int(bowl.get("Noballs")),
            # 0 means the speed gun was not in use
            avg_speed=to_positive_float_or_none(bowl.get("Avg_Speed")),
        ))
    return rows


def unique_by_key(rows: List[Any]) -> List[Any]:
    """Drop rows whose conflict key was already seen, keeping the first.

    Super overs reuse innings labels, and one INSERT .. ON CONFLICT cannot
    touch the same key twice.
    """
    seen = set()
    unique = []
    for row in rows:
        key = tuple(getattr(row, k) for k in row.CONFLICT_KEYS)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique


def extract_team_innings(
    scorecard: Any,
    match_id: str,
    series_id: Optional[str] = None,
) -> List[TeamInningsStats]:
    """Per-team innings totals used for net run rate.

    One row per batting team: a team that bats twice (Test second innings,
    super over) keeps its first innings. Innings without a batting team
    are ignored.

    Args:
        scorecard: Scorecard document
        match_id: Owning match id
        series_id: Owning series id, copied onto every row

    Returns:
        Team innings rows in batting order; empty when the scorecard has no innings
    """
    stats: List[TeamInningsStats] = []
    seen = set()
    for inn in innings_list(scorecard) or []:
        team_id = to_str_or_none(inn.get("Battingteam"))
        if not team_id or team_id in seen:
            continue
        seen.add(team_id)

        wickets = to_int(inn.get("Wickets"))
        stats.append(TeamInningsStats(
            match_id=match_id,
            team_id=team_id,
            innings_number=innings_ordinal(inn.get("Number")),
            series_id=series_id,
            runs=to_int(inn.get("Total")),
            wickets=wickets,
            overs_display=to_str_or_none(inn.get("Overs")),
            balls_faced=to_int(inn.get("Total_Balls_Bowled")),
            alloted_balls=to_int(inn.get("AllotedBalls")),
            is_all_out=wickets == ALL_OUT_WICKETS,
        ))
    return stats


def transform_scorecard(scorecard: Any, summary: MatchSummary) -> Optional[TransformedMatch]:
    """Normalize one scorecard into match, batting, bowling and team rows.

    Args:
        scorecard: Scorecard document (``data`` block of the response)
        summary: Match-list entry the scorecard was fetched for

    Returns:
        TransformedMatch, or None when the scorecard has no innings list or
        the match was abandoned, had no result or was stopped by rain
    """
    innings = innings_list(scorecard)
    if innings is None:
        logger.debug("Scorecard has no innings", match_id=summary.game_id)
        return None
    if not summary.game_id:
        logger.warning("Match summary has no game id", series_id=summary.series_id)
        return None

    match = build_match_record(scorecard, summary)
    if is_abandoned(match.result):
        logger.info("Rejecting abandoned match", match_id=match.id, result=match.result)
        return None

    teams = _mapping(_get(scorecard, "Teams"))
    batting: List[BattingInningsRow] = []
    bowling: List[BowlingInningsRow] = []
    for inn in innings:
        batting.extend(transform_batting(inn, teams, match.id))
        bowling.extend(transform_bowling(inn, teams, match.id))

    return TransformedMatch(
        match=match,
        batting=unique_by_key(batting),
        bowling=unique_by_key(bowling),
        team_stats=extract_team_innings(scorecard, match.id, match.series_id),
    )
