"""Table definitions for the analytics store.

The SQLAlchemy metadata is the single source of truth for table and
column names: Alembic autogenerates against it and the asyncpg store
refuses any identifier that is not declared here.
"""

from typing import Dict, FrozenSet

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import make_url

from ..config import AppSettings

metadata = MetaData()


def _timestamps():
    return (
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    )


tournament_matches = Table(
    "tournament_matches",
    metadata,
    Column("id", Text, primary_key=True),
    Column("series_id", Text, index=True),
    Column("series_name", Text),
    Column("match_date", Date),
    Column("match_type", Text),
    Column("venue_id", Text),
    Column("venue_name", Text),
    Column("venue_city", Text),
    Column("venue_country", Text),
    Column("pitch_suited_for", Text),
    Column("toss_winner_id", Text),
    Column("toss_elected_to", Text),
    Column("team_home_id", Text),
    Column("team_away_id", Text),
    Column("team_home_name", Text),
    Column("team_away_name", Text),
    Column("result", Text),
    Column("priority", Integer, nullable=False, server_default="100"),
    *_timestamps(),
)

batting_innings = Table(
    "batting_innings",
    metadata,
    Column("id", BigInteger, primary_key=True, autoincrement=True),
    Column("match_id", Text, nullable=False, index=True),
    Column("innings_number", Integer, nullable=False),
    Column("player_id", Text, nullable=False),
    Column("player_name", Text, nullable=False),
    Column("team_id", Text),
    Column("batting_position", Integer),
    Column("runs", Integer, nullable=False, server_default="0"),
    Column("balls", Integer, nullable=False, server_default="0"),
    Column("fours", Integer, nullable=False, server_default="0"),
    Column("sixes", Integer, nullable=False, server_default="0"),
    Column("dots", Integer, nullable=False, server_default="0"),
    Column("strike_rate", Float),
    Column("is_out", Boolean, nullable=False, server_default="false"),
    Column("dismissal_type", Text),
    Column("dismissed_by_id", Text),
    Column("fielder_id", Text),
    *_timestamps(),
    UniqueConstraint("match_id", "innings_number", "player_id", name="uq_batting_innings_key"),
)

bowling_innings = Table(
    "bowling_innings",
    metadata,
    Column("id", BigInteger, primary_key=True, autoincrement=True),
    Column("match_id", Text, nullable=False, index=True),
    Column("innings_number", Integer, nullable=False),
    Column("player_id", Text, nullable=False),
    Column("player_name", Text, nullable=False),
    Column("team_id", Text),
    Column("overs", Float, nullable=False, server_default="0"),
    Column("balls_bowled", Integer, nullable=False, server_default="0"),
    Column("maidens", Integer, nullable=False, server_default="0"),
    Column("runs", Integer, nullable=False, server_default="0"),
    Column("wickets", Integer, nullable=False, server_default="0"),
    Column("dots", Integer, nullable=False, server_default="0"),
    Column("economy", Float),
    Column("wides", Integer, nullable=False, server_default="0"),
    Column("noballs", Integer, nullable=False, server_default="0"),
    Column("avg_speed", Float),
    *_timestamps(),
    UniqueConstraint("match_id", "innings_number", "player_id", name="uq_bowling_innings_key"),
)

team_innings_stats = Table(
    "team_innings_stats",
    metadata,
    Column("id", BigInteger, primary_key=True, autoincrement=True),
    Column("match_id", Text, nullable=False),
    Column("team_id", Text, nullable=False),
    Column("innings_number", Integer, nullable=False),
    Column("series_id", Text, index=True),
    Column("runs", Integer, nullable=False, server_default="0"),
    Column("wickets", Integer, nullable=False, server_default="0"),
    Column("overs_display", Text),
    Column("balls_faced", Integer, nullable=False, server_default="0"),
    Column("alloted_balls", Integer, nullable=False, server_default="0"),
    Column("is_all_out", Boolean, nullable=False, server_default="false"),
    *_timestamps(),
    UniqueConstraint("match_id", "team_id", name="uq_team_innings_stats_key"),
)

matches = Table(
    "matches",
    metadata,
    Column("id", Text, primary_key=True),
    Column("match_date", Date, nullable=False, index=True),
    Column("teama_id", Text, index=True),
    Column("teamb_id", Text, index=True),
    Column("teama", Text),
    Column("teamb", Text),
    Column("winner_id", Text),
    Column("result", Text),
    Column("league", Text),
    Column("series_id", Text),
    Column("series_name", Text),
    Column("venue", Text),
    Column("match_type", Text),
    *_timestamps(),
)


def allowed_columns() -> Dict[str, FrozenSet[str]]:
    """Table name -> declared column names."""
    return {name: frozenset(table.columns.keys()) for name, table in metadata.tables.items()}


def database_url(settings: AppSettings) -> str:
    """SQLAlchemy async URL built from STORE_URL with STORE_KEY as password."""
    settings.require_store()
    url = make_url(settings.STORE_URL).set(drivername="postgresql+asyncpg")
    password = settings.store_password()
    if password:
        url = url.set(password=password)
    return url.render_as_string(hide_password=False)
