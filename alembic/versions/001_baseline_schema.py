"""Baseline schema migration

Revision ID: 001_baseline_schema
Revises:
Create Date: 2026-01-12

Schema includes:
- tournament_matches: one row per synced premium-tournament match
- batting_innings / bowling_innings: per-player rows keyed by
  (match_id, innings_number, player_id)
- team_innings_stats: one row per team per match, input to net run rate
- matches: flat match list for team form and head-to-head lookups
"""
import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_baseline_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all baseline tables."""

    op.create_table(
        "tournament_matches",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("series_id", sa.Text(), nullable=True),
        sa.Column("series_name", sa.Text(), nullable=True),
        sa.Column("match_date", sa.Date(), nullable=True),
        sa.Column("match_type", sa.Text(), nullable=True),
        sa.Column("venue_id", sa.Text(), nullable=True),
        sa.Column("venue_name", sa.Text(), nullable=True),
        sa.Column("venue_city", sa.Text(), nullable=True),
        sa.Column("venue_country", sa.Text(), nullable=True),
        sa.Column("pitch_suited_for", sa.Text(), nullable=True),
        sa.Column("toss_winner_id", sa.Text(), nullable=True),
        sa.Column("toss_elected_to", sa.Text(), nullable=True),
        sa.Column("team_home_id", sa.Text(), nullable=True),
        sa.Column("team_away_id", sa.Text(), nullable=True),
        sa.Column("team_home_name", sa.Text(), nullable=True),
        sa.Column("team_away_name", sa.Text(), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="100"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tournament_matches_series_id", "tournament_matches", ["series_id"])

    # Batting and bowling share a natural key per innings
    for table, stat_columns in (
        ("batting_innings", [
            sa.Column("batting_position", sa.Integer(), nullable=True),
            sa.Column("runs", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("balls", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("fours", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("sixes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("dots", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("strike_rate", sa.Float(), nullable=True),
            sa.Column("is_out", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("dismissal_type", sa.Text(), nullable=True),
            sa.Column("dismissed_by_id", sa.Text(), nullable=True),
            sa.Column("fielder_id", sa.Text(), nullable=True),
        ]),
        ("bowling_innings", [
            sa.Column("overs", sa.Float(), nullable=False, server_default="0"),
            sa.Column("balls_bowled", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("maidens", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("runs", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("wickets", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("dots", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("economy", sa.Float(), nullable=True),
            sa.Column("wides", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("noballs", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("avg_speed", sa.Float(), nullable=True),
        ]),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
            sa.Column("match_id", sa.Text(), nullable=False),
            sa.Column("innings_number", sa.Integer(), nullable=False),
            sa.Column("player_id", sa.Text(), nullable=False),
            sa.Column("player_name", sa.Text(), nullable=False),
            sa.Column("team_id", sa.Text(), nullable=True),
            *stat_columns,
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("match_id", "innings_number", "player_id", name=f"uq_{table}_key"),
            sa.CheckConstraint("innings_number BETWEEN 1 AND 4", name=f"ck_{table}_innings_number"),
        )
        op.create_index(f"ix_{table}_match_id", table, ["match_id"])

    op.create_table(
        "team_innings_stats",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("match_id", sa.Text(), nullable=False),
        sa.Column("team_id", sa.Text(), nullable=False),
        sa.Column("innings_number", sa.Integer(), nullable=False),
        sa.Column("series_id", sa.Text(), nullable=True),
        sa.Column("runs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wickets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overs_display", sa.Text(), nullable=True),
        sa.Column("balls_faced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("alloted_balls", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_all_out", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "team_id", name="uq_team_innings_stats_key"),
    )
    op.create_index("ix_team_innings_stats_series_id", "team_innings_stats", ["series_id"])

    op.create_table(
        "matches",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("match_date", sa.Date(), nullable=False),
        sa.Column("teama_id", sa.Text(), nullable=True),
        sa.Column("teamb_id", sa.Text(), nullable=True),
        sa.Column("teama", sa.Text(), nullable=True),
        sa.Column("teamb", sa.Text(), nullable=True),
        sa.Column("winner_id", sa.Text(), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("league", sa.Text(), nullable=True),
        sa.Column("series_id", sa.Text(), nullable=True),
        sa.Column("series_name", sa.Text(), nullable=True),
        sa.Column("venue", sa.Text(), nullable=True),
        sa.Column("match_type", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_matches_match_date", "matches", ["match_date"])
    op.create_index("ix_matches_teama_id", "matches", ["teama_id"])
    op.create_index("ix_matches_teamb_id", "matches", ["teamb_id"])


def downgrade() -> None:
    """Drop all baseline tables."""
    op.drop_table("matches")
    op.drop_table("team_innings_stats")
    op.drop_table("bowling_innings")
    op.drop_table("batting_innings")
    op.drop_table("tournament_matches")
