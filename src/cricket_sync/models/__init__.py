"""Pydantic models for upstream feed documents and store rows."""

from .enums import EventState, MatchFormat
from .feed import MatchSummary, Participant
from .rows import (
    BattingInningsRow,
    BowlingInningsRow,
    MatchRecord,
    MatchResultRow,
    SeriesGroup,
    TeamInningsStats,
    TransformedMatch,
)

__all__ = [
    "EventState",
    "MatchFormat",
    "MatchSummary",
    "Participant",
    "BattingInningsRow",
    "BowlingInningsRow",
    "MatchRecord",
    "MatchResultRow",
    "SeriesGroup",
    "TeamInningsStats",
    "TransformedMatch",
]
