"""Transformer functions for cricket scorecard data."""

from .scorecard import extract_team_innings, innings_ordinal, is_abandoned, transform_scorecard

__all__ = [
    "extract_team_innings",
    "innings_ordinal",
    "is_abandoned",
    "transform_scorecard",
]
