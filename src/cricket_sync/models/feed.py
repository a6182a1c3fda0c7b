"""Models for match-list entries returned by the feed.

Every field is optional. Missing strings default to ``None`` (name fields
used for classification are read through :meth:`MatchSummary.name_fields`,
which substitutes ``""``); ids arrive as numbers or strings and are always
stored as strings.
"""

from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_id(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class Participant(BaseModel):
    """One side of a fixture."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    highlight: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        return _as_id(v)

    @field_validator("highlight", mode="before")
    @classmethod
    def coerce_highlight(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v).strip().lower()


class MatchSummary(BaseModel):
    """Match-list entry (``matches[]`` of the match list endpoint)."""

    model_config = ConfigDict(extra="allow")

    game_id: Optional[str] = None
    series_id: Optional[str] = None
    series_name: Optional[str] = None
    parent_series_name: Optional[str] = None
    championship_name: Optional[str] = None
    league_code: Optional[str] = None
    event_priority: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    event_state: Optional[str] = None
    event_format: Optional[str] = None
    event_sub_status: Optional[str] = None
    winning_margin: Optional[str] = None
    venue: Optional[str] = None
    participants: List[Participant] = Field(default_factory=list)

    @field_validator("game_id", "series_id", "event_priority", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Optional[str]:
        return _as_id(v)

    @field_validator("participants", mode="before")
    @classmethod
    def coerce_participants(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    def name_fields(self) -> List[str]:
        """Parent series, series and championship names ("" when absent)."""
        return [
            self.parent_series_name or "",
            self.series_name or "",
            self.championship_name or "",
        ]

    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants if p.id]

    def participant_names(self) -> List[str]:
        return [p.name for p in self.participants if p.name]

    def match_date(self) -> Optional[date]:
        """Calendar date of ``start_date``, or None when absent or unparseable."""
        if not self.start_date:
            return None
        try:
            return date.fromisoformat(self.start_date.split("T")[0].strip())
        except ValueError:
            return None
