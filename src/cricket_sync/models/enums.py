"""Enumerations used across the feed and store models."""

from enum import Enum
from typing import Optional


class EventState(str, Enum):
    """Match-list ``event_state`` codes."""
    UPCOMING = "U"
    LIVE = "L"
    RESULT = "R"
    COMPLETED = "C"

    @classmethod
    def finished(cls) -> frozenset:
        """Codes of matches whose result is final (result or cancelled/completed)."""
        return frozenset({cls.RESULT.value, cls.COMPLETED.value})


class MatchFormat(str, Enum):
    """Normalized match format."""
    TEST = "Test"
    ODI = "ODI"
    T20 = "T20"
    OTHER = "Other"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> Optional[str]:
        """Map upstream format labels (``T20I``, ``odi``, ``test``...) to a format.

        Returns None when nothing was supplied so the column stays empty.
        """
        if raw is None or not str(raw).strip():
            return None
        key = str(raw).strip().upper()
        if key.startswith("TEST"):
            return cls.TEST.value
        if key in ("ODI", "ODIW", "LIST A", "ONE-DAY", "ONE DAY"):
            return cls.ODI.value
        if key.startswith("T20") or key == "HUNDRED" or key.startswith("THE HUNDRED"):
            return cls.T20.value
        return cls.OTHER.value
