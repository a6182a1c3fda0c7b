"""Date helpers for the feed's DDMMYYYY conventions."""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

# game_id values end in <MM><DD><YYYY><sequence>, e.g. "abcd12252025123456"
_GAME_ID_DATE = re.compile(r"(\d{2})(\d{2})(\d{4})(\d+)$")


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def format_ddmmyyyy(d: date) -> str:
    return d.strftime("%d%m%Y")


def lookback_window(days: int, end: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive (start, end) window ending today (UTC) by default."""
    if days < 0:
        raise ValueError("days must not be negative")
    end = end or today_utc()
    return end - timedelta(days=days), end


def format_daterange(start: date, end: date) -> str:
    """``daterange`` query value: ``DDMMYYYY-DDMMYYYY``."""
    return f"{format_ddmmyyyy(start)}-{format_ddmmyyyy(end)}"


def date_from_game_id(game_id: Optional[str]) -> Optional[date]:
    """Recover the match date embedded at the end of a game id."""
    if not game_id:
        return None
    match = _GAME_ID_DATE.search(game_id)
    if not match:
        return None
    month, day, year = match.group(1), match.group(2), match.group(3)
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None
