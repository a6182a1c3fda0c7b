"""Wisden cricket feed client for match lists and scorecards."""

from datetime import date
from typing import Any, Dict, List, Optional

import pydantic

from ..config import AppSettings, get_settings
from ..cricket_logging import get_logger
from ..errors import FeedError
from ..http import FeedHttp
from ..models.feed import MatchSummary
from ..utils.dates import format_daterange

logger = get_logger(__name__)

MATCH_LIST_PATH = "/default.aspx"
SCORECARD_PATH = "/cricket/v1/game/scorecard"


class FeedClient:
    """Async client for the match-list and scorecard endpoints.

    Feed failures never escape this class: transport errors, non-2xx
    statuses and malformed bodies are logged and returned as "no data"
    (an empty match list or ``None`` scorecard) so callers can skip the
    affected match and carry on.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        http: Optional[FeedHttp] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.FEED_BASE_URL.rstrip("/")
        self.http = http or FeedHttp(self.settings)

    def match_list_params(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        gamestate: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "methodtype": 3,
            "client": self.settings.CLIENT_MATCHES,
            "sport": 1,
            "league": 0,
            "timezone": "0530",
            "language": "en",
        }
        if start is not None and end is not None:
            params["daterange"] = format_daterange(start, end)
        if gamestate is not None:
            params["gamestate"] = gamestate
        return params

    async def fetch_matches(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        gamestate: Optional[str] = None,
        since: Optional[str] = None,
    ) -> List[MatchSummary]:
        """Fetch match-list entries for a date window or a gamestate code.

        Args:
            start: First day of the window (inclusive)
            end: Last day of the window (inclusive)
            gamestate: Feed gamestate code, used instead of or alongside the window
            since: Drop matches whose ``start_date`` sorts before this ISO date

        Returns:
            Parsed match summaries; empty when the feed could not be read
        """
        if (start is None) != (end is None):
            raise ValueError("start and end must be given together")
        if start is None and gamestate is None:
            raise ValueError("either a date window or a gamestate is required")

        params = self.match_list_params(start, end, gamestate)
        logger.info("Fetching match list",
                    daterange=params.get("daterange"),
                    gamestate=gamestate)
        try:
            payload = await self.http.get_json(f"{self.base_url}{MATCH_LIST_PATH}", params)
        except FeedError as e:
            logger.error("Match list fetch failed", error=str(e), url=e.url)
            return []

        raw_matches = payload.get("matches") if isinstance(payload, dict) else None
        if not isinstance(raw_matches, list):
            logger.warning("Match list response has no matches array")
            return []

        matches = []
        for raw in raw_matches:
            try:
                matches.append(MatchSummary.model_validate(raw))
            except pydantic.ValidationError as e:
                logger.warning("Skipping malformed match entry",
                               game_id=raw.get("game_id") if isinstance(raw, dict) else None,
                               error=str(e))

        if since:
            matches = [m for m in matches if m.start_date and m.start_date >= since]

        logger.info("Fetched match list", matches_count=len(matches))
        return matches

    async def fetch_scorecard(self, game_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the scorecard document (``data`` block) for a match.

        Returns:
            Scorecard dict, or None when the feed returned nothing usable
        """
        params = {
            "game_id": game_id,
            "lang": "en",
            "feed_format": "json",
            "client_id": self.settings.CLIENT_SCORECARD,
        }
        logger.debug("Fetching scorecard", match_id=game_id)
        try:
            payload = await self.http.get_json(f"{self.base_url}{SCORECARD_PATH}", params)
        except FeedError as e:
            logger.error("Scorecard fetch failed", match_id=game_id, error=str(e), url=e.url)
            return None

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data:
            logger.info("No scorecard data", match_id=game_id)
            return None
        return data

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
