"""Group match-list entries by series and keep premium tournaments.

A premium tournament is a multi-team competition (more than two distinct
participants across its matches) whose best match tier is at or below the
ceiling. Bilateral series never qualify, however important.
"""

from typing import Callable, Dict, Iterable, List

from ..cricket_logging import get_logger
from ..models.feed import MatchSummary
from ..models.rows import SeriesGroup
from .priority import PREMIUM_TIER_CEILING, MatchLike, as_summary, match_priority

logger = get_logger(__name__)

Classifier = Callable[[MatchSummary], int]

MIN_TOURNAMENT_TEAMS = 3


def group_by_series(
    matches: Iterable[MatchLike],
    classifier: Classifier = match_priority,
) -> Dict[str, SeriesGroup]:
    """Bucket matches by ``series_id``, tracking teams and best tier.

    Matches without a series id are dropped. Groups keep insertion order,
    and matches keep their original order inside a group.
    """
    groups: Dict[str, SeriesGroup] = {}
    for raw in matches:
        match = as_summary(raw)
        if not match.series_id:
            continue

        group = groups.get(match.series_id)
        if group is None:
            group = SeriesGroup(series_id=match.series_id, series_name=match.series_name)
            groups[match.series_id] = group

        group.matches.append(match)
        group.team_ids.update(match.participant_ids())
        group.best_priority = min(group.best_priority, classifier(match))

    return groups


def is_premium_group(
    group: SeriesGroup,
    min_teams: int = MIN_TOURNAMENT_TEAMS,
    max_tier: int = PREMIUM_TIER_CEILING,
) -> bool:
    return group.team_count >= min_teams and group.best_priority <= max_tier


def filter_premium_tournaments(
    matches: Iterable[MatchLike],
    classifier: Classifier = match_priority,
    min_teams: int = MIN_TOURNAMENT_TEAMS,
    max_tier: int = PREMIUM_TIER_CEILING,
) -> List[MatchSummary]:
    """Matches belonging to premium multi-team tournaments.

    Args:
        matches: Match-list entries (models or raw dicts)
        classifier: Tier function applied to every match
        min_teams: Minimum distinct participants for a tournament
        max_tier: Highest (least important) tier still counted as premium

    Returns:
        Matches of qualifying series, in their original relative order
    """
    summaries = [as_summary(m) for m in matches]
    groups = group_by_series(summaries, classifier=classifier)
    premium_ids = {
        series_id
        for series_id, group in groups.items()
        if is_premium_group(group, min_teams=min_teams, max_tier=max_tier)
    }

    selected = [m for m in summaries if m.series_id in premium_ids]

    logger.info("Filtered premium tournaments",
                total_matches=len(summaries),
                series=len(groups),
                premium_series=len(premium_ids),
                selected_matches=len(selected))
    return selected
