"""Match importance tiers derived from series and tournament names.

Lower tiers are more important. Two classifiers share the same rule
tables:

* :func:`match_priority` is the strict variant used to pick premium
  tournaments for syncing. It only knows the warm-up demotion and three
  keyword tiers.
* :func:`display_priority` is the finer-grained ordering used when listing
  matches. It adds per-event tiers, top-ranked bilateral internationals,
  top women's fixtures and the feed's own ``event_priority``.

Keyword matching is a case-sensitive substring search over the parent
series, series and championship names, except for the demotion markers
which are matched case-insensitively against their concatenation.
"""

from typing import Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from ..models.feed import MatchSummary
from ..utils.coerce import to_int_or_none

MatchLike = Union[MatchSummary, Mapping]


class PriorityRule(NamedTuple):
    """Assign ``tier`` when any keyword appears in a name field."""
    keywords: Tuple[str, ...]
    tier: int


DEMOTION_MARKERS: Tuple[str, ...] = ("warm-up", "warm up", "qualifier")
DEMOTED_TIER = 18
FALLBACK_TIER = 100
PREMIUM_TIER_CEILING = 15

ICC_WORLD_CUPS: Tuple[str, ...] = (
    "ICC World Twenty20",
    "ICC Cricket World Cup",
    "ICC Champions Trophy",
    "ICC Women's World Twenty20",
    "ICC Women's World Cup",
    "ICC Under-19 World Cup",
)

ICC_EVENTS: Tuple[str, ...] = ("Asia Cup",)

PREMIUM_LEAGUES: Tuple[str, ...] = (
    "Indian Premier League",
    "Women's Premier League",
    "Big Bash League",
    "Women's Big Bash League",
    "The Hundred",
    "SA20",
    "ILT20",
    "Pakistan Super League",
    "Caribbean Premier League",
    "Bangladesh Premier League",
    "Lanka Premier League",
)

# Evaluated in order after the demotion check; first hit wins.
SYNC_RULES: Tuple[PriorityRule, ...] = (
    PriorityRule(ICC_WORLD_CUPS, 1),
    PriorityRule(ICC_EVENTS, 3),
    PriorityRule(PREMIUM_LEAGUES, 5),
)

DISPLAY_WORLD_CUP_RULES: Tuple[PriorityRule, ...] = (
    PriorityRule(("ICC World Twenty20",), 1),
    PriorityRule(("ICC Cricket World Cup",), 1),
    PriorityRule(("ICC Champions Trophy",), 1),
    PriorityRule(("ICC Women's World Twenty20",), 1),
    PriorityRule(("ICC Women's World Cup",), 1),
    PriorityRule(("ICC Under-19 World Cup",), 2),
)

DISPLAY_EVENT_RULES: Tuple[PriorityRule, ...] = (
    PriorityRule(("Under-19 Asia Cup", "ACC Under-19 Asia Cup"), 2),
    PriorityRule(("Asia Cup", "Asia Cup T20I"), 3),
)

DISPLAY_LEAGUE_RULES: Tuple[PriorityRule, ...] = (
    PriorityRule(("Indian Premier League",), 4),
    PriorityRule(("Women's Premier League",), 5),
    PriorityRule(("Big Bash League",), 6),
    PriorityRule(("Women's Big Bash League",), 7),
    PriorityRule(("The Hundred", "The Hundred Women"), 8),
    PriorityRule(("SA20 league",), 9),
    PriorityRule(("ILT20",), 10),
    PriorityRule(("Pakistan Super League",), 11),
    PriorityRule(("Caribbean Premier League",), 12),
    PriorityRule(("Bangladesh Premier League",), 13),
    PriorityRule(("Lanka Premier League",), 14),
)

# IND=4, AUS=1, ENG=3, SA=13, NZ=5
TOP_TEAM_IDS = frozenset({"4", "1", "3", "13", "5"})
TOP_WOMENS_TEAMS = frozenset({
    "India W", "Australia W", "England W", "South Africa W", "New Zealand W",
})

TOP_BILATERAL_TIER = 2
TOP_WOMENS_TIER = 12
EVENT_PRIORITY_OFFSET = 15
EVENT_PRIORITY_LIMIT = 50
LEAGUE_CODE_TIERS: Mapping[str, int] = {
    "icc": 20,
    "womens_international": 25,
    "youth_international": 30,
}


def as_summary(match: MatchLike) -> MatchSummary:
    if isinstance(match, MatchSummary):
        return match
    return MatchSummary.model_validate(dict(match))


def is_demoted(fields: Sequence[str]) -> bool:
    """Warm-ups and qualifiers, regardless of any other signal."""
    combined = " ".join(fields).lower()
    return any(marker in combined for marker in DEMOTION_MARKERS)


def first_rule_tier(rules: Iterable[PriorityRule], fields: Sequence[str]) -> Optional[int]:
    """Tier of the first rule with a keyword inside any field, else None."""
    for rule in rules:
        if any(keyword in field for keyword in rule.keywords for field in fields):
            return rule.tier
    return None


def match_priority(match: MatchLike, rules: Sequence[PriorityRule] = SYNC_RULES) -> int:
    """Strict importance tier used for premium-tournament filtering.

    Args:
        match: Match-list entry (model or raw dict)
        rules: Ordered keyword rules applied after the demotion check

    Returns:
        18 for warm-ups/qualifiers, the first matching rule's tier, else 100
    """
    fields = as_summary(match).name_fields()
    if is_demoted(fields):
        return DEMOTED_TIER
    tier = first_rule_tier(rules, fields)
    return FALLBACK_TIER if tier is None else tier


def is_top_team_match(match: MatchSummary) -> bool:
    return any(pid in TOP_TEAM_IDS for pid in match.participant_ids())


def is_top_womens_match(match: MatchSummary) -> bool:
    return any(name in TOP_WOMENS_TEAMS for name in match.participant_names())


def display_priority(match: MatchLike) -> int:
    """Finer-grained tier used to order matches for display."""
    summary = as_summary(match)
    fields = summary.name_fields()
    league_code = summary.league_code or ""

    if is_demoted(fields):
        return DEMOTED_TIER

    tier = first_rule_tier(DISPLAY_WORLD_CUP_RULES, fields)
    if tier is not None:
        return tier

    if league_code == "icc" and is_top_team_match(summary):
        return TOP_BILATERAL_TIER

    for rules in (DISPLAY_EVENT_RULES, DISPLAY_LEAGUE_RULES):
        tier = first_rule_tier(rules, fields)
        if tier is not None:
            return tier

    if is_top_womens_match(summary):
        return TOP_WOMENS_TIER

    api_priority = to_int_or_none(summary.event_priority)
    if api_priority is not None and api_priority < EVENT_PRIORITY_LIMIT:
        return EVENT_PRIORITY_OFFSET + api_priority

    return LEAGUE_CODE_TIERS.get(league_code, FALLBACK_TIER)


def is_featured(match: MatchLike) -> bool:
    """Display-tier match important enough for featured listings."""
    return display_priority(match) <= PREMIUM_TIER_CEILING


def sort_by_priority(matches: Iterable[MatchLike]) -> List[MatchSummary]:
    """Order by display tier, then start date; stable for ties."""
    summaries = [as_summary(m) for m in matches]
    return sorted(summaries, key=lambda m: (display_priority(m), m.start_date or ""))
