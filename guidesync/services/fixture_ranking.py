"""
Fixture mapping, filtering and ranking

Pure functions over fixture lists. Filtering and scoring policies are
declared as ordered rule tables below so each rule can be tested alone.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
import logging
from typing import Any

from guidesync.services.fetch_types import Fixture
from guidesync.utils.timezone import DateFormatError, kickoff_label, parse_iso8601_to_utc

logger = logging.getLogger(__name__)

FALLBACK_LIMIT = 15
VISIBLE_AFTER_KICKOFF = timedelta(hours=12)

STATUS_CODES: dict[str, str] = {
    "SCHEDULED": "SCHEDULED",
    "TIMED": "TIMED",
    "IN_PLAY": "IN_PLAY",
    "LIVE": "IN_PLAY",
    "PAUSED": "PAUSED",
    "FINISHED": "FINISHED",
    "AWARDED": "FINISHED",
    "POSTPONED": "POSTPONED",
    "CANCELLED": "CANCELLED",
    "CANCELED": "CANCELLED",
    "SUSPENDED": "SUSPENDED",
}

TOP_ITALIAN_TEAMS = ("juventus", "napoli", "roma", "lazio", "atalanta", "fiorentina", "bologna", "torino", "inter", "milan")
TOP_GLOBAL_TEAMS = (
    "man city", "arsenal", "liverpool", "chelsea", "man utd", "tottenham", "real madrid",
    "barcelona", "atletico", "bayern", "dortmund", "psg", "benfica", "porto",
)
ALLOWED_OTHER_TEAMS = TOP_ITALIAN_TEAMS + TOP_GLOBAL_TEAMS + (
    "leipzig", "newcastle", "aston villa", "brighton", "ajax", "psv", "feyenoord", "sporting",
)

TextRule = Callable[[str], bool]


def _contains(*needles: str) -> TextRule:
    return lambda text: any(needle in text for needle in needles)


def _is_inter(text: str) -> bool:
    return "inter " in text or "internazionale" in text


def _is_milan(text: str) -> bool:
    return "ac milan" in text or ("milan" in text and "inter" not in text)


# A match on any of these keeps the fixture
KEEP_RULES: list[TextRule] = [
    _is_inter,
    _is_milan,
    _contains("serie a", "calcio"),
    _contains("premier league", "epl"),
    _contains("primera division", "la liga"),
    _contains("champions league", "europa"),
    _contains("bundesliga"),
    _contains(*ALLOWED_OTHER_TEAMS),
]

# First hit returns this score outright; higher team first
TOP_TEAM_SCORES: list[tuple[TextRule, int]] = [
    (_is_inter, 5_000_000),
    (_is_milan, 4_900_000),
]

# First hit sets the base score
LEAGUE_SCORES: list[tuple[TextRule, int]] = [
    (_contains("serie a", "calcio", "coppa italia"), 50_000),
    (_contains("champions league"), 60_000),
    (_contains("premier league", "epl"), 40_000),
    (_contains("primera division", "la liga"), 30_000),
]
DEFAULT_LEAGUE_SCORE = 10_000

# Each matching team token adds the bonus
TEAM_BONUSES: list[tuple[Sequence[str], int]] = [
    (TOP_ITALIAN_TEAMS, 250_000),
    (TOP_GLOBAL_TEAMS, 200_000),
]
LIVE_BONUS = 5_000


def normalize_status(code: str | None) -> str:
    """Translate a provider status code to the internal status set"""
    if not code:
        return "SCHEDULED"
    status = STATUS_CODES.get(code.upper())
    if status is None:
        logger.debug(f"Unknown status code '{code}', treating as SCHEDULED")
        return "SCHEDULED"
    return status


def map_match(record: dict[str, Any], now: datetime, tz_name: str) -> Fixture | None:
    """
    Map a raw provider match record to a Fixture

    Returns None for records without an id.
    """
    if record.get("id") is None:
        return None

    competition = record.get("competition") or {}
    home = record.get("homeTeam") or {}
    away = record.get("awayTeam") or {}
    full_time = (record.get("score") or {}).get("fullTime") or {}

    raw_date = None
    if record.get("utcDate"):
        try:
            raw_date = parse_iso8601_to_utc(record["utcDate"])
        except DateFormatError:
            logger.debug(f"Match {record['id']} has invalid kickoff '{record['utcDate']}'")

    return Fixture(
        id=str(record["id"]),
        league=competition.get("name") or "Unknown",
        league_id=competition.get("id"),
        home_team=home.get("name") or "Home",
        away_team=away.get("name") or "Away",
        home_logo=home.get("crest") or "",
        away_logo=away.get("crest") or "",
        status=normalize_status(record.get("status")),
        home_score=full_time.get("home"),
        away_score=full_time.get("away"),
        raw_date=raw_date,
        time=kickoff_label(raw_date, now, tz_name) if raw_date else "",
    )


def map_matches(records: Iterable[dict[str, Any]], now: datetime, tz_name: str) -> list[Fixture]:
    fixtures = [map_match(record, now, tz_name) for record in records]
    return [fixture for fixture in fixtures if fixture is not None]


def _text(fixture: Fixture) -> str:
    return f"{fixture.match} {fixture.league}".lower()


def is_visible(fixture: Fixture, now: datetime) -> bool:
    """Live fixtures always; others until 12 hours after kickoff"""
    if fixture.is_live or fixture.raw_date is None:
        return True
    return now < fixture.raw_date + VISIBLE_AFTER_KICKOFF


def is_allowed(fixture: Fixture, allowed_league_ids: Iterable[int] = ()) -> bool:
    if fixture.league_id is not None and fixture.league_id in set(allowed_league_ids):
        return True
    text = _text(fixture)
    return any(rule(text) for rule in KEEP_RULES)


def fixture_score(fixture: Fixture) -> int:
    """Priority score; higher sorts first"""
    text = _text(fixture)

    for rule, score in TOP_TEAM_SCORES:
        if rule(text):
            return score

    score = next((value for rule, value in LEAGUE_SCORES if rule(text)), DEFAULT_LEAGUE_SCORE)

    for teams, bonus in TEAM_BONUSES:
        score += bonus * sum(1 for team in teams if team in text)

    if fixture.is_live:
        score += LIVE_BONUS

    return score


def rank_fixtures(fixtures: Iterable[Fixture]) -> list[Fixture]:
    """Sort by score descending; ties keep input order"""
    return sorted(fixtures, key=fixture_score, reverse=True)


def prepare_fixtures(
    fixtures: Sequence[Fixture],
    now: datetime,
    allowed_league_ids: Iterable[int] = (),
) -> list[Fixture]:
    """
    Drop stale fixtures, keep allowed leagues/teams and rank the rest

    Falls back to the first 15 visible fixtures when the filter leaves
    nothing but there was something to show.
    """
    allowed_ids = set(allowed_league_ids)
    visible = [fixture for fixture in fixtures if is_visible(fixture, now)]
    filtered = [fixture for fixture in visible if is_allowed(fixture, allowed_ids)]

    if not filtered and visible:
        logger.info(f"No fixtures matched the league filter, showing first {FALLBACK_LIMIT}")
        filtered = visible[:FALLBACK_LIMIT]

    return rank_fixtures(filtered)
