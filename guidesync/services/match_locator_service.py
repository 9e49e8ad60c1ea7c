"""
Match Locator Service

Finds channels whose guide suggests they broadcast a given match, using
loose team-name matching against program titles and descriptions.
Results are a heuristic; false positives and misses are expected.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
import logging
import re

from guidesync.services.fetch_types import Channel, LocalMatch, Program, ProgramIndex
from guidesync.utils.timezone import utc_now

logger = logging.getLogger(__name__)

MAX_RESULTS = 20
LOOKAHEAD = timedelta(hours=12)
STOP_WORDS = frozenset({"fc", "afc", "united", "city", "real"})

_VERSUS = re.compile(r"\s(?:vs|v)\s", re.IGNORECASE)

# (name, predicate(text, term)) evaluated in order; first hit wins
TermRule = tuple[str, Callable[[str, str], bool]]


def _significant_words(term: str) -> list[str]:
    return [w for w in term.split(" ") if len(w) > 2 and w not in STOP_WORDS]


FUZZY_RULES: list[TermRule] = [
    ("substring", lambda text, term: term in text),
    ("word", lambda text, term: any(w in text for w in _significant_words(term))),
    ("manchester", lambda text, term: "manchester" in term and ("man " in text or "man." in text)),
    ("psg", lambda text, term: "saint-germain" in term and "psg" in text),
]


def split_match_title(match_title: str) -> list[str]:
    """'Inter Milan vs Como' -> ['inter milan', 'como']"""
    return [t.strip() for t in _VERSUS.split(match_title.lower())]


def fuzzy_match(text: str, term: str) -> bool:
    """True if any rule links the team term to the lower-cased text"""
    return any(predicate(text, term) for _, predicate in FUZZY_RULES)


def _find_program(programs: Iterable[Program], terms: list[str], now: datetime) -> Program | None:
    future_limit = now + LOOKAHEAD
    for program in programs:
        if program.end < now or program.start > future_limit:
            continue
        text = f"{program.title} {program.description}".lower()
        if fuzzy_match(text, terms[0]) and fuzzy_match(text, terms[1]):
            return program
    return None


def find_local_matches(
    match_title: str,
    channels: Iterable[Channel],
    index: ProgramIndex,
    now: datetime | None = None,
) -> list[LocalMatch]:
    """
    Locate channels airing a match now or within the next 12 hours

    Args:
        match_title: Human title such as 'Inter Milan vs Como'
        channels: Channels to search, in priority order
        index: Program index keyed by channel tvg id
        now: Reference time (defaults to current UTC time)

    Returns:
        Up to 20 matches, live ones first
    """
    if not channels or not index:
        return []

    terms = split_match_title(match_title)
    if len(terms) < 2:
        return []

    now = now or utc_now()
    results: list[LocalMatch] = []

    for channel in channels:
        if len(results) >= MAX_RESULTS:
            break
        programs = index.get(channel.tvg_id) if channel.tvg_id else None
        if not programs:
            continue

        program = _find_program(programs, terms, now)
        if program:
            results.append(LocalMatch(
                channel=channel,
                program_title=program.title,
                is_live=program.start <= now < program.end,
                start=program.start,
            ))

    logger.debug(f"Located {len(results)} channel(s) for '{match_title}'")
    results.sort(key=lambda m: not m.is_live)
    return results
