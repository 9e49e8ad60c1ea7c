"""
EPG Query Service

Point lookups over one channel's program bucket. Buckets are short and
sorted by start, so a linear scan is enough.
"""
from collections.abc import Sequence
from datetime import datetime

from guidesync.services.fetch_types import Program, ProgramIndex


def current_program(programs: Sequence[Program] | None, now: datetime) -> Program | None:
    """
    Return the program airing at now

    The first match in stored order is also the earliest-starting one, which
    is what "what's on" means when programs overlap.
    """
    if not programs:
        return None
    return next((p for p in programs if p.start <= now < p.end), None)


def next_program(programs: Sequence[Program] | None, now: datetime) -> Program | None:
    """Return the first program starting strictly after now"""
    if not programs:
        return None
    return next((p for p in programs if p.start > now), None)


def program_progress(program: Program, now: datetime) -> float:
    """Elapsed share of a program as a percentage clamped to 0-100"""
    total = (program.end - program.start).total_seconds()
    elapsed = (now - program.start).total_seconds()
    return max(0.0, min(100.0, elapsed / total * 100.0))


def now_and_next(
    index: ProgramIndex,
    channel_key: str,
    now: datetime
) -> tuple[Program | None, Program | None]:
    """Current and upcoming program for one channel"""
    programs = index.get(channel_key)
    return current_program(programs, now), next_program(programs, now)
