"""
Shared dataclasses used across the guide and fixture pipelines.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from guidesync.utils.timezone import parse_iso8601_to_utc

T = TypeVar("T")

LIVE_STATUSES = frozenset({"IN_PLAY", "PAUSED"})
PENDING_STATUSES = frozenset({"SCHEDULED", "TIMED"})


@dataclass(frozen=True, slots=True)
class Program:
    """One guide entry for a channel."""
    channel_key: str
    title: str
    start: datetime
    end: datetime
    description: str = ""


ProgramIndex = dict[str, list[Program]]


@dataclass(frozen=True, slots=True)
class Channel:
    """Playlist channel as seen by the locator."""
    name: str
    tvg_id: str | None = None
    group: str | None = None
    url: str | None = None


@dataclass(frozen=True, slots=True)
class LocalMatch:
    """A channel whose guide suggests it broadcasts a given match."""
    channel: Channel
    program_title: str
    is_live: bool
    start: datetime


@dataclass(frozen=True, slots=True)
class Fixture:
    """Snapshot of one football match."""
    id: str
    league: str
    home_team: str
    away_team: str
    status: str
    raw_date: datetime | None
    time: str = ""
    league_id: int | None = None
    home_logo: str = ""
    away_logo: str = ""
    home_score: int | None = None
    away_score: int | None = None

    @property
    def match(self) -> str:
        return f"{self.home_team} vs {self.away_team}"

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["raw_date"] = self.raw_date.isoformat() if self.raw_date else None
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> Fixture:
        raw_date = payload.get("raw_date")
        return cls(
            id=str(payload["id"]),
            league=payload.get("league") or "Unknown",
            home_team=payload["home_team"],
            away_team=payload["away_team"],
            status=payload.get("status") or "SCHEDULED",
            raw_date=parse_iso8601_to_utc(raw_date) if raw_date else None,
            time=payload.get("time") or "",
            league_id=payload.get("league_id"),
            home_logo=payload.get("home_logo") or "",
            away_logo=payload.get("away_logo") or "",
            home_score=payload.get("home_score"),
            away_score=payload.get("away_score"),
        )


@dataclass(slots=True)
class GoalEvent:
    """Score change detected between two polls."""
    fixture_id: str
    match_title: str
    score_label: str
    scorer: str
    minute_label: str
    is_var: bool = False


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """Day-scoped cache record."""
    calendar_date: str
    stored_at: datetime
    payload: T


@dataclass(slots=True)
class SyncResult(Generic[T]):
    """Data plus the reason it may be degraded (None when fresh)."""
    data: T
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(slots=True)
class PollResult:
    """Output of one live score poll."""
    events: list[GoalEvent] = field(default_factory=list)
    fixtures: list[Fixture] = field(default_factory=list)


__all__ = [
    "CacheEntry",
    "Channel",
    "Fixture",
    "GoalEvent",
    "LIVE_STATUSES",
    "LocalMatch",
    "PENDING_STATUSES",
    "PollResult",
    "Program",
    "ProgramIndex",
    "SyncResult",
]
