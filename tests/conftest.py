"""
Shared fixtures for guide and fixture sync tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from guidesync.services.db_service import MemoryKeyValueStore
from guidesync.services.fetch_types import Fixture, Program
from guidesync.services.fixture_cache import FixtureCache

NOW = datetime(2025, 10, 18, 18, 0, tzinfo=timezone.utc)
CACHE_KEY = "football_data_highlights_v2"


class FakeClock:
    """Controllable clock returning a fixed instant."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_fixture(
    fixture_id: str = "1",
    home: str = "Inter",
    away: str = "Como",
    status: str = "FINISHED",
    league: str = "Serie A",
    kickoff: datetime | None = None,
    home_score: int | None = None,
    away_score: int | None = None,
    league_id: int | None = None,
) -> Fixture:
    return Fixture(
        id=fixture_id,
        league=league,
        league_id=league_id,
        home_team=home,
        away_team=away,
        status=status,
        raw_date=kickoff if kickoff is not None else NOW - timedelta(hours=1),
        time="17:00",
        home_score=home_score,
        away_score=away_score,
    )


def make_program(
    channel: str = "ch1",
    title: str = "News",
    start: datetime = NOW,
    minutes: int = 60,
    description: str = "",
) -> Program:
    return Program(
        channel_key=channel,
        title=title,
        description=description,
        start=start,
        end=start + timedelta(minutes=minutes),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(store, clock) -> FixtureCache:
    return FixtureCache(store, clock=clock)
