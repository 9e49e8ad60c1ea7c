"""
Fixture Synchronization Service

Serves the ranked fixture list from cache or the provider, and diffs
live scores between polls into goal and VAR events. Nothing here raises
to the caller: provider trouble degrades to cached data or an empty list.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

import httpx

from guidesync.services.fetch_types import Fixture, GoalEvent, PollResult, SyncResult
from guidesync.services.fixture_cache import FixtureCache
from guidesync.services.fixture_ranking import map_matches, normalize_status, prepare_fixtures
from guidesync.services.football_client import FootballDataClient, ProviderError
from guidesync.utils.logging_helpers import log_poll_summary
from guidesync.utils.timezone import local_date, utc_now


logger = logging.getLogger(__name__)

SCORER_PENDING = "Checking..."
SCORER_UNKNOWN = "Goal!"
SCORER_VAR = "Goal Disallowed (VAR)"
MINUTE_LIVE = "LIVE"
MINUTE_VAR = "VAR"


class FixtureSynchronizer:
    """Fetch-or-serve-from-cache orchestration for fixtures and live scores."""

    def __init__(
        self,
        client: FootballDataClient,
        cache: FixtureCache,
        *,
        cache_key: str,
        tz_name: str = "UTC",
        allowed_league_ids: Iterable[int] = (),
        include_tomorrow: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.cache = cache
        self.cache_key = cache_key
        self.tz_name = tz_name
        self.allowed_league_ids = tuple(allowed_league_ids)
        self.include_tomorrow = include_tomorrow
        self._clock = clock

    async def fetch_all(self) -> list[Fixture]:
        """Ranked fixtures for today (and tomorrow); never raises"""
        return (await self.fetch_all_result()).data

    async def fetch_all_result(self) -> SyncResult[list[Fixture]]:
        await self.cache.cleanup()

        cached = await self.cache.read(self.cache_key)
        if cached and cached[0].home_team:
            logger.info(f"Serving {len(cached)} fixtures from cache")
            return SyncResult(data=self._prepare(cached))

        result = await self._fetch_remote()
        if result.ok and result.data:
            await self.cache.write(self.cache_key, result.data)

        return SyncResult(data=self._prepare(result.data), reason=result.reason)

    async def _fetch_remote(self) -> SyncResult[list[Fixture]]:
        if not self.client.configured:
            return await self._fallback("football API key not configured")

        now = self._clock()
        date_from = local_date(now, self.tz_name)
        date_to = date_from + timedelta(days=1) if self.include_tomorrow else date_from

        try:
            records = await self.client.get_matches(date_from, date_to)
        except (httpx.HTTPError, ProviderError) as exc:
            logger.error(f"Failed to fetch fixtures: {exc}")
            return await self._fallback(f"fetch failed: {exc}")

        fixtures = map_matches(records, now, self.tz_name)
        logger.info(f"Fetched {len(fixtures)} fixtures from provider")
        return SyncResult(data=fixtures)

    async def _fallback(self, reason: str) -> SyncResult[list[Fixture]]:
        cached = await self.cache.read(self.cache_key, ignore_freshness=True)
        if cached:
            logger.warning(f"Falling back to {len(cached)} cached fixtures ({reason})")
            return SyncResult(data=cached, reason=reason)
        return SyncResult(data=[], reason=reason)

    def _prepare(self, fixtures: Sequence[Fixture]) -> list[Fixture]:
        return prepare_fixtures(fixtures, self._clock(), self.allowed_league_ids)

    async def poll_live_scores(self, previous: Sequence[Fixture] | None = None) -> PollResult:
        """
        Diff in-play scores against the previous snapshot

        An empty previous snapshot is hydrated from cache ignoring freshness,
        so a cold start still detects goals scored since the last fetch. The
        hydrated snapshot is only diffed against; the returned fixtures are
        filtered and ranked like a fetch.

        Args:
            previous: Snapshot returned by the last poll or fetch_all

        Returns:
            PollResult with the events and the updated snapshot
        """
        baseline = list(previous or [])
        hydrated = not baseline
        if hydrated:
            baseline = await self.cache.read(self.cache_key, ignore_freshness=True) or []

        def publishable(fixtures: list[Fixture]) -> list[Fixture]:
            return self._prepare(fixtures) if hydrated else fixtures

        if not self.client.configured:
            return PollResult(events=[], fixtures=publishable(baseline))

        try:
            records = await self.client.get_live_matches()
        except (httpx.HTTPError, ProviderError) as exc:
            logger.warning(f"Live score poll failed: {exc}")
            return PollResult(events=[], fixtures=publishable(baseline))

        live = {str(record["id"]): record for record in records if record.get("id") is not None}
        events: list[GoalEvent] = []
        updated: list[Fixture] = []

        for fixture in baseline:
            record = live.get(fixture.id)
            if record is None:
                updated.append(fixture)
                continue

            fixture_now, event = diff_fixture(fixture, record)
            updated.append(fixture_now)
            if event:
                events.append(event)

        for event in events:
            if not event.is_var:
                await self._resolve_scorer(event)

        log_poll_summary(logger, len(baseline), len(live), len(events))
        return PollResult(events=events, fixtures=publishable(updated))

    async def _resolve_scorer(self, event: GoalEvent) -> None:
        """Fill scorer and minute from the match detail; placeholders stay on failure"""
        try:
            detail = await self.client.get_match(event.fixture_id)
        except (httpx.HTTPError, ProviderError) as exc:
            logger.debug(f"Scorer lookup failed for match {event.fixture_id}: {exc}")
            return

        goals = detail.get("goals") or []
        if not goals:
            return

        last_goal = goals[-1]
        event.scorer = (last_goal.get("scorer") or {}).get("name") or SCORER_UNKNOWN
        if last_goal.get("minute"):
            event.minute_label = f"{last_goal['minute']}'"


def diff_fixture(fixture: Fixture, record: dict[str, Any]) -> tuple[Fixture, GoalEvent | None]:
    """
    Compare a snapshot fixture with a fresh provider record

    Missing scores count as 0. A rise on either side is a goal; otherwise a
    drop on either side is a VAR correction.
    """
    full_time = (record.get("score") or {}).get("fullTime") or {}
    new_home = full_time.get("home") or 0
    new_away = full_time.get("away") or 0
    old_home = fixture.home_score or 0
    old_away = fixture.away_score or 0
    score_label = f"{new_home} - {new_away}"

    event = None
    if new_home > old_home or new_away > old_away:
        event = GoalEvent(
            fixture_id=fixture.id,
            match_title=fixture.match,
            score_label=score_label,
            scorer=SCORER_PENDING,
            minute_label=MINUTE_LIVE,
        )
    elif new_home < old_home or new_away < old_away:
        event = GoalEvent(
            fixture_id=fixture.id,
            match_title=fixture.match,
            score_label=score_label,
            scorer=SCORER_VAR,
            minute_label=MINUTE_VAR,
            is_var=True,
        )

    updated = replace(
        fixture,
        status=normalize_status(record.get("status")) if record.get("status") else fixture.status,
        home_score=new_home,
        away_score=new_away,
    )
    return updated, event
