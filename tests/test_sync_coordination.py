"""
Tests for skip-if-busy execution and last-committed-wins publication.
"""
import asyncio
from datetime import timedelta

import httpx

from conftest import CACHE_KEY, NOW, make_fixture
from guidesync.services.fetch_coordinator import SyncCoordinator
from guidesync.services.fetch_types import GoalEvent, PollResult
from guidesync.services.fixture_sync_service import FixtureSynchronizer
from guidesync.services.football_client import FootballDataClient
from guidesync.services.sync_service import SyncService
from guidesync.utils.timezone import format_xmltv_time


class TestSyncCoordinator:
    async def test_skips_while_running(self):
        coordinator = SyncCoordinator()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "done"

        first = asyncio.create_task(coordinator.execute("job", slow))
        await asyncio.sleep(0)

        assert coordinator.is_running("job")
        assert await coordinator.execute("job", slow) is None

        release.set()
        assert await first == "done"
        assert not coordinator.is_running("job")

    async def test_jobs_do_not_block_each_other(self):
        coordinator = SyncCoordinator()
        release = asyncio.Event()

        async def slow():
            await release.wait()

        async def quick():
            return 1

        task = asyncio.create_task(coordinator.execute("a", slow))
        await asyncio.sleep(0)

        assert await coordinator.execute("b", quick) == 1
        release.set()
        await task

    def test_older_cycle_cannot_overwrite_newer_commit(self):
        coordinator = SyncCoordinator()
        older = coordinator.begin()
        newer = coordinator.begin()

        assert coordinator.commit("fixtures", newer, fixtures=(make_fixture("new"),))
        assert not coordinator.commit("fixtures", older, fixtures=(make_fixture("old"),))
        assert [f.id for f in coordinator.state.fixtures] == ["new"]

    def test_topics_are_independent(self):
        coordinator = SyncCoordinator()
        guide = coordinator.begin()
        fixtures = coordinator.begin()

        assert coordinator.commit("fixtures", fixtures, fixtures=(make_fixture("1"),))
        assert coordinator.commit("guide", guide, program_index={"ch": []})
        assert coordinator.state.program_index == {"ch": []}
        assert len(coordinator.state.fixtures) == 1

    def test_commit_replaces_state_object(self):
        coordinator = SyncCoordinator()
        before = coordinator.state

        coordinator.commit("guide", coordinator.begin(), program_index={"x": []})

        assert coordinator.state is not before
        assert before.program_index == {}

    def test_recent_events_newest_first(self):
        coordinator = SyncCoordinator()
        coordinator.add_events([GoalEvent("1", "A vs B", "1 - 0", "X", "10'")])
        coordinator.add_events([GoalEvent("1", "A vs B", "2 - 0", "Y", "20'")])

        assert [e.score_label for e in coordinator.state.recent_events] == ["2 - 0", "1 - 0"]


class StubSynchronizer:
    """Synchronizer double with controllable poll timing."""

    def __init__(self, poll_results):
        self.poll_results = list(poll_results)
        self.gates: list[asyncio.Event] = []

    async def fetch_all_result(self):
        raise AssertionError("not used")

    async def poll_live_scores(self, previous):
        gate = asyncio.Event()
        self.gates.append(gate)
        result = self.poll_results.pop(0)
        await gate.wait()
        return result


class TestSyncService:
    async def test_superseded_poll_is_not_applied(self):
        stale = PollResult(events=[GoalEvent("1", "A vs B", "1 - 0", "X", "LIVE")], fixtures=[make_fixture("stale")])
        fresh = PollResult(events=[], fixtures=[make_fixture("fresh")])
        synchronizer = StubSynchronizer([stale, fresh])
        service = SyncService(synchronizer, epg_url=None)

        first = asyncio.create_task(service._poll_scores())
        await asyncio.sleep(0)
        second = asyncio.create_task(service._poll_scores())
        await asyncio.sleep(0)

        synchronizer.gates[1].set()
        assert (await second)["committed"] is True
        synchronizer.gates[0].set()
        assert (await first)["committed"] is False

        assert [f.id for f in service.state.fixtures] == ["fresh"]
        assert service.state.recent_events == ()

    async def test_public_poll_skips_overlapping_tick(self):
        synchronizer = StubSynchronizer([PollResult(), PollResult()])
        service = SyncService(synchronizer, epg_url=None)

        first = asyncio.create_task(service.poll_scores())
        await asyncio.sleep(0)

        assert (await service.poll_scores())["status"] == "skipped"
        synchronizer.gates[0].set()
        assert (await first)["status"] == "success"

    async def test_refresh_fixtures_publishes_ranked_list(self, cache, clock):
        matches = [
            {"id": 1, "utcDate": "2025-10-18T19:00:00Z", "status": "TIMED",
             "competition": {"name": "Premier League"}, "homeTeam": {"name": "Everton"},
             "awayTeam": {"name": "Fulham"}, "score": {"fullTime": {}}},
            {"id": 2, "utcDate": "2025-10-18T19:45:00Z", "status": "TIMED",
             "competition": {"name": "Serie A"}, "homeTeam": {"name": "Inter"},
             "awayTeam": {"name": "Como"}, "score": {"fullTime": {}}},
        ]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"matches": matches}))
        client = FootballDataClient("https://api.example/v4", "secret", transport=transport)
        synchronizer = FixtureSynchronizer(client, cache, cache_key=CACHE_KEY, clock=clock)
        service = SyncService(synchronizer, epg_url=None, clock=clock)

        summary = await service.refresh_fixtures()

        assert summary["status"] == "success"
        assert [f.id for f in service.state.fixtures] == ["2", "1"]
        assert service.state.fixtures_updated_at == NOW

    async def test_poll_after_empty_refresh_keeps_stale_fixtures_hidden(self, cache, clock):
        stale = NOW - timedelta(hours=13)
        await cache.write(CACHE_KEY, [
            make_fixture("1", home="Laval", away="Amiens", league="Ligue 2", kickoff=stale),
            make_fixture("2", kickoff=stale),
        ])
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"matches": []}))
        client = FootballDataClient("https://api.example/v4", "secret", transport=transport)
        synchronizer = FixtureSynchronizer(client, cache, cache_key=CACHE_KEY, clock=clock)
        service = SyncService(synchronizer, epg_url=None, clock=clock)

        await service.refresh_fixtures()
        assert service.state.fixtures == ()

        await service.poll_scores()
        assert service.state.fixtures == ()

    async def test_refresh_guide_keeps_previous_index_on_failure(self, clock):
        start = format_xmltv_time(NOW)
        stop = format_xmltv_time(NOW + timedelta(hours=1))
        feed = f'<tv><programme channel="rai1" start="{start}" stop="{stop}"><title>Tg1</title></programme></tv>'
        responses = [httpx.Response(200, content=feed.encode()), httpx.Response(404)]
        transport = httpx.MockTransport(lambda request: responses.pop(0))
        service = SyncService(
            StubSynchronizer([]),
            epg_url="http://guide.example/epg.xml",
            clock=clock,
            epg_transport=transport,
        )

        first = await service.refresh_guide()
        second = await service.refresh_guide()

        assert first["status"] == "success" and first["programs"] == 1
        assert second["status"] == "degraded" and second["committed"] is False
        assert list(service.state.program_index) == ["rai1"]
