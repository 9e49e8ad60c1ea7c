"""
Sync Service

Runs guide refresh, fixture refresh and live score polls as coordinated
cycles and publishes their results into the shared state.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

import httpx

from guidesync.services.epg_downloader_service import load_program_index
from guidesync.services.fetch_coordinator import SyncCoordinator, SyncState
from guidesync.services.fixture_sync_service import FixtureSynchronizer
from guidesync.utils.logging_helpers import log_section_end, log_section_start
from guidesync.utils.timezone import utc_now


logger = logging.getLogger(__name__)

SKIPPED = {"status": "skipped", "message": "operation already in progress"}


class SyncService:
    """Entry points called by the scheduler and the HTTP API."""

    def __init__(
        self,
        synchronizer: FixtureSynchronizer,
        *,
        epg_url: str | None,
        coordinator: SyncCoordinator | None = None,
        clock: Callable[[], datetime] = utc_now,
        epg_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.synchronizer = synchronizer
        self.epg_url = epg_url
        self.coordinator = coordinator or SyncCoordinator()
        self._clock = clock
        self._epg_transport = epg_transport

    @property
    def state(self) -> SyncState:
        return self.coordinator.state

    async def refresh_guide(self) -> dict:
        result = await self.coordinator.execute("guide refresh", self._refresh_guide)
        return result if result is not None else SKIPPED

    async def _refresh_guide(self) -> dict:
        log_section_start(logger, "guide refresh")
        ticket = self.coordinator.begin()
        now = self._clock()

        result = await load_program_index(self.epg_url, now, transport=self._epg_transport)
        committed = False
        # An empty result never replaces a populated guide
        if result.data or not self.state.program_index:
            committed = self.coordinator.commit(
                "guide", ticket, program_index=result.data, index_updated_at=now
            )

        log_section_end(logger, "guide refresh")
        return {
            "status": "success" if result.ok else "degraded",
            "reason": result.reason,
            "committed": committed,
            "channels": len(result.data),
            "programs": sum(len(programs) for programs in result.data.values()),
            "timestamp": now.isoformat(),
        }

    async def refresh_fixtures(self) -> dict:
        result = await self.coordinator.execute("fixture refresh", self._refresh_fixtures)
        return result if result is not None else SKIPPED

    async def _refresh_fixtures(self) -> dict:
        log_section_start(logger, "fixture refresh")
        ticket = self.coordinator.begin()

        result = await self.synchronizer.fetch_all_result()
        now = self._clock()
        committed = self.coordinator.commit(
            "fixtures", ticket, fixtures=tuple(result.data), fixtures_updated_at=now
        )

        log_section_end(logger, "fixture refresh")
        return {
            "status": "success" if result.ok else "degraded",
            "reason": result.reason,
            "committed": committed,
            "fixtures": len(result.data),
            "timestamp": now.isoformat(),
        }

    async def poll_scores(self) -> dict:
        result = await self.coordinator.execute("live poll", self._poll_scores)
        return result if result is not None else SKIPPED

    async def _poll_scores(self) -> dict:
        ticket = self.coordinator.begin()

        poll = await self.synchronizer.poll_live_scores(list(self.state.fixtures))
        now = self._clock()
        committed = self.coordinator.commit(
            "fixtures", ticket, fixtures=tuple(poll.fixtures), fixtures_updated_at=now
        )
        if committed:
            self.coordinator.add_events(poll.events)
            for event in poll.events:
                logger.info(
                    f"{'VAR' if event.is_var else 'GOAL'}: {event.match_title} "
                    f"{event.score_label} ({event.scorer}, {event.minute_label})"
                )

        return {
            "status": "success",
            "committed": committed,
            "events": len(poll.events) if committed else 0,
            "timestamp": now.isoformat(),
        }
