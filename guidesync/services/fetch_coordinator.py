"""
Sync Coordination

Skip-if-busy execution per job and last-committed-wins publication of
results into the shared SyncState.
"""
import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, TypeVar

from guidesync.services.fetch_types import Fixture, GoalEvent, ProgramIndex


logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RECENT_EVENTS = 50


@dataclass(frozen=True, slots=True)
class SyncState:
    """Published snapshot; replaced as a whole, never edited in place."""
    program_index: ProgramIndex = field(default_factory=dict)
    fixtures: tuple[Fixture, ...] = ()
    recent_events: tuple[GoalEvent, ...] = ()
    index_updated_at: datetime | None = None
    fixtures_updated_at: datetime | None = None


class SyncCoordinator:
    """
    Coordinates sync cycles.

    Each job name gets its own lock; a cycle started while the previous one
    is still running is skipped. Every cycle takes a generation ticket per
    topic, and its result is committed only if no newer cycle of that topic
    has committed first.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._tickets = itertools.count(1)
        self._committed: dict[str, int] = {}
        self.state = SyncState()

    def _lock(self, job: str) -> asyncio.Lock:
        return self._locks.setdefault(job, asyncio.Lock())

    async def execute(self, job: str, func: Callable[[], Awaitable[T]]) -> T | None:
        """
        Run func unless the same job is already in progress

        Returns:
            Result from func, or None if skipped
        """
        lock = self._lock(job)
        if lock.locked():
            logger.warning(f"{job} already in progress, skipping this tick")
            return None

        async with lock:
            return await func()

    def is_running(self, job: str) -> bool:
        return self._lock(job).locked()

    def begin(self) -> int:
        """Issue a generation ticket for a new cycle"""
        return next(self._tickets)

    def commit(self, topic: str, ticket: int, **changes: Any) -> bool:
        """
        Publish changes for topic if ticket is newer than the last commit

        Returns:
            True if the state was replaced
        """
        if ticket <= self._committed.get(topic, 0):
            logger.info(f"Discarding stale {topic} result (cycle {ticket})")
            return False

        self.state = replace(self.state, **changes)
        self._committed[topic] = ticket
        return True

    def add_events(self, events: list[GoalEvent]) -> None:
        if not events:
            return
        recent = (tuple(events) + self.state.recent_events)[:MAX_RECENT_EVENTS]
        self.state = replace(self.state, recent_events=recent)
