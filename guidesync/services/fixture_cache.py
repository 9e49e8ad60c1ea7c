"""
Fixture Cache

Day-scoped, TTL-governed cache of fixture snapshots on top of a
KeyValueStore. Entries from another calendar day are never served.

Freshness rules, in order:
  1. Smart kickoff: a SCHEDULED/TIMED fixture whose kickoff has passed
     makes the whole entry stale so the status flip is picked up.
  2. Dynamic TTL: the default TTL shrinks to the live TTL when any
     fixture is IN_PLAY or PAUSED.
  3. The entry is stale once its age exceeds the effective TTL.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from guidesync.services.db_service import KeyValueStore
from guidesync.services.fetch_types import (
    LIVE_STATUSES,
    PENDING_STATUSES,
    CacheEntry,
    Fixture,
)
from guidesync.utils.timezone import DateFormatError, local_date_string, parse_iso8601_to_utc, utc_now


logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
CLEANUP_PREFIXES = ("broadcaster_",)
CLEANUP_MARKERS = ("highlights",)


class CacheDecodeError(ValueError):
    """Stored value is not a readable cache entry"""
    pass


def is_managed_key(key: str) -> bool:
    """Keys the cleanup pass is allowed to evict"""
    return key.startswith(CLEANUP_PREFIXES) or any(marker in key for marker in CLEANUP_MARKERS)


def has_pending_kickoff(fixtures: Sequence[Fixture], now: datetime) -> bool:
    return any(
        f.status in PENDING_STATUSES and f.raw_date is not None and now >= f.raw_date
        for f in fixtures
    )


def has_live_activity(fixtures: Sequence[Fixture]) -> bool:
    return any(f.status in LIVE_STATUSES for f in fixtures)


def encode_entry(entry: CacheEntry[list[Fixture]]) -> str:
    return json.dumps({
        "calendar_date": entry.calendar_date,
        "stored_at": entry.stored_at.isoformat(),
        "payload": [fixture.to_dict() for fixture in entry.payload],
    })


def decode_entry(raw: str) -> CacheEntry[list[Fixture]]:
    """
    Decode a stored entry

    Raises:
        CacheDecodeError: If the JSON or any fixture record is unreadable
    """
    try:
        data = json.loads(raw)
        stored_at = data.get("stored_at")
        return CacheEntry(
            calendar_date=data["calendar_date"],
            stored_at=parse_iso8601_to_utc(stored_at) if stored_at else EPOCH,
            payload=[Fixture.from_dict(item) for item in data["payload"]],
        )
    except (ValueError, KeyError, TypeError, AttributeError, DateFormatError) as e:
        raise CacheDecodeError(f"Unreadable cache entry: {e}") from e


class FixtureCache:
    """Fixture snapshot cache with a live-state aware freshness policy."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl: timedelta = timedelta(minutes=15),
        live_ttl: timedelta = timedelta(minutes=1),
        tz_name: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.live_ttl = live_ttl
        self.tz_name = tz_name
        self._clock = clock
        self._write_locks: dict[str, asyncio.Lock] = {}

    def today(self) -> str:
        return local_date_string(self._clock(), self.tz_name)

    def effective_ttl(self, fixtures: Sequence[Fixture]) -> timedelta:
        return self.live_ttl if has_live_activity(fixtures) else self.ttl

    def is_fresh(self, entry: CacheEntry[list[Fixture]], now: datetime) -> bool:
        if has_pending_kickoff(entry.payload, now):
            logger.debug("Cache stale: scheduled fixture past kickoff")
            return False
        return now - entry.stored_at <= self.effective_ttl(entry.payload)

    async def read(self, key: str, ignore_freshness: bool = False) -> list[Fixture] | None:
        """
        Return cached fixtures or None on a miss

        Args:
            key: Cache key
            ignore_freshness: Skip kickoff/TTL checks (calendar date still applies)
        """
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.error(f"Failed to read cache '{key}': {e}")
            return None
        if raw is None:
            return None

        try:
            entry = decode_entry(raw)
        except CacheDecodeError as e:
            logger.warning(f"Ignoring corrupt cache entry '{key}': {e}")
            return None

        if entry.calendar_date != self.today():
            logger.debug(f"Cache miss for '{key}': entry from {entry.calendar_date}")
            return None

        if ignore_freshness:
            return entry.payload

        if not self.is_fresh(entry, self._clock()):
            return None

        return entry.payload

    async def write(self, key: str, fixtures: Sequence[Fixture]) -> None:
        """Overwrite the entry for key with today's snapshot; failures are logged"""
        lock = self._write_locks.setdefault(key, asyncio.Lock())
        async with lock:
            now = self._clock()
            entry = CacheEntry(
                calendar_date=local_date_string(now, self.tz_name),
                stored_at=now,
                payload=list(fixtures),
            )
            try:
                await self.store.set(key, encode_entry(entry))
            except Exception as e:
                logger.error(f"Failed to save to cache '{key}': {e}")

    async def cleanup(self) -> int:
        """
        Evict managed entries from another day or with unreadable JSON

        Returns:
            Number of evicted keys
        """
        today = self.today()
        to_remove: list[str] = []

        try:
            for key in await self.store.keys():
                if not is_managed_key(key):
                    continue
                raw = await self.store.get(key)
                if raw is None:
                    continue
                try:
                    data = json.loads(raw)
                    if not isinstance(data, dict) or data.get("calendar_date") != today:
                        to_remove.append(key)
                except ValueError:
                    to_remove.append(key)

            for key in to_remove:
                await self.store.delete(key)
        except Exception as e:
            logger.error(f"Cache cleanup failed: {e}")
            return 0

        if to_remove:
            logger.info(f"Cache cleanup evicted {len(to_remove)} entr{'y' if len(to_remove) == 1 else 'ies'}")
        return len(to_remove)
