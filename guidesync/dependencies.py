"""
Dependency wiring

Builds the sync service from settings and exposes it as a lazily created
singleton for the API and scheduler.
"""
import logging
from datetime import timedelta

from guidesync.config import CustomSettings, settings
from guidesync.services.db_service import KeyValueStore, SqliteKeyValueStore
from guidesync.services.fixture_cache import FixtureCache
from guidesync.services.fixture_sync_service import FixtureSynchronizer
from guidesync.services.football_client import FootballDataClient
from guidesync.services.sync_service import SyncService


logger = logging.getLogger(__name__)


def build_sync_service(
    config: CustomSettings,
    store: KeyValueStore | None = None,
) -> SyncService:
    """
    Create a SyncService from configuration

    Args:
        config: Application settings
        store: Cache store (defaults to the SQLite store; requires init_db)

    Returns:
        Fully wired SyncService
    """
    cache = FixtureCache(
        store or SqliteKeyValueStore(),
        ttl=timedelta(seconds=config.fixture_ttl_sec),
        live_ttl=timedelta(seconds=config.fixture_live_ttl_sec),
        tz_name=config.local_timezone,
    )
    client = FootballDataClient(
        config.football_api_url,
        config.football_api_key,
        timeout=config.http_timeout_sec,
    )
    synchronizer = FixtureSynchronizer(
        client,
        cache,
        cache_key=config.fixture_cache_key,
        tz_name=config.local_timezone,
        allowed_league_ids=config.allowed_league_ids or [],
    )
    logger.debug("Sync service wired")
    return SyncService(synchronizer, epg_url=config.epg_url)


_sync_service: SyncService | None = None


def get_sync_service() -> SyncService:
    """
    Get or create the global sync service singleton.

    Returns:
        The global SyncService instance
    """
    global _sync_service
    if _sync_service is None:
        _sync_service = build_sync_service(settings)
    return _sync_service


def set_sync_service(service: SyncService | None) -> None:
    """
    Replace the global sync service (None resets it).

    WARNING: Only use this in test environments or at startup!
    """
    global _sync_service
    _sync_service = service
