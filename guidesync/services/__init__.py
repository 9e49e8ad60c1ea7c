"""
Services package for Guide Sync

This package contains all business logic and service layer components.
"""
from guidesync.services.epg_downloader_service import load_program_index
from guidesync.services.epg_query_service import current_program, next_program, now_and_next, program_progress
from guidesync.services.fetch_types import Channel, Fixture, GoalEvent, PollResult, Program, ProgramIndex
from guidesync.services.fixture_sync_service import FixtureSynchronizer
from guidesync.services.match_locator_service import find_local_matches
from guidesync.services.scheduler_service import sync_scheduler
from guidesync.services.sync_service import SyncService

__all__ = [
    'Channel',
    'Fixture',
    'FixtureSynchronizer',
    'GoalEvent',
    'PollResult',
    'Program',
    'ProgramIndex',
    'SyncService',
    'current_program',
    'find_local_matches',
    'load_program_index',
    'next_program',
    'now_and_next',
    'program_progress',
    'sync_scheduler',
]
