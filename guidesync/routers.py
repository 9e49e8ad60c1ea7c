from typing import Annotated
from fastapi import APIRouter, Depends
import logging

from guidesync.dependencies import get_sync_service
from guidesync.schemas import (
    ChannelRequest,
    FixtureResponse,
    FixturesResponse,
    GoalEventResponse,
    LocalMatchResponse,
    LocateRequest,
    NowNextResponse,
    ProgramResponse,
)
from guidesync.services import (
    Channel,
    SyncService,
    find_local_matches,
    now_and_next,
    program_progress,
    sync_scheduler,
)
from guidesync.services.scheduler_service import POLL_JOB_ID
from guidesync.utils.timezone import utc_now


logger = logging.getLogger(__name__)

main_router = APIRouter()

ServiceDep = Annotated[SyncService, Depends(get_sync_service)]


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = sync_scheduler.get_next_run_time()

    return {
        "service": "Guide Sync",
        "version": "0.1.0",
        "next_guide_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "refresh": "/refresh/epg, /refresh/fixtures - Manually trigger a refresh (POST)",
            "now": "/channels/{channel_key}/now - Current and next program",
            "locate": "/matches/locate - Find channels airing a match (POST)",
            "fixtures": "/fixtures - Ranked fixtures",
            "events": "/events - Recent goal events",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(service: ServiceDep) -> dict:
    """Health check endpoint"""
    state = service.state
    next_poll = sync_scheduler.get_next_run_time(POLL_JOB_ID)
    return {
        "status": "ok",
        "scheduler_running": sync_scheduler.scheduler.running if sync_scheduler.scheduler else False,
        "guide_channels": len(state.program_index),
        "guide_updated_at": state.index_updated_at.isoformat() if state.index_updated_at else None,
        "fixtures": len(state.fixtures),
        "fixtures_updated_at": state.fixtures_updated_at.isoformat() if state.fixtures_updated_at else None,
        "next_live_poll": next_poll.isoformat() if next_poll else None,
    }


@main_router.post("/refresh/epg")
async def trigger_guide_refresh(service: ServiceDep) -> dict:
    """Manually trigger a guide download and re-index"""
    logger.info("Manual guide refresh triggered via API")
    return await service.refresh_guide()


@main_router.post("/refresh/fixtures")
async def trigger_fixture_refresh(service: ServiceDep) -> dict:
    """Manually trigger a fixture refresh (cache rules apply)"""
    logger.info("Manual fixture refresh triggered via API")
    return await service.refresh_fixtures()


@main_router.get("/channels/{channel_key}/now", response_model=NowNextResponse)
async def get_now_next(channel_key: str, service: ServiceDep) -> NowNextResponse:
    """Current and next program for a guide channel"""
    now = utc_now()
    current, upcoming = now_and_next(service.state.program_index, channel_key, now)
    return NowNextResponse(
        channel_key=channel_key,
        timestamp=now,
        current=ProgramResponse.model_validate(current) if current else None,
        next=ProgramResponse.model_validate(upcoming) if upcoming else None,
        progress=program_progress(current, now) if current else None,
    )


@main_router.post("/matches/locate", response_model=list[LocalMatchResponse])
async def locate_match(request: LocateRequest, service: ServiceDep) -> list[LocalMatchResponse]:
    """Find channels whose guide suggests they air the match"""
    channels = [Channel(**channel.model_dump()) for channel in request.channels]
    matches = find_local_matches(request.match_title, channels, service.state.program_index)
    return [
        LocalMatchResponse(
            channel=ChannelRequest.model_validate(match.channel, from_attributes=True),
            program_title=match.program_title,
            is_live=match.is_live,
            start=match.start,
        )
        for match in matches
    ]


@main_router.get("/fixtures", response_model=FixturesResponse)
async def get_fixtures(service: ServiceDep) -> FixturesResponse:
    """Ranked fixtures as last committed"""
    state = service.state
    return FixturesResponse(
        timestamp=state.fixtures_updated_at,
        total=len(state.fixtures),
        fixtures=[FixtureResponse.model_validate(fixture) for fixture in state.fixtures],
    )


@main_router.get("/events", response_model=list[GoalEventResponse])
async def get_events(service: ServiceDep) -> list[GoalEventResponse]:
    """Most recent goal and VAR events, newest first"""
    return [GoalEventResponse.model_validate(event) for event in service.state.recent_events]
