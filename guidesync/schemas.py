from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guidesync.services.match_locator_service import split_match_title


class ProgramResponse(BaseModel):
    """Single program data"""
    model_config = ConfigDict(from_attributes=True)

    channel_key: str
    title: str
    description: str
    start: datetime
    end: datetime


class NowNextResponse(BaseModel):
    """Current and next program for one channel"""
    channel_key: str
    timestamp: datetime
    current: ProgramResponse | None = None
    next: ProgramResponse | None = None
    progress: float | None = Field(None, description="Elapsed percentage of the current program")


class ChannelRequest(BaseModel):
    """Playlist channel to search"""
    name: str = Field(..., description="Channel display name")
    tvg_id: str | None = Field(None, description="Guide channel id")
    group: str | None = None
    url: str | None = None


class LocateRequest(BaseModel):
    """Match locate request"""
    match_title: str = Field(..., min_length=3, description="Match title such as 'Inter vs Como'")
    channels: list[ChannelRequest] = Field(..., min_length=1, description="Channels to search, in priority order")

    @field_validator("match_title")
    @classmethod
    def validate_match_title(cls, v: str) -> str:
        """Require a 'Team A vs Team B' title"""
        if len(split_match_title(v)) < 2:
            raise ValueError(f"match_title must look like 'Team A vs Team B': {v}")
        return v


class LocalMatchResponse(BaseModel):
    channel: ChannelRequest
    program_title: str
    is_live: bool
    start: datetime


class FixtureResponse(BaseModel):
    """Fixture snapshot"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    league: str
    league_id: int | None
    match: str
    home_team: str
    away_team: str
    home_logo: str
    away_logo: str
    status: str
    home_score: int | None
    away_score: int | None
    raw_date: datetime | None
    time: str


class FixturesResponse(BaseModel):
    timestamp: datetime | None
    total: int
    fixtures: list[FixtureResponse]


class GoalEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fixture_id: str
    match_title: str
    score_label: str
    scorer: str
    minute_label: str
    is_var: bool
