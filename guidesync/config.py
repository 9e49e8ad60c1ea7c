from pathlib import Path
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    database_path: str = "./data/guidesync.db"
    log_level: str = "INFO"
    local_timezone: str = "UTC"
    http_timeout_sec: float = 30.0

    epg_url: str | None = None
    epg_refresh_cron: str = "0 */6 * * *"  # Every 6 hours
    epg_refresh_misfire_grace_sec: int = 600
    epg_parse_timeout_sec: int = 120  # 0 disables timeout
    epg_past_hours: int = 2  # Catch-up window
    epg_future_hours: int = 24

    football_api_url: str = "https://api.football-data.org/v4"
    football_api_key: str = ""
    football_poll_interval_sec: int = 60
    fixture_cache_key: str = "football_data_highlights_v2"
    fixture_ttl_sec: int = 15 * 60
    fixture_live_ttl_sec: int = 60
    allowed_league_ids: Annotated[list[int] | None, NoDecode] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("allowed_league_ids", mode="before")
    @classmethod
    def parse_league_ids(cls, value):
        """Parse comma-separated league ids or list."""
        if value is None:
            return []
        if isinstance(value, int):
            return [value]
        if isinstance(value, str):
            if not value.strip():
                return []
            return [int(item.strip()) for item in value.split(",") if item.strip()]
        if isinstance(value, list):
            return value
        return []

    @field_validator("epg_url", "football_api_url")
    @classmethod
    def validate_urls(cls, value: str | None, info) -> str | None:
        """Validate feed URLs are HTTP/HTTPS."""
        if not value:
            return value
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be HTTP/HTTPS: {value}")
        return value.rstrip("/") if info.field_name == "football_api_url" else value

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Validate database path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access database path '{value}': {exc}") from exc

    @field_validator("local_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate timezone is a known IANA name."""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator(
        "epg_parse_timeout_sec",
        "epg_refresh_misfire_grace_sec",
        "epg_past_hours",
        "epg_future_hours",
    )
    @classmethod
    def validate_non_negative_ints(cls, value: int, info) -> int:
        """Ensure durations are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator(
        "football_poll_interval_sec",
        "fixture_ttl_sec",
        "fixture_live_ttl_sec",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure polling and TTL values are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("http_timeout_sec")
    @classmethod
    def validate_http_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout_sec must be > 0")
        return value

    @field_validator("epg_refresh_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_sync_configuration(self):
        """Validate cross-field configuration."""
        if not self.epg_url:
            logger.warning("No EPG URL configured - guide refresh will return no data")

        if not self.football_api_key:
            logger.warning("No football API key configured - live score polling disabled")

        if self.fixture_live_ttl_sec > self.fixture_ttl_sec:
            raise ValueError("fixture_live_ttl_sec must be <= fixture_ttl_sec")

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Database: %s", self.database_path)
        logger.info("  Local Timezone: %s", self.local_timezone)
        logger.info("  EPG URL: %s", "configured" if self.epg_url else "not configured")
        logger.info("  EPG Refresh Schedule: %s", self.epg_refresh_cron)
        logger.info(
            "  EPG Retention: -%sh / +%sh", self.epg_past_hours, self.epg_future_hours
        )
        logger.info(
            "  Parse Timeout: %s seconds",
            self.epg_parse_timeout_sec or "disabled",
        )
        logger.info("  Football API: %s", self.football_api_url)
        logger.info("  Live Poll Interval: %ss", self.football_poll_interval_sec)
        logger.info(
            "  Fixture TTL: %ss (live: %ss)",
            self.fixture_ttl_sec,
            self.fixture_live_ttl_sec,
        )
        logger.info("  Allowed League IDs: %s", self.allowed_league_ids or "none")


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
