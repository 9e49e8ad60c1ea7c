"""
Structured logging helpers for consistent log formatting.
"""
import logging
from datetime import datetime, timezone
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

_SECRET_QUERY_KEYS = {"token", "key", "apikey", "api_key", "password", "pass"}


def sanitize_url(url: str) -> str:
    """Remove credentials and secret query values from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    netloc = parts.netloc
    if "@" in netloc:
        netloc = "***:***@" + netloc.split("@", 1)[1]

    query = parts.query
    if query:
        query = urlencode(
            [
                (k, "***" if k.lower() in _SECRET_QUERY_KEYS else v)
                for k, v in parse_qsl(query, keep_blank_values=True)
            ],
            safe="*",
        )

    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name} at {datetime.now(timezone.utc).isoformat()}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name} at {datetime.now(timezone.utc).isoformat()}")


def log_index_summary(logger: logging.Logger, channels_count: int, programs_count: int) -> None:
    """Log program index summary."""
    logger.info(f"Guide index summary - Channels: {channels_count}, Programs: {programs_count}")


def log_poll_summary(
    logger: logging.Logger,
    tracked: int,
    live: int,
    events: int
) -> None:
    """
    Log live poll summary.

    Args:
        logger: Logger instance
        tracked: Fixtures in the baseline snapshot
        live: Fixtures returned as in play
        events: Goal/VAR events emitted
    """
    logger.info(f"Live poll summary - Tracked: {tracked}, In play: {live}, Events: {events}")
