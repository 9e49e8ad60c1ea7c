"""
EPG Downloader Service

Downloads the guide feed and parses it into a program index.
Every failure degrades to an empty index so callers treat
"no data" and "fetch failed" the same way.
"""
import logging
import asyncio
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import httpx
from lxml import etree # type: ignore

from guidesync.config import settings
from guidesync.services.xmltv_parser_service import parse_xmltv_file, retention_window
from guidesync.services.fetch_types import ProgramIndex, SyncResult
from guidesync.utils.file_operations import download_file, cleanup_temp_file
from guidesync.utils.logging_helpers import log_index_summary, sanitize_url
from guidesync.utils.timezone import utc_now


logger = logging.getLogger(__name__)


async def load_program_index(
    url: str | None,
    now: datetime | None = None,
    *,
    parse_timeout_seconds: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncResult[ProgramIndex]:
    """
    Download and parse the guide feed

    The retention window is computed once, from now, at the start of the call.

    Args:
        url: Guide feed URL
        now: Reference time (defaults to current UTC time)

    Keyword Args:
        parse_timeout_seconds: Timeout for parsing (None uses settings, 0 disables)
        transport: Optional httpx transport

    Returns:
        SyncResult with the new index, or an empty index and a reason
    """
    if not url:
        logger.warning("No EPG URL configured - returning empty guide")
        return SyncResult(data={}, reason="EPG URL not configured")

    now = now or utc_now()
    past_limit, future_limit = retention_window(now, settings.epg_past_hours, settings.epg_future_hours)
    if parse_timeout_seconds is None:
        parse_timeout_seconds = settings.epg_parse_timeout_sec

    temp_file = None
    try:
        logger.info(
            f"Loading guide from {sanitize_url(url)} (window: {past_limit.isoformat()} to {future_limit.isoformat()})"
        )
        temp_file = await download_file(
            url,
            f"guidesync_epg_{uuid4().hex}.xml",
            timeout=settings.http_timeout_sec,
            transport=transport,
        )
        index = await parse_xmltv_async(
            temp_file,
            past_limit,
            future_limit,
            parse_timeout_seconds=parse_timeout_seconds,
        )
    except (httpx.HTTPError, RuntimeError) as exc:
        logger.error(f"Guide download failed for {sanitize_url(url)}: {exc}")
        return SyncResult(data={}, reason=f"download failed: {exc}")
    except (etree.XMLSyntaxError, ValueError, OSError) as exc:
        logger.error(f"Guide parsing failed for {sanitize_url(url)}: {exc}")
        return SyncResult(data={}, reason=f"parse failed: {exc}")
    finally:
        if temp_file:
            if not cleanup_temp_file(temp_file):
                logger.debug("Cleanup skipped (file not found)")

    log_index_summary(logger, len(index), sum(len(programs) for programs in index.values()))
    return SyncResult(data=index)


async def parse_xmltv_async(
    file_path: Path | str,
    past_limit: datetime,
    future_limit: datetime,
    *,
    parse_timeout_seconds: int | None = None,
) -> ProgramIndex:
    """
    Parse XMLTV file asynchronously with timeout protection.

    File parsing is offloaded to thread pool to avoid blocking event loop.

    Args:
        file_path: Path to XMLTV file (Path or str)
        past_limit: Start of retention window
        future_limit: End of retention window

    Returns:
        Program index

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        ValueError: If parsing times out or the document is empty
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    logger.debug(f"  File size: {file_path.stat().st_size / 1024 / 1024:.2f} MB")

    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    try:
        loop = asyncio.get_running_loop()
        logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
        parse_task = loop.run_in_executor(
            None,
            parse_xmltv_file,
            str(file_path),
            past_limit,
            future_limit
        )
        if effective_timeout:
            index = await asyncio.wait_for(parse_task, timeout=effective_timeout)
        else:
            index = await parse_task
    except asyncio.TimeoutError:
        logger.error("XML parsing timed out after %s for %s", timeout_display, file_path)
        raise ValueError("XML parsing timed out - file may be too large or malformed")

    if not index:
        logger.warning("No programs found in XMLTV file (possibly outside time window)")

    return index
