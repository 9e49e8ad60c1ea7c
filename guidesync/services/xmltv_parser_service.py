from datetime import datetime, timedelta
from typing import Optional
import logging

from lxml import etree # type: ignore

from guidesync.services.fetch_types import Program, ProgramIndex
from guidesync.utils.timezone import DateFormatError, parse_xmltv_time

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "No Title"


def retention_window(now: datetime, past_hours: int, future_hours: int) -> tuple[datetime, datetime]:
    """Return (past_limit, future_limit) around now"""
    return now - timedelta(hours=past_hours), now + timedelta(hours=future_hours)


def parse_xmltv_file(file_path: str, past_limit: datetime, future_limit: datetime) -> ProgramIndex:
    """
    Parse XMLTV file into a per-channel program index

    The parser recovers from malformed markup so one broken block does not
    discard the rest of the feed.

    Args:
        file_path: Path to XMLTV file
        past_limit: Programs ending before this are dropped
        future_limit: Programs starting after this are dropped

    Returns:
        Mapping of channel id to programs sorted by start time

    Raises:
        etree.XMLSyntaxError: If the document cannot be recovered at all
        ValueError: If the document has no root element
        OSError: If file can't be read
    """
    logger.debug(f"Parsing XMLTV file: {file_path}")

    parser = etree.XMLParser(recover=True, huge_tree=True, resolve_entities=False)
    tree = etree.parse(file_path, parser)
    root = tree.getroot()
    if root is None:
        raise ValueError("Empty XMLTV document")

    return build_program_index(root, past_limit, future_limit)


def build_program_index(root: etree._Element, past_limit: datetime, future_limit: datetime) -> ProgramIndex:
    """Collect programme elements into sorted per-channel buckets"""
    index: ProgramIndex = {}
    skipped = 0
    outside_window = 0

    for programme in root.iter('programme'):
        program = _parse_single_program(programme)
        if program is None:
            skipped += 1
            continue

        if program.end < past_limit or program.start > future_limit:
            outside_window += 1
            continue

        index.setdefault(program.channel_key, []).append(program)

    # list.sort is stable, so equal start times keep feed order
    for programs in index.values():
        programs.sort(key=lambda p: p.start)

    total = sum(len(programs) for programs in index.values())
    logger.info(
        f"XMLTV parsing complete: {len(index)} channels, {total} programs "
        f"({skipped} malformed, {outside_window} outside window)"
    )

    return index


def _parse_single_program(programme: etree._Element) -> Optional[Program]:
    """Parse single programme element"""
    channel_id = programme.get('channel')
    start_str = programme.get('start')
    stop_str = programme.get('stop')

    if not channel_id or not start_str or not stop_str:
        logger.debug("Skipping programme with missing channel/start/stop attribute")
        return None

    try:
        start = parse_xmltv_time(start_str)
        end = parse_xmltv_time(stop_str)
    except DateFormatError as e:
        logger.debug(f"Skipping programme on {channel_id}: {e}")
        return None

    if start >= end:
        logger.debug(f"Skipping programme on {channel_id}: start {start_str} not before stop {stop_str}")
        return None

    return Program(
        channel_key=channel_id,
        title=_get_text(programme, 'title', default=DEFAULT_TITLE) or DEFAULT_TITLE,
        description=_get_text(programme, 'desc', default="") or "",
        start=start,
        end=end,
    )


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
