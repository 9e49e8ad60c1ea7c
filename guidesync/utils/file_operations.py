"""
File operation utilities

Streams the guide feed into a temp file and removes it afterwards.
Feeds can run to hundreds of megabytes, so the body is never held in memory.
"""
import asyncio
import logging
import tempfile
from pathlib import Path

import aiofiles
import httpx

from guidesync.utils.logging_helpers import sanitize_url


logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024
MEGABYTE = 1024 * 1024


def _is_retryable(exc: httpx.HTTPError) -> bool:
    """Timeouts, refused connections and 5xx are worth another attempt"""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError))


async def _stream_once(client: httpx.AsyncClient, url: str, target: Path, chunk_size: int) -> int:
    """Write one response body to target chunk by chunk; returns bytes written"""
    written = 0
    async with client.stream("GET", url) as response:
        response.raise_for_status()
        async with aiofiles.open(target, "wb") as f:
            async for chunk in response.aiter_bytes(chunk_size):
                await f.write(chunk)
                written += len(chunk)
    return written


async def download_file(
    url: str,
    filename: str,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    transport: httpx.AsyncBaseTransport | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> Path:
    """
    Stream a URL into the system temp directory

    Transient failures are retried with exponential backoff
    (backoff_factor * 2^attempt seconds). A 4xx response fails at once.
    A partially written file is removed before the next attempt.

    Args:
        url: URL to download from
        filename: Name for the temporary file
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Base delay in seconds
        transport: Optional httpx transport (used to stub the network)
        chunk_size: Read size for the streamed body

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPError: If the download fails for good
    """
    target = Path(tempfile.gettempdir()) / filename
    safe_url = sanitize_url(url)
    logger.info(f"Downloading {safe_url}...")

    async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
        for attempt in range(1, max_retries + 1):
            try:
                written = await _stream_once(client, url, target, chunk_size)
            except httpx.HTTPError as e:
                cleanup_temp_file(target)
                if not _is_retryable(e):
                    logger.error(f"Download of {safe_url} failed: {e}")
                    raise
                if attempt == max_retries:
                    logger.error(f"Download of {safe_url} failed after {max_retries} attempts: {e}")
                    raise

                wait_time = backoff_factor * (2 ** (attempt - 1))
                logger.warning(
                    f"Download attempt {attempt}/{max_retries} failed ({type(e).__name__}). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
                continue

            logger.info(f"Downloaded {written / MEGABYTE:.2f} MB to {target}")
            return target

    raise RuntimeError(f"Failed to download {safe_url}: no attempts made")


def cleanup_temp_file(file_path: Path | None) -> bool:
    """
    Delete a temporary file if it exists

    Returns:
        True if a file was removed
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
