"""Bounded wait for an artifact that another process is still writing."""

from __future__ import annotations

import asyncio
from pathlib import Path

from mailreport.core.exceptions import SourceUnavailable
from mailreport.logging import get_logger

logger = get_logger(__name__)


async def wait_for_artifact(
    path: Path,
    max_attempts: int = 10,
    interval: float = 0.5,
) -> Path:
    """
    Poll for a file, sleeping cooperatively between checks.

    Args:
        path: The file to wait for.
        max_attempts: Number of waits before giving up.
        interval: Seconds to sleep between checks.

    Returns:
        The path, once it exists.

    Raises:
        SourceUnavailable: If the file still doesn't exist after the last wait.
    """
    for attempt in range(max_attempts):
        if path.exists():
            return path

        logger.info(
            "artifact_waiting",
            path=str(path),
            attempt=attempt + 1,
            max_attempts=max_attempts,
        )
        await asyncio.sleep(interval)

    if path.exists():
        return path

    logger.warning("artifact_not_found", path=str(path), attempts=max_attempts)
    raise SourceUnavailable(path, max_attempts)
