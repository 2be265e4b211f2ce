"""Parsing of Playwright result objects shared by the static and live sources."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from mailreport.core.models import (
    Attachment,
    AttemptStatus,
    ErrorInfo,
    ErrorLocation,
    RawAttempt,
    Step,
)
from mailreport.logging import get_logger

logger = get_logger(__name__)


def as_ms(value: Any) -> int:
    """Coerce a duration to non-negative whole milliseconds."""
    try:
        ms = round(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(ms, 0)


def parse_status(value: Any) -> AttemptStatus:
    """Parse a raw attempt status; unknown values count as failures."""
    try:
        return AttemptStatus(value)
    except ValueError:
        logger.warning("unknown_attempt_status", status=value)
        return AttemptStatus.FAILED


def parse_error(data: dict[str, Any]) -> ErrorInfo:
    """Parse a Playwright error object."""
    location = data.get("location")
    return ErrorInfo(
        message=data.get("message") or data.get("value") or "",
        stack=data.get("stack") or None,
        location=(
            ErrorLocation(
                file=location.get("file", ""),
                line=location.get("line", 0),
                column=location.get("column", 0),
            )
            if isinstance(location, dict)
            else None
        ),
    )


def parse_output_chunks(chunks: list[Any] | None) -> list[str]:
    """Parse stdout/stderr chunks.

    Chunks are plain strings, ``{"text": ...}`` or ``{"buffer": <base64>}``.
    Empty chunks are dropped.
    """
    lines = []
    for chunk in chunks or []:
        if isinstance(chunk, dict):
            if chunk.get("text"):
                text = chunk["text"]
            elif chunk.get("buffer"):
                try:
                    text = base64.b64decode(chunk["buffer"]).decode("utf-8", errors="replace")
                except (binascii.Error, ValueError):
                    continue
            else:
                continue
        else:
            text = str(chunk) if chunk else ""
        if text:
            lines.append(text)
    return lines


def parse_steps(steps: list[dict[str, Any]] | None) -> list[Step]:
    """Parse a (possibly nested) list of steps into a step tree."""
    parsed = []
    for step in steps or []:
        error = step.get("error")
        parsed.append(
            Step(
                title=step.get("title", ""),
                category=step.get("category", ""),
                duration_ms=as_ms(step.get("duration")),
                error=error.get("message") if isinstance(error, dict) else error,
                steps=parse_steps(step.get("steps")),
            )
        )
    return parsed


def parse_attachment(data: dict[str, Any]) -> Attachment:
    return Attachment(
        name=data.get("name", ""),
        content_type=data.get("contentType", ""),
        path=data.get("path"),
    )


def parse_attempt(result: dict[str, Any], index: int = 0) -> RawAttempt:
    """Parse one Playwright test result into a raw attempt.

    Args:
        result: The result object.
        index: Position in the result list, used when ``retry`` is absent.
    """
    return RawAttempt(
        status=parse_status(result.get("status", AttemptStatus.FAILED.value)),
        duration_ms=as_ms(result.get("duration")),
        retry=result.get("retry", index),
        errors=[parse_error(e) for e in result.get("errors") or []],
        stdout=parse_output_chunks(result.get("stdout")),
        stderr=parse_output_chunks(result.get("stderr")),
        attachments=[parse_attachment(a) for a in result.get("attachments") or []],
        steps=parse_steps(result.get("steps")),
    )
