"""Structured logging for mailreport.

Events go to stderr so ``mailreport render`` can stream HTML on stdout. Every
event carries the logger name, level and timestamp, plus whatever the current
command bound with :func:`run_context`.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

MASK = "********"

CREDENTIAL_KEYS = frozenset({"password", "smtp_password"})


def mask_credentials(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask SMTP credentials that end up in an event."""
    for key in CREDENTIAL_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def shared_processors() -> list[Processor]:
    """Processors applied to every event before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        mask_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog for the CLI.

    Args:
        log_level: Minimum level name; unknown names fall back to INFO.
        json_format: One JSON object per line instead of the console layout.
        stream: Defaults to sys.stderr.
    """
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[*shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,  # tests reconfigure between cases
    )


@contextmanager
def run_context(**fields: Any) -> Iterator[None]:
    """Bind fields (command, source file) to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to its module name."""
    return structlog.get_logger(name).bind(logger=name)
