#!/usr/bin/env python3
"""Status events emitted by the synchronization engine.

The engine reports what it is doing as an ordered stream of StatusEvent
values. Sinks are fire-and-forget: emit() must return without waiting.

This module provides:
- Severity and StatusEvent
- severity_for(): escalation policy for consecutive failures
- preview(): bounded excerpt of clipboard text for event details
- LoggingStatusSink and QueueStatusSink
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Protocol

from davclipsync.constants import PREVIEW_LENGTH

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class StatusEvent:
    severity: Severity
    title: str
    detail: str = ""


def severity_for(consecutive_failures: int, threshold: int) -> Severity:
    """Map a failure streak to the severity it should be reported with.

    Args:
        consecutive_failures: Failures since the last success.
        threshold: Number of failures tolerated before escalating.

    Returns:
        INFO with no failures, WARNING while the streak is within the
        threshold, ERROR once it exceeds it.
    """
    if consecutive_failures <= 0:
        return Severity.INFO
    if consecutive_failures <= threshold:
        return Severity.WARNING
    return Severity.ERROR


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Return at most limit characters of text, with "..." if truncated."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class StatusSink(Protocol):
    def emit(self, event: StatusEvent) -> None: ...


_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class LoggingStatusSink:
    """Write status events to a logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: StatusEvent) -> None:
        if event.detail:
            self._log.log(_LEVELS[event.severity], "%s: %s", event.title, event.detail)
        else:
            self._log.log(_LEVELS[event.severity], "%s", event.title)


class QueueStatusSink:
    """Buffer status events in an unbounded asyncio.Queue for a consumer."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[StatusEvent] = asyncio.Queue()

    def emit(self, event: StatusEvent) -> None:
        self.queue.put_nowait(event)
