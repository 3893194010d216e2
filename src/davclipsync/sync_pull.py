#!/usr/bin/env python3
"""Puller: apply remote clipboard changes locally.

The Puller cycles forever while the engine runs:

    Idle -> Fetching -> Comparing -> (Applying | Idle) -> Idle

Fetch failures are reported with a severity that escalates once the failure
streak exceeds max_retries, but the Puller never gives up on its own.
Malformed envelopes skip the cycle silently. The sleep between cycles ends
early on shutdown and on reconfiguration.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from davclipsync.errors import ClipboardError, ConfigError, DecodeError, NetworkError, StatusError
from davclipsync.event_utils import wait_for_any
from davclipsync.status import Severity, StatusEvent, preview, severity_for
from davclipsync.sync_state import RemoteChange

if TYPE_CHECKING:
    from davclipsync.clipboard import ClipboardBackend
    from davclipsync.config import ConfigStore
    from davclipsync.protocol import RemoteStore
    from davclipsync.status import StatusSink
    from davclipsync.sync_state import SyncState

logger = logging.getLogger(__name__)


class Puller:
    """Periodically fetch the remote envelope and apply changes."""

    def __init__(
        self,
        state: SyncState,
        store: RemoteStore,
        clipboard: ClipboardBackend,
        sink: StatusSink,
        config: ConfigStore,
        stop: asyncio.Event,
    ) -> None:
        self._state = state
        self._store = store
        self._clipboard = clipboard
        self._sink = sink
        self._config = config
        self._stop = stop
        self._wake = asyncio.Event()

    def wake(self) -> None:
        """End the current sleep so the next cycle starts with fresh settings."""
        self._wake.set()

    async def run(self) -> None:
        """Run pull cycles until the stop event is set."""
        logger.debug("Puller started")
        while not self._stop.is_set():
            self._wake.clear()
            if self._config.current.pull_enabled:
                await self.pull_once()
            if self._stop.is_set():
                break
            await wait_for_any((self._stop, self._wake), self._config.current.poll_interval)
        logger.debug("Puller stopped")

    async def pull_once(self) -> None:
        """Run one Fetching -> Comparing -> Applying pass."""
        since = await self._state.begin_fetch()
        try:
            envelope = await self._store.fetch(cancel=self._stop)
        except DecodeError as e:
            logger.debug("Skipping pull cycle: %s", e)
            return
        except (NetworkError, StatusError, ConfigError) as e:
            if self._stop.is_set():
                return
            await self._report_failure(e)
            return

        streak = await self._state.record_pull_success()
        if streak:
            logger.info("Server reachable again after %d failed pulls", streak)
            self._sink.emit(
                StatusEvent(Severity.INFO, "Connected to server", f"Recovered after {streak} failures")
            )

        if envelope is None:
            await self._state.mark_remote_seen()
            return

        change = await self._state.observe_remote(envelope.clipboard, since)
        if change is RemoteChange.STALE:
            logger.debug("Discarding remote value read across a local push")
        elif change is RemoteChange.BASELINE:
            logger.debug("Recorded remote baseline of %d characters", len(envelope.clipboard))
        elif change is RemoteChange.CHANGED:
            await self._apply(envelope.clipboard)
        else:
            self._sink.emit(StatusEvent(Severity.INFO, "Connected to server", "In sync"))

    async def _apply(self, text: str) -> None:
        # last_value was updated before this write, so the change
        # notification it triggers is not pushed back.
        try:
            await self._clipboard.write_text(text)
        except ClipboardError as e:
            logger.error("Failed to set clipboard: %s", e)
            self._sink.emit(StatusEvent(Severity.ERROR, "Failed to set clipboard", str(e)))
            if await self._state.revert_remote(text):
                logger.debug("Will apply the remote value again next cycle")
            return
        logger.debug("Applied %d characters from remote", len(text))
        self._sink.emit(StatusEvent(Severity.INFO, "Clipboard synced", preview(text)))

    async def _report_failure(self, error: Exception) -> None:
        count = await self._state.record_pull_failure()
        severity = severity_for(count, self._config.current.max_retries)
        logger.debug("Pull failed (%d in a row): %s", count, error)
        self._sink.emit(StatusEvent(severity, str(error), f"Retry {count}"))
