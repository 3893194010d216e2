#!/usr/bin/env python3
"""Pusher: publish local clipboard changes.

A push is triggered by a clipboard change notification. It publishes the
current clipboard text with tenacity-driven retries and exponential backoff
between attempts. Exhausting the attempts is reported once; shutdown or
disabling push abandons the sequence without a report.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from davclipsync.constants import PUSH_INITIAL_WAIT, PUSH_MAX_WAIT, PUSH_WAIT_MULTIPLIER
from davclipsync.errors import ClipboardError, ConfigError, NetworkError, StatusError
from davclipsync.event_utils import wait_for_any
from davclipsync.status import Severity, StatusEvent, preview

if TYPE_CHECKING:
    from tenacity.wait import wait_base

    from davclipsync.clipboard import ClipboardBackend
    from davclipsync.config import ConfigStore
    from davclipsync.protocol import RemoteStore
    from davclipsync.status import StatusSink
    from davclipsync.sync_state import SyncState

logger = logging.getLogger(__name__)

PUSH_ERRORS = (NetworkError, StatusError, ConfigError)


class PushAborted(Exception):
    """Raised inside the retry sequence when the push must be abandoned."""


class Pusher:
    """Publish the local clipboard to the remote store."""

    def __init__(
        self,
        state: SyncState,
        store: RemoteStore,
        clipboard: ClipboardBackend,
        sink: StatusSink,
        config: ConfigStore,
        stop: asyncio.Event,
        wait: wait_base | None = None,
    ) -> None:
        self._state = state
        self._store = store
        self._clipboard = clipboard
        self._sink = sink
        self._config = config
        self._stop = stop
        self._wait = wait or wait_exponential(
            multiplier=PUSH_INITIAL_WAIT, exp_base=PUSH_WAIT_MULTIPLIER, max=PUSH_MAX_WAIT
        )
        self._wake = asyncio.Event()

    def wake(self) -> None:
        """Re-check the configuration during a backoff sleep."""
        self._wake.set()

    def _is_active(self) -> bool:
        return not self._stop.is_set() and self._config.current.push_enabled

    async def push_current(self) -> None:
        """Read the clipboard and publish it if it is new text."""
        if not self._is_active():
            return
        try:
            text = await self._clipboard.read_text()
        except ClipboardError as e:
            logger.warning("Failed to read clipboard: %s", e)
            return
        if text is None:
            logger.debug("Clipboard holds no text, skipping")
            return
        if not await self._state.should_push(text):
            logger.debug("Skipping already synchronized content")
            return
        await self.push(text)

    async def push(self, text: str) -> None:
        """Publish text, retrying up to max_retries attempts.

        At least one attempt is made even when max_retries is zero.
        """
        await self._state.begin_push(text)
        try:
            await self._push_with_retries(text)
        finally:
            await self._state.end_push(text)

    async def _push_with_retries(self, text: str) -> None:
        attempts = max(1, self._config.current.max_retries)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait,
            retry=retry_if_exception_type(PUSH_ERRORS),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if not self._is_active():
                        raise PushAborted("engine stopping or push disabled")
                    await self._attempt(text)
        except PushAborted as e:
            logger.debug("Push abandoned: %s", e)
            return
        except PUSH_ERRORS as e:
            if not self._is_active():
                logger.debug("Push abandoned after error: %s", e)
                return
            logger.warning("Push failed after %d attempts: %s", attempts, e)
            self._sink.emit(StatusEvent(Severity.ERROR, str(e), f"Not synced: {preview(text)}"))
            return

        await self._state.record_pushed(text)
        logger.debug("Pushed %d characters", len(text))
        self._sink.emit(StatusEvent(Severity.INFO, "Clipboard pushed", preview(text)))

    async def _attempt(self, text: str) -> None:
        try:
            await self._store.publish(text, cancel=self._stop)
        except PUSH_ERRORS:
            await self._state.record_push_failure()
            raise

    async def _sleep(self, seconds: float) -> None:
        # Ends early on stop or once push is disabled; other wakes resume
        # the remaining delay.
        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds
        while self._is_active():
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            self._wake.clear()
            await wait_for_any((self._stop, self._wake), remaining)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug(
            "Push attempt %d failed: %s, will retry", retry_state.attempt_number, error
        )
