#!/usr/bin/env python3
"""Synchronization engine.

This module provides SyncEngine, which owns the shared SyncState, the
transport provider and the two loops:

- the Puller task, running for the engine's lifetime
- the Pusher task, started on each clipboard change notification; a newer
  notification cancels the push in flight and starts over with the newest
  clipboard content

Stopping sets a single event observed by both loops and passed into every
request as its cancellation signal. Configuration changes rebuild the
transport when the connection settings changed and restart the Puller
timer; the last synchronized value is kept.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from davclipsync.errors import ConfigError
from davclipsync.protocol import RemoteStore
from davclipsync.sync_pull import Puller
from davclipsync.sync_push import Pusher
from davclipsync.sync_state import SyncState
from davclipsync.transport import WebDavTransport
from davclipsync.transport_provider import TransportFactory, TransportProvider

if TYPE_CHECKING:
    from tenacity.wait import wait_base

    from davclipsync.clipboard import ClipboardBackend
    from davclipsync.config import ConfigStore, SyncConfig
    from davclipsync.status import StatusSink

logger = logging.getLogger(__name__)


class SyncEngine:
    """Coordinate the Puller and the Pusher over one remote store."""

    def __init__(
        self,
        config: ConfigStore,
        clipboard: ClipboardBackend,
        sink: StatusSink,
        transport_factory: TransportFactory = WebDavTransport,
        push_wait: wait_base | None = None,
    ) -> None:
        """Wire the engine components together.

        Args:
            config: Observable configuration; changes apply while running.
            clipboard: Local clipboard backend.
            sink: Receiver of status events.
            transport_factory: Builds a transport from a configuration.
            push_wait: tenacity wait strategy between push attempts.
        """
        self._config = config
        self._clipboard = clipboard
        self._sink = sink
        self._applied = config.current
        self.state = SyncState()
        self._stop = asyncio.Event()
        self._provider = TransportProvider(config.current, transport_factory)
        self._store = RemoteStore(self._provider, config.current.resource_path)
        self._puller = Puller(self.state, self._store, clipboard, sink, config, self._stop)
        self._pusher = Pusher(
            self.state, self._store, clipboard, sink, config, self._stop, wait=push_wait
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pull_task: asyncio.Task | None = None
        self._push_task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._unsubscribe = None
        self._started_before = False
        clipboard.on_change(self.notify_clipboard_changed)

    @property
    def running(self) -> bool:
        return self._pull_task is not None and not self._stop.is_set()

    @property
    def last_value(self) -> str:
        return self.state.last_value

    async def start(self) -> None:
        """Start the Puller and begin reacting to clipboard changes."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        if self._started_before:
            await self.state.reset()
        self._started_before = True
        self._stop.clear()
        if self._config.current != self._applied:
            await self._apply_config(self._config.current)
        self._unsubscribe = self._config.subscribe(self._on_config_changed)
        self._pull_task = asyncio.create_task(self._puller.run(), name="davclipsync-pull")
        self._pull_task.add_done_callback(_log_task_failure)
        logger.info("Synchronizing with %s", self._config.current.base_address)

    async def stop(self) -> None:
        """Stop both loops; in-flight requests are cancelled promptly."""
        self._stop.set()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = [t for t in (self._pull_task, self._push_task) if t is not None]
        tasks.extend(self._background)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pull_task = None
        self._push_task = None
        logger.info("Synchronization stopped")

    async def aclose(self) -> None:
        """Stop the engine and release the transport."""
        await self.stop()
        await self._provider.aclose()

    def notify_clipboard_changed(self) -> None:
        """Handle a local clipboard change notification.

        Safe to call from any thread.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None
        if running_loop is loop:
            self._restart_push()
        else:
            loop.call_soon_threadsafe(self._restart_push)

    def _restart_push(self) -> None:
        if not self.running:
            return
        if self._push_task is not None and not self._push_task.done():
            logger.debug("Superseding push in flight")
            self._push_task.cancel()
        self._push_task = asyncio.create_task(
            self._pusher.push_current(), name="davclipsync-push"
        )
        self._push_task.add_done_callback(_log_task_failure)

    async def check_alive(self) -> bool:
        """Probe the remote store; False if unreachable or misconfigured."""
        try:
            async with self._provider.acquire() as transport:
                return await transport.is_alive(cancel=self._stop)
        except ConfigError as e:
            logger.warning("Cannot probe server: %s", e)
            return False

    def _on_config_changed(self, config: SyncConfig) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_apply, config)

    def _schedule_apply(self, config: SyncConfig) -> None:
        task = asyncio.create_task(self._apply_config(config))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(_log_task_failure)

    async def _apply_config(self, config: SyncConfig) -> None:
        if config.connection_changed(self._applied):
            await self._provider.reconfigure(config)
        self._store.resource_path = config.resource_path
        self._applied = config
        self._puller.wake()
        self._pusher.wake()
        logger.debug("Applied configuration for %s", config.base_address)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Task %s failed: %s", task.get_name(), error, exc_info=error)
