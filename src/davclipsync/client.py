#!/usr/bin/env python3
"""Client entry points for davclipsync.

This module provides the coroutines behind the CLI commands: run_client
synchronizes the local clipboard with the remote store until SIGINT or
SIGTERM, and probe_server performs a one-shot liveness probe.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress

from davclipsync.clipboard import PollingClipboard
from davclipsync.config import ConfigStore, SyncConfig
from davclipsync.status import LoggingStatusSink
from davclipsync.sync import SyncEngine
from davclipsync.transport import WebDavTransport


async def run_client(config: SyncConfig) -> None:
    """Run synchronization until a shutdown signal arrives.

    Args:
        config: Initial configuration.
    """
    clipboard = PollingClipboard()
    engine = SyncEngine(ConfigStore(config), clipboard, LoggingStatusSink())

    # Register signal handlers for clean shutdown
    shutdown_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    await engine.start()
    poll_task = asyncio.create_task(clipboard.run(shutdown_requested))
    try:
        await shutdown_requested.wait()
    finally:
        shutdown_requested.set()
        await engine.aclose()
        with suppress(asyncio.CancelledError):
            await poll_task


async def probe_server(config: SyncConfig) -> bool:
    """Check whether the remote store answers the liveness probe.

    Raises:
        ConfigError: If the base address is unusable.
    """
    transport = WebDavTransport(config)
    try:
        return await transport.is_alive()
    finally:
        await transport.aclose()
