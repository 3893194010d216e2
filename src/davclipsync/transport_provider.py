#!/usr/bin/env python3
"""Ownership of the current transport across configuration changes.

The provider swaps in a freshly built WebDavTransport whenever the
connection settings change. Requests already running on the previous
transport are not interrupted: a retired transport is closed when its last
user releases it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from davclipsync.config import SyncConfig
from davclipsync.errors import ConfigError
from davclipsync.transport import WebDavTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[SyncConfig], WebDavTransport]


class TransportProvider:
    """Hand out the current transport and rebuild it on reconfiguration.

    While the configuration is unusable, acquire() raises the ConfigError
    that was raised when building the transport and no requests are made.
    """

    def __init__(
        self,
        config: SyncConfig,
        factory: TransportFactory = WebDavTransport,
    ) -> None:
        self._factory = factory
        self._lock = asyncio.Lock()
        self._current: WebDavTransport | None = None
        self._error: ConfigError | None = None
        self._users: dict[WebDavTransport, int] = {}
        self._retired: set[WebDavTransport] = set()
        self._build(config)

    @property
    def config_error(self) -> ConfigError | None:
        """The error that disabled the transport, if any."""
        return self._error

    def _build(self, config: SyncConfig) -> None:
        try:
            self._current = self._factory(config)
            self._error = None
        except ConfigError as e:
            logger.warning("Outbound calls disabled: %s", e)
            self._current = None
            self._error = e

    async def reconfigure(self, config: SyncConfig) -> None:
        """Replace the current transport with one built from config."""
        async with self._lock:
            old = self._current
            self._build(config)
            if old is not None:
                await self._retire(old)
        logger.debug("Transport rebuilt")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[WebDavTransport]:
        """Yield the current transport for the duration of one operation.

        Raises:
            ConfigError: If the configuration is unusable.
        """
        async with self._lock:
            transport = self._current
            if transport is None:
                raise self._error or ConfigError("Transport is closed")
            self._users[transport] = self._users.get(transport, 0) + 1
        try:
            yield transport
        finally:
            self._users[transport] -= 1
            if self._users[transport] == 0:
                del self._users[transport]
                if transport in self._retired:
                    self._retired.discard(transport)
                    await transport.aclose()

    async def _retire(self, transport: WebDavTransport) -> None:
        if transport in self._users:
            self._retired.add(transport)
        else:
            await transport.aclose()

    async def aclose(self) -> None:
        """Close the current transport; retired ones close on release."""
        async with self._lock:
            if self._current is not None:
                await self._retire(self._current)
                self._current = None
                self._error = ConfigError("Transport is closed")
