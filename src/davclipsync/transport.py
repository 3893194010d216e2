#!/usr/bin/env python3
"""Authenticated HTTP/WebDAV transport.

This module provides WebDavTransport, a thin wrapper around httpx.AsyncClient
bound to one base address. Every call honors the configured per-call timeout
and an optional cancellation event, whichever fires first, and maps failures
onto the davclipsync error taxonomy:

- connection, DNS and protocol failures raise NetworkError
- timeouts raise TransportTimeout, cancellation raises TransportCancelled
- non-2xx responses raise StatusError (HEAD maps 404 to False instead)
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from davclipsync.config import SyncConfig
from davclipsync.constants import USER_AGENT
from davclipsync.errors import (
    ConfigError,
    NetworkError,
    StatusError,
    TransportCancelled,
    TransportTimeout,
)

logger = logging.getLogger(__name__)


def normalize_base_address(address: str) -> httpx.URL:
    """Parse a base address into an absolute URL ending with a slash.

    Args:
        address: Base address as configured by the user.

    Returns:
        The parsed URL.

    Raises:
        ConfigError: If the address is not an absolute http(s) URL.
    """
    try:
        url = httpx.URL(address.strip().rstrip("/\\") + "/")
    except httpx.InvalidURL as e:
        raise ConfigError(f"Invalid server address {address!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(f"Invalid server address {address!r}")
    return url


class WebDavTransport:
    """HTTP client for one remote store base address."""

    def __init__(
        self,
        config: SyncConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Build the underlying httpx client.

        Args:
            config: Configuration snapshot providing address, credentials
                and timeout.
            transport: Optional httpx transport, used by tests.

        Raises:
            ConfigError: If the base address is unusable.
        """
        self.base_url = normalize_base_address(config.base_address)
        self.timeout = config.timeout
        auth = None
        if config.has_credentials:
            auth = httpx.BasicAuth(config.username, config.password)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            headers={"User-Agent": USER_AGENT},
            timeout=config.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Release pooled connections."""
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> httpx.Response:
        """Send a request bounded by the timeout and the cancellation event.

        The request runs as its own task so that it can be abandoned as soon
        as either bound fires. Abandoned tasks are cancelled and awaited,
        which makes httpx return the connection to the pool.
        """
        request = asyncio.ensure_future(
            self._client.request(method, path, content=content, headers=headers)
        )
        waiters: set[asyncio.Future] = {request}
        cancelled: asyncio.Future | None = None
        if cancel is not None:
            cancelled = asyncio.ensure_future(cancel.wait())
            waiters.add(cancelled)
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if request in done:
            try:
                return request.result()
            except httpx.TimeoutException as e:
                raise TransportTimeout(f"{method} {path or '/'} timed out: {e}") from e
            except httpx.RequestError as e:
                raise NetworkError(f"{method} {path or '/'} failed: {e}") from e
        if cancelled is not None and cancelled in done:
            raise TransportCancelled(f"{method} {path or '/'} cancelled")
        raise TransportTimeout(f"{method} {path or '/'} timed out after {self.timeout}s")

    @staticmethod
    def _check_status(response: httpx.Response) -> httpx.Response:
        if not response.is_success:
            raise StatusError(
                response.status_code,
                f"Server returned {response.status_code} {response.reason_phrase}".rstrip(),
            )
        return response

    async def get(self, path: str, cancel: asyncio.Event | None = None) -> bytes:
        """GET path and return the response body.

        Raises:
            NetworkError: On connection failure, timeout or cancellation.
            StatusError: On a non-success status.
        """
        response = await self._send("GET", path, cancel=cancel)
        return self._check_status(response).content

    async def put(
        self,
        path: str,
        data: bytes,
        cancel: asyncio.Event | None = None,
        content_type: str | None = None,
    ) -> None:
        """PUT data to path."""
        headers = {"Content-Type": content_type} if content_type else None
        response = await self._send("PUT", path, content=data, headers=headers, cancel=cancel)
        self._check_status(response)

    async def head(self, path: str, cancel: asyncio.Event | None = None) -> bool:
        """Check whether path exists.

        Returns:
            False if the server answers 404, True on any success status.

        Raises:
            NetworkError: On connection failure, timeout or cancellation.
            StatusError: On a non-success status other than 404.
        """
        response = await self._send("HEAD", path, cancel=cancel)
        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        self._check_status(response)
        return True

    async def mkdir(self, path: str, cancel: asyncio.Event | None = None) -> None:
        """Create a collection with WebDAV MKCOL."""
        response = await self._send("MKCOL", path, cancel=cancel)
        self._check_status(response)

    async def delete(self, path: str, cancel: asyncio.Event | None = None) -> None:
        """DELETE path."""
        response = await self._send("DELETE", path, cancel=cancel)
        self._check_status(response)

    async def is_alive(self, cancel: asyncio.Event | None = None) -> bool:
        """Probe the base resource with HEAD.

        Never raises for network or status failures; those are logged and
        reported as not alive.
        """
        try:
            alive = await self.head("", cancel=cancel)
        except (NetworkError, StatusError) as e:
            logger.warning("Liveness probe of %s failed: %s", self.base_url, e)
            return False
        logger.debug("Liveness probe of %s: %s", self.base_url, "ok" if alive else "not found")
        return alive
