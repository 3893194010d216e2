#!/usr/bin/env python3
"""Local clipboard backends.

This module provides the ClipboardBackend protocol the engine consumes and
PollingClipboard, a backend built on pyperclip. pyperclip offers no change
notification, so PollingClipboard polls the clipboard off the event loop
and invokes its callbacks when the text changes.

Writes made through write_text() are reported like any other change; the
engine's echo suppression does not rely on the backend filtering them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

import pyperclip

from davclipsync.constants import CLIPBOARD_POLL_INTERVAL
from davclipsync.errors import ClipboardError
from davclipsync.event_utils import wait_for_any

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


class ClipboardBackend(Protocol):
    async def read_text(self) -> str | None: ...

    async def write_text(self, text: str) -> None: ...

    def on_change(self, callback: ChangeCallback) -> None: ...


class PollingClipboard:
    """pyperclip backend with change detection by polling."""

    def __init__(self, interval: float = CLIPBOARD_POLL_INTERVAL) -> None:
        self._interval = interval
        self._callbacks: list[ChangeCallback] = []

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    async def _paste(self) -> str:
        try:
            return await asyncio.to_thread(pyperclip.paste)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Cannot read clipboard: {e}") from e

    async def read_text(self) -> str | None:
        """Return the clipboard text, or None if it holds no text."""
        text = await self._paste()
        return text or None

    async def write_text(self, text: str) -> None:
        try:
            await asyncio.to_thread(pyperclip.copy, text)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Cannot set clipboard: {e}") from e

    async def run(self, stop: asyncio.Event) -> None:
        """Poll for changes until stop is set.

        The content present when polling starts is not reported.
        """
        try:
            last = await self._paste()
        except ClipboardError as e:
            logger.warning("%s", e)
            last = ""
        while not await wait_for_any((stop,), self._interval):
            try:
                current = await self._paste()
            except ClipboardError as e:
                logger.debug("%s", e)
                continue
            if current == last:
                continue
            last = current
            for callback in list(self._callbacks):
                callback()
