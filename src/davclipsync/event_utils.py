#!/usr/bin/env python3
"""Helpers for waiting on asyncio events with a deadline."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable


async def wait_for_any(events: Iterable[asyncio.Event], timeout: float | None) -> bool:
    """Wait until any of events is set or timeout seconds have elapsed.

    Used for sleeps that must end early on shutdown or reconfiguration.

    Args:
        events: Events to wait on.
        timeout: Maximum seconds to wait, or None to wait indefinitely.

    Returns:
        True if an event was set, False if the timeout elapsed first.
    """
    waiters = [asyncio.ensure_future(event.wait()) for event in events]
    if not waiters:
        await asyncio.sleep(timeout or 0)
        return False
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            waiter.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)
    return bool(done)
