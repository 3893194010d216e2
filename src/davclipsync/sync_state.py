#!/usr/bin/env python3
"""Shared synchronization state.

This module provides the SyncState dataclass shared by the Puller and the
Pusher. It tracks the last synchronized clipboard value, which both loops
compare against to prevent echo loops, and the per-loop failure streaks
used for status escalation.

Every read-modify-write happens inside a single critical section guarded by
an asyncio.Lock, so a compare-then-set from one loop can never interleave
with the other loop's update.

Critical ordering: the Puller records a pulled value BEFORE writing it to
the local clipboard, so that the clipboard change notification caused by
that write is recognized as an echo by the Pusher.

A fetch may be answered after a local push has reached the server. The
Puller takes the write generation before fetching and hands it back with
the result; a value read across a push is discarded rather than applied.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field


class RemoteChange(enum.Enum):
    """Outcome of comparing a fetched value with the last synchronized one."""

    BASELINE = "baseline"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    STALE = "stale"


@dataclass
class SyncState:
    """
    State shared between the Puller and the Pusher.

    Attributes:
        last_value: Clipboard text most recently synchronized by either loop.
        has_seen_first_remote_value: Whether a fetch has succeeded since the
            engine started.
        pull_error_count: Consecutive Puller failures.
        push_error_count: Consecutive failed push attempts.
        pending_push: Text currently being published, or None.
        write_generation: Bumped whenever a push starts, ends or succeeds;
            a fetch that straddles a change of generation is stale.
        recent_pushes: Texts published since the last accepted write. The
            server may hold any of them, even when the push was superseded.
    """

    last_value: str = ""
    has_seen_first_remote_value: bool = False
    pull_error_count: int = 0
    push_error_count: int = 0
    pending_push: str | None = None
    write_generation: int = 0
    recent_pushes: set[str] = field(default_factory=set)
    _replaced_value: str | None = field(default=None, repr=False, compare=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    async def begin_fetch(self) -> int:
        """Return the write generation to pass to observe_remote()."""
        async with self._lock:
            return self.write_generation

    async def observe_remote(self, value: str, since: int | None = None) -> RemoteChange:
        """
        Compare a fetched value with last_value and record it.

        The first value seen after start becomes the baseline without being
        applied, so that the server does not overwrite the local clipboard
        before any local baseline is known. A value this engine published
        recently is an echo: it is recorded but reported as UNCHANGED.

        Any other value is STALE, and left unrecorded, if a push was in
        flight or the write generation moved since the fetch began: the
        server may have answered with content older than the local write.

        Args:
            value: Clipboard text fetched from the remote store.
            since: Result of begin_fetch() taken before the fetch.

        Returns:
            The RemoteChange describing value. last_value is updated for
            BASELINE, CHANGED and echoes.
        """
        async with self._lock:
            if value in self.recent_pushes:
                self.has_seen_first_remote_value = True
                self.last_value = value
                return RemoteChange.UNCHANGED
            if self.pending_push is not None or (
                since is not None and since != self.write_generation
            ):
                return RemoteChange.STALE
            if not self.has_seen_first_remote_value:
                self.has_seen_first_remote_value = True
                self.last_value = value
                return RemoteChange.BASELINE
            if value == self.last_value:
                return RemoteChange.UNCHANGED
            self._replaced_value = self.last_value
            self.last_value = value
            self.recent_pushes.clear()
            return RemoteChange.CHANGED

    async def revert_remote(self, value: str) -> bool:
        """
        Undo the last CHANGED observation after the clipboard write failed.

        Nothing happens if another write has been recorded since. Returns
        True if last_value was restored, so the next fetch applies value
        again.
        """
        async with self._lock:
            if (
                self.last_value != value
                or self._replaced_value is None
                or self.pending_push is not None
            ):
                return False
            self.last_value = self._replaced_value
            self._replaced_value = None
            return True

    async def mark_remote_seen(self) -> None:
        """
        Record that the remote store answered but holds no value yet.

        Later remote values are then applied instead of becoming the
        baseline. last_value is left untouched.
        """
        async with self._lock:
            self.has_seen_first_remote_value = True

    async def should_push(self, text: str) -> bool:
        """
        Check if local text still needs publishing.

        Returns False if text equals last_value: either it was pulled from
        the remote store or it has already been pushed.
        """
        async with self._lock:
            return text != self.last_value

    async def begin_push(self, text: str) -> None:
        """Mark text as being published."""
        async with self._lock:
            self.pending_push = text
            self.recent_pushes.add(text)
            self.write_generation += 1

    async def end_push(self, text: str) -> None:
        """Clear the in-flight mark unless a newer push replaced it."""
        async with self._lock:
            if self.pending_push == text:
                self.pending_push = None
            self.write_generation += 1

    async def record_pushed(self, text: str) -> None:
        """Record text as published and end the push failure streak."""
        async with self._lock:
            self.last_value = text
            self.push_error_count = 0
            self.recent_pushes.clear()
            self._replaced_value = None
            self.write_generation += 1

    async def record_push_failure(self) -> int:
        """Count a failed push attempt and return the streak length."""
        async with self._lock:
            self.push_error_count += 1
            return self.push_error_count

    async def record_pull_failure(self) -> int:
        """Count a failed Puller cycle and return the streak length."""
        async with self._lock:
            self.pull_error_count += 1
            return self.pull_error_count

    async def record_pull_success(self) -> int:
        """End the Puller failure streak and return its previous length."""
        async with self._lock:
            streak = self.pull_error_count
            self.pull_error_count = 0
            return streak

    async def reset(self) -> None:
        """
        Reset to the state of a freshly started engine.

        last_value is kept; the next successful fetch replaces it with the
        new baseline anyway.
        """
        async with self._lock:
            self.has_seen_first_remote_value = False
            self.pull_error_count = 0
            self.push_error_count = 0
            self.pending_push = None
            self.recent_pushes.clear()
            self._replaced_value = None
