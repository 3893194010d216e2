#!/usr/bin/env python3
"""Bidirectional clipboard synchronization coordination.

This module re-exports synchronization components from submodules for
convenient imports. The actual implementations are in:
- sync_state: SyncState, RemoteChange
- sync_pull: Puller
- sync_push: Pusher
- sync_engine: SyncEngine
"""

from davclipsync.sync_engine import SyncEngine
from davclipsync.sync_pull import Puller
from davclipsync.sync_push import Pusher
from davclipsync.sync_state import RemoteChange, SyncState

__all__ = [
    "Puller",
    "Pusher",
    "RemoteChange",
    "SyncEngine",
    "SyncState",
]
