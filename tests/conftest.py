#!/usr/bin/env python3
"""Pytest fixtures for davclipsync tests.

Provides configuration, fake collaborators and a fresh sync state.
"""

import asyncio

import pytest
from conftest_fakes import FakeClipboard, FakeDavServer, RecordingSink

from davclipsync.config import ConfigStore, SyncConfig
from davclipsync.sync_state import SyncState

BASE_URL = "http://dav.test/clip/"


@pytest.fixture
def sync_config() -> SyncConfig:
    """Configuration with fast polling and three retries."""
    return SyncConfig(
        base_address=BASE_URL,
        username="alice",
        password="secret",
        poll_interval=0.01,
        timeout=1.0,
        max_retries=3,
    )


@pytest.fixture
def config_store(sync_config: SyncConfig) -> ConfigStore:
    return ConfigStore(sync_config)


@pytest.fixture
def sync_state() -> SyncState:
    """Create a fresh SyncState instance for testing."""
    return SyncState()


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def dav_server() -> FakeDavServer:
    return FakeDavServer()


@pytest.fixture
def stop_event() -> asyncio.Event:
    return asyncio.Event()
