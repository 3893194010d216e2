#!/usr/bin/env python3
"""
Tests for SyncEngine wiring both loops over an in-memory WebDAV server.

Covers startup baseline, pulling, pushing, echo suppression with a backend
that notifies on its own writes, push superseding, shutdown and
reconfiguration.
"""
import asyncio

import pytest
from conftest_fakes import FakeClipboard, FakeDavServer, RecordingSink, wait_until
from tenacity import wait_none

from davclipsync.config import ConfigStore
from davclipsync.status import Severity
from davclipsync.sync_engine import SyncEngine


@pytest.fixture
async def engine(config_store, clipboard, sink, dav_server):
    """Create an engine talking to the fake server; closed after the test."""
    engine = SyncEngine(
        config_store, clipboard, sink, transport_factory=dav_server.factory, push_wait=wait_none()
    )
    yield engine
    await engine.aclose()


@pytest.mark.asyncio
async def test_startup_does_not_overwrite_local_clipboard(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard
) -> None:
    """Test the server value seen at startup becomes the baseline only."""
    dav_server.set_clipboard("server value")
    clipboard.text = "local value"

    await engine.start()
    await wait_until(lambda: engine.state.has_seen_first_remote_value)
    await wait_until(lambda: dav_server.count("GET") >= 3)

    assert clipboard.writes == []
    assert clipboard.text == "local value"
    assert engine.last_value == "server value"


@pytest.mark.asyncio
async def test_remote_change_is_applied_once(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard
) -> None:
    """Test a remote change reaches the clipboard exactly once without echo."""
    dav_server.set_clipboard("initial")
    await engine.start()
    await wait_until(lambda: engine.state.has_seen_first_remote_value)

    dav_server.set_clipboard("from another machine")
    await wait_until(lambda: clipboard.writes == ["from another machine"])
    gets = dav_server.count("GET")
    await wait_until(lambda: dav_server.count("GET") >= gets + 3)

    # The backend notified about our own write; it must not be pushed back.
    assert clipboard.writes == ["from another machine"]
    assert dav_server.count("PUT") == 0


@pytest.mark.asyncio
async def test_local_change_is_pushed_and_not_pulled_back(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard, sink: RecordingSink
) -> None:
    """Test a local copy is published and its echo is not applied locally."""
    await engine.start()
    await wait_until(lambda: engine.state.has_seen_first_remote_value)

    clipboard.copy("typed locally")
    await wait_until(lambda: dav_server.clipboard == "typed locally")
    gets = dav_server.count("GET")
    await wait_until(lambda: dav_server.count("GET") >= gets + 3)

    assert engine.last_value == "typed locally"
    assert clipboard.writes == []
    assert "Clipboard pushed" in sink.titles()


@pytest.mark.asyncio
async def test_newer_change_supersedes_push_in_flight(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard
) -> None:
    """Test a second change cancels the blocked push and publishes the newest text."""
    await engine.start()
    await wait_until(lambda: engine.state.has_seen_first_remote_value)

    dav_server.put_gate = asyncio.Event()
    clipboard.copy("first")
    await wait_until(lambda: dav_server.count("PUT") == 1)
    clipboard.copy("second")
    await wait_until(lambda: dav_server.count("PUT") == 2)
    dav_server.put_gate.set()

    await wait_until(lambda: engine.last_value == "second")
    assert dav_server.clipboard == "second"


@pytest.mark.asyncio
async def test_stop_during_sleep_is_prompt(
    config_store: ConfigStore, clipboard: FakeClipboard, sink: RecordingSink, dav_server: FakeDavServer
) -> None:
    """Test stop() returns promptly while the Puller sleeps a long interval."""
    config_store.update(poll_interval=60.0)
    engine = SyncEngine(config_store, clipboard, sink, transport_factory=dav_server.factory)
    await engine.start()
    await wait_until(lambda: dav_server.count("GET") == 1)

    await asyncio.wait_for(engine.aclose(), timeout=1.0)

    assert engine.running is False
    assert dav_server.count("GET") == 1


@pytest.mark.asyncio
async def test_stop_mid_push_emits_no_failure(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard, sink: RecordingSink
) -> None:
    """Test stopping with a push in flight cancels it without a failure event."""
    await engine.start()
    await wait_until(lambda: engine.state.has_seen_first_remote_value)
    dav_server.put_gate = asyncio.Event()

    clipboard.copy("never stored")
    await wait_until(lambda: dav_server.count("PUT") == 1)
    await asyncio.wait_for(engine.stop(), timeout=1.0)

    assert all(event.severity is not Severity.ERROR for event in sink.events)


@pytest.mark.asyncio
async def test_notifications_after_stop_are_ignored(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard
) -> None:
    """Test clipboard changes after stop() do not start a push."""
    await engine.start()
    await engine.stop()

    clipboard.copy("late")
    await asyncio.sleep(0.05)

    assert dav_server.count("PUT") == 0


@pytest.mark.asyncio
async def test_server_errors_escalate_and_recover(
    engine: SyncEngine, dav_server: FakeDavServer, sink: RecordingSink
) -> None:
    """Test repeated server errors escalate to error and recover on success."""
    dav_server.fail_status = 503
    await engine.start()
    await wait_until(lambda: engine.state.pull_error_count >= 4)

    severities = [event.severity for event in sink.events]
    assert severities[:4] == [Severity.WARNING] * 3 + [Severity.ERROR]
    assert engine.running

    dav_server.fail_status = None
    await wait_until(lambda: "Connected to server" in sink.titles())
    assert engine.state.pull_error_count == 0


@pytest.mark.asyncio
async def test_reconfiguration_rebuilds_transport_and_keeps_value(
    config_store: ConfigStore, clipboard: FakeClipboard, sink: RecordingSink
) -> None:
    """Test changing the base address switches servers without losing last_value."""
    first = FakeDavServer("shared")
    second = FakeDavServer("shared")
    servers = {"http://first.test/": first, "http://second.test/": second}

    def factory(config):
        return servers[config.base_address].factory(config)

    config_store.update(base_address="http://first.test/")
    engine = SyncEngine(config_store, clipboard, sink, transport_factory=factory)
    await engine.start()
    await wait_until(lambda: engine.last_value == "shared")

    config_store.update(base_address="http://second.test/")
    await wait_until(lambda: second.count("GET") >= 2)
    gets = first.count("GET")
    await wait_until(lambda: second.count("GET") >= 4)
    await engine.aclose()

    assert first.count("GET") == gets
    assert engine.last_value == "shared"
    assert clipboard.writes == []


@pytest.mark.asyncio
async def test_unusable_address_reports_and_recovers(
    config_store: ConfigStore, clipboard: FakeClipboard, sink: RecordingSink, dav_server: FakeDavServer
) -> None:
    """Test an unusable address disables calls until it is corrected."""
    config_store.update(base_address="not a url")
    engine = SyncEngine(config_store, clipboard, sink, transport_factory=dav_server.factory)
    await engine.start()
    await wait_until(lambda: engine.state.pull_error_count >= 2)
    assert dav_server.requests == []
    assert "Invalid server address" in sink.events[0].title

    config_store.update(base_address="http://dav.test/clip/")
    await wait_until(lambda: engine.state.pull_error_count == 0)
    await engine.aclose()

    assert dav_server.count("GET") >= 1


@pytest.mark.asyncio
async def test_restart_resets_baseline(
    engine: SyncEngine, dav_server: FakeDavServer, clipboard: FakeClipboard
) -> None:
    """Test a restarted engine takes a new baseline instead of applying it."""
    dav_server.set_clipboard("one")
    await engine.start()
    await wait_until(lambda: engine.last_value == "one")
    await engine.stop()

    dav_server.set_clipboard("two")
    await engine.start()
    await wait_until(lambda: engine.last_value == "two")

    assert clipboard.writes == []


@pytest.mark.asyncio
async def test_check_alive(engine: SyncEngine, dav_server: FakeDavServer) -> None:
    """Test the liveness probe goes through the current transport."""
    assert await engine.check_alive() is True
    dav_server.fail_status = 404
    assert await engine.check_alive() is False


@pytest.mark.asyncio
async def test_disabling_push_ends_backoff(
    config_store: ConfigStore, clipboard: FakeClipboard, sink: RecordingSink
) -> None:
    """Test a configuration change reaches a push waiting out its backoff."""
    from tenacity import wait_fixed

    server = FakeDavServer("remote")
    engine = SyncEngine(
        config_store, clipboard, sink, transport_factory=server.factory, push_wait=wait_fixed(60)
    )
    try:
        await engine.start()
        await wait_until(lambda: engine.state.has_seen_first_remote_value)
        server.fail_status = 503

        clipboard.copy("local")
        await wait_until(lambda: server.count("PUT") == 1)
        config_store.update(push_enabled=False)

        await wait_until(lambda: engine.state.pending_push is None, timeout=1.0)
        assert server.count("PUT") == 1
        assert "Not synced: local" not in [event.detail for event in sink.events]
    finally:
        await engine.aclose()
