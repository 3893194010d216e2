#!/usr/bin/env python3
"""Synchronization configuration.

This module provides the immutable SyncConfig snapshot and the ConfigStore
holder that lets the running engine observe configuration changes. Where the
configuration comes from (CLI options, a settings dialog, a file) is up to
the caller.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass

from davclipsync.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RESOURCE_PATH,
    DEFAULT_TIMEOUT,
)
from davclipsync.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncConfig:
    """Immutable snapshot of the synchronization settings.

    The base address is not validated here: an unusable address is reported
    by the transport layer as a ConfigError so the engine keeps running until
    it is corrected.

    Attributes:
        base_address: Base URL of the remote store.
        username: Basic auth user name, empty for none.
        password: Basic auth password or token, empty for none.
        poll_interval: Seconds between remote polls.
        timeout: Per-request timeout in seconds.
        max_retries: Push attempts per change and pull escalation threshold.
        pull_enabled: Whether remote changes are applied locally.
        push_enabled: Whether local changes are published.
        resource_path: Envelope location relative to the base address.
    """

    base_address: str
    username: str = ""
    password: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    pull_enabled: bool = True
    push_enabled: bool = True
    resource_path: str = DEFAULT_RESOURCE_PATH

    def __post_init__(self) -> None:
        """Reject numeric settings the engine cannot run with."""
        if self.poll_interval <= 0:
            raise ConfigError(f"Poll interval must be positive, got {self.poll_interval}")
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.max_retries < 0:
            raise ConfigError(f"Max retries must not be negative, got {self.max_retries}")

    @property
    def has_credentials(self) -> bool:
        """True if either a user name or a password is set."""
        return bool(self.username or self.password)

    def connection_changed(self, other: SyncConfig) -> bool:
        """Check whether other needs a different transport than self."""
        return (
            self.base_address != other.base_address
            or self.username != other.username
            or self.password != other.password
            or self.timeout != other.timeout
        )


ConfigListener = Callable[[SyncConfig], None]


class ConfigStore:
    """Observable holder of the current SyncConfig.

    Listeners are called synchronously with the new snapshot after every
    change that actually alters the configuration.
    """

    def __init__(self, config: SyncConfig) -> None:
        self._config = config
        self._listeners: list[ConfigListener] = []

    @property
    def current(self) -> SyncConfig:
        return self._config

    def subscribe(self, listener: ConfigListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, config: SyncConfig) -> None:
        """Install a new snapshot and notify listeners if it differs."""
        if config == self._config:
            return
        self._config = config
        logger.debug("Configuration changed")
        for listener in list(self._listeners):
            listener(config)

    def update(self, **changes: object) -> SyncConfig:
        """Apply field changes to the current snapshot.

        Raises:
            ConfigError: If the resulting numeric settings are invalid. The
                current snapshot is kept in that case.
        """
        config = dataclasses.replace(self._config, **changes)
        self.replace(config)
        return config
