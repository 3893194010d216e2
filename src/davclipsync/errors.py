#!/usr/bin/env python3
"""Error taxonomy for davclipsync.

- NetworkError: connection refused, DNS failure, timeout or cancellation
- StatusError: non-success HTTP status, carries the status code
- DecodeError: malformed remote payload
- ConfigError: unusable configuration, e.g. an unparsable base address
- ClipboardError: the local clipboard backend failed
"""


class SyncError(Exception):
    """Base class for all davclipsync errors."""


class NetworkError(SyncError):
    """Raised when a request could not be completed on the network level."""


class TransportTimeout(NetworkError):
    """Raised when a request exceeds the configured per-call timeout."""


class TransportCancelled(NetworkError):
    """Raised when a request is abandoned because of a cancellation signal."""


class StatusError(SyncError):
    """Raised when the server answers with a non-success status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(message or f"Server returned status {status_code}")
        self.status_code = status_code


class DecodeError(SyncError):
    """Raised when the remote envelope is missing fields or is not valid JSON."""


class ConfigError(SyncError):
    """Raised when the configuration cannot be used for outbound calls."""


class ClipboardError(SyncError):
    """Raised by a clipboard backend that cannot read or write the clipboard."""
