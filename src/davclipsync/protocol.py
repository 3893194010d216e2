#!/usr/bin/env python3
"""
JSON envelope exchanged with the remote store.

The remote store holds a single well-known resource containing the
synchronized clipboard as a small JSON object:

    {"clipboard": "<text>", "file": "<file name or empty>"}

Other clients of the same store write the keys capitalized ("Clipboard",
"File"), so decoding matches keys case-insensitively. Encoding always
writes lowercase keys. File transfer itself is not handled here; the file
field is carried through but always published empty.

This module provides:
- RemoteEnvelope: the decoded payload
- encode_envelope() / decode_envelope(): pure conversion functions
- RemoteStore: fetch() and publish() on top of the transport provider
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from davclipsync.errors import DecodeError, StatusError

if TYPE_CHECKING:
    from davclipsync.transport_provider import TransportProvider

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE: str = "application/json"


@dataclass(frozen=True)
class RemoteEnvelope:
    """
    Synchronized payload.

    Attributes:
        clipboard: Clipboard text.
        file: Name of an attached file, empty if none.
    """

    clipboard: str
    file: str = ""


def encode_envelope(text: str) -> bytes:
    """
    Encode clipboard text as a UTF-8 JSON envelope with an empty file field.

    Args:
        text: Clipboard text to publish.

    Returns:
        JSON-encoded envelope bytes.
    """
    return json.dumps({"clipboard": text, "file": ""}, ensure_ascii=False).encode("utf-8")


def decode_envelope(data: bytes) -> RemoteEnvelope:
    """
    Decode a JSON envelope.

    Args:
        data: Raw response body.

    Returns:
        The decoded envelope.

    Raises:
        DecodeError: If data is not a JSON object with a string clipboard
            field, or the file field is present but not a string.
    """
    try:
        payload = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Malformed envelope: {e}") from e
    if not isinstance(payload, dict):
        raise DecodeError(f"Envelope must be a JSON object, got {type(payload).__name__}")

    fields = {str(key).lower(): value for key, value in payload.items()}
    clipboard = fields.get("clipboard")
    if not isinstance(clipboard, str):
        raise DecodeError("Envelope has no clipboard text")
    file = fields.get("file") or ""
    if not isinstance(file, str):
        raise DecodeError("Envelope file field must be a string")
    return RemoteEnvelope(clipboard=clipboard, file=file)


class RemoteStore:
    """Read and write the clipboard envelope through the current transport."""

    def __init__(self, provider: TransportProvider, resource_path: str) -> None:
        self._provider = provider
        self.resource_path = resource_path

    async def fetch(self, cancel: asyncio.Event | None = None) -> RemoteEnvelope | None:
        """
        Fetch and decode the remote envelope.

        Returns:
            The envelope, or None if the resource does not exist yet.

        Raises:
            ConfigError: If the configuration is unusable.
            NetworkError: On connection failure, timeout or cancellation.
            StatusError: On a non-success status other than 404.
            DecodeError: If the body is not a valid envelope.
        """
        async with self._provider.acquire() as transport:
            try:
                data = await transport.get(self.resource_path, cancel=cancel)
            except StatusError as e:
                if e.status_code == 404:
                    logger.debug("Remote %s does not exist yet", self.resource_path)
                    return None
                raise
        return decode_envelope(data)

    async def publish(self, text: str, cancel: asyncio.Event | None = None) -> None:
        """
        Publish clipboard text.

        Raises:
            ConfigError: If the configuration is unusable.
            NetworkError: On connection failure, timeout or cancellation.
            StatusError: On a non-success status.
        """
        data = encode_envelope(text)
        async with self._provider.acquire() as transport:
            await transport.put(
                self.resource_path, data, cancel=cancel, content_type=JSON_CONTENT_TYPE
            )
        logger.debug("Published %d bytes to %s", len(data), self.resource_path)
