#!/usr/bin/env python3
"""Tunable constants for davclipsync.

These constants control default configuration values, the backoff behavior
between push attempts and the size of clipboard previews shown in status
events.
"""

VERSION: str = "0.1.0"

# Sent as the User-Agent header on every request.
USER_AGENT: str = f"davclipsync/{VERSION}"

# Well-known resource holding the clipboard envelope, relative to the base address.
DEFAULT_RESOURCE_PATH: str = "SyncClipboard.json"

# Seconds between remote polls.
DEFAULT_POLL_INTERVAL: float = 3.0

# Per-request timeout in seconds.
DEFAULT_TIMEOUT: float = 10.0

# Push attempts per clipboard change; also the pull failure count after
# which status events escalate to error severity.
DEFAULT_MAX_RETRIES: int = 3

# Retry parameters for exponential backoff between push attempts.
# Initial delay between attempts in seconds.
PUSH_INITIAL_WAIT: float = 0.5

# Maximum delay between attempts in seconds.
PUSH_MAX_WAIT: float = 10.0

# Multiplier for exponential backoff (delay = initial * multiplier^attempt).
PUSH_WAIT_MULTIPLIER: float = 2.0

# Characters of clipboard text included in status event details.
PREVIEW_LENGTH: int = 40

# Seconds between local clipboard polls.
CLIPBOARD_POLL_INTERVAL: float = 0.25
