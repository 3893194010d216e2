"""Logging configuration for davclipsync CLI."""
import logging

# Third-party loggers that report every request at INFO or DEBUG.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr.

    Args:
        verbose: If True, log davclipsync at DEBUG level; otherwise only
            warnings and errors, which include escalated status events.

    The HTTP client libraries stay at WARNING even in verbose mode.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
