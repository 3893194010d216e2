"""CLI handling for davclipsync.

This module provides the command-line interface for davclipsync, handling
argument parsing via click, logging configuration, and dispatching to the
synchronization engine or the liveness probe.

Usage:
    davclipsync [--verbose] run --url URL [--user USER] [--password SECRET]
        [--interval SECONDS] [--timeout SECONDS] [--max-retries N]
        [--no-pull | --no-push]
    davclipsync [--verbose] check --url URL [--user USER] [--password SECRET]

Every option can also be given as a DAVCLIPSYNC_* environment variable.
"""

import sys

import click

from davclipsync.config import SyncConfig
from davclipsync.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RESOURCE_PATH,
    DEFAULT_TIMEOUT,
    VERSION,
)
from davclipsync.errors import ConfigError
from davclipsync.main_logging import configure_logging
from davclipsync.main_options import ExclusiveFlag


_CONNECTION_OPTIONS = [
    click.option(
        "--url",
        required=True,
        envvar="DAVCLIPSYNC_URL",
        help="Base address of the WebDAV server",
    ),
    click.option("--user", default="", envvar="DAVCLIPSYNC_USER", help="Basic auth user name"),
    click.option(
        "--password",
        default="",
        envvar="DAVCLIPSYNC_PASSWORD",
        help="Basic auth password or token",
    ),
    click.option(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        show_default=True,
        envvar="DAVCLIPSYNC_TIMEOUT",
        help="Per-request timeout in seconds",
    ),
    click.option(
        "--resource",
        default=DEFAULT_RESOURCE_PATH,
        show_default=True,
        envvar="DAVCLIPSYNC_RESOURCE",
        help="Clipboard resource path relative to the base address",
    ),
]


def connection_options(func):
    """Add the options shared by every command that talks to the server."""
    for option in reversed(_CONNECTION_OPTIONS):
        func = option(func)
    return func


def _build_config(**settings) -> SyncConfig:
    """Build a SyncConfig, reporting invalid values as usage errors."""
    try:
        return SyncConfig(**settings)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


@click.group()
@click.version_option(VERSION)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(verbose: bool) -> None:
    """Synchronize the clipboard with a WebDAV server."""
    configure_logging(verbose)


@main.command()
@connection_options
@click.option(
    "--interval",
    type=float,
    default=DEFAULT_POLL_INTERVAL,
    show_default=True,
    envvar="DAVCLIPSYNC_INTERVAL",
    help="Seconds between remote polls",
)
@click.option(
    "--max-retries",
    type=int,
    default=DEFAULT_MAX_RETRIES,
    show_default=True,
    envvar="DAVCLIPSYNC_MAX_RETRIES",
    help=(
        "Push attempts per change (at least one is always made); "
        "pull errors escalate after this many"
    ),
)
@click.option(
    "--no-pull",
    cls=ExclusiveFlag,
    excludes=["no_push"],
    help="Do not apply remote changes locally",
)
@click.option(
    "--no-push",
    cls=ExclusiveFlag,
    excludes=["no_pull"],
    help="Do not publish local changes",
)
def run(
    url: str,
    user: str,
    password: str,
    timeout: float,
    resource: str,
    interval: float,
    max_retries: int,
    no_pull: bool,
    no_push: bool,
) -> None:
    """Keep the clipboard synchronized until interrupted."""
    import asyncio

    from davclipsync.client import run_client

    config = _build_config(
        base_address=url,
        username=user,
        password=password,
        timeout=timeout,
        resource_path=resource,
        poll_interval=interval,
        max_retries=max_retries,
        pull_enabled=not no_pull,
        push_enabled=not no_push,
    )
    try:
        asyncio.run(run_client(config))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@connection_options
def check(url: str, user: str, password: str, timeout: float, resource: str) -> None:
    """Probe the server and exit 0 if it is reachable."""
    import asyncio

    from davclipsync.client import probe_server

    config = _build_config(
        base_address=url,
        username=user,
        password=password,
        timeout=timeout,
        resource_path=resource,
    )
    try:
        alive = asyncio.run(probe_server(config))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if alive:
        click.echo(f"{config.base_address} is reachable")
        return
    click.echo(f"{config.base_address} is not reachable", err=True)
    sys.exit(1)
