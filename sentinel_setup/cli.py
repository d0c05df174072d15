#!/usr/bin/env python3
"""
ALTCHA Sentinel Setup for Ubuntu 24.04

Provisions a fresh host to run the ALTCHA Sentinel container:
  • Creates a restricted service account with a temporary password
  • Hardens the host (UFW, fail2ban, unattended upgrades)
  • Installs Docker Engine from the upstream repository
  • Writes the Compose project and its management scripts

Note: Run this script with root privileges.
"""

import atexit
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import click

from sentinel_setup.config import (
    Config,
    SENTINEL_VERSION,
    validate_password,
    validate_username,
)
from sentinel_setup.pipeline import SentinelSetup
from sentinel_setup.runner import cleanup_temp_files


def signal_handler(signum: int, frame: Optional[Any]) -> None:
    sig_name = signal.Signals(signum).name
    logging.getLogger("sentinel_setup").error(f"Script interrupted by {sig_name}.")
    cleanup_temp_files()
    sys.exit(
        130
        if signum == signal.SIGINT
        else 143
        if signum == signal.SIGTERM
        else 128 + signum
    )


def check_username(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        return validate_username(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def check_password(
    ctx: click.Context, param: click.Parameter, value: Optional[str]
) -> Optional[str]:
    if value is None:
        return None
    try:
        return validate_password(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--username", envvar="SENTINEL_USERNAME", default="altcha", show_default=True,
              callback=check_username, help="Service account to create")
@click.option("--version", "sentinel_version", envvar="SENTINEL_VERSION",
              default=SENTINEL_VERSION, show_default=True, help="Sentinel image tag")
@click.option("--port", envvar="SENTINEL_PORT", type=click.IntRange(1, 65535),
              default=8080, show_default=True, help="Host port for the service")
@click.option("--temp-password", envvar="SENTINEL_TEMP_PASSWORD", default=None,
              callback=check_password,
              help="Temporary password for a new account (random if omitted)")
@click.option("--log-file", envvar="SENTINEL_LOG_FILE",
              default="/var/log/sentinel_setup.log", show_default=True)
@click.option("--root", "root_dir", envvar="SENTINEL_ROOT", default="/",
              type=click.Path(file_okay=False), help="Filesystem prefix for host files")
@click.option("--dry-run", is_flag=True, help="Log commands and file writes without applying them")
@click.option("--verbose", is_flag=True, help="Enable debug logging on the console")
def main(
    username: str,
    sentinel_version: str,
    port: int,
    temp_password: Optional[str],
    log_file: str,
    root_dir: str,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Provision this host to run ALTCHA Sentinel in Docker."""
    for s in (signal.SIGINT, signal.SIGTERM):
        signal.signal(s, signal_handler)
    atexit.register(cleanup_temp_files)

    config = Config(
        USERNAME=username,
        TEMP_PASSWORD=temp_password,
        SENTINEL_VERSION=sentinel_version,
        SERVICE_PORT=port,
        LOG_FILE=log_file,
        ROOT=Path(root_dir),
        DRY_RUN=dry_run,
    )
    sys.exit(SentinelSetup(config, verbose=verbose).run())


if __name__ == "__main__":
    main()
