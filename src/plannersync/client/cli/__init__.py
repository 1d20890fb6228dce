"""Command-line interface for plannersync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Save the API server and token
- status: Show connectivity and pending actions
- pending: List queued actions
- drain: Send queued actions now
- purge: Drop stale queued actions
- add-task, add-item, check-item, add-guest, save-trip: Submit one change
"""

from __future__ import annotations

import logging

import click

from plannersync.client.cli.actions import add_guest, add_item, add_task, check_item, save_trip
from plannersync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_queue_path,
    get_server_config,
    load_config,
    save_config,
)
from plannersync.client.cli.login import login
from plannersync.client.cli.queue import drain, pending, purge, status


@click.group()
@click.version_option(package_name="plannersync")
@click.option("--verbose", "-v", is_flag=True, help="Show sync log messages.")
def cli(verbose: bool) -> None:
    """plannersync - Offline-first sync for plann.er trips."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Account
cli.add_command(login)

# Queue commands
cli.add_command(status)
cli.add_command(pending)
cli.add_command(drain)
cli.add_command(purge)

# Mutations
cli.add_command(add_task)
cli.add_command(add_item)
cli.add_command(check_item)
cli.add_command(add_guest)
cli.add_command(save_trip)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_queue_path",
    "get_server_config",
    "load_config",
    "save_config",
]
