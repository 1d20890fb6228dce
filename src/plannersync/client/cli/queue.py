"""Queue inspection commands for plannersync CLI.

Commands:
- status: Show connectivity and pending actions
- pending: List queued actions
- drain: Run one drain cycle now
- purge: Drop stale queued actions
"""

from __future__ import annotations

import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager

import click

from plannersync.client.cli.config import get_queue_path, get_server_config
from plannersync.client.sync import (
    NetworkMonitor,
    PendingAction,
    PendingActionStore,
    SyncService,
)


def _format_age(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{seconds / 60:.0f}m"
    return f"{seconds / 3600:.1f}h"


def _format_action(action: PendingAction, now: float) -> str:
    return (
        f"{action.action_id[:8]}  {action.trip_id:<12}  {action.kind.value:<6}  "
        f"{action.target.value:<14}  {action.entity_id or '-':<14}  "
        f"{action.attempts}  {_format_age(now - action.enqueued_at)}"
    )


@contextmanager
def open_service() -> Iterator[SyncService]:
    """Open a sync service on the saved configuration and local queue.

    Exits with an error if not logged in. The service is not started:
    drains run synchronously in the calling thread.
    """
    from plannersync.client.api import PlannerClient

    server_config = get_server_config()
    if server_config is None:
        click.echo("Error: Not logged in. Run 'plannersync login' first.", err=True)
        sys.exit(1)

    queue_path = get_queue_path()
    queue_path.parent.mkdir(parents=True, exist_ok=True)

    client = PlannerClient(server_config)
    store = PendingActionStore(queue_path)
    monitor = NetworkMonitor(probe=client.health_check)
    service = SyncService(client, store, monitor=monitor)
    try:
        yield service
    finally:
        service.stop()
        store.close()
        client.close()


@click.command()
@click.option("--trip", default=None, help="Only count actions of this trip.")
def status(trip: str | None) -> None:
    """Show connectivity, sync state and pending actions."""
    with open_service() as service:
        online = service.monitor.check()
        click.echo(f"Server: {'online' if online else 'offline'}")
        click.echo(f"State: {service.state.value}")
        if trip:
            click.echo(f"Pending actions for {trip}: {service.pending_count(trip)}")
        else:
            click.echo(f"Pending actions: {service.pending_count()}")


@click.command()
@click.option("--trip", default=None, help="Only list actions of this trip.")
def pending(trip: str | None) -> None:
    """List queued actions, oldest first."""
    queue_path = get_queue_path()
    if not queue_path.exists():
        click.echo("No pending actions.")
        return

    store = PendingActionStore(queue_path)
    try:
        actions = store.pending_for(trip) if trip else store.snapshot()
    finally:
        store.close()

    if not actions:
        click.echo("No pending actions.")
        return

    now = time.time()
    click.echo("ID        TRIP          KIND    TARGET          ENTITY          TRIES  AGE")
    for action in actions:
        click.echo(_format_action(action, now))


@click.command()
def drain() -> None:
    """Send pending actions to the server now."""
    with open_service() as service:
        if not service.monitor.check():
            click.echo("Error: Server unreachable, actions stay queued.", err=True)
            sys.exit(1)

        if not service.pending_count():
            click.echo("Nothing to sync.")
            return

        report = service.drain()
        click.echo(
            f"Succeeded: {report.succeeded}, retrying: {report.retrying}, "
            f"abandoned: {report.abandoned}, waiting: {report.deferred}"
        )
        remaining = service.pending_count()
        if remaining:
            click.echo(f"{remaining} actions still pending.")


@click.command()
@click.option(
    "--max-age-hours",
    type=float,
    default=24.0,
    show_default=True,
    help="Drop actions queued longer than this.",
)
def purge(max_age_hours: float) -> None:
    """Drop queued actions older than the given age."""
    queue_path = get_queue_path()
    if not queue_path.exists():
        click.echo("No actions to purge.")
        return

    store = PendingActionStore(queue_path)
    try:
        dropped = store.cleanup_stale(max_age_hours * 3600)
    finally:
        store.close()

    if dropped:
        click.echo(f"Purged {len(dropped)} stale actions.")
    else:
        click.echo("No actions to purge.")
