"""Mutation commands for plannersync CLI.

Each command submits one intent through the sync service: it is sent
right away when the server is reachable and queued otherwise.

Commands:
- add-task: Add a task to a trip
- add-item: Add a checklist item
- check-item: Check or uncheck a checklist item
- add-guest: Invite a guest
- save-trip: Save the trip destination and date
"""

from __future__ import annotations

import concurrent.futures
import sys
from concurrent.futures import Future

import click

from plannersync.client.cli.queue import open_service
from plannersync.client.sync import OutcomeStatus, SyncOutcome

# Seconds to wait for the first outcome of an intent
WAIT_TIMEOUT = 60.0


def _report(future: Future[SyncOutcome]) -> None:
    """Print the first outcome of an intent and exit non-zero on failure."""
    try:
        outcome = future.result(timeout=WAIT_TIMEOUT)
    except concurrent.futures.TimeoutError:
        click.echo("Error: No answer from the sync service.", err=True)
        sys.exit(1)

    if outcome.status == OutcomeStatus.SUCCEEDED:
        if outcome.entity_id:
            click.echo(f"Synced (id: {outcome.entity_id})")
        else:
            click.echo("Synced")
    elif outcome.status == OutcomeStatus.QUEUED:
        click.echo("Offline: queued, will sync when the server is reachable.")
    elif outcome.status == OutcomeStatus.RETRYING:
        click.echo(f"Attempt {outcome.attempts} failed, kept in queue: {outcome.error}")
    elif outcome.status == OutcomeStatus.DUPLICATE:
        click.echo("Same change already in flight, skipped.")
    else:
        click.echo(f"Error: {outcome.error}", err=True)
        sys.exit(1)


@click.command("add-task")
@click.argument("trip_id")
@click.argument("description")
def add_task(trip_id: str, description: str) -> None:
    """Add a task to a trip."""
    with open_service() as service:
        service.monitor.check()
        _report(service.add_task(trip_id, description))


@click.command("add-item")
@click.argument("trip_id")
@click.argument("text")
def add_item(trip_id: str, text: str) -> None:
    """Add an item to the trip checklist."""
    with open_service() as service:
        service.monitor.check()
        _report(service.add_checklist_item(trip_id, text))


@click.command("check-item")
@click.argument("trip_id")
@click.argument("item_id")
@click.option("--uncheck", is_flag=True, help="Mark the item as not done.")
def check_item(trip_id: str, item_id: str, uncheck: bool) -> None:
    """Check (or uncheck) a checklist item."""
    with open_service() as service:
        service.monitor.check()
        _report(service.update_checklist_item(trip_id, item_id, not uncheck))


@click.command("add-guest")
@click.argument("trip_id")
@click.argument("name")
def add_guest(trip_id: str, name: str) -> None:
    """Invite a guest to a trip."""
    with open_service() as service:
        service.monitor.check()
        _report(service.add_guest(trip_id, name))


@click.command("save-trip")
@click.argument("trip_id")
@click.option("--destination", required=True, help="Trip destination.")
@click.option("--date", "date", required=True, help="Trip dates.")
@click.option("--draft/--no-draft", default=None, help="Keep the trip as a draft.")
def save_trip(trip_id: str, destination: str, date: str, draft: bool | None) -> None:
    """Save the trip destination and dates."""
    with open_service() as service:
        service.monitor.check()
        _report(service.save_trip(trip_id, destination, date, is_draft=draft))
