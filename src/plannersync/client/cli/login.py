"""Login command for plannersync CLI.

Commands:
- login: Save the API server and bearer token
"""

from __future__ import annotations

import sys

import click

from plannersync.client.cli.config import load_config, save_config


@click.command()
@click.option(
    "--server",
    required=True,
    help="API server URL (e.g., http://localhost:3333).",
)
@click.option(
    "--token",
    required=True,
    help="Bearer token issued by the plann.er server.",
)
@click.option("--no-check", is_flag=True, help="Save without contacting the server.")
def login(server: str, token: str, no_check: bool) -> None:
    """Save the server URL and token used by the other commands."""
    from plannersync.client.api import PlannerClient
    from plannersync.core.config import ServerConfig

    server_config = ServerConfig(server_url=server, token=token)

    if not no_check:
        with PlannerClient(server_config) as client:
            if not client.health_check():
                click.echo(f"Error: Could not reach server at {server_config.server_url}", err=True)
                click.echo("Use --no-check to save the configuration anyway.")
                sys.exit(1)

    config = load_config()
    config["server_url"] = server_config.server_url
    config["token"] = token
    save_config(config)

    click.echo(f"Logged in to {server_config.server_url}")
