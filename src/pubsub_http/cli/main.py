"""
pubsub-http CLI - Main entry point.

Provides commands for:
- check: Probe internet connectivity
- hosts: Show the host order for requests
- request: Perform a REST request with fallback
- config: Manage configuration
"""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from pubsub_http.config import (
    CONFIG_PATH_ENV,
    ClientOptions,
    get_options,
    get_options_dict,
    normalize_log_level,
)

app = typer.Typer(
    name="pubsub-http",
    help="REST transport with fallback hosts for a hosted pub/sub service",
    add_completion=True,
)
console = Console()


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _options(rest_host: str | None, log_level: str | None) -> ClientOptions:
    options = get_options()
    updates = {}
    if rest_host:
        updates["rest_host"] = rest_host
    if log_level:
        try:
            updates["log_level"] = normalize_log_level(log_level)
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(2) from e
    if updates:
        options = options.model_copy(update=updates)
    _configure_logging(options.log_level)
    return options


@app.command()
def check(
    log_level: str = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Check whether the internet is reachable."""
    from pubsub_http.client import RestHttp

    options = _options(None, log_level)

    async def run() -> bool:
        async with RestHttp(options) as http:
            return await http.check_connectivity()

    if asyncio.run(run()):
        console.print("[green]Online[/green]")
    else:
        console.print("[red]Offline[/red]")
        raise typer.Exit(1)


@app.command()
def hosts(
    rest_host: str = typer.Option(None, "--rest-host", "-H", help="Primary REST host"),
    connection_host: str = typer.Option(
        None, "--connection-host", "-c", help="Host of a live realtime connection"
    ),
) -> None:
    """Show the order in which hosts are tried."""
    from types import SimpleNamespace

    from pubsub_http.router.hosts import HostResolver

    options = get_options()
    if rest_host:
        options = options.model_copy(update={"rest_host": rest_host})
    connection = SimpleNamespace(host=connection_host) if connection_host else None

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", width=3)
    table.add_column("Host")
    table.add_column("Base URI")

    for i, host in enumerate(HostResolver(options, connection).resolve(), 1):
        table.add_row(str(i), host, options.base_uri(host))

    console.print(table)


@app.command()
def request(
    method: str = typer.Argument(..., help="HTTP method: get, delete, post, put, patch"),
    path: str = typer.Argument(..., help="Host-relative path or full URI"),
    body: str = typer.Option(None, "--body", "-b", help="Request body"),
    header: list[str] = typer.Option(None, "--header", help="Header as 'Name: value'"),
    rest_host: str = typer.Option(None, "--rest-host", "-H", help="Primary REST host"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Perform a request, falling back across hosts as needed."""
    from pubsub_http.client import RestHttp

    options = _options(rest_host, log_level)

    headers = {}
    for item in header or []:
        name, sep, value = item.partition(":")
        if not sep:
            console.print(f"[red]Invalid header: {item}[/red]")
            raise typer.Exit(2)
        headers[name.strip()] = value.strip()

    async def run():
        async with RestHttp(options) as http:
            return await http.request(method, path, headers or None, body)

    try:
        outcome = asyncio.run(run())
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2) from e

    color = "red" if outcome.is_error else "green"
    console.print(f"[{color}]{outcome.status_code or '-'}[/{color}] via {outcome.host}")
    if len(outcome.hosts_tried) > 1:
        console.print(f"[dim]Hosts tried: {', '.join(outcome.hosts_tried)}[/dim]")

    if outcome.is_error:
        console.print(f"[red]{outcome.error}[/red]")
        raise typer.Exit(1)

    if isinstance(outcome.body, (bytes, bytearray)):
        console.print(bytes(outcome.body).decode("utf-8", errors="replace"))
    else:
        console.print_json(json.dumps(outcome.body, default=repr))


@app.command()
def config(
    action: str = typer.Argument("show", help="Action: show, init, path"),
) -> None:
    """Manage configuration."""
    import os

    if action == "show":
        console.print_json(data=get_options_dict())

    elif action == "init":
        config_path = Path("pubsub-http.yaml")
        if config_path.exists():
            console.print(f"[yellow]Config file already exists: {config_path}[/yellow]")
            return

        default_config = """# pubsub-http configuration
http:
  rest_host: rest.ably.io
  # fallback_hosts:
  #   - a.ably-realtime.com
  #   - b.ably-realtime.com
  http_max_retry_count: 3
  tls: true
  timeouts:
    http_request_timeout_ms: 15000
    fallback_retry_timeout_ms: 600000
  rest_agent_options:
    keep_alive: true
    max_sockets: 25
  log_level: INFO

# Point PUBSUB_HTTP_CONFIG_PATH at this file to use it.
"""
        config_path.write_text(default_config)
        console.print(f"[green]Created config file: {config_path}[/green]")

    elif action == "path":
        config_path = os.environ.get(CONFIG_PATH_ENV)
        if config_path:
            console.print(config_path)
        else:
            console.print("[dim]No config file specified[/dim]")

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("[dim]Available actions: show, init, path[/dim]")


@app.command()
def version() -> None:
    """Show version information."""
    from pubsub_http import __version__

    console.print(f"pubsub-http version {__version__}")


if __name__ == "__main__":
    app()
