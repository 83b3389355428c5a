"""
Main application entry point for the clinic portal client.

Provides a CLI over the API services: configuration, clients,
appointments, reports and the stored auth token.
"""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .cli_commands.appointments import appointments
from .cli_commands.clients import clients
from .cli_commands.reports import reports
from .cli_commands.token import token
from .core.config import get_settings, print_configuration_summary
from .core.logging import set_correlation_id, setup_logging
from .data.executor import RequestExecutor
from .services.registry import ApiServices

console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--correlation-id", help="Set correlation ID for request tracing")
@click.pass_context
def main(ctx, debug: bool, correlation_id: Optional[str]):
    """Clinic portal API client.

    Browse clients and appointments and export clinic reports from the
    portal backend.
    """
    ctx.ensure_object(dict)

    settings = get_settings()
    setup_logging(debug=debug or settings.debug, rich_output=not settings.log_json)

    if correlation_id:
        set_correlation_id(correlation_id)

    ctx.obj["debug"] = debug
    ctx.obj["correlation_id"] = correlation_id


main.add_command(clients)
main.add_command(appointments)
main.add_command(reports)
main.add_command(token)


@main.command()
def config():
    """Display current configuration."""
    try:
        console.print("[blue]Clinic Portal Configuration[/blue]")

        problems = print_configuration_summary(console)

        sys.exit(0 if not problems else 1)

    except Exception as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        sys.exit(1)


@main.command("cache-info")
def cache_info():
    """Show the cache lifetime of every service."""
    services = ApiServices(executor=RequestExecutor())

    table = Table(title="Service Caches")
    table.add_column("Service", style="cyan")
    table.add_column("Endpoint", style="white")
    table.add_column("Default TTL", style="yellow")
    table.add_column("Bypassed operations", style="dim")

    for service in services.all.values():
        bypassed = sorted(op for op, policy in service.config.policies.items() if policy.bypass)
        table.add_row(
            service.config.name,
            service.config.endpoint,
            f"{service.default_ttl:g}s",
            ", ".join(bypassed) or "-",
        )

    console.print(table)


if __name__ == "__main__":
    main()
