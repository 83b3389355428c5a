"""
CLI commands for browsing clinic clients.
"""

from typing import List, Optional

import click
from rich.table import Table

from ..core.exceptions import ClinicPortalError
from ..core.models import Client
from .common import console, fail, run_with_services


def _clients_table(title: str, clients: List[Client]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Email", style="dim")
    table.add_column("Phone", style="dim")
    table.add_column("Active", style="green")

    for client in clients:
        contact = client.contact or {}
        phone = contact.get("phone")
        if isinstance(phone, dict):
            phone = phone.get("cell") or phone.get("home") or phone.get("work")
        table.add_row(
            client.client_id or client.key or "",
            client.full_name or "-",
            contact.get("email") or "",
            str(phone or ""),
            "yes" if client.is_active else "no",
        )
    return table


@click.group()
def clients():
    """Client (patient) commands."""
    pass


@clients.command("list")
@click.argument("clinic_name")
@click.option("--page", default=1, show_default=True, help="Page number (1-indexed)")
@click.option("--limit", default=20, show_default=True, help="Page size")
@click.option("--search", help="Filter by name, email or phone")
@click.option("--status", help="Filter by client status")
def list_clients(
    clinic_name: str, page: int, limit: int, search: Optional[str], status: Optional[str]
):
    """List clients of CLINIC_NAME."""
    try:
        result = run_with_services(
            lambda services: services.clients.get_clients_by_clinic(
                clinic_name, page=page, limit=limit, search=search, status=status
            )
        )
    except ClinicPortalError as e:
        fail("Client List Error", e)

    console.print(_clients_table(f"Clients of {clinic_name}", result.items))
    p = result.pagination
    console.print(f"Page {p.page} of {p.pages or 1} ({p.total} total)")


@clients.command("search")
@click.argument("term")
@click.option("--clinic", "clinic_name", help="Restrict the search to one clinic")
@click.option("--limit", default=20, show_default=True, help="Maximum results")
def search_clients(term: str, clinic_name: Optional[str], limit: int):
    """Search clients by TERM."""
    try:
        results = run_with_services(
            lambda services: services.clients.search_clients(
                term, clinic_name=clinic_name, limit=limit
            )
        )
    except ClinicPortalError as e:
        fail("Client Search Error", e)

    if not results:
        console.print("[yellow]No clients found[/yellow]")
        return
    console.print(_clients_table(f"Results for '{term}'", results))


@clients.command("show")
@click.argument("client_id")
def show_client(client_id: str):
    """Show one client as JSON."""
    try:
        client = run_with_services(lambda services: services.clients.get_client_by_id(client_id))
    except ClinicPortalError as e:
        fail("Client Lookup Error", e)

    console.print_json(client.model_dump_json(by_alias=True, exclude_none=True))
