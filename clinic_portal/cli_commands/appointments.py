"""
CLI commands for appointment schedules.
"""

from datetime import datetime
from typing import Optional

import click
from rich.table import Table

from ..core.exceptions import ClinicPortalError
from ..core.models import AppointmentStatus
from ..reports.formatting import status_style
from .common import console, fail, run_with_services

STATUS_CHOICES = [status.name.lower() for status in AppointmentStatus]


def _status_label(value: Optional[int]) -> str:
    if value is None:
        return "-"
    try:
        return AppointmentStatus(value).name.lower()
    except ValueError:
        return str(value)


def _styled_status(value: Optional[int]) -> str:
    label = _status_label(value)
    style = status_style(label)
    return f"[{style}]{label}[/{style}]"


@click.group()
def appointments():
    """Appointment commands."""
    pass


@appointments.command("list")
@click.argument("clinic_name")
@click.option("--page", default=1, show_default=True, help="Page number (1-indexed)")
@click.option("--limit", default=20, show_default=True, help="Page size")
@click.option("--start", "start_date", type=click.DateTime(), help="Earliest start date")
@click.option("--end", "end_date", type=click.DateTime(), help="Latest start date")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Appointment status")
@click.option("--client-id", help="Only appointments of this client (never cached)")
def list_appointments(
    clinic_name: str,
    page: int,
    limit: int,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    status: Optional[str],
    client_id: Optional[str],
):
    """List appointments of CLINIC_NAME."""
    status_value = AppointmentStatus[status.upper()].value if status else None
    try:
        result = run_with_services(
            lambda services: services.appointments.get_appointments_by_clinic(
                clinic_name,
                page=page,
                limit=limit,
                start_date=start_date,
                end_date=end_date,
                status=status_value,
                client_id=client_id,
            )
        )
    except ClinicPortalError as e:
        fail("Appointment List Error", e)

    table = Table(title=f"Appointments at {clinic_name}")
    table.add_column("ID", style="cyan")
    table.add_column("Start", style="white")
    table.add_column("Subject", style="white")
    table.add_column("Resource", style="dim")
    table.add_column("Status")
    table.add_column("Ready to bill", style="green")

    for appointment in result.items:
        table.add_row(
            str(appointment.appointment_id or appointment.key or ""),
            appointment.start_date or "",
            appointment.subject or "",
            appointment.resource_name or "",
            _styled_status(appointment.status),
            "yes" if appointment.ready_to_bill else "no",
        )

    console.print(table)
    p = result.pagination
    console.print(f"Page {p.page} of {p.pages or 1} ({p.total} total)")
