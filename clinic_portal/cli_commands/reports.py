"""
CLI commands for clinic reports.

Lists the reports a clinic offers and exports any of them as CSV, JSON
or printable HTML.
"""

from datetime import datetime
from typing import Optional

import click
import structlog
from rich.table import Table

from ..core.config import get_settings
from ..core.exceptions import ClinicPortalError
from ..reports.export import EXPORT_FORMATS
from ..reports.models import ReportKind
from .common import console, fail, run_with_services

logger = structlog.get_logger(__name__)

REPORT_CHOICES = [kind.slug for kind in ReportKind]


@click.group()
def reports():
    """Clinic report commands."""
    pass


@reports.command()
@click.argument("clinic_name")
def available(clinic_name: str):
    """List reports available for CLINIC_NAME."""
    try:
        result = run_with_services(
            lambda services: services.reports.get_available_reports(clinic_name)
        )
    except ClinicPortalError as e:
        fail("Report Error", e)

    table = Table(title=f"Reports for {result.clinic_name or clinic_name}")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Category", style="magenta")
    table.add_column("Description", style="dim")

    for report in result.reports:
        table.add_row(report.id, report.name, report.category or "", report.description or "")

    console.print(table)


@reports.command()
@click.argument("report_type", type=click.Choice(REPORT_CHOICES))
@click.argument("clinic_name")
@click.option(
    "--format",
    "export_format",
    type=click.Choice(EXPORT_FORMATS),
    default="csv",
    show_default=True,
    help="Export format (pdf writes printable HTML)",
)
@click.option("--output-dir", type=click.Path(file_okay=False), help="Directory for the export")
@click.option("--start", "start_date", type=click.DateTime(), help="Start of the date range")
@click.option("--end", "end_date", type=click.DateTime(), help="End of the date range")
@click.option("--variant", help="Account summary variant")
def export(
    report_type: str,
    clinic_name: str,
    export_format: str,
    output_dir: Optional[str],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    variant: Optional[str],
):
    """
    Export REPORT_TYPE for CLINIC_NAME.

    REPORT_TYPE: one of the report slugs, e.g. account-summary
    """
    directory = output_dir or get_settings().export_dir
    click.echo(f"Exporting {report_type} report for {clinic_name}...")

    try:
        path = run_with_services(
            lambda services: services.reports.export_report(
                report_type,
                clinic_name,
                export_format=export_format,
                directory=directory,
                start_date=start_date,
                end_date=end_date,
                variant=variant,
            )
        )
    except ClinicPortalError as e:
        logger.error("Report export failed", report_type=report_type, error=str(e))
        fail("Export Error", e)

    if path is None:
        console.print("[yellow]No data available for export[/yellow]")
        return
    click.echo(f"✓ Report exported: {path}")
