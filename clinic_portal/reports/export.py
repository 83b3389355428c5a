"""
Report export to CSV, JSON and printable HTML.

CSV rows are flattened from the nested report payload; HTML is rendered
with Jinja2 for printing to PDF from a browser.
"""

import csv
import io
import json
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd
import structlog
from jinja2 import BaseLoader, Environment, TemplateError

from ..core.exceptions import ExportError
from .formatting import display_value
from .models import Report, ReportKind

logger = structlog.get_logger(__name__)

EXPORT_FORMATS = ("csv", "json", "pdf")

USER_AGENT_LIMIT = 100


REPORT_TEMPLATE = """
<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{{ title }}</title>
    <style>
      body { font-family: Arial, sans-serif; margin: 20px; }
      h1 { color: #2563eb; border-bottom: 2px solid #e5e7eb; padding-bottom: 10px; }
      table { width: 100%; border-collapse: collapse; margin: 20px 0; }
      th, td { border: 1px solid #d1d5db; padding: 8px; text-align: left; }
      th { background-color: #f3f4f6; font-weight: bold; }
      .summary { background-color: #f8fafc; padding: 15px; border-radius: 8px; margin: 15px 0; }
      pre { font-size: 12px; }
      @media print { .summary { border: 1px solid #e5e7eb; } }
    </style>
  </head>
  <body>
    <h1>{{ title }}</h1>
    <div class="summary">
      <h3>Report Details</h3>
      <p><strong>Clinic:</strong> {{ clinic_name or "N/A" }}</p>
      <p><strong>Generated:</strong> {{ generated_at }}</p>
      <p><strong>Date Range:</strong> {{ date_range or "All Time" }}</p>
    </div>

    {% if rows %}
    <table>
      <thead>
        <tr>{% for column in columns %}<th>{{ column }}</th>{% endfor %}</tr>
      </thead>
      <tbody>
        {% for row in rows %}
        <tr>{% for column in columns %}<td>{{ row.get(column) | display(column) }}</td>{% endfor %}</tr>
        {% endfor %}
      </tbody>
    </table>
    {% endif %}

    <div id="report-content">
      <pre>{{ payload }}</pre>
    </div>
  </body>
</html>
"""


def _cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def flatten_object(obj: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested mappings into ``parent_child`` keys.

    Lists become ``"; "``-joined strings.
    """
    flat: Dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_object(value, name))
        elif isinstance(value, list):
            flat[name] = "; ".join("" if v is None else str(_cell(v)) for v in value)
        else:
            flat[name] = _cell(value)
    return flat


def _account_summary_rows(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    summary = data.get("summary") or {}
    date_range = data.get("dateRange") or {}
    clinic = data.get("clinicName")
    rows = [
        {
            "report_type": "Summary",
            "clinic_name": clinic,
            "date_range": f"{date_range.get('startDate')} to {date_range.get('endDate')}",
            "total_revenue": summary.get("totalRevenue"),
            "total_orders": summary.get("totalOrders"),
            "total_clients": summary.get("totalClients"),
            "average_order_value": summary.get("averageOrderValue"),
            "completed_orders": summary.get("completedOrders"),
            "pending_orders": summary.get("pendingOrders"),
            "cancelled_orders": summary.get("cancelledOrders"),
        }
    ]
    for service in data.get("topServices") or []:
        rows.append(
            {
                "report_type": "Top Service",
                "clinic_name": clinic,
                "service_name": service.get("productName"),
                "service_key": service.get("productKey"),
                "quantity": service.get("quantity"),
                "revenue": service.get("revenue"),
            }
        )
    return rows


def _timesheet_rows(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    clinic = data.get("clinicName")
    rows = []
    for practitioner in data.get("practitioners") or []:
        rows.append(
            {
                "report_type": "Practitioner Hours",
                "clinic_name": clinic,
                "practitioner_name": practitioner.get("resourceName"),
                "practitioner_id": practitioner.get("resourceId"),
                "total_hours": practitioner.get("totalHours"),
                "total_appointments": practitioner.get("totalAppointments"),
                "completed_appointments": practitioner.get("completedAppointments"),
                "cancelled_appointments": practitioner.get("cancelledAppointments"),
                "average_duration": practitioner.get("averageAppointmentDuration"),
                "revenue": practitioner.get("revenue"),
                "utilization": practitioner.get("utilization"),
            }
        )

    for user in data.get("userActivity") or []:
        rows.append(
            {
                "report_type": "User Login Activity",
                "clinic_name": clinic,
                "user_id": user.get("userId"),
                "username": user.get("username"),
                "full_name": user.get("fullName"),
                "role": user.get("role"),
                "last_login": user.get("lastLogin") or "Never",
                "last_activity": user.get("lastActivity") or "Never",
                "total_sessions": user.get("totalSessions"),
                "active_sessions": user.get("activeSessions"),
            }
        )
        for session in user.get("sessions") or []:
            agent = session.get("userAgent")
            rows.append(
                {
                    "report_type": "User Session Detail",
                    "clinic_name": clinic,
                    "username": user.get("username"),
                    "full_name": user.get("fullName"),
                    "session_device": session.get("deviceId"),
                    "session_ip": session.get("ipAddress"),
                    "session_user_agent": agent[:USER_AGENT_LIMIT] if agent else "Unknown",
                    "session_last_activity": session.get("lastActivity"),
                    "session_is_active": "Yes" if session.get("isActive") else "No",
                }
            )
    return rows


def flatten_report(report: Union[Report, Dict[str, Any], List[Any]]) -> List[Dict[str, Any]]:
    """
    Turn a report into flat rows for tabular export.

    Account summaries yield a summary row plus one row per top service;
    timesheets yield practitioner, login activity and session rows; lists
    gain a 1-based ``row_index``; anything else becomes one flattened row.
    """
    if isinstance(report, list):
        return [
            {**flatten_object(item), "row_index": index}
            for index, item in enumerate(report, start=1)
            if isinstance(item, dict)
        ]

    if isinstance(report, dict):
        kind = report.get("kind")
        data = {k: v for k, v in report.items() if k != "kind"}
    else:
        kind = report.kind
        data = report.model_dump(by_alias=True, exclude={"kind"}, mode="json")

    if not data:
        return []
    if kind == ReportKind.ACCOUNT_SUMMARY.value:
        return _account_summary_rows(data)
    if kind == ReportKind.TIMESHEET.value:
        return _timesheet_rows(data)
    return [flatten_object(data)]


def generate_filename(
    report_type: str, clinic_name: str, today: Optional[date] = None
) -> str:
    """``<report-type>_<clinic with non-alphanumerics as _>_<YYYY-MM-DD>``"""
    stamp = (today or date.today()).isoformat()
    sanitized = re.sub(r"[^a-zA-Z0-9]", "_", clinic_name)
    return f"{report_type}_{sanitized}_{stamp}"


class ReportExporter:
    """
    Render reports to export formats and write them to disk.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self.jinja_env = Environment(loader=BaseLoader(), autoescape=True)
        self.jinja_env.filters["display"] = display_value

        try:
            self.report_template = self.jinja_env.from_string(REPORT_TEMPLATE)
        except TemplateError as e:
            logger.error("Failed to initialize report template", error=str(e))
            raise ExportError(f"Template initialization failed: {e}") from e

    def render_csv(self, report: Union[Report, Dict[str, Any], List[Any]]) -> str:
        """
        Render flattened rows as CSV text, or an empty string without rows.

        Records end in CRLF. Values containing commas, quotes, CR or LF are
        quoted with inner quotes doubled.
        """
        rows = flatten_report(report)
        if not rows:
            return ""

        frame = pd.DataFrame(rows, dtype=object)
        buffer = io.StringIO()
        frame.to_csv(
            buffer,
            index=False,
            na_rep="",
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\r\n",
        )
        return buffer.getvalue().rstrip("\r\n")

    def render_json(self, report: Union[Report, Dict[str, Any], List[Any]]) -> str:
        if isinstance(report, (dict, list)):
            payload = report
        else:
            payload = report.model_dump(by_alias=True, mode="json")
        return json.dumps(payload, indent=2)

    def render_html(self, report: Report, report_type: Optional[str] = None) -> str:
        """Printable HTML for saving as PDF from a browser."""
        report_type = report_type or ReportKind(report.kind).slug
        rows = flatten_report(report)
        columns: List[str] = []
        for row in rows:
            for column in row:
                if column not in columns:
                    columns.append(column)

        try:
            html = self.report_template.render(
                title=f"{report_type.replace('-', ' ').upper()} REPORT",
                clinic_name=report.clinic_name,
                generated_at=self.clock().strftime("%Y-%m-%d %H:%M:%S"),
                date_range=report.date_range.describe() if report.date_range else None,
                columns=columns,
                rows=rows,
                payload=self.render_json(report),
            )
        except TemplateError as e:
            logger.error("Report rendering failed", report_type=report_type, error=str(e))
            raise ExportError(f"Template rendering failed: {e}") from e

        logger.debug("Report rendered", report_type=report_type, html_length=len(html))
        return html

    def export(
        self,
        report: Report,
        export_format: str,
        clinic_name: str,
        directory: Union[str, Path] = ".",
        report_type: Optional[str] = None,
    ) -> Optional[Path]:
        """
        Write a report to ``directory`` in the requested format.

        Returns:
            Path of the written file, or None when a CSV export has no rows

        Raises:
            ExportError: Unsupported format or write failure
        """
        export_format = export_format.lower()
        if export_format not in EXPORT_FORMATS:
            raise ExportError(f"Unsupported export format: {export_format}")

        report_type = report_type or ReportKind(report.kind).slug
        base = generate_filename(report_type, clinic_name, self.clock().date())

        if export_format == "csv":
            content = self.render_csv(report)
            if not content:
                logger.warning("No data available for export", report_type=report_type)
                return None
            suffix = "csv"
        elif export_format == "json":
            content = self.render_json(report)
            suffix = "json"
        else:
            content = self.render_html(report, report_type)
            suffix = "html"

        path = Path(directory).expanduser() / f"{base}.{suffix}"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise ExportError(f"Failed to write {path}: {e}") from e

        logger.info("Report exported", report_type=report_type, format=export_format, path=str(path))
        return path


def create_report_exporter() -> ReportExporter:
    """Factory function to create a report exporter."""
    return ReportExporter()
