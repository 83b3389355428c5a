"""
Clinic reports

Typed report payloads and their export to CSV, JSON and printable HTML.
"""

from .export import ReportExporter, create_report_exporter
from .models import Report, ReportKind, parse_report

__all__ = ["Report", "ReportExporter", "ReportKind", "create_report_exporter", "parse_report"]
