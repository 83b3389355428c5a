"""
Report service: clinic reports and their export.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.models import Record
from ..data.cancellation import CancelToken
from ..data.query import with_query
from ..reports.export import ReportExporter
from ..reports.models import (
    AccountSummaryReport,
    AvailableReports,
    ClientStatistics,
    CopaySummaryReport,
    MarketingBudgetReport,
    OrderStatusReport,
    PaymentSummaryReport,
    Report,
    ReportKind,
    TimesheetReport,
    parse_report,
)
from .base import BaseApiService, ServiceConfig, segment, service_method

REPORT_SERVICE = ServiceConfig(
    name="ReportService",
    endpoint="/reports",
    collection="reports",
    item="report",
)

DateLike = Union[date, datetime, str, None]

# Reports that take no date range
_UNDATED = {ReportKind.ORDER_STATUS}


class ReportService(BaseApiService[Record]):
    """Read-only reports; responses are cached for the default TTL."""

    config = REPORT_SERVICE
    model = Record

    def __init__(self, *args, exporter: Optional[ReportExporter] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.exporter = exporter or ReportExporter()

    @service_method
    async def get_client_statistics(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> ClientStatistics:
        response = await self._read(
            f"/reports/{segment(clinic_name)}/client-statistics",
            "get_client_statistics",
            self.key("client_statistics", clinic_name),
            cancel_token,
        )
        return ClientStatistics.model_validate(response.data)

    @service_method
    async def get_available_reports(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> AvailableReports:
        response = await self._read(
            f"/reports/{segment(clinic_name)}/available",
            "get_available_reports",
            self.key("available_reports", clinic_name),
            cancel_token,
        )
        return AvailableReports.model_validate(response.data)

    @service_method
    async def get_report(
        self,
        kind: Union[str, ReportKind],
        clinic_name: str,
        start_date: DateLike = None,
        end_date: DateLike = None,
        variant: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Report:
        """Fetch any report by kind, e.g. ``account_summary`` or ``timesheet``."""
        kind = ReportKind.parse(kind)
        params: Dict[str, Any] = {}
        if kind not in _UNDATED:
            params = {"startDate": start_date, "endDate": end_date}
            if kind == ReportKind.ACCOUNT_SUMMARY:
                params["variant"] = variant

        response = await self._read(
            with_query(f"/reports/{segment(clinic_name)}/{kind.slug}", params),
            "get_report",
            self.key(f"{kind.value}_{clinic_name}", params),
            cancel_token,
        )
        return parse_report(kind, response.data)

    async def get_account_summary(
        self, clinic_name: str, **options
    ) -> AccountSummaryReport:
        return await self.get_report(ReportKind.ACCOUNT_SUMMARY, clinic_name, **options)

    async def get_payment_summary(self, clinic_name: str, **options) -> PaymentSummaryReport:
        return await self.get_report(ReportKind.PAYMENT_SUMMARY, clinic_name, **options)

    async def get_timesheet_report(self, clinic_name: str, **options) -> TimesheetReport:
        return await self.get_report(ReportKind.TIMESHEET, clinic_name, **options)

    async def get_order_status_report(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> OrderStatusReport:
        return await self.get_report(
            ReportKind.ORDER_STATUS, clinic_name, cancel_token=cancel_token
        )

    async def get_copay_summary(self, clinic_name: str, **options) -> CopaySummaryReport:
        return await self.get_report(ReportKind.COPAY_SUMMARY, clinic_name, **options)

    async def get_marketing_budget_summary(
        self, clinic_name: str, **options
    ) -> MarketingBudgetReport:
        return await self.get_report(ReportKind.MARKETING_BUDGET, clinic_name, **options)

    @service_method
    async def export_report(
        self,
        kind: Union[str, ReportKind],
        clinic_name: str,
        export_format: str = "csv",
        directory: Union[str, Path] = ".",
        start_date: DateLike = None,
        end_date: DateLike = None,
        variant: Optional[str] = None,
    ) -> Optional[Path]:
        """
        Fetch a report and write it as CSV, JSON or printable HTML.

        Date bounds are sent as calendar dates. Returns the written path, or
        None when a CSV export has no rows.
        """
        kind = ReportKind.parse(kind)
        report = await self.get_report(
            kind,
            clinic_name,
            start_date=_as_date(start_date),
            end_date=_as_date(end_date),
            variant=variant,
        )
        return self.exporter.export(report, export_format, clinic_name, directory, kind.slug)

    def clear_report_cache(self) -> None:
        self.clear_cache()


def _as_date(value: DateLike) -> DateLike:
    if isinstance(value, datetime):
        return value.date()
    return value
