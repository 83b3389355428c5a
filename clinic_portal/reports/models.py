"""
Report payload models.

Every report carries a ``kind`` tag so payloads can be validated and
exported through one discriminated union.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class ReportKind(str, Enum):
    ACCOUNT_SUMMARY = "account_summary"
    PAYMENT_SUMMARY = "payment_summary"
    TIMESHEET = "timesheet"
    ORDER_STATUS = "order_status"
    COPAY_SUMMARY = "copay_summary"
    MARKETING_BUDGET = "marketing_budget"

    @property
    def slug(self) -> str:
        """URL segment and export file prefix, e.g. ``account-summary``."""
        return self.value.replace("_", "-")

    @classmethod
    def parse(cls, value: Union[str, "ReportKind"]) -> "ReportKind":
        """Accept either ``account_summary`` or ``account-summary``."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower().replace("-", "_"))


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class DateRange(ReportModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def describe(self) -> str:
        return f"{self.start_date} to {self.end_date}"


class TopService(ReportModel):
    product_key: Optional[Union[str, int]] = None
    product_name: Optional[str] = None
    quantity: float = 0
    revenue: float = 0


class PractitionerHours(ReportModel):
    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    total_hours: float = 0
    total_appointments: int = 0
    completed_appointments: int = 0
    cancelled_appointments: int = 0
    average_appointment_duration: float = 0
    revenue: float = 0
    utilization: float = 0


class UserSession(ReportModel):
    device_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    last_activity: Optional[str] = None
    is_active: bool = False


class UserActivity(ReportModel):
    user_id: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    last_login: Optional[str] = None
    last_activity: Optional[str] = None
    total_sessions: int = 0
    active_sessions: int = 0
    sessions: List[UserSession] = Field(default_factory=list)


class BaseReport(ReportModel):
    clinic_name: Optional[str] = None
    date_range: Optional[DateRange] = None
    summary: Dict[str, Any] = Field(default_factory=dict)


class AccountSummaryReport(BaseReport):
    kind: Literal["account_summary"] = "account_summary"
    top_services: List[TopService] = Field(default_factory=list)
    revenue_breakdown: List[Dict[str, Any]] = Field(default_factory=list)


class PaymentSummaryReport(BaseReport):
    kind: Literal["payment_summary"] = "payment_summary"
    payment_methods: List[Dict[str, Any]] = Field(default_factory=list)
    daily_payments: List[Dict[str, Any]] = Field(default_factory=list)


class TimesheetReport(BaseReport):
    kind: Literal["timesheet"] = "timesheet"
    practitioners: List[PractitionerHours] = Field(default_factory=list)
    user_activity: List[UserActivity] = Field(default_factory=list)


class OrderStatusReport(BaseReport):
    kind: Literal["order_status"] = "order_status"
    status_breakdown: List[Dict[str, Any]] = Field(default_factory=list)
    recent_orders: List[Dict[str, Any]] = Field(default_factory=list)


class CopaySummaryReport(BaseReport):
    kind: Literal["copay_summary"] = "copay_summary"
    co_pay_breakdown: List[Dict[str, Any]] = Field(default_factory=list)
    monthly_trends: List[Dict[str, Any]] = Field(default_factory=list)


class MarketingBudgetReport(BaseReport):
    kind: Literal["marketing_budget"] = "marketing_budget"
    campaigns: List[Dict[str, Any]] = Field(default_factory=list)
    channels: List[Dict[str, Any]] = Field(default_factory=list)


Report = Annotated[
    Union[
        AccountSummaryReport,
        PaymentSummaryReport,
        TimesheetReport,
        OrderStatusReport,
        CopaySummaryReport,
        MarketingBudgetReport,
    ],
    Field(discriminator="kind"),
]

_REPORT_ADAPTER = TypeAdapter(Report)


def parse_report(kind: Union[str, ReportKind], data: Dict[str, Any]) -> Report:
    """Validate a backend payload as the report of the given kind."""
    kind = ReportKind.parse(kind)
    return _REPORT_ADAPTER.validate_python({**(data or {}), "kind": kind.value})


class AvailableReport(ReportModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    endpoint: Optional[str] = None


class AvailableReports(ReportModel):
    clinic_name: Optional[str] = None
    reports: List[AvailableReport] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)


class ClientStatistics(ReportModel):
    total_clients: int = 0
    new_clients_this_month: int = 0
    active_clients: int = 0
