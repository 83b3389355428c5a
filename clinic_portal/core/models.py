"""
Data models and type definitions for the clinic portal client.

Mirrors the backend's response envelope and domain records. Records keep
unknown fields so that backend additions survive a read/modify/write cycle.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    """Payment states for orders and payments."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    COMPLETED = "completed"
    FAILED = "failed"
    OVERDUE = "overdue"
    REFUNDED = "refunded"


class AppointmentStatus(int, Enum):
    """Appointment states as numbered by the backend."""

    SCHEDULED = 0
    COMPLETED = 1
    CANCELLED = 2
    NO_SHOW = 3
    RESCHEDULED = 4


class ProductCategory(str, Enum):
    """Product categories."""

    PHYSIOTHERAPY = "physiotherapy"
    CONSULTATION = "consultation"
    ASSESSMENT = "assessment"
    THERAPY = "therapy"
    REHABILITATION = "rehabilitation"
    WELLNESS = "wellness"


class ProductStatus(str, Enum):
    """Product availability."""

    ACTIVE = "active"
    DISCONTINUED = "discontinued"


class ResourceType(str, Enum):
    """Kinds of bookable resources."""

    PRACTITIONER = "practitioner"
    SERVICE = "service"
    EQUIPMENT = "equipment"
    ROOM = "room"


class EventType(str, Enum):
    """Event categories."""

    APPOINTMENT = "appointment"
    ORDER = "order"
    PAYMENT = "payment"
    CLIENT = "client"
    SYSTEM = "system"
    CLINIC = "clinic"


class EventStatus(str, Enum):
    """Event moderation states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


# Envelope Models


class ErrorInfo(BaseModel):
    """Error member of the response envelope."""

    code: str = "UNKNOWN"
    message: str = ""
    details: Optional[Any] = None

    model_config = ConfigDict(frozen=True)


class Pagination(BaseModel):
    """Pagination block of a list response.

    Accepts the naming variants the backend uses across endpoints
    (``pages``/``totalPages``, ``hasNext``/``hasNextPage`` and so on) and
    derives ``has_next``/``has_prev`` when the server leaves them out.
    """

    page: int = Field(default=1, ge=1, validation_alias=AliasChoices("page", "currentPage"))
    limit: int = Field(default=20, ge=0, validation_alias=AliasChoices("limit", "itemsPerPage"))
    total: int = Field(default=0, ge=0, validation_alias=AliasChoices("total", "totalItems"))
    pages: int = Field(default=0, ge=0, validation_alias=AliasChoices("pages", "totalPages"))
    has_next: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("hasNext", "hasNextPage", "has_next")
    )
    has_prev: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("hasPrev", "hasPrevPage", "has_prev")
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def derive_flags(cls, values):
        if not isinstance(values, dict):
            return values
        values = dict(values)
        page = values.get("page", values.get("currentPage", 1)) or 1
        pages = values.get("pages", values.get("totalPages", 0)) or 0
        if not any(k in values for k in ("hasNext", "hasNextPage", "has_next")):
            values["hasNext"] = page < pages
        if not any(k in values for k in ("hasPrev", "hasPrevPage", "has_prev")):
            values["hasPrev"] = page > 1
        return values

    @classmethod
    def empty(cls, page: int = 1, limit: int = 20) -> "Pagination":
        """Pagination used when the server returns none."""
        return cls(page=page, limit=limit, total=0, pages=0, has_next=False, has_prev=False)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with the backend's field names."""
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "hasNext": bool(self.has_next),
            "hasPrev": bool(self.has_prev),
        }


class ApiResponse(BaseModel, Generic[T]):
    """The ``{success, data, message, error, pagination}`` envelope."""

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[ErrorInfo] = None
    pagination: Optional[Pagination] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_envelope(self):
        """success implies data, failure implies error."""
        if self.success and self.data is None:
            raise ValueError("successful response must carry data")
        if not self.success and self.error is None:
            raise ValueError("failed response must carry an error")
        return self


class Page(BaseModel, Generic[T]):
    """One page of records plus its pagination block."""

    items: List[T] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination.empty)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


# Record Models


class Record(BaseModel):
    """Base class for server-owned records."""

    mongo_id: Optional[str] = Field(default=None, alias="_id")
    id: Optional[Union[str, int]] = None
    date_created: Optional[str] = None
    date_modified: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    @property
    def key(self) -> Optional[str]:
        """Identifier the backend accepts in item URLs."""
        value = self.mongo_id or self.id
        return str(value) if value is not None else None

    def to_payload(self) -> Dict[str, Any]:
        """Dump with wire aliases, dropping unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Client(Record):
    """Clinic client (patient)."""

    client_id: Optional[str] = None
    personal_info: Dict[str, Any] = Field(default_factory=dict)
    contact: Dict[str, Any] = Field(default_factory=dict)
    medical: Dict[str, Any] = Field(default_factory=dict)
    insurance: List[Dict[str, Any]] = Field(default_factory=list)
    default_clinic: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        first = self.personal_info.get("firstName") or ""
        last = self.personal_info.get("lastName") or ""
        return f"{first} {last}".strip()


class OrderLineItem(BaseModel):
    """One billed product on an order."""

    product_key: Optional[int] = None
    product_name: Optional[str] = None
    quantity: int = 1
    duration: Optional[int] = None
    unit_price: float = 0.0
    subtotal: float = 0.0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Order(Record):
    """Order (billable visit)."""

    order_number: Optional[str] = None
    appointment_id: Optional[int] = None
    client_id: Optional[Union[int, str]] = None
    client_name: Optional[str] = None
    clinic_name: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    order_date: Optional[str] = None
    service_date: Optional[str] = None
    end_date: Optional[str] = None
    items: List[OrderLineItem] = Field(default_factory=list)
    total_amount: float = 0.0
    ready_to_bill: bool = False
    bill_date: Optional[str] = None
    invoice_date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class Payment(Record):
    """Payment against one or more appointments."""

    payment_id: Optional[str] = None
    payment_number: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    clinic_name: Optional[str] = None
    order_number: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[str] = None
    status: Optional[str] = None
    total: float = 0.0
    amount_paid: float = 0.0
    line_items: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def amount_due(self) -> float:
        return round(self.total - self.amount_paid, 2)


class Product(Record):
    """Billable product or service."""

    product_key: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    duration: Optional[int] = None
    price: float = 0.0
    currency: Optional[str] = None
    status: Optional[str] = None
    is_active: bool = True
    clinics: List[str] = Field(default_factory=list)
    popularity_score: Optional[float] = None


class Resource(Record):
    """Practitioner, service, room or piece of equipment."""

    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = None
    practitioner: Optional[Dict[str, Any]] = None
    service: Optional[Dict[str, Any]] = None
    availability: Dict[str, Any] = Field(default_factory=dict)
    clinics: List[str] = Field(default_factory=list)
    default_clinic: Optional[str] = None
    is_active: bool = True
    is_bookable: bool = True
    requires_approval: bool = False


class Appointment(Record):
    """Scheduled appointment."""

    appointment_id: Optional[int] = None
    type: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    all_day: bool = False
    subject: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: Optional[int] = None
    label: Optional[int] = None
    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    duration: Optional[int] = None
    client_id: Optional[str] = None
    clinic_name: Optional[str] = None
    ready_to_bill: bool = False
    is_active: bool = True


class Event(Record):
    """Calendar event."""

    event_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[str] = None
    event_time: Optional[str] = None
    event_time_end: Optional[str] = None
    location: Optional[str] = None
    is_public: bool = False
    is_approved: bool = False
    category_id: Optional[int] = None
    client_id: Optional[str] = None
    client_full_name: Optional[str] = None


class Notification(Record):
    """In-app notification."""

    clinic_name: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    category: Optional[str] = None
    read: bool = False
    created_at: Optional[str] = None


class User(Record):
    """Portal user account."""

    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    profile: Dict[str, Any] = Field(default_factory=dict)
    clinics: List[str] = Field(default_factory=list)
    last_login: Optional[str] = None


class Clinic(Record):
    """Clinic location."""

    name: Optional[str] = None
    display_name: Optional[str] = None
    slug: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    is_active: bool = True
