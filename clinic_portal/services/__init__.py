"""
Domain services for the clinic backend.

Each service wraps one REST resource with read-through caching and
write invalidation.
"""

from .appointments import AppointmentService
from .base import ANALYTICS, BYPASS, SEARCH, BaseApiService, CachePolicy, ServiceConfig
from .clients import ClientService
from .clinics import ClinicService
from .events import EventService
from .notifications import NotificationService
from .orders import OrderService
from .payments import PaymentService
from .products import ProductService
from .registry import ApiServices
from .reports import ReportService
from .resources import ResourceService
from .users import UserService

__all__ = [
    "ANALYTICS",
    "BYPASS",
    "SEARCH",
    "ApiServices",
    "AppointmentService",
    "BaseApiService",
    "CachePolicy",
    "ClientService",
    "ClinicService",
    "EventService",
    "NotificationService",
    "OrderService",
    "PaymentService",
    "ProductService",
    "ReportService",
    "ResourceService",
    "ServiceConfig",
    "UserService",
]
