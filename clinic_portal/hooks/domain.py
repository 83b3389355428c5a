"""
Per-domain hook factories.

Each factory binds a service operation to a hook and mounts it, so it must
be called from inside a running event loop.
"""

from typing import Any, Optional

from ..core.config import get_settings
from ..services.appointments import AppointmentService
from ..services.clients import ClientService
from ..services.events import EventService
from ..services.notifications import NotificationService
from ..services.orders import OrderService
from ..services.payments import PaymentService
from ..services.products import ProductService
from .base import DebouncedSearchHook, NotificationsHook, PagedQueryHook, QueryHook


# Clients


def use_clients(
    service: ClientService,
    clinic_name: str,
    page: int = 1,
    limit: int = 20,
    auto_fetch: bool = True,
    **filters: Any,
) -> PagedQueryHook:
    params = {"clinic_name": clinic_name, "page": page, "limit": limit, **filters}
    return PagedQueryHook(service.get_clients_by_clinic, params, auto_fetch).mount()


def use_client(service: ClientService, client_id: str, auto_fetch: bool = True) -> QueryHook:
    return QueryHook(service.get_client_by_id, {"client_id": client_id}, auto_fetch).mount()


def use_client_search(
    service: ClientService,
    clinic_name: Optional[str] = None,
    limit: int = 20,
    delay: Optional[float] = None,
) -> DebouncedSearchHook:
    params = {"clinic_name": clinic_name, "limit": limit}
    return DebouncedSearchHook(service.search_clients, params, delay)


def use_client_stats(service: ClientService, clinic_name: str, auto_fetch: bool = True) -> QueryHook:
    return QueryHook(service.get_client_stats, {"clinic_name": clinic_name}, auto_fetch).mount()


# Appointments


def use_appointments(
    service: AppointmentService,
    clinic_name: str,
    page: int = 1,
    limit: int = 20,
    auto_fetch: bool = True,
    **filters: Any,
) -> PagedQueryHook:
    params = {"clinic_name": clinic_name, "page": page, "limit": limit, **filters}
    return PagedQueryHook(service.get_appointments_by_clinic, params, auto_fetch).mount()


def use_appointment_stats(
    service: AppointmentService,
    clinic_name: str,
    start_date=None,
    end_date=None,
    auto_fetch: bool = True,
) -> QueryHook:
    params = {"clinic_name": clinic_name, "start_date": start_date, "end_date": end_date}
    return QueryHook(service.get_clinic_appointment_stats, params, auto_fetch).mount()


# Orders and payments


def use_orders(
    service: OrderService, page: int = 1, limit: int = 20, auto_fetch: bool = True, **filters: Any
) -> PagedQueryHook:
    return PagedQueryHook(
        service.get_orders, {"page": page, "limit": limit, **filters}, auto_fetch
    ).mount()


def use_payments(
    service: PaymentService,
    clinic_name: str,
    page: int = 1,
    limit: int = 20,
    auto_fetch: bool = True,
    **filters: Any,
) -> PagedQueryHook:
    params = {"clinic_name": clinic_name, "page": page, "limit": limit, **filters}
    return PagedQueryHook(service.get_payments_by_clinic, params, auto_fetch).mount()


def use_payment_stats(
    service: PaymentService, clinic_name: Optional[str] = None, auto_fetch: bool = True
) -> QueryHook:
    return QueryHook(service.get_payment_stats, {"clinic_name": clinic_name}, auto_fetch).mount()


def use_invoice_data(service: PaymentService, payment_id: str, auto_fetch: bool = True) -> QueryHook:
    return QueryHook(service.generate_invoice_data, {"payment_id": payment_id}, auto_fetch).mount()


# Products


def use_products(
    service: ProductService, page: int = 1, limit: int = 20, auto_fetch: bool = True, **filters: Any
) -> PagedQueryHook:
    return PagedQueryHook(
        service.get_products, {"page": page, "limit": limit, **filters}, auto_fetch
    ).mount()


def use_product_search(service: ProductService, delay: Optional[float] = None) -> DebouncedSearchHook:
    return DebouncedSearchHook(service.search_products, delay=delay)


# Events


def use_events(
    service: EventService, page: int = 1, limit: int = 20, auto_fetch: bool = True, **filters: Any
) -> PagedQueryHook:
    return PagedQueryHook(
        service.get_events, {"page": page, "limit": limit, **filters}, auto_fetch
    ).mount()


def use_event_search(
    service: EventService, delay: Optional[float] = None, **filters: Any
) -> DebouncedSearchHook:
    return DebouncedSearchHook(service.search_events, filters, delay)


# Notifications


def use_notifications(
    service: NotificationService,
    clinic_name: str,
    poll: bool = False,
    auto_fetch: bool = True,
) -> NotificationsHook:
    """Notification state; with ``poll`` it refreshes on the configured interval."""
    interval = get_settings().hooks.notification_poll_seconds if poll else None
    return NotificationsHook(service, clinic_name, interval, auto_fetch).mount()
