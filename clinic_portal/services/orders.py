"""
Order lifecycle service: listing, billing workflow, payments and analytics.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..core.models import Order, OrderStatus, Page, PaymentStatus
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import (
    ANALYTICS,
    BYPASS,
    BaseApiService,
    CachePolicy,
    ServiceConfig,
    segment,
    service_method,
)

ORDER_SERVICE = ServiceConfig(
    name="OrderService",
    endpoint="/orders",
    collection="orders",
    item="order",
    default_ttl=180.0,
    list_key="orders",
    policies={
        "search_orders": BYPASS,
        "get_orders_ready_for_billing": CachePolicy(ttl=60.0),
        "get_revenue_analytics": ANALYTICS,
        "get_product_performance": ANALYTICS,
    },
)


@dataclass(frozen=True)
class StatusOption:
    """Display metadata for a status value."""

    value: str
    label: str
    color: str


ORDER_STATUS_OPTIONS = (
    StatusOption(OrderStatus.SCHEDULED.value, "Scheduled", "blue"),
    StatusOption(OrderStatus.IN_PROGRESS.value, "In Progress", "yellow"),
    StatusOption(OrderStatus.COMPLETED.value, "Completed", "green"),
    StatusOption(OrderStatus.CANCELLED.value, "Cancelled", "red"),
    StatusOption(OrderStatus.NO_SHOW.value, "No Show", "bright_black"),
)

PAYMENT_STATUS_OPTIONS = (
    StatusOption(PaymentStatus.PENDING.value, "Pending", "yellow"),
    StatusOption(PaymentStatus.PARTIAL.value, "Partial", "dark_orange"),
    StatusOption(PaymentStatus.PAID.value, "Paid", "green"),
    StatusOption(PaymentStatus.OVERDUE.value, "Overdue", "red"),
    StatusOption(PaymentStatus.REFUNDED.value, "Refunded", "blue"),
)


def calculate_order_metrics(orders: Iterable[Order]) -> Dict[str, Any]:
    """Summarize revenue, completion and payment rates for a set of orders."""
    orders = list(orders)
    count = len(orders)
    total_revenue = sum(order.total_amount for order in orders)
    completed = sum(1 for order in orders if order.status == OrderStatus.COMPLETED.value)
    paid = sum(1 for order in orders if order.payment_status == PaymentStatus.PAID.value)

    return {
        "total_orders": count,
        "total_revenue": total_revenue,
        "avg_order_value": total_revenue / count if count else 0.0,
        "completed_orders": completed,
        "paid_orders": paid,
        "completion_rate": completed / count * 100 if count else 0.0,
        "payment_rate": paid / count * 100 if count else 0.0,
    }


class OrderService(BaseApiService[Order]):
    """Orders change frequently, so list entries live for three minutes."""

    config = ORDER_SERVICE
    model = Order

    order_status_options = ORDER_STATUS_OPTIONS
    payment_status_options = PAYMENT_STATUS_OPTIONS

    @service_method
    async def get_orders(
        self,
        page: int = 1,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
        **filters,
    ) -> Page[Order]:
        """
        List orders.

        Filters are passed through as query parameters (``status``,
        ``paymentStatus``, ``clinicName``, ``clientId``, ``startDate``,
        ``endDate``, ``search``, ``sortBy``, ``sortOrder``).
        """
        params = {"page": page, "limit": limit, **filters}
        response = await self._read(
            with_query("/orders", params),
            "get_orders",
            self.key("orders", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_order_by_id(
        self, order_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Order:
        response = await self._read(
            f"/orders/{segment(order_id)}",
            "get_order_by_id",
            self.key("order", order_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def search_orders(
        self,
        term: str,
        clinic_name: Optional[str] = None,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Order]:
        """Search by order number; always hits the backend."""
        if not term or not term.strip():
            return []
        params = {"search": term.strip(), "limit": limit, "clinicName": clinic_name}
        response = await self._read(
            with_query("/orders", params), "search_orders", None, cancel_token
        )
        return self._records(response.data)

    @service_method
    async def get_orders_by_client(
        self, client_id: Any, limit: int = 50, cancel_token: Optional[CancelToken] = None
    ) -> Page[Order]:
        response = await self._read(
            with_query(f"/orders/client/{segment(client_id)}", {"limit": limit}),
            "get_orders_by_client",
            self.key(f"orders_client_{client_id}", limit),
            cancel_token,
        )
        return self._page(response, 1, limit)

    @service_method
    async def get_orders_by_clinic(
        self,
        clinic_name: str,
        page: int = 1,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
        **filters,
    ) -> Page[Order]:
        params = {"page": page, "limit": limit, **filters}
        response = await self._read(
            with_query(f"/orders/clinic/{segment(clinic_name)}", params),
            "get_orders_by_clinic",
            self.key(f"orders_clinic_{clinic_name}", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_orders_ready_for_billing(
        self, clinic_name: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> List[Order]:
        response = await self._read(
            with_query("/orders/billing/ready", {"clinicName": clinic_name}),
            "get_orders_ready_for_billing",
            self.key("orders_billing_ready", clinic_name or "all"),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_overdue_orders(
        self, days_overdue: int = 30, cancel_token: Optional[CancelToken] = None
    ) -> List[Order]:
        response = await self._read(
            with_query("/orders/billing/overdue", {"daysOverdue": days_overdue}),
            "get_overdue_orders",
            self.key("orders_overdue", days_overdue),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def create_order(self, payload: Any) -> Order:
        response = await self._write("POST", "/orders", payload)
        return self._record(response.data)

    @service_method
    async def update_order(self, order_id: str, payload: Any) -> Order:
        response = await self._write(
            "PUT", f"/orders/{segment(order_id)}", payload, item_id=order_id
        )
        return self._record(response.data)

    @service_method
    async def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        response = await self._write(
            "PUT",
            f"/orders/{segment(order_id)}/status",
            {"status": OrderStatus(status).value},
            item_id=order_id,
        )
        return self._record(response.data)

    @service_method
    async def mark_ready_for_billing(self, order_id: str) -> Order:
        response = await self._write(
            "PUT", f"/orders/{segment(order_id)}/billing/ready", {}, item_id=order_id
        )
        return self._record(response.data)

    @service_method
    async def process_payment(
        self, order_id: str, amount: float, payment_date: Optional[str] = None
    ) -> Order:
        body = {"amount": amount}
        if payment_date:
            body["paymentDate"] = payment_date
        response = await self._write(
            "POST", f"/orders/{segment(order_id)}/payment", body, item_id=order_id
        )
        return self._record(response.data)

    @service_method
    async def cancel_order(self, order_id: str, reason: Optional[str] = None) -> Order:
        response = await self._write(
            "PUT", f"/orders/{segment(order_id)}/cancel", {"reason": reason}, item_id=order_id
        )
        return self._record(response.data)

    @service_method
    async def get_revenue_analytics(
        self,
        clinic_name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"clinicName": clinic_name, "startDate": start_date, "endDate": end_date}
        response = await self._read(
            with_query("/orders/analytics/revenue", params),
            "get_revenue_analytics",
            self.key("revenue_analytics", params),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_product_performance(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        clinic_name: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date, "clinicName": clinic_name}
        response = await self._read(
            with_query("/orders/analytics/products", params),
            "get_product_performance",
            self.key("product_performance", params),
            cancel_token,
        )
        return response.data

    @staticmethod
    def calculate_order_metrics(orders: Iterable[Order]) -> Dict[str, Any]:
        return calculate_order_metrics(orders)

    def clear_order_cache(self) -> None:
        self.clear_cache()
