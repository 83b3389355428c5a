"""
Payment service: clinic payments, refunds, invoices and summaries.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import Page, Payment
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import SEARCH, BaseApiService, ServiceConfig, segment, service_method

PAYMENT_SERVICE = ServiceConfig(
    name="PaymentService",
    endpoint="/payments",
    collection="payments",
    item="payment",
    list_key="payments",
    related=("invoice_", "payment_stats", "payment_summary"),
    policies={"search_payments": SEARCH},
)


class PaymentService(BaseApiService[Payment]):
    config = PAYMENT_SERVICE
    model = Payment

    @service_method
    async def get_payments_by_clinic(
        self,
        clinic_name: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[Payment]:
        params = {
            "page": page,
            "limit": limit,
            "status": status,
            "startDate": start_date,
            "endDate": end_date,
            "search": search,
        }
        response = await self._read(
            with_query(f"/payments/clinic/{segment(clinic_name)}/frontend-compatible", params),
            "get_payments_by_clinic",
            self.key(f"payments_{clinic_name}", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_payment_by_id(
        self, payment_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Payment:
        response = await self._read(
            f"/payments/{segment(payment_id)}/frontend-compatible",
            "get_payment_by_id",
            self.key("payment", payment_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create_payment(self, payload: Any) -> Payment:
        response = await self._write("POST", "/payments", payload)
        return self._record(response.data)

    @service_method
    async def update_payment(self, payment_id: str, payload: Any) -> Payment:
        response = await self._write(
            "PUT", f"/payments/{segment(payment_id)}", payload, item_id=payment_id
        )
        return self._record(response.data)

    @service_method
    async def process_refund(
        self,
        payment_id: str,
        refund_amount: float,
        reason: str,
        refund_method: Optional[str] = None,
    ) -> Payment:
        body = {"refundAmount": refund_amount, "reason": reason, "refundMethod": refund_method}
        response = await self._write(
            "POST",
            f"/payments/{segment(payment_id)}/refund",
            {k: v for k, v in body.items() if v is not None},
            item_id=payment_id,
        )
        return self._record(response.data)

    @service_method
    async def get_payments_by_client(
        self, client_id: str, cancel_token: Optional[CancelToken] = None
    ) -> List[Payment]:
        response = await self._read(
            f"/payments/client/{segment(client_id)}",
            "get_payments_by_client",
            self.key("payments_client", client_id),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def generate_invoice_data(
        self, payment_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            f"/payments/{segment(payment_id)}/invoice",
            "generate_invoice_data",
            self.key("invoice", payment_id),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_payments_ready_for_invoice(
        self, clinic_name: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> List[Payment]:
        response = await self._read(
            with_query("/payments/ready-for-invoice", {"clinicName": clinic_name}),
            "get_payments_ready_for_invoice",
            self.key("payments_ready_invoice", clinic_name or "all"),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_payment_summary_by_date_range(
        self,
        start_date: date,
        end_date: date,
        clinic_name: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date, "clinicName": clinic_name}
        response = await self._read(
            with_query("/payments/reports/summary", params),
            "get_payment_summary_by_date_range",
            self.key("payment_summary", params),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_payment_stats(
        self, clinic_name: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            with_query("/payments/stats", {"clinicName": clinic_name}),
            "get_payment_stats",
            self.key("payment_stats", clinic_name or "all"),
            cancel_token,
        )
        return response.data

    @service_method
    async def search_payments(
        self,
        term: str,
        clinic_name: Optional[str] = None,
        status: Optional[str] = None,
        method: Optional[str] = None,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Payment]:
        if not term or not term.strip():
            return []
        params = {
            "q": term.strip(),
            "clinicName": clinic_name,
            "status": status,
            "method": method,
            "limit": limit,
        }
        response = await self._read(
            with_query("/payments/search", params),
            "search_payments",
            self.key("payments_search", params),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def bulk_operation(
        self, operation: str, payment_ids: Sequence[str], data: Any = None
    ) -> Any:
        """Apply one operation (e.g. ``mark_paid``) to several payments."""
        body = {"operation": operation, "paymentIds": list(payment_ids), "data": data}
        response = await self._write("POST", "/payments/bulk", body)
        return response.data

    def clear_payment_cache(self) -> None:
        self.clear_cache()
