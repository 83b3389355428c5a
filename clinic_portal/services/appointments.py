"""
Appointment service.

Listings filtered by client are served under the ``appointments_by_client``
policy, which bypasses the cache so a client's schedule is always current.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..core.models import Appointment, Page
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import BYPASS, BaseApiService, ServiceConfig, segment, service_method

APPOINTMENT_SERVICE = ServiceConfig(
    name="AppointmentService",
    endpoint="/appointments",
    collection="appointments",
    item="appointment",
    default_ttl=180.0,
    list_key="appointments",
    related=("resource_schedule_", "billing_ready", "client_history_", "appointment_stats_"),
    policies={"appointments_by_client": BYPASS},
)

_BUSINESS_ID = re.compile(r"^\d+$")


class AppointmentService(BaseApiService[Appointment]):
    config = APPOINTMENT_SERVICE
    model = Appointment

    @service_method
    async def get_appointments_by_clinic(
        self,
        clinic_name: str,
        page: int = 1,
        limit: int = 20,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        status: Optional[int] = None,
        resource_id: Optional[int] = None,
        client_id: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[Appointment]:
        params = {
            "startDate": start_date,
            "endDate": end_date,
            "status": status,
            "resourceId": resource_id,
            "clientId": client_id,
            "page": page,
            "limit": limit,
        }
        operation = "appointments_by_client" if client_id else "appointments_by_clinic"
        response = await self._read(
            with_query(f"/appointments/clinic/{segment(clinic_name)}", params),
            operation,
            self.key(f"appointments_{clinic_name}", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_appointment_by_id(
        self, appointment_id: Any, cancel_token: Optional[CancelToken] = None
    ) -> Appointment:
        """Numeric ids are business ids and use the ``/business`` route."""
        appointment_id = str(appointment_id)
        if _BUSINESS_ID.match(appointment_id):
            endpoint = f"/appointments/business/{segment(appointment_id)}"
        else:
            endpoint = f"/appointments/{segment(appointment_id)}"
        response = await self._read(
            endpoint,
            "get_appointment_by_id",
            self.key("appointment", appointment_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create_appointment(self, payload: Any) -> Appointment:
        response = await self._write("POST", "/appointments", payload)
        return self._record(response.data)

    @service_method
    async def update_appointment(self, appointment_id: Any, payload: Any) -> Appointment:
        response = await self._write(
            "PUT", f"/appointments/{segment(appointment_id)}", payload, item_id=appointment_id
        )
        return self._record(response.data)

    @service_method
    async def cancel_appointment(self, appointment_id: Any, reason: Optional[str] = None) -> None:
        # DELETE carries no body, so the reason travels in the query string
        await self._write(
            "DELETE",
            with_query(f"/appointments/{segment(appointment_id)}/cancel", {"reason": reason}),
            item_id=appointment_id,
        )

    @service_method
    async def complete_appointment(
        self, appointment_id: Any, notes: Optional[str] = None
    ) -> Appointment:
        response = await self._write(
            "PUT",
            f"/appointments/{segment(appointment_id)}/complete",
            {"notes": notes},
            item_id=appointment_id,
        )
        return self._record(response.data)

    @service_method
    async def get_appointments_ready_to_bill(
        self, clinic_name: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            with_query("/appointments/billing/ready", {"clinicName": clinic_name}),
            "get_appointments_ready_to_bill",
            self.key("billing_ready", clinic_name or "all"),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_resource_schedule(
        self, resource_id: int, day: date, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        if isinstance(day, datetime):
            day = day.date()
        day_str = day.isoformat()
        response = await self._read(
            with_query(f"/appointments/resource/{segment(resource_id)}/schedule", {"date": day_str}),
            "get_resource_schedule",
            self.key(f"resource_schedule_{resource_id}", day_str),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_client_appointment_history(
        self, client_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            f"/appointments/client/{segment(client_id)}/history",
            "get_client_appointment_history",
            self.key("client_history", client_id),
            cancel_token,
        )
        data = dict(response.data)
        data["appointments"] = self._records(data.get("appointments", []))
        return data

    @service_method
    async def get_clinic_appointment_stats(
        self,
        clinic_name: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date}
        response = await self._read(
            with_query(f"/appointments/stats/clinic/{segment(clinic_name)}", params),
            "get_clinic_appointment_stats",
            self.key(f"appointment_stats_{clinic_name}", params),
            cancel_token,
        )
        stats = (response.data or {}).get("statistics")
        if not stats:
            raise ValueError("Failed to fetch appointment statistics")

        return {
            "total_appointments": stats.get("totalAppointments", 0),
            "completed_appointments": stats.get("completedAppointments", 0),
            "cancelled_appointments": stats.get("cancelledAppointments", 0),
            "pending_appointments": stats.get("pendingAppointments", 0),
            "completion_rate": stats.get("completionRate", 0),
            "cancellation_rate": stats.get("cancellationRate", 0),
            "average_duration": stats.get("averageDuration", 0),
            "upcoming_count": stats.get("pendingAppointments", 0),
        }

    def clear_appointment_cache(self) -> None:
        self.clear_cache()
