"""
Resource service: practitioners, services, rooms and equipment.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from ..core.models import Page, Resource
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import BYPASS, SEARCH, BaseApiService, ServiceConfig, segment, service_method

RESOURCE_SERVICE = ServiceConfig(
    name="ResourceService",
    endpoint="/resources",
    collection="resources",
    item="resource",
    list_key="resources",
    related=("practitioners_", "services_", "bookable_resources_"),
    policies={
        "search_resources": SEARCH,
        "check_resource_conflicts": BYPASS,
    },
)


class ResourceService(BaseApiService[Resource]):
    config = RESOURCE_SERVICE
    model = Resource

    @service_method
    async def get_all_resources(
        self,
        page: int = 1,
        limit: int = 20,
        type: Optional[str] = None,
        clinic_name: Optional[str] = None,
        specialty: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_bookable: Optional[bool] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[Resource]:
        params = {
            "page": page,
            "limit": limit,
            "type": type,
            "clinicName": clinic_name,
            "specialty": specialty,
            "isActive": is_active,
            "isBookable": is_bookable,
        }
        response = await self._read(
            with_query("/resources", params),
            "get_all_resources",
            self.key("resources_all", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_resource_by_id(
        self, resource_id: Any, cancel_token: Optional[CancelToken] = None
    ) -> Resource:
        response = await self._read(
            f"/resources/{segment(resource_id)}",
            "get_resource_by_id",
            self.key("resource", resource_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create_resource(self, payload: Any) -> Resource:
        response = await self._write("POST", "/resources", payload)
        return self._record(response.data)

    @service_method
    async def update_resource(self, resource_id: Any, payload: Any) -> Resource:
        response = await self._write(
            "PUT", f"/resources/{segment(resource_id)}", payload, item_id=resource_id
        )
        return self._record(response.data)

    @service_method
    async def delete_resource(self, resource_id: Any) -> None:
        await self._write("DELETE", f"/resources/{segment(resource_id)}", item_id=resource_id)

    @service_method
    async def get_practitioners(
        self,
        clinic_name: Optional[str] = None,
        specialty: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Resource]:
        params = {"clinicName": clinic_name, "specialty": specialty}
        response = await self._read(
            with_query("/resources/practitioners/list", params),
            "get_practitioners",
            self.key("practitioners", params),
            cancel_token,
        )
        return self._records(response.data, "practitioners")

    @service_method
    async def get_services(
        self, category: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> List[Resource]:
        response = await self._read(
            with_query("/resources/services/list", {"category": category}),
            "get_services",
            self.key("services", category or "all"),
            cancel_token,
        )
        return self._records(response.data, "services")

    @service_method
    async def get_bookable_resources(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> List[Resource]:
        response = await self._read(
            f"/resources/clinic/{segment(clinic_name)}/bookable",
            "get_bookable_resources",
            self.key("bookable_resources", clinic_name),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def update_resource_availability(
        self, resource_id: Any, availability: Dict[str, Any]
    ) -> Resource:
        response = await self._write(
            "PUT",
            f"/resources/{segment(resource_id)}/availability",
            {"availability": availability},
            item_id=resource_id,
            invalidates=("resource_availability_",),
        )
        return self._record(response.data)

    @service_method
    async def get_resource_availability(
        self,
        resource_id: Any,
        start_date: date,
        end_date: date,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date}
        response = await self._read(
            with_query(f"/resources/{segment(resource_id)}/availability", params),
            "get_resource_availability",
            self.key(f"resource_availability_{resource_id}", params),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_resource_stats(
        self,
        resource_id: Any,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date}
        response = await self._read(
            with_query(f"/resources/{segment(resource_id)}/stats", params),
            "get_resource_stats",
            self.key(f"resource_stats_{resource_id}", params),
            cancel_token,
        )
        return response.data

    @service_method
    async def search_resources(
        self,
        term: str,
        type: Optional[str] = None,
        clinic_name: Optional[str] = None,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Resource]:
        if not term or not term.strip():
            return []
        params = {"q": term.strip(), "type": type, "clinicName": clinic_name, "limit": limit}
        response = await self._read(
            with_query("/resources/search", params),
            "search_resources",
            self.key("resources_search", params),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def check_resource_conflicts(
        self,
        resource_id: Any,
        start_date: date,
        end_date: date,
        exclude_appointment_id: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        """Scheduling conflicts for a time window; never cached."""
        params = {"startDate": start_date, "endDate": end_date, "exclude": exclude_appointment_id}
        response = await self._read(
            with_query(f"/resources/{segment(resource_id)}/conflicts", params),
            "check_resource_conflicts",
            None,
            cancel_token,
        )
        data = response.data or {}
        return {
            "has_conflict": bool(data.get("hasConflict", False)),
            "conflicts": data.get("conflicts", []),
        }

    def clear_resource_cache(self) -> None:
        self.clear_cache()
