"""
Notification service. Every read bypasses the cache.
"""

from typing import Any, List, Optional

from ..core.models import Notification, Page
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import BYPASS, BaseApiService, ServiceConfig, segment, service_method

NOTIFICATION_SERVICE = ServiceConfig(
    name="NotificationService",
    endpoint="/notifications",
    collection="notifications",
    item="notification",
    list_key="notifications",
    policies={
        "get_notifications": BYPASS,
        "get_latest_notifications": BYPASS,
        "get_unread_count": BYPASS,
        "get_notification_by_id": BYPASS,
    },
)


class NotificationService(BaseApiService[Notification]):
    config = NOTIFICATION_SERVICE
    model = Notification

    @service_method
    async def get_notifications(
        self,
        clinic_name: str,
        page: int = 1,
        limit: int = 20,
        read: Optional[bool] = None,
        category: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[Notification]:
        params = {
            "clinicName": clinic_name,
            "page": page,
            "limit": limit,
            "read": read,
            "category": category,
        }
        response = await self._read(
            with_query("/notifications", params),
            "get_notifications",
            self.key("notifications", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_latest_notifications(
        self, clinic_name: str, limit: int = 2, cancel_token: Optional[CancelToken] = None
    ) -> List[Notification]:
        response = await self._read(
            with_query("/notifications/latest", {"clinicName": clinic_name, "limit": limit}),
            "get_latest_notifications",
            None,
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_unread_count(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> int:
        response = await self._read(
            with_query("/notifications/unread/count", {"clinicName": clinic_name}),
            "get_unread_count",
            None,
            cancel_token,
        )
        data: Any = response.data
        if isinstance(data, dict):
            return int(data.get("count", 0))
        return int(data or 0)

    @service_method
    async def get_notification_by_id(
        self, notification_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Notification:
        response = await self._read(
            f"/notifications/{segment(notification_id)}",
            "get_notification_by_id",
            None,
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def mark_as_read(self, notification_id: str) -> Notification:
        response = await self._write(
            "PUT", f"/notifications/{segment(notification_id)}/read", {}, item_id=notification_id
        )
        return self._record(response.data)

    @service_method
    async def mark_all_as_read(self, clinic_name: str) -> int:
        """Returns how many notifications the backend marked."""
        response = await self._write("PUT", "/notifications/read-all", {"clinicName": clinic_name})
        data: Any = response.data
        return int(data.get("count", 0)) if isinstance(data, dict) else 0

    @service_method
    async def delete_notification(self, notification_id: str) -> None:
        await self._write(
            "DELETE", f"/notifications/{segment(notification_id)}", item_id=notification_id
        )
