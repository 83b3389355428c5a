"""
Portal user administration service.
"""

from typing import Any, Dict, Optional

from ..core.models import Page, User
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import BaseApiService, ServiceConfig, segment, service_method

USER_SERVICE = ServiceConfig(
    name="UserService",
    endpoint="/users",
    collection="users",
    item="user",
    list_key="users",
)


class UserService(BaseApiService[User]):
    config = USER_SERVICE
    model = User

    @service_method
    async def get_all_users(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        clinic_name: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[User]:
        params = {
            "page": page,
            "limit": limit,
            "search": search,
            "role": role,
            "status": status,
            "clinicName": clinic_name,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }
        response = await self._read(
            with_query("/users", params),
            "get_all_users",
            self.key("users", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_user_by_id(
        self, user_id: str, cancel_token: Optional[CancelToken] = None
    ) -> User:
        response = await self._read(
            f"/users/{segment(user_id)}",
            "get_user_by_id",
            self.key("user", user_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def update_user_profile(self, user_id: str, payload: Any) -> User:
        response = await self._write(
            "PUT", f"/users/{segment(user_id)}", payload, item_id=user_id
        )
        return self._record(response.data)

    @service_method
    async def create_user(self, payload: Any) -> User:
        response = await self._write("POST", "/users", payload)
        return self._record(response.data)

    @service_method
    async def delete_user(self, user_id: str) -> None:
        await self._write("DELETE", f"/users/{segment(user_id)}", item_id=user_id)

    @service_method
    async def update_user_status(self, user_id: str, status: str) -> None:
        await self._write(
            "PUT", f"/users/{segment(user_id)}/status", {"status": status}, item_id=user_id
        )

    @service_method
    async def unlock_user(self, user_id: str) -> None:
        await self._write("PUT", f"/users/{segment(user_id)}/unlock", {}, item_id=user_id)

    @service_method
    async def get_user_stats(self, cancel_token: Optional[CancelToken] = None) -> Dict[str, Any]:
        response = await self._read(
            "/users/stats", "get_user_stats", self.key("users_stats"), cancel_token
        )
        return response.data
