"""
Calendar event service.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from ..core.models import Event, Page
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import SEARCH, BaseApiService, ServiceConfig, segment, service_method

EVENT_SERVICE = ServiceConfig(
    name="EventService",
    endpoint="/events",
    collection="events",
    item="event",
    list_key="events",
    policies={"search_events": SEARCH},
)


def _parse_moment(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _naive(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def is_event_upcoming(
    event_date: Any, event_time: Any = None, now: Callable[[], datetime] = datetime.now
) -> bool:
    """True when the event starts after ``now``; the time of day comes from ``event_time``."""
    moment = _parse_moment(event_date)
    if moment is None:
        return False
    moment = _naive(moment)
    time_of_day = _parse_moment(event_time)
    if time_of_day is not None:
        time_of_day = _naive(time_of_day)
        moment = moment.replace(hour=time_of_day.hour, minute=time_of_day.minute)
    return moment > now()


def is_event_today(event_date: Any, today: Callable[[], date] = date.today) -> bool:
    moment = _parse_moment(event_date)
    return moment is not None and _naive(moment).date() == today()


class EventService(BaseApiService[Event]):
    config = EVENT_SERVICE
    model = Event

    @staticmethod
    def _filters(filters: Dict[str, Any]) -> Dict[str, Any]:
        return {name: value for name, value in filters.items() if value not in (None, "")}

    @service_method
    async def get_events(
        self,
        page: int = 1,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
        **filters,
    ) -> Page[Event]:
        params = {"page": page, "limit": limit, **self._filters(filters)}
        response = await self._read(
            with_query("/events", params),
            "get_events",
            self.key("events", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_events_by_clinic(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None, **filters
    ) -> Page[Event]:
        params = self._filters(filters)
        response = await self._read(
            with_query(f"/events/clinic/{segment(clinic_name)}", params),
            "get_events_by_clinic",
            self.key(f"events_clinic_{clinic_name}", params),
            cancel_token,
        )
        return self._page(response)

    @service_method
    async def get_events_by_client(
        self, client_id: str, cancel_token: Optional[CancelToken] = None, **filters
    ) -> Page[Event]:
        params = self._filters(filters)
        response = await self._read(
            with_query(f"/events/client/{segment(client_id)}", params),
            "get_events_by_client",
            self.key(f"events_client_{client_id}", params),
            cancel_token,
        )
        return self._page(response)

    @service_method
    async def get_upcoming_events(
        self, limit: int = 10, cancel_token: Optional[CancelToken] = None
    ) -> List[Event]:
        response = await self._read(
            with_query("/events/upcoming", {"limit": limit}),
            "get_upcoming_events",
            self.key("events_upcoming", limit),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_events_by_date_range(
        self, start_date: Any, end_date: Any, cancel_token: Optional[CancelToken] = None
    ) -> List[Event]:
        params = {"startDate": start_date, "endDate": end_date}
        response = await self._read(
            with_query("/events/date-range", params),
            "get_events_by_date_range",
            self.key("events_range", params),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def search_events(
        self, term: str, cancel_token: Optional[CancelToken] = None, **filters
    ) -> List[Event]:
        if not term or not term.strip():
            return []
        params = {"q": term.strip(), **self._filters(filters)}
        response = await self._read(
            with_query("/events/search", params),
            "search_events",
            self.key("events_search", params),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_event_stats(
        self, clinic_name: Optional[str] = None, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            with_query("/events/stats/overview", {"clinicName": clinic_name}),
            "get_event_stats",
            self.key("events_stats", clinic_name or "all"),
            cancel_token,
        )
        return response.data

    @service_method
    async def get_event_by_id(
        self, event_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Event:
        response = await self._read(
            f"/events/{segment(event_id)}",
            "get_event_by_id",
            self.key("event", event_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create_event(self, payload: Any) -> Event:
        response = await self._write("POST", "/events", payload)
        return self._record(response.data)

    @service_method
    async def update_event(self, event_id: str, payload: Any) -> Event:
        response = await self._write(
            "PUT", f"/events/{segment(event_id)}", payload, item_id=event_id
        )
        return self._record(response.data)

    @service_method
    async def approve_event(self, event_id: str) -> Event:
        response = await self._write(
            "PUT", f"/events/{segment(event_id)}/approve", {}, item_id=event_id
        )
        return self._record(response.data)

    @service_method
    async def toggle_event_visibility(self, event_id: str) -> Event:
        response = await self._write(
            "PUT", f"/events/{segment(event_id)}/toggle-visibility", {}, item_id=event_id
        )
        return self._record(response.data)

    @service_method
    async def delete_event(self, event_id: str) -> None:
        await self._write("DELETE", f"/events/{segment(event_id)}", item_id=event_id)

    @service_method
    async def get_pending_approval_events(
        self, cancel_token: Optional[CancelToken] = None
    ) -> List[Event]:
        response = await self._read(
            "/events/pending-approval",
            "get_pending_approval_events",
            self.key("events_pending"),
            cancel_token,
        )
        return self._records(response.data)

    is_event_upcoming = staticmethod(is_event_upcoming)
    is_event_today = staticmethod(is_event_today)

    def clear_events_cache(self) -> None:
        self.clear_cache()
