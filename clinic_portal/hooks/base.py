"""
Query state holders for service calls.

A hook owns the state of one logical query (``data``, ``loading``, ``error``)
and moves through ``idle -> loading -> success | error``. Every fetch gets
its own ``CancelToken``; starting a newer fetch or disposing the hook
cancels the previous token and late results are discarded.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

import structlog

from ..core.config import get_settings
from ..core.exceptions import ClinicPortalError, RequestCancelledError
from ..core.models import Notification, Page, Pagination
from ..data.cancellation import CancelToken

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Fetcher = Callable[..., Awaitable[Any]]


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class QueryHook(Generic[T]):
    """
    Wrap one service coroutine in loading/error/data state.

    The fetcher is called as ``fetcher(**params, cancel_token=token)``.
    Call ``mount()`` from inside a running event loop; with ``auto_fetch``
    the hook enters ``loading`` immediately and the fetch is scheduled.

    Example:
        hook = QueryHook(service.get_client_stats, {"clinic_name": "bodybliss"})
        await hook.mount().wait()
        if hook.error:
            ...
    """

    def __init__(
        self,
        fetcher: Fetcher,
        params: Optional[Dict[str, Any]] = None,
        auto_fetch: bool = True,
        initial: Optional[T] = None,
    ):
        self.fetcher = fetcher
        self.params: Dict[str, Any] = dict(params or {})
        self.auto_fetch = auto_fetch

        self.data: Optional[T] = initial
        self.error: Optional[str] = None
        self.status = QueryStatus.IDLE

        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancelToken] = None
        self._disposed = False

    @property
    def loading(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def name(self) -> str:
        return getattr(self.fetcher, "__name__", type(self).__name__)

    def mount(self) -> "QueryHook[T]":
        if self.auto_fetch:
            self.refetch()
        return self

    def refetch(self) -> Optional[asyncio.Task]:
        """Start a new fetch, superseding any fetch still in flight."""
        return self._start()

    def set_params(self, **params: Any) -> Optional[asyncio.Task]:
        """Merge new parameters and refetch when any of them changed."""
        changed = {k: v for k, v in params.items() if self.params.get(k, object()) != v}
        if not changed:
            return None
        self.params.update(changed)
        return self._start()

    def clear_error(self) -> None:
        self.error = None

    async def wait(self) -> None:
        """Wait for the current fetch (if any) to settle."""
        if self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def dispose(self) -> None:
        """Cancel in-flight work; later results are never applied."""
        if self._disposed:
            return
        self._disposed = True
        self._cancel_pending("Hook disposed")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Hook disposed", hook=self.name)

    # Internals

    def _start(self, delay: float = 0.0) -> Optional[asyncio.Task]:
        if self._disposed:
            logger.debug("Fetch ignored on disposed hook", hook=self.name)
            return None

        self._cancel_pending("Superseded by a newer request")
        token = CancelToken()
        self._token = token
        if not delay:
            self._begin()
        self._task = asyncio.get_running_loop().create_task(
            self._run(token, dict(self.params), delay)
        )
        return self._task

    def _begin(self) -> None:
        self.status = QueryStatus.LOADING
        self.error = None

    def _cancel_pending(self, reason: str) -> None:
        if self._token is not None:
            self._token.cancel(reason)

    def _is_current(self, token: CancelToken) -> bool:
        return token is self._token and not token.cancelled and not self._disposed

    async def _call(self, token: CancelToken, params: Dict[str, Any]) -> Any:
        return await self.fetcher(**params, cancel_token=token)

    async def _run(self, token: CancelToken, params: Dict[str, Any], delay: float = 0.0) -> None:
        if delay:
            await asyncio.sleep(delay)
            if not self._is_current(token):
                return
            self._begin()

        try:
            result = await self._call(token, params)
        except RequestCancelledError:
            logger.debug("Fetch cancelled", hook=self.name, reason=token.reason)
            return
        except Exception as e:
            if not self._is_current(token):
                return
            self.error = str(e)
            self.status = QueryStatus.ERROR
            logger.warning(
                "Fetch failed",
                hook=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if not self._is_current(token):
            logger.debug("Discarded superseded result", hook=self.name)
            return
        self._apply(result)
        self.status = QueryStatus.SUCCESS

    def _apply(self, result: Any) -> None:
        self.data = result


class PagedQueryHook(QueryHook[List[Any]]):
    """Hook over a paged fetcher; splits items from pagination."""

    def __init__(self, fetcher: Fetcher, params: Optional[Dict[str, Any]] = None, auto_fetch: bool = True):
        super().__init__(fetcher, params, auto_fetch, initial=[])
        self.pagination: Pagination = Pagination.empty(
            page=self.params.get("page", 1), limit=self.params.get("limit", 20)
        )

    def go_to_page(self, page: int) -> Optional[asyncio.Task]:
        return self.set_params(page=page)

    def _apply(self, result: Page) -> None:
        self.data = list(result.items)
        self.pagination = result.pagination


class DebouncedSearchHook(QueryHook[List[Any]]):
    """
    Search-as-you-type hook.

    The search runs ``delay`` seconds after the last ``set_term`` call and
    is called as ``fetcher(term, **params, cancel_token=token)``. New input
    cancels the pending timer. A blank term clears the results without a
    request.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        params: Optional[Dict[str, Any]] = None,
        delay: Optional[float] = None,
    ):
        super().__init__(fetcher, params, auto_fetch=False, initial=[])
        self.delay = get_settings().hooks.debounce_seconds if delay is None else delay
        self.term = ""

    def set_term(self, term: str) -> Optional[asyncio.Task]:
        self.term = term or ""
        if not self.term.strip():
            self._cancel_pending("Search cleared")
            self._token = None
            self.data = []
            self.error = None
            self.status = QueryStatus.IDLE
            return None
        return self._start(self.delay)

    def refetch(self) -> Optional[asyncio.Task]:
        if not self.term.strip():
            return None
        return self._start()

    def _cancel_pending(self, reason: str) -> None:
        super()._cancel_pending(reason)
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _call(self, token: CancelToken, params: Dict[str, Any]) -> Any:
        return await self.fetcher(self.term.strip(), **params, cancel_token=token)

    def _apply(self, result: Any) -> None:
        self.data = list(result or [])


class NotificationsHook(QueryHook[List[Notification]]):
    """
    Notification centre state for one clinic.

    Loads the notification list, the latest two and the unread count in one
    fetch. With ``poll_interval`` set the fetch repeats on that interval
    until the hook is disposed.
    """

    LATEST_LIMIT = 2

    def __init__(
        self,
        service,
        clinic_name: str,
        poll_interval: Optional[float] = None,
        auto_fetch: bool = True,
    ):
        super().__init__(self._load, {}, auto_fetch, initial=[])
        self.service = service
        self.clinic_name = clinic_name
        self.poll_interval = poll_interval
        self.latest: List[Notification] = []
        self.unread_count = 0
        self._poller: Optional[asyncio.Task] = None

    @property
    def notifications(self) -> List[Notification]:
        return self.data or []

    def mount(self) -> "NotificationsHook":
        super().mount()
        if self.poll_interval and self._poller is None:
            self._poller = asyncio.get_running_loop().create_task(self._poll())
        return self

    def dispose(self) -> None:
        super().dispose()
        if self._poller is not None and not self._poller.done():
            self._poller.cancel()

    async def _poll(self) -> None:
        while not self._disposed:
            await asyncio.sleep(self.poll_interval)
            if self._disposed:
                return
            self.refetch()
            await self.wait()

    async def _load(self, cancel_token: Optional[CancelToken] = None):
        return await asyncio.gather(
            self.service.get_notifications(self.clinic_name, cancel_token=cancel_token),
            self.service.get_latest_notifications(
                self.clinic_name, limit=self.LATEST_LIMIT, cancel_token=cancel_token
            ),
            self.service.get_unread_count(self.clinic_name, cancel_token=cancel_token),
        )

    def _apply(self, result) -> None:
        page, latest, unread = result
        self.data = list(page.items)
        self.latest = list(latest)
        self.unread_count = unread

    # Mutations

    async def mark_as_read(self, notification_id: str) -> bool:
        try:
            await self.service.mark_as_read(notification_id)
        except ClinicPortalError as e:
            self.error = str(e)
            return False

        was_unread = any(n.key == notification_id and not n.read for n in self.notifications)
        self.data = [self._read(n) if n.key == notification_id else n for n in self.notifications]
        self.latest = [self._read(n) if n.key == notification_id else n for n in self.latest]
        if was_unread:
            self.unread_count = max(0, self.unread_count - 1)
        return True

    async def mark_all_as_read(self) -> bool:
        try:
            await self.service.mark_all_as_read(self.clinic_name)
        except ClinicPortalError as e:
            self.error = str(e)
            return False

        self.data = [self._read(n) for n in self.notifications]
        self.latest = [self._read(n) for n in self.latest]
        self.unread_count = 0
        return True

    async def delete_notification(self, notification_id: str) -> bool:
        try:
            await self.service.delete_notification(notification_id)
        except ClinicPortalError as e:
            self.error = str(e)
            return False

        removed = [n for n in self.notifications if n.key == notification_id]
        self.data = [n for n in self.notifications if n.key != notification_id]
        self.latest = [n for n in self.latest if n.key != notification_id]
        if any(not n.read for n in removed):
            self.unread_count = max(0, self.unread_count - 1)
        return True

    @staticmethod
    def _read(notification: Notification) -> Notification:
        return notification.model_copy(update={"read": True})
