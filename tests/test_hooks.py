"""Validate query hooks: state transitions, superseded fetches, debounce and disposal."""

import asyncio

import pytest
from conftest import envelope, run

from clinic_portal.core.exceptions import ServiceError
from clinic_portal.core.models import Client, Page, Pagination
from clinic_portal.hooks.base import (
    DebouncedSearchHook,
    NotificationsHook,
    PagedQueryHook,
    QueryHook,
    QueryStatus,
)
from clinic_portal.hooks.domain import use_client_search, use_clients
from clinic_portal.services.clients import ClientService
from clinic_portal.services.notifications import NotificationService


class RecordingFetcher:
    """Async fetcher double that records every call."""

    def __init__(self, result=None, delay: float = 0.0, error: Exception = None):
        self.result = result
        self.delay = delay
        self.error = error
        self.calls = []

    async def __call__(self, *args, cancel_token=None, **kwargs):
        self.calls.append({"args": args, "kwargs": kwargs, "token": cancel_token})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class TestQueryHook:
    """Test the idle/loading/success/error state machine."""

    def test_mount_enters_loading_then_success(self):
        fetcher = RecordingFetcher(result={"total": 4})
        hook = QueryHook(fetcher, {"clinic_name": "bodybliss"})

        async def scenario():
            assert hook.status == QueryStatus.IDLE
            hook.mount()
            assert hook.loading
            await hook.wait()

        run(scenario())
        assert hook.status == QueryStatus.SUCCESS
        assert hook.data == {"total": 4}
        assert hook.error is None
        assert fetcher.calls[0]["kwargs"] == {"clinic_name": "bodybliss"}
        assert fetcher.calls[0]["token"] is not None

    def test_without_auto_fetch_stays_idle(self):
        fetcher = RecordingFetcher(result=1)
        hook = QueryHook(fetcher, auto_fetch=False)

        async def scenario():
            hook.mount()
            await hook.wait()
            assert hook.status == QueryStatus.IDLE
            hook.refetch()
            await hook.wait()

        run(scenario())
        assert hook.data == 1
        assert len(fetcher.calls) == 1

    def test_failure_stores_message_only(self):
        error = ServiceError("ClientService", "get_client_stats", ValueError("boom"))
        hook = QueryHook(RecordingFetcher(error=error), initial={"total": 0})

        async def scenario():
            await hook.mount().wait()

        run(scenario())
        assert hook.status == QueryStatus.ERROR
        assert hook.error == "[ClientService.get_client_stats] boom"

        hook.clear_error()
        assert hook.error is None
        assert hook.data == {"total": 0}

    def test_set_params_refetches_only_on_change(self):
        fetcher = RecordingFetcher(result="ok")
        hook = QueryHook(fetcher, {"page": 1})

        async def scenario():
            await hook.mount().wait()
            assert hook.set_params(page=1) is None
            await hook.set_params(page=2)

        run(scenario())
        assert [call["kwargs"]["page"] for call in fetcher.calls] == [1, 2]

    def test_superseded_result_is_discarded(self):
        async def fetch(version, cancel_token=None):
            await asyncio.sleep(0.05 if version == 1 else 0)
            return f"v{version}"

        hook = QueryHook(fetch, {"version": 1})

        async def scenario():
            hook.mount()
            hook.set_params(version=2)
            await hook.wait()
            await asyncio.sleep(0.08)

        run(scenario())
        assert hook.data == "v2"
        assert hook.status == QueryStatus.SUCCESS

    def test_newer_fetch_cancels_older_token(self):
        fetcher = RecordingFetcher(result="ok", delay=0.02)
        hook = QueryHook(fetcher)

        async def scenario():
            hook.mount()
            await asyncio.sleep(0)
            hook.refetch()
            await hook.wait()

        run(scenario())
        first, second = fetcher.calls
        assert first["token"].cancelled
        assert not second["token"].cancelled

    def test_dispose_suppresses_late_result(self):
        fetcher = RecordingFetcher(result="late", delay=0.05)
        hook = QueryHook(fetcher)

        async def scenario():
            hook.mount()
            await asyncio.sleep(0)
            hook.dispose()
            await hook.wait()
            await asyncio.sleep(0.06)
            assert hook.refetch() is None

        run(scenario())
        assert hook.data is None
        assert hook.disposed
        assert fetcher.calls[0]["token"].cancelled
        assert len(fetcher.calls) == 1


class TestPagedQueryHook:
    """Test item and pagination split."""

    def test_splits_page(self):
        page = Page[Client](
            items=[Client(client_id="C-1")],
            pagination=Pagination(page=2, limit=1, total=3, pages=3),
        )
        hook = PagedQueryHook(RecordingFetcher(result=page), {"page": 2, "limit": 1})

        async def scenario():
            await hook.mount().wait()

        run(scenario())
        assert [client.client_id for client in hook.data] == ["C-1"]
        assert hook.pagination.pages == 3
        assert hook.pagination.has_next and hook.pagination.has_prev

    def test_initial_state(self):
        hook = PagedQueryHook(RecordingFetcher(), {"page": 3, "limit": 50}, auto_fetch=False)
        assert hook.data == []
        assert hook.pagination.page == 3
        assert hook.pagination.limit == 50


class TestDebouncedSearchHook:
    """Test search-as-you-type behaviour."""

    def test_only_last_term_is_searched(self):
        fetcher = RecordingFetcher(result=[{"id": 1}])
        hook = DebouncedSearchHook(fetcher, {"limit": 5}, delay=0.05)

        async def scenario():
            hook.set_term("a")
            await asyncio.sleep(0.01)
            hook.set_term("an")
            await asyncio.sleep(0.01)
            hook.set_term("ana ")
            assert not hook.loading
            await hook.wait()

        run(scenario())
        assert len(fetcher.calls) == 1
        assert fetcher.calls[0]["args"] == ("ana",)
        assert fetcher.calls[0]["kwargs"] == {"limit": 5}
        assert hook.data == [{"id": 1}]
        assert hook.status == QueryStatus.SUCCESS

    def test_blank_term_clears_without_request(self):
        fetcher = RecordingFetcher(result=[{"id": 1}])
        hook = DebouncedSearchHook(fetcher, delay=0.01)

        async def scenario():
            await hook.set_term("ana")
            assert hook.data == [{"id": 1}]
            assert hook.set_term("  ") is None

        run(scenario())
        assert hook.data == []
        assert hook.status == QueryStatus.IDLE
        assert len(fetcher.calls) == 1

    def test_clearing_cancels_pending_search(self):
        fetcher = RecordingFetcher(result=[{"id": 1}])
        hook = DebouncedSearchHook(fetcher, delay=0.05)

        async def scenario():
            hook.set_term("ana")
            hook.set_term("")
            await asyncio.sleep(0.08)

        run(scenario())
        assert fetcher.calls == []
        assert hook.data == []


class TestDomainHooks:
    """Test hook factories against services and a fake backend."""

    def test_use_clients(self, backend, executor, make_service):
        backend.on(
            "GET",
            "/clients/clinic/bodybliss/frontend-compatible",
            envelope(
                {"clients": [{"_id": "c1"}, {"_id": "c2"}]},
                pagination={"page": 1, "limit": 20, "total": 2, "pages": 1},
            ),
        )
        service = make_service(ClientService)

        async def scenario():
            async with executor:
                hook = use_clients(service, "bodybliss")
                assert hook.loading
                await hook.wait()
                return hook

        hook = run(scenario())
        assert [client.key for client in hook.data] == ["c1", "c2"]
        assert hook.pagination.total == 2

    def test_use_client_search(self, backend, executor, make_service):
        backend.on("GET", "/clients/search", envelope([{"_id": "c1"}]))
        service = make_service(ClientService)

        async def scenario():
            async with executor:
                hook = use_client_search(service, clinic_name="bodybliss", delay=0.01)
                await hook.set_term("ana")
                return hook

        hook = run(scenario())
        assert [client.key for client in hook.data] == ["c1"]
        assert backend.requests[0].url.params["q"] == "ana"
        assert backend.requests[0].url.params["clinic"] == "bodybliss"


class TestNotificationsHook:
    """Test notification aggregation and local updates."""

    @pytest.fixture(autouse=True)
    def setup(self, backend, executor, make_service):
        backend.on(
            "GET",
            "/notifications",
            envelope(
                {
                    "notifications": [
                        {"_id": "n1", "title": "New booking", "read": False},
                        {"_id": "n2", "title": "Payment", "read": True},
                    ]
                }
            ),
        )
        backend.on("GET", "/notifications/latest", envelope([{"_id": "n1", "read": False}]))
        backend.on("GET", "/notifications/unread/count", envelope({"count": 1}))
        backend.on("PUT", "/notifications/n1/read", envelope({"_id": "n1", "read": True}))
        backend.on("DELETE", "/notifications/n2", envelope(None))
        self.backend = backend
        self.executor = executor
        self.service = make_service(NotificationService)

    def test_loads_list_latest_and_unread_count(self):
        async def scenario():
            async with self.executor:
                hook = NotificationsHook(self.service, "bodybliss").mount()
                await hook.wait()
                return hook

        hook = run(scenario())
        assert [n.key for n in hook.notifications] == ["n1", "n2"]
        assert [n.key for n in hook.latest] == ["n1"]
        assert hook.unread_count == 1
        latest = [r for r in self.backend.requests if r.url.path.endswith("/latest")]
        assert latest[0].url.params["limit"] == "2"

    def test_mark_as_read_and_delete_update_local_state(self):
        async def scenario():
            async with self.executor:
                hook = NotificationsHook(self.service, "bodybliss").mount()
                await hook.wait()
                assert await hook.mark_as_read("n1")
                assert await hook.delete_notification("n2")
                return hook

        hook = run(scenario())
        assert hook.unread_count == 0
        assert [n.key for n in hook.notifications] == ["n1"]
        assert all(n.read for n in hook.notifications + hook.latest)

    def test_failed_mutation_sets_error(self):
        async def scenario():
            async with self.executor:
                hook = NotificationsHook(self.service, "bodybliss", auto_fetch=False)
                ok = await hook.mark_as_read("missing")
                return hook, ok

        hook, ok = run(scenario())
        assert ok is False
        assert hook.error.startswith("[NotificationService.mark_as_read]")

    def test_polling_refreshes_until_disposed(self):
        async def scenario():
            async with self.executor:
                hook = NotificationsHook(self.service, "bodybliss", poll_interval=0.02).mount()
                await asyncio.sleep(0.09)
                hook.dispose()
                count = self.backend.calls("GET", "/notifications/unread/count")
                await asyncio.sleep(0.05)
                return count

        count = run(scenario())
        assert count >= 2
        assert self.backend.calls("GET", "/notifications/unread/count") == count
