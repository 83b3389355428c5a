"""Validate domain services: read-through caching, invalidation and error wrapping."""

import pytest
from conftest import envelope, run

from clinic_portal.core.config import Settings
from clinic_portal.core.exceptions import ApiError, RequestCancelledError, ServiceError
from clinic_portal.data.cache import ResponseCache
from clinic_portal.data.cancellation import CancelToken
from clinic_portal.reports.models import AccountSummaryReport
from clinic_portal.services.appointments import AppointmentService
from clinic_portal.services.clients import ClientService, normalize_client_payload
from clinic_portal.services.clinics import ClinicService
from clinic_portal.services.notifications import NotificationService
from clinic_portal.services.orders import OrderService
from clinic_portal.services.registry import ApiServices
from clinic_portal.services.reports import ReportService

CLIENT_PAGE = envelope(
    {
        "clients": [
            {"_id": "c1", "personalInfo": {"firstName": "Ana", "lastName": "Lima"}},
            {"_id": "c2", "personalInfo": {"firstName": "Ben", "lastName": "Ortiz"}},
        ]
    },
    pagination={"page": 1, "limit": 20, "total": 2, "pages": 1},
)


class TestClientService:
    """Test client listing, caching and invalidation."""

    @pytest.fixture(autouse=True)
    def setup(self, backend, executor, make_service):
        backend.on("GET", "/clients/clinic/bodybliss/frontend-compatible", CLIENT_PAGE)
        backend.on("PUT", "/clients/c1", envelope({"_id": "c1"}))
        backend.on("GET", "/clients/search", envelope([{"_id": "c1"}]))
        self.backend = backend
        self.executor = executor
        self.service = make_service(ClientService)

    def _run(self, action):
        async def scenario():
            async with self.executor:
                return await action()

        return run(scenario())

    def test_list_returns_items_and_pagination(self):
        page = self._run(lambda: self.service.get_clients_by_clinic("bodybliss", page=1, limit=20))

        assert [client.key for client in page] == ["c1", "c2"]
        assert page.items[0].full_name == "Ana Lima"
        assert page.pagination.total == 2
        assert self.backend.requests[0].url.query == b"page=1&limit=20"

    def test_identical_lists_hit_the_network_once(self):
        async def action():
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20)
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20)

        self._run(action)
        assert self.backend.calls("GET") == 1

    def test_different_filters_are_cached_separately(self):
        async def action():
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20)
            await self.service.get_clients_by_clinic("bodybliss", page=2, limit=20)
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20, search="an")

        self._run(action)
        assert self.backend.calls("GET") == 3

    def test_update_invalidates_cached_lists(self):
        async def action():
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20)
            await self.service.update_client("c1", {"personalInfo": {"firstName": "Ana"}})
            await self.service.get_clients_by_clinic("bodybliss", page=1, limit=20)

        self._run(action)
        assert self.backend.calls("GET") == 2
        assert self.backend.calls("PUT") == 1

    def test_list_expires_after_default_ttl(self, clock):
        async def action():
            await self.service.get_clients_by_clinic("bodybliss")
            clock.advance(299)
            await self.service.get_clients_by_clinic("bodybliss")
            clock.advance(2)
            await self.service.get_clients_by_clinic("bodybliss")

        self._run(action)
        assert self.backend.calls("GET") == 2

    def test_search_uses_shorter_ttl(self, clock):
        async def action():
            await self.service.search_clients("ana", clinic_name="bodybliss")
            clock.advance(61)
            await self.service.search_clients("ana", clinic_name="bodybliss")

        self._run(action)
        assert self.backend.calls("GET", "/clients/search") == 2

    def test_blank_search_skips_the_network(self):
        results = self._run(lambda: self.service.search_clients("   "))
        assert results == []
        assert self.backend.requests == []

    def test_errors_carry_service_and_method(self):
        self.backend.on(
            "GET",
            "/clients/missing/frontend-compatible",
            {"success": False, "error": {"message": "Client not found"}},
            status=404,
        )

        with pytest.raises(ServiceError) as exc_info:
            self._run(lambda: self.service.get_client_by_id("missing"))

        error = exc_info.value
        assert str(error) == "[ClientService.get_client_by_id] Client not found"
        assert isinstance(error.cause, ApiError)
        assert error.__cause__ is error.cause

    def test_cancellation_is_not_wrapped(self):
        token = CancelToken()
        token.cancel()

        with pytest.raises(RequestCancelledError):
            self._run(
                lambda: self.service.get_clients_by_clinic("bodybliss", cancel_token=token)
            )

    def test_create_payload_is_normalized(self):
        self.backend.on("POST", "/clients", envelope({"_id": "c3"}))

        self._run(
            lambda: self.service.create_client(
                {
                    "personalInfo": {"firstName": "Cy", "dateOfBirth": "1990-04-09"},
                    "contact": {
                        "address": {"postalCode": "m5v2t6"},
                        "phones": {"cell": "416-555-0199"},
                    },
                }
            )
        )

        body = self.backend.last_json()
        assert body["personalInfo"]["birthday"] == {"day": "09", "month": "04", "year": "1990"}
        assert body["contact"]["address"]["postalCode"] == "M5V 2T6"
        assert body["contact"]["phones"]["cell"]["full"] == "(416) 555-0199"


class TestServiceConstruction:
    """Test how services come by their cache."""

    def test_injected_empty_cache_is_kept(self, executor, cache_config, clock):
        cache = ResponseCache(clock=clock, name="shared")
        assert len(cache) == 0

        service = ClientService(executor, cache=cache, cache_config=cache_config)

        assert service.cache is cache
        assert service.cache.clock is clock

    def test_injected_cache_receives_entries(self, backend, executor, cache_config, clock):
        backend.on("GET", "/clients/clinic/bodybliss/frontend-compatible", CLIENT_PAGE)
        cache = ResponseCache(clock=clock, name="shared")
        service = ClientService(executor, cache=cache, cache_config=cache_config)

        async def scenario():
            async with executor:
                await service.get_clients_by_clinic("bodybliss")

        run(scenario())
        assert len(cache) == 1

    def test_default_cache_uses_service_ttl(self, executor, cache_config):
        service = AppointmentService(executor, cache_config=cache_config)
        assert service.cache.default_ttl == 180
        assert service.cache.name == "AppointmentService"


class TestNormalizeClientPayload:
    """Test client payload preparation without the network."""

    def test_keeps_explicit_birthday(self):
        payload = {"personalInfo": {"dateOfBirth": "1990-04-09", "birthday": {"day": "01"}}}
        assert normalize_client_payload(payload)["personalInfo"]["birthday"] == {"day": "01"}

    def test_does_not_mutate_input(self):
        payload = {"contact": {"address": {"postalCode": "m5v2t6"}}}
        normalize_client_payload(payload)
        assert payload["contact"]["address"]["postalCode"] == "m5v2t6"


class TestAppointmentService:
    """Test appointment routing and the client-filter cache bypass."""

    @pytest.fixture(autouse=True)
    def setup(self, backend, executor, make_service):
        backend.on(
            "GET",
            "/appointments/clinic/bodybliss",
            envelope({"appointments": [{"appointmentId": 1, "status": 1}]}),
        )
        self.backend = backend
        self.executor = executor
        self.service = make_service(AppointmentService)

    def _run(self, action):
        async def scenario():
            async with self.executor:
                return await action()

        return run(scenario())

    def test_client_filtered_listing_bypasses_cache(self):
        async def action():
            await self.service.get_appointments_by_clinic("bodybliss", client_id="c1")
            await self.service.get_appointments_by_clinic("bodybliss", client_id="c1")

        self._run(action)
        assert self.backend.calls("GET") == 2

    def test_clinic_listing_is_cached(self):
        async def action():
            await self.service.get_appointments_by_clinic("bodybliss")
            return await self.service.get_appointments_by_clinic("bodybliss")

        page = self._run(action)
        assert self.backend.calls("GET") == 1
        assert page.items[0].appointment_id == 1

    def test_numeric_ids_use_business_route(self):
        self.backend.on("GET", "/appointments/business/1234", envelope({"appointmentId": 1234}))
        self.backend.on("GET", "/appointments/65f0", envelope({"_id": "65f0"}))

        async def action():
            await self.service.get_appointment_by_id(1234)
            await self.service.get_appointment_by_id("65f0")

        self._run(action)
        assert self.backend.calls("GET", "/appointments/business/1234") == 1
        assert self.backend.calls("GET", "/appointments/65f0") == 1

    def test_cancel_sends_reason_in_query(self):
        self.backend.on("DELETE", "/appointments/a1/cancel", envelope(None))

        self._run(lambda: self.service.cancel_appointment("a1", reason="Client sick"))

        request = self.backend.requests[-1]
        assert request.url.params["reason"] == "Client sick"
        assert request.content == b""

    def test_stats_are_reshaped(self):
        self.backend.on(
            "GET",
            "/appointments/stats/clinic/bodybliss",
            envelope({"statistics": {"totalAppointments": 10, "completionRate": 80}}),
        )

        stats = self._run(lambda: self.service.get_clinic_appointment_stats("bodybliss"))
        assert stats["total_appointments"] == 10
        assert stats["completion_rate"] == 80
        assert stats["cancelled_appointments"] == 0

    def test_missing_stats_raise_service_error(self):
        self.backend.on("GET", "/appointments/stats/clinic/bodybliss", envelope({}))

        with pytest.raises(ServiceError, match=r"^\[AppointmentService\.get_clinic_appointment_stats\]"):
            self._run(lambda: self.service.get_clinic_appointment_stats("bodybliss"))


class TestOrderService:
    """Test order invalidation and the uncached search."""

    @pytest.fixture(autouse=True)
    def setup(self, backend, executor, make_service):
        backend.on("GET", "/orders", envelope({"orders": [{"_id": "o1"}]}))
        backend.on("POST", "/orders", envelope({"_id": "o2"}))
        self.backend = backend
        self.executor = executor
        self.service = make_service(OrderService)

    def _run(self, action):
        async def scenario():
            async with self.executor:
                return await action()

        return run(scenario())

    def test_create_clears_order_lists(self):
        async def action():
            await self.service.get_orders(status="pending")
            await self.service.create_order({"clientId": "c1"})
            await self.service.get_orders(status="pending")

        self._run(action)
        assert self.backend.calls("GET", "/orders") == 2

    def test_search_is_never_cached(self):
        async def action():
            await self.service.search_orders("massage")
            await self.service.search_orders("massage")

        self._run(action)
        assert self.backend.calls("GET", "/orders") == 2
        assert len(self.service.cache) == 0


class TestNotificationService:
    """Test that notification reads always reach the backend."""

    def test_unread_count_is_never_cached(self, backend, executor, make_service):
        backend.on("GET", "/notifications/unread/count", envelope({"count": 3}))
        service = make_service(NotificationService)

        async def scenario():
            async with executor:
                first = await service.get_unread_count("bodybliss")
                second = await service.get_unread_count("bodybliss")
                return first, second

        assert run(scenario()) == (3, 3)
        assert backend.calls("GET") == 2
        assert len(service.cache) == 0


class TestClinicService:
    """Test clinic slug helpers."""

    def test_invalid_slug_reports_false(self, backend, executor, make_service):
        backend.on(
            "GET",
            "/clinics/validate/nowhere",
            {"success": False, "error": {"message": "Unknown clinic"}},
            status=404,
        )
        service = make_service(ClinicService)

        async def scenario():
            async with executor:
                return await service.is_valid_clinic_slug("nowhere")

        assert run(scenario()) is False


class TestReportService:
    """Test report fetching and export."""

    SUMMARY = envelope(
        {
            "clinicName": "BodyBliss",
            "dateRange": {"startDate": "2024-01-01", "endDate": "2024-01-31"},
            "summary": {"totalRevenue": 1500, "totalOrders": 12},
            "topServices": [{"productName": 'Deep, "tissue"', "quantity": 4, "revenue": 400}],
        }
    )

    def test_get_report_builds_typed_payload(self, backend, executor, make_service):
        backend.on("GET", "/reports/BodyBliss/account-summary", self.SUMMARY)
        service = make_service(ReportService)

        async def scenario():
            async with executor:
                report = await service.get_account_summary(
                    "BodyBliss", start_date="2024-01-01", end_date="2024-01-31"
                )
                await service.get_account_summary(
                    "BodyBliss", start_date="2024-01-01", end_date="2024-01-31"
                )
                return report

        report = run(scenario())
        assert isinstance(report, AccountSummaryReport)
        assert report.summary["totalRevenue"] == 1500
        assert backend.calls("GET") == 1
        assert backend.requests[0].url.params["startDate"] == "2024-01-01"

    def test_export_writes_csv(self, backend, executor, make_service, tmp_path):
        backend.on("GET", "/reports/BodyBliss/account-summary", self.SUMMARY)
        service = make_service(ReportService)

        async def scenario():
            async with executor:
                return await service.export_report(
                    "account-summary", "BodyBliss", "csv", directory=tmp_path
                )

        path = run(scenario())
        assert path.parent == tmp_path
        assert path.name.startswith("account-summary_BodyBliss_")
        assert '"Deep, ""tissue"""' in path.read_text()

    def test_order_status_report_sends_no_dates(self, backend, executor, make_service):
        backend.on(
            "GET",
            "/reports/BodyBliss/order-status",
            envelope({"statusBreakdown": [{"status": "completed", "count": 3}]}),
        )
        service = make_service(ReportService)

        async def scenario():
            async with executor:
                return await service.get_order_status_report("BodyBliss")

        report = run(scenario())
        assert report.kind == "order_status"
        assert backend.requests[0].url.query == b""


class TestApiServices:
    """Test the service bundle."""

    def test_every_service_has_its_own_cache(self, backend, executor):
        services = ApiServices(executor=executor, settings=Settings())
        caches = [service.cache for service in services.all.values()]

        assert len(services.all) == 11
        assert len({id(cache) for cache in caches}) == 11

    def test_reset_caches(self, backend, executor):
        backend.on("GET", "/clients/clinic/bodybliss/frontend-compatible", CLIENT_PAGE)
        services = ApiServices(executor=executor, settings=Settings())

        async def scenario():
            async with services:
                await services.clients.get_clients_by_clinic("bodybliss")
                services.reset_caches()
                await services.clients.get_clients_by_clinic("bodybliss")

        run(scenario())
        assert backend.calls("GET") == 2
