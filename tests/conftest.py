"""Configure pytest fixtures and environment for clinic portal tests."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from dotenv import load_dotenv

from clinic_portal.core.config import ApiConfig, CacheConfig, reset_settings
from clinic_portal.data.cache import ResponseCache
from clinic_portal.data.executor import RequestExecutor
from clinic_portal.data.token_store import MemoryTokenStore

API_ROOT = "http://portal.test/api/v1"


def pytest_sessionstart(session):
    """Load environment variables before any settings are read."""
    load_dotenv()


@pytest.fixture(autouse=True)
def fresh_settings():
    """Each test sees settings re-read from the environment."""
    reset_settings()
    yield
    reset_settings()


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def envelope(data: Any = None, **extra) -> Dict[str, Any]:
    return {"success": True, "data": data, **extra}


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """
    In-process stand-in for the portal REST API.

    Routes are keyed on method and path (without the query string); every
    request is recorded so tests can count network calls.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], Any]] = {}

    def on(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status: int = 200,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ) -> None:
        if handler is None:

            def handler(request, payload=payload, status=status):
                return httpx.Response(status, json=payload)

        self.routes[(method.upper(), f"/api/v1{path}")] = handler

    def handle(self, request: httpx.Request):
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(
                404,
                json={
                    "success": False,
                    "error": {"code": "NOT_FOUND", "message": f"No route for {request.url.path}"},
                },
            )
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> int:
        return sum(
            1
            for request in self.requests
            if (method is None or request.method == method)
            and (path is None or request.url.path == f"/api/v1{path}")
        )

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api_config():
    return ApiConfig(API_URL="http://portal.test", API_BASE_PATH="/api/v1", API_TIMEOUT_SECONDS=5)


@pytest.fixture
def cache_config():
    return CacheConfig(
        CACHE_ENABLED=True,
        CACHE_DEFAULT_TTL_SECONDS=300,
        CACHE_SEARCH_TTL_SECONDS=60,
        CACHE_ANALYTICS_TTL_SECONDS=600,
    )


@pytest.fixture
def token_store():
    return MemoryTokenStore("test-token")


@pytest.fixture
def executor(backend, api_config, token_store):
    return RequestExecutor(config=api_config, token_store=token_store, transport=backend.transport)


@pytest.fixture
def make_service(executor, cache_config, clock):
    """Build a service whose cache runs on the fake clock."""

    def _make(service_cls):
        cache = ResponseCache(clock=clock, name=service_cls.config.name)
        return service_cls(executor, cache=cache, cache_config=cache_config)

    return _make
