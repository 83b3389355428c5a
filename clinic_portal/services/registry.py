"""
Bundle of every domain service sharing one request executor.
"""

from typing import Dict, Optional

import httpx
import structlog

from ..core.config import Settings, get_settings
from ..data.executor import RequestExecutor
from ..data.token_store import FileTokenStore, TokenStore
from .appointments import AppointmentService
from .base import BaseApiService
from .clients import ClientService
from .clinics import ClinicService
from .events import EventService
from .notifications import NotificationService
from .orders import OrderService
from .payments import PaymentService
from .products import ProductService
from .reports import ReportService
from .resources import ResourceService
from .users import UserService

logger = structlog.get_logger(__name__)


class ApiServices:
    """
    One executor plus one instance of each service, each with its own cache.

    Use as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        executor: Optional[RequestExecutor] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.executor = executor or RequestExecutor()
        cache_config = self.settings.cache

        self.clients = ClientService(self.executor, cache_config=cache_config)
        self.orders = OrderService(self.executor, cache_config=cache_config)
        self.payments = PaymentService(self.executor, cache_config=cache_config)
        self.products = ProductService(self.executor, cache_config=cache_config)
        self.resources = ResourceService(self.executor, cache_config=cache_config)
        self.appointments = AppointmentService(self.executor, cache_config=cache_config)
        self.reports = ReportService(self.executor, cache_config=cache_config)
        self.events = EventService(self.executor, cache_config=cache_config)
        self.notifications = NotificationService(self.executor, cache_config=cache_config)
        self.users = UserService(self.executor, cache_config=cache_config)
        self.clinics = ClinicService(self.executor, cache_config=cache_config)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        token_store: Optional[TokenStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ApiServices":
        """Build services from settings, optionally with a custom transport."""
        settings = settings or get_settings()
        executor = RequestExecutor(
            config=settings.api,
            token_store=token_store or FileTokenStore(settings.api.auth_storage_path),
            transport=transport,
        )
        return cls(executor=executor, settings=settings)

    @property
    def all(self) -> Dict[str, BaseApiService]:
        return {
            name: service
            for name, service in vars(self).items()
            if isinstance(service, BaseApiService)
        }

    def reset_caches(self) -> None:
        """Clear the cache of every service."""
        for service in self.all.values():
            service.clear_cache()
        logger.debug("All service caches cleared")

    def cache_stats(self) -> Dict[str, Dict]:
        return {
            name: {"entries": len(service.cache), **service.cache.stats.to_dict()}
            for name, service in self.all.items()
        }

    async def aclose(self) -> None:
        await self.executor.aclose()

    async def __aenter__(self) -> "ApiServices":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
