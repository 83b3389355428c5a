"""
Generic API service with read-through caching and write invalidation.

Each resource service is a ``BaseApiService`` bound to a frozen
``ServiceConfig`` that names its endpoint, cache namespaces and per-operation
cache policy. Services own their cache instance.
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Type, TypeVar
from urllib.parse import quote

import structlog
from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from ..core.config import CacheConfig, get_settings
from ..core.exceptions import RequestCancelledError, ServiceError
from ..core.models import ApiResponse, Page, Pagination, Record
from ..data.cache import ResponseCache, make_key
from ..data.cancellation import CancelToken
from ..data.executor import RequestExecutor
from ..data.query import with_query

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Record)

DEFAULT_TIER = "default"
SEARCH_TIER = "search"
ANALYTICS_TIER = "analytics"


@dataclass(frozen=True)
class CachePolicy:
    """
    How one operation uses the cache.

    ``ttl`` pins an explicit lifetime in seconds; otherwise ``tier`` picks
    the service default, the search TTL or the analytics TTL.
    """

    ttl: Optional[float] = None
    tier: str = DEFAULT_TIER
    bypass: bool = False


BYPASS = CachePolicy(bypass=True)
SEARCH = CachePolicy(tier=SEARCH_TIER)
ANALYTICS = CachePolicy(tier=ANALYTICS_TIER)


@dataclass(frozen=True)
class ServiceConfig:
    """Static description of one resource service."""

    name: str
    endpoint: str
    collection: str
    item: str
    default_ttl: Optional[float] = None
    list_key: Optional[str] = None
    related: tuple = ()
    policies: Mapping[str, CachePolicy] = field(default_factory=dict, compare=False)

    @property
    def collection_pattern(self) -> str:
        return f"{self.collection}_"

    def policy(self, operation: str) -> CachePolicy:
        return self.policies.get(operation, CachePolicy())


def service_method(func):
    """
    Wrap a service coroutine so failures surface as ``ServiceError``.

    The message gains a ``[Service.method]`` prefix and the original
    exception is chained. Cancellation and already-wrapped errors pass
    through unchanged.
    """

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (RequestCancelledError, ServiceError):
            raise
        except Exception as e:
            logger.error(
                "Service operation failed",
                service=self.config.name,
                method=func.__name__,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceError(self.config.name, func.__name__, e) from e

    return wrapper


def to_payload(value: Any) -> Any:
    """Convert models and plain values into a JSON-ready request body."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True, mode="json")
    return to_jsonable_python(value)


def segment(value: Any) -> str:
    """Percent-encode one path segment."""
    return quote(str(value), safe="!*'()")


class BaseApiService(Generic[T]):
    """
    Base class for resource services.

    Subclasses set ``config`` and ``model`` and build their endpoint-specific
    operations on the protected helpers below.
    """

    config: ServiceConfig
    model: Type[T]

    def __init__(
        self,
        executor: RequestExecutor,
        cache: Optional[ResponseCache] = None,
        cache_config: Optional[CacheConfig] = None,
    ):
        self.executor = executor
        self.cache_config = cache_config or get_settings().cache
        if cache is None:
            cache = ResponseCache(
                default_ttl=self.default_ttl,
                name=self.config.name,
                enabled=self.cache_config.enabled,
            )
        self.cache = cache

    @property
    def default_ttl(self) -> float:
        if self.config.default_ttl is not None:
            return self.config.default_ttl
        return self.cache_config.default_ttl_seconds

    def ttl_for(self, operation: str) -> float:
        """Resolve the cache lifetime for an operation."""
        policy = self.config.policy(operation)
        if policy.ttl is not None:
            return policy.ttl
        if policy.tier == SEARCH_TIER:
            return self.cache_config.search_ttl_seconds
        if policy.tier == ANALYTICS_TIER:
            return self.cache_config.analytics_ttl_seconds
        return self.default_ttl

    # Cache helpers

    def key(self, prefix: str, query: Any = None) -> str:
        return make_key(prefix, query)

    def invalidate(self, item_id: Any = None, *patterns: str) -> int:
        """Drop the collection namespace, related namespaces and one item."""
        removed = self.cache.clear(self.config.collection_pattern)
        for pattern in self.config.related:
            removed += self.cache.clear(pattern)
        for pattern in patterns:
            removed += self.cache.clear(pattern)
        if item_id is not None:
            removed += self.cache.clear(f"{self.config.item}_{item_id}")
        return removed

    def clear_cache(self) -> None:
        """Forget every cached response of this service."""
        self.cache.clear()

    # Request helpers

    async def _read(
        self,
        endpoint: str,
        operation: str,
        key: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> ApiResponse[Any]:
        """GET through the cache according to the operation's policy."""
        policy = self.config.policy(operation)
        use_cache = key is not None and not policy.bypass

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        response = await self.executor.get(endpoint, cancel_token=cancel_token)

        if use_cache:
            self.cache.set(key, response, self.ttl_for(operation))
        return response

    async def _write(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        item_id: Any = None,
        invalidates: Iterable[str] = (),
    ) -> ApiResponse[Any]:
        """Send a mutation and invalidate affected cache entries on success."""
        payload = to_payload(body) if body is not None else None
        response = await self.executor.request(endpoint, method, body=payload)
        removed = self.invalidate(item_id, *invalidates)
        logger.debug(
            "Mutation applied",
            service=self.config.name,
            method=method,
            endpoint=endpoint,
            invalidated=removed,
        )
        return response

    # Decoding helpers

    def _record(self, data: Any) -> T:
        return self.model.model_validate(data)

    def _records(self, data: Any, list_key: Optional[str] = None) -> List[T]:
        return [self._record(item) for item in self._items(data, list_key)]

    def _items(self, data: Any, list_key: Optional[str] = None) -> List[Any]:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for name in (list_key, self.config.list_key, "items", "data"):
                if name and isinstance(data.get(name), list):
                    return data[name]
        return []

    def _page(
        self,
        response: ApiResponse[Any],
        page: int = 1,
        limit: int = 20,
        list_key: Optional[str] = None,
    ) -> Page[T]:
        pagination = response.pagination
        if pagination is None and isinstance(response.data, dict):
            raw = response.data.get("pagination")
            if isinstance(raw, dict):
                pagination = Pagination.model_validate(raw)
        if pagination is None:
            pagination = Pagination.empty(page=page, limit=limit)
        return Page[self.model](
            items=self._records(response.data, list_key), pagination=pagination
        )

    def _item_endpoint(self, item_id: Any, suffix: str = "") -> str:
        return f"{self.config.endpoint}/{segment(item_id)}{suffix}"

    # Generic operations

    @service_method
    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[T]:
        """List records, keyed in the cache on the full filter set."""
        params = {"page": page, "limit": limit, **(filters or {})}
        response = await self._read(
            with_query(self.config.endpoint, params),
            "list",
            self.key(self.config.collection, params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_by_id(self, item_id: Any, cancel_token: Optional[CancelToken] = None) -> T:
        response = await self._read(
            self._item_endpoint(item_id),
            "get_by_id",
            self.key(self.config.item, item_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create(self, payload: Any) -> T:
        response = await self._write("POST", self.config.endpoint, payload)
        return self._record(response.data)

    @service_method
    async def update(self, item_id: Any, payload: Any) -> T:
        response = await self._write("PUT", self._item_endpoint(item_id), payload, item_id)
        return self._record(response.data)

    @service_method
    async def delete(self, item_id: Any) -> None:
        await self._write("DELETE", self._item_endpoint(item_id), item_id=item_id)

    @service_method
    async def search(
        self, term: str, cancel_token: Optional[CancelToken] = None, **params
    ) -> List[T]:
        """Search records; a blank term returns an empty list without a request."""
        if not term or not term.strip():
            return []
        query = {"q": term.strip(), **params}
        response = await self._read(
            with_query(f"{self.config.endpoint}/search", query),
            "search",
            self.key(f"{self.config.collection}_search", query),
            cancel_token,
        )
        return self._records(response.data)
