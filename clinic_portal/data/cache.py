"""
In-memory response cache with per-entry TTL and substring invalidation.

One instance is owned by each service; entries never outlive the process.
"""

import json
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog
from pydantic_core import to_jsonable_python

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheEntry:
    """A cached value with its store time and lifetime."""

    data: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp <= self.ttl


@dataclass
class CacheStats:
    """Counters for one cache; expired reads count as both miss and eviction."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = asdict(self)
        summary["hit_rate"] = f"{self.hit_rate:.2%}"
        return summary


def make_key(prefix: str, query: Any = None) -> str:
    """
    Build a cache key of the form ``<prefix>_<serialized query>``.

    Mappings are serialized as canonical JSON so that distinct filter sets
    never share a key.
    """
    if query is None:
        return prefix
    if isinstance(query, (str, int)):
        return f"{prefix}_{query}"
    payload = json.dumps(to_jsonable_python(query), sort_keys=True, separators=(",", ":"))
    return f"{prefix}_{payload}"


class ResponseCache:
    """
    TTL cache for decoded API responses.

    Expired entries are evicted lazily on read. ``clear(pattern)`` removes
    every key containing the substring.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
        enabled: bool = True,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self.default_ttl = default_ttl
        self.clock = clock
        self.name = name
        self.enabled = enabled
        self.stats = CacheStats()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or expiry."""
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None

        if not entry.is_fresh(self.clock()):
            del self._entries[key]
            self.stats.evictions += 1
            self.stats.misses += 1
            logger.debug("Cache entry expired", cache=self.name, key=key)
            return None

        self.stats.hits += 1
        logger.debug("Cache hit", cache=self.name, key=key)
        return entry.data

    def contains(self, key: str) -> bool:
        """True when a fresh entry exists for the key."""
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self.clock())

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value; a missing TTL falls back to the default."""
        if not self.enabled:
            return
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(data=value, timestamp=self.clock(), ttl=ttl)
        logger.debug("Cache set", cache=self.name, key=key, ttl=ttl)

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Remove entries.

        Args:
            pattern: Substring to match against keys; None clears everything

        Returns:
            Number of entries removed
        """
        if pattern is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]
            removed = len(doomed)

        self.stats.invalidations += removed
        if removed:
            logger.debug("Cache invalidated", cache=self.name, pattern=pattern, removed=removed)
        return removed

    def keys(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)
