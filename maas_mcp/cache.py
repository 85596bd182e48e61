"""
In-process response cache shared by every resource handler.

One ``CacheManager`` is built at startup and injected into each handler.
Entries expire lazily: an entry older than its TTL is dropped the next time
somebody reads it. There is no background sweeper.

Keys are namespaced by resource label::

  Machine:machine/abc123/details:abc123
  Machines:machines/list:hostname=web01&limit=10

so a whole namespace, or the entries of one resource id inside it, can be
invalidated with a prefix match.
"""

from __future__ import annotations

import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping
from urllib.parse import urlencode

import structlog

from maas_mcp.uri_patterns import uri_path

log = structlog.get_logger(__name__)

DEFAULT_TTL = 300
DEFAULT_MAX_SIZE = 1000
STRATEGIES = ("time-based", "lru")


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CacheControl:
    """``Cache-Control`` directives attached to a resource's responses."""

    max_age: int | None = None
    private: bool = False
    must_revalidate: bool = False
    immutable: bool = False

    def header_value(self, default_max_age: int) -> str:
        max_age = self.max_age if self.max_age is not None else default_max_age
        parts = [f"max-age={max_age}"]
        if self.private:
            parts.append("private")
        if self.must_revalidate:
            parts.append("must-revalidate")
        if self.immutable:
            parts.append("immutable")
        return ", ".join(parts)


@dataclass(frozen=True)
class CacheOptions:
    enabled: bool = True
    ttl: int | None = None
    cache_control: CacheControl = field(default_factory=CacheControl)
    include_query_params: bool = False
    # Empty means every query parameter takes part in the key.
    include_query_params_list: tuple[str, ...] = ()

    def with_changes(self, **changes: Any) -> "CacheOptions":
        if "include_query_params_list" in changes:
            changes["include_query_params_list"] = tuple(changes["include_query_params_list"] or ())
        return replace(self, **changes)


@dataclass
class CacheEntry:
    key: str
    value: Any
    resource: str
    inserted_at: float
    ttl: int
    cache_control: CacheControl

    def age(self, now: float) -> int:
        return max(0, int(now - self.inserted_at))

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class CacheManager:
    """Thread-safe TTL cache with oldest-first or LRU eviction."""

    def __init__(
        self,
        enabled: bool = True,
        default_ttl: int = DEFAULT_TTL,
        resource_ttl: Mapping[str, int] | None = None,
        max_size: int = DEFAULT_MAX_SIZE,
        strategy: str = "time-based",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown cache strategy '{strategy}', expected one of {STRATEGIES}")
        if max_size < 1:
            raise ValueError("Cache max_size must be at least 1")
        self._enabled = enabled
        self.default_ttl = default_ttl
        self._resource_ttl: dict[str, int] = dict(resource_ttl or {})
        self.max_size = max_size
        self.strategy = strategy
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

    # -- configuration ------------------------------------------------------

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            self.clear()
        log.info("cache_enabled_changed", enabled=enabled)

    def get_resource_ttl(self, resource: str) -> int:
        return self._resource_ttl.get(resource, self.default_ttl)

    def set_resource_ttl(self, resource: str, ttl: int) -> None:
        if ttl < 0:
            raise ValueError("TTL must be non-negative")
        self._resource_ttl[resource] = ttl

    def now(self) -> float:
        return self._clock()

    # -- keys ---------------------------------------------------------------

    def generate_cache_key(
        self,
        resource: str,
        uri: str,
        params: Mapping[str, Any] | None = None,
        options: CacheOptions | None = None,
        resource_id: str | None = None,
    ) -> str:
        """Build the key for ``uri`` inside the ``resource`` namespace.

        ``params`` are the request's query parameters. They only take part
        when ``options.include_query_params`` is set, filtered by the
        allow-list and sorted so client ordering never matters.
        """
        key = f"{resource}:{uri_path(uri)}"
        if resource_id:
            key += f":{resource_id}"
        if options is not None and options.include_query_params and params:
            allowed = set(options.include_query_params_list)
            selected = sorted(
                (name, str(value))
                for name, value in params.items()
                if value is not None and (not allowed or name in allowed)
            )
            if selected:
                key += f":{urlencode(selected)}"
        return key

    # -- reads and writes ---------------------------------------------------

    def get_entry(self, key: str) -> CacheEntry | None:
        if not self._enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["misses"] += 1
                log.debug("cache_entry_expired", cache_key=key)
                return None
            if self.strategy == "lru":
                self._entries.move_to_end(key)
            self._stats["hits"] += 1
            return entry

    def get(self, key: str) -> Any | None:
        """Cached payload for ``key``, or None on a miss or expired entry."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(
        self,
        key: str,
        value: Any,
        resource: str,
        options: CacheOptions | None = None,
    ) -> CacheEntry | None:
        if not self._enabled:
            return None
        ttl = options.ttl if options is not None and options.ttl is not None else self.get_resource_ttl(resource)
        entry = CacheEntry(
            key=key,
            value=value,
            resource=resource,
            inserted_at=self._clock(),
            ttl=ttl,
            cache_control=options.cache_control if options is not None else CacheControl(),
        )
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._stats["evictions"] += 1
                log.debug("cache_entry_evicted", cache_key=evicted, strategy=self.strategy)
            self._entries[key] = entry
            self._stats["sets"] += 1
        return entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    # -- invalidation -------------------------------------------------------

    def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Remove every key matching ``pattern`` (``re.search`` semantics)."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        with self._lock:
            doomed = [key for key in self._entries if regex.search(key)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def invalidate_resource(self, resource: str, resource_id: str | None = None) -> int:
        """Drop a resource namespace, or only the entries scoped to one id."""
        name = re.escape(resource)
        if resource_id is None:
            pattern = rf"^{name}:"
        else:
            pattern = rf"^{name}:(?:[^:]*:)?{re.escape(str(resource_id))}(?::|$)"
        count = self.invalidate(pattern)
        log.debug("cache_invalidated", resource=resource, resource_id=resource_id, removed=count)
        return count

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "size": len(self._entries),
                "max_size": self.max_size,
                "strategy": self.strategy,
                "enabled": self._enabled,
                "default_ttl": self.default_ttl,
            }
