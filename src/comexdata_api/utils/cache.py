"""Response caching: TTL backend, deterministic keys and get-or-compute."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, TypeAdapter

from comexdata_api.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

CACHE_NAMESPACE = "comexstat"
CACHE_TTL_SECONDS = 60 * 60 * 24


class CacheBackend(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...


class TTLCache:
    """
    Thread-safe dict-based cache with per-key TTL expiry.

    Expired entries are dropped when read, and every ``sweep_every`` writes
    all expired entries are purged, so keys that are never read again do not
    accumulate.
    """

    def __init__(self, default_ttl: float = CACHE_TTL_SECONDS, sweep_every: int = 256) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._default_ttl = default_ttl
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() > expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            now = time.monotonic()
            self._store[key] = (value, now + (ttl if ttl is not None else self._default_ttl))
            self._writes += 1
            if self._writes >= self._sweep_every:
                self._writes = 0
                evicted = self._purge(now)
                if evicted:
                    log.debug("cache_swept", evicted=evicted, size=len(self._store))

    def evict_expired(self) -> int:
        """Remove all expired entries. Returns count of evicted keys."""
        with self._lock:
            return self._purge(time.monotonic())

    def _purge(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._store.items() if now > exp]
        for k in expired:
            del self._store[k]
        return len(expired)


# ---------------------------------------------------------------------------
# Key encoding
# ---------------------------------------------------------------------------


def _normalize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return _normalize(value.model_dump(mode="json", by_alias=True))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {
            str(k): _normalize(v)
            for k, v in sorted(value.items(), key=lambda item: str(item[0]))
            if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return value


def build_cache_key(kind: str, payload: Any) -> str:
    """
    Deterministic key for an entity kind and its parameters.

    Mapping keys are sorted and None-valued keys dropped at every depth, so
    insertion order and absent-vs-None never change the key. Sequences keep
    their order.

    Example:
        build_cache_key("partners", {"topN": 10, "flow": TradeFlow.EXPORT})
        -> 'comexstat:partners:{"flow":"export","topN":10}'
    """
    encoded = json.dumps(_normalize(payload), separators=(",", ":"), ensure_ascii=False)
    return f"{CACHE_NAMESPACE}:{kind}:{encoded}"


# ---------------------------------------------------------------------------
# Get-or-compute
# ---------------------------------------------------------------------------


class CachingOrchestrator:
    """
    Serve a cached value or compute, store and return it.

    Values are stored as their JSON-compatible dump and re-validated on the way
    out, so callers always get fresh objects and never share state with the
    cache. Resolver failures propagate and leave the cache untouched.

    Concurrent misses on the same key are not coalesced: each caller runs the
    resolver and the last write wins.
    """

    def __init__(self, backend: CacheBackend | None, ttl: float = CACHE_TTL_SECONDS) -> None:
        self._backend = backend
        self._ttl = ttl

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    async def get_or_compute(
        self,
        key: str,
        resolver: Callable[[], Awaitable[T]],
        adapter: TypeAdapter[T],
    ) -> T:
        if self._backend is None:
            return await resolver()

        cached = self._backend.get(key)
        if cached is not None:
            log.debug("cache_hit", key=key)
            return adapter.validate_python(cached)

        log.debug("cache_miss", key=key)
        value = await resolver()
        dumped = adapter.dump_python(value, mode="json", by_alias=True)
        self._backend.set(key, dumped, self._ttl)
        return value
