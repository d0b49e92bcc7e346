import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import redis.asyncio as redis

from flashtrend.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached query value plus its freshness state."""

    value: Any
    stale: bool = False
    fetched_at: float = field(default_factory=time.time)

    def to_json(self) -> str:
        return json.dumps(
            {"value": self.value, "stale": self.stale, "fetched_at": self.fetched_at},
            default=str,
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            value=data["value"],
            stale=bool(data.get("stale", False)),
            fetched_at=float(data.get("fetched_at", 0.0)),
        )


def key_matches(key: str, prefix: str) -> bool:
    """True when *key* is *prefix* itself or lives below it (``prefix:...``)."""
    return key == prefix or key.startswith(prefix + ":")


def _glob_escape(text: str) -> str:
    return "".join("\\" + ch if ch in "*?[]\\" else ch for ch in text)


class CacheStore:
    """
    Query cache keyed by ``namespace:operation[:params]``.

    Values are JSON-compatible structures; the data-access layer owns the
    conversion to and from typed models.  Subclasses implement the five
    storage primitives and inherit hit/miss accounting.
    """

    backend_name = "none"

    def __init__(self) -> None:
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CacheEntry | None:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def mark_stale(self, prefix: str) -> int:
        """Flag every entry under *prefix* as stale; return how many."""
        raise NotImplementedError

    async def clear(self, prefix: str | None = None) -> int:
        """Drop every entry under *prefix* (everything when None)."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def record(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the metrics endpoint."""
        total = self._hits + self._misses
        return {
            "backend": self.backend_name,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


class MemoryCacheStore(CacheStore):
    """Process-local store; the default."""

    backend_name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value)

    async def mark_stale(self, prefix: str) -> int:
        count = 0
        for key, entry in self._entries.items():
            if key_matches(key, prefix):
                entry.stale = True
                count += 1
        return count

    async def clear(self, prefix: str | None = None) -> int:
        if prefix is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        doomed = [key for key in self._entries if key_matches(key, prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore(CacheStore):
    """
    Redis-backed store for deployments running several workers.

    All public methods are safe to call even when Redis is unavailable:
    reads return None and writes are skipped, so a query simply falls
    through to the remote service.
    """

    backend_name = "redis"

    def __init__(self, url: str | None = None) -> None:
        super().__init__()
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = None

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self._url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, query cache disabled: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> CacheEntry | None:
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(key)
            return CacheEntry.from_json(raw) if raw is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None

    async def set(self, key: str, value: Any) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, CacheEntry(value=value).to_json())
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def _scan(self, prefix: str | None) -> list[str]:
        """Collect matching keys with SCAN (avoids blocking KEYS)."""
        pattern = "*" if prefix is None else _glob_escape(prefix) + "*"
        keys: list[str] = []
        async for key in self._redis.scan_iter(match=pattern):
            if prefix is None or key_matches(key, prefix):
                keys.append(key)
        return keys

    async def mark_stale(self, prefix: str) -> int:
        if not self._redis:
            return 0
        try:
            count = 0
            for key in await self._scan(prefix):
                raw = await self._redis.get(key)
                if raw is None:
                    continue
                entry = CacheEntry.from_json(raw)
                entry.stale = True
                await self._redis.set(key, entry.to_json())
                count += 1
            return count
        except Exception as exc:
            # Without a reliable stale flag the entries must go.
            logger.debug("Cache MARK_STALE error for prefix=%r: %s", prefix, exc)
            return await self.clear(prefix)

    async def clear(self, prefix: str | None = None) -> int:
        if not self._redis:
            return 0
        try:
            keys = await self._scan(prefix)
            if keys:
                await self._redis.delete(*keys)
            return len(keys)
        except Exception as exc:
            logger.debug("Cache CLEAR error for prefix=%r: %s", prefix, exc)
            return 0


def create_cache_store(backend: str | None = None) -> CacheStore:
    """Build the store selected by ``settings.CACHE_BACKEND``."""
    backend = backend or settings.CACHE_BACKEND
    if backend == "redis":
        return RedisCacheStore()
    if backend == "memory":
        return MemoryCacheStore()
    raise ValueError(f"Unknown cache backend: {backend!r}")
