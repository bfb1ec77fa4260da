"""
Cache port for derived aggregates (balances, member lists).

The cache is never the system of record: a miss or a backend failure always
falls back to the fetcher, and mutations invalidate after they commit.
"""
import copy
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
import redis
from splitledger.core.config import settings

logger = logging.getLogger(__name__)


class cache_keys:
    """Cache key generators."""

    @staticmethod
    def team_balances(team_id: int, member_id: int) -> str:
        return f"balance:{team_id}:{member_id}"

    @staticmethod
    def team_members(team_id: int) -> str:
        return f"members:{team_id}"


class LedgerCache:
    """Base cache; subclasses implement get/set/delete."""

    def connect(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        raise NotImplementedError

    def delete(self, *keys: str) -> None:
        raise NotImplementedError

    def cached(self, key: str, fetcher: Callable[[], Any], ttl_seconds: int = 60) -> Any:
        """Get cached value or run fetcher and store its JSON-safe result."""
        try:
            value = self.get(key)
            if value is not None:
                return value
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, fetching directly: {e}")
            return fetcher()

        value = fetcher()
        try:
            self.set(key, value, ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
        return value

    def invalidate_team(self, team_id: int, member_ids: Iterable[int] = ()) -> None:
        """Drop every cached aggregate of a team for the given members."""
        keys = [cache_keys.team_members(team_id)]
        keys.extend(cache_keys.team_balances(team_id, member_id) for member_id in member_ids)
        try:
            self.delete(*keys)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for team {team_id}: {e}")


class NullCache(LedgerCache):
    """Cache that stores nothing; every read goes to the store."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        pass

    def delete(self, *keys: str) -> None:
        pass


class MemoryCache(LedgerCache):
    """Process-local TTL cache. Values are copied in and out so readers never share state."""

    def __init__(self):
        self._data: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def disconnect(self) -> None:
        with self._lock:
            self._data.clear()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at < time.monotonic():
                del self._data[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (time.monotonic() + ttl_seconds, copy.deepcopy(value))

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class RedisCache(LedgerCache):
    """Redis-backed cache; values are stored as JSON."""

    def __init__(self, url: str):
        self.url = url
        self.client = None

    def connect(self) -> None:
        self.client = redis.Redis.from_url(self.url, decode_responses=True)
        self.client.ping()
        logger.info(f"Connected to Redis cache at {self.url}")

    def disconnect(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    def get(self, key: str) -> Optional[Any]:
        if self.client is None:
            return None
        raw = self.client.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if self.client is None:
            return
        self.client.setex(key, ttl_seconds, json.dumps(value, default=str))

    def delete(self, *keys: str) -> None:
        if self.client is None or not keys:
            return
        self.client.delete(*keys)


def build_cache(backend: str = None) -> LedgerCache:
    """Build the cache selected by CACHE_BACKEND."""
    backend = (backend or settings.CACHE_BACKEND).lower()
    if backend == "redis":
        return RedisCache(settings.REDIS_URL)
    if backend == "memory":
        return MemoryCache()
    return NullCache()
