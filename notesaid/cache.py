"""
Redis-backed response cache.

The cache is strictly best effort: when Redis is not configured, unreachable,
or returns something that cannot be decoded, the call is logged and behaves
like a miss (reads) or a no-op (writes). A cache problem never fails a request.
"""
import json
import logging
from enum import IntEnum
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from redis import asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheTTL(IntEnum):
    SHORT = 300
    MEDIUM = 1800
    LONG = 3600
    VERY_LONG = 86400


LEADERBOARD_TTL = CacheTTL.LONG * 3

LEADERBOARD_PARAMS = (
    "admission_year", "page", "limit", "sort_by", "sort_order",
    "name", "seat_number", "min_cgpa", "max_cgpa",
)


class CacheKeys:
    @staticmethod
    def curriculum(year: Optional[Any] = None, branch: Optional[str] = None) -> str:
        return f"curriculum:{year or 'all'}:{branch or 'all'}"

    @staticmethod
    def subjects() -> str:
        return "subjects:all"

    @staticmethod
    def subject(subject: str, module: Optional[Any] = None) -> str:
        if module:
            return f"subject:{subject}:module:{module}"
        return f"subject:{subject}"

    @staticmethod
    def stats(subject: str) -> str:
        return f"stats:{subject}"

    @staticmethod
    def quick_links(subject: str) -> str:
        return f"quick-links:{subject}"

    @staticmethod
    def admin_quick_links(subject: Optional[str] = None) -> str:
        return f"admin:quick-links:{subject or 'all'}"

    @staticmethod
    def leaderboard(params: Optional[Mapping[str, Any]] = None) -> str:
        if not params:
            return "leaderboard:default"
        pairs = sorted(
            (name, str(params[name]))
            for name in LEADERBOARD_PARAMS
            if params.get(name) not in (None, "")
        )
        if not pairs:
            return "leaderboard:default"
        return "leaderboard:" + urlencode(pairs)


def subject_invalidation(subject: str) -> Tuple[List[str], List[str]]:
    """Exact keys and glob patterns covering every cached view of one subject."""
    keys = [CacheKeys.subject(subject), CacheKeys.stats(subject)]
    patterns = [f"{CacheKeys.subject(subject)}:module:*"]
    return keys, patterns


def quick_link_invalidation(subjects: Iterable[str]) -> List[str]:
    keys = [CacheKeys.admin_quick_links()]
    for subject in subjects:
        for key in (CacheKeys.admin_quick_links(subject), CacheKeys.quick_links(subject)):
            if key not in keys:
                keys.append(key)
    return keys


class RedisCache:
    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    @classmethod
    def from_url(cls, url: Optional[str]) -> "RedisCache":
        if not url:
            logger.warning("REDIS_URL not set, response cache disabled")
            return cls(None)
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        return cls(client)

    @property
    def available(self) -> bool:
        return self._client is not None

    async def get(self, key: str) -> Optional[Any]:
        if self._client is None:
            return None
        try:
            raw = await self._client.get(key)
            if raw is None:
                return None
            logger.debug("Cache hit for: %s", key)
            return json.loads(raw)
        except (RedisError, OSError, ValueError) as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int = CacheTTL.LONG) -> None:
        if self._client is None:
            return
        try:
            await self._client.set(key, json.dumps(value, default=str), ex=int(ttl))
            logger.debug("Cached data for: %s (TTL: %ss)", key, int(ttl))
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning("Redis set error for %s: %s", key, e)

    async def delete(self, *keys: str) -> None:
        if self._client is None or not keys:
            return
        try:
            await self._client.delete(*keys)
            logger.info("Cache invalidated for: %s", ", ".join(keys))
        except (RedisError, OSError) as e:
            logger.warning("Redis delete error: %s", e)

    async def delete_pattern(self, pattern: str) -> None:
        if self._client is None:
            return
        try:
            keys = [key async for key in self._client.scan_iter(match=pattern)]
            if keys:
                await self._client.delete(*keys)
                logger.info("Cache invalidated for pattern: %s (%d keys)", pattern, len(keys))
        except (RedisError, OSError) as e:
            logger.warning("Redis pattern delete error for %s: %s", pattern, e)

    async def invalidate_subject(self, subject: str) -> None:
        keys, patterns = subject_invalidation(subject)
        await self.delete(*keys)
        for pattern in patterns:
            await self.delete_pattern(pattern)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[Any]], ttl: int = CacheTTL.LONG) -> Any:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value, ttl)
        return value

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.warning("Redis close error: %s", e)

