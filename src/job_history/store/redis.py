"""
Redis-backed history store.

Requires redis (async): pip install redis

Single-key writes rely on Redis command atomicity. The two read-modify-write
primitives the ledger needs (compare-and-set-max, guarded terminal write) run
as Lua scripts, and add+count runs in a MULTI/EXEC pipeline, so concurrent
workers never interleave inside one of them.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import redis.asyncio as redis_lib
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from ..errors import (
    ErrorContext,
    StoreConnectionError,
    StoreError,
    StoreTimeoutError,
)
from .base import HistoryStore

_SET_MAX_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '0') or 0
local candidate = tonumber(ARGV[1])
if candidate > current then
    redis.call('SET', KEYS[1], ARGV[1])
    return candidate
end
return current
"""

_HSET_UNLESS_EXISTS_SCRIPT = """
if redis.call('HEXISTS', KEYS[1], ARGV[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 2))
return 1
"""


@contextmanager
def _translate(operation: str, key: str | None = None) -> Iterator[None]:
    """Re-raise redis-py exceptions as store errors."""
    try:
        yield
    except RedisConnectionError as exc:
        raise StoreConnectionError(
            f"Redis connection failed during {operation}",
            context=ErrorContext(key=key, operation=operation),
            cause=exc,
        ) from exc
    except RedisTimeoutError as exc:
        raise StoreTimeoutError(
            f"Redis timed out during {operation}",
            context=ErrorContext(key=key, operation=operation),
            cause=exc,
        ) from exc
    except RedisError as exc:
        raise StoreError(
            f"Redis {operation} failed: {exc}",
            context=ErrorContext(key=key, operation=operation),
            cause=exc,
        ) from exc


class RedisHistoryStore(HistoryStore):
    """History store over a ``redis.asyncio`` client.

    The client must be created with ``decode_responses=True``; use
    :meth:`from_url` unless you already manage a connection pool.

    Example:
        ```python
        store = RedisHistoryStore.from_url("redis://localhost:6379/0")
        ledger = HistoryLedger(store)
        ```
    """

    def __init__(self, client: Any):  # redis.asyncio.Redis
        self._client = client
        self._set_max = client.register_script(_SET_MAX_SCRIPT)
        self._hset_unless_exists = client.register_script(_HSET_UNLESS_EXISTS_SCRIPT)

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float | None = None) -> RedisHistoryStore:
        client = redis_lib.from_url(url, decode_responses=True, socket_timeout=socket_timeout)
        return cls(client)

    async def close(self) -> None:
        await self._client.aclose()

    # -- hashes -------------------------------------------------------------

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        with _translate("hset", key):
            await self._client.hset(key, mapping={k: str(v) for k, v in mapping.items()})

    async def hgetall(self, key: str) -> dict[str, str]:
        with _translate("hgetall", key):
            return dict(await self._client.hgetall(key) or {})

    async def hset_unless_exists(
        self,
        key: str,
        guard_field: str,
        mapping: dict[str, str],
    ) -> bool:
        args: list[str] = [guard_field]
        for field_name, value in mapping.items():
            args.extend((field_name, str(value)))
        with _translate("hset_unless_exists", key):
            written = await self._hset_unless_exists(keys=[key], args=args)
        return bool(int(written))

    # -- sorted sets --------------------------------------------------------

    async def zadd_and_count(self, key: str, member: str, score: float) -> int:
        with _translate("zadd", key):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.zadd(key, {str(member): score})
                pipe.zcard(key)
                _, count = await pipe.execute()
        return int(count)

    async def zrem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        with _translate("zrem", key):
            return int(await self._client.zrem(key, *members))

    async def zscore(self, key: str, member: str) -> float | None:
        with _translate("zscore", key):
            score = await self._client.zscore(key, str(member))
        return None if score is None else float(score)

    async def zcard(self, key: str) -> int:
        with _translate("zcard", key):
            return int(await self._client.zcard(key))

    async def zrange(
        self,
        key: str,
        start: int,
        stop: int,
        *,
        desc: bool = False,
    ) -> list[str]:
        with _translate("zrange", key):
            return list(await self._client.zrange(key, start, stop, desc=desc))

    # -- plain sets ---------------------------------------------------------

    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        with _translate("sadd", key):
            return int(await self._client.sadd(key, *members))

    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        with _translate("srem", key):
            return int(await self._client.srem(key, *members))

    async def smembers(self, key: str) -> set[str]:
        with _translate("smembers", key):
            return set(await self._client.smembers(key))

    # -- counters -----------------------------------------------------------

    async def incr(self, key: str) -> int:
        with _translate("incr", key):
            return int(await self._client.incr(key))

    async def get_int(self, key: str) -> int:
        with _translate("get", key):
            value = await self._client.get(key)
        try:
            return int(value) if value is not None else 0
        except (TypeError, ValueError):
            return 0

    async def set_max(self, key: str, value: int) -> int:
        with _translate("set_max", key):
            result = await self._set_max(keys=[key], args=[int(value)])
        return int(result)

    # -- lists --------------------------------------------------------------

    async def lpush_expire(self, key: str, value: str, ttl_seconds: int) -> int:
        with _translate("lpush", key):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.lpush(key, str(value))
                pipe.expire(key, ttl_seconds)
                length, _ = await pipe.execute()
        return int(length)

    # -- keys ---------------------------------------------------------------

    async def scan_keys(self, pattern: str) -> list[str]:
        with _translate("scan", pattern):
            return [key async for key in self._client.scan_iter(match=pattern)]

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translate("delete", keys[0]):
            return int(await self._client.delete(*keys))

    async def ping(self) -> bool:
        try:
            pong = await self._client.ping()
        except RedisConnectionError:
            return False
        return bool(pong)


__all__ = ["RedisHistoryStore"]
