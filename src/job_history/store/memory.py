"""
In-memory history store.

Suitable for testing and single-process deployments. Mirrors the Redis
semantics the ledger depends on, including key expiry and the rule that an
emptied collection no longer exists.
"""

from __future__ import annotations

import asyncio
import fnmatch
import time
from typing import Any, Callable

from .base import HistoryStore


class InMemoryHistoryStore(HistoryStore):
    """Process-local store. Thread-safe via asyncio.Lock."""

    def __init__(self, clock: Callable[[], float] | None = None):
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self._clock = clock or time.monotonic
        self._lock = asyncio.Lock()

    # -- internals ----------------------------------------------------------

    def _purge_expired(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._data.pop(key, None)
            self._expires.pop(key, None)

    def _get(self, key: str, kind: type) -> Any:
        self._purge_expired(key)
        value = self._data.get(key)
        if value is None:
            return None
        if not isinstance(value, kind):
            raise TypeError(f"WRONGTYPE key {key!r} holds {type(value).__name__}")
        return value

    def _drop_if_empty(self, key: str) -> None:
        if not self._data.get(key):
            self._data.pop(key, None)
            self._expires.pop(key, None)

    # -- hashes -------------------------------------------------------------

    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        async with self._lock:
            record = self._get(key, dict)
            if record is None:
                record = self._data[key] = {}
            record.update({k: str(v) for k, v in mapping.items()})

    async def hgetall(self, key: str) -> dict[str, str]:
        async with self._lock:
            return dict(self._get(key, dict) or {})

    async def hset_unless_exists(
        self,
        key: str,
        guard_field: str,
        mapping: dict[str, str],
    ) -> bool:
        async with self._lock:
            record = self._get(key, dict)
            if record is not None and guard_field in record:
                return False
            if record is None:
                record = self._data[key] = {}
            record.update({k: str(v) for k, v in mapping.items()})
            return True

    # -- sorted sets --------------------------------------------------------

    async def zadd_and_count(self, key: str, member: str, score: float) -> int:
        async with self._lock:
            zset = self._get(key, _SortedSet)
            if zset is None:
                zset = self._data[key] = _SortedSet()
            zset[str(member)] = float(score)
            return len(zset)

    async def zrem(self, key: str, *members: str) -> int:
        async with self._lock:
            zset = self._get(key, _SortedSet)
            if zset is None:
                return 0
            removed = sum(1 for m in members if zset.pop(str(m), None) is not None)
            self._drop_if_empty(key)
            return removed

    async def zscore(self, key: str, member: str) -> float | None:
        async with self._lock:
            zset = self._get(key, _SortedSet)
            if zset is None:
                return None
            return zset.get(str(member))

    async def zcard(self, key: str) -> int:
        async with self._lock:
            return len(self._get(key, _SortedSet) or ())

    async def zrange(
        self,
        key: str,
        start: int,
        stop: int,
        *,
        desc: bool = False,
    ) -> list[str]:
        async with self._lock:
            zset = self._get(key, _SortedSet)
            if not zset:
                return []
            ordered = sorted(zset.items(), key=lambda item: (item[1], item[0]), reverse=desc)
            members = [member for member, _ in ordered]
            return _redis_slice(members, start, stop)

    # -- plain sets ---------------------------------------------------------

    async def sadd(self, key: str, *members: str) -> int:
        async with self._lock:
            current = self._get(key, set)
            if current is None:
                current = self._data[key] = set()
            before = len(current)
            current.update(str(m) for m in members)
            return len(current) - before

    async def srem(self, key: str, *members: str) -> int:
        async with self._lock:
            current = self._get(key, set)
            if current is None:
                return 0
            before = len(current)
            current.difference_update(str(m) for m in members)
            removed = before - len(current)
            self._drop_if_empty(key)
            return removed

    async def smembers(self, key: str) -> set[str]:
        async with self._lock:
            return set(self._get(key, set) or ())

    # -- counters -----------------------------------------------------------

    async def incr(self, key: str) -> int:
        async with self._lock:
            value = self._get(key, str)
            number = int(value) + 1 if value is not None else 1
            self._data[key] = str(number)
            return number

    async def get_int(self, key: str) -> int:
        async with self._lock:
            return _to_int(self._get(key, str))

    async def set_max(self, key: str, value: int) -> int:
        async with self._lock:
            current = _to_int(self._get(key, str))
            if value > current:
                self._data[key] = str(value)
                return value
            return current

    # -- lists --------------------------------------------------------------

    async def lpush_expire(self, key: str, value: str, ttl_seconds: int) -> int:
        async with self._lock:
            items = self._get(key, list)
            if items is None:
                items = self._data[key] = []
            items.insert(0, str(value))
            self._expires[key] = self._clock() + ttl_seconds
            return len(items)

    async def lrange(self, key: str) -> list[str]:
        """Whole list contents; test helper with no Redis-store counterpart."""
        async with self._lock:
            return list(self._get(key, list) or ())

    # -- keys ---------------------------------------------------------------

    async def scan_keys(self, pattern: str) -> list[str]:
        translated = _fnmatch_pattern(pattern)
        async with self._lock:
            for key in list(self._data):
                self._purge_expired(key)
            return [key for key in self._data if fnmatch.fnmatchcase(key, translated)]

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            removed = 0
            for key in keys:
                self._purge_expired(key)
                if self._data.pop(key, None) is not None:
                    removed += 1
                self._expires.pop(key, None)
            return removed

    async def ping(self) -> bool:
        return True


class _SortedSet(dict):
    """member -> score"""


def _to_int(value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _redis_slice(items: list[str], start: int, stop: int) -> list[str]:
    size = len(items)
    if start < 0:
        start = max(size + start, 0)
    if stop < 0:
        stop = size + stop
    if start > stop or start >= size:
        return []
    return items[start:stop + 1]


def _fnmatch_pattern(pattern: str) -> str:
    """Rewrite Redis backslash escapes as single-character fnmatch sets."""
    out: list[str] = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            char = next(chars, "\\")
            out.append(f"[{char}]" if char in "*?[]\\" else char)
        else:
            out.append(char)
    return "".join(out)


__all__ = ["InMemoryHistoryStore"]
