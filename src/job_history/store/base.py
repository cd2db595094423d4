"""
Key-value store interface for the history ledger.

The ledger only needs a handful of primitives: hashes for job records,
sorted sets for the running/finished/linear job lists, a plain set for the
class list, integer counters, and an expiring list for kill signals. Every
multi-key guarantee the ledger relies on is expressed as one method here so
that implementations can make it atomic natively.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class HistoryStore(ABC):
    """Abstract interface for the shared key-value store.

    Implementations must be safe for concurrent callers. Each method is a
    single atomic operation from the caller's point of view.
    """

    # -- hashes -------------------------------------------------------------

    @abstractmethod
    async def hset(self, key: str, mapping: dict[str, str]) -> None:
        """Set several hash fields in one write."""
        ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Return all fields of a hash (empty dict when missing)."""
        ...

    @abstractmethod
    async def hset_unless_exists(
        self,
        key: str,
        guard_field: str,
        mapping: dict[str, str],
    ) -> bool:
        """Write ``mapping`` only if ``guard_field`` is not already set.

        Returns:
            True if the fields were written.
        """
        ...

    # -- sorted sets --------------------------------------------------------

    @abstractmethod
    async def zadd_and_count(self, key: str, member: str, score: float) -> int:
        """Insert ``member`` and return the resulting cardinality atomically."""
        ...

    @abstractmethod
    async def zrem(self, key: str, *members: str) -> int:
        """Remove members, returning how many were present."""
        ...

    @abstractmethod
    async def zscore(self, key: str, member: str) -> float | None:
        """Score of ``member`` or None if absent."""
        ...

    @abstractmethod
    async def zcard(self, key: str) -> int:
        ...

    @abstractmethod
    async def zrange(
        self,
        key: str,
        start: int,
        stop: int,
        *,
        desc: bool = False,
    ) -> list[str]:
        """Members by score, inclusive ``start``/``stop`` like Redis ZRANGE."""
        ...

    # -- plain sets ---------------------------------------------------------

    @abstractmethod
    async def sadd(self, key: str, *members: str) -> int:
        ...

    @abstractmethod
    async def srem(self, key: str, *members: str) -> int:
        ...

    @abstractmethod
    async def smembers(self, key: str) -> set[str]:
        ...

    # -- counters -----------------------------------------------------------

    @abstractmethod
    async def incr(self, key: str) -> int:
        ...

    @abstractmethod
    async def get_int(self, key: str) -> int:
        """Integer value of ``key``; missing or garbled values read as 0."""
        ...

    @abstractmethod
    async def set_max(self, key: str, value: int) -> int:
        """Store ``value`` if it exceeds the current value; return the max."""
        ...

    # -- lists --------------------------------------------------------------

    @abstractmethod
    async def lpush_expire(self, key: str, value: str, ttl_seconds: int) -> int:
        """Push onto a list and (re)arm its expiry. Returns the list length."""
        ...

    # -- keys ---------------------------------------------------------------

    @abstractmethod
    async def scan_keys(self, pattern: str) -> list[str]:
        """All keys matching a glob-style ``pattern``."""
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None


__all__ = ["HistoryStore"]
