"""
Store factory.
"""

from __future__ import annotations

from ..config import StoreConfig
from .base import HistoryStore
from .memory import InMemoryHistoryStore
from .redis import RedisHistoryStore


def build_store(config: StoreConfig) -> HistoryStore:
    backend = config.backend

    if backend == "memory":
        return InMemoryHistoryStore()

    if backend == "redis":
        return RedisHistoryStore.from_url(config.redis_url, socket_timeout=config.socket_timeout)

    raise ValueError(f"Unknown store backend: {backend!r}")


__all__ = ["build_store"]
