"""
Key-value store adapters for the history ledger.

This module provides:
- HistoryStore: the store interface the ledger is written against
- InMemoryHistoryStore: process-local implementation for tests
- RedisHistoryStore: redis.asyncio implementation for production
"""

from .base import HistoryStore
from .memory import InMemoryHistoryStore
from .factory import build_store
from .redis import RedisHistoryStore

__all__ = [
    "HistoryStore",
    "InMemoryHistoryStore",
    "RedisHistoryStore",
    "build_store",
]
