"""
History ledger: the composition root.

A :class:`HistoryLedger` bundles the store, settings, job class registry,
host information and clock that every history object needs, and hands out
per-class and per-job views bound to them.
"""

from __future__ import annotations

import os
import socket
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from .config import ClassConfig, Settings, get_settings
from .keys import KeySpace
from .logging import StructuredLogger, logger_from_config
from .registry import JobClassRegistry
from .store import HistoryStore, build_store

if TYPE_CHECKING:
    from .cleaner import Cleaner
    from .history_base import HistoryBase
    from .job import Job
    from .job_list import ClassList


@dataclass(frozen=True)
class HostInfo:
    """Identity of the worker process recording a job start."""
    hostname: str
    pid: int


def local_host_info() -> HostInfo:
    return HostInfo(hostname=socket.gethostname(), pid=os.getpid())


class HistoryLedger:
    """Entry point for recording and inspecting job history.

    Example:
        ```python
        ledger = HistoryLedger(RedisHistoryStore.from_url("redis://localhost:6379/0"))

        job = ledger.job("ReportJob", "42")
        await job.start("weekly")
        await job.finish()
        ```
    """

    def __init__(
        self,
        store: HistoryStore | None = None,
        *,
        settings: Settings | None = None,
        registry: JobClassRegistry | None = None,
        host_info: Callable[[], HostInfo] | None = None,
        clock: Callable[[], float] | None = None,
        logger: StructuredLogger | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or build_store(self.settings.store)
        self.registry = registry or JobClassRegistry()
        self.keys = KeySpace(self.settings.store.key_prefix)
        self.clock = clock or time.time
        self.logger = logger or logger_from_config(self.settings.logging)
        self._host_info = host_info or local_host_info

    def host_info(self) -> HostInfo:
        return self._host_info()

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def timestamp(self) -> str:
        """Current time in the format stored in job records."""
        return self.now().isoformat()

    def class_config(self, class_name: str) -> ClassConfig:
        job_class = self.registry.get(class_name)
        overrides = job_class.config if job_class is not None else None
        return self.settings.class_config(class_name, overrides)

    def history(self, class_name: str) -> HistoryBase:
        from .history_base import HistoryBase

        return HistoryBase(self, class_name)

    def job(self, class_name: str, job_id: str) -> Job:
        from .job import Job

        return Job(self, class_name, job_id)

    def class_list(self) -> ClassList:
        from .job_list import ClassList

        return ClassList(self)

    def cleaner(self) -> Cleaner:
        from .cleaner import Cleaner

        return Cleaner(self)

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> HistoryLedger:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


__all__ = [
    "HistoryLedger",
    "HostInfo",
    "local_host_info",
]
