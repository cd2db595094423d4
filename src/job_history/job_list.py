"""
Job sets and the class list.

Each job class owns three :class:`JobList` instances (running, finished,
linear). They are sorted sets scored by the time a job id was added, which
gives oldest-first eviction and newest-first listing without extra indexes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .job import Job
    from .ledger import HistoryLedger


class JobList:
    """A per-class set of job ids."""

    def __init__(self, ledger: HistoryLedger, class_name: str, list_name: str):
        self._ledger = ledger
        self._store = ledger.store
        self.class_name = class_name
        self.list_name = list_name
        self.key = ledger.keys.list_key(class_name, list_name)

    def __repr__(self) -> str:
        return f"JobList({self.class_name!r}, {self.list_name!r})"

    async def add_job(self, job_id: str, class_name: str | None = None) -> int:
        """Add ``job_id`` and return the new cardinality.

        The class is recorded in the class list so listings can find it.
        """
        count = await self._store.zadd_and_count(self.key, str(job_id), self._ledger.clock())
        await self._ledger.class_list().add_class(class_name or self.class_name)
        return count

    async def remove_job(self, job_id: str) -> bool:
        return await self._store.zrem(self.key, str(job_id)) > 0

    async def includes_job(self, job_id: str) -> bool:
        return await self._store.zscore(self.key, str(job_id)) is not None

    async def num_jobs(self) -> int:
        return await self._store.zcard(self.key)

    async def job_ids(
        self,
        page_num: int = 1,
        page_size: int | None = None,
        *,
        desc: bool = True,
    ) -> list[str]:
        """One page of ids, newest first unless ``desc`` is False."""
        if page_size is None:
            page_size = self._ledger.class_config(self.class_name).page_size
        page_num = max(page_num, 1)
        start = (page_num - 1) * page_size
        return await self._store.zrange(self.key, start, start + page_size - 1, desc=desc)

    async def all_job_ids(self, *, desc: bool = False) -> list[str]:
        return await self._store.zrange(self.key, 0, -1, desc=desc)

    async def oldest_job_ids(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return await self._store.zrange(self.key, 0, count - 1)

    async def jobs(
        self,
        page_num: int = 1,
        page_size: int | None = None,
        *,
        desc: bool = True,
    ) -> list[Job]:
        ids = await self.job_ids(page_num, page_size, desc=desc)
        return [self._ledger.job(self.class_name, job_id) for job_id in ids]


class ClassList:
    """The set of job classes that have recorded history."""

    def __init__(self, ledger: HistoryLedger):
        self._store = ledger.store
        self.key = ledger.keys.class_list_key()

    async def add_class(self, class_name: str) -> None:
        await self._store.sadd(self.key, class_name)

    async def remove_class(self, class_name: str) -> None:
        await self._store.srem(self.key, class_name)

    async def class_names(self) -> list[str]:
        return sorted(await self._store.smembers(self.key))

    async def num_classes(self) -> int:
        return len(await self._store.smembers(self.key))


__all__ = ["JobList", "ClassList"]
