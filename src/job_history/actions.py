"""
Operator-facing actions and listing primitives.

A web or CLI front end calls these instead of driving :class:`Job` and
:class:`Cleaner` directly. Store failures surface as a single
:class:`OperationFailedError` per action; there is no partial-success
reporting.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from .errors import ErrorContext, OperationFailedError, StoreError
from .job import Job, JobRecord
from .keys import FINISHED_JOBS, JOB_LIST_NAMES

if TYPE_CHECKING:
    from .ledger import HistoryLedger

T = TypeVar("T")


@dataclass
class ClassSummary:
    """Aggregate view of one job class."""
    class_name: str
    running: int = 0
    finished: int = 0
    max_concurrent: int = 0
    total_failed: int = 0


@dataclass
class JobEntry:
    job_id: str
    record: JobRecord


@dataclass
class JobPage:
    """One page of a job list, newest first by default."""
    class_name: str
    list_name: str
    page_num: int
    page_size: int
    total: int
    entries: list[JobEntry] = field(default_factory=list)

    @property
    def num_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))


class HistoryActions:
    """Action endpoints for cancelling, deleting, retrying and purging."""

    def __init__(self, ledger: HistoryLedger):
        self.ledger = ledger

    async def _run(
        self,
        action: str,
        operation: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> T:
        try:
            return await operation()
        except StoreError as exc:
            self.ledger.logger.log_error(exc, f"Action {action} failed", action=action, **context)
            raise OperationFailedError(
                action,
                context=ErrorContext(
                    class_name=context.get("class_name"),
                    job_id=context.get("job_id"),
                    operation=action,
                ),
                cause=exc,
            ) from exc

    # -- single job ---------------------------------------------------------

    async def cancel_job(self, class_name: str, job_id: str) -> Job:
        job = self.ledger.job(class_name, job_id)
        return await self._run("cancel_job", job.cancel, class_name=class_name, job_id=job_id)

    async def delete_job(self, class_name: str, job_id: str) -> None:
        job = self.ledger.job(class_name, job_id)
        await self._run("delete_job", job.purge, class_name=class_name, job_id=job_id)

    async def retry_job(self, class_name: str, job_id: str) -> bool:
        job = self.ledger.job(class_name, job_id)
        return await self._run("retry_job", job.retry, class_name=class_name, job_id=job_id)

    async def kill_job(self, class_name: str, job_id: str) -> bool:
        job = self.ledger.job(class_name, job_id)
        return await self._run("kill_job", job.kill, class_name=class_name, job_id=job_id)

    async def job_details(self, class_name: str, job_id: str) -> JobRecord:
        job = self.ledger.job(class_name, job_id)
        return await self._run("job_details", job.load, class_name=class_name, job_id=job_id)

    # -- whole classes ------------------------------------------------------

    async def purge_class(self, class_name: str) -> int:
        cleaner = self.ledger.cleaner()
        return await self._run(
            "purge_class",
            lambda: cleaner.purge_class(class_name),
            class_name=class_name,
        )

    async def purge_all(self) -> int:
        return await self._run("purge_all", self.ledger.cleaner().purge_all_jobs)

    # -- listings -----------------------------------------------------------

    async def class_summaries(self) -> list[ClassSummary]:
        async def collect() -> list[ClassSummary]:
            summaries = []
            for class_name in await self.ledger.class_list().class_names():
                history = self.ledger.history(class_name)
                summaries.append(
                    ClassSummary(
                        class_name=class_name,
                        running=await history.num_running_jobs(),
                        finished=await history.num_finished_jobs(),
                        max_concurrent=await history.max_concurrent_jobs(),
                        total_failed=await history.total_failed_jobs(),
                    )
                )
            return summaries

        return await self._run("class_summaries", collect)

    async def job_page(
        self,
        class_name: str,
        list_name: str = FINISHED_JOBS,
        page_num: int = 1,
        page_size: int | None = None,
        *,
        desc: bool = True,
    ) -> JobPage:
        if list_name not in JOB_LIST_NAMES:
            raise ValueError(f"Unknown job list: {list_name!r}")

        history = self.ledger.history(class_name)
        job_list = getattr(history, list_name)
        size = page_size or history.page_size

        async def collect() -> JobPage:
            page = JobPage(
                class_name=class_name,
                list_name=list_name,
                page_num=max(page_num, 1),
                page_size=size,
                total=await job_list.num_jobs(),
            )
            for job in await job_list.jobs(page.page_num, size, desc=desc):
                page.entries.append(JobEntry(job_id=job.job_id, record=await job.load()))
            return page

        return await self._run("job_page", collect, class_name=class_name)


__all__ = [
    "ClassSummary",
    "JobEntry",
    "JobPage",
    "HistoryActions",
]
