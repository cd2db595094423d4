"""
Per-class history aggregates and limits.
"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

from .config import DEFAULT_PAGE_SIZE, ClassConfig
from .job_list import JobList
from .keys import FINISHED_JOBS, LINEAR_JOBS, RUNNING_JOBS

if TYPE_CHECKING:
    from .ledger import HistoryLedger
    from .registry import JobClass


class HistoryBase:
    """History state shared by every job of one class.

    Resolves the class's keys, counters and configured limits, and owns the
    sweeps that keep the running and finished sets bounded.
    """

    PAGE_SIZE = DEFAULT_PAGE_SIZE

    def __init__(self, ledger: HistoryLedger, class_name: str):
        self.ledger = ledger
        self.store = ledger.store
        self.class_name = str(class_name)

    # -- keys ---------------------------------------------------------------

    @property
    def job_history_base_key(self) -> str:
        return self.ledger.keys.class_key(self.class_name)

    @property
    def max_running_key(self) -> str:
        return self.ledger.keys.max_running_key(self.class_name)

    @property
    def total_failed_key(self) -> str:
        return self.ledger.keys.total_failed_key(self.class_name)

    # -- configuration ------------------------------------------------------

    @cached_property
    def config(self) -> ClassConfig:
        return self.ledger.class_config(self.class_name)

    @property
    def class_history_len(self) -> int:
        return self.config.history_len

    @property
    def class_purge_age(self) -> float:
        return self.config.purge_age_seconds

    @property
    def class_exclude_from_linear_history(self) -> bool:
        return self.config.exclude_from_linear_history

    @property
    def page_size(self) -> int:
        return self.config.page_size

    @property
    def job_class(self) -> JobClass | None:
        return self.ledger.registry.get(self.class_name)

    # -- job lists ----------------------------------------------------------

    @cached_property
    def running_jobs(self) -> JobList:
        return JobList(self.ledger, self.class_name, RUNNING_JOBS)

    @cached_property
    def finished_jobs(self) -> JobList:
        return JobList(self.ledger, self.class_name, FINISHED_JOBS)

    @cached_property
    def linear_jobs(self) -> JobList:
        return JobList(self.ledger, self.class_name, LINEAR_JOBS)

    # -- aggregates ---------------------------------------------------------

    async def max_concurrent_jobs(self) -> int:
        return await self.store.get_int(self.max_running_key)

    async def total_failed_jobs(self) -> int:
        return await self.store.get_int(self.total_failed_key)

    async def num_running_jobs(self) -> int:
        return await self.running_jobs.num_jobs()

    async def num_finished_jobs(self) -> int:
        return await self.finished_jobs.num_jobs()

    # -- sweeps -------------------------------------------------------------

    async def clean_old_running_jobs(self, exclude: str | None = None) -> list[str]:
        """Cancel stale running jobs until the running set is at its target size.

        Jobs with no start time or older than the purge age go first; after
        that the oldest remaining jobs are cancelled. ``exclude`` (the job
        being started) is never touched.

        Returns:
            Ids of the jobs that were cancelled.
        """
        cancelled: list[str] = []
        cutoff = self.ledger.clock() - self.class_purge_age

        for job_id in await self.running_jobs.all_job_ids():
            if job_id == exclude:
                continue
            job = self.ledger.job(self.class_name, job_id)
            record = await job.load()
            if record.finished:
                # finished but never left the running set
                await self.running_jobs.remove_job(job_id)
                continue
            started = record.start_time
            if started is None or started.timestamp() < cutoff:
                await job.cancel()
                cancelled.append(job_id)

        excess = await self.running_jobs.num_jobs() - self.config.running_target
        if excess > 0:
            oldest = await self.running_jobs.oldest_job_ids(excess + 1)
            for job_id in [j for j in oldest if j != exclude][:excess]:
                await self.ledger.job(self.class_name, job_id).cancel()
                cancelled.append(job_id)

        if cancelled and self.ledger.settings.logging.log_sweeps:
            self.ledger.logger.warning(
                f"Swept {len(cancelled)} running {self.class_name} jobs",
                class_name=self.class_name,
                cancelled=cancelled,
            )
        return cancelled

    async def clean_old_finished_jobs(self) -> list[str]:
        """Drop the oldest finished jobs beyond the history length.

        Dropped ids leave the finished set; their records are deleted only if
        no other set (e.g. linear history) still tracks them.
        """
        excess = await self.finished_jobs.num_jobs() - self.class_history_len
        if excess <= 0:
            return []

        trimmed = await self.finished_jobs.oldest_job_ids(excess)
        for job_id in trimmed:
            await self.finished_jobs.remove_job(job_id)
            await self.ledger.job(self.class_name, job_id).safe_purge()

        if self.ledger.settings.logging.log_sweeps:
            self.ledger.logger.debug(
                f"Trimmed {len(trimmed)} finished {self.class_name} jobs",
                class_name=self.class_name,
            )
        return trimmed


__all__ = ["HistoryBase"]
