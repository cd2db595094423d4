"""
A single job instance and its lifecycle.

State machine per job id:

    unstarted -> running -> finished (succeeded | failed)

``cancel`` moves any non-finished job straight to finished/failed.
``purge`` deletes the record entirely. Terminal transitions are
exactly-once: the first of finish/failed/cancel to land sets ``end_time``
and any later call leaves the record (and the failure counter) alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping

from .errors import JobHistoryError, StoreError, WorkerExitError
from .history_base import HistoryBase
from .logging import TransitionLog
from .serialization import decode_args, encode_args

if TYPE_CHECKING:
    from .ledger import HistoryLedger

CANCEL_MESSAGE = (
    "Unknown - Job failed to signal ending after the configured purge time or "
    "was canceled manually."
)


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    # records written without an offset are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _positive_int(value: str | None) -> int | None:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def exception_message(exception: BaseException) -> str:
    """Human-readable failure text stored in a job record."""
    if isinstance(exception, JobHistoryError):
        message = exception.message
    else:
        message = str(exception)
    message = message or type(exception).__name__

    if isinstance(exception, WorkerExitError):
        status = "" if exception.process_status is None else str(exception.process_status)
        return f"{message}\n\n{status}".strip()
    return message


@dataclass(frozen=True)
class JobRecord:
    """Snapshot of a job record as loaded from the store.

    Missing or garbled fields read as None; partially written records are
    normal under concurrent workers.
    """
    values: Mapping[str, str] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.values)

    @property
    def worker_host(self) -> str | None:
        return self.values.get("hostname") or None

    @property
    def worker_pid(self) -> str | None:
        return self.values.get("pid") or None

    @property
    def start_time(self) -> datetime | None:
        return _parse_time(self.values.get("start_time"))

    @property
    def end_time(self) -> datetime | None:
        return _parse_time(self.values.get("end_time"))

    @property
    def finished(self) -> bool:
        return bool(self.values.get("end_time"))

    @property
    def error(self) -> str | None:
        return self.values.get("error") or None

    @property
    def succeeded(self) -> bool:
        return not self.error

    @property
    def raw_args(self) -> str | None:
        return self.values.get("args")

    @property
    def args(self) -> list[Any]:
        return decode_args(self.raw_args)

    def duration(self, now: datetime) -> float | None:
        """Seconds between start and end (or ``now`` while running)."""
        start = self.start_time
        if start is None:
            return None
        return ((self.end_time or now) - start).total_seconds()


class Job(HistoryBase):
    """Lifecycle controller for one job id of one job class."""

    def __init__(self, ledger: HistoryLedger, class_name: str, job_id: str):
        super().__init__(ledger, class_name)
        self.job_id = str(job_id)
        self._record: JobRecord | None = None

    def __repr__(self) -> str:
        return f"Job({self.class_name!r}, {self.job_id!r})"

    @property
    def job_key(self) -> str:
        return self.ledger.keys.job_key(self.class_name, self.job_id)

    # -- loaded record ------------------------------------------------------

    async def load(self) -> JobRecord:
        """Return the record, reading it from the store on first use."""
        if self._record is None:
            self._record = JobRecord(await self.store.hgetall(self.job_key))
        return self._record

    def reset(self) -> None:
        """Forget the loaded record so the next read hits the store."""
        self._record = None

    async def worker_host(self) -> str | None:
        return (await self.load()).worker_host

    async def worker_pid(self) -> str | None:
        return (await self.load()).worker_pid

    async def start_time(self) -> datetime | None:
        return (await self.load()).start_time

    async def end_time(self) -> datetime | None:
        return (await self.load()).end_time

    async def duration(self) -> float | None:
        return (await self.load()).duration(self.ledger.now())

    async def args(self) -> list[Any]:
        return (await self.load()).args

    async def uncompressed_args(self) -> list[Any]:
        args = await self.args()
        job_class = self.job_class
        if job_class is None:
            return args
        return job_class.uncompressed_args(args)

    async def error(self) -> str | None:
        return (await self.load()).error

    async def is_succeeded(self) -> bool:
        return (await self.load()).succeeded

    async def is_finished(self) -> bool:
        return (await self.load()).finished

    # -- transitions --------------------------------------------------------

    async def start(self, *args: Any) -> Job:
        """Record the start of a run.

        A start for an id that has already finished is ignored: the finished
        record stays as it is and the id does not re-enter the running set.
        """
        self.reset()
        if await self.is_finished():
            self.ledger.logger.warning(
                f"Start of finished job {self.class_name}#{self.job_id} ignored",
                class_name=self.class_name,
                job_id=self.job_id,
            )
            return self

        num_jobs = await self.running_jobs.add_job(self.job_id, self.class_name)
        if not self.class_exclude_from_linear_history:
            await self.linear_jobs.add_job(self.job_id, self.class_name)

        await self._record_job_start(args)
        self._log_transition("started", running_count=num_jobs)
        await self._record_num_jobs(num_jobs)

        return self

    async def finish(self) -> Job:
        await self._finish_with("finished", {})
        return self

    async def failed(self, exception: BaseException) -> Job:
        await self._finish_with("failed", {"error": exception_message(exception)})
        return self

    async def cancel(self) -> Job:
        await self._finish_with("canceled", {"error": CANCEL_MESSAGE})
        return self

    async def kill(self) -> bool:
        """Ask the worker hosting this job to terminate.

        Best effort: returns False when no usable worker is recorded or the
        signal could not be published.
        """
        record = await self.load()
        host, pid = record.worker_host, record.worker_pid
        self.ledger.logger.info(
            f"Request to kill {host}:{pid}",
            class_name=self.class_name,
            job_id=self.job_id,
        )
        if not host or _positive_int(pid) is None:
            return False

        kill = self.ledger.settings.kill
        try:
            await self.store.lpush_expire(
                f"{kill.cutting_block_prefix}{host}",
                str(pid),
                kill.cutting_block_ttl_seconds,
            )
        except StoreError as exc:
            self.ledger.logger.log_error(
                exc,
                f"Kill signal for {host}:{pid} was not published",
                level=logging.WARNING,
                class_name=self.class_name,
                job_id=self.job_id,
            )
            return False
        return True

    async def retry(self) -> bool:
        """Re-enqueue the job with its recorded arguments.

        Returns False (and does nothing) when the class cannot be resolved.
        """
        job_class = self.job_class
        if job_class is None or job_class.enqueue is None:
            self.ledger.logger.info(
                f"Retry skipped, job class {self.class_name} is not registered",
                class_name=self.class_name,
                job_id=self.job_id,
            )
            return False

        await job_class.submit(*(await self.args()))
        self._log_transition("retried")
        return True

    async def safe_purge(self) -> bool:
        """Purge only if no job set still tracks this id."""
        if await self.running_jobs.includes_job(self.job_id):
            return False
        if await self.finished_jobs.includes_job(self.job_id):
            return False
        if await self.linear_jobs.includes_job(self.job_id):
            return False

        await self.purge()
        return True

    async def purge(self) -> None:
        self.reset()
        # To keep the counts honest...
        if not await self.is_finished():
            await self.cancel()

        await self._remove_from_job_lists()
        await self.store.delete(self.job_key)
        self.reset()
        self._log_transition("purged")

    # -- internals ----------------------------------------------------------

    async def _finish_with(self, transition: str, fields: dict[str, str]) -> bool:
        fields = {**fields, "end_time": self.ledger.timestamp()}
        written = await self.store.hset_unless_exists(self.job_key, "end_time", fields)

        finished_count = 0
        if written:
            if "error" in fields:
                await self.store.incr(self.total_failed_key)
            finished_count = await self.finished_jobs.add_job(self.job_id, self.class_name)
        await self.running_jobs.remove_job(self.job_id)

        self.reset()
        self._log_transition(transition, error=fields.get("error"), skipped=not written)

        if finished_count > self.class_history_len:
            await self.clean_old_finished_jobs()
        return written

    async def _remove_from_job_lists(self) -> None:
        await self.running_jobs.remove_job(self.job_id)
        await self.finished_jobs.remove_job(self.job_id)
        await self.linear_jobs.remove_job(self.job_id)

    async def _record_job_start(self, args: tuple[Any, ...]) -> None:
        host = self.ledger.host_info()
        await self.store.hset(
            self.job_key,
            {
                "start_time": self.ledger.timestamp(),
                "args": encode_args(args),
                "hostname": host.hostname,
                "pid": str(host.pid),
            },
        )
        self.reset()

    async def _record_num_jobs(self, num_jobs: int) -> None:
        await self.store.set_max(self.max_running_key, num_jobs)

        if num_jobs < self.class_history_len:
            return

        await self.clean_old_running_jobs(exclude=self.job_id)

    def _log_transition(self, transition: str, **kwargs: Any) -> None:
        if not self.ledger.settings.logging.log_transitions:
            return
        self.ledger.logger.log_transition(
            TransitionLog(
                class_name=self.class_name,
                job_id=self.job_id,
                transition=transition,
                **kwargs,
            )
        )


__all__ = [
    "CANCEL_MESSAGE",
    "Job",
    "JobRecord",
    "exception_message",
]
