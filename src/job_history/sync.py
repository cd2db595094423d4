"""Thin sync wrappers for the async-first hook API.

For workers that run job payloads synchronously (thread or process pools
with no event loop). Each call runs its own event loop via asyncio.run(),
so pair them with a store whose client is not bound to a single loop.

Key design:
- Uses asyncio.run() when no event loop is active
- Raises RuntimeError if called inside an existing event loop
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Coroutine, TypeVar

if TYPE_CHECKING:
    from .ledger import HistoryLedger

T = TypeVar("T")


def _run_sync(coro: Coroutine[Any, Any, T], name: str) -> T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is not None:
        coro.close()
        raise RuntimeError(
            f"{name}() cannot be called inside an async context. "
            "Await the Job method instead."
        )

    return asyncio.run(coro)


def start_job_sync(ledger: HistoryLedger, class_name: str, job_id: str, *args: Any) -> None:
    """Sync wrapper for Job.start."""
    _run_sync(ledger.job(class_name, job_id).start(*args), "start_job_sync")


def finish_job_sync(ledger: HistoryLedger, class_name: str, job_id: str) -> None:
    """Sync wrapper for Job.finish."""
    _run_sync(ledger.job(class_name, job_id).finish(), "finish_job_sync")


def fail_job_sync(
    ledger: HistoryLedger,
    class_name: str,
    job_id: str,
    exception: BaseException,
) -> None:
    """Sync wrapper for Job.failed."""
    _run_sync(ledger.job(class_name, job_id).failed(exception), "fail_job_sync")


__all__ = [
    "start_job_sync",
    "finish_job_sync",
    "fail_job_sync",
]
