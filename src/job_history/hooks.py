"""
Execution hooks.

The execution engine wraps each job payload with :func:`track_job` (or the
:func:`job_history` decorator) so the ledger sees start, finish and failure
without the payload knowing about it.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, TypeVar

if TYPE_CHECKING:
    from .job import Job
    from .ledger import HistoryLedger

T = TypeVar("T")


def new_job_id() -> str:
    return uuid.uuid4().hex


@asynccontextmanager
async def track_job(
    ledger: HistoryLedger,
    class_name: str,
    job_id: str,
    *args: Any,
) -> AsyncIterator[Job]:
    """Record one execution of a job around the ``async with`` body.

    Exceptions are recorded as failures and re-raised; task cancellation is
    recorded as a cancel.
    """
    job = ledger.job(class_name, job_id)
    await job.start(*args)
    try:
        yield job
    except asyncio.CancelledError:
        await job.cancel()
        raise
    except Exception as exc:
        await job.failed(exc)
        raise
    else:
        await job.finish()


def job_history(
    ledger: HistoryLedger,
    class_name: str | None = None,
    *,
    job_id_factory: Callable[[], str] = new_job_id,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator recording every call of an async job function.

    Positional arguments are stored as the job's args; keyword arguments are
    not recorded.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = class_name or func.__qualname__

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            async with track_job(ledger, name, job_id_factory(), *args):
                return await func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "new_job_id",
    "track_job",
    "job_history",
]
