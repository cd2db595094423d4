#!/usr/bin/env python3
"""
Example: Job History Walkthrough

Demonstrates:
1. Wiring a HistoryLedger to a store
2. Recording jobs with track_job and the @job_history decorator
3. Reading records and per-class aggregates
4. Operator actions: cancel, retry, kill, purge

Runs against the in-memory store by default. Set JOB_HISTORY_STORE_BACKEND=redis
(and REDIS_URL) to use a Redis server instead.
"""
import asyncio
import os
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from job_history import (
    HistoryActions,
    HistoryLedger,
    JobClassRegistry,
    Settings,
    job_history,
    load_env,
    new_job_id,
    track_job,
)


# === Job payloads ===

async def build_report(period: str) -> str:
    await asyncio.sleep(0.05)
    return f"report for {period}"


async def send_mail(recipient: str) -> None:
    await asyncio.sleep(0.01)
    if "@" not in recipient:
        raise ValueError(f"Invalid recipient: {recipient}")


def enqueue_report(*args):
    print(f"  -> re-enqueued ReportJob{args}")


async def main():
    load_env()
    settings = Settings.from_env()
    if not os.getenv("JOB_HISTORY_STORE_BACKEND"):
        settings.store.backend = "memory"
    if settings.store.backend == "redis":
        print(f"Using Redis at {settings.store.redis_url}")
    else:
        print("Using the in-memory store")

    registry = JobClassRegistry()
    registry.add("ReportJob", enqueue_report, history_len=50)

    settings.logging.level = "WARNING"
    ledger = HistoryLedger(settings=settings, registry=registry)

    # === 1. Context manager ===
    print("\n=== track_job ===")
    async with track_job(ledger, "ReportJob", "42", "weekly") as job:
        print(await build_report("weekly"))

    job.reset()
    print(f"finished={await job.is_finished()} succeeded={await job.is_succeeded()}")
    print(f"duration={await job.duration():.3f}s args={await job.args()}")

    # === 2. Decorator ===
    print("\n=== @job_history ===")

    @job_history(ledger, "MailJob")
    async def mail_job(recipient: str) -> None:
        await send_mail(recipient)

    await mail_job("ops@example.com")
    try:
        await mail_job("nobody")
    except ValueError as exc:
        print(f"mail failed: {exc}")

    mail = ledger.history("MailJob")
    print(f"MailJob finished={await mail.num_finished_jobs()} failed={await mail.total_failed_jobs()}")

    # === 3. A stuck job and operator actions ===
    print("\n=== Operator actions ===")
    actions = HistoryActions(ledger)

    stuck_id = new_job_id()
    await ledger.job("ReportJob", stuck_id).start("monthly")

    print(f"kill signal published: {await actions.kill_job('ReportJob', stuck_id)}")
    cancelled = await actions.cancel_job("ReportJob", stuck_id)
    print(f"cancelled: {await cancelled.error()}")
    print(f"retry queued: {await actions.retry_job('ReportJob', stuck_id)}")

    # === 4. Listings ===
    print("\n=== Summaries ===")
    for summary in await actions.class_summaries():
        print(
            f"{summary.class_name:12} running={summary.running} finished={summary.finished} "
            f"max={summary.max_concurrent} failed={summary.total_failed}"
        )

    page = await actions.job_page("ReportJob", page_size=10)
    for entry in page.entries:
        status = "ok" if entry.record.succeeded else "failed"
        print(f"  {entry.job_id} {status} started={entry.record.start_time}")

    # === 5. Cleanup ===
    print("\n=== Purge ===")
    print(f"deleted keys: {await actions.purge_all()}")

    await ledger.close()


if __name__ == "__main__":
    asyncio.run(main())
