"""
Tests for execution hooks and sync wrappers.
"""

import asyncio

import pytest

from job_history.hooks import job_history, new_job_id, track_job
from job_history.job import CANCEL_MESSAGE
from job_history.sync import fail_job_sync, finish_job_sync, start_job_sync


class TestTrackJob:
    """Test the async context manager."""

    @pytest.mark.asyncio
    async def test_success(self, ledger):
        async with track_job(ledger, "ReportJob", "42", "weekly") as job:
            assert await job.running_jobs.includes_job("42") is True

        job.reset()
        assert await job.is_finished() is True
        assert await job.is_succeeded() is True
        assert await job.args() == ["weekly"]

    @pytest.mark.asyncio
    async def test_failure_recorded_and_reraised(self, ledger):
        with pytest.raises(ValueError, match="bad region"):
            async with track_job(ledger, "ReportJob", "42"):
                raise ValueError("bad region")

        job = ledger.job("ReportJob", "42")
        assert await job.error() == "bad region"
        assert await job.total_failed_jobs() == 1

    @pytest.mark.asyncio
    async def test_task_cancellation_recorded_as_cancel(self, ledger):
        entered = asyncio.Event()

        async def payload():
            async with track_job(ledger, "ReportJob", "42"):
                entered.set()
                await asyncio.sleep(3600)

        task = asyncio.create_task(payload())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        job = ledger.job("ReportJob", "42")
        assert await job.error() == CANCEL_MESSAGE
        assert await job.running_jobs.includes_job("42") is False


class TestDecorator:
    """Test the job_history decorator."""

    @pytest.mark.asyncio
    async def test_records_each_call(self, ledger):
        ids = iter(["a", "b"])

        @job_history(ledger, "ReportJob", job_id_factory=lambda: next(ids))
        async def build_report(period, *, verbose=False):
            return f"report:{period}"

        assert await build_report("weekly", verbose=True) == "report:weekly"
        assert await build_report("daily") == "report:daily"

        history = ledger.history("ReportJob")
        assert await history.finished_jobs.all_job_ids() == ["a", "b"]
        assert await ledger.job("ReportJob", "a").args() == ["weekly"]

    @pytest.mark.asyncio
    async def test_default_class_name(self, ledger):
        @job_history(ledger)
        async def nightly_cleanup():
            return None

        await nightly_cleanup()

        names = await ledger.class_list().class_names()
        assert len(names) == 1
        assert names[0].endswith("nightly_cleanup")

    @pytest.mark.asyncio
    async def test_failure(self, ledger):
        @job_history(ledger, "ReportJob", job_id_factory=lambda: "x")
        async def explode():
            raise RuntimeError("kaboom")

        with pytest.raises(RuntimeError):
            await explode()

        assert await ledger.job("ReportJob", "x").error() == "kaboom"

    def test_new_job_id_unique(self):
        assert new_job_id() != new_job_id()
        assert len(new_job_id()) == 32


class TestSyncWrappers:
    """Test the sync entry points."""

    def test_start_and_finish(self, ledger):
        start_job_sync(ledger, "ReportJob", "42", "weekly")
        finish_job_sync(ledger, "ReportJob", "42")

        record = asyncio.run(ledger.job("ReportJob", "42").load())
        assert record.finished is True
        assert record.succeeded is True

    def test_fail(self, ledger):
        start_job_sync(ledger, "ReportJob", "42")
        fail_job_sync(ledger, "ReportJob", "42", RuntimeError("boom"))

        record = asyncio.run(ledger.job("ReportJob", "42").load())
        assert record.error == "boom"

    @pytest.mark.asyncio
    async def test_inside_event_loop(self, ledger):
        with pytest.raises(RuntimeError, match="async context"):
            start_job_sync(ledger, "ReportJob", "42")

        assert await ledger.job("ReportJob", "42").running_jobs.num_jobs() == 0
