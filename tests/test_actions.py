"""
Tests for operator actions and listings.
"""

import pytest

from job_history.actions import HistoryActions
from job_history.errors import ErrorCode, OperationFailedError, StoreConnectionError
from job_history.job import CANCEL_MESSAGE


@pytest.fixture
def actions(ledger) -> HistoryActions:
    return HistoryActions(ledger)


class TestJobActions:
    """Test single-job endpoints."""

    @pytest.mark.asyncio
    async def test_cancel_job(self, ledger, actions):
        await ledger.job("ReportJob", "42").start()

        job = await actions.cancel_job("ReportJob", "42")

        assert await job.error() == CANCEL_MESSAGE
        assert await job.running_jobs.includes_job("42") is False

    @pytest.mark.asyncio
    async def test_delete_job(self, ledger, actions, store):
        job = ledger.job("ReportJob", "42")
        await job.start()
        await job.finish()

        await actions.delete_job("ReportJob", "42")

        assert await store.hgetall(job.job_key) == {}
        assert await job.finished_jobs.includes_job("42") is False

    @pytest.mark.asyncio
    async def test_retry_job(self, ledger, actions, registry, enqueue):
        registry.add("ReportJob", enqueue)
        await ledger.job("ReportJob", "42").start("weekly")

        assert await actions.retry_job("ReportJob", "42") is True
        assert enqueue.calls == [("weekly",)]

    @pytest.mark.asyncio
    async def test_kill_job(self, ledger, actions, store):
        await ledger.job("ReportJob", "42").start()

        assert await actions.kill_job("ReportJob", "42") is True
        assert await store.lrange("cutting_block_worker-1") == ["4242"]

    @pytest.mark.asyncio
    async def test_job_details(self, ledger, actions):
        await ledger.job("ReportJob", "42").start("weekly")

        record = await actions.job_details("ReportJob", "42")

        assert record.exists is True
        assert record.args == ["weekly"]
        assert record.worker_host == "worker-1"


class TestClassActions:
    """Test whole-class endpoints."""

    @pytest.mark.asyncio
    async def test_purge_class(self, ledger, actions):
        await ledger.job("ReportJob", "42").start()

        assert await actions.purge_class("ReportJob") > 0
        assert await ledger.class_list().class_names() == []

    @pytest.mark.asyncio
    async def test_purge_all(self, ledger, actions, store):
        await ledger.job("ReportJob", "42").start()
        await ledger.job("MailJob", "1").start()

        await actions.purge_all()

        assert await store.scan_keys("job_history.*") == []

    @pytest.mark.asyncio
    async def test_class_summaries(self, ledger, actions):
        report = ledger.job("ReportJob", "42")
        await report.start()
        await report.failed(RuntimeError("boom"))
        await ledger.job("ReportJob", "43").start()
        await ledger.job("MailJob", "1").start()

        summaries = {s.class_name: s for s in await actions.class_summaries()}

        assert list(summaries) == ["MailJob", "ReportJob"]
        assert summaries["ReportJob"].running == 1
        assert summaries["ReportJob"].finished == 1
        assert summaries["ReportJob"].max_concurrent == 1
        assert summaries["ReportJob"].total_failed == 1
        assert summaries["MailJob"].running == 1


class TestJobPage:
    """Test paged listings."""

    @pytest.mark.asyncio
    async def test_paging(self, make_ledger):
        ledger = make_ledger(history_len=20)
        actions = HistoryActions(ledger)
        for i in range(7):
            job = ledger.job("ReportJob", str(i))
            await job.start(i)
            await job.finish()

        page = await actions.job_page("ReportJob", page_size=3)
        assert page.total == 7
        assert page.num_pages == 3
        assert [entry.job_id for entry in page.entries] == ["6", "5", "4"]
        assert page.entries[0].record.args == [6]

        last = await actions.job_page("ReportJob", page_num=3, page_size=3)
        assert [entry.job_id for entry in last.entries] == ["0"]

    @pytest.mark.asyncio
    async def test_running_list(self, ledger, actions):
        await ledger.job("ReportJob", "1").start()
        await ledger.job("ReportJob", "2").start()

        page = await actions.job_page("ReportJob", "running_jobs", desc=False)

        assert [entry.job_id for entry in page.entries] == ["1", "2"]
        assert page.page_size == 25

    @pytest.mark.asyncio
    async def test_empty_page(self, actions):
        page = await actions.job_page("NeverRan")

        assert page.total == 0
        assert page.num_pages == 1
        assert page.entries == []

    @pytest.mark.asyncio
    async def test_unknown_list(self, actions):
        with pytest.raises(ValueError, match="Unknown job list"):
            await actions.job_page("ReportJob", "max_jobs")


class TestStoreFailures:
    """Test that store failures surface as one error per action."""

    @pytest.mark.asyncio
    async def test_cancel_job_store_down(self, ledger, actions, store, monkeypatch):
        async def down(*args, **kwargs):
            raise StoreConnectionError("connection refused")

        monkeypatch.setattr(store, "hset_unless_exists", down)

        with pytest.raises(OperationFailedError) as exc_info:
            await actions.cancel_job("ReportJob", "42")

        error = exc_info.value
        assert error.code == ErrorCode.OPERATION_FAILED
        assert error.context.class_name == "ReportJob"
        assert error.context.job_id == "42"
        assert isinstance(error.cause, StoreConnectionError)

    @pytest.mark.asyncio
    async def test_summaries_store_down(self, actions, store, monkeypatch):
        async def down(*args, **kwargs):
            raise StoreConnectionError("connection refused")

        monkeypatch.setattr(store, "smembers", down)

        with pytest.raises(OperationFailedError, match="class_summaries"):
            await actions.class_summaries()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, actions, store, monkeypatch):
        async def broken(*args, **kwargs):
            raise TypeError("WRONGTYPE")

        monkeypatch.setattr(store, "hset_unless_exists", broken)

        with pytest.raises(TypeError):
            await actions.cancel_job("ReportJob", "42")
