"""
Tests for the Redis store using a mocked redis.asyncio client.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from job_history.errors import StoreConnectionError, StoreError, StoreTimeoutError
from job_history.store.redis import RedisHistoryStore


@pytest.fixture
def scripts():
    return {"set_max": AsyncMock(), "hset_unless_exists": AsyncMock()}


@pytest.fixture
def pipe():
    pipeline = MagicMock()
    pipeline.__aenter__.return_value = pipeline
    pipeline.__aexit__.return_value = False
    pipeline.execute = AsyncMock()
    return pipeline


@pytest.fixture
def client(scripts, pipe):
    mock = MagicMock()
    mock.register_script.side_effect = [scripts["set_max"], scripts["hset_unless_exists"]]
    mock.pipeline.return_value = pipe
    for name in (
        "hset", "hgetall", "zrem", "zscore", "zcard", "zrange",
        "sadd", "srem", "smembers", "incr", "get", "delete", "ping", "aclose",
    ):
        setattr(mock, name, AsyncMock())
    return mock


@pytest.fixture
def redis_store(client) -> RedisHistoryStore:
    return RedisHistoryStore(client)


class TestAtomicPrimitives:
    """Test the scripted and pipelined operations."""

    @pytest.mark.asyncio
    async def test_zadd_and_count_uses_transaction(self, redis_store, client, pipe):
        pipe.execute.return_value = [1, 3]

        assert await redis_store.zadd_and_count("z", "42", 1.5) == 3
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.zadd.assert_called_once_with("z", {"42": 1.5})
        pipe.zcard.assert_called_once_with("z")

    @pytest.mark.asyncio
    async def test_lpush_expire(self, redis_store, pipe):
        pipe.execute.return_value = [2, True]

        assert await redis_store.lpush_expire("cutting_block_w1", "4242", 60) == 2
        pipe.lpush.assert_called_once_with("cutting_block_w1", "4242")
        pipe.expire.assert_called_once_with("cutting_block_w1", 60)

    @pytest.mark.asyncio
    async def test_set_max(self, redis_store, scripts):
        scripts["set_max"].return_value = 7

        assert await redis_store.set_max("m", 5) == 7
        scripts["set_max"].assert_awaited_once_with(keys=["m"], args=[5])

    @pytest.mark.asyncio
    async def test_hset_unless_exists(self, redis_store, scripts):
        scripts["hset_unless_exists"].return_value = 1

        written = await redis_store.hset_unless_exists(
            "job_history.A.1", "end_time", {"end_time": "t", "error": "boom"}
        )

        assert written is True
        scripts["hset_unless_exists"].assert_awaited_once_with(
            keys=["job_history.A.1"],
            args=["end_time", "end_time", "t", "error", "boom"],
        )

    @pytest.mark.asyncio
    async def test_hset_unless_exists_guarded(self, redis_store, scripts):
        scripts["hset_unless_exists"].return_value = 0

        assert await redis_store.hset_unless_exists("k", "end_time", {"end_time": "t"}) is False


class TestPlainCommands:
    """Test the one-command wrappers."""

    @pytest.mark.asyncio
    async def test_hset_stringifies(self, redis_store, client):
        await redis_store.hset("h", {"pid": 4242})

        client.hset.assert_awaited_once_with("h", mapping={"pid": "4242"})

    @pytest.mark.asyncio
    async def test_zscore(self, redis_store, client):
        client.zscore.return_value = None
        assert await redis_store.zscore("z", "a") is None

        client.zscore.return_value = "12.5"
        assert await redis_store.zscore("z", "a") == 12.5

    @pytest.mark.asyncio
    async def test_zrange_desc(self, redis_store, client):
        client.zrange.return_value = ["b", "a"]

        assert await redis_store.zrange("z", 0, 9, desc=True) == ["b", "a"]
        client.zrange.assert_awaited_once_with("z", 0, 9, desc=True)

    @pytest.mark.asyncio
    async def test_get_int(self, redis_store, client):
        client.get.return_value = None
        assert await redis_store.get_int("c") == 0

        client.get.return_value = "garbage"
        assert await redis_store.get_int("c") == 0

        client.get.return_value = "12"
        assert await redis_store.get_int("c") == 12

    @pytest.mark.asyncio
    async def test_empty_member_lists_skip_round_trip(self, redis_store, client):
        assert await redis_store.zrem("z") == 0
        assert await redis_store.sadd("s") == 0
        assert await redis_store.delete() == 0

        client.zrem.assert_not_awaited()
        client.sadd.assert_not_awaited()
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scan_keys(self, redis_store, client):
        async def scan_iter(match):
            for key in ("job_history.A.1", "job_history.A.running_jobs"):
                yield key

        client.scan_iter = scan_iter

        assert await redis_store.scan_keys("job_history.A.*") == [
            "job_history.A.1",
            "job_history.A.running_jobs",
        ]

    @pytest.mark.asyncio
    async def test_close(self, redis_store, client):
        await redis_store.close()

        client.aclose.assert_awaited_once()


class TestErrorTranslation:
    """Test redis-py exceptions map onto store errors."""

    @pytest.mark.asyncio
    async def test_connection_error(self, redis_store, client):
        client.hgetall.side_effect = RedisConnectionError("refused")

        with pytest.raises(StoreConnectionError) as exc_info:
            await redis_store.hgetall("job_history.A.1")

        assert exc_info.value.retryable is True
        assert exc_info.value.context.key == "job_history.A.1"
        assert exc_info.value.context.operation == "hgetall"

    @pytest.mark.asyncio
    async def test_timeout(self, redis_store, client):
        client.incr.side_effect = RedisTimeoutError("slow")

        with pytest.raises(StoreTimeoutError):
            await redis_store.incr("c")

    @pytest.mark.asyncio
    async def test_other_redis_error(self, redis_store, client):
        client.sadd.side_effect = ResponseError("WRONGTYPE Operation against a key")

        with pytest.raises(StoreError, match="WRONGTYPE") as exc_info:
            await redis_store.sadd("s", "a")

        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value.cause, ResponseError)

    @pytest.mark.asyncio
    async def test_pipeline_error(self, redis_store, pipe):
        pipe.execute.side_effect = RedisConnectionError("reset by peer")

        with pytest.raises(StoreConnectionError):
            await redis_store.zadd_and_count("z", "a", 1.0)

    @pytest.mark.asyncio
    async def test_ping_reports_down(self, redis_store, client):
        client.ping.side_effect = RedisConnectionError("refused")

        assert await redis_store.ping() is False

    @pytest.mark.asyncio
    async def test_ping_up(self, redis_store, client):
        client.ping.return_value = True

        assert await redis_store.ping() is True
