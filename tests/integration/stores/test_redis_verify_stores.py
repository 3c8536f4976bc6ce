"""Integration tests for RedisTestStore and RedisBatchStore."""

from datetime import UTC, datetime, timedelta

import pytest
import redis.asyncio as redis

from switchboard.config.models.storage import BatchStoreConfig, TestStoreConfig
from switchboard.stores.errors import NotFoundError
from switchboard.verify.models import BatchRecord, BatchStatus
from switchboard.verify.stores.redis import RedisBatchStore, RedisTestStore
from tests.factories import TestDefinitionFactory


@pytest.fixture
def test_store(redis_client: redis.Redis, key_prefix: str, clean_redis) -> RedisTestStore:
    return RedisTestStore(redis_client, TestStoreConfig(key_prefix=key_prefix))


@pytest.fixture
def batch_store(redis_client: redis.Redis, key_prefix: str, clean_redis) -> RedisBatchStore:
    return RedisBatchStore(redis_client, BatchStoreConfig(key_prefix=key_prefix))


def make_batch(batch_id: str, start_time: datetime) -> BatchRecord:
    return BatchRecord(
        batch_id=batch_id,
        user_id="user-1",
        test_ids=["test-1", "test-2"],
        test_count=2,
        start_time=start_time,
        expiry=start_time + timedelta(hours=1),
    )


@pytest.mark.integration
@pytest.mark.asyncio
class TestRedisTestStore:
    """Integration tests for test script persistence."""

    async def test_save_and_get(self, test_store):
        """Saved tests load back by id."""
        test = TestDefinitionFactory.create(test_id="t-1", payload="message: Hello")
        await test_store.save_test(test)

        loaded = await test_store.get_test("t-1")

        assert loaded == test

    async def test_get_missing(self, test_store):
        """Unknown ids return None."""
        assert await test_store.get_test("missing") is None

    async def test_list_tests(self, test_store):
        """Every saved test is listed."""
        await test_store.save_test(TestDefinitionFactory.create(test_id="t-1", name="One"))
        await test_store.save_test(TestDefinitionFactory.create(test_id="t-2", name="Two"))

        tests = await test_store.list_tests()

        assert sorted(test.test_id for test in tests) == ["t-1", "t-2"]


@pytest.mark.integration
@pytest.mark.asyncio
class TestRedisBatchStore:
    """Integration tests for batch record persistence."""

    async def test_insert_and_get(self, batch_store):
        """Inserted batches load back unchanged."""
        batch = make_batch("b-1", datetime.now(UTC))
        await batch_store.insert_batch(batch)

        loaded = await batch_store.get_batch("b-1")

        assert loaded == batch
        assert loaded.status == BatchStatus.RUNNING

    async def test_get_missing(self, batch_store):
        """Unknown batch ids return None."""
        assert await batch_store.get_batch("missing") is None

    async def test_batch_expires(self, batch_store, redis_client, key_prefix):
        """Batch keys expire at the batch expiry."""
        await batch_store.insert_batch(make_batch("b-1", datetime.now(UTC)))

        ttl = await redis_client.ttl(f"{key_prefix}:b-1")

        assert 0 < ttl <= 3600

    async def test_update_progress(self, batch_store):
        """Progress updates only change the completed count."""
        await batch_store.insert_batch(make_batch("b-1", datetime.now(UTC)))

        await batch_store.update_progress("b-1", 1)
        loaded = await batch_store.get_batch("b-1")

        assert loaded.complete_count == 1
        assert loaded.complete is False

    async def test_update_progress_missing_batch(self, batch_store):
        """Progress on an unknown batch raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await batch_store.update_progress("missing", 1)

    async def test_save_result(self, batch_store):
        """Completed batches keep their inline results."""
        batch = make_batch("b-1", datetime.now(UTC))
        await batch_store.insert_batch(batch)

        batch.status = BatchStatus.COMPLETE
        batch.complete = True
        batch.complete_count = 2
        batch.success = True
        batch.results_data = "H4sIAAAAAAAA"
        await batch_store.save_result(batch)

        loaded = await batch_store.get_batch("b-1")

        assert loaded.status == BatchStatus.COMPLETE
        assert loaded.success is True
        assert loaded.results_data == "H4sIAAAAAAAA"

    async def test_list_newest_first(self, batch_store):
        """Batches list by start time, newest first."""
        now = datetime.now(UTC)
        await batch_store.insert_batch(make_batch("older", now - timedelta(minutes=5)))
        await batch_store.insert_batch(make_batch("newer", now))

        batches = await batch_store.list_batches()

        assert [batch.batch_id for batch in batches] == ["newer", "older"]
