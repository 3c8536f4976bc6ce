"""Redis implementations of TestStore and BatchStore.

Key structure:
- {tests_prefix}:tests - hash of test id to test JSON
- {batch_prefix}:{batch_id} - batch JSON, expiring at the batch expiry
- {batch_prefix}:index - sorted set of batch ids scored by start time
"""

import redis.asyncio as redis

from switchboard.config.models.storage import BatchStoreConfig, TestStoreConfig
from switchboard.observability.logging import get_logger
from switchboard.stores.errors import ConnectionError, NotFoundError
from switchboard.verify.models import BatchRecord, TestDefinition
from switchboard.verify.store import BatchStore, TestStore

logger = get_logger(__name__)


class RedisTestStore(TestStore):
    """Redis backed test scripts."""

    __test__ = False

    def __init__(
        self,
        client: redis.Redis,
        config: TestStoreConfig | None = None,
    ) -> None:
        self._client = client
        self._config = config or TestStoreConfig()
        self._key = f"{self._config.key_prefix}:tests"

    async def get_test(self, test_id: str) -> TestDefinition | None:
        try:
            raw = await self._client.hget(self._key, test_id)
        except redis.RedisError as e:
            logger.error("redis_get_test_error", test_id=test_id, error=str(e))
            raise ConnectionError(f"Failed to get test: {e}", cause=e) from e
        return None if raw is None else TestDefinition.model_validate_json(raw)

    async def list_tests(self) -> list[TestDefinition]:
        try:
            raw = await self._client.hgetall(self._key)
        except redis.RedisError as e:
            logger.error("redis_list_tests_error", error=str(e))
            raise ConnectionError(f"Failed to list tests: {e}", cause=e) from e
        return [TestDefinition.model_validate_json(value) for value in raw.values()]

    async def save_test(self, test: TestDefinition) -> None:
        try:
            await self._client.hset(self._key, test.test_id, test.model_dump_json())
        except redis.RedisError as e:
            logger.error("redis_save_test_error", test_id=test.test_id, error=str(e))
            raise ConnectionError(f"Failed to save test: {e}", cause=e) from e


class RedisBatchStore(BatchStore):
    """Redis backed batch records."""

    def __init__(
        self,
        client: redis.Redis,
        config: BatchStoreConfig | None = None,
    ) -> None:
        """Initialize Redis batch store.

        Args:
            client: Redis client instance
            config: Batch store configuration (uses defaults if not provided)
        """
        self._client = client
        self._config = config or BatchStoreConfig()
        self._prefix = self._config.key_prefix

    def _batch_key(self, batch_id: str) -> str:
        return f"{self._prefix}:{batch_id}"

    def _index_key(self) -> str:
        return f"{self._prefix}:index"

    async def insert_batch(self, batch: BatchRecord) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(self._batch_key(batch.batch_id), batch.model_dump_json())
                pipe.expireat(self._batch_key(batch.batch_id), batch.expiry)
                pipe.zadd(self._index_key(), {batch.batch_id: batch.start_time.timestamp()})
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("redis_insert_batch_error", batch_id=batch.batch_id, error=str(e))
            raise ConnectionError(f"Failed to insert batch: {e}", cause=e) from e

    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        try:
            raw = await self._client.get(self._batch_key(batch_id))
        except redis.RedisError as e:
            logger.error("redis_get_batch_error", batch_id=batch_id, error=str(e))
            raise ConnectionError(f"Failed to get batch: {e}", cause=e) from e
        return None if raw is None else BatchRecord.model_validate_json(raw)

    async def update_progress(self, batch_id: str, complete_count: int) -> None:
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise NotFoundError(f"Batch not found: {batch_id}")
        batch.complete_count = complete_count
        await self._replace(batch)

    async def save_result(self, batch: BatchRecord) -> None:
        await self._replace(batch)
        logger.info(
            "batch_saved",
            batch_id=batch.batch_id,
            status=batch.status.value,
            inline=batch.results_data is not None,
        )

    async def list_batches(self) -> list[BatchRecord]:
        try:
            batch_ids = await self._client.zrevrange(self._index_key(), 0, -1)
            if not batch_ids:
                return []
            raw = await self._client.mget([self._batch_key(_text(b)) for b in batch_ids])
        except redis.RedisError as e:
            logger.error("redis_list_batches_error", error=str(e))
            raise ConnectionError(f"Failed to list batches: {e}", cause=e) from e
        return [BatchRecord.model_validate_json(value) for value in raw if value is not None]

    async def _replace(self, batch: BatchRecord) -> None:
        key = self._batch_key(batch.batch_id)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, batch.model_dump_json())
                pipe.expireat(key, batch.expiry)
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("redis_save_batch_error", batch_id=batch.batch_id, error=str(e))
            raise ConnectionError(f"Failed to save batch: {e}", cause=e) from e


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value
