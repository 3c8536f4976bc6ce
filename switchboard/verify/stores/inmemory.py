"""In-memory implementations of TestStore and BatchStore."""

from datetime import UTC, datetime

from switchboard.stores.errors import NotFoundError
from switchboard.verify.models import BatchRecord, TestDefinition
from switchboard.verify.store import BatchStore, TestStore


class InMemoryTestStore(TestStore):
    """In-memory test store for testing and development."""

    __test__ = False

    def __init__(self, tests: list[TestDefinition] | None = None) -> None:
        self._tests: dict[str, TestDefinition] = {test.test_id: test for test in tests or []}

    async def get_test(self, test_id: str) -> TestDefinition | None:
        test = self._tests.get(test_id)
        return test.model_copy(deep=True) if test else None

    async def list_tests(self) -> list[TestDefinition]:
        return [test.model_copy(deep=True) for test in self._tests.values()]

    async def save_test(self, test: TestDefinition) -> None:
        self._tests[test.test_id] = test


class InMemoryBatchStore(BatchStore):
    """In-memory batch store for testing and development."""

    def __init__(self) -> None:
        self._batches: dict[str, BatchRecord] = {}

    def _live(self, batch: BatchRecord) -> bool:
        return batch.expiry > datetime.now(UTC)

    async def insert_batch(self, batch: BatchRecord) -> None:
        self._batches[batch.batch_id] = batch.model_copy(deep=True)

    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        batch = self._batches.get(batch_id)
        if batch is None or not self._live(batch):
            return None
        return batch.model_copy(deep=True)

    async def update_progress(self, batch_id: str, complete_count: int) -> None:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise NotFoundError(f"Batch not found: {batch_id}")
        batch.complete_count = complete_count

    async def save_result(self, batch: BatchRecord) -> None:
        self._batches[batch.batch_id] = batch.model_copy(deep=True)

    async def list_batches(self) -> list[BatchRecord]:
        batches = [b.model_copy(deep=True) for b in self._batches.values() if self._live(b)]
        return sorted(batches, key=lambda b: b.start_time, reverse=True)
