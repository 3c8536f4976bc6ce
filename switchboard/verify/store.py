"""Batch and test store abstract interfaces."""

from abc import ABC, abstractmethod

from switchboard.verify.models import BatchRecord, TestDefinition


class TestStore(ABC):
    """Abstract interface for stored test scripts."""

    __test__ = False

    @abstractmethod
    async def get_test(self, test_id: str) -> TestDefinition | None:
        """Get a test by id."""
        pass

    @abstractmethod
    async def list_tests(self) -> list[TestDefinition]:
        """Get every test."""
        pass

    @abstractmethod
    async def save_test(self, test: TestDefinition) -> None:
        """Insert or replace a test."""
        pass


class BatchStore(ABC):
    """Abstract interface for batch records.

    A batch is inserted when submitted, receives progress updates while
    it runs and is replaced once by its terminal save.
    """

    @abstractmethod
    async def insert_batch(self, batch: BatchRecord) -> None:
        """Insert a new batch."""
        pass

    @abstractmethod
    async def get_batch(self, batch_id: str) -> BatchRecord | None:
        """Get a batch by id, None when absent or expired."""
        pass

    @abstractmethod
    async def update_progress(self, batch_id: str, complete_count: int) -> None:
        """Record how many tests have finished.

        Raises:
            NotFoundError: If the batch does not exist
        """
        pass

    @abstractmethod
    async def save_result(self, batch: BatchRecord) -> None:
        """Replace a batch with its terminal state."""
        pass

    @abstractmethod
    async def list_batches(self) -> list[BatchRecord]:
        """List unexpired batches, newest first."""
        pass
