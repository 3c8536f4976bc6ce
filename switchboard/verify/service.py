"""Batch submission and retrieval."""

import asyncio
import uuid
from datetime import timedelta

from switchboard.config.models.storage import BatchStoreConfig
from switchboard.inference.orchestrator import Clock, utc_now
from switchboard.observability.logging import get_logger
from switchboard.verify.archive import ResultArchive
from switchboard.verify.coordinator import BatchCoordinator
from switchboard.verify.errors import BatchNotFoundError, InvalidBatchRequestError
from switchboard.verify.models import BatchDetail, BatchRecord, BatchStatus
from switchboard.verify.store import BatchStore, TestStore

logger = get_logger(__name__)


def in_folder(test_folder: str, folder: str, recursive: bool) -> bool:
    """Whether a test folder is selected by a folder scope."""
    if recursive:
        return test_folder.startswith(folder)
    return test_folder == folder


class BatchService:
    """Creates batches and runs them in the background."""

    def __init__(
        self,
        batch_store: BatchStore,
        test_store: TestStore,
        coordinator: BatchCoordinator,
        archive: ResultArchive,
        config: BatchStoreConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._batches = batch_store
        self._tests = test_store
        self._coordinator = coordinator
        self._archive = archive
        self._config = config or BatchStoreConfig()
        self._clock = clock
        self._tasks: set[asyncio.Task[BatchRecord]] = set()

    async def start(
        self,
        user_id: str,
        test_ids: list[str] | None = None,
        folder: str | None = None,
        recursive: bool = False,
    ) -> BatchRecord:
        """Create a RUNNING batch and schedule its execution.

        Args:
            user_id: Requesting user
            test_ids: Explicit tests to run, takes precedence over folder
            folder: Folder scope used when no test ids are given
            recursive: Include tests in sub folders of folder

        Returns:
            The inserted batch record

        Raises:
            InvalidBatchRequestError: If the request selects no tests
        """
        if test_ids is not None:
            if not test_ids:
                raise InvalidBatchRequestError("At least one test id is required")
            selected = list(test_ids)
        else:
            if not folder:
                raise InvalidBatchRequestError("A folder is required when no test ids are given")
            tests = sorted(await self._tests.list_tests(), key=lambda test: test.name)
            selected = [test.test_id for test in tests if in_folder(test.folder, folder, recursive)]
            if not selected:
                raise InvalidBatchRequestError(f"No tests found in folder: {folder}")

        now = self._clock()
        batch = BatchRecord(
            batch_id=str(uuid.uuid4()),
            user_id=user_id,
            folder=folder,
            recursive=recursive,
            provided_test_ids=test_ids,
            test_ids=selected,
            status=BatchStatus.RUNNING,
            start_time=now,
            test_count=len(selected),
            complete_count=0,
            expiry=now + timedelta(hours=self._config.expiry_hours),
        )
        await self._batches.insert_batch(batch)
        logger.info(
            "batch_created",
            batch_id=batch.batch_id,
            user_id=user_id,
            test_count=batch.test_count,
        )

        task = asyncio.create_task(self._coordinator.run(batch.model_copy(deep=True)))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return batch

    def _on_done(self, task: asyncio.Task[BatchRecord]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("batch_task_failed", error=str(task.exception()))

    async def wait(self) -> None:
        """Wait for every running batch to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def get(self, batch_id: str) -> BatchDetail:
        """Get a batch with its results and coverage decoded.

        Raises:
            BatchNotFoundError: If the batch does not exist or has expired
        """
        batch = await self._batches.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError(f"Batch not found: {batch_id}", batch_id=batch_id)
        results, coverage = await self._archive.unpack(batch)
        return BatchDetail(batch=batch, results=results, coverage=coverage)

    async def list_batches(self) -> list[BatchRecord]:
        """List live batches, newest first, without their payloads."""
        batches = await self._batches.list_batches()
        return [
            batch.model_copy(update={"results_data": None, "coverage_data": None})
            for batch in batches
        ]
