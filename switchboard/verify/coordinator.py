"""Runs the tests of a batch and persists the outcome.

Tests run in fixed width chunks: every test in a chunk runs concurrently
and the next chunk starts once the whole chunk has finished.
"""

import asyncio

from switchboard.config.models.batch import BatchConfig
from switchboard.inference.orchestrator import Clock, utc_now
from switchboard.observability.logging import get_logger
from switchboard.observability.metrics import ACTIVE_BATCHES, BATCH_TESTS
from switchboard.rules.cache import RuleSetCache
from switchboard.stores.errors import StoreError
from switchboard.verify.archive import ResultArchive
from switchboard.verify.coverage import compute_coverage
from switchboard.verify.interpreter import TestInterpreter
from switchboard.verify.models import BatchRecord, BatchStatus, Coverage, TestResult
from switchboard.verify.store import BatchStore, TestStore

logger = get_logger(__name__)


def _outcome(result: TestResult) -> str:
    if not result.success:
        return "failure"
    return "warning" if result.warning else "success"


class BatchCoordinator:
    """Drives a batch from RUNNING to COMPLETE or ERROR."""

    def __init__(
        self,
        batch_store: BatchStore,
        test_store: TestStore,
        interpreter: TestInterpreter,
        cache: RuleSetCache,
        archive: ResultArchive,
        config: BatchConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._batches = batch_store
        self._tests = test_store
        self._interpreter = interpreter
        self._cache = cache
        self._archive = archive
        self._config = config or BatchConfig()
        self._clock = clock

    async def run(self, batch: BatchRecord) -> BatchRecord:
        """Run every test in the batch and save the final record.

        A failure outside the tests themselves saves the batch as ERROR
        with whatever results were collected.

        Returns:
            The saved batch record
        """
        ACTIVE_BATCHES.inc()
        results: list[TestResult] = []
        batch.complete_count = 0
        size = self._config.batch_size
        logger.info("batch_started", batch_id=batch.batch_id, test_count=len(batch.test_ids))

        try:
            for start in range(0, len(batch.test_ids), size):
                chunk = batch.test_ids[start : start + size]
                logger.debug("batch_chunk_started", batch_id=batch.batch_id, test_ids=chunk)
                results.extend(
                    await asyncio.gather(*(self._run_test(batch, test_id) for test_id in chunk))
                )

            results.sort(key=lambda result: result.test_name)

            await self._cache.refresh()
            coverage = compute_coverage(self._cache.rule_sets, results)

            now = self._clock()
            batch.status = BatchStatus.COMPLETE
            batch.end_time = now
            batch.complete = True
            batch.success = all(result.success for result in results)
            batch.warning = any(result.warning for result in results)
            await self._archive.pack(batch, results, coverage, now)
            await self._batches.save_result(batch)
        except Exception as e:
            logger.error("batch_failed", batch_id=batch.batch_id, error=str(e))
            now = self._clock()
            batch.status = BatchStatus.ERROR
            batch.end_time = now
            batch.complete = True
            batch.success = False
            batch.warning = True
            batch.error = str(e)
            await self._archive.pack(batch, results, Coverage(), now)
            await self._batches.save_result(batch)
        finally:
            ACTIVE_BATCHES.dec()

        logger.info(
            "batch_complete",
            batch_id=batch.batch_id,
            status=batch.status.value,
            success=batch.success,
            warning=batch.warning,
        )
        return batch

    async def _run_test(self, batch: BatchRecord, test_id: str) -> TestResult:
        test = await self._tests.get_test(test_id)
        if test is None:
            logger.warning("batch_test_missing", batch_id=batch.batch_id, test_id=test_id)
            result = TestResult(
                test_id=test_id,
                test_name=test_id,
                success=False,
                warning=True,
                warnings=[f"Failed to find test: {test_id}"],
            )
        else:
            result = await self._interpreter.run(test)

        BATCH_TESTS.labels(outcome=_outcome(result)).inc()
        await self._record_progress(batch)
        return result

    async def _record_progress(self, batch: BatchRecord) -> None:
        batch.complete_count += 1
        logger.debug(
            "batch_progress",
            batch_id=batch.batch_id,
            complete=batch.complete_count,
            total=len(batch.test_ids),
        )
        try:
            await self._batches.update_progress(batch.batch_id, batch.complete_count)
        except StoreError as e:
            logger.warning("batch_progress_failed", batch_id=batch.batch_id, error=str(e))
