"""Unit tests for BatchCoordinator."""

from datetime import UTC, datetime, timedelta

import pytest

from switchboard.config.models.batch import BatchConfig
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.stores import InMemoryRuleConfigStore
from switchboard.stores.errors import ConnectionError
from switchboard.verify.archive import ResultArchive
from switchboard.verify.blobs import InMemoryBlobStore
from switchboard.verify.coordinator import BatchCoordinator
from switchboard.verify.models import (
    BatchRecord,
    BatchStatus,
    TestDefinition,
    TestResult,
)
from switchboard.verify.stores import InMemoryBatchStore, InMemoryTestStore
from tests.factories import RuleFactory, RuleSetFactory, TestDefinitionFactory

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


class FakeInterpreter:
    """Passes every test unless its payload says otherwise."""

    def __init__(self) -> None:
        self.ran: list[str] = []

    async def run(self, test: TestDefinition) -> TestResult:
        self.ran.append(test.test_id)
        return TestResult(
            test_id=test.test_id,
            test_name=test.name,
            success=test.payload != "fail",
            warning=test.payload == "warn",
        )


class FailingRuleStore(InMemoryRuleConfigStore):
    async def get_last_change(self) -> str | None:
        raise ConnectionError("rule store offline")


def make_batch(*test_ids: str) -> BatchRecord:
    return BatchRecord(
        batch_id="b1",
        user_id="tester",
        test_ids=list(test_ids),
        test_count=len(test_ids),
        start_time=datetime.now(UTC),
        expiry=datetime.now(UTC) + timedelta(days=1),
    )


@pytest.fixture
def batch_store() -> InMemoryBatchStore:
    return InMemoryBatchStore()


@pytest.fixture
def test_store() -> InMemoryTestStore:
    return InMemoryTestStore(
        [
            TestDefinitionFactory.create(test_id="t1", name="B test"),
            TestDefinitionFactory.create(test_id="t2", name="A test", payload="warn"),
            TestDefinitionFactory.create(test_id="t3", name="C test", payload="fail"),
        ]
    )


@pytest.fixture
def rule_store() -> InMemoryRuleConfigStore:
    return InMemoryRuleConfigStore(
        rule_sets=[RuleSetFactory.create(name="Main", rules=[RuleFactory.terminate()])]
    )


def coordinator(
    batch_store: InMemoryBatchStore,
    test_store: InMemoryTestStore,
    rule_store: InMemoryRuleConfigStore,
    interpreter: FakeInterpreter,
    batch_size: int = 2,
) -> BatchCoordinator:
    return BatchCoordinator(
        batch_store,
        test_store,
        interpreter,
        RuleSetCache(rule_store),
        ResultArchive(InMemoryBlobStore()),
        BatchConfig(batch_size=batch_size),
        clock=lambda: NOW,
    )


class TestBatchCoordinator:
    """Tests for running batches."""

    @pytest.mark.asyncio
    async def test_runs_every_test(
        self,
        batch_store: InMemoryBatchStore,
        test_store: InMemoryTestStore,
        rule_store: InMemoryRuleConfigStore,
    ) -> None:
        interpreter = FakeInterpreter()
        batch = make_batch("t1", "t2")
        await batch_store.insert_batch(batch)

        saved = await coordinator(batch_store, test_store, rule_store, interpreter).run(batch)

        assert sorted(interpreter.ran) == ["t1", "t2"]
        assert saved.status == BatchStatus.COMPLETE
        assert saved.complete is True
        assert saved.complete_count == 2
        assert saved.success is True
        assert saved.warning is True
        assert saved.end_time == NOW
        stored = await batch_store.get_batch("b1")
        assert stored.status == BatchStatus.COMPLETE
        assert stored.results_data is not None

    @pytest.mark.asyncio
    async def test_results_sorted_by_name(
        self,
        batch_store: InMemoryBatchStore,
        test_store: InMemoryTestStore,
        rule_store: InMemoryRuleConfigStore,
    ) -> None:
        batch = make_batch("t3", "t1", "t2")
        await batch_store.insert_batch(batch)
        runner = coordinator(batch_store, test_store, rule_store, FakeInterpreter(), batch_size=1)

        saved = await runner.run(batch)

        archive = ResultArchive(InMemoryBlobStore())
        results, coverage = await archive.unpack(saved)
        assert [result.test_name for result in results] == ["A test", "B test", "C test"]
        assert saved.success is False
        assert coverage is not None
        assert coverage.rule_sets[0].name == "Main"

    @pytest.mark.asyncio
    async def test_missing_test_fails(
        self,
        batch_store: InMemoryBatchStore,
        test_store: InMemoryTestStore,
        rule_store: InMemoryRuleConfigStore,
    ) -> None:
        batch = make_batch("t1", "gone")
        await batch_store.insert_batch(batch)

        saved = await coordinator(batch_store, test_store, rule_store, FakeInterpreter()).run(
            batch
        )

        results, _ = await ResultArchive(InMemoryBlobStore()).unpack(saved)
        missing = next(result for result in results if result.test_id == "gone")
        assert missing.success is False
        assert missing.warnings == ["Failed to find test: gone"]
        assert saved.success is False
        assert saved.status == BatchStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_failure_outside_tests_saves_error(
        self,
        batch_store: InMemoryBatchStore,
        test_store: InMemoryTestStore,
    ) -> None:
        batch = make_batch("t1")
        await batch_store.insert_batch(batch)

        saved = await coordinator(
            batch_store, test_store, FailingRuleStore(), FakeInterpreter()
        ).run(batch)

        assert saved.status == BatchStatus.ERROR
        assert saved.complete is True
        assert saved.success is False
        assert saved.error == "rule store offline"
        results, coverage = await ResultArchive(InMemoryBlobStore()).unpack(saved)
        assert [result.test_id for result in results] == ["t1"]
        assert coverage is not None
        assert coverage.rule_sets == []
        assert (await batch_store.get_batch("b1")).status == BatchStatus.ERROR
