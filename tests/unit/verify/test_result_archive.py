"""Unit tests for result encoding and archiving."""

from datetime import UTC, datetime, timedelta

import pytest

from switchboard.config.models.storage import BatchStoreConfig
from switchboard.stores.errors import NotFoundError
from switchboard.verify.archive import ResultArchive, blob_prefix
from switchboard.verify.blobs import InMemoryBlobStore
from switchboard.verify.codec import compress, decode_payload, decompress, encode_payload
from switchboard.verify.models import (
    BatchRecord,
    Coverage,
    RuleSetCoverage,
    TestLine,
    TestLineType,
    TestResult,
)

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


def make_batch(batch_id: str = "b1") -> BatchRecord:
    return BatchRecord(
        batch_id=batch_id,
        user_id="tester",
        test_ids=["t1"],
        start_time=NOW,
        expiry=NOW + timedelta(days=7),
    )


def make_results() -> list[TestResult]:
    return [
        TestResult(
            test_id="t1",
            test_name="Test 1",
            test_lines=[TestLine(type=TestLineType.TERMINATE, success=True)],
            start_time=NOW,
            end_time=NOW,
        )
    ]


def make_coverage() -> Coverage:
    return Coverage(
        covered=50,
        uncovered=50,
        rule_sets=[RuleSetCoverage(name="Main", id="main-id", covered=50, uncovered=50)],
    )


class TestCodec:
    """Tests for gzip and base64 encoding."""

    def test_payload_is_base64_gzip_json(self) -> None:
        encoded = encode_payload({"a": [1, 2]})

        assert decompress(compress({"a": [1, 2]})) == {"a": [1, 2]}
        assert decode_payload(encoded) == {"a": [1, 2]}
        assert encoded.isascii()


class TestResultArchive:
    """Tests for packing results into batch records."""

    def test_blob_prefix(self) -> None:
        assert blob_prefix("b1", NOW) == "batches/2024/01/15/b1"

    @pytest.mark.asyncio
    async def test_small_results_stored_inline(self) -> None:
        blobs = InMemoryBlobStore()
        archive = ResultArchive(blobs)
        batch = make_batch()

        await archive.pack(batch, make_results(), make_coverage(), NOW)

        assert batch.results_data is not None
        assert batch.coverage_data is not None
        assert batch.batch_key is None
        assert blobs.keys("switchboard-batches") == []

        results, coverage = await archive.unpack(batch)
        assert results == make_results()
        assert coverage == make_coverage()

    @pytest.mark.asyncio
    async def test_large_results_overflow_to_blobs(self) -> None:
        blobs = InMemoryBlobStore()
        archive = ResultArchive(blobs, BatchStoreConfig(max_inline_bytes=1), bucket="results")
        batch = make_batch()

        await archive.pack(batch, make_results(), make_coverage(), NOW)

        assert batch.results_data is None
        assert batch.coverage_data is None
        assert batch.batch_bucket == "results"
        assert batch.batch_key == "batches/2024/01/15/b1/batch.json.gz"
        assert batch.coverage_key == "batches/2024/01/15/b1/coverage.json.gz"
        assert blobs.keys("results") == [batch.batch_key, batch.coverage_key]

        results, coverage = await archive.unpack(batch)
        assert results == make_results()
        assert coverage == make_coverage()

    @pytest.mark.asyncio
    async def test_unpack_without_payloads(self) -> None:
        archive = ResultArchive(InMemoryBlobStore())

        assert await archive.unpack(make_batch()) == ([], None)

    @pytest.mark.asyncio
    async def test_unpack_missing_blob_raises(self) -> None:
        archive = ResultArchive(InMemoryBlobStore())
        batch = make_batch()
        batch.batch_key = "gone/batch.json.gz"
        batch.coverage_key = "gone/coverage.json.gz"

        with pytest.raises(NotFoundError):
            await archive.unpack(batch)
