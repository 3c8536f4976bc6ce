"""Packing of batch results and coverage into a batch record.

Results and coverage are stored inline as base64 encoded gzip JSON. When
the pair would exceed the inline limit both are written to blob storage
instead and the record keeps their keys.
"""

from datetime import datetime

from switchboard.config.models.storage import BatchStoreConfig
from switchboard.observability.logging import get_logger
from switchboard.verify.blobs import BlobStore
from switchboard.verify.codec import compress, decode_payload, decompress, encode_payload
from switchboard.verify.models import BatchRecord, Coverage, TestResult

logger = get_logger(__name__)


def blob_prefix(batch_id: str, now: datetime) -> str:
    return f"batches/{now:%Y}/{now:%m}/{now:%d}/{batch_id}"


class ResultArchive:
    """Writes and reads the result payloads of a batch record."""

    def __init__(
        self,
        blob_store: BlobStore,
        config: BatchStoreConfig | None = None,
        bucket: str = "switchboard-batches",
    ) -> None:
        self._blobs = blob_store
        self._config = config or BatchStoreConfig()
        self._bucket = bucket

    async def pack(
        self,
        record: BatchRecord,
        results: list[TestResult],
        coverage: Coverage,
        now: datetime,
    ) -> None:
        """Attach results and coverage to the record, inline or as blobs."""
        results_json = [result.model_dump(mode="json") for result in results]
        coverage_json = coverage.model_dump(mode="json")

        results_data = encode_payload(results_json)
        coverage_data = encode_payload(coverage_json)

        if len(results_data) + len(coverage_data) <= self._config.max_inline_bytes:
            record.results_data = results_data
            record.coverage_data = coverage_data
            return

        prefix = blob_prefix(record.batch_id, now)
        batch_key = f"{prefix}/batch.json.gz"
        coverage_key = f"{prefix}/coverage.json.gz"
        await self._blobs.put(self._bucket, batch_key, compress(results_json))
        await self._blobs.put(self._bucket, coverage_key, compress(coverage_json))

        record.results_data = None
        record.coverage_data = None
        record.batch_bucket = self._bucket
        record.batch_key = batch_key
        record.coverage_key = coverage_key
        logger.info(
            "batch_results_overflowed",
            batch_id=record.batch_id,
            bucket=self._bucket,
            encoded_bytes=len(results_data) + len(coverage_data),
        )

    async def unpack(self, record: BatchRecord) -> tuple[list[TestResult], Coverage | None]:
        """Decode the results and coverage of a record.

        Raises:
            NotFoundError: If the record points at a blob that no longer exists
        """
        if record.batch_key and record.coverage_key:
            bucket = record.batch_bucket or self._bucket
            results_json = decompress(await self._blobs.get(bucket, record.batch_key))
            coverage_json = decompress(await self._blobs.get(bucket, record.coverage_key))
        else:
            results_json = decode_payload(record.results_data) if record.results_data else []
            coverage_json = decode_payload(record.coverage_data) if record.coverage_data else None

        results = [TestResult.model_validate(result) for result in results_json]
        coverage = Coverage.model_validate(coverage_json) if coverage_json else None
        return results, coverage
