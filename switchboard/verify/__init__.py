"""Batch testing of rule sets.

Test scripts are replayed against the interactive simulator, checked
line by line, and aggregated per batch with rule coverage.
"""

from switchboard.verify.archive import ResultArchive
from switchboard.verify.blobs import BlobStore, FileSystemBlobStore, InMemoryBlobStore
from switchboard.verify.client import (
    InferenceClient,
    LocalInferenceClient,
    RemoteInferenceClient,
)
from switchboard.verify.coordinator import BatchCoordinator
from switchboard.verify.coverage import compute_coverage
from switchboard.verify.errors import BatchError, BatchNotFoundError, InvalidBatchRequestError
from switchboard.verify.interpreter import TestInterpreter
from switchboard.verify.models import (
    BatchDetail,
    BatchRecord,
    BatchStatus,
    Coverage,
    TestDefinition,
    TestLine,
    TestLineType,
    TestResult,
)
from switchboard.verify.parser import ScriptParseError, parse_script
from switchboard.verify.service import BatchService
from switchboard.verify.store import BatchStore, TestStore

__all__ = [
    "BatchCoordinator",
    "BatchDetail",
    "BatchError",
    "BatchNotFoundError",
    "BatchRecord",
    "BatchService",
    "BatchStatus",
    "BatchStore",
    "BlobStore",
    "Coverage",
    "FileSystemBlobStore",
    "InMemoryBlobStore",
    "InferenceClient",
    "InvalidBatchRequestError",
    "LocalInferenceClient",
    "RemoteInferenceClient",
    "ResultArchive",
    "ScriptParseError",
    "TestDefinition",
    "TestInterpreter",
    "TestLine",
    "TestLineType",
    "TestResult",
    "TestStore",
    "compute_coverage",
    "parse_script",
]
