"""Test script, test result, coverage and batch models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from switchboard.interactive.models import InteractiveRequest, InteractiveResponse


class TestLineType(str, Enum):
    """Directives understood in a test script."""

    __test__ = False

    MESSAGE = "message"
    INPUT = "input"
    QUEUE = "queue"
    TERMINATE = "terminate"
    EXTERNAL_NUMBER = "externalNumber"
    ATTRIBUTE = "attribute"
    STATE = "state"


class TestDefinition(BaseModel):
    """A stored test: where the call enters and the script to replay."""

    __test__ = False

    test_id: str = Field(..., description="Unique test identifier")
    name: str = Field(..., description="Test name, used to order results")
    folder: str = Field(default="/", description="Organisational folder path")
    test_reference: str | None = Field(default=None, description="External reference")
    end_point: str = Field(..., description="Endpoint the simulated call enters by")
    customer_phone_number: str | None = None
    test_date_time: datetime | None = Field(
        default=None,
        description="Simulated call time, defaults to now",
    )
    contact_attributes: dict[str, Any] = Field(default_factory=dict)
    payload: str = Field(default="", description="Newline delimited test script")


class TestLine(BaseModel):
    """One parsed script directive and its outcome."""

    __test__ = False

    type: TestLineType
    payload: Any = None
    success: bool | None = Field(default=None, description="None until the line is checked")
    warning: bool = False
    warnings: list[str] = Field(default_factory=list)
    info: list[str] = Field(default_factory=list)
    done: bool = Field(default=False, exclude=True)

    def add_warning(self, warning: str) -> None:
        self.warning = True
        self.warnings.append(warning)

    def add_info(self, info: str) -> None:
        self.info.append(info)


class Interaction(BaseModel):
    """A request sent to the simulator and the response it produced."""

    request: InteractiveRequest
    response: InteractiveResponse
    time_millis: int = 0


class TestResult(BaseModel):
    """Outcome of one test as stored with its batch."""

    __test__ = False

    test_id: str
    test_name: str
    test_reference: str | None = None
    contact_id: str | None = None
    customer_phone_number: str | None = None
    end_point: str | None = None
    test_date_time: datetime | None = None
    success: bool = True
    warning: bool = False
    warnings: list[str] = Field(default_factory=list)
    test_lines: list[TestLine] = Field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    interactions: list[Interaction] = Field(default_factory=list)
    last_state: dict[str, Any] = Field(default_factory=dict)


@dataclass
class TestContext:
    """Working record for one test while it runs.

    Lines referenced by the message stack and the first queue, terminate
    and external number checks are the same objects held in lines.
    """

    __test__ = False

    test: TestDefinition
    lines: list[TestLine] = field(default_factory=list)
    cursor: int = -1
    message_stack: list[TestLine] = field(default_factory=list)
    next_input: TestLine | None = None
    first_queue: TestLine | None = None
    first_terminate: TestLine | None = None
    first_external_number: TestLine | None = None
    attribute_lines: list[TestLine] = field(default_factory=list)
    state_lines: list[TestLine] = field(default_factory=list)
    contact_id: str | None = None
    interactions: list[Interaction] = field(default_factory=list)
    last_response: InteractiveResponse | None = None
    last_state: dict[str, Any] = field(default_factory=dict)
    success: bool = True
    warning: bool = False
    warnings: list[str] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None

    def add_warning(self, warning: str) -> None:
        self.warning = True
        self.warnings.append(warning)

    def to_result(self) -> TestResult:
        """Final result, with line outcomes folded into the test flags."""
        success = self.success and all(line.success is not False for line in self.lines)
        warning = self.warning or any(line.warning for line in self.lines)
        return TestResult(
            test_id=self.test.test_id,
            test_name=self.test.name,
            test_reference=self.test.test_reference,
            contact_id=self.contact_id,
            customer_phone_number=self.test.customer_phone_number,
            end_point=self.test.end_point,
            test_date_time=self.test.test_date_time,
            success=success,
            warning=warning,
            warnings=list(self.warnings),
            test_lines=list(self.lines),
            start_time=self.start_time,
            end_time=self.end_time,
            interactions=list(self.interactions),
            last_state=self.last_state,
        )


# Coverage


class RuleCoverage(BaseModel):
    """How often a rule was reached."""

    name: str
    id: str
    count: int = 0


class RuleSetCoverage(BaseModel):
    """Share of a rule set's rules reached at least once."""

    name: str
    id: str
    covered: int = 0
    uncovered: int = 100
    count: int = 0
    rules: list[RuleCoverage] = Field(default_factory=list)


class Coverage(BaseModel):
    """Rule coverage across every test in a batch."""

    covered: int = 0
    uncovered: int = 100
    rule_sets: list[RuleSetCoverage] = Field(default_factory=list)


# Batches


class BatchStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class BatchRecord(BaseModel):
    """Persisted batch.

    Results and coverage are stored gzip compressed and base64 encoded,
    either inline or, when too large, in blob storage under batch_key
    and coverage_key.
    """

    batch_id: str
    user_id: str
    folder: str | None = None
    recursive: bool = False
    provided_test_ids: list[str] | None = None
    test_ids: list[str] = Field(default_factory=list)
    status: BatchStatus = BatchStatus.RUNNING
    start_time: datetime
    end_time: datetime | None = None
    complete: bool = False
    test_count: int = 0
    complete_count: int = 0
    success: bool | None = None
    warning: bool | None = None
    error: str | None = None
    expiry: datetime

    results_data: str | None = None
    coverage_data: str | None = None
    batch_bucket: str | None = None
    batch_key: str | None = None
    coverage_key: str | None = None


class BatchDetail(BaseModel):
    """A batch with its results and coverage decoded."""

    batch: BatchRecord
    results: list[TestResult] = Field(default_factory=list)
    coverage: Coverage | None = None
