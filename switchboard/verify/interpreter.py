"""Replays one test script against the interactive simulator.

The interpreter starts a simulated call and keeps stepping it until the
call reaches a queue, terminates, dials an external number, or asks for
input the script cannot supply. Messages are matched against the
message lines collected since the previous input line. Attribute and
state lines are checked once against the final session state.
"""

import re
import time

from switchboard.config.models.batch import BatchConfig
from switchboard.inference.orchestrator import Clock, utc_now
from switchboard.interactive.models import (
    InteractiveEvent,
    InteractiveRequest,
    InteractiveResponse,
)
from switchboard.observability.logging import get_logger
from switchboard.verify.client import InferenceClient
from switchboard.verify.matching import (
    fail_remaining_lines,
    fail_remaining_messages,
    match_message,
    validate_attributes,
    validate_states,
)
from switchboard.verify.models import (
    Interaction,
    TestContext,
    TestDefinition,
    TestLine,
    TestLineType,
    TestResult,
)
from switchboard.verify.parser import ScriptParseError, parse_script

logger = get_logger(__name__)


def _first(lines: list[TestLine], line_type: TestLineType) -> TestLine | None:
    return next((line for line in lines if line.type == line_type), None)


def _all(lines: list[TestLine], line_type: TestLineType) -> list[TestLine]:
    return [line for line in lines if line.type == line_type]


def prepare(context: TestContext) -> None:
    """Locate the lines checked once per test."""
    context.first_queue = _first(context.lines, TestLineType.QUEUE)
    context.first_terminate = _first(context.lines, TestLineType.TERMINATE)
    context.first_external_number = _first(context.lines, TestLineType.EXTERNAL_NUMBER)
    context.attribute_lines = _all(context.lines, TestLineType.ATTRIBUTE)
    context.state_lines = _all(context.lines, TestLineType.STATE)


def compute_next_input(context: TestContext) -> None:
    """Advance to the next input line, stacking the message lines before it.

    Messages still unmatched from the previous stack are failed first.
    """
    context.cursor += 1
    context.next_input = None
    fail_remaining_messages(context)

    while context.cursor < len(context.lines):
        candidate = context.lines[context.cursor]
        if candidate.type == TestLineType.INPUT:
            context.next_input = candidate
            break
        if candidate.type == TestLineType.MESSAGE:
            candidate.done = False
            context.message_stack.append(candidate)
        context.cursor += 1


class TestInterpreter:
    """Runs test scripts through an inference client."""

    __test__ = False

    def __init__(
        self,
        client: InferenceClient,
        config: BatchConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._config = config or BatchConfig()
        self._clock = clock

    async def run(self, test: TestDefinition) -> TestResult:
        """Run one test to completion.

        Never raises: every failure is recorded on the result.
        """
        context = TestContext(test=test, start_time=self._clock())

        try:
            context.lines = parse_script(test.payload)
        except ScriptParseError as e:
            logger.warning("test_script_invalid", test_id=test.test_id, error=str(e))
            context.lines = e.parsed
            context.success = False
            context.add_warning(f"Failed to parse test script: {e}")
            fail_remaining_lines(context)
            return self._finish(context)

        prepare(context)
        compute_next_input(context)

        try:
            await self._drive(context)
            validate_attributes(context, context.last_state)
            validate_states(context, context.last_state)
        except Exception as e:
            logger.error("test_inference_failed", test_id=test.test_id, error=str(e))
            context.success = False
            context.add_warning(f"Failed to inference: {e}")

        fail_remaining_messages(context)
        fail_remaining_lines(context)
        return self._finish(context)

    async def _drive(self, context: TestContext) -> None:
        test = context.test
        response = await self._send(
            context,
            InteractiveRequest(
                event_type=InteractiveEvent.NEW_INTERACTION,
                end_point=test.end_point,
                customer_phone_number=test.customer_phone_number,
                interaction_date_time=test.test_date_time,
                contact_attributes=test.contact_attributes,
            ),
        )
        context.contact_id = response.contact_id

        while True:
            if response.message:
                match_message(context, response.message)

            if response.queue is not None:
                self._check_queue(context, response.queue)
                return
            if response.terminate:
                self._check_terminate(context)
                return
            if response.external_number is not None:
                self._check_external_number(context, response.external_number)
                return
            if response.disconnected:
                context.add_warning("Contact disconnected")
                return

            if len(context.interactions) >= self._config.max_interactions:
                context.success = False
                context.add_warning(
                    f"Exceeded {self._config.max_interactions} interactions without finishing"
                )
                return

            if response.input_required:
                next_input = context.next_input
                if next_input is None:
                    context.success = False
                    context.add_warning("Encountered input with no more input lines")
                    return
                next_input.success = True
                next_input.add_info(f"Prompt message: {response.message}")
                response = await self._send(
                    context,
                    InteractiveRequest(
                        event_type=InteractiveEvent.INPUT,
                        contact_id=context.contact_id,
                        input=str(next_input.payload),
                    ),
                )
                compute_next_input(context)
            else:
                response = await self._send(
                    context,
                    InteractiveRequest(
                        event_type=InteractiveEvent.NEXT_RULE,
                        contact_id=context.contact_id,
                    ),
                )

    async def _send(
        self,
        context: TestContext,
        request: InteractiveRequest,
    ) -> InteractiveResponse:
        started = time.perf_counter()
        response = await self._client.send(request)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        context.last_response = response
        context.last_state = response.state
        context.interactions.append(
            Interaction(
                request=request,
                response=response.model_copy(update={"state": {}}),
                time_millis=elapsed_ms,
            )
        )
        return response

    @staticmethod
    def _check_queue(context: TestContext, queue: str) -> None:
        line = context.first_queue
        if line is None:
            context.add_warning(f"Reached queue: {queue} with no queue check")
            return
        expected = str(line.payload)
        if expected == queue or re.search(expected, queue):
            line.success = True
            line.add_info(f"Matched queue: {queue}")
        else:
            line.success = False
            line.add_warning(f"Expected: {expected}\nActual: {queue}")

    @staticmethod
    def _check_terminate(context: TestContext) -> None:
        line = context.first_terminate
        if line is None:
            context.add_warning("Reached terminate with no terminate check")
            return
        line.success = True

    @staticmethod
    def _check_external_number(context: TestContext, number: str) -> None:
        line = context.first_external_number
        if line is None:
            context.add_warning(
                f"Reached external number: {number} with no external number check"
            )
            return
        expected = str(line.payload)
        if re.search(expected, number):
            line.success = True
            line.add_info(f"Matched external number: {number}")
        else:
            line.success = False
            line.add_warning(f"Expected: {expected}\nActual: {number}")

    def _finish(self, context: TestContext) -> TestResult:
        context.end_time = self._clock()
        result = context.to_result()
        logger.info(
            "test_complete",
            test_id=result.test_id,
            success=result.success,
            warning=result.warning,
            interactions=len(result.interactions),
        )
        return result
