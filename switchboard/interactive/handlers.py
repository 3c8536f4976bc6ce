"""Simulated platform behaviour for each rule type.

The telephony platform normally renders non-local rules. In simulation
each type produces an InteractiveResponse describing what the caller
would hear or where the call would go. Rules that collect input keep a
CurrentRule_phase of "input" or "confirm" between requests.
"""

import re
from datetime import date, datetime

from jinja2 import TemplateError

from switchboard.inference.errors import RuleConfigError, UnknownRuleTypeError
from switchboard.inference.handlers import LocalRuleHandlers
from switchboard.inference.integration import (
    INTEGRATION_ERROR_CAUSE,
    INTEGRATION_STATUS,
    IntegrationRunner,
)
from switchboard.inference.models import ProcessingState
from switchboard.inference.orchestrator import Clock, utc_now
from switchboard.interactive.models import InteractiveResponse
from switchboard.observability.logging import get_logger
from switchboard.rules.evaluator import is_number
from switchboard.rules.models import Rule, RuleType
from switchboard.rules.templating import render
from switchboard.state.models import NEXT_RULE_SET, SYSTEM, SessionState

logger = get_logger(__name__)

PHASE_INPUT = "input"
PHASE_CONFIRM = "confirm"

NO_INPUT = "NOINPUT"
CONFIRM_DIGIT = "1"
DTMF_INPUT_MAX_ERRORS = 3

_NUMBER = re.compile(r"^[0-9]*$")
_PHONE = re.compile(r"^0[0-9]{9}$")
_DATE = re.compile(r"^[0-3][0-9][0-1][0-9][1-2][0-9]{3}$")


def merge_prompts(*prompts: str | None) -> str:
    """Join the non-empty prompts with a single space."""
    return " ".join(p.strip() for p in prompts if p and p.strip())


def is_valid_dtmf_input(
    value: str,
    data_type: str,
    min_length: int,
    max_length: int,
    today: date,
) -> bool:
    """Validate captured digits against a DTMFInput data type.

    Raises:
        RuleConfigError: If the data type is not supported
    """
    if len(value) < min_length or len(value) > max_length:
        return False

    match data_type:
        case "Number":
            return bool(_NUMBER.match(value))
        case "Phone":
            return bool(_PHONE.match(value))
        case "Date":
            if not _DATE.match(value):
                return False
            try:
                datetime.strptime(value, "%d%m%Y")
            except ValueError:
                return False
            return True
        case "CreditCardExpiry":
            if len(value) != 4 or not _NUMBER.match(value):
                return False
            month = int(value[:2])
            year = int(value[2:])
            if month < 1 or month > 12:
                return False
            this_year = today.year % 100
            return year > this_year or (year == this_year and month >= today.month)
        case _:
            raise RuleConfigError(f"Unhandled DTMFInput data type: {data_type}")


class SimulatedRuleHandlers:
    """Produces simulated platform responses for the active rule."""

    def __init__(
        self,
        local: LocalRuleHandlers,
        integrations: IntegrationRunner | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize handlers.

        Args:
            local: Handlers shared with the inference orchestrator
            integrations: Runner for Integration rules
            clock: Source of the current time
        """
        self._local = local
        self._integrations = integrations
        self._clock = clock

    async def execute(self, rule: Rule, state: SessionState) -> InteractiveResponse:
        """Run a rule that has just become current.

        Raises:
            RuleConfigError: If the rule is missing required parameters
            UnknownRuleTypeError: If the rule type cannot be simulated
        """
        match rule.type:
            case RuleType.RULE_SET:
                self._local.rule_set(rule, state, ProcessingState())
                return self._response(rule, state, message=rule.params.get("message") or None)
            case (
                RuleType.UPDATE_STATES
                | RuleType.SET_ATTRIBUTES
                | RuleType.TEXT_INFERENCE
                | RuleType.DISTRIBUTION
            ):
                await self._local.execute(rule, state, ProcessingState())
                return self._response(rule, state)
            case RuleType.METRIC:
                return self.metric(rule, state)
            case RuleType.MESSAGE:
                message = self._required(rule, state, "message")
                return self._response(rule, state, message=message)
            case RuleType.QUEUE:
                queue = self._required(rule, state, "queueName")
                return self._response(
                    rule,
                    state,
                    queue=queue,
                    message=state.get_param("message") or None,
                )
            case RuleType.TERMINATE:
                return self._response(rule, state, terminate=True)
            case RuleType.EXTERNAL_NUMBER:
                number = self._required(rule, state, "externalNumber")
                return self._response(rule, state, external_number=number)
            case RuleType.SMS_MESSAGE:
                return self.sms_message(rule, state)
            case RuleType.DTMF_MENU:
                self._validate_menu(rule, state)
                return self._offer(rule, state)
            case RuleType.DTMF_INPUT:
                self._validate_input(rule, state)
                return self._offer(rule, state)
            case RuleType.INTEGRATION:
                return await self.integration(rule, state)
            case _:
                raise UnknownRuleTypeError(
                    f"Interactive simulation does not support rule type: {rule.type.value}",
                    contact_id=state.contact_id,
                )

    async def input(
        self,
        rule: Rule,
        state: SessionState,
        value: str | None,
    ) -> InteractiveResponse:
        """Handle caller input for a rule in its input phase."""
        match rule.type:
            case RuleType.DTMF_MENU:
                return self.dtmf_menu_input(rule, state, value)
            case RuleType.DTMF_INPUT:
                return self.dtmf_input(rule, state, value)
            case _:
                raise UnknownRuleTypeError(
                    f"Rule type: {rule.type.value} does not accept input",
                    contact_id=state.contact_id,
                )

    async def confirm(
        self,
        rule: Rule,
        state: SessionState,
        value: str | None,
    ) -> InteractiveResponse:
        """Handle caller input for a rule in its confirm phase."""
        if rule.type != RuleType.DTMF_INPUT:
            raise UnknownRuleTypeError(
                f"Rule type: {rule.type.value} does not accept confirmation",
                contact_id=state.contact_id,
            )
        return self.dtmf_input_confirm(rule, state, value)

    # Simple rules

    def metric(self, rule: Rule, state: SessionState) -> InteractiveResponse:
        name = self._required(rule, state, "metricName")
        value = self._required(rule, state, "metricValue")
        return self._response(rule, state, message=f"Metric: {name} Value: {value}")

    def sms_message(self, rule: Rule, state: SessionState) -> InteractiveResponse:
        message = self._required(rule, state, "message")
        phone_number_key = self._required(rule, state, "phoneNumberKey")
        phone_number = state.get(phone_number_key)
        if phone_number is None:
            raise RuleConfigError(
                f"Could not locate phone number with state key: {phone_number_key}",
                contact_id=state.contact_id,
            )
        return self._response(rule, state, message=f"SMS: {phone_number} Message: {message}")

    async def integration(self, rule: Rule, state: SessionState) -> InteractiveResponse:
        """Run the integration to completion or timeout."""
        function_name = self._required(rule, state, "functionName")
        if self._integrations is None:
            raise RuleConfigError(
                f"No integration runner available for rule: {rule.name}",
                contact_id=state.contact_id,
            )

        outcome = await self._integrations.run(state.contact_id)
        status = outcome.get(INTEGRATION_STATUS)
        cause = outcome.get(INTEGRATION_ERROR_CAUSE)

        message = f"Function: {function_name} IntegrationStatus: {status}"
        if cause is not None:
            message += f"\nCause: {cause}"
        return self._response(
            rule,
            outcome,
            message=message,
            integration_status=status,
            integration_error_cause=cause,
        )

    # DTMFMenu

    def dtmf_menu_input(
        self,
        rule: Rule,
        state: SessionState,
        value: str | None,
    ) -> InteractiveResponse:
        """Route on a menu selection, counting unmatched selections."""
        self._validate_menu(rule, state)
        if value is None:
            raise RuleConfigError("DTMFMenu input is missing", contact_id=state.contact_id)

        next_rule_set = state.get_param(f"dtmf{value}")
        if next_rule_set:
            logger.info(
                "dtmf_menu_selected",
                contact_id=state.contact_id,
                selection=value,
                next_rule_set=next_rule_set,
            )
            system = dict(state.get(SYSTEM) or {})
            system["LastSelectedDTMF"] = value
            state.set(SYSTEM, system)
            state.set(NEXT_RULE_SET, next_rule_set)
            state.set_param("validInput", "true")
            return self._response(rule, state)

        error_count = self._error_count(state) + 1
        state.set_param("errorCount", str(error_count))
        state.set_param("validInput", "false")
        error_message = state.get_param(f"errorMessage{error_count}")
        input_count = int(float(state.get_param("inputCount")))

        if error_count < input_count:
            return self._response(
                rule,
                state,
                input_required=True,
                message=merge_prompts(error_message, state.get_param("offerMessage")),
            )

        error_rule_set = state.get_param("errorRuleSetName")
        if value == NO_INPUT:
            error_rule_set = state.get_param("noInputRuleSetName")

        logger.info(
            "dtmf_menu_errors_exhausted",
            contact_id=state.contact_id,
            error_count=error_count,
            error_rule_set=error_rule_set,
        )
        if error_rule_set:
            state.set(NEXT_RULE_SET, error_rule_set)
            return self._response(rule, state, message=error_message)
        return self._response(rule, state, terminate=True, message=error_message)

    # DTMFInput

    def dtmf_input(
        self,
        rule: Rule,
        state: SessionState,
        value: str | None,
    ) -> InteractiveResponse:
        """Validate captured digits, then confirm or store them."""
        self._validate_input(rule, state)
        if not value:
            raise RuleConfigError("DTMFInput input is required", contact_id=state.contact_id)

        valid = is_valid_dtmf_input(
            value,
            state.get_param("dataType"),
            int(float(state.get_param("minLength"))),
            int(float(state.get_param("maxLength"))),
            self._clock().date(),
        )
        if not valid:
            logger.info("dtmf_input_invalid", contact_id=state.contact_id)
            state.set_param("validInput", "false")
            return self._input_error(rule, state, reprompt=True)

        output_key = state.get_param("outputStateKey")
        state.set_param("validInput", "true")
        state.set_param("input", value)

        confirmation = self._render_confirmation(state, output_key, value)
        if not confirmation:
            state.set(output_key, value)
            return self._response(rule, state)

        state.set_param("phase", PHASE_CONFIRM)
        return self._response(rule, state, input_required=True, message=confirmation)

    def dtmf_input_confirm(
        self,
        rule: Rule,
        state: SessionState,
        value: str | None,
    ) -> InteractiveResponse:
        """Store confirmed digits, or go back to collecting them."""
        self._validate_input(rule, state)
        if not value:
            raise RuleConfigError("DTMFInput confirmation is required", contact_id=state.contact_id)

        if value == CONFIRM_DIGIT:
            state.set(state.get_param("outputStateKey"), state.get_param("input"))
            return self._response(rule, state)

        response = self._input_error(rule, state, reprompt=False)
        if response.input_required:
            state.set_param("phase", PHASE_INPUT)
            state.set_param("input", None)
            state.set_param("validInput", None)
        return response

    def _input_error(self, rule: Rule, state: SessionState, reprompt: bool) -> InteractiveResponse:
        error_count = self._error_count(state) + 1
        state.set_param("errorCount", str(error_count))
        error_message = state.get_param(f"errorMessage{error_count}")
        offer = state.get_param("offerMessage")

        if error_count >= DTMF_INPUT_MAX_ERRORS:
            state.set(NEXT_RULE_SET, state.get_param("errorRuleSetName"))
            return self._response(rule, state, message=error_message)

        message = merge_prompts(error_message, offer) if reprompt else offer
        return self._response(rule, state, input_required=True, message=message)

    def _render_confirmation(self, state: SessionState, output_key: str, value: str) -> str:
        template = state.get_param("confirmationMessage")
        if not template:
            return ""
        values = dict(state.values)
        values[output_key] = value
        try:
            return render(str(template), values).strip()
        except TemplateError as e:
            raise RuleConfigError(
                f"Invalid confirmation message template: {e}",
                contact_id=state.contact_id,
            ) from e

    # Shared

    def _offer(self, rule: Rule, state: SessionState) -> InteractiveResponse:
        state.set_param("phase", PHASE_INPUT)
        return self._response(
            rule,
            state,
            input_required=True,
            message=state.get_param("offerMessage"),
        )

    def _validate_menu(self, rule: Rule, state: SessionState) -> None:
        for name in ("inputCount", "offerMessage", "errorMessage1"):
            self._required(rule, state, name)
        input_count = state.get_param("inputCount")
        if not is_number(input_count):
            raise RuleConfigError(
                f"DTMFMenu rule: {rule.name} has a non numeric inputCount",
                contact_id=state.contact_id,
            )
        for required in range(2, min(int(float(input_count)), 3) + 1):
            self._required(rule, state, f"errorMessage{required}")

    def _validate_input(self, rule: Rule, state: SessionState) -> None:
        for name in (
            "offerMessage",
            "outputStateKey",
            "errorRuleSetName",
            "dataType",
            "minLength",
            "maxLength",
        ):
            self._required(rule, state, name)

    @staticmethod
    def _error_count(state: SessionState) -> int:
        count = state.get_param("errorCount")
        return int(float(count)) if is_number(count) else 0

    @staticmethod
    def _required(rule: Rule, state: SessionState, name: str) -> str:
        value = state.get_param(name)
        if value is None or value == "":
            raise RuleConfigError(
                f"{rule.type.value} rule: {rule.name} is missing required parameter: {name}",
                contact_id=state.contact_id,
            )
        return str(value)

    @staticmethod
    def _response(rule: Rule, state: SessionState, **fields) -> InteractiveResponse:
        return InteractiveResponse(
            contact_id=state.contact_id,
            rule_set=state.current_rule_set,
            rule=rule.name,
            rule_type=rule.type.value,
            **fields,
        )
