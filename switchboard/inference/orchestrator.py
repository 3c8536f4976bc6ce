"""Session inference orchestrator.

Walks a contact through rule sets until a rule needs the telephony
platform:

1. Resolve the rule set: NextRuleSet, then CurrentRuleSet, then the
   dialled number's endpoint.
2. Find the next activated rule after the current one. Running off the
   end of a rule set pops the return stack.
3. Export the rule into state, then either run it locally and loop, or
   stop and hand control back to the platform.

State is persisted after every step. When a local rule changes the
rule set, the invocation restarts from a fresh read of persisted state.
"""

import copy
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from switchboard.config.models.inference import InferenceConfig
from switchboard.inference import analytics
from switchboard.inference.errors import (
    AttributeOverflowError,
    ConfigurationError,
    RuleNotFoundError,
    RuleSetExhaustedError,
)
from switchboard.inference.handlers import LocalRuleHandlers
from switchboard.inference.models import InferenceRequest, ProcessingState
from switchboard.inference.system import build_system_attributes
from switchboard.observability.logging import get_logger
from switchboard.observability.metrics import (
    INFERENCE_LATENCY,
    INFERENCE_REQUESTS,
    RULES_EVALUATED,
)
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.evaluator import RuleEvaluator, WeightedRuleEvaluator
from switchboard.rules.models import Rule, RuleSet, RuleType
from switchboard.state.models import (
    CONTACT_ATTRIBUTES,
    CURRENT_RULE,
    CURRENT_RULE_SET,
    CURRENT_RULE_TYPE,
    CUSTOMER_PHONE_NUMBER,
    NEXT_RULE_SET,
    ORIGINAL_CUSTOMER_NUMBER,
    RULE_SET_START,
    RULE_START,
    SYSTEM,
    SessionState,
    encode_value,
)
from switchboard.state.store import StateStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]

# Returned by next_rule_index when the return stack must be popped
POP_RETURN_STACK = -1


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def next_rule_index(rule_set: RuleSet, state: SessionState) -> int:
    """Index to resume evaluation from, or POP_RETURN_STACK.

    Raises:
        RuleNotFoundError: If the current rule is not in the rule set
        RuleSetExhaustedError: If the rule set is exhausted with nothing to return to
    """
    start_index = 0
    if state.current_rule is not None:
        index = rule_set.rule_index(state.current_rule)
        if index is None:
            raise RuleNotFoundError(
                f"Failed to locate rule by name: {state.current_rule} "
                f"on rule set: {rule_set.name}",
                contact_id=state.contact_id,
            )
        start_index = index + 1

    if start_index >= len(rule_set.rules):
        if state.peek_return() is not None:
            return POP_RETURN_STACK
        raise RuleSetExhaustedError(
            f"Reached the end of rule set: {rule_set.name} with no return stack",
            contact_id=state.contact_id,
        )
    return start_index


def pop_return_stack(state: SessionState) -> None:
    """Resume the rule set and rule saved on top of the return stack.

    Raises:
        RuleSetExhaustedError: If the return stack is empty
    """
    frame = state.pop_return()
    if frame is None:
        raise RuleSetExhaustedError(
            f"No return stack frame to pop in rule set: {state.current_rule_set}",
            contact_id=state.contact_id,
        )
    logger.info(
        "return_stack_popped",
        contact_id=state.contact_id,
        rule_set=frame.rule_set_name,
        rule=frame.rule_name,
    )
    state.set(CURRENT_RULE_SET, frame.rule_set_name)
    state.set(CURRENT_RULE, frame.rule_name)


def export_rule_into_state(
    state: SessionState,
    rule: Rule,
    config_items: Mapping[str, Any],
    now: datetime,
) -> None:
    """Make a rule current, replacing the previous rule's scratch keys."""
    state.clear_rule()

    flow_name = f"RulesEngine{rule.type.value}"
    for flow in config_items.get("ContactFlows") or []:
        if flow.get("Name") == flow_name:
            state.set_param("nextFlowArn", flow.get("Arn"))
            break

    state.set(CURRENT_RULE_TYPE, rule.type.value)
    state.set(CURRENT_RULE, rule.name)
    state.set(RULE_START, analytics.timestamp(now))

    for key, value in rule.params.items():
        state.set_param(key, value)


def compute_attribute_delta(
    state_attributes: Mapping[str, Any],
    platform_attributes: Mapping[str, Any],
) -> list[tuple[str, Any]]:
    """Attributes held in state that are missing or different on the platform."""
    return [
        (key, value)
        for key, value in state_attributes.items()
        if platform_attributes.get(key) != value
    ]


def export_attribute_delta(
    state: SessionState,
    platform_attributes: Mapping[str, Any],
    limit: int,
) -> int:
    """Export the attribute delta as indexed CurrentRule_ keys.

    Returns:
        Number of exported attributes

    Raises:
        AttributeOverflowError: If the delta exceeds limit, before anything is written
    """
    delta = compute_attribute_delta(state.contact_attributes, platform_attributes)
    if len(delta) > limit:
        raise AttributeOverflowError(
            f"Found: {len(delta)} contact attributes which exceeds the maximum: {limit}",
            contact_id=state.contact_id,
        )

    for index, (key, value) in enumerate(delta):
        state.set_param(f"attributeKey{index}", key)
        state.set_param(f"attributeValue{index}", encode_value(value) or "")
    state.set_param("attributeCount", str(len(delta)))
    return len(delta)


class InferenceOrchestrator:
    """Drives one contact's session through its rule sets."""

    def __init__(
        self,
        cache: RuleSetCache,
        state_store: StateStore,
        handlers: LocalRuleHandlers,
        evaluator: RuleEvaluator | None = None,
        config: InferenceConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize orchestrator.

        Args:
            cache: Rule set cache, refreshed on every invocation
            state_store: Session state store
            handlers: Local rule type handlers
            evaluator: Rule activation evaluator
            config: Inference configuration
            clock: Source of the current time
        """
        self._cache = cache
        self._store = state_store
        self._handlers = handlers
        self._config = config or InferenceConfig()
        self._evaluator = evaluator or WeightedRuleEvaluator(self._config.mobile_prefix)
        self._clock = clock

    async def infer(self, request: InferenceRequest) -> dict[str, str]:
        """Process an inbound platform invocation.

        Returns:
            String valued session state entries

        Raises:
            ConfigurationError: On missing rule sets, rules or endpoints,
                attribute overflow or malformed rule configuration
        """
        started = time.perf_counter()
        outcome = "error"
        try:
            response = await self._run(request)
            outcome = "ok"
            return response
        finally:
            INFERENCE_REQUESTS.labels(event=request.event.value, outcome=outcome).inc()
            INFERENCE_LATENCY.observe(time.perf_counter() - started)

    async def _run(self, request: InferenceRequest) -> dict[str, str]:
        await self._cache.refresh()
        contact_id = request.contact_id
        apply_event = True

        for _ in range(self._config.max_rule_set_transitions):
            state = await self._load_state(contact_id)
            self._initialise(request, state)
            if apply_event:
                self._apply_event(request, state)
                apply_event = False

            rule_set = self._resolve_rule_set(state)
            processing = ProcessingState()

            while processing.evaluate_next_rule:
                if processing.state_flushed:
                    state = await self._load_state(contact_id)

                await self._step(request, rule_set, state, processing)

                await self._store.persist(state)
                processing.state_flushed = True

                if processing.rule_set_changed:
                    break

            if not processing.rule_set_changed:
                logger.info(
                    "inference_suspended",
                    contact_id=contact_id,
                    rule_set=state.current_rule_set,
                    rule=state.current_rule,
                    rule_type=state.current_rule_type,
                )
                return state.to_response()

            logger.debug("rule_set_changed_reloading", contact_id=contact_id)

        raise ConfigurationError(
            f"Exceeded {self._config.max_rule_set_transitions} rule set transitions",
            contact_id=contact_id,
        )

    async def _load_state(self, contact_id: str) -> SessionState:
        state = await self._store.load(contact_id)
        state.merge_config(self._cache.config_items)
        return state

    def _initialise(self, request: InferenceRequest, state: SessionState) -> None:
        """Compute System attributes and caller numbers on first contact."""
        if SYSTEM not in state:
            state.set(CONTACT_ATTRIBUTES, copy.deepcopy(request.contact_attributes))

            end_point = state.contact_attributes.get("RulesEngineEndPoint")
            if end_point is not None:
                rule_set = self._cache.rule_set_for_end_point(end_point)
                logger.info(
                    "attribute_end_point_resolved",
                    contact_id=state.contact_id,
                    end_point=end_point,
                    rule_set=rule_set.name,
                )
                state.set(NEXT_RULE_SET, rule_set.name)

            state.set(
                SYSTEM,
                build_system_attributes(
                    contact_id=state.contact_id,
                    now=self._clock(),
                    config_items=self._cache.config_items,
                    default_time_zone=self._config.timezone,
                    dialled_number=request.dialled_number,
                    end_point=end_point,
                ),
            )

        if state.get(CUSTOMER_PHONE_NUMBER) is None and request.customer_phone_number:
            state.set(CUSTOMER_PHONE_NUMBER, request.customer_phone_number)
        if state.get(ORIGINAL_CUSTOMER_NUMBER) is None:
            state.set(ORIGINAL_CUSTOMER_NUMBER, state.get(CUSTOMER_PHONE_NUMBER))

    def _apply_event(self, request: InferenceRequest, state: SessionState) -> None:
        """Write event parameters reported by the platform into state."""
        for key, value in request.parameters.items():
            state.set(key, value)
        if request.parameters:
            logger.info(
                "event_parameters_applied",
                contact_id=state.contact_id,
                event_type=request.event.value,
                keys=sorted(request.parameters),
            )

    def _resolve_rule_set(self, state: SessionState) -> RuleSet:
        next_rule_set = state.next_rule_set
        if next_rule_set is not None:
            now = self._clock()
            analytics.rule_end(state, now)
            analytics.rule_set_end(state, next_rule_set, now)

            rule_set = self._cache.get_rule_set(next_rule_set)
            previous = state.current_rule_set
            enter_rule_set(state, rule_set.name, now)
            analytics.rule_set_start(state, rule_set.name, previous)
            return rule_set

        if state.current_rule_set is not None:
            return self._cache.get_rule_set(state.current_rule_set)

        system = state.get(SYSTEM) or {}
        dialled_number = system.get("DialledNumber", "Unknown")
        logger.info(
            "resolving_rule_set_by_dialled_number",
            contact_id=state.contact_id,
            dialled_number=dialled_number,
        )
        rule_set = self._cache.rule_set_for_dialled_number(dialled_number)
        enter_rule_set(state, rule_set.name, self._clock())
        analytics.rule_set_start(state, rule_set.name, None)
        return rule_set

    async def _step(
        self,
        request: InferenceRequest,
        rule_set: RuleSet,
        state: SessionState,
        processing: ProcessingState,
    ) -> None:
        start_index = next_rule_index(rule_set, state)
        if start_index == POP_RETURN_STACK:
            pop_return_stack(state)
            processing.rule_set_changed = True
            processing.evaluate_next_rule = False
            return

        rule = self._evaluator.next_activated_rule(rule_set.rules, start_index, state.values)
        if rule is None:
            if state.peek_return() is None:
                raise RuleSetExhaustedError(
                    f"Failed to find next rule and had no return stack in rule set: "
                    f"{rule_set.name} with start index: {start_index}",
                    contact_id=state.contact_id,
                )
            pop_return_stack(state)
            processing.rule_set_changed = True
            processing.evaluate_next_rule = False
            return

        now = self._clock()
        analytics.rule_end(state, now)
        export_rule_into_state(state, rule, self._cache.config_items, now)
        analytics.rule_start(state)

        if rule.type == RuleType.QUEUE:
            exported = export_attribute_delta(
                state,
                request.contact_attributes,
                self._config.max_contact_attributes,
            )
            logger.info("queue_attribute_delta", contact_id=state.contact_id, count=exported)

        if rule.type.is_local:
            RULES_EVALUATED.labels(rule_type=rule.type.value, dispatch="local").inc()
            await self._handlers.execute(rule, state, processing)
        else:
            RULES_EVALUATED.labels(rule_type=rule.type.value, dispatch="platform").inc()
            processing.evaluate_next_rule = False


def enter_rule_set(state: SessionState, rule_set_name: str, now: datetime) -> None:
    """Make a rule set current with no current rule."""
    state.delete(NEXT_RULE_SET)
    state.delete(CURRENT_RULE)
    state.delete(CURRENT_RULE_TYPE)
    state.delete(RULE_START)
    state.set(CURRENT_RULE_SET, rule_set_name)
    state.set(RULE_SET_START, analytics.timestamp(now))
