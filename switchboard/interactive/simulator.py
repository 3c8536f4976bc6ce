"""In-process stand-in for the telephony platform.

The simulator walks a session through its rule sets one platform rule
at a time. Each request advances to the next rule that needs the caller
and returns what the platform would do: play a message, collect input,
transfer to a queue or number, or hang up. Local rules are returned as
steps too, so a driver sees every rule that fired.
"""

import uuid

from switchboard.config.models.inference import InferenceConfig
from switchboard.inference import analytics
from switchboard.inference.errors import (
    ConfigurationError,
    InvalidRequestError,
    RuleNotFoundError,
    RuleSetExhaustedError,
)
from switchboard.inference.orchestrator import (
    POP_RETURN_STACK,
    Clock,
    enter_rule_set,
    export_rule_into_state,
    next_rule_index,
    pop_return_stack,
    utc_now,
)
from switchboard.inference.system import build_system_attributes
from switchboard.interactive.handlers import PHASE_CONFIRM, PHASE_INPUT, SimulatedRuleHandlers
from switchboard.interactive.models import InteractiveEvent, InteractiveRequest, InteractiveResponse
from switchboard.observability.logging import get_logger
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.evaluator import RuleEvaluator, WeightedRuleEvaluator
from switchboard.rules.models import Rule, RuleSet
from switchboard.state.models import (
    CONTACT_ATTRIBUTES,
    CUSTOMER_PHONE_NUMBER,
    ORIGINAL_CUSTOMER_NUMBER,
    SYSTEM,
    SessionState,
)
from switchboard.state.store import StateStore

logger = get_logger(__name__)

CONTACT_ID_PREFIX = "interactive-"


class InteractiveSimulator:
    """Simulates the telephony platform driving a session."""

    def __init__(
        self,
        cache: RuleSetCache,
        state_store: StateStore,
        handlers: SimulatedRuleHandlers,
        evaluator: RuleEvaluator | None = None,
        config: InferenceConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._cache = cache
        self._store = state_store
        self._handlers = handlers
        self._config = config or InferenceConfig()
        self._evaluator = evaluator or WeightedRuleEvaluator(self._config.mobile_prefix)
        self._clock = clock

    async def handle(self, request: InteractiveRequest) -> InteractiveResponse:
        """Process one simulated platform event.

        Returns:
            The step outcome carrying the persisted session state

        Raises:
            InvalidRequestError: If the request lacks fields its event needs
            ConfigurationError: On rule configuration failures
        """
        await self._cache.refresh()
        logger.info(
            "interactive_request",
            event_type=request.event_type.value,
            contact_id=request.contact_id,
        )

        match request.event_type:
            case InteractiveEvent.NEW_INTERACTION:
                state = SessionState(contact_id=f"{CONTACT_ID_PREFIX}{uuid.uuid4()}")
                response = await self._new_interaction(request, state)
            case InteractiveEvent.NEXT_RULE:
                state = await self._load(request)
                response = await self._next_rule(state)
            case InteractiveEvent.INPUT:
                state = await self._load(request)
                response = await self._input(request, state)
            case InteractiveEvent.HANGUP:
                state = await self._load(request)
                response = InteractiveResponse(
                    contact_id=state.contact_id,
                    disconnected=True,
                    rule_set=state.current_rule_set,
                    rule=state.current_rule,
                    rule_type=state.current_rule_type,
                )

        await self._store.persist(state)
        persisted = await self._store.load(state.contact_id)
        response.state = persisted.values

        logger.info(
            "interactive_response",
            contact_id=response.contact_id,
            rule_set=response.rule_set,
            rule=response.rule,
            input_required=response.input_required,
        )
        return response

    async def _load(self, request: InteractiveRequest) -> SessionState:
        if not request.contact_id:
            raise InvalidRequestError(
                f"Event: {request.event_type.value} requires a contact id"
            )
        state = await self._store.load(request.contact_id)
        if not state.values:
            raise InvalidRequestError(
                f"No session state found for contact: {request.contact_id}",
                contact_id=request.contact_id,
            )
        state.merge_config(self._cache.config_items)
        return state

    async def _new_interaction(
        self,
        request: InteractiveRequest,
        state: SessionState,
    ) -> InteractiveResponse:
        if not request.end_point:
            raise InvalidRequestError("NEW_INTERACTION requires an end point")

        state.merge_config(self._cache.config_items)
        state.set(CONTACT_ATTRIBUTES, dict(request.contact_attributes))
        state.set(
            SYSTEM,
            build_system_attributes(
                contact_id=state.contact_id,
                now=request.interaction_date_time or self._clock(),
                config_items=self._cache.config_items,
                default_time_zone=self._config.timezone,
                end_point=request.end_point,
            ),
        )
        state.set(CUSTOMER_PHONE_NUMBER, request.customer_phone_number)
        state.set(ORIGINAL_CUSTOMER_NUMBER, request.customer_phone_number)

        rule_set = self._cache.rule_set_for_end_point(request.end_point)
        enter_rule_set(state, rule_set.name, self._clock())
        analytics.rule_set_start(state, rule_set.name, None)
        return await self._step(rule_set, state)

    async def _next_rule(self, state: SessionState) -> InteractiveResponse:
        next_rule_set = state.next_rule_set
        if next_rule_set is not None:
            now = self._clock()
            analytics.rule_end(state, now)
            analytics.rule_set_end(state, next_rule_set, now)
            previous = state.current_rule_set
            rule_set = self._cache.get_rule_set(next_rule_set)
            enter_rule_set(state, rule_set.name, now)
            analytics.rule_set_start(state, rule_set.name, previous)
        else:
            rule_set = self._current_rule_set(state)
        return await self._step(rule_set, state)

    async def _input(self, request: InteractiveRequest, state: SessionState) -> InteractiveResponse:
        rule_set = self._current_rule_set(state)
        rule = self._current_rule(rule_set, state)

        phase = state.get_param("phase")
        if phase == PHASE_INPUT:
            response = await self._handlers.input(rule, state, request.input)
        elif phase == PHASE_CONFIRM:
            response = await self._handlers.confirm(rule, state, request.input)
        else:
            raise InvalidRequestError(
                f"Unhandled input phase: {phase}",
                contact_id=state.contact_id,
            )
        return self._enrich(response, rule_set, rule)

    async def _step(self, rule_set: RuleSet, state: SessionState) -> InteractiveResponse:
        """Advance to the next activated rule and simulate it."""
        for _ in range(self._config.max_rule_set_transitions):
            start_index = next_rule_index(rule_set, state)
            if start_index == POP_RETURN_STACK:
                pop_return_stack(state)
                rule_set = self._current_rule_set(state)
                continue

            rule = self._evaluator.next_activated_rule(rule_set.rules, start_index, state.values)
            if rule is None:
                if state.peek_return() is None:
                    raise RuleSetExhaustedError(
                        f"Failed to find next rule and had no return stack in rule set: "
                        f"{rule_set.name} with start index: {start_index}",
                        contact_id=state.contact_id,
                    )
                pop_return_stack(state)
                rule_set = self._current_rule_set(state)
                continue

            now = self._clock()
            analytics.rule_end(state, now)
            export_rule_into_state(state, rule, self._cache.config_items, now)
            analytics.rule_start(state)

            # Integrations read persisted state
            await self._store.persist(state)

            response = await self._handlers.execute(rule, state)
            return self._enrich(response, rule_set, rule)

        raise ConfigurationError(
            f"Exceeded {self._config.max_rule_set_transitions} return stack pops",
            contact_id=state.contact_id,
        )

    def _current_rule_set(self, state: SessionState) -> RuleSet:
        if state.current_rule_set is None:
            raise InvalidRequestError(
                "Session has no current rule set",
                contact_id=state.contact_id,
            )
        return self._cache.get_rule_set(state.current_rule_set)

    @staticmethod
    def _current_rule(rule_set: RuleSet, state: SessionState) -> Rule:
        rule = rule_set.get_rule(state.current_rule or "")
        if rule is None:
            raise RuleNotFoundError(
                f"Failed to find rule: {state.current_rule} in rule set: {rule_set.name}",
                contact_id=state.contact_id,
            )
        return rule

    @staticmethod
    def _enrich(
        response: InteractiveResponse,
        rule_set: RuleSet,
        rule: Rule,
    ) -> InteractiveResponse:
        response.rule_set_id = rule_set.rule_set_id
        response.rule_id = rule.rule_id
        response.folder = rule_set.folder
        return response
