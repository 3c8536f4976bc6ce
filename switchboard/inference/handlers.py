"""Handlers for rule types resolved without the telephony platform.

Each handler mutates session state and the loop control flags. Handlers
read the active rule's parameters from the CurrentRule_ scratch keys
that were exported when the rule became current.
"""

import random
from abc import ABC, abstractmethod
from typing import Any

from switchboard.inference.errors import (
    DistributionConfigError,
    RuleConfigError,
    UnknownRuleTypeError,
)
from switchboard.inference.models import ProcessingState
from switchboard.inference.nlu import IntentClassifier
from switchboard.observability.logging import get_logger
from switchboard.observability.metrics import RULE_METRIC
from switchboard.rules.evaluator import is_number
from switchboard.rules.models import Rule, RuleType
from switchboard.state.models import (
    CURRENT_RULE,
    CURRENT_RULE_SET,
    NEXT_RULE_SET,
    SessionState,
)

logger = get_logger(__name__)

INCREMENT = "increment"
_CLEARED_VALUES = (None, "", "null")


class MetricsSink(ABC):
    """Destination for Metric rule observations."""

    @abstractmethod
    async def record(self, name: str, value: float) -> None:
        """Record a named observation."""
        pass


class PrometheusMetricsSink(MetricsSink):
    """Records Metric rule observations on a Prometheus counter."""

    def __init__(self, namespace: str = "switchboard") -> None:
        self._namespace = namespace

    async def record(self, name: str, value: float) -> None:
        RULE_METRIC.labels(namespace=self._namespace, metric=name).inc(value)


class LocalRuleHandlers:
    """Executes local rule types against session state."""

    def __init__(
        self,
        metrics: MetricsSink,
        classifier: IntentClassifier | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize handlers.

        Args:
            metrics: Sink for Metric rules
            classifier: Intent classifier for TextInference rules
            rng: Random source for Distribution rules
        """
        self._metrics = metrics
        self._classifier = classifier
        self._rng = rng or random.Random()

    async def execute(
        self,
        rule: Rule,
        state: SessionState,
        processing: ProcessingState,
    ) -> None:
        """Dispatch a local rule to its handler.

        Raises:
            UnknownRuleTypeError: If the rule type is not a local type
        """
        match rule.type:
            case RuleType.RULE_SET:
                self.rule_set(rule, state, processing)
            case RuleType.UPDATE_STATES:
                self.update_states(rule, state)
            case RuleType.SET_ATTRIBUTES:
                self.set_attributes(rule, state)
            case RuleType.TEXT_INFERENCE:
                await self.text_inference(state, processing)
            case RuleType.DISTRIBUTION:
                self.distribution(state, processing)
            case RuleType.METRIC:
                await self.metric(rule, state)
            case _:
                raise UnknownRuleTypeError(
                    f"Unhandled non-platform rule: {rule.name} with type: {rule.type.value}",
                    contact_id=state.contact_id,
                )

    def rule_set(self, rule: Rule, state: SessionState, processing: ProcessingState) -> None:
        """Transfer to another rule set, optionally returning here afterwards."""
        target = rule.params.get("ruleSetName")
        if not target:
            raise RuleConfigError(
                f"RuleSet rule: {rule.name} is missing ruleSetName",
                contact_id=state.contact_id,
            )

        processing.evaluate_next_rule = False
        state.set(NEXT_RULE_SET, target)

        if rule.params.get("returnHere") == "true":
            state.push_return(state.get(CURRENT_RULE_SET), state.get(CURRENT_RULE))

        # A message needs the platform to play it before the transfer
        processing.rule_set_changed = not rule.params.get("message")
        logger.info(
            "rule_set_transfer",
            contact_id=state.contact_id,
            next_rule_set=target,
            deferred=not processing.rule_set_changed,
        )

    def update_states(self, rule: Rule, state: SessionState) -> None:
        """Write, increment or clear state keys."""
        for item in rule.params.get("updateStates") or []:
            key = item.get("key")
            if not key:
                continue
            value = item.get("value")

            if value in _CLEARED_VALUES:
                state.delete(key)
                continue

            if value == INCREMENT:
                existing = state.get(key)
                value = _incremented(existing) if is_number(existing) else "1"

            state.set(key, value)

    def set_attributes(self, rule: Rule, state: SessionState) -> None:
        """Merge configured key/value pairs into ContactAttributes."""
        attributes = dict(state.contact_attributes)
        for item in rule.params.get("setAttributes") or []:
            key = item.get("key")
            if not key:
                continue
            value = item.get("value")
            if value in (None, "null", "undefined"):
                attributes.pop(key, None)
            else:
                attributes[key] = value
        state.set("ContactAttributes", attributes)

    async def text_inference(self, state: SessionState, processing: ProcessingState) -> None:
        """Route on the intent of the rule's input text, falling through on any failure."""
        next_rule_set = await self._classify(state)
        if next_rule_set is None:
            logger.info("text_inference_fall_through", contact_id=state.contact_id)
            return

        processing.evaluate_next_rule = False
        processing.rule_set_changed = True
        state.set(NEXT_RULE_SET, next_rule_set)

    async def _classify(self, state: SessionState) -> str | None:
        text = state.get_param("input")
        if not text:
            return None
        if self._classifier is None:
            logger.warning("text_inference_no_classifier", contact_id=state.contact_id)
            return None

        try:
            result = await self._classifier.classify(
                state.get_param("lexBotName", ""), str(text), state.contact_id
            )
        except Exception as e:
            logger.error(
                "text_inference_failed",
                contact_id=state.contact_id,
                error=str(e),
            )
            return None

        next_rule_set = state.get_param(f"intentRuleSet_{result.intent}")
        if not next_rule_set:
            logger.info(
                "text_inference_unmapped_intent",
                contact_id=state.contact_id,
                intent=result.intent,
            )
            return None

        threshold = state.get_param(f"intentConfidence_{result.intent}")
        required = float(threshold) if is_number(threshold) else 0.0
        if result.confidence < required:
            logger.info(
                "text_inference_low_confidence",
                contact_id=state.contact_id,
                intent=result.intent,
                confidence=result.confidence,
                required=required,
            )
            return None

        return next_rule_set

    def distribution(self, state: SessionState, processing: ProcessingState) -> None:
        """Pick the next rule set by weighted random selection."""
        names, weights = distribution_options(state)
        next_rule_set = self._rng.choices(names, weights=weights, k=1)[0]

        logger.info(
            "distribution_selected",
            contact_id=state.contact_id,
            options=names,
            weights=weights,
            next_rule_set=next_rule_set,
        )
        processing.evaluate_next_rule = False
        processing.rule_set_changed = True
        state.set(NEXT_RULE_SET, next_rule_set)

    async def metric(self, rule: Rule, state: SessionState) -> None:
        """Record a metric observation. Failures never reach the caller."""
        name = rule.params.get("metricName")
        raw_value = rule.params.get("metricValue")
        try:
            value = 1.0 if raw_value in (None, "") else float(raw_value)
            await self._metrics.record(str(name), value)
        except Exception as e:
            logger.error(
                "metric_record_failed",
                contact_id=state.contact_id,
                metric=name,
                error=str(e),
            )


def _incremented(existing: Any) -> str:
    """Numeric value plus one, written without a trailing .0 when whole."""
    result = float(existing) + 1
    return str(int(result)) if result.is_integer() else str(result)


def distribution_options(state: SessionState) -> tuple[list[str], list[float]]:
    """Read and validate the active Distribution rule's options.

    Returns:
        Rule set names and their selection probabilities, including the
        default rule set when the configured percentages fall short

    Raises:
        DistributionConfigError: If options are missing, exceed 100% or
            need a default that is not configured
    """
    option_count = state.get_param("optionCount")
    if not is_number(option_count):
        raise DistributionConfigError(
            "Invalid Distribution configuration detected, missing: optionCount",
            contact_id=state.contact_id,
        )

    names: list[str] = []
    weights: list[float] = []
    for index in range(int(float(option_count))):
        name = state.get_param(f"ruleSetName{index}")
        percentage = state.get_param(f"percentage{index}")
        if name is None or not is_number(percentage):
            raise DistributionConfigError(
                f"Invalid Distribution configuration detected for option: {index}",
                contact_id=state.contact_id,
            )
        names.append(name)
        weights.append(float(percentage) / 100.0)

    total = sum(weights)
    if round(total, 9) > 1.0:
        raise DistributionConfigError(
            "Invalid Distribution configuration detected, total probability exceeds 100%",
            contact_id=state.contact_id,
        )

    if round(total, 9) < 1.0:
        default = state.get_param("defaultRuleSetName")
        if not default:
            raise DistributionConfigError(
                "Invalid Distribution configuration detected, no default rule set name provided",
                contact_id=state.contact_id,
            )
        names.append(default)
        weights.append(1.0 - total)

    return names, weights
