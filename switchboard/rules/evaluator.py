"""Rule activation evaluation.

A rule activates when the summed weight of its conditions that hold
against session state reaches the rule's activation threshold. Rules
are already in descending priority order, so the first activated rule
from the start index wins.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from switchboard.inference.errors import RuleConfigError
from switchboard.observability.logging import get_logger
from switchboard.rules.models import Rule, Weight
from switchboard.rules.templating import render_safely, template_rule
from switchboard.state.models import resolve_path

logger = get_logger(__name__)


class RuleEvaluator(Protocol):
    """Finds the next activated rule in a rule list."""

    def next_activated_rule(
        self,
        rules: Sequence[Rule],
        start_index: int,
        state: Mapping[str, Any],
    ) -> Rule | None:
        """Return the first activated rule at or after start_index, or None."""
        ...


def is_number(value: Any) -> bool:
    """Whether a value is numeric or a numeric string."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int | float):
        return True
    if isinstance(value, str) and value.strip():
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _is_empty(raw: Any) -> bool:
    return raw is None or raw == "" or (isinstance(raw, list) and not raw)


def _contains(raw: Any, value: str | None) -> bool:
    if value is None:
        return False
    return isinstance(raw, list | str) and value in raw


def _compare(raw: Any, value: str | None, less: bool) -> bool:
    if raw is None or value is None:
        return False
    if is_number(raw) and is_number(value):
        left, right = float(raw), float(value)
    elif isinstance(raw, str):
        left, right = raw, value
    else:
        return False
    return left < right if less else left > right


class WeightedRuleEvaluator:
    """Weighted condition evaluator."""

    def __init__(self, mobile_prefix: str = "+614") -> None:
        self._mobile_prefix = mobile_prefix
        self._operations: dict[str, Callable[[Any, str | None], bool]] = {
            "contains": _contains,
            "notcontains": lambda raw, value: not _contains(raw, value),
            "startswith": lambda raw, value: isinstance(raw, str) and raw.startswith(value or ""),
            "notstartswith": lambda raw, value: not (
                isinstance(raw, str) and raw.startswith(value or "")
            ),
            "endswith": lambda raw, value: isinstance(raw, str) and raw.endswith(value or ""),
            "notendswith": lambda raw, value: not (
                isinstance(raw, str) and raw.endswith(value or "")
            ),
            "equals": lambda raw, value: raw == value,
            "notequals": lambda raw, value: raw != value,
            "isempty": lambda raw, _value: _is_empty(raw),
            "isnotempty": lambda raw, _value: not _is_empty(raw),
            "isnull": lambda raw, _value: raw is None,
            "isnotnull": lambda raw, _value: raw is not None,
            "ismobile": self._is_mobile,
            "isnotmobile": lambda raw, value: not self._is_mobile(raw, value),
            "lessthan": lambda raw, value: _compare(raw, value, less=True),
            "greaterthan": lambda raw, value: _compare(raw, value, less=False),
        }

    def _is_mobile(self, raw: Any, _value: str | None) -> bool:
        return isinstance(raw, str) and raw.startswith(self._mobile_prefix)

    def condition_holds(self, condition: Weight, state: Mapping[str, Any]) -> bool:
        """Evaluate one condition against state.

        Raises:
            RuleConfigError: If the operation is not recognised
        """
        operation = self._operations.get(condition.operation)
        if operation is None:
            raise RuleConfigError(f"Unhandled weight operation: {condition.operation}")

        raw = resolve_path(condition.field.strip(), state)
        value = condition.value.strip() if condition.value is not None else None
        return operation(raw, render_safely(value, state))

    def rule_weight(self, rule: Rule, state: Mapping[str, Any]) -> float:
        """Sum of the weights of a rule's conditions that hold."""
        return sum(
            condition.weight
            for condition in rule.weights
            if self.condition_holds(condition, state)
        )

    def next_activated_rule(
        self,
        rules: Sequence[Rule],
        start_index: int,
        state: Mapping[str, Any],
    ) -> Rule | None:
        for rule in rules[start_index:]:
            if self.rule_weight(rule, state) >= rule.activation:
                return template_rule(rule, state)

        logger.debug("no_activated_rule", start_index=start_index, rule_count=len(rules))
        return None
