"""Jinja2 templating of rule parameters against session state.

Parameters and condition values may embed `{{ ... }}` placeholders that
are rendered with the session state as context. Fields holding messages
that refer to input captured later are left untouched.
"""

import json
from collections.abc import Mapping
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError, Undefined

from switchboard.inference.errors import RuleConfigError
from switchboard.rules.models import Rule, RuleType

# Rendered after input is captured, not when the rule starts
IGNORED_FIELDS: frozenset[str] = frozenset({
    "confirmationMessage",
    "autoConfirmMessage",
    "setAttributes",
    "updateStates",
})


def _inc(value: Any) -> int:
    return int(value) + 1


def _build_environment(undefined: type[Undefined]) -> Environment:
    env = Environment(autoescape=False, undefined=undefined)
    env.filters["inc"] = _inc
    env.filters["json"] = json.dumps
    return env


_environment = _build_environment(Undefined)
_strict_environment = _build_environment(StrictUndefined)


def is_template(value: Any) -> bool:
    """Whether a value carries template syntax."""
    return isinstance(value, str) and ("{{" in value or "{%" in value)


def render(value: str, state: Mapping[str, Any], strict: bool = False) -> str:
    """Render a template string with session state as context.

    Args:
        value: Template source
        state: Session state values
        strict: Raise on undefined names instead of rendering empty

    Raises:
        jinja2.TemplateError: If the template is malformed
    """
    env = _strict_environment if strict else _environment
    return env.from_string(value).render(dict(state))


def render_safely(value: Any, state: Mapping[str, Any]) -> Any:
    """Render a value if it is a template, returning it unchanged on failure."""
    if not is_template(value):
        return value
    try:
        return render(value, state)
    except TemplateError:
        return value


def template_rule(rule: Rule, state: Mapping[str, Any]) -> Rule:
    """Return a copy of a rule with its parameters rendered against state.

    Raises:
        RuleConfigError: If a parameter template is malformed
    """
    try:
        return _template_rule(rule, state)
    except TemplateError as e:
        raise RuleConfigError(f"Failed to render rule: {rule.name}: {e}") from e


def _template_rule(rule: Rule, state: Mapping[str, Any]) -> Rule:
    params = dict(rule.params)

    if rule.type in (RuleType.SET_ATTRIBUTES, RuleType.UPDATE_STATES):
        list_key = "setAttributes" if rule.type == RuleType.SET_ATTRIBUTES else "updateStates"
        items = []
        for item in params.get(list_key) or []:
            item = dict(item)
            if item.get("key") and item.get("value") and is_template(item["value"]):
                item["value"] = render(item["value"], state)
            items.append(item)
        params[list_key] = items

    for key, value in rule.params.items():
        if key not in IGNORED_FIELDS and is_template(value):
            params[key] = render(value, state)

    return rule.model_copy(update={"params": params})
