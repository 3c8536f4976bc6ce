"""Matching simulator output against test script expectations.

Patterns are regular expressions searched for anywhere in the actual
value. An exact-case match succeeds; a match found only when ignoring
case also succeeds but carries a warning.
"""

import re
from typing import Any

from switchboard.state.models import resolve_path
from switchboard.verify.models import TestContext, TestLine

CASE_INSENSITIVE_WARNING = "Case insensitive match found"
OUT_OF_ORDER_WARNING = "Matched out of order"
UNMATCHED_MESSAGE_WARNING = "Failed to match message"
NOT_EXECUTED_WARNING = "Test line not executed"


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def _later_match(stack: list[TestLine], index: int) -> bool:
    return any(line.success for line in stack[index + 1 :])


def match_message(context: TestContext, message: str) -> TestLine | None:
    """Tick off the first unmatched expected message that the actual message satisfies.

    Returns:
        The matched line, or None
    """
    stack = context.message_stack
    for index, line in enumerate(stack):
        if line.success or line.done:
            continue

        later_match = _later_match(stack, index)
        pattern = str(line.payload)
        try:
            exact = re.search(pattern, message) is not None
            insensitive = exact or re.search(pattern, message, re.IGNORECASE) is not None
        except re.error:
            line.success = False
            line.done = True
            line.add_warning("Invalid regular expression")
            continue

        if not insensitive:
            continue

        line.success = True
        line.add_info(f"Matched message: {message}")
        if not exact:
            line.add_warning(CASE_INSENSITIVE_WARNING)
        if later_match:
            line.add_warning(OUT_OF_ORDER_WARNING)
        return line
    return None


def fail_remaining_messages(context: TestContext) -> None:
    """Fail every unmatched expected message and clear the stack."""
    for line in context.message_stack:
        if line.success is not True:
            line.success = False
            line.add_warning(UNMATCHED_MESSAGE_WARNING)
    context.message_stack = []


def fail_remaining_lines(context: TestContext) -> None:
    """Fail every line that was never checked."""
    for line in context.lines:
        if line.success is None:
            line.success = False
            line.add_warning(NOT_EXECUTED_WARNING)


def check_value(line: TestLine, label: str, key: str, expected: Any, actual: Any) -> None:
    """Compare an attribute or state value, recording the outcome on the line."""
    if is_empty(expected) and is_empty(actual):
        line.success = True
        line.add_info(f"Matched empty {label}: {key}")
        return
    if is_empty(expected):
        line.success = False
        line.add_warning(f"Expected: Empty\nActual: {actual}")
        return

    pattern = str(expected)
    text = "" if actual is None else str(actual)
    try:
        if re.search(pattern, text):
            line.success = True
            line.add_info(f"Matched {label}: {key} = {pattern}\nActual value: {text}")
        elif re.search(pattern, text, re.IGNORECASE):
            line.success = True
            line.add_info(f"Matched {label}: {key} = {pattern}\nActual value: {text}")
            line.add_warning(CASE_INSENSITIVE_WARNING)
        else:
            line.success = False
            line.add_warning(f"Expected: {pattern}\nActual: {text}")
    except re.error as e:
        line.success = False
        line.add_warning(f"{label.capitalize()} verification failed: {e}")


def _payload_field(line: TestLine, name: str) -> Any:
    return line.payload.get(name) if isinstance(line.payload, dict) else None


def validate_attributes(context: TestContext, last_state: dict[str, Any]) -> None:
    """Check attribute lines against ContactAttributes in the final state."""
    attributes = last_state.get("ContactAttributes")
    for line in context.attribute_lines:
        key = _payload_field(line, "key")
        if not key:
            line.success = False
            line.add_warning("Attribute with invalid key")
        elif not isinstance(attributes, dict):
            line.success = False
            line.add_warning("No ContactAttributes found in last state")
        else:
            check_value(line, "attribute", key, _payload_field(line, "value"), attributes.get(key))


def validate_states(context: TestContext, last_state: dict[str, Any]) -> None:
    """Check state lines against dotted paths into the final state."""
    for line in context.state_lines:
        key = _payload_field(line, "key")
        if not key:
            line.success = False
            line.add_warning("State with invalid key")
        else:
            actual = resolve_path(str(key), last_state)
            check_value(line, "state", key, _payload_field(line, "value"), actual)
