"""Session state record and its wire encoding.

Session state is persisted as a flat map of string keys to string values.
Object and array values are JSON encoded on write and decoded on read.
In memory the record tracks which keys changed so persistence only
writes the delta.

Key conventions:
- CurrentRule_<param>: scratch namespace for the active rule, cleared
  whenever the current rule changes
- System: computed once per session
- ContactAttributes: nested map mirrored to the telephony platform
- ReturnStack: list of {ruleSetName, ruleName} frames
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from switchboard.observability.logging import get_logger

logger = get_logger(__name__)

SCRATCH_PREFIX = "CurrentRule_"

CURRENT_RULE_SET = "CurrentRuleSet"
CURRENT_RULE = "CurrentRule"
CURRENT_RULE_TYPE = "CurrentRuleType"
NEXT_RULE_SET = "NextRuleSet"
RULE_START = "RuleStart"
RULE_SET_START = "RuleSetStart"
RETURN_STACK = "ReturnStack"
SYSTEM = "System"
CONTACT_ATTRIBUTES = "ContactAttributes"
CONTACT_ID = "ContactId"
CUSTOMER_PHONE_NUMBER = "CustomerPhoneNumber"
ORIGINAL_CUSTOMER_NUMBER = "OriginalCustomerNumber"


def looks_like_json(value: str) -> bool:
    """Whether a string is bracketed like a JSON object or array."""
    return (value.startswith("{") and value.endswith("}")) or (
        value.startswith("[") and value.endswith("]")
    )


def encode_value(value: Any) -> str | None:
    """Encode a state value for persistence.

    Returns:
        The wire string, or None when the key should be deleted
    """
    if value is None or value == "":
        return None
    if isinstance(value, dict | list):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def decode_value(raw: str) -> Any:
    """Decode a persisted state value, parsing bracketed JSON."""
    trimmed = raw.strip()
    if looks_like_json(trimmed):
        try:
            return json.loads(trimmed)
        except ValueError:
            logger.warning("state_value_not_json", value_length=len(trimmed))
    return raw


def resolve_path(path: str, values: Mapping[str, Any]) -> Any:
    """Walk a dotted path through nested state.

    A `length` segment applied to a list yields its length. Any missing
    segment yields None.
    """
    current: Any = values
    for segment in path.split("."):
        if segment == "length" and isinstance(current, list):
            current = len(current)
        elif isinstance(current, Mapping):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


class ReturnFrame(BaseModel):
    """A saved (rule set, rule) position to resume after a sub rule set."""

    model_config = ConfigDict(populate_by_name=True)

    rule_set_name: str = Field(..., alias="ruleSetName")
    rule_name: str | None = Field(default=None, alias="ruleName")


class SessionState(BaseModel):
    """Mutable session state for one contact.

    Writes go through set() which applies the JSON heuristics and
    records the key as dirty. Configuration items merged with
    merge_config() are visible to rules but never persisted.
    """

    contact_id: str = Field(..., description="Contact (session) identifier")
    values: dict[str, Any] = Field(default_factory=dict, description="Decoded state")

    _dirty: set[str] = PrivateAttr(default_factory=set)

    @classmethod
    def from_persisted(cls, contact_id: str, raw: Mapping[str, str]) -> "SessionState":
        """Build state from persisted string values."""
        return cls(
            contact_id=contact_id,
            values={key: decode_value(value) for key, value in raw.items()},
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def set(self, key: str, value: Any) -> None:
        """Write a value, or delete the key when value is None."""
        if value is None and key not in self.values:
            return

        if isinstance(value, str) and looks_like_json(value):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("state_value_not_json", key=key)

        if value is None:
            self.values.pop(key, None)
        else:
            self.values[key] = value
        self._dirty.add(key)

    def delete(self, key: str) -> None:
        self.set(key, None)

    def get_path(self, path: str) -> Any:
        return resolve_path(path, self.values)

    def merge_config(self, items: Mapping[str, Any]) -> None:
        """Overlay configuration items at the top level without persisting them."""
        self.values.update(items)

    # Persistence tracking

    @property
    def dirty_keys(self) -> frozenset[str]:
        return frozenset(self._dirty)

    def changes(self) -> dict[str, str | None]:
        """Encoded values for every dirty key, None marking a delete."""
        return {key: encode_value(self.values.get(key)) for key in sorted(self._dirty)}

    def mark_clean(self) -> None:
        self._dirty.clear()

    def to_response(self) -> dict[str, str]:
        """String valued entries only, as returned to the telephony platform."""
        return {key: value for key, value in self.values.items() if isinstance(value, str)}

    # Position

    @property
    def current_rule_set(self) -> str | None:
        return self.values.get(CURRENT_RULE_SET)

    @property
    def current_rule(self) -> str | None:
        return self.values.get(CURRENT_RULE)

    @property
    def current_rule_type(self) -> str | None:
        return self.values.get(CURRENT_RULE_TYPE)

    @property
    def next_rule_set(self) -> str | None:
        return self.values.get(NEXT_RULE_SET)

    # Rule scratch namespace

    def scratch_keys(self) -> list[str]:
        return [key for key in self.values if key.startswith(SCRATCH_PREFIX)]

    def get_param(self, name: str, default: Any = None) -> Any:
        """Read a parameter of the active rule."""
        return self.values.get(SCRATCH_PREFIX + name, default)

    def set_param(self, name: str, value: Any) -> None:
        self.set(SCRATCH_PREFIX + name, value)

    def clear_rule(self) -> None:
        """Drop the active rule along with all of its scratch keys."""
        for key in self.scratch_keys():
            self.delete(key)
        self.delete(CURRENT_RULE)
        self.delete(CURRENT_RULE_TYPE)
        self.delete(RULE_START)

    # Contact attributes

    @property
    def contact_attributes(self) -> dict[str, Any]:
        attributes = self.values.get(CONTACT_ATTRIBUTES)
        return attributes if isinstance(attributes, dict) else {}

    def set_contact_attribute(self, key: str, value: Any) -> None:
        attributes = dict(self.contact_attributes)
        attributes[key] = value
        self.set(CONTACT_ATTRIBUTES, attributes)

    def set_contact_attributes(self, items: Iterable[tuple[str, Any]]) -> None:
        attributes = dict(self.contact_attributes)
        attributes.update(items)
        self.set(CONTACT_ATTRIBUTES, attributes)

    # Return stack

    def _return_stack(self) -> list[dict[str, Any]]:
        stack = self.values.get(RETURN_STACK)
        return list(stack) if isinstance(stack, list) else []

    def push_return(self, rule_set_name: str, rule_name: str | None) -> None:
        stack = self._return_stack()
        stack.append(
            ReturnFrame(rule_set_name=rule_set_name, rule_name=rule_name).model_dump(
                by_alias=True
            )
        )
        self.set(RETURN_STACK, stack)

    def peek_return(self) -> ReturnFrame | None:
        stack = self._return_stack()
        return ReturnFrame.model_validate(stack[-1]) if stack else None

    def pop_return(self) -> ReturnFrame | None:
        stack = self._return_stack()
        if not stack:
            return None
        frame = ReturnFrame.model_validate(stack.pop())
        self.set(RETURN_STACK, stack)
        return frame
