"""Unit tests for session state encoding and tracking."""

import pytest

from switchboard.state.models import (
    CONTACT_ATTRIBUTES,
    CURRENT_RULE,
    CURRENT_RULE_TYPE,
    RETURN_STACK,
    RULE_START,
    SessionState,
    decode_value,
    encode_value,
    resolve_path,
)


@pytest.fixture
def state() -> SessionState:
    return SessionState(contact_id="contact-1")


class TestEncodeValue:
    """Tests for the persisted string encoding."""

    def test_empty_values_mean_delete(self) -> None:
        assert encode_value(None) is None
        assert encode_value("") is None

    def test_objects_and_arrays_are_json(self) -> None:
        assert encode_value({"a": 1}) == '{"a": 1}'
        assert encode_value([1, 2]) == "[1, 2]"

    def test_booleans_are_lowercase(self) -> None:
        assert encode_value(True) == "true"
        assert encode_value(False) == "false"

    def test_scalars_are_stringified(self) -> None:
        assert encode_value(3) == "3"
        assert encode_value("text") == "text"


class TestDecodeValue:
    """Tests for reading persisted strings."""

    def test_bracketed_json_is_parsed(self) -> None:
        assert decode_value('{"a": [1, 2]}') == {"a": [1, 2]}
        assert decode_value(" [1] ") == [1]

    def test_plain_strings_unchanged(self) -> None:
        assert decode_value("hello") == "hello"
        assert decode_value("42") == "42"

    def test_invalid_json_kept_as_string(self) -> None:
        assert decode_value("{not json}") == "{not json}"


class TestResolvePath:
    """Tests for dotted path lookup."""

    def test_nested_lookup(self) -> None:
        values = {"System": {"OperatingHours": {"Main": {"Open": "true"}}}}
        assert resolve_path("System.OperatingHours.Main.Open", values) == "true"

    def test_list_length(self) -> None:
        assert resolve_path("Accounts.length", {"Accounts": [1, 2, 3]}) == 3

    def test_list_index(self) -> None:
        values = {"Accounts": [{"id": "a"}, {"id": "b"}]}
        assert resolve_path("Accounts.1.id", values) == "b"
        assert resolve_path("Accounts.5.id", values) is None

    def test_missing_segment_is_none(self) -> None:
        assert resolve_path("A.B.C", {"A": {"X": 1}}) is None
        assert resolve_path("A.B", {"A": "scalar"}) is None


class TestSessionStateWrites:
    """Tests for set, delete and dirty tracking."""

    def test_set_marks_key_dirty(self, state: SessionState) -> None:
        state.set("Key", "value")
        assert state.get("Key") == "value"
        assert state.changes() == {"Key": "value"}

    def test_dirty_keys_is_a_snapshot(self, state: SessionState) -> None:
        state.set("A", "1")
        state.set("B", "2")
        dirty = state.dirty_keys

        state.mark_clean()

        assert dirty == frozenset({"A", "B"})
        assert state.dirty_keys == frozenset()

    def test_json_strings_are_parsed_on_write(self, state: SessionState) -> None:
        state.set("Account", '{"balance": "10"}')
        assert state.get("Account") == {"balance": "10"}
        assert state.changes() == {"Account": '{"balance": "10"}'}

    def test_none_deletes(self, state: SessionState) -> None:
        state.set("Key", "value")
        state.mark_clean()
        state.set("Key", None)
        assert "Key" not in state
        assert state.changes() == {"Key": None}

    def test_deleting_missing_key_is_not_a_change(self, state: SessionState) -> None:
        state.delete("Missing")
        assert state.changes() == {}

    def test_empty_string_persists_as_delete(self, state: SessionState) -> None:
        state.set("Key", "")
        assert state.changes() == {"Key": None}

    def test_merged_config_is_not_dirty(self, state: SessionState) -> None:
        state.merge_config({"Holidays": []})
        assert state.get("Holidays") == []
        assert state.changes() == {}

    def test_to_response_keeps_strings_only(self, state: SessionState) -> None:
        state.set("Name", "value")
        state.set("Nested", {"a": 1})
        state.set("Count", "2")
        assert state.to_response() == {"Name": "value", "Count": "2"}

    def test_from_persisted_decodes(self) -> None:
        state = SessionState.from_persisted("c", {"A": "[1]", "B": "x"})
        assert state.values == {"A": [1], "B": "x"}
        assert state.changes() == {}


class TestRuleScratch:
    """Tests for the CurrentRule_ parameter namespace."""

    def test_params_round_trip(self, state: SessionState) -> None:
        state.set_param("message", "Hello")
        assert state.get("CurrentRule_message") == "Hello"
        assert state.get_param("message") == "Hello"

    def test_clear_rule_drops_scratch_and_position(self, state: SessionState) -> None:
        state.set(CURRENT_RULE, "Welcome")
        state.set(CURRENT_RULE_TYPE, "Message")
        state.set(RULE_START, "2024-01-01T00:00:00.000+00:00")
        state.set_param("message", "Hello")
        state.set_param("offerMessage", "Press 1")
        state.set("Keep", "me")

        state.clear_rule()

        assert state.values == {"Keep": "me"}


class TestContactAttributes:
    """Tests for contact attribute helpers."""

    def test_missing_attributes_are_empty(self, state: SessionState) -> None:
        assert state.contact_attributes == {}

    def test_set_contact_attribute_merges(self, state: SessionState) -> None:
        state.set(CONTACT_ATTRIBUTES, {"a": "1"})
        state.set_contact_attribute("b", "2")
        assert state.contact_attributes == {"a": "1", "b": "2"}
        assert CONTACT_ATTRIBUTES in state.dirty_keys


class TestReturnStack:
    """Tests for return stack frames."""

    def test_push_peek_pop(self, state: SessionState) -> None:
        state.push_return("Main", "GoToBilling")
        state.push_return("Billing", None)

        assert state.peek_return().rule_set_name == "Billing"
        frame = state.pop_return()
        assert frame.rule_set_name == "Billing"
        assert frame.rule_name is None
        assert state.peek_return().rule_name == "GoToBilling"

    def test_frames_use_wire_names(self, state: SessionState) -> None:
        state.push_return("Main", "GoToBilling")
        assert state.get(RETURN_STACK) == [{"ruleSetName": "Main", "ruleName": "GoToBilling"}]

    def test_pop_empty_returns_none(self, state: SessionState) -> None:
        assert state.pop_return() is None
        assert state.peek_return() is None
