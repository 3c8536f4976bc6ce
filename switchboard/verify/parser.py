"""Test script parsing.

A script is one directive per line:

    message: "Welcome to .*"
    input: "1"
    queue: "Billing"
    attribute: {"key": "accountNumber", "value": "^[0-9]+$"}
    terminate

Payloads are JSON. Blank lines and lines starting with # are skipped.
"""

import json

from switchboard.verify.models import TestLine, TestLineType

# A type name is at least five characters, so an earlier colon is malformed
MIN_SEPARATOR_INDEX = 5

_BARE_TYPES = frozenset({TestLineType.TERMINATE})


class ScriptParseError(ValueError):
    """A test script line is malformed.

    Lines parsed before the malformed one are kept in parsed.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.parsed: list[TestLine] = []


def parse_test_entry(line: str) -> TestLine:
    """Parse one non-blank, non-comment script line.

    Raises:
        ScriptParseError: If the type is unknown, the separator is misplaced
            or the payload is not valid JSON
    """
    index = line.find(":")
    if index == -1:
        line_type = _line_type(line.strip(), line)
        if line_type not in _BARE_TYPES:
            raise ScriptParseError(
                f"Found invalid test line: {line} cause: no appropriate colon found"
            )
        return TestLine(type=line_type)

    if index < MIN_SEPARATOR_INDEX:
        raise ScriptParseError(
            f"Found invalid test line: {line} cause: no appropriate colon found"
        )

    line_type = _line_type(line[:index].strip(), line)
    raw_payload = line[index + 1 :].strip()
    try:
        payload = json.loads(raw_payload)
    except ValueError as e:
        raise ScriptParseError(f"Found invalid test line: {line} cause: {e}") from e

    if line_type == TestLineType.MESSAGE and payload == "":
        raise ScriptParseError("Invalid empty message payload detected")
    return TestLine(type=line_type, payload=payload)


def parse_script(script: str) -> list[TestLine]:
    """Parse a whole script.

    Raises:
        ScriptParseError: On the first malformed line
    """
    lines = []
    for raw in script.strip().split("\n"):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            lines.append(parse_test_entry(line))
        except ScriptParseError as e:
            e.parsed = lines
            raise
    return lines


def _line_type(name: str, line: str) -> TestLineType:
    try:
        return TestLineType(name)
    except ValueError:
        raise ScriptParseError(
            f"Found invalid test line: {line} cause: unknown type: {name}"
        ) from None
