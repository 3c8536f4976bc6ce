"""Analytics events for rule set and rule transitions.

Events are emitted as structured log records so downstream log
pipelines can reconstruct a contact's path and time spent per step.
"""

from datetime import datetime

from switchboard.observability.logging import get_logger
from switchboard.state.models import (
    CURRENT_RULE,
    CURRENT_RULE_SET,
    CURRENT_RULE_TYPE,
    RULE_SET_START,
    RULE_START,
    SessionState,
)

logger = get_logger("switchboard.analytics")


def timestamp(now: datetime) -> str:
    return now.isoformat(timespec="milliseconds")


def _elapsed_ms(started: str | None, now: datetime) -> int:
    if not started:
        return 0
    try:
        return int((now - datetime.fromisoformat(started)).total_seconds() * 1000)
    except (TypeError, ValueError):
        return 0


def rule_set_start(state: SessionState, current: str, previous: str | None) -> None:
    logger.info(
        "rule_set_start",
        contact_id=state.contact_id,
        rule_set=current,
        previous=previous,
        when=state.get(RULE_SET_START),
    )


def rule_set_end(state: SessionState, next_rule_set: str | None, now: datetime) -> None:
    current = state.get(CURRENT_RULE_SET)
    if current is None:
        return
    logger.info(
        "rule_set_end",
        contact_id=state.contact_id,
        rule_set=current,
        next=next_rule_set,
        when=timestamp(now),
        time_cost_ms=_elapsed_ms(state.get(RULE_SET_START), now),
    )


def rule_start(state: SessionState) -> None:
    logger.info(
        "rule_start",
        contact_id=state.contact_id,
        rule_set=state.get(CURRENT_RULE_SET),
        rule_type=state.get(CURRENT_RULE_TYPE),
        rule=state.get(CURRENT_RULE),
        when=state.get(RULE_START),
    )


def rule_end(state: SessionState, now: datetime) -> None:
    if state.get(CURRENT_RULE) is None:
        return
    logger.info(
        "rule_end",
        contact_id=state.contact_id,
        rule_set=state.get(CURRENT_RULE_SET),
        rule_type=state.get(CURRENT_RULE_TYPE),
        rule=state.get(CURRENT_RULE),
        when=timestamp(now),
        time_cost_ms=_elapsed_ms(state.get(RULE_START), now),
    )
