"""In-memory implementation of RuleConfigStore."""

from datetime import UTC, datetime
from typing import Any

from switchboard.rules.models import EndPoint, RuleSet
from switchboard.rules.store import RuleConfigStore


class InMemoryRuleConfigStore(RuleConfigStore):
    """In-memory rule configuration for testing and development.

    Every mutation moves the last change token so caches reading
    through this store pick up edits.
    """

    def __init__(
        self,
        rule_sets: list[RuleSet] | None = None,
        end_points: list[EndPoint] | None = None,
        config_items: dict[str, Any] | None = None,
    ) -> None:
        self._rule_sets: dict[str, RuleSet] = {
            rule_set.rule_set_id: rule_set for rule_set in rule_sets or []
        }
        self._end_points: dict[str, EndPoint] = {
            end_point.name: end_point for end_point in end_points or []
        }
        self._config_items: dict[str, Any] = dict(config_items or {})
        self._version = 0
        self._last_change = self._token()

    def _token(self) -> str:
        return f"{datetime.now(UTC).isoformat()}#{self._version}"

    def _touch(self) -> None:
        self._version += 1
        self._last_change = self._token()

    async def get_rule_sets(self) -> list[RuleSet]:
        return [rule_set.model_copy(deep=True) for rule_set in self._rule_sets.values()]

    async def get_end_points(self) -> list[EndPoint]:
        return [end_point.model_copy(deep=True) for end_point in self._end_points.values()]

    async def get_config_items(self) -> dict[str, Any]:
        return dict(self._config_items)

    async def get_last_change(self) -> str | None:
        return self._last_change

    async def save_rule_set(self, rule_set: RuleSet) -> None:
        """Insert or replace a rule set."""
        self._rule_sets[rule_set.rule_set_id] = rule_set
        self._touch()

    async def save_end_point(self, end_point: EndPoint) -> None:
        """Insert or replace an endpoint."""
        self._end_points[end_point.name] = end_point
        self._touch()

    async def set_config_item(self, key: str, value: Any) -> None:
        """Set a configuration item."""
        self._config_items[key] = value
        self._touch()
