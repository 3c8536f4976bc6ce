"""Process-lifetime cache of rule sets, routing and configuration.

The cache compares a last change token against the one it loaded with
and rebuilds every index when they differ. Disabled endpoints, rule sets
and rules never enter the cache, so nothing downstream has to skip them.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from switchboard.inference.errors import EndPointNotFoundError, RuleSetNotFoundError
from switchboard.observability.logging import get_logger
from switchboard.observability.metrics import RULE_CACHE_RELOADS
from switchboard.rules.models import EndPoint, RuleSet
from switchboard.rules.store import RuleConfigStore

logger = get_logger(__name__)

LastChangeAccessor = Callable[[], Awaitable[str | None]]


class RuleSetCache:
    """Cached view of enabled rule configuration.

    Holds:
    - rule set name -> RuleSet (enabled rules only, descending priority)
    - inbound number -> EndPoint
    - endpoint name -> RuleSet
    - configuration items
    """

    def __init__(
        self,
        store: RuleConfigStore,
        last_change: LastChangeAccessor | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Rule configuration source
            last_change: Token accessor, defaults to the store's own token
        """
        self._store = store
        self._last_change = last_change or store.get_last_change
        self._token: str | None = None
        self._loaded = False
        self._lock = asyncio.Lock()

        self._rule_sets: dict[str, RuleSet] = {}
        self._inbound_numbers: dict[str, EndPoint] = {}
        self._end_points: dict[str, RuleSet] = {}
        self._config_items: dict[str, Any] = {}

    async def refresh(self) -> bool:
        """Reload when the last change token has moved.

        Returns:
            True if the cache was rebuilt
        """
        token = await self._last_change()
        if self._loaded and token == self._token:
            return False

        async with self._lock:
            if self._loaded and token == self._token:
                return False
            await self._load(token)
        return True

    async def _load(self, token: str | None) -> None:
        end_points = [e for e in await self._store.get_end_points() if e.enabled]
        rule_sets = [r for r in await self._store.get_rule_sets() if r.enabled]
        config_items = await self._store.get_config_items()

        rule_sets_by_name: dict[str, RuleSet] = {}
        by_end_point: dict[str, RuleSet] = {}
        for rule_set in rule_sets:
            enabled = [rule for rule in rule_set.rules if rule.enabled]
            # Stable sort keeps stored order for equal priorities
            enabled.sort(key=lambda rule: rule.priority, reverse=True)
            cached = rule_set.model_copy(update={"rules": enabled})
            rule_sets_by_name[cached.name] = cached
            for end_point_name in cached.end_points:
                by_end_point[end_point_name] = cached

        inbound_numbers = {
            number: end_point
            for end_point in end_points
            for number in end_point.inbound_numbers
        }

        self._rule_sets = rule_sets_by_name
        self._end_points = by_end_point
        self._inbound_numbers = inbound_numbers
        self._config_items = config_items
        self._token = token
        self._loaded = True

        RULE_CACHE_RELOADS.inc()
        logger.info(
            "rule_cache_reloaded",
            rule_sets=len(rule_sets_by_name),
            end_points=len(end_points),
            token=token,
        )

    @property
    def rule_sets(self) -> list[RuleSet]:
        """All cached rule sets."""
        return list(self._rule_sets.values())

    @property
    def config_items(self) -> dict[str, Any]:
        """Configuration key/value pairs."""
        return self._config_items

    def get_rule_set(self, name: str) -> RuleSet:
        """Get a rule set by name.

        Raises:
            RuleSetNotFoundError: If no enabled rule set has that name
        """
        rule_set = self._rule_sets.get(name)
        if rule_set is None:
            raise RuleSetNotFoundError(f"Failed to find rule set for name: {name}")
        return rule_set

    def find_rule_set(self, name: str) -> RuleSet | None:
        """Get a rule set by name, or None."""
        return self._rule_sets.get(name)

    def rule_set_for_end_point(self, end_point_name: str) -> RuleSet:
        """Get the rule set an endpoint routes to.

        Raises:
            EndPointNotFoundError: If the endpoint routes nowhere
        """
        rule_set = self._end_points.get(end_point_name)
        if rule_set is None:
            raise EndPointNotFoundError(
                f"Failed to find rule set for end point: {end_point_name}"
            )
        return rule_set

    def rule_set_for_dialled_number(self, dialled_number: str) -> RuleSet:
        """Resolve a dialled number to its endpoint's rule set.

        Raises:
            EndPointNotFoundError: If the number or its endpoint routes nowhere
        """
        end_point = self._inbound_numbers.get(dialled_number)
        if end_point is None:
            raise EndPointNotFoundError(
                f"Failed to find end point by dialled number: {dialled_number}"
            )
        rule_set = self._end_points.get(end_point.name)
        if rule_set is None:
            raise EndPointNotFoundError(
                f"Failed to find rule set by dialled number: {dialled_number} "
                f"and end point: {end_point.name}"
            )
        return rule_set
