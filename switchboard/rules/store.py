"""RuleConfigStore abstract interface."""

from abc import ABC, abstractmethod
from typing import Any

from switchboard.rules.models import EndPoint, RuleSet


class RuleConfigStore(ABC):
    """Abstract interface for rule configuration storage.

    Holds every rule set (enabled or not), the inbound endpoints,
    generic configuration items and a last change token that moves
    whenever any of these are edited.
    """

    @abstractmethod
    async def get_rule_sets(self) -> list[RuleSet]:
        """Get all rule sets with their rules."""
        pass

    @abstractmethod
    async def get_end_points(self) -> list[EndPoint]:
        """Get all endpoints."""
        pass

    @abstractmethod
    async def get_config_items(self) -> dict[str, Any]:
        """Get configuration key/value pairs."""
        pass

    @abstractmethod
    async def get_last_change(self) -> str | None:
        """Get the token identifying the most recent configuration change."""
        pass
